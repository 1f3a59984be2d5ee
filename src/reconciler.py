"""
GCSSource Reconciler - Converges a source with its external objects.

A source drives three external objects: a Pub/Sub topic, a relay that
forwards the topic to the sink, and a bucket notification that feeds the
topic. Every pass starts over from the persisted status, so a pass that
fails half-way is simply retried:

    resolve sink -> ensure topic -> add finalizer -> ensure relay
                 -> ensure notification

Once the source is being deleted the pass only cleans up: it deletes the
notification and the topic, then drops the finalizer so the API server can
remove the source.
"""

import logging
from typing import Callable, Optional

from adapters.base import NotificationAdapter, RelayAdapter, TopicAdapter
from constants import CONTROLLER_AGENT_NAME, FINALIZER_NAME
from differ import needs_update
from errors import NotFoundError, SourceError
from finalizers import add_finalizer, remove_finalizer
from models import GCSSource
from sink import SinkResolver
from store import KubernetesSourceStore, SourceLister
from validation import validate_source_spec

logger = logging.getLogger(__name__)


def split_key(key: str) -> tuple[str, str]:
    """
    Split a namespace/name work queue key.

    Raises:
        ValueError: If the key is not of the form namespace/name
    """
    parts = key.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"invalid resource key: {key!r}")
    return parts[0], parts[1]


class Reconciler:
    """
    Reconciles GCSSource resources.

    All collaborators are injected. The lister is only read; writes go
    through the store and only happen when the pass changed something.
    """

    def __init__(
        self,
        lister: SourceLister,
        store: KubernetesSourceStore,
        sink_resolver: SinkResolver,
        topics: TopicAdapter,
        notifications: NotificationAdapter,
        relays: RelayAdapter,
        finalizer_name: str = FINALIZER_NAME,
    ):
        self.lister = lister
        self.store = store
        self.sink_resolver = sink_resolver
        self.topics = topics
        self.notifications = notifications
        self.relays = relays
        self.finalizer_name = finalizer_name

    @property
    def name(self) -> str:
        return CONTROLLER_AGENT_NAME

    def reconcile_key(
        self,
        key: str,
        on_persisted: Optional[Callable[[GCSSource], None]] = None,
    ) -> Optional[GCSSource]:
        """
        Reconcile the source identified by a work queue key.

        Malformed keys and sources that no longer exist are dropped, since
        retrying them cannot succeed. The reconciled source is written back
        only if its status or finalizers changed, and it is written back
        even when the pass failed so that completed steps (a generated
        topic ID, an added finalizer) survive the retry.

        Args:
            key: namespace/name of the source
            on_persisted: Called with the stored source after every
                successful write, whether or not the pass itself failed

        Returns:
            The reconciled source, or None if the key was dropped

        Raises:
            Exception: The error that aborted the pass, or the error from
                writing the source back
        """
        try:
            namespace, name = split_key(key)
        except ValueError as e:
            logger.error(str(e))
            return None

        try:
            original = self.lister.get(namespace, name)
        except NotFoundError:
            logger.warning(f"gcssource {key!r} in work queue no longer exists")
            return None

        candidate = original.deep_copy()
        reconcile_error: Optional[Exception] = None
        try:
            self.reconcile(candidate)
        except Exception as e:
            reconcile_error = e

        if needs_update(original, candidate):
            try:
                candidate = self.store.update(candidate)
            except SourceError as e:
                logger.warning(f"Failed to update GCSSource status for {key}: {e}")
                raise
            if on_persisted is not None:
                on_persisted(candidate)
        else:
            logger.debug(f"No changes to persist for {key}")

        if reconcile_error is not None:
            raise reconcile_error
        return candidate

    def reconcile(self, source: GCSSource) -> GCSSource:
        """
        Run one reconciliation pass over a source, mutating it in place.

        Args:
            source: A private copy of the source; its status and finalizers
                are updated as steps complete

        Returns:
            The same source object

        Raises:
            ResolutionFailedError: If the sink cannot be resolved and the
                source is not being deleted
            Exception: Any adapter error, unchanged
        """
        try:
            uri = self.sink_resolver.resolve(source.spec.sink, source.namespace)
        except Exception as e:
            logger.info(f"Couldn't resolve sink URI for {source.key}: {e}")
            if not source.is_terminating:
                raise
            # The destination is irrelevant once the source is being removed
            uri = ""
        logger.info(f"Resolved sink URI to {uri!r}")

        if source.is_terminating:
            return self._finalize(source)

        validate_source_spec(source.spec)

        self._reconcile_topic(source)
        add_finalizer(source, self.finalizer_name)
        source.status.sink_uri = uri

        try:
            relay = self.relays.ensure(source)
        except Exception as e:
            logger.info(f"Failed to reconcile relay for {source.key}: {e}")
            raise
        logger.info(f"Reconciled relay {relay.namespace}/{relay.name}")

        spec = source.spec
        try:
            notification = self.notifications.ensure(
                spec.bucket,
                source.status.notification_id,
                spec.google_cloud_project,
                source.status.topic,
                spec.payload_format,
                event_types=spec.event_types,
                object_prefix=spec.object_name_prefix,
                custom_attributes=spec.custom_attributes,
            )
        except Exception as e:
            logger.info(f"Failed to reconcile GCS notification for {source.key}: {e}")
            raise
        logger.info(f"Reconciled GCS notification {notification.notification_id!r}")

        source.status.notification_id = notification.notification_id
        return source

    def _reconcile_topic(self, source: GCSSource) -> None:
        # The ID is recorded before creation so a retry reuses it
        if not source.status.topic:
            source.status.topic = self.topics.new_topic_id()

        try:
            self.topics.ensure(source.spec.google_cloud_project, source.status.topic)
        except Exception as e:
            logger.info(f"Failed to reconcile topic {source.status.topic!r}: {e}")
            raise

    def _finalize(self, source: GCSSource) -> GCSSource:
        try:
            self.notifications.delete(source.spec.bucket, source.status.notification_id)
        except Exception as e:
            logger.info(f"Unable to delete the notification for {source.key}: {e}")
            raise

        try:
            self.topics.delete(source.spec.google_cloud_project, source.status.topic)
        except Exception as e:
            logger.info(f"Unable to delete the topic for {source.key}: {e}")
            raise

        source.status.topic = ""
        remove_finalizer(source, self.finalizer_name)
        logger.info(f"Finalized {source.key}")
        return source
