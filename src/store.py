"""
Source Store - Reading and writing GCSSource resources.

Reads go through a SourceLister, a read-only snapshot interface. The
controller keeps a SourceCache filled from the watch stream and from the
objects its own writes return; the reconciler only ever calls ``get`` on
it. Writes go through KubernetesSourceStore and carry the resourceVersion
of the snapshot the pass started from, so a write based on stale data
fails with ConflictError instead of clobbering a newer version.
"""

import logging
import threading
from typing import Any, Dict, Optional, Protocol

from kubernetes import client

from constants import GCS_SOURCE_GROUP, GCS_SOURCE_PLURAL, GCS_SOURCE_VERSION
from errors import ConflictError, NotFoundError, TransportError
from models import GCSSource
from scheme import Scheme

logger = logging.getLogger(__name__)


def is_newer(candidate: GCSSource, current: Optional[GCSSource]) -> bool:
    """
    Whether candidate is a later version of the object than current.

    resourceVersions of a single object increase monotonically. Versions
    that are not integers cannot be ordered, so the candidate wins.
    """
    if current is None:
        return True
    try:
        return int(candidate.metadata.resource_version) > int(current.metadata.resource_version)
    except ValueError:
        return True


class SourceLister(Protocol):
    """Read-only access to sources by namespace and name."""

    def get(self, namespace: str, name: str) -> GCSSource:
        """Return the source, raising NotFoundError if it does not exist."""
        ...


class SourceCache:
    """
    In-memory snapshot of sources, keyed by namespace/name.

    Entries are handed out as deep copies, so callers can never mutate the
    cached version. An entry is never replaced by an older version of the
    same object.
    """

    def __init__(self):
        self._items: Dict[str, GCSSource] = {}
        self._lock = threading.Lock()

    def get(self, namespace: str, name: str) -> GCSSource:
        key = f"{namespace}/{name}"
        with self._lock:
            source = self._items.get(key)
        if source is None:
            raise NotFoundError(f"gcssource {key!r} not found")
        return source.deep_copy()

    def upsert(self, source: GCSSource) -> bool:
        """
        Store source unless the cache already holds a newer version.

        Returns:
            True if the entry was replaced
        """
        with self._lock:
            if not is_newer(source, self._items.get(source.key)):
                logger.debug(
                    f"Keeping cached {source.key} over resourceVersion "
                    f"{source.metadata.resource_version}"
                )
                return False
            self._items[source.key] = source.deep_copy()
            return True

    def delete(self, namespace: str, name: str) -> None:
        with self._lock:
            self._items.pop(f"{namespace}/{name}", None)


def status_patch(source: GCSSource) -> Dict[str, Any]:
    """
    Build the merge patch persisting status and finalizers.

    Cleared status fields are sent as null so the merge removes them. The
    resourceVersion makes the API server reject the patch when the stored
    object has moved on.
    """
    status = source.status
    return {
        "metadata": {
            "resourceVersion": source.metadata.resource_version or None,
            "finalizers": list(source.metadata.finalizers),
        },
        "status": {
            "sinkUri": status.sink_uri or None,
            "topic": status.topic or None,
            "notificationId": status.notification_id or None,
        },
    }


class KubernetesSourceStore:
    """GCSSource writes through the custom objects API."""

    def __init__(
        self,
        scheme: Scheme,
        api: client.CustomObjectsApi,
        timeout: Optional[float] = None,
    ):
        self.scheme = scheme
        self.api = api
        self.timeout = timeout

    def update(self, source: GCSSource) -> GCSSource:
        """
        Persist status and finalizers of a source.

        Args:
            source: The reconciled source

        Returns:
            The stored source as returned by the API server

        Raises:
            ConflictError: If the stored resourceVersion differs
            NotFoundError: If the source no longer exists
            TransportError: For any other API failure
        """
        try:
            obj = self.api.patch_namespaced_custom_object(
                group=GCS_SOURCE_GROUP,
                version=GCS_SOURCE_VERSION,
                namespace=source.namespace,
                plural=GCS_SOURCE_PLURAL,
                name=source.name,
                body=status_patch(source),
                _request_timeout=self.timeout,
            )
        except client.exceptions.ApiException as e:
            if e.status == 409:
                raise ConflictError(
                    f"gcssource {source.key} was modified concurrently"
                ) from e
            if e.status == 404:
                raise NotFoundError(f"gcssource {source.key!r} not found") from e
            raise TransportError(f"Failed to update gcssource {source.key}: {e.reason}") from e
        return self.scheme.decode(obj)
