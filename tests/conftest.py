"""Pytest configuration and fixtures."""

import uuid
from typing import Dict, List, Optional, Tuple

import pytest

from adapters.base import NotificationAdapter, RelayAdapter, TopicAdapter
from errors import ConflictError, NotFoundError, ResolutionFailedError, TransportError
from models import GCSSource, Notification, Relay
from reconciler import Reconciler
from sink import SinkResolver


class FakeTopics(TopicAdapter):
    """In-memory topic adapter with injectable failures."""

    def __init__(self):
        self.topics: set = set()
        self.created: List[Tuple[str, str]] = []
        self.deleted: List[Tuple[str, str]] = []
        self.ensure_failures = 0
        self.delete_failures = 0

    @property
    def name(self) -> str:
        return "fake-topics"

    def new_topic_id(self) -> str:
        return f"gcs-{uuid.uuid4()}"

    def ensure(self, project: str, existing_id: str) -> str:
        if self.ensure_failures:
            self.ensure_failures -= 1
            raise TransportError("pubsub unavailable")
        topic_id = existing_id or self.new_topic_id()
        if (project, topic_id) not in self.topics:
            self.topics.add((project, topic_id))
            self.created.append((project, topic_id))
        return topic_id

    def delete(self, project: str, topic_id: str) -> None:
        if not topic_id:
            return
        if self.delete_failures:
            self.delete_failures -= 1
            raise TransportError("pubsub unavailable")
        self.topics.discard((project, topic_id))
        self.deleted.append((project, topic_id))


class FakeNotifications(NotificationAdapter):
    """In-memory notification adapter handing out sequential IDs."""

    def __init__(self):
        self.notifications: Dict[str, Notification] = {}
        self.created: List[str] = []
        self.deleted: List[str] = []
        self.ensure_failures = 0
        self.delete_failures = 0
        self._next_id = 1

    @property
    def name(self) -> str:
        return "fake-notifications"

    def ensure(
        self,
        bucket,
        existing_id,
        topic_project,
        topic_id,
        payload_format,
        event_types=None,
        object_prefix=None,
        custom_attributes=None,
    ) -> Notification:
        if self.ensure_failures:
            self.ensure_failures -= 1
            raise TransportError("storage unavailable")
        if existing_id and existing_id in self.notifications:
            return self.notifications[existing_id]
        notification_id = str(self._next_id)
        self._next_id += 1
        notification = Notification(
            notification_id=notification_id,
            bucket=bucket,
            topic_project=topic_project,
            topic_name=topic_id,
            payload_format=payload_format,
            event_types=list(event_types or []),
            object_name_prefix=object_prefix or "",
            custom_attributes=dict(custom_attributes or {}),
        )
        self.notifications[notification_id] = notification
        self.created.append(notification_id)
        return notification

    def delete(self, bucket: str, notification_id: str) -> None:
        if not notification_id:
            return
        if self.delete_failures:
            self.delete_failures -= 1
            raise TransportError("storage unavailable")
        self.notifications.pop(notification_id, None)
        self.deleted.append(notification_id)


class FakeRelays(RelayAdapter):
    """In-memory relay adapter."""

    def __init__(self):
        self.relays: Dict[str, Relay] = {}
        self.created: List[str] = []
        self.ensure_failures = 0

    @property
    def name(self) -> str:
        return "fake-relays"

    def ensure(self, source: GCSSource) -> Relay:
        if self.ensure_failures:
            self.ensure_failures -= 1
            raise TransportError("kubernetes unavailable")
        if source.key not in self.relays:
            self.relays[source.key] = Relay(
                name=source.name, namespace=source.namespace, topic=source.status.topic
            )
            self.created.append(source.key)
        return self.relays[source.key]


class FakeSinkResolver(SinkResolver):
    def __init__(self, uri: str = "https://sink.example"):
        self.uri = uri
        self.fail = False

    def resolve(self, reference, namespace):
        if self.fail:
            raise ResolutionFailedError("sink not found")
        return self.uri


class FakeStore:
    """Source store with resourceVersion checks, doubling as the lister."""

    def __init__(self):
        self.objects: Dict[str, GCSSource] = {}
        self.updates: List[GCSSource] = []
        self.fail_with: Optional[Exception] = None

    def add(self, source: GCSSource) -> None:
        if not source.metadata.resource_version:
            source.metadata.resource_version = "1"
        self.objects[source.key] = source.deep_copy()

    def get(self, namespace: str, name: str) -> GCSSource:
        key = f"{namespace}/{name}"
        if key not in self.objects:
            raise NotFoundError(f"gcssource {key!r} not found")
        return self.objects[key].deep_copy()

    def update(self, source: GCSSource) -> GCSSource:
        if self.fail_with is not None:
            raise self.fail_with
        stored = self.objects.get(source.key)
        if stored is None:
            raise NotFoundError(f"gcssource {source.key!r} not found")
        if stored.metadata.resource_version != source.metadata.resource_version:
            raise ConflictError(f"gcssource {source.key} was modified concurrently")
        updated = source.deep_copy()
        updated.metadata.resource_version = str(int(stored.metadata.resource_version) + 1)
        self.objects[source.key] = updated
        self.updates.append(updated.deep_copy())
        return updated.deep_copy()


@pytest.fixture
def topics():
    return FakeTopics()


@pytest.fixture
def notifications():
    return FakeNotifications()


@pytest.fixture
def relays():
    return FakeRelays()


@pytest.fixture
def sink_resolver():
    return FakeSinkResolver()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def reconciler(store, sink_resolver, topics, notifications, relays):
    return Reconciler(
        lister=store,
        store=store,
        sink_resolver=sink_resolver,
        topics=topics,
        notifications=notifications,
        relays=relays,
    )


@pytest.fixture
def sample_source():
    """A GCSSource that has never been reconciled."""
    return GCSSource.from_dict(
        {
            "apiVersion": "sources.eventing.knative.dev/v1alpha1",
            "kind": "GCSSource",
            "metadata": {
                "name": "photos",
                "namespace": "default",
                "uid": "3f1c2d8e-0000-4000-8000-000000000001",
                "resourceVersion": "1",
                "generation": 1,
            },
            "spec": {
                "googleCloudProject": "my-project",
                "bucket": "b1",
                "objectNamePrefix": "uploads/",
                "eventTypes": ["OBJECT_FINALIZE"],
                "customAttributes": {"team": "media"},
                "payloadFormat": "JSON_API_V1",
                "sink": {
                    "apiVersion": "serving.knative.dev/v1alpha1",
                    "kind": "Service",
                    "name": "message-dumper",
                },
            },
        }
    )


@pytest.fixture
def terminating_source(sample_source):
    """A reconciled GCSSource that has been marked for deletion."""
    source = sample_source.deep_copy()
    source.metadata.deletion_timestamp = "2024-01-01T00:00:00Z"
    source.metadata.finalizers = ["gcs-controller"]
    source.status.topic = "t1"
    source.status.notification_id = "n1"
    return source
