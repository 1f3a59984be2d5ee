"""
Adapter Base - Abstract interfaces for the external systems a source drives.

Each adapter manages one external system and exposes idempotent
get-or-create ("ensure") and absence-tolerant delete operations. Only
"object not found" is handled inside an adapter; every other error is
raised unchanged so the work queue can redrive the key.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from models import GCSSource, Notification, Relay


class TopicAdapter(ABC):
    """Manages message-bus topics."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in log messages."""
        pass

    @abstractmethod
    def new_topic_id(self) -> str:
        """Generate a globally unique, conformant topic ID."""
        pass

    @abstractmethod
    def ensure(self, project: str, existing_id: str) -> str:
        """
        Get or create a topic.

        Args:
            project: Project that owns the topic
            existing_id: Previously persisted topic ID, or "" if none

        Returns:
            The topic ID. Equal to existing_id when it was non-empty.
        """
        pass

    @abstractmethod
    def delete(self, project: str, topic_id: str) -> None:
        """
        Delete a topic. Empty IDs and absent topics are not errors.

        Args:
            project: Project that owns the topic
            topic_id: Topic ID to delete
        """
        pass


class NotificationAdapter(ABC):
    """Manages bucket change notifications."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in log messages."""
        pass

    @abstractmethod
    def ensure(
        self,
        bucket: str,
        existing_id: str,
        topic_project: str,
        topic_id: str,
        payload_format: str,
        event_types: Optional[List[str]] = None,
        object_prefix: Optional[str] = None,
        custom_attributes: Optional[Dict[str, str]] = None,
    ) -> Notification:
        """
        Get or create a notification publishing bucket changes to a topic.

        Args:
            bucket: Bucket to watch
            existing_id: Previously persisted notification ID, or ""
            topic_project: Project of the destination topic
            topic_id: Destination topic ID
            payload_format: Message payload format ("" for the default)
            event_types: Optional event type filter
            object_prefix: Optional object name prefix filter
            custom_attributes: Optional attributes attached to each message

        Returns:
            The existing notification when existing_id is still live,
            otherwise the newly created one.
        """
        pass

    @abstractmethod
    def delete(self, bucket: str, notification_id: str) -> None:
        """
        Delete a notification. Empty IDs and absent notifications are not errors.

        Args:
            bucket: Bucket the notification is attached to
            notification_id: ID assigned when the notification was created
        """
        pass


class RelayAdapter(ABC):
    """Manages the relay forwarding topic messages to the sink."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in log messages."""
        pass

    @abstractmethod
    def ensure(self, source: GCSSource) -> Relay:
        """
        Get or create the relay for a source.

        The relay shares the source's name and namespace. An existing relay
        is returned as-is; its configuration is not brought back in line
        with the source.

        Args:
            source: The source, with status.topic already populated

        Returns:
            The existing or newly created relay.
        """
        pass
