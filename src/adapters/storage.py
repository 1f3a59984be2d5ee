"""
Cloud Storage bucket notification adapter.
"""

import logging
from typing import Dict, List, Optional

from google.api_core import exceptions as gexceptions
from google.cloud import storage

from adapters.base import NotificationAdapter
from constants import PAYLOAD_FORMAT_JSON
from models import Notification

logger = logging.getLogger(__name__)


def _to_notification(bucket: str, notification) -> Notification:
    return Notification(
        notification_id=notification.notification_id,
        bucket=bucket,
        topic_project=notification.topic_project,
        topic_name=notification.topic_name,
        payload_format=notification.payload_format or "",
        event_types=list(notification.event_types or []),
        object_name_prefix=notification.blob_name_prefix or "",
        custom_attributes=dict(notification.custom_attributes or {}),
    )


class StorageNotificationAdapter(NotificationAdapter):
    """Notification adapter backed by the Cloud Storage JSON API."""

    def __init__(self, client: storage.Client, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "storage"

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
        gcs_bucket = self.client.bucket(bucket)

        try:
            existing = {
                n.notification_id: n
                for n in gcs_bucket.list_notifications(timeout=self.timeout)
            }
        except gexceptions.GoogleAPICallError as e:
            logger.info(f"Failed to fetch existing notifications: {e}")
            raise

        if existing_id and existing_id in existing:
            logger.info(f"Found existing notification {existing_id!r}")
            return _to_notification(bucket, existing[existing_id])

        logger.info(f"Creating a notification on bucket {bucket}")
        notification = gcs_bucket.notification(
            topic_name=topic_id,
            topic_project=topic_project,
            custom_attributes=custom_attributes or None,
            event_types=event_types or None,
            blob_name_prefix=object_prefix or None,
            payload_format=payload_format or PAYLOAD_FORMAT_JSON,
        )
        try:
            notification.create(timeout=self.timeout)
        except gexceptions.GoogleAPICallError as e:
            logger.info(f"Failed to create notification: {e}")
            raise

        logger.info(f"Created notification {notification.notification_id!r}")
        return _to_notification(bucket, notification)

    def delete(self, bucket: str, notification_id: str) -> None:
        if not notification_id:
            return

        logger.info(f"Deleting notification {notification_id!r}")
        notification = self.client.bucket(bucket).notification(
            notification_id=notification_id
        )
        try:
            notification.delete(timeout=self.timeout)
        except gexceptions.NotFound:
            logger.info(f"Notification {notification_id!r} already gone")
            return
        logger.info(f"Deleted notification {notification_id!r}")
