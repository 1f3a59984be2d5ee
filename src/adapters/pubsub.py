"""
Cloud Pub/Sub topic adapter.
"""

import logging
import uuid
from typing import Optional

from google.api_core import exceptions as gexceptions
from google.cloud import pubsub_v1

from adapters.base import TopicAdapter
from constants import TOPIC_PREFIX

logger = logging.getLogger(__name__)


class PubSubTopicAdapter(TopicAdapter):
    """Topic adapter backed by the Pub/Sub publisher API."""

    def __init__(self, publisher: pubsub_v1.PublisherClient, timeout: Optional[float] = None):
        self.publisher = publisher
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "pubsub"

    def new_topic_id(self) -> str:
        return f"{TOPIC_PREFIX}{uuid.uuid4()}"

    def _exists(self, topic_path: str) -> bool:
        try:
            self.publisher.get_topic(request={"topic": topic_path}, timeout=self.timeout)
            return True
        except gexceptions.NotFound:
            return False

    def ensure(self, project: str, existing_id: str) -> str:
        topic_id = existing_id or self.new_topic_id()
        topic_path = self.publisher.topic_path(project, topic_id)

        if existing_id and self._exists(topic_path):
            logger.info(f"Topic {topic_id!r} exists already")
            return topic_id

        logger.info(f"Creating topic {topic_id!r}")
        try:
            self.publisher.create_topic(request={"name": topic_path}, timeout=self.timeout)
        except gexceptions.AlreadyExists:
            logger.info(f"Topic {topic_id!r} was created concurrently")
            return topic_id
        except gexceptions.GoogleAPICallError as e:
            logger.info(f"Failed to create topic {topic_id!r}: {e}")
            raise

        logger.info(f"Created topic {topic_id!r}")
        return topic_id

    def delete(self, project: str, topic_id: str) -> None:
        if not topic_id:
            return

        topic_path = self.publisher.topic_path(project, topic_id)
        try:
            self.publisher.delete_topic(request={"topic": topic_path}, timeout=self.timeout)
        except gexceptions.NotFound:
            logger.info(f"Topic {topic_id!r} already gone")
            return
        logger.info(f"Deleted topic {topic_id!r}")
