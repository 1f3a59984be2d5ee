"""
External resource adapters.

One adapter per external system a GCSSource drives: the Pub/Sub topic,
the Cloud Storage notification and the relay forwarding to the sink.
"""

from adapters.base import NotificationAdapter, RelayAdapter, TopicAdapter

__all__ = ["NotificationAdapter", "RelayAdapter", "TopicAdapter"]
