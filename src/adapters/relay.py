"""
Relay adapter - GcpPubSubSource objects in the Kubernetes API.

The relay consumes the source's topic and forwards every message to the
sink. It is owned by the source, so the garbage collector removes it once
the source itself is gone.
"""

import logging
from typing import Any, Dict, Optional

from kubernetes import client

from adapters.base import RelayAdapter
from constants import RELAY_API_VERSION, RELAY_GROUP, RELAY_KIND, RELAY_PLURAL, RELAY_VERSION
from models import GCSSource, Relay

logger = logging.getLogger(__name__)


def make_relay(source: GCSSource) -> Dict[str, Any]:
    """Build the GcpPubSubSource body for a source."""
    spec: Dict[str, Any] = {
        "googleCloudProject": source.spec.google_cloud_project,
        "topic": source.status.topic,
    }
    sink = source.spec.sink
    if sink is not None and sink.uri:
        # The relay's sink field only takes an object reference
        spec["sinkUri"] = sink.uri
    elif sink is not None:
        spec["sink"] = sink.to_dict()
    if source.spec.service_account_name:
        spec["serviceAccountName"] = source.spec.service_account_name

    return {
        "apiVersion": RELAY_API_VERSION,
        "kind": RELAY_KIND,
        "metadata": {
            "name": source.name,
            "namespace": source.namespace,
            "ownerReferences": [
                {
                    "apiVersion": source.api_version,
                    "kind": source.kind,
                    "name": source.name,
                    "uid": source.metadata.uid,
                    "controller": True,
                    "blockOwnerDeletion": True,
                }
            ],
        },
        "spec": spec,
    }


class KubernetesRelayAdapter(RelayAdapter):
    """Relay adapter backed by the custom objects API."""

    def __init__(self, api: client.CustomObjectsApi, timeout: Optional[float] = None):
        self.api = api
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "relay"

    def ensure(self, source: GCSSource) -> Relay:
        try:
            existing = self.api.get_namespaced_custom_object(
                group=RELAY_GROUP,
                version=RELAY_VERSION,
                namespace=source.namespace,
                plural=RELAY_PLURAL,
                name=source.name,
                _request_timeout=self.timeout,
            )
            # TODO: bring an existing relay's topic and sink back in line with the source
            logger.info(f"Found existing relay {source.key}")
            return Relay.from_object(existing)
        except client.exceptions.ApiException as e:
            if e.status != 404:
                raise

        body = make_relay(source)
        logger.info(f"Creating relay {source.key} for topic {source.status.topic!r}")
        created = self.api.create_namespaced_custom_object(
            group=RELAY_GROUP,
            version=RELAY_VERSION,
            namespace=source.namespace,
            plural=RELAY_PLURAL,
            body=body,
            _request_timeout=self.timeout,
        )
        return Relay.from_object(created)
