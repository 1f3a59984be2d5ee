"""
Resource Models - GCSSource and the external objects it drives.

The dataclasses mirror the persisted shape of the custom resource, using
camelCase keys on the wire and snake_case attributes in Python.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from constants import GCS_SOURCE_API_VERSION, GCS_SOURCE_KIND


@dataclass
class ObjectReference:
    """
    Reference to the sink of a source.

    Either points at another object (apiVersion/kind/name) or carries a
    literal URI.
    """

    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""
    uri: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ObjectReference"]:
        if not data:
            return None
        return cls(
            api_version=data.get("apiVersion", ""),
            kind=data.get("kind", ""),
            name=data.get("name", ""),
            namespace=data.get("namespace", ""),
            uri=data.get("uri", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace,
            "uri": self.uri,
        }
        return {k: v for k, v in data.items() if v}


@dataclass
class GCSSourceSpec:
    """Desired state of a GCSSource. Never mutated by the reconciler."""

    google_cloud_project: str = ""
    bucket: str = ""
    object_name_prefix: str = ""
    event_types: List[str] = field(default_factory=list)
    custom_attributes: Dict[str, str] = field(default_factory=dict)
    payload_format: str = ""
    service_account_name: str = ""
    sink: Optional[ObjectReference] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GCSSourceSpec":
        data = data or {}
        return cls(
            google_cloud_project=data.get("googleCloudProject", ""),
            bucket=data.get("bucket", ""),
            object_name_prefix=data.get("objectNamePrefix", ""),
            event_types=list(data.get("eventTypes") or []),
            custom_attributes=dict(data.get("customAttributes") or {}),
            payload_format=data.get("payloadFormat", ""),
            service_account_name=data.get("serviceAccountName", ""),
            sink=ObjectReference.from_dict(data.get("sink")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "googleCloudProject": self.google_cloud_project,
            "bucket": self.bucket,
            "objectNamePrefix": self.object_name_prefix,
            "eventTypes": list(self.event_types),
            "customAttributes": dict(self.custom_attributes),
            "payloadFormat": self.payload_format,
            "serviceAccountName": self.service_account_name,
        }
        if self.sink is not None:
            data["sink"] = self.sink.to_dict()
        # bucket is required and always kept
        return {k: v for k, v in data.items() if v or k == "bucket"}


@dataclass
class GCSSourceStatus:
    """Observed state owned by the reconciler."""

    sink_uri: str = ""
    topic: str = ""
    notification_id: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GCSSourceStatus":
        data = data or {}
        return cls(
            sink_uri=data.get("sinkUri") or "",
            topic=data.get("topic") or "",
            notification_id=data.get("notificationId") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "sinkUri": self.sink_uri,
            "topic": self.topic,
            "notificationId": self.notification_id,
        }
        return {k: v for k, v in data.items() if v}


@dataclass
class ObjectMeta:
    """The subset of Kubernetes object metadata the controller relies on."""

    name: str
    namespace: str = "default"
    uid: str = ""
    resource_version: str = ""
    generation: int = 0
    finalizers: List[str] = field(default_factory=list)
    deletion_timestamp: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObjectMeta":
        return cls(
            name=data["name"],
            namespace=data.get("namespace", "default"),
            uid=data.get("uid", ""),
            resource_version=data.get("resourceVersion", ""),
            generation=data.get("generation", 0),
            finalizers=list(data.get("finalizers") or []),
            deletion_timestamp=data.get("deletionTimestamp"),
            labels=dict(data.get("labels") or {}),
            annotations=dict(data.get("annotations") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.uid:
            data["uid"] = self.uid
        if self.resource_version:
            data["resourceVersion"] = self.resource_version
        if self.generation:
            data["generation"] = self.generation
        if self.finalizers:
            data["finalizers"] = list(self.finalizers)
        if self.deletion_timestamp:
            data["deletionTimestamp"] = self.deletion_timestamp
        if self.labels:
            data["labels"] = dict(self.labels)
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        return data


@dataclass
class GCSSource:
    """A GCSSource custom resource: metadata, spec and status."""

    metadata: ObjectMeta
    spec: GCSSourceSpec = field(default_factory=GCSSourceSpec)
    status: GCSSourceStatus = field(default_factory=GCSSourceStatus)

    api_version = GCS_SOURCE_API_VERSION
    kind = GCS_SOURCE_KIND

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def key(self) -> str:
        """Work queue key in namespace/name form."""
        return f"{self.metadata.namespace}/{self.metadata.name}"

    @property
    def is_terminating(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    def deep_copy(self) -> "GCSSource":
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GCSSource":
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata") or {}),
            spec=GCSSourceSpec.from_dict(data.get("spec")),
            status=GCSSourceStatus.from_dict(data.get("status")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }


@dataclass
class Notification:
    """A bucket notification as reported by Cloud Storage."""

    notification_id: str
    bucket: str
    topic_project: str
    topic_name: str
    payload_format: str = ""
    event_types: List[str] = field(default_factory=list)
    object_name_prefix: str = ""
    custom_attributes: Dict[str, str] = field(default_factory=dict)


@dataclass
class Relay:
    """A GcpPubSubSource forwarding topic messages to a sink."""

    name: str
    namespace: str
    topic: str
    sink_uri: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_object(cls, obj: Dict[str, Any]) -> "Relay":
        metadata = obj.get("metadata") or {}
        spec = obj.get("spec") or {}
        status = obj.get("status") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            topic=spec.get("topic", ""),
            sink_uri=status.get("sinkUri", ""),
            raw=obj,
        )
