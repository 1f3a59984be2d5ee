"""Constants for the GCS Source controller."""

# Controller identity
CONTROLLER_AGENT_NAME = "gcs-controller"
FINALIZER_NAME = CONTROLLER_AGENT_NAME

# GCSSource custom resource
GCS_SOURCE_GROUP = "sources.eventing.knative.dev"
GCS_SOURCE_VERSION = "v1alpha1"
GCS_SOURCE_API_VERSION = f"{GCS_SOURCE_GROUP}/{GCS_SOURCE_VERSION}"
GCS_SOURCE_KIND = "GCSSource"
GCS_SOURCE_PLURAL = "gcssources"

# Relay (GcpPubSubSource) custom resource
RELAY_GROUP = "sources.eventing.knative.dev"
RELAY_VERSION = "v1alpha1"
RELAY_API_VERSION = f"{RELAY_GROUP}/{RELAY_VERSION}"
RELAY_KIND = "GcpPubSubSource"
RELAY_PLURAL = "gcppubsubsources"

# Topics are prefixed so generated IDs always start with a letter
TOPIC_PREFIX = "gcs-"

# Payload formats understood by Cloud Storage notifications
PAYLOAD_FORMAT_JSON = "JSON_API_V1"
PAYLOAD_FORMAT_NONE = "NONE"
