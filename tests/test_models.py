"""Unit tests for models.py - resource models."""

from models import GCSSource, GCSSourceSpec, GCSSourceStatus, ObjectReference, Relay


class TestGCSSource:
    """Tests for GCSSource conversions."""

    def test_from_dict(self, sample_source):
        assert sample_source.name == "photos"
        assert sample_source.namespace == "default"
        assert sample_source.key == "default/photos"
        assert sample_source.spec.google_cloud_project == "my-project"
        assert sample_source.spec.event_types == ["OBJECT_FINALIZE"]
        assert sample_source.spec.custom_attributes == {"team": "media"}
        assert sample_source.spec.sink.kind == "Service"
        assert sample_source.status == GCSSourceStatus()
        assert sample_source.is_terminating is False

    def test_to_dict_round_trip(self, sample_source):
        sample_source.status.topic = "gcs-abc"
        sample_source.metadata.finalizers = ["gcs-controller"]
        assert GCSSource.from_dict(sample_source.to_dict()) == sample_source

    def test_to_dict_shape(self, terminating_source):
        obj = terminating_source.to_dict()

        assert obj["apiVersion"] == "sources.eventing.knative.dev/v1alpha1"
        assert obj["kind"] == "GCSSource"
        assert obj["metadata"]["deletionTimestamp"] == "2024-01-01T00:00:00Z"
        assert obj["metadata"]["finalizers"] == ["gcs-controller"]
        assert obj["status"] == {"topic": "t1", "notificationId": "n1"}
        assert obj["spec"]["objectNamePrefix"] == "uploads/"

    def test_is_terminating(self, terminating_source):
        assert terminating_source.is_terminating is True

    def test_deep_copy_is_independent(self, sample_source):
        copy = sample_source.deep_copy()
        copy.metadata.finalizers.append("x")
        copy.spec.custom_attributes["k"] = "v"

        assert sample_source.metadata.finalizers == []
        assert "k" not in sample_source.spec.custom_attributes

    def test_minimal_dict(self):
        source = GCSSource.from_dict({"metadata": {"name": "s"}})

        assert source.namespace == "default"
        assert source.spec == GCSSourceSpec()
        assert source.spec.sink is None


class TestObjectReference:
    def test_empty(self):
        assert ObjectReference.from_dict(None) is None
        assert ObjectReference.from_dict({}) is None

    def test_uri(self):
        ref = ObjectReference.from_dict({"uri": "https://sink.example"})
        assert ref.uri == "https://sink.example"
        assert ref.to_dict() == {"uri": "https://sink.example"}


class TestRelay:
    def test_from_object(self):
        relay = Relay.from_object(
            {
                "metadata": {"name": "photos", "namespace": "default"},
                "spec": {"topic": "gcs-abc"},
            }
        )
        assert relay.name == "photos"
        assert relay.topic == "gcs-abc"
        assert relay.sink_uri == ""
