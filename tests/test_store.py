"""Unit tests for store.py - source cache and Kubernetes store."""

from unittest.mock import MagicMock

import pytest
from kubernetes.client.exceptions import ApiException

from errors import ConflictError, NotFoundError, TransportError
from scheme import Scheme
from models import GCSSource
from store import KubernetesSourceStore, SourceCache, is_newer, status_patch


@pytest.fixture
def scheme():
    scheme = Scheme()
    scheme.register(GCSSource)
    return scheme


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def kube_store(scheme, api):
    return KubernetesSourceStore(scheme, api=api, timeout=5.0)


class TestSourceCache:
    """Tests for SourceCache."""

    def test_get_missing(self):
        with pytest.raises(NotFoundError):
            SourceCache().get("default", "photos")

    def test_upsert_and_get(self, sample_source):
        cache = SourceCache()

        assert cache.upsert(sample_source) is True
        assert cache.get("default", "photos") == sample_source

    def test_get_returns_copy(self, sample_source):
        """Test callers cannot mutate the cached version."""
        cache = SourceCache()
        cache.upsert(sample_source)

        cache.get("default", "photos").status.topic = "mutated"

        assert cache.get("default", "photos").status.topic == ""

    def test_newer_version_replaces(self, sample_source):
        cache = SourceCache()
        cache.upsert(sample_source)
        newer = sample_source.deep_copy()
        newer.metadata.resource_version = "2"
        newer.status.topic = "gcs-abc"

        assert cache.upsert(newer) is True
        assert cache.get("default", "photos").status.topic == "gcs-abc"

    def test_older_version_is_ignored(self, sample_source):
        """Test a late watch event cannot roll the cache back."""
        cache = SourceCache()
        newer = sample_source.deep_copy()
        newer.metadata.resource_version = "5"
        newer.status.topic = "gcs-abc"
        cache.upsert(newer)

        assert cache.upsert(sample_source) is False
        assert cache.get("default", "photos").status.topic == "gcs-abc"

    def test_same_version_is_ignored(self, sample_source):
        cache = SourceCache()
        cache.upsert(sample_source)
        same = sample_source.deep_copy()
        same.status.topic = "gcs-abc"

        assert cache.upsert(same) is False

    def test_unordered_versions_replace(self, sample_source):
        cache = SourceCache()
        cache.upsert(sample_source)
        other = sample_source.deep_copy()
        other.metadata.resource_version = "opaque"

        assert cache.upsert(other) is True

    def test_delete(self, sample_source):
        cache = SourceCache()
        cache.upsert(sample_source)
        cache.delete("default", "photos")
        cache.delete("default", "photos")

        with pytest.raises(NotFoundError):
            cache.get("default", "photos")


class TestIsNewer:
    def test_no_current(self, sample_source):
        assert is_newer(sample_source, None) is True

    def test_compares_numerically(self, sample_source):
        older = sample_source.deep_copy()
        older.metadata.resource_version = "9"
        sample_source.metadata.resource_version = "10"

        assert is_newer(sample_source, older) is True
        assert is_newer(older, sample_source) is False


class TestStatusPatch:
    def test_cleared_fields_are_null(self, sample_source):
        sample_source.status.notification_id = "n1"

        patch = status_patch(sample_source)

        assert patch == {
            "metadata": {"resourceVersion": "1", "finalizers": []},
            "status": {"sinkUri": None, "topic": None, "notificationId": "n1"},
        }


class TestKubernetesSourceStore:
    """Tests for KubernetesSourceStore."""

    def test_update(self, kube_store, api, sample_source):
        sample_source.status.topic = "gcs-abc"
        stored = sample_source.to_dict()
        stored["metadata"]["resourceVersion"] = "2"
        api.patch_namespaced_custom_object.return_value = stored

        result = kube_store.update(sample_source)

        assert result.metadata.resource_version == "2"
        assert result.status.topic == "gcs-abc"
        kwargs = api.patch_namespaced_custom_object.call_args.kwargs
        assert kwargs["name"] == "photos"
        assert kwargs["body"] == status_patch(sample_source)

    def test_update_conflict(self, kube_store, api, sample_source):
        api.patch_namespaced_custom_object.side_effect = ApiException(status=409, reason="Conflict")

        with pytest.raises(ConflictError):
            kube_store.update(sample_source)

    def test_update_not_found(self, kube_store, api, sample_source):
        api.patch_namespaced_custom_object.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(NotFoundError):
            kube_store.update(sample_source)

    def test_update_other_error(self, kube_store, api, sample_source):
        api.patch_namespaced_custom_object.side_effect = ApiException(status=500, reason="Boom")

        with pytest.raises(TransportError):
            kube_store.update(sample_source)
