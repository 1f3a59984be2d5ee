"""
Sink Resolver - Turns a sink reference into an addressable URI.

A reference either carries a literal URI or points at an addressable
object whose status exposes where it can be reached.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from kubernetes import dynamic
from kubernetes.dynamic.exceptions import DynamicApiError, ResourceNotFoundError

from errors import ResolutionFailedError
from models import ObjectReference

logger = logging.getLogger(__name__)


def validate_uri(uri: str) -> str:
    """Return uri if it is absolute, raise ResolutionFailedError otherwise."""
    parsed = urlparse(uri)
    if not parsed.scheme or not parsed.netloc:
        raise ResolutionFailedError(f"sink uri {uri!r} is not an absolute URI")
    return uri


def address_of(obj: Dict[str, Any]) -> Optional[str]:
    """
    Extract the address an addressable object advertises.

    Args:
        obj: The object as a plain dict

    Returns:
        status.address.url if set, http://<status.address.hostname>/ if
        only the hostname is set, None otherwise.
    """
    address = (obj.get("status") or {}).get("address") or {}
    if address.get("url"):
        return address["url"]
    if address.get("hostname"):
        return f"http://{address['hostname']}/"
    return None


class SinkResolver(ABC):
    """Resolves sink references. Every failure is treated as retryable."""

    @abstractmethod
    def resolve(self, reference: Optional[ObjectReference], namespace: str) -> str:
        """
        Resolve a sink reference.

        Args:
            reference: The sink reference from the source spec
            namespace: Namespace used when the reference does not name one

        Returns:
            The sink URI.

        Raises:
            ResolutionFailedError: If the reference cannot be resolved.
        """
        pass


class KubernetesSinkResolver(SinkResolver):
    """Looks up the referenced object with the dynamic client."""

    def __init__(self, dynamic_client: dynamic.DynamicClient):
        self.dynamic_client = dynamic_client

    def resolve(self, reference: Optional[ObjectReference], namespace: str) -> str:
        if reference is None:
            raise ResolutionFailedError("sink reference is not set")

        if reference.uri:
            return validate_uri(reference.uri)

        if not (reference.api_version and reference.kind and reference.name):
            raise ResolutionFailedError(
                "sink reference needs apiVersion, kind and name, or a uri"
            )

        ref_namespace = reference.namespace or namespace
        try:
            resource = self.dynamic_client.resources.get(
                api_version=reference.api_version, kind=reference.kind
            )
            obj = resource.get(name=reference.name, namespace=ref_namespace)
        except ResourceNotFoundError as e:
            raise ResolutionFailedError(
                f"unknown sink kind {reference.kind} in {reference.api_version}: {e}"
            ) from e
        except DynamicApiError as e:
            raise ResolutionFailedError(
                f"failed to get sink {reference.kind} {ref_namespace}/{reference.name}: "
                f"{e.status} {e.reason}"
            ) from e

        uri = address_of(obj.to_dict())
        if not uri:
            raise ResolutionFailedError(
                f"sink {reference.kind} {ref_namespace}/{reference.name} "
                "does not contain an address"
            )
        return uri
