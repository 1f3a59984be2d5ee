"""
Scheme - Registry of the kinds the controller can decode.

A Scheme is built explicitly at startup and handed to whatever needs to
convert between API objects and model classes. Nothing registers itself
at import time.
"""

import logging
from typing import Any, Dict, List, Tuple, Type

logger = logging.getLogger(__name__)


class Scheme:
    """Maps (apiVersion, kind) pairs to model classes."""

    def __init__(self):
        self._kinds: Dict[Tuple[str, str], Type] = {}

    def register(self, model_class: Type) -> None:
        """
        Register a model class.

        The class must expose ``api_version`` and ``kind`` attributes and
        a ``from_dict`` conversion.

        Args:
            model_class: The model class to register
        """
        gvk = (model_class.api_version, model_class.kind)
        if gvk in self._kinds:
            logger.warning(f"Overwriting existing kind: {gvk[0]}/{gvk[1]}")
        self._kinds[gvk] = model_class
        logger.info(f"Registered kind: {gvk[1]} ({gvk[0]})")

    def is_registered(self, api_version: str, kind: str) -> bool:
        return (api_version, kind) in self._kinds

    def list_kinds(self) -> List[Tuple[str, str]]:
        return list(self._kinds.keys())

    def decode(self, obj: Dict[str, Any]) -> Any:
        """
        Convert an API object into its registered model.

        Args:
            obj: Object with apiVersion and kind fields

        Returns:
            An instance of the registered model class

        Raises:
            ValueError: If the kind is not registered
        """
        api_version = obj.get("apiVersion", "")
        kind = obj.get("kind", "")
        model_class = self._kinds.get((api_version, kind))
        if model_class is None:
            available = ", ".join(k for _, k in self._kinds) or "none"
            raise ValueError(
                f"Unknown kind: {api_version}/{kind}. Registered kinds: {available}"
            )
        return model_class.from_dict(obj)
