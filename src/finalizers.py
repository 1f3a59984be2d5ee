"""
Finalizers - Deduplicated set of finalizer tokens on a resource.

Tokens keep insertion order in memory and are always persisted sorted so
that two passes producing the same set write identical lists.
"""

from typing import Dict, Iterable, Iterator, List, Optional

from constants import FINALIZER_NAME
from models import GCSSource


class FinalizerSet:
    """Ordered, deduplicated set of finalizer tokens."""

    def __init__(self, tokens: Optional[Iterable[str]] = None):
        self._tokens: Dict[str, None] = {}
        for token in tokens or ():
            self.add(token)

    def add(self, token: str) -> None:
        self._tokens.setdefault(token, None)

    def remove(self, token: str) -> None:
        """Remove a token; removing an absent token is a no-op."""
        self._tokens.pop(token, None)

    def contains(self, token: str) -> bool:
        return token in self._tokens

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and self.contains(token)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FinalizerSet):
            return NotImplemented
        return set(self._tokens) == set(other._tokens)

    def __repr__(self) -> str:
        return f"FinalizerSet({self.to_list()!r})"

    def to_list(self) -> List[str]:
        """Serialize deterministically (sorted)."""
        return sorted(self._tokens)


def add_finalizer(source: GCSSource, token: str = FINALIZER_NAME) -> None:
    """Add the controller's finalizer to the source's metadata."""
    finalizers = FinalizerSet(source.metadata.finalizers)
    finalizers.add(token)
    source.metadata.finalizers = finalizers.to_list()


def remove_finalizer(source: GCSSource, token: str = FINALIZER_NAME) -> None:
    """Remove the controller's finalizer from the source's metadata."""
    finalizers = FinalizerSet(source.metadata.finalizers)
    finalizers.remove(token)
    source.metadata.finalizers = finalizers.to_list()
