"""
Status Differ - Decides whether a reconciled source must be written back.

The snapshot handed to a pass may be stale. Writing it back when nothing
changed could overwrite a newer version of the status, so only semantic
changes to status or finalizers count.
"""

import logging

from finalizers import FinalizerSet
from models import GCSSource

logger = logging.getLogger(__name__)


def needs_update(original: GCSSource, candidate: GCSSource) -> bool:
    """
    Compare the persisted parts of two versions of a source.

    Args:
        original: Snapshot loaded at the start of the pass
        candidate: Source produced by the reconciler

    Returns:
        True if status or finalizers differ, False otherwise.
    """
    if original.status.to_dict() != candidate.status.to_dict():
        logger.debug(f"Status changed for {candidate.key}")
        return True

    if FinalizerSet(original.metadata.finalizers) != FinalizerSet(
        candidate.metadata.finalizers
    ):
        logger.debug(f"Finalizers changed for {candidate.key}")
        return True

    return False
