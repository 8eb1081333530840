"""Eligibility check: is it this initializer's turn?"""

from __future__ import annotations

from gkesa.models.config import DEFAULT_INITIALIZER_NAME
from gkesa.models.workload import WorkloadObject


def needs_initialization(obj: WorkloadObject | None, initializer_name: str = DEFAULT_INITIALIZER_NAME) -> bool:
    """Return True if *initializer_name* is at the head of the pending queue.

    A missing queue, an empty queue, or the name at any other position all
    return False.  Only the head of the queue may act on an object.
    """
    if obj is None:
        return False
    pending = obj.metadata.pending_names
    return len(pending) > 0 and pending[0] == initializer_name
