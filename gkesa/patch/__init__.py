"""Patch computation and submission.

Submodules:
    strategic -- create_two_way_merge_patch(): field-aware diff of two objects.
    engine    -- PatchEngine: serialize, diff and send one patch per object.
"""

from gkesa.patch.engine import (
    STRATEGIC_MERGE_PATCH,
    KubernetesPatchTarget,
    PatchEngine,
    PatchTarget,
    compute_patch,
    serialize,
)
from gkesa.patch.strategic import DEFAULT_MERGE_KEYS, create_two_way_merge_patch

__all__ = [
    "DEFAULT_MERGE_KEYS",
    "KubernetesPatchTarget",
    "PatchEngine",
    "PatchTarget",
    "STRATEGIC_MERGE_PATCH",
    "compute_patch",
    "create_two_way_merge_patch",
    "serialize",
]
