"""Initializer core: eligibility gate, injection and queue management.

Submodules:
    gate       -- needs_initialization(): is this initializer at the queue head?
    injection  -- InjectionSpec: volume/mount/env derived from a secret name.
    mutator    -- Mutator: clone, pop the queue, inject credentials.
"""

from gkesa.initializer.gate import needs_initialization
from gkesa.initializer.injection import CREDENTIALS_ENV, SERVICE_ACCOUNT_FILE, VOLUME_PREFIX, InjectionSpec
from gkesa.initializer.mutator import (
    MutationResult,
    Mutator,
    inject_credentials,
    remove_self_pending_initializer,
)

__all__ = [
    "CREDENTIALS_ENV",
    "InjectionSpec",
    "MutationResult",
    "Mutator",
    "SERVICE_ACCOUNT_FILE",
    "VOLUME_PREFIX",
    "inject_credentials",
    "needs_initialization",
    "remove_self_pending_initializer",
]
