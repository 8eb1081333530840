"""Exceptions raised while initializing a single object.

None of these are fatal to the process: the dispatcher logs them and moves
on to the next object.
"""

from __future__ import annotations


class InitializerError(Exception):
    """Base class for per-object initialization failures."""


class CloneError(InitializerError):
    """Raised when a working copy of the object cannot be produced."""


class PatchError(InitializerError):
    """Raised when the patch cannot be built or is rejected by the API.

    ``stage`` is one of ``serialize``, ``diff``, ``apply`` or ``timeout``.
    ``status`` carries the HTTP status of an API rejection, if any.
    """

    def __init__(self, stage: str, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.status = status
