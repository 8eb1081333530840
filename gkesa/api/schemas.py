"""Response models for the health API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    """Body of ``GET /api/v1/health``."""

    status: str = Field(description="'ok' once the first list completed, else 'starting'")
    version: str
    initializer: str
    resource: str
    synced: bool
    lists_completed: int = 0
    inflight: int = 0
    outcomes: dict[str, int] = Field(default_factory=dict)
