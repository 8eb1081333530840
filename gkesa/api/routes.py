"""HTTP routes: liveness/readiness and Prometheus exposition."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from gkesa.api.schemas import HealthResponse

router = APIRouter()
metrics_router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> JSONResponse:
    """Report whether the watch has synced.  503 until the first list completes."""
    from gkesa import __version__

    state = request.app.state
    watcher = state.watcher
    dispatcher = state.dispatcher
    synced = bool(getattr(watcher, "synced", False))

    body = HealthResponse(
        status="ok" if synced else "starting",
        version=__version__,
        initializer=state.config.initializer.name,
        resource=state.config.watch.resource,
        synced=synced,
        lists_completed=int(getattr(watcher, "lists_completed", 0)),
        inflight=dispatcher.inflight if dispatcher is not None else 0,
        outcomes={str(k): v for k, v in dispatcher.counts.items()} if dispatcher is not None else {},
    )
    return JSONResponse(status_code=200 if synced else 503, content=body.model_dump())


@metrics_router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
