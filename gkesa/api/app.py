"""FastAPI application factory for the health and metrics endpoints.

Usage::

    from gkesa.api.app import create_app

    app = create_app(config=config, watcher=watcher, dispatcher=dispatcher)

The factory is used by both the application bootstrap (``gkesa.app``) and
unit tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gkesa.api.routes import metrics_router, router
from gkesa.api.schemas import ErrorResponse
from gkesa.models.config import GKESAConfig

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(
    config: GKESAConfig | None = None,
    watcher: Any = None,
    dispatcher: Any = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config:     Loaded configuration; defaults are used when omitted.
        watcher:    ResourceWatcher, read for its ``synced`` flag.
        dispatcher: Dispatcher, read for in-flight and outcome counts.
    """
    from gkesa import __version__

    app = FastAPI(
        title="gke-serviceaccounts-initializer",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.config = config or GKESAConfig()
    app.state.watcher = watcher
    app.state.dispatcher = dispatcher

    app.include_router(router, prefix=_API_PREFIX)
    app.include_router(metrics_router)

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
