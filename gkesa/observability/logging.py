"""Structured logging configuration using structlog.

Production output is one JSON object per line on stderr.  ``console`` output
is meant for running the initializer or the ``preview`` command locally.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from gkesa.models.workload import WorkloadObject


def setup_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog for the process."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    renderer: structlog.types.Processor
    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]


def bind_object(log: structlog.stdlib.BoundLogger, obj: WorkloadObject) -> structlog.stdlib.BoundLogger:
    """Bind the identifying fields of *obj* to *log*."""
    return log.bind(
        kind=obj.kind.value,
        namespace=obj.metadata.namespace,
        name=obj.metadata.name,
    )
