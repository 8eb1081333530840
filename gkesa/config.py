"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from gkesa.models.config import (
    DEFAULT_ANNOTATION,
    DEFAULT_INITIALIZER_NAME,
    DEFAULT_SECRET_MOUNT_PATH,
    APIConfig,
    GKESAConfig,
    InitializerConfig,
    LogConfig,
    WatchConfig,
)
from gkesa.models.workload import WorkloadKind


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"GKESA_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_resource(value: str) -> str:
    # Raises ValueError for anything but pods/deployments
    return WorkloadKind.from_resource(value).plural


def _validate_mount_path(value: str) -> str:
    if not value.startswith("/"):
        raise ValueError(f"Secret mount path must be absolute: {value}")
    return value.rstrip("/") or "/"


def _validate_not_empty(key: str, value: str) -> str:
    if not value:
        raise ValueError(f"GKESA_{key} must not be empty")
    return value


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in ("json", "console"):
        raise ValueError(f"Invalid log format: {value}. Must be json or console")
    return value.lower()


def load_config() -> GKESAConfig:
    """Load configuration from GKESA_* environment variables."""
    return GKESAConfig(
        initializer=InitializerConfig(
            name=_validate_not_empty("INITIALIZER_NAME", _env("INITIALIZER_NAME", DEFAULT_INITIALIZER_NAME)),
            annotation=_validate_not_empty("ANNOTATION", _env("ANNOTATION", DEFAULT_ANNOTATION)),
            secret_mount_path=_validate_mount_path(_env("SECRET_MOUNT_PATH", DEFAULT_SECRET_MOUNT_PATH)),
            patch_timeout_seconds=_env_int("PATCH_TIMEOUT_SECONDS", 30, min_val=0, max_val=300),
        ),
        watch=WatchConfig(
            resource=_validate_resource(_env("RESOURCE", "pods")),
            resync_seconds=_env_int("RESYNC_SECONDS", 30, min_val=5, max_val=3600),
            include_uninitialized=_env_bool("INCLUDE_UNINITIALIZED", True),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
