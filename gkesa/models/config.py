"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_INITIALIZER_NAME = "serviceaccounts.cloud.google.com"
DEFAULT_ANNOTATION = "iam.cloud.google.com/service-account"
DEFAULT_SECRET_MOUNT_PATH = "/var/run/secrets/gcp"


@dataclass
class InitializerConfig:
    """Identity of this initializer and the injection it performs."""

    name: str = DEFAULT_INITIALIZER_NAME
    annotation: str = DEFAULT_ANNOTATION
    secret_mount_path: str = DEFAULT_SECRET_MOUNT_PATH
    patch_timeout_seconds: int = 30


@dataclass
class WatchConfig:
    """List/watch subscription configuration."""

    resource: str = "pods"
    resync_seconds: int = 30
    include_uninitialized: bool = True


@dataclass
class APIConfig:
    """Health and metrics HTTP endpoint configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class GKESAConfig:
    """Top-level initializer configuration."""

    initializer: InitializerConfig = field(default_factory=InitializerConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
