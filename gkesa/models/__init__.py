"""Core data structures for the initializer."""

from gkesa.models.config import GKESAConfig
from gkesa.models.workload import (
    Container,
    EnvVar,
    Initializer,
    Initializers,
    KeyToPath,
    ObjectMeta,
    PodSpec,
    SecretVolumeSource,
    Volume,
    VolumeMount,
    WorkloadKind,
    WorkloadObject,
)

__all__ = [
    "Container",
    "EnvVar",
    "GKESAConfig",
    "Initializer",
    "Initializers",
    "KeyToPath",
    "ObjectMeta",
    "PodSpec",
    "SecretVolumeSource",
    "Volume",
    "VolumeMount",
    "WorkloadKind",
    "WorkloadObject",
]
