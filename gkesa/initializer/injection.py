"""Names and paths derived from the secret named in the annotation."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

from gkesa.models.config import DEFAULT_SECRET_MOUNT_PATH
from gkesa.models.workload import EnvVar, KeyToPath, SecretVolumeSource, Volume, VolumeMount

VOLUME_PREFIX = "gcp-"
SERVICE_ACCOUNT_FILE = "key.json"
CREDENTIALS_ENV = "GOOGLE_APPLICATION_CREDENTIALS"


@dataclass(frozen=True)
class InjectionSpec:
    """Everything injected for one secret.  Never persisted."""

    secret_name: str
    mount_root: str = DEFAULT_SECRET_MOUNT_PATH

    @property
    def volume_name(self) -> str:
        return f"{VOLUME_PREFIX}{self.secret_name}"

    @property
    def mount_path(self) -> str:
        return posixpath.normpath(posixpath.join(self.mount_root, self.secret_name))

    @property
    def key_path(self) -> str:
        return posixpath.normpath(posixpath.join(self.mount_path, SERVICE_ACCOUNT_FILE))

    def volume(self) -> Volume:
        return Volume(
            name=self.volume_name,
            secret=SecretVolumeSource(
                secret_name=self.secret_name,
                items=[KeyToPath(key=SERVICE_ACCOUNT_FILE, path=SERVICE_ACCOUNT_FILE)],
            ),
        )

    def volume_mount(self) -> VolumeMount:
        return VolumeMount(name=self.volume_name, mount_path=self.mount_path, read_only=True)

    def env_var(self) -> EnvVar:
        return EnvVar(name=CREDENTIALS_ENV, value=self.key_path)
