"""In-memory mutation of an eligible workload object.

Two changes are made to a clone of the object:

1. this initializer's entry is popped from the head of the pending queue;
2. if the service account annotation is present, every container gets a
   read-only mount of the key Secret plus ``GOOGLE_APPLICATION_CREDENTIALS``,
   and the pod spec gets one Secret volume.

Nothing here talks to the API; see ``gkesa.patch`` for persistence.
"""

from __future__ import annotations

from dataclasses import dataclass

from gkesa.errors import CloneError
from gkesa.initializer.injection import InjectionSpec
from gkesa.models.config import DEFAULT_ANNOTATION, DEFAULT_SECRET_MOUNT_PATH, InitializerConfig
from gkesa.models.workload import WorkloadObject


@dataclass(frozen=True)
class MutationResult:
    """Outcome of ``Mutator.mutate``.

    ``modified`` reports whether credentials were injected.  The queue pop is
    not reflected in it: a result with ``modified=False`` must still be
    persisted.
    """

    obj: WorkloadObject | None
    modified: bool
    secret_name: str | None = None


def remove_self_pending_initializer(obj: WorkloadObject | None) -> None:
    """Drop the head of the pending-initializer queue in place.

    A queue of one becomes ``None`` (the API's "initialized" marker), never an
    empty list.  Longer queues keep the remaining entries in order.
    """
    if obj is None or obj.metadata.initializers is None:
        return
    pending = obj.metadata.initializers.pending
    if not pending:
        return
    if len(pending) == 1:
        obj.metadata.initializers.pending = None
    else:
        obj.metadata.initializers.pending = pending[1:]


def inject_credentials(
    obj: WorkloadObject | None,
    annotation: str = DEFAULT_ANNOTATION,
    mount_root: str = DEFAULT_SECRET_MOUNT_PATH,
) -> bool:
    """Inject the credential volume, mounts and env vars in place.

    Returns whether any container was modified.  There is no check for a
    previous injection.
    """
    if obj is None or obj.metadata.annotations is None:
        return False
    if annotation not in obj.metadata.annotations:
        return False

    containers = obj.pod_spec.containers or []
    if not containers:
        return False

    spec = InjectionSpec(secret_name=obj.metadata.annotations[annotation], mount_root=mount_root)
    for container in containers:
        if container.volume_mounts is None:
            container.volume_mounts = []
        container.volume_mounts.append(spec.volume_mount())
        if container.env is None:
            container.env = []
        container.env.append(spec.env_var())

    if obj.pod_spec.volumes is None:
        obj.pod_spec.volumes = []
    obj.pod_spec.volumes.append(spec.volume())
    return True


class Mutator:
    """Produces the initialized copy of an object."""

    def __init__(self, config: InitializerConfig | None = None) -> None:
        self._config = config or InitializerConfig()

    def mutate(self, obj: WorkloadObject | None) -> MutationResult:
        """Clone *obj*, pop the pending queue and inject credentials.

        The input object is never modified.

        Raises:
            CloneError: if the working copy cannot be produced.
        """
        if obj is None:
            return MutationResult(obj=None, modified=False)

        try:
            clone = obj.clone()
        except Exception as exc:
            raise CloneError(f"failed to clone {obj.ref}: {exc}") from exc

        remove_self_pending_initializer(clone)
        modified = inject_credentials(
            clone,
            annotation=self._config.annotation,
            mount_root=self._config.secret_mount_path,
        )
        secret_name = None
        if modified and clone.metadata.annotations is not None:
            secret_name = clone.metadata.annotations[self._config.annotation]
        return MutationResult(obj=clone, modified=modified, secret_name=secret_name)
