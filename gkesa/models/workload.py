"""Typed model of the workload objects the initializer mutates.

Only the fields the initializer reads or writes are modelled.  Everything
else is carried in ``extra`` (or ``WorkloadObject.body``) untouched, so that
``from_dict(raw).to_dict() == raw`` for any API object.  Optional fields use
``None`` for "absent" rather than an empty value so that absence survives the
round trip; the patch engine relies on that.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class WorkloadKind(StrEnum):
    """Resource kinds the initializer can watch."""

    POD = "Pod"
    DEPLOYMENT = "Deployment"

    @property
    def pod_spec_path(self) -> tuple[str, ...]:
        """Location of the PodSpec inside the object."""
        if self is WorkloadKind.DEPLOYMENT:
            return ("spec", "template", "spec")
        return ("spec",)

    @property
    def plural(self) -> str:
        return "deployments" if self is WorkloadKind.DEPLOYMENT else "pods"

    @classmethod
    def from_resource(cls, resource: str) -> WorkloadKind:
        """Map a plural resource name (``pods``, ``deployments``) to its kind."""
        for kind in cls:
            if kind.plural == resource.lower():
                return kind
        raise ValueError(f"Unsupported resource: {resource!r}")


def _rest(raw: dict[str, Any], *known: str) -> dict[str, Any]:
    return {k: copy.deepcopy(v) for k, v in raw.items() if k not in known}


def _put(out: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        out[key] = value


@dataclass
class Initializer:
    """One entry of the pending-initializer queue."""

    name: str
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Initializer:
        return cls(name=str(raw.get("name", "")), extra=_rest(raw, "name"))

    def to_dict(self) -> dict[str, Any]:
        return {**copy.deepcopy(self.extra), "name": self.name}

    def clone(self) -> Initializer:
        return Initializer(name=self.name, extra=copy.deepcopy(self.extra))


@dataclass
class Initializers:
    """``metadata.initializers``: the pending queue plus any result."""

    pending: list[Initializer] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Initializers:
        pending = raw.get("pending")
        return cls(
            pending=[Initializer.from_dict(p) for p in pending] if pending is not None else None,
            extra=_rest(raw, "pending"),
        )

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self.extra)
        if self.pending is not None:
            out["pending"] = [p.to_dict() for p in self.pending]
        return out

    def clone(self) -> Initializers:
        return Initializers(
            pending=[p.clone() for p in self.pending] if self.pending is not None else None,
            extra=copy.deepcopy(self.extra),
        )


@dataclass
class ObjectMeta:
    name: str = ""
    namespace: str = ""
    annotations: dict[str, str] | None = None
    initializers: Initializers | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ObjectMeta:
        annotations = raw.get("annotations")
        initializers = raw.get("initializers")
        return cls(
            name=str(raw.get("name", "")),
            namespace=str(raw.get("namespace", "")),
            annotations=dict(annotations) if annotations is not None else None,
            initializers=Initializers.from_dict(initializers) if initializers is not None else None,
            extra=_rest(raw, "name", "namespace", "annotations", "initializers"),
        )

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self.extra)
        if self.name:
            out["name"] = self.name
        if self.namespace:
            out["namespace"] = self.namespace
        _put(out, "annotations", dict(self.annotations) if self.annotations is not None else None)
        _put(out, "initializers", self.initializers.to_dict() if self.initializers is not None else None)
        return out

    def clone(self) -> ObjectMeta:
        return ObjectMeta(
            name=self.name,
            namespace=self.namespace,
            annotations=dict(self.annotations) if self.annotations is not None else None,
            initializers=self.initializers.clone() if self.initializers is not None else None,
            extra=copy.deepcopy(self.extra),
        )

    @property
    def pending_names(self) -> list[str]:
        """Names in the pending-initializer queue, head first."""
        if self.initializers is None or not self.initializers.pending:
            return []
        return [p.name for p in self.initializers.pending]


@dataclass
class KeyToPath:
    key: str
    path: str
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> KeyToPath:
        return cls(key=str(raw.get("key", "")), path=str(raw.get("path", "")), extra=_rest(raw, "key", "path"))

    def to_dict(self) -> dict[str, Any]:
        return {**copy.deepcopy(self.extra), "key": self.key, "path": self.path}

    def clone(self) -> KeyToPath:
        return KeyToPath(key=self.key, path=self.path, extra=copy.deepcopy(self.extra))


@dataclass
class SecretVolumeSource:
    secret_name: str
    items: list[KeyToPath] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SecretVolumeSource:
        items = raw.get("items")
        return cls(
            secret_name=str(raw.get("secretName", "")),
            items=[KeyToPath.from_dict(i) for i in items] if items is not None else None,
            extra=_rest(raw, "secretName", "items"),
        )

    def to_dict(self) -> dict[str, Any]:
        out = {**copy.deepcopy(self.extra), "secretName": self.secret_name}
        _put(out, "items", [i.to_dict() for i in self.items] if self.items is not None else None)
        return out

    def clone(self) -> SecretVolumeSource:
        return SecretVolumeSource(
            secret_name=self.secret_name,
            items=[i.clone() for i in self.items] if self.items is not None else None,
            extra=copy.deepcopy(self.extra),
        )


@dataclass
class Volume:
    """A pod volume.  Sources other than ``secret`` stay in ``extra``."""

    name: str
    secret: SecretVolumeSource | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Volume:
        secret = raw.get("secret")
        return cls(
            name=str(raw.get("name", "")),
            secret=SecretVolumeSource.from_dict(secret) if secret is not None else None,
            extra=_rest(raw, "name", "secret"),
        )

    def to_dict(self) -> dict[str, Any]:
        out = {**copy.deepcopy(self.extra), "name": self.name}
        _put(out, "secret", self.secret.to_dict() if self.secret is not None else None)
        return out

    def clone(self) -> Volume:
        return Volume(
            name=self.name,
            secret=self.secret.clone() if self.secret is not None else None,
            extra=copy.deepcopy(self.extra),
        )


@dataclass
class VolumeMount:
    name: str
    mount_path: str
    read_only: bool | None = None
    sub_path: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> VolumeMount:
        return cls(
            name=str(raw.get("name", "")),
            mount_path=str(raw.get("mountPath", "")),
            read_only=raw.get("readOnly"),
            sub_path=raw.get("subPath"),
            extra=_rest(raw, "name", "mountPath", "readOnly", "subPath"),
        )

    def to_dict(self) -> dict[str, Any]:
        out = {**copy.deepcopy(self.extra), "name": self.name, "mountPath": self.mount_path}
        _put(out, "readOnly", self.read_only)
        _put(out, "subPath", self.sub_path)
        return out

    def clone(self) -> VolumeMount:
        return VolumeMount(
            name=self.name,
            mount_path=self.mount_path,
            read_only=self.read_only,
            sub_path=self.sub_path,
            extra=copy.deepcopy(self.extra),
        )


@dataclass
class EnvVar:
    """A container environment variable.  ``valueFrom`` stays in ``extra``."""

    name: str
    value: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> EnvVar:
        return cls(name=str(raw.get("name", "")), value=raw.get("value"), extra=_rest(raw, "name", "value"))

    def to_dict(self) -> dict[str, Any]:
        out = {**copy.deepcopy(self.extra), "name": self.name}
        _put(out, "value", self.value)
        return out

    def clone(self) -> EnvVar:
        return EnvVar(name=self.name, value=self.value, extra=copy.deepcopy(self.extra))


@dataclass
class Container:
    name: str
    volume_mounts: list[VolumeMount] | None = None
    env: list[EnvVar] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Container:
        mounts = raw.get("volumeMounts")
        env = raw.get("env")
        return cls(
            name=str(raw.get("name", "")),
            volume_mounts=[VolumeMount.from_dict(m) for m in mounts] if mounts is not None else None,
            env=[EnvVar.from_dict(e) for e in env] if env is not None else None,
            extra=_rest(raw, "name", "volumeMounts", "env"),
        )

    def to_dict(self) -> dict[str, Any]:
        out = {**copy.deepcopy(self.extra), "name": self.name}
        _put(out, "volumeMounts", [m.to_dict() for m in self.volume_mounts] if self.volume_mounts is not None else None)
        _put(out, "env", [e.to_dict() for e in self.env] if self.env is not None else None)
        return out

    def clone(self) -> Container:
        return Container(
            name=self.name,
            volume_mounts=[m.clone() for m in self.volume_mounts] if self.volume_mounts is not None else None,
            env=[e.clone() for e in self.env] if self.env is not None else None,
            extra=copy.deepcopy(self.extra),
        )


@dataclass
class PodSpec:
    containers: list[Container] | None = None
    volumes: list[Volume] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PodSpec:
        containers = raw.get("containers")
        volumes = raw.get("volumes")
        return cls(
            containers=[Container.from_dict(c) for c in containers] if containers is not None else None,
            volumes=[Volume.from_dict(v) for v in volumes] if volumes is not None else None,
            extra=_rest(raw, "containers", "volumes"),
        )

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self.extra)
        _put(out, "volumes", [v.to_dict() for v in self.volumes] if self.volumes is not None else None)
        _put(out, "containers", [c.to_dict() for c in self.containers] if self.containers is not None else None)
        return out

    def clone(self) -> PodSpec:
        return PodSpec(
            containers=[c.clone() for c in self.containers] if self.containers is not None else None,
            volumes=[v.clone() for v in self.volumes] if self.volumes is not None else None,
            extra=copy.deepcopy(self.extra),
        )


@dataclass
class WorkloadObject:
    """A Pod, or a Deployment viewed through its pod template.

    ``body`` holds the rest of the object (apiVersion, status, the
    Deployment's own spec fields, ...) with ``metadata`` and the pod spec
    removed.  ``to_dict`` stitches the three back together.
    """

    kind: WorkloadKind
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    pod_spec: PodSpec = field(default_factory=PodSpec)
    body: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any], kind: WorkloadKind | None = None) -> WorkloadObject:
        """Build a WorkloadObject from its API JSON representation.

        *kind* is required for list items, which carry no ``kind`` field.
        """
        if kind is None:
            kind = WorkloadKind(raw["kind"])
        body = _rest(raw, "metadata")
        pod_spec_raw = _pop_path(body, kind.pod_spec_path)
        return cls(
            kind=kind,
            metadata=ObjectMeta.from_dict(raw.get("metadata") or {}),
            pod_spec=PodSpec.from_dict(pod_spec_raw or {}),
            body=body,
        )

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self.body)
        out["metadata"] = self.metadata.to_dict()
        pod_spec = self.pod_spec.to_dict()
        if pod_spec:
            _set_path(out, self.kind.pod_spec_path, pod_spec)
        return out

    def clone(self) -> WorkloadObject:
        return WorkloadObject(
            kind=self.kind,
            metadata=self.metadata.clone(),
            pod_spec=self.pod_spec.clone(),
            body=copy.deepcopy(self.body),
        )

    @property
    def ref(self) -> str:
        """Short ``pod/name`` style reference used in logs."""
        return f"{self.kind.value.lower()}/{self.metadata.name}"


def _pop_path(body: dict[str, Any], path: tuple[str, ...]) -> dict[str, Any] | None:
    """Remove and return the dict at *path*, pruning parents left empty."""
    parents: list[dict[str, Any]] = []
    node: Any = body
    for key in path[:-1]:
        if not isinstance(node, dict) or not isinstance(node.get(key), dict):
            return None
        parents.append(node)
        node = node[key]
    if not isinstance(node, dict) or path[-1] not in node:
        return None
    value = node.pop(path[-1])
    for parent, key in zip(reversed(parents), reversed(path[:-1]), strict=True):
        if parent[key]:
            break
        del parent[key]
    return value if isinstance(value, dict) else None


def _set_path(body: dict[str, Any], path: tuple[str, ...], value: dict[str, Any]) -> None:
    node = body
    for key in path[:-1]:
        node = node.setdefault(key, {})
    node[path[-1]] = value
