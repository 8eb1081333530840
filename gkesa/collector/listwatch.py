"""List and watch calls for one resource kind across all namespaces.

A ``ListWatch`` pairs a list call with a watch call over the same resource.
Objects are returned as raw JSON dicts rather than the client's generated
models: fields such as ``metadata.initializers`` are not present in every
client version's models and would be dropped on deserialization.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol

from kubernetes_asyncio import watch  # type: ignore[import-untyped]

from gkesa.models.workload import WorkloadKind


class ListWatch(Protocol):
    """List + watch over one resource kind."""

    async def list(self, **options: Any) -> dict[str, Any]:
        """Return the raw list object (``metadata`` and ``items``)."""
        ...

    def watch(self, **options: Any) -> AsyncIterator[dict[str, Any]]:
        """Yield ``{"type": ..., "object": raw}`` watch events."""
        ...


class KubernetesListWatch:
    """ListWatch backed by a kubernetes-asyncio ``list_*_for_all_namespaces`` call.

    Args:
        list_fn: e.g. ``CoreV1Api().list_pod_for_all_namespaces``.
    """

    def __init__(self, list_fn: Callable[..., Any]) -> None:
        self._list_fn = list_fn

    @classmethod
    def for_kind(cls, kind: WorkloadKind, core_v1: Any, apps_v1: Any) -> KubernetesListWatch:
        if kind is WorkloadKind.DEPLOYMENT:
            return cls(apps_v1.list_deployment_for_all_namespaces)
        return cls(core_v1.list_pod_for_all_namespaces)

    async def list(self, **options: Any) -> dict[str, Any]:
        resp = await self._list_fn(_preload_content=False, **options)
        try:
            return await resp.json()
        finally:
            resp.release()

    async def watch(self, **options: Any) -> AsyncIterator[dict[str, Any]]:
        async with watch.Watch().stream(self._list_fn, **options) as stream:
            async for event in stream:
                yield {"type": event["type"], "object": event["raw_object"]}


class IncludeUninitialized:
    """Decorator forcing ``include_uninitialized=True`` on every list and watch.

    Objects that still have pending initializers are invisible to a plain
    list/watch; without this option the initializer never sees its work.
    """

    def __init__(self, inner: ListWatch) -> None:
        self._inner = inner

    async def list(self, **options: Any) -> dict[str, Any]:
        options["include_uninitialized"] = True
        return await self._inner.list(**options)

    def watch(self, **options: Any) -> AsyncIterator[dict[str, Any]]:
        options["include_uninitialized"] = True
        return self._inner.watch(**options)
