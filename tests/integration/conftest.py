"""Shared fixtures for initializer integration tests.

Provides a scripted event source and a recording patch target so the full
watch -> gate -> mutate -> patch pipeline can run without a cluster.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import pytest
from kubernetes_asyncio.client import ApiException

from gkesa.dispatcher import Dispatcher
from gkesa.models.config import InitializerConfig
from gkesa.models.workload import WorkloadObject
from gkesa.patch.engine import PatchEngine

SELF = "serviceaccounts.cloud.google.com"
ANNOTATION = "iam.cloud.google.com/service-account"

# ---------------------------------------------------------------------------
# Object factories
# ---------------------------------------------------------------------------


def make_pod(
    name: str = "foo",
    namespace: str = "default",
    secret: str | None = "sa-1",
    pending: list[str] | None = None,
    containers: int = 1,
) -> WorkloadObject:
    """Create an uninitialized Pod with sensible defaults for testing."""
    annotations = {ANNOTATION: secret} if secret is not None else {}
    return WorkloadObject.from_dict(
        {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {
                "name": name,
                "namespace": namespace,
                "annotations": annotations,
                "initializers": {"pending": [{"name": n} for n in (pending if pending is not None else [SELF])]},
            },
            "spec": {"containers": [{"name": f"c{i}", "image": "busybox"} for i in range(containers)]},
        }
    )


def make_deployment(name: str = "web", namespace: str = "prod", secret: str | None = "sa-web") -> WorkloadObject:
    """Create an uninitialized Deployment whose template has one container."""
    metadata: dict[str, Any] = {
        "name": name,
        "namespace": namespace,
        "initializers": {"pending": [{"name": SELF}]},
    }
    if secret is not None:
        metadata["annotations"] = {ANNOTATION: secret}
    return WorkloadObject.from_dict(
        {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": metadata,
            "spec": {
                "replicas": 2,
                "template": {
                    "metadata": {"labels": {"app": name}},
                    "spec": {"containers": [{"name": name, "image": "nginx"}]},
                },
            },
        }
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class ScriptedSource:
    """EventSource that yields a fixed list of snapshots and then ends."""

    def __init__(self, objects: list[WorkloadObject]) -> None:
        self._objects = objects

    async def events(self, stop: asyncio.Event) -> AsyncIterator[WorkloadObject]:
        for obj in self._objects:
            if stop.is_set():
                return
            yield obj


class RecordingTarget:
    """PatchTarget that records every patch and can reject chosen names."""

    def __init__(self, reject: dict[str, int] | None = None, delay: float = 0.0) -> None:
        self.patches: list[tuple[str, str, dict[str, Any]]] = []
        self._reject = reject or {}
        self._delay = delay

    async def patch(self, name: str, namespace: str, body: dict[str, Any]) -> None:
        if self._delay:
            await asyncio.sleep(self._delay)
        if name in self._reject:
            raise ApiException(status=self._reject[name], reason="Rejected")
        self.patches.append((name, namespace, body))

    def patch_for(self, name: str) -> dict[str, Any]:
        matches = [body for n, _ns, body in self.patches if n == name]
        assert len(matches) == 1, f"expected one patch for {name}, got {len(matches)}"
        return matches[0]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def target() -> RecordingTarget:
    return RecordingTarget()


def build_dispatcher(
    objects: list[WorkloadObject],
    target: RecordingTarget,
    config: InitializerConfig | None = None,
    timeout_seconds: float = 5.0,
) -> Dispatcher:
    """Wire a Dispatcher over *objects* that patches into *target*."""
    return Dispatcher(ScriptedSource(objects), PatchEngine(target, timeout_seconds=timeout_seconds), config)


async def run_to_completion(dispatcher: Dispatcher, timeout: float = 5.0) -> None:
    """Run the dispatcher until its source is exhausted and every task finished."""
    stop = asyncio.Event()
    await asyncio.wait_for(dispatcher.run(stop), timeout=timeout)
    await dispatcher.drain(timeout)
