"""Dispatcher: one gate -> mutate -> patch task per delivered object.

Tasks share no mutable object state: each works on its own clone.  Events
for different objects are handled concurrently and in no particular order.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum

import structlog

from gkesa.collector.watcher import EventSource
from gkesa.errors import CloneError, PatchError
from gkesa.initializer.gate import needs_initialization
from gkesa.initializer.mutator import Mutator
from gkesa.models.config import InitializerConfig
from gkesa.models.workload import WorkloadObject
from gkesa.observability.logging import bind_object
from gkesa.observability.metrics import inflight_tasks, injections_total, objects_total
from gkesa.patch.engine import PatchEngine

_log = structlog.get_logger(component="dispatcher")


class Outcome(StrEnum):
    """What happened to one delivered object."""

    SKIPPED = "skipped"
    INITIALIZED = "initialized"
    FAILED = "failed"


class Dispatcher:
    """Routes every snapshot from *source* through the initializer.

    Args:
        source:  Snapshot feed (a ResourceWatcher in production).
        engine:  Patch engine bound to the watched kind.
        config:  Initializer name, annotation and mount root.
    """

    def __init__(
        self,
        source: EventSource,
        engine: PatchEngine,
        config: InitializerConfig | None = None,
    ) -> None:
        self._source = source
        self._engine = engine
        self._config = config or InitializerConfig()
        self._mutator = Mutator(self._config)
        self._tasks: set[asyncio.Task[Outcome]] = set()
        self.counts: dict[Outcome, int] = {outcome: 0 for outcome in Outcome}

    @property
    def inflight(self) -> int:
        return len(self._tasks)

    async def run(self, stop: asyncio.Event) -> None:
        """Consume the source until *stop* is set, one task per snapshot."""
        async for obj in self._source.events(stop):
            self.submit(obj)

    def submit(self, obj: WorkloadObject) -> asyncio.Task[Outcome]:
        """Schedule handling of *obj* on its own task."""
        task = asyncio.create_task(self._run_one(obj), name=f"initialize-{obj.ref}")
        self._tasks.add(task)
        inflight_tasks.set(len(self._tasks))
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Outcome]) -> None:
        self._tasks.discard(task)
        inflight_tasks.set(len(self._tasks))

    async def _run_one(self, obj: WorkloadObject) -> Outcome:
        try:
            outcome = await self.handle(obj)
        except Exception as exc:  # noqa: BLE001
            bind_object(_log, obj).error("unexpected_error", error=str(exc), exc_info=True)
            outcome = Outcome.FAILED
        self.counts[outcome] += 1
        objects_total.labels(kind=obj.kind.value, outcome=outcome.value).inc()
        return outcome

    async def handle(self, obj: WorkloadObject) -> Outcome:
        """Run the full pipeline for one object.

        Errors are logged and turned into ``Outcome.FAILED``; the object is
        left as it is on the server and nothing is retried.
        """
        log = bind_object(_log, obj)
        if not needs_initialization(obj, self._config.name):
            log.debug("skipping", pending=obj.metadata.pending_names)
            return Outcome.SKIPPED

        log.info("initializing")
        try:
            result = self._mutator.mutate(obj)
        except CloneError as exc:
            log.error("clone_failed", error=str(exc))
            return Outcome.FAILED
        assert result.obj is not None

        if result.modified:
            injections_total.labels(kind=obj.kind.value).inc()
        else:
            log.info("no_injection", annotation=self._config.annotation)

        try:
            await self._engine.apply(obj, result.obj)
        except PatchError as exc:
            log.error("patch_failed", stage=exc.stage, status=exc.status, error=str(exc))
            return Outcome.FAILED

        log.info("initialized", injected=result.modified, secret=result.secret_name)
        return Outcome.INITIALIZED

    async def drain(self, timeout: float) -> None:
        """Wait up to *timeout* seconds for in-flight tasks, then cancel the rest."""
        if not self._tasks:
            return
        pending = set(self._tasks)
        _done, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            _log.warning("tasks_cancelled_on_shutdown", count=len(still_running))
            await asyncio.gather(*still_running, return_exceptions=True)
