"""ResourceWatcher: list, then watch, then list again every resync period.

Each cycle lists every object of the kind, yields them all, and then
watches from the list's resourceVersion with a server-side timeout equal to
the resync period.  When the watch ends (timeout, 410 Gone, dropped
connection) the cycle starts over.  The re-list is what re-delivers objects
that were skipped because another initializer was ahead in their queue.

Only the very first list is allowed to fail the process.  Later failures are
logged and retried with exponential back-off.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any, Protocol

import structlog

from gkesa.collector.listwatch import ListWatch
from gkesa.models.workload import WorkloadKind, WorkloadObject
from gkesa.observability.metrics import watch_restarts_total

_log = structlog.get_logger(component="collector.watcher")

_BACKOFF_INITIAL = 1.0
_BACKOFF_MAX = 30.0


class EventSource(Protocol):
    """Push-based feed of object snapshots, unordered across objects."""

    def events(self, stop: asyncio.Event) -> AsyncIterator[WorkloadObject]:
        """Yield snapshots until *stop* is set."""
        ...


class ResourceWatcher:
    """EventSource over a ListWatch.

    Args:
        list_watch:     List/watch calls, usually wrapped in IncludeUninitialized.
        kind:           Kind of the listed objects (list items carry no kind).
        resync_seconds: Period between full re-lists.
    """

    def __init__(self, list_watch: ListWatch, kind: WorkloadKind, resync_seconds: int = 30) -> None:
        self._list_watch = list_watch
        self._kind = kind
        self._resync = resync_seconds
        self.synced = False
        self.lists_completed = 0

    async def events(self, stop: asyncio.Event) -> AsyncIterator[WorkloadObject]:
        backoff = _BACKOFF_INITIAL
        watch_backoff = _BACKOFF_INITIAL
        while not stop.is_set():
            try:
                listing = await self._list_watch.list()
            except Exception as exc:
                if not self.synced:
                    # No usable subscription at all: let the caller fail startup
                    raise
                _log.warning(
                    "relist_failed",
                    kind=self._kind.value,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    retry_in=backoff,
                )
                watch_restarts_total.labels(kind=self._kind.value, reason="list_error").inc()
                await _sleep_or_stop(stop, backoff)
                backoff = min(backoff * 2, _BACKOFF_MAX)
                continue

            self.synced = True
            self.lists_completed += 1
            backoff = _BACKOFF_INITIAL
            items = listing.get("items") or []
            resource_version = (listing.get("metadata") or {}).get("resourceVersion")
            _log.debug("listed", kind=self._kind.value, count=len(items), resource_version=resource_version)

            for raw in items:
                obj = self._parse(raw)
                if obj is not None:
                    yield obj
                if stop.is_set():
                    return

            reason = "resync"
            failed = False
            try:
                options: dict[str, Any] = {"timeout_seconds": self._resync}
                if resource_version:
                    options["resource_version"] = resource_version
                async for event in self._list_watch.watch(**options):
                    if stop.is_set():
                        return
                    event_type = event.get("type")
                    if event_type == "ERROR":
                        _log.info("watch_error_event", kind=self._kind.value, status=event.get("object"))
                        reason = "watch_error"
                        break
                    if event_type != "ADDED":
                        continue
                    obj = self._parse(event.get("object"))
                    if obj is not None:
                        yield obj
            except Exception as exc:
                # Already synced: a broken watch is never fatal, only re-listed
                _log.warning(
                    "watch_failed",
                    kind=self._kind.value,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    retry_in=watch_backoff,
                )
                reason = "watch_error"
                failed = True
            watch_restarts_total.labels(kind=self._kind.value, reason=reason).inc()

            if failed:
                await _sleep_or_stop(stop, watch_backoff)
                watch_backoff = min(watch_backoff * 2, _BACKOFF_MAX)
            else:
                watch_backoff = _BACKOFF_INITIAL

    def _parse(self, raw: Any) -> WorkloadObject | None:
        if not isinstance(raw, dict):
            _log.warning("watch_returned_non_object", kind=self._kind.value, type=type(raw).__name__)
            return None
        try:
            return WorkloadObject.from_dict(raw, kind=self._kind)
        except (TypeError, ValueError, AttributeError) as exc:
            _log.warning("unparseable_object", kind=self._kind.value, error=str(exc))
            return None


async def _sleep_or_stop(stop: asyncio.Event, seconds: float) -> None:
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except TimeoutError:
        pass
