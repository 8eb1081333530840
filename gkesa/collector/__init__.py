"""Collector package.

Provides the list/watch subscription that feeds workload snapshots into the
dispatcher.

Submodules
----------
listwatch -- ListWatch protocol, kubernetes-asyncio implementation and the
             IncludeUninitialized decorator.
watcher   -- ResourceWatcher: list, watch, periodic re-list, back-off.
"""

from gkesa.collector.listwatch import IncludeUninitialized, KubernetesListWatch, ListWatch
from gkesa.collector.watcher import EventSource, ResourceWatcher

__all__ = [
    "EventSource",
    "IncludeUninitialized",
    "KubernetesListWatch",
    "ListWatch",
    "ResourceWatcher",
]
