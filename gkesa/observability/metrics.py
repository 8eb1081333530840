"""Prometheus metrics for the initializer."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

objects_total = Counter(
    "gkesa_objects_total",
    "Workload objects delivered by the watch, by outcome",
    ["kind", "outcome"],
)

injections_total = Counter(
    "gkesa_injections_total",
    "Objects that received a credential volume",
    ["kind"],
)

patches_total = Counter(
    "gkesa_patches_total",
    "Patch attempts by result; failures are labelled with the failing stage",
    ["kind", "result"],
)

patch_duration_seconds = Histogram(
    "gkesa_patch_duration_seconds",
    "Latency of the patch API call",
    ["kind"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

inflight_tasks = Gauge(
    "gkesa_inflight_tasks",
    "Per-object tasks currently running",
)

watch_restarts_total = Counter(
    "gkesa_watch_restarts_total",
    "Times the list/watch loop re-listed after a watch ended or failed",
    ["kind", "reason"],
)
