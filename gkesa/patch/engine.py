"""Persisting an initialized object with a single strategic merge patch.

The patch is computed between the object as delivered by the watch and the
mutated clone, then sent once.  There is no resourceVersion precondition and
no retry: a rejected patch leaves the object pending, and the next re-list
delivers it again.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp
import structlog
from kubernetes_asyncio.client import ApiException, ApiTypeError, ApiValueError  # type: ignore[import-untyped]

from gkesa.errors import PatchError
from gkesa.models.workload import WorkloadKind, WorkloadObject
from gkesa.observability.metrics import patch_duration_seconds, patches_total
from gkesa.patch.strategic import create_two_way_merge_patch

_log = structlog.get_logger(component="patch.engine")

STRATEGIC_MERGE_PATCH = "application/strategic-merge-patch+json"


class PatchTarget(Protocol):
    """Where patches are sent.  One target serves one resource kind."""

    async def patch(self, name: str, namespace: str, body: dict[str, Any]) -> Any: ...


class KubernetesPatchTarget:
    """Sends strategic merge patches through a kubernetes-asyncio API object.

    Args:
        api:  ``CoreV1Api`` for Pods, ``AppsV1Api`` for Deployments.
        kind: The workload kind being patched.
    """

    def __init__(self, api: Any, kind: WorkloadKind) -> None:
        self._api = api
        self._kind = kind

    async def patch(self, name: str, namespace: str, body: dict[str, Any]) -> Any:
        if self._kind is WorkloadKind.DEPLOYMENT:
            call = self._api.patch_namespaced_deployment
        else:
            call = self._api.patch_namespaced_pod
        return await call(name=name, namespace=namespace, body=body, _content_type=STRATEGIC_MERGE_PATCH)


def serialize(obj: WorkloadObject) -> dict[str, Any]:
    """Serialize *obj* to its JSON representation.

    Raises:
        PatchError: (stage ``serialize``) if the object is not JSON-encodable.
    """
    try:
        return json.loads(json.dumps(obj.to_dict()))
    except (TypeError, ValueError) as exc:
        raise PatchError("serialize", f"failed to marshal {obj.ref}: {exc}") from exc


def compute_patch(
    original: WorkloadObject,
    modified: WorkloadObject,
    merge_keys: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Serialize both objects and diff them into a strategic merge patch.

    Raises:
        PatchError: with stage ``serialize`` or ``diff``.
    """
    old_data = serialize(original)
    new_data = serialize(modified)
    try:
        return create_two_way_merge_patch(old_data, new_data, merge_keys)
    except (TypeError, ValueError) as exc:
        raise PatchError("diff", f"failed to create 2-way merge patch for {original.ref}: {exc}") from exc


class PatchEngine:
    """Diffs and applies the patch for one object.

    Args:
        target:          Where patches are sent.
        timeout_seconds: Upper bound for the API call; 0 waits forever.
        merge_keys:      Field name to merge key table for list diffs.
    """

    def __init__(
        self,
        target: PatchTarget,
        timeout_seconds: float = 30.0,
        merge_keys: Mapping[str, str] | None = None,
    ) -> None:
        self._target = target
        self._timeout = timeout_seconds
        self._merge_keys = merge_keys

    async def apply(self, original: WorkloadObject, modified: WorkloadObject) -> dict[str, Any]:
        """Compute the patch and submit it once.  Returns the patch sent.

        Raises:
            PatchError: on any failure; ``stage`` tells where it failed.
        """
        kind = original.kind.value
        try:
            patch = compute_patch(original, modified, self._merge_keys)
        except PatchError as exc:
            patches_total.labels(kind=kind, result=exc.stage).inc()
            raise

        if not patch:
            _log.debug("patch_empty", kind=kind, namespace=original.metadata.namespace, name=original.metadata.name)
            patches_total.labels(kind=kind, result="empty").inc()
            return patch

        t_start = time.monotonic()
        try:
            call = self._target.patch(original.metadata.name, original.metadata.namespace, patch)
            if self._timeout > 0:
                await asyncio.wait_for(call, timeout=self._timeout)
            else:
                await call
        except ApiException as exc:
            patches_total.labels(kind=kind, result="apply").inc()
            raise PatchError(
                "apply",
                f"failed to patch {original.ref}: {exc.status} {exc.reason}",
                status=exc.status,
            ) from exc
        except TimeoutError as exc:
            patches_total.labels(kind=kind, result="timeout").inc()
            raise PatchError("timeout", f"patch of {original.ref} timed out after {self._timeout}s") from exc
        except aiohttp.ClientError as exc:
            patches_total.labels(kind=kind, result="apply").inc()
            raise PatchError("apply", f"failed to patch {original.ref}: {exc}") from exc
        except (ApiTypeError, ApiValueError) as exc:
            # Rejected by the client before any request was sent
            patches_total.labels(kind=kind, result="apply").inc()
            raise PatchError("apply", f"failed to build patch request for {original.ref}: {exc}") from exc
        finally:
            patch_duration_seconds.labels(kind=kind).observe(time.monotonic() - t_start)

        patches_total.labels(kind=kind, result="success").inc()
        return patch
