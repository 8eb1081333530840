"""Tests for InitializerApp wiring and lifecycle (no cluster needed)."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from kubernetes_asyncio.client import ApiException

from gkesa.app import InitializerApp, _ComponentError
from gkesa.collector import IncludeUninitialized, KubernetesListWatch
from gkesa.dispatcher import Dispatcher
from gkesa.models.config import GKESAConfig, WatchConfig
from gkesa.models.workload import WorkloadKind, WorkloadObject
from gkesa.observability.logging import get_logger


class _FailingSource:
    async def events(self, stop: asyncio.Event) -> AsyncIterator[WorkloadObject]:
        raise ApiException(status=403, reason="Forbidden")
        yield  # pragma: no cover


class _IdleSource:
    async def events(self, stop: asyncio.Event) -> AsyncIterator[WorkloadObject]:
        await stop.wait()
        return
        yield  # pragma: no cover


def _make_app(config: GKESAConfig | None = None) -> InitializerApp:
    app = InitializerApp(config or GKESAConfig())
    app._log = get_logger("app")
    app._api_client = MagicMock()
    app._api_client.close = AsyncMock()
    return app


class TestBuildPipeline:
    def test_pods_with_include_uninitialized(self) -> None:
        app = _make_app()

        app._build_pipeline()

        assert app._watcher is not None
        assert app._watcher._kind is WorkloadKind.POD
        assert isinstance(app._watcher._list_watch, IncludeUninitialized)
        assert isinstance(app._dispatcher, Dispatcher)

    def test_deployments_without_include_uninitialized(self) -> None:
        app = _make_app(GKESAConfig(watch=WatchConfig(resource="deployments", include_uninitialized=False)))

        app._build_pipeline()

        assert app._watcher is not None
        assert app._watcher._kind is WorkloadKind.DEPLOYMENT
        assert isinstance(app._watcher._list_watch, KubernetesListWatch)

    def test_unsupported_resource_is_a_component_error(self) -> None:
        app = _make_app(GKESAConfig(watch=WatchConfig(resource="statefulsets")))

        with pytest.raises(_ComponentError) as exc_info:
            app._build_pipeline()
        assert exc_info.value.component == "pipeline"


class TestLifecycle:
    async def test_failed_first_list_is_fatal(self) -> None:
        app = _make_app()
        app._dispatcher = Dispatcher(_FailingSource(), MagicMock())
        app._start_dispatch()

        with pytest.raises(_ComponentError) as exc_info:
            await app.wait()

        assert exc_info.value.component == "watch"
        assert isinstance(exc_info.value.cause, ApiException)

    async def test_wait_returns_on_stop_request(self) -> None:
        app = _make_app()
        app._dispatcher = Dispatcher(_IdleSource(), MagicMock())
        app._start_dispatch()

        asyncio.get_running_loop().call_later(0.01, app.request_stop)
        await asyncio.wait_for(app.wait(), timeout=2)

        await app.stop()
        assert app._dispatch_task is not None
        assert app._dispatch_task.done()

    async def test_stop_without_start_is_noop(self) -> None:
        app = InitializerApp(GKESAConfig())
        await app.stop()
        assert app._stopped is False

    async def test_stop_is_idempotent(self) -> None:
        app = _make_app()
        client = app._api_client

        await app.stop()
        await app.stop()

        client.close.assert_awaited_once()
        assert app._api_client is None
