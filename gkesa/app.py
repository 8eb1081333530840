"""Application bootstrap for the initializer.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config -> logging -> K8s client -> watcher/patch engine
              -> dispatcher -> REST

Failing to load cluster credentials or to complete the first list of the
watched resource is fatal.  Everything after that is per-object and only
logged.  Shutdown gives in-flight objects a short grace period and then
cancels them.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Any

from gkesa.config import load_config
from gkesa.models.config import GKESAConfig
from gkesa.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from gkesa.collector.watcher import ResourceWatcher
    from gkesa.dispatcher import Dispatcher

_SHUTDOWN_GRACE_SECONDS = 5


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: BaseException) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class InitializerApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    ``stop()`` is safe to call on an app that was never started or was
    already stopped.
    """

    def __init__(self, config: GKESAConfig | None = None) -> None:
        self.config: GKESAConfig | None = config

        self._api_client: Any = None
        self._watcher: ResourceWatcher | None = None
        self._dispatcher: Dispatcher | None = None
        self._rest_server: Any = None

        self._stop_event = asyncio.Event()
        self._dispatch_task: asyncio.Task[None] | None = None
        self._background_tasks: list[asyncio.Task[Any]] = []

        self._running = False
        self._stopped = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info(
            "initializer starting",
            version=_gkesa_version(),
            initializer=self.config.initializer.name,
            resource=self.config.watch.resource,
        )

        # --- 3. Kubernetes client ----------------------------------------
        await self._start_k8s_client()

        # --- 4. Watcher, patch engine, dispatcher ------------------------
        self._build_pipeline()

        # --- 5. Dispatch loop --------------------------------------------
        self._start_dispatch()

        # --- 6. REST API -------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("initializer started")

    async def _start_k8s_client(self) -> None:
        """Load in-cluster config, falling back to the local kubeconfig."""
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            try:
                k8s_config.load_incluster_config()
                self._log.info("k8s client configured from in-cluster service account")
            except k8s_config.ConfigException as exc:
                self._log.info("in-cluster config unavailable; using kubeconfig", error=str(exc))
                await k8s_config.load_kube_config()
                self._log.info("k8s client configured from kubeconfig")

            self._api_client = k8s_client.ApiClient()
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    def _build_pipeline(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            from gkesa.collector import IncludeUninitialized, KubernetesListWatch, ListWatch, ResourceWatcher
            from gkesa.dispatcher import Dispatcher
            from gkesa.models.workload import WorkloadKind
            from gkesa.patch import KubernetesPatchTarget, PatchEngine

            kind = WorkloadKind.from_resource(self.config.watch.resource)
            core_v1 = k8s_client.CoreV1Api(self._api_client)
            apps_v1 = k8s_client.AppsV1Api(self._api_client)

            list_watch: ListWatch = KubernetesListWatch.for_kind(kind, core_v1, apps_v1)
            if self.config.watch.include_uninitialized:
                list_watch = IncludeUninitialized(list_watch)

            self._watcher = ResourceWatcher(list_watch, kind, resync_seconds=self.config.watch.resync_seconds)
            target = KubernetesPatchTarget(apps_v1 if kind is WorkloadKind.DEPLOYMENT else core_v1, kind)
            engine = PatchEngine(target, timeout_seconds=self.config.initializer.patch_timeout_seconds)
            self._dispatcher = Dispatcher(self._watcher, engine, self.config.initializer)
            self._log.info(
                "pipeline built",
                kind=kind.value,
                include_uninitialized=self.config.watch.include_uninitialized,
                resync_seconds=self.config.watch.resync_seconds,
            )
        except Exception as exc:
            raise _ComponentError("pipeline", exc) from exc

    def _start_dispatch(self) -> None:
        assert self._dispatcher is not None
        self._dispatch_task = asyncio.create_task(self._dispatcher.run(self._stop_event), name="dispatch")

    async def _start_rest(self) -> None:
        """Start the uvicorn server for health and metrics, if enabled."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.api.enabled:
            self._log.info("rest api disabled (api.enabled=false)")
            return
        try:
            import uvicorn

            from gkesa.api import create_app

            fastapi_app = create_app(config=self.config, watcher=self._watcher, dispatcher=self._dispatcher)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            # Health endpoint is optional; the initializer keeps working without it
            self._log.warning("rest api failed to start", error=str(exc))
            self._rest_server = None

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def wait(self) -> None:
        """Block until shutdown is requested or the dispatch loop ends.

        Raises _ComponentError if the dispatch loop died, e.g. because the
        initial list of the watched resource failed.
        """
        assert self._dispatch_task is not None
        stop_waiter = asyncio.create_task(self._stop_event.wait(), name="stop-waiter")
        try:
            await asyncio.wait({self._dispatch_task, stop_waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_waiter.cancel()
        if self._dispatch_task.done() and not self._dispatch_task.cancelled():
            exc = self._dispatch_task.exception()
            if exc is not None:
                raise _ComponentError("watch", exc)

    def request_stop(self) -> None:
        self._stop_event.set()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop components in reverse startup order.

        In-flight objects get ``_SHUTDOWN_GRACE_SECONDS`` to finish; the rest
        are cancelled and picked up again by the next process.
        """
        if self._stopped or (not self._running and self._log is None):
            return
        self._stopped = True

        log = self._log or get_logger("app")
        log.info("initializer shutting down")
        self._running = False
        self._stop_event.set()

        if self._rest_server is not None:
            self._rest_server.should_exit = True

        if self._dispatch_task is not None and not self._dispatch_task.done():
            self._dispatch_task.cancel()
            await asyncio.gather(self._dispatch_task, return_exceptions=True)

        if self._dispatcher is not None:
            await self._dispatcher.drain(_SHUTDOWN_GRACE_SECONDS)

        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._stop_k8s_client()
        log.info("initializer stopped")

    async def _stop_k8s_client(self) -> None:
        """Close the kubernetes-asyncio ApiClient connection pool."""
        if self._api_client is None:
            return
        log = self._log or get_logger("app")
        try:
            await self._api_client.close()
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._api_client = None


def _gkesa_version() -> str:
    from gkesa import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: GKESAConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = InitializerApp(config)
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.request_stop)

    try:
        await app.start()
        await app.wait()
        get_logger("app").info("shutdown signal received, exiting")
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        raise SystemExit(1) from exc
    finally:
        await app.stop()
