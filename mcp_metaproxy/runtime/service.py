"""Proxy runtime service: owns the catalog, the backends and the router.

ProxyAggregator starts every configured backend concurrently, indexes the
tools they list together with the registered local functions, and serves
``discover`` and ``execute``. It does NOT import the display layer; callers
observe startup through an optional progress callback and :meth:`status`.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from mcp_metaproxy.bridge.backend import BackendConnection
from mcp_metaproxy.bridge.discovery import DiscoveryService
from mcp_metaproxy.bridge.local import LocalCallable, LocalFunctionRegistry
from mcp_metaproxy.bridge.provider import ContextFactory
from mcp_metaproxy.bridge.router import ExecutionRouter
from mcp_metaproxy.bridge.search import CatalogIndex
from mcp_metaproxy.config.schema import ProxyConfig
from mcp_metaproxy.constants import SERVER_NAME, SERVER_VERSION
from mcp_metaproxy.errors import ServiceNotReadyError, StartupError
from mcp_metaproxy.runtime.models import (
    DiscoveryResult,
    ServiceState,
    ServiceStatus,
    ToolDescriptor,
    is_valid_transition,
)

logger = logging.getLogger(__name__)

# progress_callback(backend_id, phase, detail)
ProgressCallback = Callable[[str, str, Optional[str]], None]


class ProxyAggregator:
    """Aggregates tools from backend MCP servers and local functions.

    State machine::

        PENDING ─► STARTING ─► RUNNING ─► STOPPING ─► STOPPED
                       │                      ▲
                       └──────► ERROR ────────┘

    Usage::

        proxy = ProxyAggregator(config)
        proxy.register_local_function("add", "adds two numbers", schema, add)
        await proxy.start()
        results = await proxy.discover(["addition math"])
        await proxy.stop()
    """

    def __init__(self, config: Optional[ProxyConfig] = None) -> None:
        self._config = config or ProxyConfig()
        self._state = ServiceState.PENDING
        self._started_at: Optional[datetime] = None
        self._error_message: Optional[str] = None

        search = self._config.search
        self._index = CatalogIndex(fuzzy=search.fuzzy, prefix=search.prefix, boost=search.boost)
        self._discovery = DiscoveryService(self._index, limit=self._config.discover_limit)
        self._router = ExecutionRouter()

        self._local = LocalFunctionRegistry()
        self._local.bind_index(self._index.upsert)
        self._router.add_provider(self._local)

        self._backends: Dict[str, BackendConnection] = {
            name: BackendConnection(name, descriptor)
            for name, descriptor in self._config.mcp_servers.items()
        }
        logger.info(
            "ProxyAggregator initialized (%d backend(s) configured, state=%s).",
            len(self._backends),
            self._state.value,
        )

    # ------------------------------------------------------------------ #
    #  Properties
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> ProxyConfig:
        return self._config

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == ServiceState.RUNNING

    @property
    def catalog(self) -> CatalogIndex:
        return self._index

    @property
    def local_functions(self) -> LocalFunctionRegistry:
        return self._local

    @property
    def backends(self) -> Dict[str, BackendConnection]:
        return dict(self._backends)

    @property
    def ready_backend_ids(self) -> List[str]:
        return [name for name in self._router.provider_ids if name in self._backends]

    # ------------------------------------------------------------------ #
    #  State machine
    # ------------------------------------------------------------------ #

    def _set_state(self, target: ServiceState) -> None:
        if not is_valid_transition(self._state, target):
            raise RuntimeError(
                f"Invalid state transition: {self._state.value} → {target.value}"
            )
        logger.debug("ProxyAggregator state: %s → %s", self._state.value, target.value)
        self._state = target

    def _require_running(self, operation: str) -> None:
        if self._state != ServiceState.RUNNING:
            raise ServiceNotReadyError(
                f"Cannot {operation}: proxy is not serving (state: {self._state.value})."
            )

    # ------------------------------------------------------------------ #
    #  Local functions
    # ------------------------------------------------------------------ #

    def register_local_function(
        self,
        name: str,
        description: str,
        input_schema: Optional[Dict[str, Any]],
        fn: LocalCallable,
    ) -> "ProxyAggregator":
        """Register an in-process function; returns ``self`` for chaining.

        The function is indexed immediately, replacing any previous entry
        with the same name.
        """
        self._local.register(name, description, input_schema, fn)
        return self

    # ------------------------------------------------------------------ #
    #  Lifecycle
    # ------------------------------------------------------------------ #

    async def start(
        self,
        load_backends: bool = True,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        """Start all backends concurrently and build the catalog.

        Unless ``partialStartup`` is configured, a single backend failure
        aborts the whole startup: connections already opened are closed and
        :class:`StartupError` is raised.
        """
        self._set_state(ServiceState.STARTING)
        if not load_backends:
            logger.info("Backend loading disabled; serving local functions only.")
            self._mark_running()
            return

        logger.info("Starting %d backend(s) concurrently...", len(self._backends))
        names = list(self._backends)
        outcomes = await asyncio.gather(
            *(self._start_backend(name, progress_callback) for name in names),
            return_exceptions=True,
        )

        failures: Dict[str, BaseException] = {}
        listed: Dict[str, List[ToolDescriptor]] = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                failures[name] = outcome
            else:
                listed[name] = outcome

        if failures and not self._config.partial_startup:
            self._error_message = str(StartupError(failures))
            logger.error("Startup aborted: %s", self._error_message)
            self._set_state(ServiceState.ERROR)
            await self._close_backends()
            raise StartupError(failures)

        for name, exc in failures.items():
            logger.warning(
                "[%s] Backend failed to start and is left out of the catalog: %s", name, exc
            )
        closed = await asyncio.gather(
            *(self._backends[name].close() for name in failures),
            return_exceptions=True,
        )
        for name, result in zip(failures, closed):
            if isinstance(result, BaseException):
                logger.error("[%s] Error while closing failed backend: %s", name, result)

        for name, tools in listed.items():
            self._index.upsert_all(tools)
            self._router.add_provider(self._backends[name])

        self._mark_running()
        if failures:
            logger.warning(
                "Partial startup: %d/%d backend(s) ready. Failed: %s",
                len(listed),
                len(self._backends),
                ", ".join(failures),
            )

    async def _start_backend(
        self, name: str, progress_callback: Optional[ProgressCallback]
    ) -> List[ToolDescriptor]:
        connection = self._backends[name]
        if progress_callback is not None:
            progress_callback(name, "connecting", None)
        try:
            await connection.start()
            tools = await connection.list_tools()
        except Exception as exc:
            if progress_callback is not None:
                progress_callback(name, "failed", str(exc))
            raise
        if progress_callback is not None:
            progress_callback(name, "ready", f"{len(tools)} tools")
        return tools

    def _mark_running(self) -> None:
        self._started_at = datetime.now(timezone.utc)
        self._set_state(ServiceState.RUNNING)
        logger.info(
            "Proxy ready: %d tool(s) indexed (%d local function(s)), backends ready: %s.",
            len(self._index),
            len(self._local),
            ", ".join(self.ready_backend_ids) or "(none)",
        )

    async def stop(self) -> None:
        """Close every backend connection and its subprocess."""
        if self._state in (ServiceState.STOPPING, ServiceState.STOPPED):
            return
        self._set_state(ServiceState.STOPPING)
        try:
            await self._close_backends()
        except Exception as exc:
            self._error_message = str(exc)
            self._set_state(ServiceState.ERROR)
            raise
        self._set_state(ServiceState.STOPPED)
        logger.info("ProxyAggregator stopped.")

    async def _close_backends(self) -> None:
        results = await asyncio.gather(
            *(connection.close() for connection in self._backends.values()),
            return_exceptions=True,
        )
        for name, result in zip(self._backends, results):
            if isinstance(result, BaseException):
                logger.error("[%s] Error while closing backend: %s", name, result)
            self._router.remove_provider(name)
            self._index.remove_provider(name)

    # ------------------------------------------------------------------ #
    #  Public operations
    # ------------------------------------------------------------------ #

    async def discover(self, queries: Sequence[str]) -> List[DiscoveryResult]:
        """Rank catalog tools against *queries* (see :class:`DiscoveryService`)."""
        self._require_running("discover")
        return self._discovery.discover(queries)

    async def execute(
        self,
        tool_id: str,
        method: str,
        args: Optional[Dict[str, Any]] = None,
        context_factory: Optional[ContextFactory] = None,
    ) -> Any:
        """Route a call to the backend or local function owning *tool_id*."""
        self._require_running("execute")
        return await self._router.execute(tool_id, method, args, context_factory)

    # ------------------------------------------------------------------ #
    #  Status
    # ------------------------------------------------------------------ #

    def status(self) -> ServiceStatus:
        """Return a snapshot of the aggregator and its backends."""
        records = [connection.status.model_copy() for connection in self._backends.values()]
        return ServiceStatus(
            state=self._state,
            server_name=SERVER_NAME,
            server_version=SERVER_VERSION,
            started_at=self._started_at,
            backends_total=len(self._backends),
            backends_ready=sum(1 for r in records if r.is_ready),
            backends=records,
            local_functions=self._local.names,
            catalog_size=len(self._index),
            error_message=self._error_message,
        )
