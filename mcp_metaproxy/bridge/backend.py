"""Connection to a single backend MCP server over stdio."""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

from mcp import ClientSession, StdioServerParameters
from mcp import types as mcp_types
from mcp.client.stdio import stdio_client

from mcp_metaproxy.bridge.command import resolve_command_path
from mcp_metaproxy.bridge.provider import ContextFactory, ProviderKind
from mcp_metaproxy.config.schema import SUPPORTED_TRANSPORTS, BackendDescriptor
from mcp_metaproxy.constants import CLIENT_NAME, SERVER_VERSION
from mcp_metaproxy.errors import (
    BackendConnectionError,
    BackendExecutionError,
    ConfigurationError,
)
from mcp_metaproxy.runtime.models import BackendPhase, BackendStatusRecord, ToolDescriptor

logger = logging.getLogger(__name__)


async def _log_subproc_stream(
    stream: asyncio.StreamReader, backend_id: str, stream_name: str
) -> None:
    """Asynchronously read and log lines from a subprocess stream."""
    while True:
        try:
            line_bytes = await stream.readline()
        except asyncio.CancelledError:
            logger.debug("[%s-%s] Logging task was cancelled.", backend_id, stream_name)
            break
        except Exception as e_stream:
            logger.error(
                "[%s-%s] Error while reading stream: %s",
                backend_id,
                stream_name,
                e_stream,
                exc_info=True,
            )
            break
        if not line_bytes:
            logger.debug("[%s-%s] Stream ended (EOF).", backend_id, stream_name)
            break
        line = line_bytes.decode(errors="replace").rstrip()
        if line:
            logger.info("[%s-%s] %s", backend_id, stream_name, line)


class BackendConnection:
    """Wraps one backend MCP server: start, list its tools, forward calls.

    Lifecycle::

        CONFIGURED → CONNECTING → CONNECTED → READY
                          └───────────┴─────────┴──→ FAILED

    The transport and the client session live inside a single supervisor
    task so they are entered and exited by the same task. No retry is
    attempted; one failure is terminal for the connection.
    """

    def __init__(self, backend_id: str, descriptor: BackendDescriptor) -> None:
        self._id = backend_id
        self._descriptor = descriptor
        self._record = BackendStatusRecord(name=backend_id)
        self._session: Optional[ClientSession] = None
        self._tools: Dict[str, ToolDescriptor] = {}
        self._task: Optional[asyncio.Task] = None
        self._closing = asyncio.Event()

    # ── Properties ───────────────────────────────────────────────────

    @property
    def provider_id(self) -> str:
        return self._id

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.REMOTE

    @property
    def descriptor(self) -> BackendDescriptor:
        return self._descriptor

    @property
    def status(self) -> BackendStatusRecord:
        return self._record

    @property
    def phase(self) -> BackendPhase:
        return self._record.phase

    @property
    def tools(self) -> Dict[str, ToolDescriptor]:
        """Tools listed by the backend, keyed by name."""
        return dict(self._tools)

    def _transition(self, phase: BackendPhase, message: str = "") -> None:
        try:
            self._record.transition(phase, message)
        except ValueError as exc:
            logger.debug("[%s] %s", self._id, exc)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        """Launch the backend process and perform the MCP handshake.

        Raises:
            ConfigurationError: If the transport kind is not supported.
            BackendConnectionError: If the process or the handshake fails.
        """
        if self._task is not None:
            raise BackendConnectionError("Connection was already started.", self._id)

        transport = self._descriptor.transport
        if transport not in SUPPORTED_TRANSPORTS:
            raise ConfigurationError(f"Unknown transport '{transport}' for backend '{self._id}'")

        self._transition(BackendPhase.CONNECTING, f"Connecting ({transport})")
        command = resolve_command_path(self._descriptor.command, self._id)
        params = StdioServerParameters(
            command=command,
            args=list(self._descriptor.args),
            env=dict(self._descriptor.env) or None,
        )
        logger.info(
            "[%s] Starting backend process: '%s' args: %s",
            self._id,
            command,
            params.args,
        )

        ready = asyncio.get_running_loop().create_future()
        self._task = asyncio.create_task(self._run(params, ready), name=f"backend_{self._id}")
        try:
            await ready
        except asyncio.CancelledError:
            self._task.cancel()
            raise
        except Exception as exc:
            self._transition(BackendPhase.FAILED, str(exc) or type(exc).__name__)
            if isinstance(exc, FileNotFoundError):
                logger.error("[%s] Command or file not found: '%s'.", self._id, command)
            else:
                logger.error(
                    "[%s] Failed to connect: %s: %s", self._id, type(exc).__name__, exc
                )
            raise BackendConnectionError(
                f"Unable to start backend '{command}': {exc}", self._id, orig_exc=exc
            ) from exc

    async def _run(self, params: StdioServerParameters, ready: asyncio.Future) -> None:
        """Own the transport and session until :meth:`close` is requested."""
        loop = asyncio.get_running_loop()
        read_fd, write_fd = os.pipe()
        errlog = os.fdopen(write_fd, "w")
        err_reader = asyncio.StreamReader()
        try:
            err_transport, _ = await loop.connect_read_pipe(
                lambda: asyncio.StreamReaderProtocol(err_reader), os.fdopen(read_fd, "rb")
            )
        except Exception as exc:
            errlog.close()
            if not ready.done():
                ready.set_exception(exc)
            return
        err_task = asyncio.create_task(
            _log_subproc_stream(err_reader, self._id, "stderr"),
            name=f"{self._id}_stderr_logger",
        )

        try:
            async with stdio_client(params, errlog=errlog) as (read_stream, write_stream):
                logger.debug("[%s] (stdio) transport streams established.", self._id)
                client_info = mcp_types.Implementation(name=CLIENT_NAME, version=SERVER_VERSION)
                async with ClientSession(
                    read_stream, write_stream, client_info=client_info
                ) as session:
                    init_result = await session.initialize()
                    self._session = session
                    server_info = init_result.serverInfo
                    logger.info(
                        "[%s] MCP connection initialized (server: %s %s).",
                        self._id,
                        server_info.name,
                        server_info.version,
                    )
                    self._transition(BackendPhase.CONNECTED, "Handshake complete")
                    if not ready.done():
                        ready.set_result(None)
                    await self._closing.wait()
        except asyncio.CancelledError:
            if not ready.done():
                ready.cancel()
            raise
        except Exception as exc:
            if not ready.done():
                ready.set_exception(exc)
            else:
                logger.error(
                    "[%s] Backend connection lost: %s: %s", self._id, type(exc).__name__, exc
                )
                self._transition(BackendPhase.FAILED, f"Connection lost: {exc}")
        finally:
            self._session = None
            errlog.close()
            try:
                await asyncio.wait_for(err_task, timeout=2.0)
            except asyncio.TimeoutError:
                logger.debug("[%s] stderr logger did not finish in time.", self._id)
            err_transport.close()

    async def close(self) -> None:
        """Close the session and terminate the backend process."""
        if self._task is None:
            self._transition(BackendPhase.CLOSED, "Closed before start")
            return
        logger.info("[%s] Closing backend connection...", self._id)
        self._closing.set()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.debug("[%s] Supervisor task was cancelled.", self._id)
        finally:
            self._task = None
            self._tools.clear()
            self._transition(BackendPhase.CLOSED, "Connection closed")
        logger.info("[%s] Backend connection closed.", self._id)

    # ── Tools ────────────────────────────────────────────────────────

    async def list_tools(self) -> List[ToolDescriptor]:
        """Query the backend for its tools. Called once, right after :meth:`start`.

        Raises:
            BackendConnectionError: If the backend is not connected or listing fails.
        """
        if self._session is None or self.phase != BackendPhase.CONNECTED:
            raise BackendConnectionError(
                f"Cannot list tools in phase '{self.phase.value}'.", self._id
            )
        session = self._session

        raw_tools: List[mcp_types.Tool] = []
        cursor: Optional[str] = None
        try:
            while True:
                list_result = await session.list_tools(cursor=cursor)
                raw_tools.extend(list_result.tools)
                cursor = list_result.nextCursor
                if not cursor:
                    break
        except Exception as exc:
            logger.error("[%s] list_tools() failed: %s: %s", self._id, type(exc).__name__, exc)
            self._transition(BackendPhase.FAILED, f"Tool listing failed: {exc}")
            raise BackendConnectionError(f"Unable to list tools: {exc}", self._id, exc) from exc

        tools: Dict[str, ToolDescriptor] = {}
        for tool in raw_tools:
            if not tool.name:
                logger.warning("[%s] Found unnamed tool, skipped: %r", self._id, tool)
                continue
            if tool.name in tools:
                logger.warning(
                    "[%s] Duplicate tool '%s' listed; only the first is registered.",
                    self._id,
                    tool.name,
                )
                continue
            tools[tool.name] = ToolDescriptor(
                tool_id=self._id,
                method=tool.name,
                description=tool.description or "",
                input_schema=dict(tool.inputSchema or {}),
            )

        self._tools = tools
        self._record.tool_count = len(tools)
        self._transition(BackendPhase.READY, f"{len(tools)} tool(s) listed")
        logger.info("[%s] Loaded %d tools.", self._id, len(tools))
        return list(tools.values())

    async def call(
        self,
        method: str,
        args: Dict[str, Any],
        context_factory: Optional[ContextFactory] = None,
    ) -> mcp_types.CallToolResult:
        """Forward a tool call verbatim and return the backend's result envelope.

        The context factory is never invoked for remote backends.

        Raises:
            BackendExecutionError: On transport or protocol errors.
        """
        session = self._session
        if session is None or self.phase != BackendPhase.READY:
            raise BackendExecutionError(
                f"Backend is not ready (phase: {self.phase.value}).", self._id, method
            )

        logger.debug("[%s] Calling tool '%s' with args: %s", self._id, method, args)
        try:
            result = await session.call_tool(method, arguments=args or {})
        except Exception as exc:
            logger.error(
                "[%s] Error calling tool '%s': %s: %s", self._id, method, type(exc).__name__, exc
            )
            raise BackendExecutionError(str(exc), self._id, method, orig_exc=exc) from exc

        if result.isError:
            logger.warning("[%s] Tool '%s' returned an error result.", self._id, method)
        return result
