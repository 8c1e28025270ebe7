"""Bridge components: backend connections, local functions, index and routing."""

from mcp_metaproxy.bridge.backend import BackendConnection
from mcp_metaproxy.bridge.command import resolve_command_path
from mcp_metaproxy.bridge.discovery import DiscoveryService
from mcp_metaproxy.bridge.local import LocalFunction, LocalFunctionRegistry
from mcp_metaproxy.bridge.provider import ContextFactory, ProviderKind, ToolProvider
from mcp_metaproxy.bridge.router import ExecutionRouter
from mcp_metaproxy.bridge.search import CatalogIndex

__all__ = [
    "BackendConnection",
    "CatalogIndex",
    "ContextFactory",
    "DiscoveryService",
    "ExecutionRouter",
    "LocalFunction",
    "LocalFunctionRegistry",
    "ProviderKind",
    "ToolProvider",
    "resolve_command_path",
]
