"""Runtime layer for MCP Meta Proxy.

Re-exports the catalog and lifecycle models so callers can write::

    from mcp_metaproxy.runtime import ToolDescriptor, ServiceState

The aggregator itself lives in :mod:`mcp_metaproxy.runtime.service`.
"""

from mcp_metaproxy.runtime.models import (
    BackendPhase,
    BackendStatusRecord,
    DiscoveryResult,
    IndexEntry,
    ServiceState,
    ServiceStatus,
    ToolDescriptor,
)

__all__ = [
    "BackendPhase",
    "BackendStatusRecord",
    "DiscoveryResult",
    "IndexEntry",
    "ServiceState",
    "ServiceStatus",
    "ToolDescriptor",
]
