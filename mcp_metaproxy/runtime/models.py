"""Pydantic models for MCP Meta Proxy catalog and runtime state.

These models serve dual purpose:
1. Catalog records shared by the index, discovery and routing layers
2. Status snapshots for logging and the console display
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

ToolKey = Tuple[str, str]


# ── Catalog records ──────────────────────────────────────────────────────


class ToolDescriptor(BaseModel):
    """A tool known to the catalog, owned by a backend or the local registry."""

    tool_id: str = Field(description="Owning backend id, or the local-function tool id")
    method: str = Field(description="Tool name, unique within its owner")
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> ToolKey:
        """Composite ``(tool_id, method)`` key used for indexing and routing."""
        return (self.tool_id, self.method)


def extract_parameter_descriptions(schema: Optional[Dict[str, Any]]) -> str:
    """Join the ``description`` of every schema property with newlines."""
    if not schema:
        return ""
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return ""
    descriptions: List[str] = []
    for param_info in properties.values():
        if isinstance(param_info, dict) and param_info.get("description"):
            descriptions.append(str(param_info["description"]))
    return "\n".join(descriptions)


class IndexEntry(BaseModel):
    """Read-only projection of a :class:`ToolDescriptor` used for ranking."""

    model_config = {"frozen": True}

    key: ToolKey
    method: str
    description: str = ""
    parameter_descriptions: str = ""

    @classmethod
    def from_descriptor(cls, tool: ToolDescriptor) -> "IndexEntry":
        return cls(
            key=tool.key,
            method=tool.method,
            description=tool.description or "",
            parameter_descriptions=extract_parameter_descriptions(tool.input_schema),
        )

    def field_text(self, field: str) -> str:
        return getattr(self, field)


class DiscoveryResult(BaseModel):
    """One ``discover`` hit. The description is deliberately left out."""

    tool_id: str
    method: str
    input_schema: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        return {"toolId": self.tool_id, "method": self.method, "inputSchema": self.input_schema}


# ── Service lifecycle ────────────────────────────────────────────────────


class ServiceState(str, Enum):
    """Lifecycle states for the proxy aggregator.

    Valid transitions:
        PENDING  → STARTING | STOPPING
        STARTING → RUNNING | ERROR
        RUNNING  → STOPPING
        STOPPING → STOPPED | ERROR
        ERROR    → STOPPING
    """

    PENDING = "pending"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERROR = "error"


_VALID_TRANSITIONS: Dict[ServiceState, frozenset] = {
    ServiceState.PENDING: frozenset({ServiceState.STARTING, ServiceState.STOPPING}),
    ServiceState.STARTING: frozenset({ServiceState.RUNNING, ServiceState.ERROR}),
    ServiceState.RUNNING: frozenset({ServiceState.STOPPING}),
    ServiceState.STOPPING: frozenset({ServiceState.STOPPED, ServiceState.ERROR}),
    ServiceState.STOPPED: frozenset(),
    ServiceState.ERROR: frozenset({ServiceState.STOPPING}),
}


def is_valid_transition(current: ServiceState, target: ServiceState) -> bool:
    """Check whether a service state transition is allowed."""
    return target in _VALID_TRANSITIONS.get(current, frozenset())


# ── Backend lifecycle ────────────────────────────────────────────────────


class BackendPhase(str, Enum):
    """Lifecycle phases for a single backend connection.

    Transitions::

        CONFIGURED → CONNECTING → CONNECTED → READY → CLOSED
                          ↘            ↘        ↘
                           FAILED ←─────┴────────┘
    """

    CONFIGURED = "configured"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


_BACKEND_TRANSITIONS: Dict[BackendPhase, frozenset] = {
    BackendPhase.CONFIGURED: frozenset({BackendPhase.CONNECTING, BackendPhase.CLOSED}),
    BackendPhase.CONNECTING: frozenset({BackendPhase.CONNECTED, BackendPhase.FAILED}),
    BackendPhase.CONNECTED: frozenset(
        {BackendPhase.READY, BackendPhase.FAILED, BackendPhase.CLOSED}
    ),
    BackendPhase.READY: frozenset({BackendPhase.FAILED, BackendPhase.CLOSED}),
    BackendPhase.FAILED: frozenset({BackendPhase.CLOSED}),
    BackendPhase.CLOSED: frozenset(),
}


def is_valid_backend_transition(current: BackendPhase, target: BackendPhase) -> bool:
    """Check whether a backend phase transition is allowed."""
    return target in _BACKEND_TRANSITIONS.get(current, frozenset())


class BackendCondition(BaseModel):
    """A timestamped condition entry for a backend."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: str
    status: str = Field(description="OK | Warning | Error")
    message: str = ""


class BackendStatusRecord(BaseModel):
    """Lifecycle status for a single backend connection."""

    name: str
    phase: BackendPhase = BackendPhase.CONFIGURED
    tool_count: int = 0
    error: Optional[str] = None
    conditions: List[BackendCondition] = Field(default_factory=list)

    def transition(self, new_phase: BackendPhase, message: str = "") -> None:
        """Transition to *new_phase* and append a condition entry.

        Raises :class:`ValueError` if the transition is invalid.
        """
        if not is_valid_backend_transition(self.phase, new_phase):
            raise ValueError(f"Invalid backend transition: {self.phase.value} → {new_phase.value}")
        self.phase = new_phase
        if new_phase == BackendPhase.READY:
            status = "OK"
        elif new_phase == BackendPhase.FAILED:
            status = "Error"
        else:
            status = "Warning"
        self.conditions.append(BackendCondition(type=new_phase.value, status=status, message=message))
        if new_phase == BackendPhase.FAILED and message:
            self.error = message

    @property
    def is_ready(self) -> bool:
        return self.phase == BackendPhase.READY


class ServiceStatus(BaseModel):
    """Overall aggregator status snapshot."""

    state: ServiceState = ServiceState.PENDING
    server_name: str = ""
    server_version: str = ""
    started_at: Optional[datetime] = None
    backends_total: int = 0
    backends_ready: int = 0
    backends: List[BackendStatusRecord] = Field(default_factory=list)
    local_functions: List[str] = Field(default_factory=list)
    catalog_size: int = 0
    error_message: Optional[str] = None
