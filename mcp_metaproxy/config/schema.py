"""Pydantic configuration models for MCP Meta Proxy.

The on-disk format is a JSON object::

    {
        "mcpServers": {
            "weather": {"command": "uvx", "args": ["weather-mcp"], "env": {}}
        },
        "discoverDescription": null,
        "discoverDescriptionExtras": null,
        "discoverLimit": 5
    }
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mcp_metaproxy.constants import (
    DEFAULT_DISCOVER_LIMIT,
    DEFAULT_FIELD_BOOST,
    DEFAULT_FUZZY,
    LOCAL_TOOL_ID,
)

SUPPORTED_TRANSPORTS = frozenset({"stdio"})
SEARCH_FIELDS = ("method", "description", "parameter_descriptions")


class BackendDescriptor(BaseModel):
    """Launch specification for one backend MCP server."""

    model_config = ConfigDict(frozen=True)

    command: str = Field(..., min_length=1, description="Executable to run")
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    transport: str = Field(default="stdio", description="Only 'stdio' is supported.")

    @field_validator("command")
    @classmethod
    def _strip_command(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("command must be a non-empty string")
        return v

    @field_validator("transport", mode="before")
    @classmethod
    def _default_transport(cls, v: Optional[str]) -> str:
        if v is None:
            return "stdio"
        return v


class SearchSettings(BaseModel):
    """Tuning for the catalog search index."""

    fuzzy: float = Field(
        default=DEFAULT_FUZZY,
        ge=0,
        description=(
            "Fuzzy tolerance. Below 1 it is a fraction of the query term length, "
            "otherwise an absolute edit distance. 0 disables fuzzy matching."
        ),
    )
    prefix: bool = Field(default=True, description="Match query terms as prefixes.")
    boost: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_FIELD_BOOST),
        description="Per-field score multipliers.",
    )

    @field_validator("boost")
    @classmethod
    def _validate_boost(cls, v: Dict[str, float]) -> Dict[str, float]:
        for field_name, weight in v.items():
            if field_name not in SEARCH_FIELDS:
                raise ValueError(
                    f"Unknown search field '{field_name}'; expected one of {', '.join(SEARCH_FIELDS)}"
                )
            if weight <= 0:
                raise ValueError(f"Boost for '{field_name}' must be positive")
        return v


class ProxyConfig(BaseModel):
    """Top-level validated configuration for MCP Meta Proxy."""

    model_config = ConfigDict(populate_by_name=True)

    mcp_servers: Dict[str, BackendDescriptor] = Field(default_factory=dict, alias="mcpServers")
    discover_description: Optional[str] = Field(default=None, alias="discoverDescription")
    discover_description_extras: Optional[str] = Field(
        default=None, alias="discoverDescriptionExtras"
    )
    discover_limit: int = Field(default=DEFAULT_DISCOVER_LIMIT, ge=1, alias="discoverLimit")
    search: SearchSettings = Field(default_factory=SearchSettings)
    partial_startup: bool = Field(
        default=False,
        alias="partialStartup",
        description="Serve the tools of the backends that started when others fail.",
    )

    @field_validator("discover_limit", mode="before")
    @classmethod
    def _default_limit(cls, v: Optional[int]) -> int:
        if v is None:
            return DEFAULT_DISCOVER_LIMIT
        return v

    @field_validator("mcp_servers", mode="before")
    @classmethod
    def _default_servers(cls, v: Optional[dict]) -> dict:
        if v is None:
            return {}
        return v

    @field_validator("mcp_servers")
    @classmethod
    def _validate_backend_names(
        cls, v: Dict[str, BackendDescriptor]
    ) -> Dict[str, BackendDescriptor]:
        for name in v:
            stripped = name.strip()
            if not stripped:
                raise ValueError("Backend name must be a non-empty string")
            if stripped != name:
                raise ValueError(f"Backend name '{name}' has leading/trailing whitespace")
            if name == LOCAL_TOOL_ID:
                raise ValueError(
                    f"Backend name '{LOCAL_TOOL_ID}' is reserved for in-process functions"
                )
        return v

    @model_validator(mode="after")
    def _validate_transports(self) -> "ProxyConfig":
        for name, backend in self.mcp_servers.items():
            if backend.transport not in SUPPORTED_TRANSPORTS:
                raise ValueError(f"Unknown transport '{backend.transport}' for backend '{name}'")
        return self
