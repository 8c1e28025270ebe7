"""Configuration loading and validation for MCP Meta Proxy."""

from mcp_metaproxy.config.env import expand_env_vars
from mcp_metaproxy.config.loader import load_config_file, load_config_string, validate_config
from mcp_metaproxy.config.schema import BackendDescriptor, ProxyConfig, SearchSettings

__all__ = [
    "BackendDescriptor",
    "ProxyConfig",
    "SearchSettings",
    "expand_env_vars",
    "load_config_file",
    "load_config_string",
    "validate_config",
]
