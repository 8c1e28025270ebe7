"""
MCP Meta Proxy - a discover/execute front for many MCP servers.

MCP Meta Proxy connects to multiple backend MCP servers (stdio) and to
in-process Python functions, indexes every tool they expose, and presents
only two tools to the client: ``discover`` (ranked free-text tool search)
and ``execute`` (call a tool by id and method).
"""

from mcp_metaproxy.constants import LOCAL_TOOL_ID, SERVER_NAME, SERVER_VERSION

__version__ = SERVER_VERSION
__app_name__ = SERVER_NAME

__all__ = [
    "LOCAL_TOOL_ID",
    "SERVER_NAME",
    "SERVER_VERSION",
    "__version__",
    "__app_name__",
]
