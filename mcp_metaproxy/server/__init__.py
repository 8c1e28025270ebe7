from mcp_metaproxy.server.app import create_app
from mcp_metaproxy.server.handlers import create_mcp_server, normalize_result
from mcp_metaproxy.server.transport import run_stdio

__all__ = ["create_app", "create_mcp_server", "normalize_result", "run_stdio"]
