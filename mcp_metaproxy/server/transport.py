"""Transports for the host MCP server: stdio and SSE."""

import logging

from mcp.server import Server as McpServer
from mcp.server.lowlevel import NotificationOptions
from mcp.server.models import InitializationOptions
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from starlette.requests import Request
from starlette.responses import Response

from mcp_metaproxy.constants import SERVER_NAME, SERVER_VERSION

logger = logging.getLogger(__name__)


def init_options(mcp_server: McpServer) -> InitializationOptions:
    return InitializationOptions(
        server_name=SERVER_NAME,
        server_version=SERVER_VERSION,
        capabilities=mcp_server.get_capabilities(NotificationOptions(), {}),
    )


async def run_stdio(mcp_server: McpServer) -> None:
    """Serve *mcp_server* over this process's stdin/stdout until EOF."""
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Serving MCP over stdio.")
        await mcp_server.run(read_stream, write_stream, init_options(mcp_server))
    logger.info("stdio session ended.")


def make_sse_endpoint(mcp_server: McpServer, sse_transport: SseServerTransport):
    """Return the Starlette endpoint handling SSE connection requests."""

    async def handle_sse(request: Request) -> Response:
        logger.debug("Received new SSE connection request (GET): %s", request.url)
        async with sse_transport.connect_sse(
            request.scope,
            request.receive,
            request._send,
        ) as (read_stream, write_stream):
            await mcp_server.run(read_stream, write_stream, init_options(mcp_server))
        logger.debug("SSE connection closed: %s", request.url)
        return Response()

    return handle_sse
