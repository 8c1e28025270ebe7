"""MCP handler functions - registered on the host MCP server instance."""

import json
import logging
from typing import Any, Dict, List, Sequence

from mcp import types as mcp_types
from mcp.server import Server as McpServer
from pydantic import ValidationError

from mcp_metaproxy.bridge.meta_tools import (
    DISCOVER_TOOL_NAME,
    EXECUTE_TOOL_NAME,
    build_meta_tools,
)
from mcp_metaproxy.constants import SERVER_NAME, SERVER_VERSION
from mcp_metaproxy.errors import BackendExecutionError, ProxyBaseError
from mcp_metaproxy.runtime.service import ProxyAggregator

logger = logging.getLogger(__name__)

_CONTENT_TYPES = (
    mcp_types.TextContent,
    mcp_types.ImageContent,
    mcp_types.AudioContent,
    mcp_types.EmbeddedResource,
    mcp_types.ResourceLink,
)


def _text(text: str) -> mcp_types.TextContent:
    return mcp_types.TextContent(type="text", text=text)


def _error_text(result: mcp_types.CallToolResult) -> str:
    texts = [c.text for c in result.content if isinstance(c, mcp_types.TextContent)]
    return "\n".join(texts) or "Tool returned an error result."


def normalize_result(result: Any, tool_id: str = "", method: str = "") -> List[Any]:
    """Turn whatever a backend or local function returned into content blocks.

    Raises:
        BackendExecutionError: If *result* is an error envelope.
    """
    if isinstance(result, mcp_types.CallToolResult):
        if result.isError:
            raise BackendExecutionError(_error_text(result), tool_id, method)
        return list(result.content)
    if isinstance(result, _CONTENT_TYPES):
        return [result]
    if isinstance(result, str):
        return [_text(result)]
    if isinstance(result, dict) and "content" in result:
        try:
            envelope = mcp_types.CallToolResult.model_validate(result)
        except ValidationError:
            logger.debug("Result for '%s.%s' is not a content envelope.", tool_id, method)
        else:
            return normalize_result(envelope, tool_id, method)
    if isinstance(result, (list, tuple)) and result and all(
        isinstance(item, _CONTENT_TYPES) for item in result
    ):
        return list(result)
    return [_text(json.dumps(result, default=str))]


def register_handlers(mcp_server: McpServer, aggregator: ProxyAggregator) -> None:
    """Register the ``discover``/``execute`` handlers on the server instance."""
    config = aggregator.config
    meta_tools = build_meta_tools(config.discover_description, config.discover_description_extras)

    @mcp_server.list_tools()
    async def handle_list_tools() -> List[mcp_types.Tool]:
        logger.debug("Handling listTools request...")
        return list(meta_tools)

    async def _request_context() -> Any:
        try:
            return mcp_server.request_context
        except LookupError:
            logger.debug("execute called outside an MCP request; no context available.")
            return None

    @mcp_server.call_tool()
    async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> Sequence[Any]:
        logger.debug("Handling callTool: name='%s'", name)
        arguments = arguments or {}

        if name == DISCOVER_TOOL_NAME:
            queries = arguments.get("queries") or []
            results = await aggregator.discover(queries)
            return [_text(json.dumps([r.to_wire() for r in results]))]

        if name == EXECUTE_TOOL_NAME:
            tool_id = arguments.get("toolId", "")
            method = arguments.get("method", "")
            args = arguments.get("args") or {}
            logger.info("Executing '%s' on '%s'.", method, tool_id)
            try:
                result = await aggregator.execute(tool_id, method, args, _request_context)
                return normalize_result(result, tool_id, method)
            except ProxyBaseError as exc:
                logger.error("execute '%s.%s' failed: %s", tool_id, method, exc)
                raise

        raise ValueError(f"Unknown tool '{name}'. Available tools: discover, execute")

    logger.debug("discover/execute handlers registered on server instance.")


def create_mcp_server(aggregator: ProxyAggregator) -> McpServer:
    """Build the host MCP server exposing only ``discover`` and ``execute``."""
    mcp_server = McpServer(SERVER_NAME, version=SERVER_VERSION)
    register_handlers(mcp_server, aggregator)
    logger.debug("Host MCP server instance '%s' created.", mcp_server.name)
    return mcp_server
