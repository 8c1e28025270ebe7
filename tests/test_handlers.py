"""Tests for the host MCP server handlers."""

from __future__ import annotations

import asyncio
import json

import pytest
from mcp import types as mcp_types

from mcp_metaproxy.config import validate_config
from mcp_metaproxy.errors import BackendExecutionError
from mcp_metaproxy.runtime.service import ProxyAggregator
from mcp_metaproxy.server.handlers import create_mcp_server, normalize_result

_ADD_SCHEMA = {
    "type": "object",
    "properties": {
        "a": {"type": "number", "description": "first operand"},
        "b": {"type": "number", "description": "second operand"},
    },
}


def _running_proxy(**config) -> ProxyAggregator:
    proxy = ProxyAggregator(validate_config(config))
    proxy.register_local_function("add", "adds two numbers", _ADD_SCHEMA, _add)
    proxy.register_local_function("fail", "always fails", {}, _fail)
    proxy.register_local_function("raw", "returns raw content", {}, _raw)
    asyncio.run(proxy.start(load_backends=False))
    return proxy


def _add(args, context):
    return args["a"] + args["b"]


def _fail(args, context):
    raise RuntimeError("local failure")


def _raw(args, context):
    return [mcp_types.TextContent(type="text", text="already content")]


def _call(server, name: str, arguments: dict) -> mcp_types.CallToolResult:
    handler = server.request_handlers[mcp_types.CallToolRequest]
    request = mcp_types.CallToolRequest(
        method="tools/call",
        params=mcp_types.CallToolRequestParams(name=name, arguments=arguments),
    )
    return asyncio.run(handler(request)).root


class TestNormalizeResult:
    def test_string(self) -> None:
        [block] = normalize_result("hello")
        assert block.text == "hello"

    def test_plain_value_becomes_json(self) -> None:
        [block] = normalize_result({"sum": 3})
        assert json.loads(block.text) == {"sum": 3}

    def test_number(self) -> None:
        [block] = normalize_result(42)
        assert block.text == "42"

    def test_content_list_is_kept(self) -> None:
        content = [mcp_types.TextContent(type="text", text="a")]
        assert normalize_result(content) == content

    def test_envelope_dict(self) -> None:
        [block] = normalize_result({"content": [{"type": "text", "text": "from dict"}]})
        assert block.text == "from dict"

    def test_call_tool_result(self) -> None:
        result = mcp_types.CallToolResult(
            content=[mcp_types.TextContent(type="text", text="done")]
        )
        assert normalize_result(result)[0].text == "done"

    def test_error_envelope_raises(self) -> None:
        result = mcp_types.CallToolResult(
            content=[mcp_types.TextContent(type="text", text="bad ticker")], isError=True
        )
        with pytest.raises(BackendExecutionError, match="bad ticker"):
            normalize_result(result, "stock", "price")


class TestHostServer:
    def test_lists_only_meta_tools(self) -> None:
        server = create_mcp_server(_running_proxy(discoverDescriptionExtras="Extra"))
        handler = server.request_handlers[mcp_types.ListToolsRequest]
        tools = asyncio.run(handler(mcp_types.ListToolsRequest(method="tools/list"))).root.tools

        assert [t.name for t in tools] == ["discover", "execute"]
        assert tools[0].description.endswith("\nExtra")

    def test_discover_returns_json_array(self) -> None:
        server = create_mcp_server(_running_proxy())
        result = _call(server, "discover", {"queries": ["addition math"]})

        assert not result.isError
        payload = json.loads(result.content[0].text)
        assert {"toolId": "local", "method": "add", "inputSchema": _ADD_SCHEMA} in payload

    def test_execute_local_function(self) -> None:
        server = create_mcp_server(_running_proxy())
        result = _call(
            server, "execute", {"toolId": "local", "method": "add", "args": {"a": 2, "b": 3}}
        )

        assert not result.isError
        assert result.content[0].text == "5"

    def test_execute_passes_content_through(self) -> None:
        server = create_mcp_server(_running_proxy())
        result = _call(server, "execute", {"toolId": "local", "method": "raw"})
        assert result.content[0].text == "already content"

    def test_execute_unknown_tool_id_is_error_result(self) -> None:
        server = create_mcp_server(_running_proxy())
        result = _call(server, "execute", {"toolId": "missing-backend", "method": "x", "args": {}})

        assert result.isError
        assert "missing-backend" in result.content[0].text
        assert "local" in result.content[0].text

    def test_execute_function_error_is_error_result(self) -> None:
        server = create_mcp_server(_running_proxy())
        result = _call(server, "execute", {"toolId": "local", "method": "fail", "args": {}})

        assert result.isError
        assert "local failure" in result.content[0].text
