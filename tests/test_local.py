"""Tests for in-process local functions."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from mcp_metaproxy.bridge.local import LocalFunctionRegistry
from mcp_metaproxy.bridge.provider import ProviderKind, ToolProvider
from mcp_metaproxy.constants import LOCAL_TOOL_ID
from mcp_metaproxy.errors import UnknownFunctionError

_ADD_SCHEMA = {
    "type": "object",
    "properties": {
        "a": {"type": "number", "description": "first operand"},
        "b": {"type": "number", "description": "second operand"},
    },
}


def _add(args, context):
    return args["a"] + args["b"]


class TestLocalFunctionRegistry:
    def test_is_a_local_tool_provider(self) -> None:
        reg = LocalFunctionRegistry()
        assert isinstance(reg, ToolProvider)
        assert reg.kind is ProviderKind.LOCAL
        assert reg.provider_id == LOCAL_TOOL_ID

    def test_register_and_list(self) -> None:
        reg = LocalFunctionRegistry()
        reg.register("add", "adds two numbers", _ADD_SCHEMA, _add)

        tools = asyncio.run(reg.list_tools())
        assert len(tools) == 1
        assert tools[0].key == (LOCAL_TOOL_ID, "add")
        assert tools[0].input_schema == _ADD_SCHEMA

    def test_register_calls_index_hook(self) -> None:
        reg = LocalFunctionRegistry()
        hook = MagicMock()
        reg.bind_index(hook)
        reg.register("add", "adds two numbers", _ADD_SCHEMA, _add)

        hook.assert_called_once()
        assert hook.call_args.args[0].method == "add"

    def test_reregister_overwrites(self) -> None:
        reg = LocalFunctionRegistry()
        reg.register("f", "one", {}, lambda a, c: 1)
        reg.register("f", "two", {}, lambda a, c: 2)

        assert len(reg) == 1
        assert asyncio.run(reg.invoke("f", {})) == 2

    def test_rejects_empty_name(self) -> None:
        with pytest.raises(ValueError):
            LocalFunctionRegistry().register("", "x", {}, _add)

    def test_rejects_non_callable(self) -> None:
        with pytest.raises(TypeError):
            LocalFunctionRegistry().register("f", "x", {}, "not callable")  # type: ignore[arg-type]


class TestLocalInvoke:
    def test_invokes_with_exact_args(self) -> None:
        reg = LocalFunctionRegistry()
        fn = MagicMock(return_value={"ok": True})
        reg.register("f", "", {}, fn)
        args = {"x": 1, "nested": {"y": [1, 2]}}

        result = asyncio.run(reg.invoke("f", args))

        fn.assert_called_once_with(args, None)
        assert result == {"ok": True}

    def test_awaits_coroutine_functions(self) -> None:
        reg = LocalFunctionRegistry()

        async def double(args, context):
            await asyncio.sleep(0)
            return args["n"] * 2

        reg.register("double", "", {}, double)
        assert asyncio.run(reg.invoke("double", {"n": 21})) == 42

    def test_context_factory_called_once(self) -> None:
        reg = LocalFunctionRegistry()
        seen = []
        reg.register("ctx", "", {}, lambda args, context: seen.append(context) or "done")
        factory = AsyncMock(return_value={"session": "abc"})

        result = asyncio.run(reg.call("ctx", {}, factory))

        assert result == "done"
        factory.assert_awaited_once()
        assert seen == [{"session": "abc"}]

    def test_context_factory_not_called_for_unknown_function(self) -> None:
        reg = LocalFunctionRegistry()
        reg.register("add", "", {}, _add)
        factory = AsyncMock()

        with pytest.raises(UnknownFunctionError):
            asyncio.run(reg.invoke("missing", {}, factory))
        factory.assert_not_awaited()

    def test_unknown_function_lists_names(self) -> None:
        reg = LocalFunctionRegistry()
        reg.register("add", "", {}, _add)
        reg.register("sub", "", {}, _add)

        with pytest.raises(UnknownFunctionError) as exc_info:
            asyncio.run(reg.invoke("mul", {}))

        message = str(exc_info.value)
        assert "'mul'" in message
        assert "add, sub" in message

    def test_function_errors_propagate_unchanged(self) -> None:
        reg = LocalFunctionRegistry()

        def boom(args, context):
            raise KeyError("missing input")

        reg.register("boom", "", {}, boom)
        with pytest.raises(KeyError, match="missing input"):
            asyncio.run(reg.invoke("boom", {}))
