"""Tests for execute routing."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from mcp_metaproxy.bridge.local import LocalFunctionRegistry
from mcp_metaproxy.bridge.provider import ProviderKind
from mcp_metaproxy.bridge.router import ExecutionRouter
from mcp_metaproxy.errors import UnknownBackendError


class _FakeBackend:
    """Minimal remote provider recording the calls it receives."""

    kind = ProviderKind.REMOTE

    def __init__(self, provider_id: str, result: object = "ok") -> None:
        self.provider_id = provider_id
        self.call = AsyncMock(return_value=result)

    async def list_tools(self):
        return []


def _router() -> ExecutionRouter:
    router = ExecutionRouter()
    local = LocalFunctionRegistry()
    local.register("echo", "", {}, lambda args, context: args)
    router.add_provider(local)
    router.add_provider(_FakeBackend("weather", "sunny"))
    router.add_provider(_FakeBackend("stock"))
    return router


class TestExecutionRouter:
    def test_routes_to_backend(self) -> None:
        router = _router()
        factory = AsyncMock()

        result = asyncio.run(router.execute("weather", "today", {"city": "Oslo"}, factory))

        assert result == "sunny"
        backend = router.get_provider("weather")
        backend.call.assert_awaited_once_with("today", {"city": "Oslo"}, factory)
        factory.assert_not_awaited()

    def test_routes_to_local_functions(self) -> None:
        assert asyncio.run(_router().execute("local", "echo", {"a": 1})) == {"a": 1}

    def test_missing_args_become_empty_dict(self) -> None:
        router = _router()
        asyncio.run(router.execute("stock", "price"))
        router.get_provider("stock").call.assert_awaited_once_with("price", {}, None)

    def test_unknown_tool_id_lists_known_ids(self) -> None:
        with pytest.raises(UnknownBackendError) as exc_info:
            asyncio.run(_router().execute("missing-backend", "x", {}))

        message = str(exc_info.value)
        assert "missing-backend" in message
        for known in ("local", "weather", "stock"):
            assert known in message
        assert exc_info.value.known_ids == ["local", "weather", "stock"]

    def test_remove_provider(self) -> None:
        router = _router()
        router.remove_provider("stock")
        assert router.provider_ids == ["local", "weather"]
        with pytest.raises(UnknownBackendError):
            asyncio.run(router.execute("stock", "price"))
