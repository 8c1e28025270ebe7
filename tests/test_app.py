"""Tests for the SSE Starlette application factory."""

from __future__ import annotations

import asyncio

import pytest

from mcp_metaproxy.config import validate_config
from mcp_metaproxy.errors import StartupError
from mcp_metaproxy.runtime.models import ServiceState
from mcp_metaproxy.runtime.service import ProxyAggregator
from mcp_metaproxy.server.app import create_app


def _run_lifespan(app, inside=None) -> None:
    async def _drive() -> None:
        async with app.router.lifespan_context(app):
            if inside is not None:
                inside()

    asyncio.run(_drive())


class TestCreateApp:
    def test_routes_and_state(self) -> None:
        proxy = ProxyAggregator(validate_config({}))
        app = create_app(proxy)

        paths = {getattr(route, "path", None) for route in app.routes}
        assert "/sse" in paths
        assert "/messages" in paths
        assert app.state.aggregator is proxy

    def test_lifespan_starts_and_stops_aggregator(self) -> None:
        proxy = ProxyAggregator(validate_config({}))
        app = create_app(proxy, load_backends=False)
        seen = []

        _run_lifespan(app, lambda: seen.append(proxy.state))

        assert seen == [ServiceState.RUNNING]
        assert proxy.state is ServiceState.STOPPED

    def test_prestarted_aggregator_is_only_stopped(self) -> None:
        proxy = ProxyAggregator(validate_config({}))
        asyncio.run(proxy.start(load_backends=False))
        app = create_app(proxy, start_aggregator=False)
        seen = []

        _run_lifespan(app, lambda: seen.append(proxy.state))

        assert seen == [ServiceState.RUNNING]
        assert proxy.state is ServiceState.STOPPED

    def test_lifespan_startup_failure_raises(self, tmp_path) -> None:
        cfg = validate_config(
            {"mcpServers": {"ghost": {"command": str(tmp_path / "does-not-exist")}}}
        )
        proxy = ProxyAggregator(cfg)
        app = create_app(proxy)

        with pytest.raises(StartupError):
            _run_lifespan(app)
        assert proxy.state is ServiceState.ERROR
