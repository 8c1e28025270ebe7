"""Starlette ASGI application factory for the SSE transport."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.routing import Mount, Route

from mcp_metaproxy.constants import POST_MESSAGES_PATH, SERVER_NAME, SSE_PATH
from mcp_metaproxy.runtime.service import ProgressCallback, ProxyAggregator
from mcp_metaproxy.server.handlers import create_mcp_server
from mcp_metaproxy.server.transport import make_sse_endpoint

logger = logging.getLogger(__name__)


def create_app(
    aggregator: ProxyAggregator,
    *,
    load_backends: bool = True,
    progress_callback: Optional[ProgressCallback] = None,
    start_aggregator: bool = True,
) -> Starlette:
    """Create the Starlette app; the aggregator stops with its lifespan.

    With *start_aggregator* false the caller starts the aggregator before
    serving, so a startup failure surfaces as :class:`StartupError` instead
    of a failed ASGI lifespan.
    """
    mcp_server = create_mcp_server(aggregator)
    sse_transport = SseServerTransport(POST_MESSAGES_PATH)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        if start_aggregator:
            logger.info("Application startup: starting proxy aggregator...")
            await aggregator.start(
                load_backends=load_backends, progress_callback=progress_callback
            )
        try:
            yield
        finally:
            logger.info("Application shutdown: stopping proxy aggregator...")
            await aggregator.stop()

    application = Starlette(
        lifespan=lifespan,
        routes=[
            Route(SSE_PATH, endpoint=make_sse_endpoint(mcp_server, sse_transport)),
            Mount(POST_MESSAGES_PATH, app=sse_transport.handle_post_message),
        ],
    )
    application.state.aggregator = aggregator
    logger.info(
        "Starlette ASGI app '%s' created. SSE GET on %s, POST on %s",
        SERVER_NAME,
        SSE_PATH,
        POST_MESSAGES_PATH,
    )
    return application
