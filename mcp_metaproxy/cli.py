"""CLI argument parsing and main entry point.

``mcp-metaproxy -c servers.json`` starts every backend in the file and
serves ``discover``/``execute`` over stdio. ``--transport sse`` serves the
same two tools over HTTP instead. Programs embedding the proxy register
their local functions on a :class:`ProxyAggregator` and call
:func:`run_proxy` themselves.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

import uvicorn

from mcp_metaproxy.config import ProxyConfig, load_config_file, load_config_string
from mcp_metaproxy.constants import (
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PORT,
    SERVER_NAME,
    SERVER_VERSION,
)
from mcp_metaproxy.display.console import disp_console_status, gen_status_info, log_file_status
from mcp_metaproxy.display.logging_config import setup_logging
from mcp_metaproxy.display.progress import StartupDisplay
from mcp_metaproxy.errors import ConfigurationError, ProxyBaseError, StartupError
from mcp_metaproxy.runtime.service import ProxyAggregator

module_logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-metaproxy",
        description=(
            f"{SERVER_NAME} v{SERVER_VERSION}: aggregate MCP servers behind "
            "two tools, discover and execute."
        ),
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("-c", "--config", help="Path to a JSON configuration file.")
    source.add_argument("-j", "--json", help="Inline JSON configuration string.")
    parser.add_argument(
        "--transport",
        choices=("stdio", "sse"),
        default="stdio",
        help="Transport used to serve the proxy (default: stdio).",
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help="Bind host for --transport sse.")
    parser.add_argument(
        "--port", type=int, default=DEFAULT_PORT, help="Bind port for --transport sse."
    )
    parser.add_argument(
        "--log-level",
        default=DEFAULT_LOG_LEVEL.lower(),
        choices=("debug", "info", "warning", "error", "critical"),
        help="File log level (default: info).",
    )
    return parser


def load_cli_config(args: argparse.Namespace) -> ProxyConfig:
    """Load the configuration named on the command line (empty when none is)."""
    if args.config:
        return load_config_file(args.config)
    if args.json:
        return load_config_string(args.json)
    module_logger.info("No configuration given; serving local functions only.")
    return ProxyConfig()


async def run_proxy(
    aggregator: ProxyAggregator,
    *,
    transport: str = "stdio",
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    load_backends: bool = True,
    cfg_fpath: Optional[str] = None,
    log_fpath: str = "N/A",
    log_lvl: str = DEFAULT_LOG_LEVEL,
) -> None:
    """Start *aggregator*, serve it on *transport* and stop it afterwards.

    Raises:
        StartupError: If the backends could not be started.
    """
    display = StartupDisplay(aggregator.config.mcp_servers if load_backends else {})

    def _report(status_msg: str) -> None:
        info = gen_status_info(
            aggregator.status(),
            status_msg,
            transport=transport,
            host=host,
            port=port,
            cfg_fpath=cfg_fpath,
            log_fpath=log_fpath,
            log_lvl=log_lvl,
        )
        disp_console_status("Startup", info)
        log_file_status(info)

    display.render_initial()
    try:
        await aggregator.start(
            load_backends=load_backends, progress_callback=display.make_callback()
        )
    finally:
        display.finalize()
    _report("Serving")

    if transport == "sse":
        from mcp_metaproxy.server.app import create_app

        app = create_app(aggregator, start_aggregator=False)
        uvicorn_cfg = uvicorn.Config(
            app=app,
            host=host,
            port=port,
            log_config=None,
            log_level="warning",
        )
        module_logger.info("Preparing to start Uvicorn server: http://%s:%s", host, port)
        try:
            await uvicorn.Server(uvicorn_cfg).serve()
        finally:
            await aggregator.stop()
        return

    from mcp_metaproxy.server.handlers import create_mcp_server
    from mcp_metaproxy.server.transport import run_stdio

    try:
        await run_stdio(create_mcp_server(aggregator))
    finally:
        await aggregator.stop()


def main(argv: Optional[List[str]] = None) -> None:
    """Entry-point for the ``mcp-metaproxy`` console script."""
    args = build_parser().parse_args(argv)
    log_fpath, log_lvl = setup_logging(args.log_level)
    module_logger.info(
        "---- %s v%s starting (file log level: %s) ----", SERVER_NAME, SERVER_VERSION, log_lvl
    )

    try:
        config = load_cli_config(args)
    except ConfigurationError as exc:
        module_logger.error("Configuration error: %s", exc)
        print(f"❌ Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    aggregator = ProxyAggregator(config)
    cfg_fpath = os.path.abspath(args.config) if args.config else None
    try:
        asyncio.run(
            run_proxy(
                aggregator,
                transport=args.transport,
                host=args.host,
                port=args.port,
                cfg_fpath=cfg_fpath,
                log_fpath=log_fpath,
                log_lvl=log_lvl,
            )
        )
    except KeyboardInterrupt:
        module_logger.info("%s interrupted by KeyboardInterrupt.", SERVER_NAME)
    except StartupError as exc:
        module_logger.error("Startup failed: %s", exc)
        print(f"❌ Startup failed: {exc}", file=sys.stderr)
        sys.exit(1)
    except ProxyBaseError as exc:
        module_logger.error("%s stopped with an error: %s", SERVER_NAME, exc)
        print(f"❌ Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception as e_fatal:
        module_logger.exception(
            "%s main program encountered an uncaught fatal error: %s", SERVER_NAME, e_fatal
        )
        sys.exit(1)
    finally:
        module_logger.info("%s application finished.", SERVER_NAME)
