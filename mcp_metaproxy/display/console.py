"""Console status display and log-file status writing."""

import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from mcp_metaproxy.constants import SERVER_NAME, SERVER_VERSION, SSE_PATH
from mcp_metaproxy.runtime.models import ServiceStatus

logger = logging.getLogger(__name__)


def gen_status_info(
    status: ServiceStatus,
    status_msg: str,
    *,
    transport: str = "stdio",
    host: str = "N/A",
    port: int = 0,
    cfg_fpath: Optional[str] = None,
    log_fpath: str = "N/A",
    log_lvl: str = "INFO",
) -> Dict[str, Any]:
    """Generate a structured dictionary of status information."""
    return {
        "ts": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "status_msg": status_msg,
        "state": status.state.value,
        "transport": transport,
        "sse_url": f"http://{host}:{port}{SSE_PATH}" if transport == "sse" and port > 0 else "N/A",
        "cfg_fpath": cfg_fpath or "N/A",
        "log_fpath": log_fpath,
        "log_lvl_cfg": log_lvl,
        "conn_svrs_num": status.backends_ready,
        "total_svrs_num": status.backends_total,
        "catalog_size": status.catalog_size,
        "local_functions": list(status.local_functions),
        "backends": [
            {"name": b.name, "phase": b.phase.value, "tools": b.tool_count, "error": b.error}
            for b in status.backends
        ],
        "err_msg": status.error_message,
    }


def disp_console_status(stage: str, status_info: Dict[str, Any]) -> None:
    """Print formatted status information to stderr."""
    line_len = 70
    header = f" {SERVER_NAME} v{SERVER_VERSION} "
    out = sys.stderr

    print(f"\n{'=' * line_len}", file=out)
    print(f"{header:-^{line_len}}", file=out)
    print(f"[{status_info['ts']}] {stage} Status: {status_info['status_msg']}", file=out)
    print(f"    Transport: {status_info['transport']}", file=out)
    if status_info["sse_url"] != "N/A":
        print(f"    Endpoint (sse): {status_info['sse_url']}", file=out)
    print(f"    Config File: {os.path.basename(status_info['cfg_fpath'])}", file=out)
    print(
        f"    Log File: {status_info['log_fpath']} (level: {status_info['log_lvl_cfg']})",
        file=out,
    )
    print(
        f"    Backend Services: {status_info['conn_svrs_num']} / "
        f"{status_info['total_svrs_num']} connected",
        file=out,
    )
    print(
        f"    Catalog: {status_info['catalog_size']} tools "
        f"({len(status_info['local_functions'])} local)",
        file=out,
    )
    if status_info.get("err_msg"):
        print(f"    !! Error: {status_info['err_msg']}", file=out)
    print("=" * line_len, file=out)


def log_file_status(status_info: Dict[str, Any], log_lvl: int = logging.INFO) -> None:
    """Write detailed status information to the log file."""
    log_lines = [
        f"Server Status Update: {status_info['status_msg']}",
        f"  State: {status_info['state']}",
        f"  Transport: {status_info['transport']}",
        f"  SSE URL: {status_info['sse_url']}",
        f"  Config File Used: {status_info['cfg_fpath']}",
        f"  Configured File Log Level: {status_info['log_lvl_cfg']}",
        f"  Backend Services: {status_info['conn_svrs_num']}/"
        f"{status_info['total_svrs_num']} connected",
        f"  Catalog Size: {status_info['catalog_size']}",
    ]
    for backend in status_info["backends"]:
        line = f"    - {backend['name']}: {backend['phase']}, {backend['tools']} tools"
        if backend["error"]:
            line += f" (error: {backend['error']})"
        log_lines.append(line)
    if status_info["local_functions"]:
        log_lines.append(f"  Local Functions: {', '.join(status_info['local_functions'])}")
    if status_info.get("err_msg"):
        log_lines.append(f"  Error Details: {status_info['err_msg']}")

    logger.log(log_lvl, "\n".join(log_lines))
