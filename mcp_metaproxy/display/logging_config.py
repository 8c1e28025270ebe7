"""Logging configuration setup.

All log output goes to a timestamped file under ``LOG_DIR``. Nothing is
ever written to stdout, which carries the MCP protocol in stdio mode.
"""

import copy
import logging
import logging.config
import os
import sys
from datetime import datetime
from typing import Optional, Tuple

from mcp_metaproxy.constants import LOG_DIR

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

BASE_LOG_CFG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple_file": {
            "format": ("%(asctime)s - %(name)25s:%(lineno)-4d - " "%(levelname)-7s - %(message)s"),
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "file_handler": {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "simple_file",
            "filename": "temp_log_name.log",
            "encoding": "utf-8",
        },
    },
    "loggers": {
        "uvicorn": {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": "INFO",
        },
        "uvicorn.error": {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": "INFO",
        },
        "uvicorn.access": {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": "WARNING",
        },
        "mcp_metaproxy": {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": "INFO",
        },
        "mcp": {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": "INFO",
        },
    },
    "root": {
        "handlers": ["file_handler"],
        "level": "WARNING",
    },
}

# Loggers whose level follows --log-level. Submodules of mcp_metaproxy
# inherit from the package logger.
APP_LOGGERS = (
    "mcp_metaproxy",
    "mcp",
    "uvicorn",
    "uvicorn.error",
    "starlette",
)


def _normalize_level(log_lvl_str: str, quiet: bool) -> str:
    log_lvl_valid = (log_lvl_str or "").upper()
    if log_lvl_valid not in VALID_LEVELS:
        if not quiet:
            print(f"Warning: invalid log level '{log_lvl_str}'. Using 'INFO'.", file=sys.stderr)
        log_lvl_valid = "INFO"
    return log_lvl_valid


def build_log_config(log_fpath: str, log_lvl_valid: str) -> dict:
    """Return a dictConfig mapping writing to *log_fpath* at *log_lvl_valid*."""
    log_cfg: dict = copy.deepcopy(BASE_LOG_CFG)
    log_cfg["handlers"]["file_handler"]["filename"] = log_fpath

    for name in APP_LOGGERS:
        if name in log_cfg["loggers"]:
            log_cfg["loggers"][name]["level"] = log_lvl_valid
        else:
            log_cfg["loggers"][name] = {
                "handlers": ["file_handler"],
                "propagate": False,
                "level": log_lvl_valid,
            }

    log_cfg["loggers"]["uvicorn.access"]["level"] = (
        "INFO" if log_lvl_valid == "DEBUG" else "WARNING"
    )
    log_cfg["root"]["level"] = log_lvl_valid if log_lvl_valid == "DEBUG" else "WARNING"
    return log_cfg


def setup_logging(
    log_lvl_str: str, *, quiet: bool = False, log_dir: Optional[str] = None
) -> Tuple[str, str]:
    """
    Set up the logging system.

    Uses a timestamped dynamic filename and adjusts module log levels
    based on command-line arguments.

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        quiet: If *True*, suppress the stderr notices.
        log_dir: Directory for the log file. Defaults to ``LOG_DIR``.

    Returns:
        A tuple of (log_file_path, validated_log_level).
    """
    log_lvl_valid = _normalize_level(log_lvl_str, quiet)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    target_dir = log_dir or LOG_DIR
    os.makedirs(target_dir, exist_ok=True)
    log_fpath = os.path.join(target_dir, f"metaproxy_{ts}_{log_lvl_valid}.log")

    try:
        logging.config.dictConfig(build_log_config(log_fpath, log_lvl_valid))
        if not quiet:
            print(
                f"Logging initialized. File log level: {log_lvl_valid}, " f"log file: {log_fpath}",
                file=sys.stderr,
            )
    except Exception as e_log_cfg:
        if not quiet:
            print(
                f"Error applying logging configuration: {e_log_cfg}",
                file=sys.stderr,
            )

    return log_fpath, log_lvl_valid
