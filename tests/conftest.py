"""Shared fixtures."""

from __future__ import annotations

import logging

import pytest

from mcp_metaproxy.display.logging_config import APP_LOGGERS


@pytest.fixture()
def restore_logging():
    """Undo setup_logging() so later tests see default logger wiring."""
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    for name in APP_LOGGERS + ("uvicorn.access",):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)
