"""Tests for logging setup and console status output."""

from __future__ import annotations

import io
import logging
import os

import pytest

from mcp_metaproxy.config import BackendDescriptor
from mcp_metaproxy.display.console import disp_console_status, gen_status_info
from mcp_metaproxy.display.logging_config import build_log_config, setup_logging
from mcp_metaproxy.display.progress import (
    DisplayPhase,
    RuntimeKind,
    StartupDisplay,
    detect_runtime,
)
from mcp_metaproxy.runtime.models import (
    BackendPhase,
    BackendStatusRecord,
    ServiceState,
    ServiceStatus,
)


@pytest.mark.usefixtures("restore_logging")
class TestLoggingConfig:
    def test_log_file_name_and_level(self, tmp_path, capsys) -> None:
        log_fpath, level = setup_logging("debug", log_dir=str(tmp_path))

        assert level == "DEBUG"
        assert os.path.dirname(log_fpath) == str(tmp_path)
        assert os.path.basename(log_fpath).startswith("metaproxy_")
        assert log_fpath.endswith("_DEBUG.log")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Logging initialized" in captured.err

    def test_invalid_level_falls_back_to_info(self, tmp_path, capsys) -> None:
        _, level = setup_logging("chatty", log_dir=str(tmp_path), quiet=True)
        assert level == "INFO"
        assert capsys.readouterr().err == ""

    def test_app_loggers_follow_level(self) -> None:
        cfg = build_log_config("x.log", "WARNING")
        assert cfg["loggers"]["mcp_metaproxy"]["level"] == "WARNING"
        assert cfg["loggers"]["starlette"]["handlers"] == ["file_handler"]
        assert cfg["root"]["level"] == "WARNING"
        assert cfg["handlers"]["file_handler"]["filename"] == "x.log"

    def test_records_reach_the_file(self, tmp_path) -> None:
        log_fpath, _ = setup_logging("info", log_dir=str(tmp_path), quiet=True)
        logging.getLogger("mcp_metaproxy.tests").info("hello from test")
        for handler in logging.getLogger("mcp_metaproxy").handlers:
            handler.flush()

        with open(log_fpath, encoding="utf-8") as f:
            assert "hello from test" in f.read()


def _status() -> ServiceStatus:
    return ServiceStatus(
        state=ServiceState.RUNNING,
        backends_total=2,
        backends_ready=1,
        backends=[
            BackendStatusRecord(name="weather", phase=BackendPhase.READY, tool_count=2),
            BackendStatusRecord(name="broken", phase=BackendPhase.FAILED, error="boom"),
        ],
        local_functions=["add"],
        catalog_size=3,
    )


class TestConsoleStatus:
    def test_gen_status_info(self) -> None:
        info = gen_status_info(_status(), "Serving", transport="sse", host="h", port=9)
        assert info["sse_url"] == "http://h:9/sse"
        assert info["conn_svrs_num"] == 1
        assert info["backends"][1] == {
            "name": "broken",
            "phase": "failed",
            "tools": 0,
            "error": "boom",
        }

    def test_stdio_has_no_url(self) -> None:
        assert gen_status_info(_status(), "Serving")["sse_url"] == "N/A"

    def test_console_output_goes_to_stderr(self, capsys) -> None:
        disp_console_status("Startup", gen_status_info(_status(), "Serving"))
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Backend Services: 1 / 2 connected" in captured.err
        assert "Catalog: 3 tools (1 local)" in captured.err


class TestStartupDisplay:
    def test_detect_runtime(self) -> None:
        assert detect_runtime(BackendDescriptor(command="uvx")) is RuntimeKind.UVX
        assert detect_runtime(BackendDescriptor(command="/usr/bin/python3")) is RuntimeKind.PYTHON
        assert detect_runtime(BackendDescriptor(command="npx")) is RuntimeKind.NPX
        assert detect_runtime(BackendDescriptor(command="my-server")) is RuntimeKind.OTHER

    def test_callback_tracks_phases(self) -> None:
        stream = io.StringIO()
        display = StartupDisplay(
            {"a": BackendDescriptor(command="uvx"), "b": BackendDescriptor(command="npx")},
            stream=stream,
        )
        display.render_initial()
        callback = display.make_callback()
        callback("a", "connecting", None)
        callback("a", "ready", "2 tools")
        callback("b", "failed", "boom")
        display.finalize()

        assert display.phase_of("a") is DisplayPhase.READY
        assert display.phase_of("b") is DisplayPhase.FAILED
        assert display.ready_count == 1
        assert display.failed_count == 1
        assert "Backends: 1/2 connected" in stream.getvalue()

    def test_unfinished_rows_are_skipped(self) -> None:
        display = StartupDisplay({"a": BackendDescriptor(command="uvx")}, stream=io.StringIO())
        display.render_initial()
        display.finalize()
        assert display.phase_of("a") is DisplayPhase.SKIPPED
