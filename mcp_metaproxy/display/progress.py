"""Backend startup progress display.

One spinner row per configured backend, coloured by the runtime that
launches it (uvx/python blue, npx/node orange, docker magenta). Rows end
with a checkmark and the tool count, or a red X and the failure reason.
Everything renders to stderr so stdout stays free for the MCP channel.
"""

from __future__ import annotations

import os
import sys
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, TextIO

from rich.console import Console
from rich.progress import Progress, ProgressColumn, SpinnerColumn, Task, TimeElapsedColumn
from rich.text import Text

from mcp_metaproxy.config.schema import BackendDescriptor


class DisplayPhase(str, Enum):
    PENDING = "pending"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"
    SKIPPED = "skipped"


class RuntimeKind(str, Enum):
    UVX = "uvx"
    NPX = "npx"
    DOCKER = "docker"
    PYTHON = "python"
    NODE = "node"
    OTHER = "stdio"


def detect_runtime(descriptor: BackendDescriptor) -> RuntimeKind:
    """Guess the launching runtime from the backend command."""
    cmd = os.path.basename(descriptor.command).lower()
    if cmd in ("uvx", "uv"):
        return RuntimeKind.UVX
    if cmd in ("npx", "npm"):
        return RuntimeKind.NPX
    if cmd in ("docker", "podman"):
        return RuntimeKind.DOCKER
    if "python" in cmd:
        return RuntimeKind.PYTHON
    if cmd in ("node", "tsx", "ts-node", "bun", "deno"):
        return RuntimeKind.NODE
    return RuntimeKind.OTHER


# runtime -> (spinner style, name style, status style)
_STYLES: Dict[RuntimeKind, tuple] = {
    RuntimeKind.UVX: ("bold bright_blue", "cyan", "blue"),
    RuntimeKind.PYTHON: ("bold blue", "bright_cyan", "bright_blue"),
    RuntimeKind.NPX: ("bold bright_red", "dark_orange", "orange3"),
    RuntimeKind.NODE: ("bold red", "orange3", "bright_red"),
    RuntimeKind.DOCKER: ("bold bright_magenta", "magenta", "bright_magenta"),
    RuntimeKind.OTHER: ("bold white", "white", "white"),
}


class _StatusSpinnerColumn(ProgressColumn):
    """Animated dots while connecting, then the result icon."""

    def __init__(self) -> None:
        super().__init__()
        self._spinner = SpinnerColumn("dots")

    def render(self, task: Task) -> Text:
        fields = task.fields
        if task.finished:
            return Text(
                f"  {fields.get('result_icon', '✓')}",
                style=fields.get("result_style", "bold bright_green"),
            )
        result = Text("  ", style=fields.get("spinner_style", "bold white"))
        result.append(self._spinner.render(task))
        return result


class _BackendNameColumn(ProgressColumn):
    """Renders ``Connecting <name> (<runtime>): ``."""

    def render(self, task: Task) -> Text:
        fields = task.fields
        line = Text("Connecting ")
        line.append(fields.get("backend_name", task.description), style=fields.get("name_style"))
        line.append(f" ({fields.get('runtime_label', '')}): ")
        return line


class _StatusTextColumn(ProgressColumn):
    def render(self, task: Task) -> Text:
        fields = task.fields
        return Text(
            fields.get("status_msg", "Pending..."),
            style=fields.get("current_status_style", "blue"),
        )


class _BackendEntry:
    __slots__ = ("name", "runtime", "phase", "message", "start_time", "task_id")

    def __init__(self, name: str, runtime: RuntimeKind) -> None:
        self.name = name
        self.runtime = runtime
        self.phase = DisplayPhase.PENDING
        self.message = "Pending..."
        self.start_time = time.monotonic()
        self.task_id = None


class StartupDisplay:
    """Rich progress display for backend startup.

    Parameters
    ----------
    backends : dict
        ``{name: BackendDescriptor}`` from the loaded configuration.
    stream : TextIO
        Output stream, ``sys.stderr`` by default.
    """

    def __init__(
        self,
        backends: Dict[str, BackendDescriptor],
        stream: Optional[TextIO] = None,
    ) -> None:
        self._console = Console(stderr=True, file=stream if stream is not None else sys.stderr)
        self._entries: Dict[str, _BackendEntry] = {}
        self._ordered: List[_BackendEntry] = []
        self._progress: Optional[Progress] = None
        self._finalized = False

        for name, descriptor in backends.items():
            entry = _BackendEntry(name, detect_runtime(descriptor))
            self._entries[name] = entry
            self._ordered.append(entry)

    @property
    def ready_count(self) -> int:
        return sum(1 for e in self._ordered if e.phase == DisplayPhase.READY)

    @property
    def failed_count(self) -> int:
        return sum(1 for e in self._ordered if e.phase == DisplayPhase.FAILED)

    def phase_of(self, name: str) -> Optional[DisplayPhase]:
        entry = self._entries.get(name)
        return entry.phase if entry else None

    def render_initial(self) -> None:
        """Print the header and start the live display."""
        if not self._ordered:
            return

        self._console.print(
            f"\n[bold]Backend operations:[/bold] {len(self._ordered)} connection(s)\n"
        )
        self._progress = Progress(
            _StatusSpinnerColumn(),
            _BackendNameColumn(),
            _StatusTextColumn(),
            TimeElapsedColumn(),
            console=self._console,
            transient=False,
            redirect_stdout=False,
            redirect_stderr=False,
            refresh_per_second=12,
        )
        self._progress.start()

        for entry in self._ordered:
            spinner_style, name_style, status_style = _STYLES[entry.runtime]
            entry.task_id = self._progress.add_task(
                entry.name,
                total=1,
                completed=0,
                backend_name=entry.name,
                runtime_label=entry.runtime.value,
                spinner_style=spinner_style,
                name_style=name_style,
                status_msg="Pending...",
                current_status_style=status_style,
            )

    def update(self, name: str, phase: str, message: Optional[str] = None) -> None:
        """Record a phase change for *name* and refresh its row."""
        entry = self._entries.get(name)
        if entry is None or self._finalized:
            return
        try:
            entry.phase = DisplayPhase(phase)
        except ValueError:
            return
        if message is not None:
            entry.message = message

        if self._progress is None or entry.task_id is None:
            return

        if entry.phase == DisplayPhase.READY:
            status = f"Ready ({entry.message})" if message else "Ready"
            self._progress.update(
                entry.task_id,
                completed=1,
                status_msg=status,
                current_status_style="green",
                result_icon="✓",
                result_style="bold bright_green",
            )
        elif entry.phase == DisplayPhase.FAILED:
            self._progress.update(
                entry.task_id,
                completed=1,
                status_msg=entry.message or "Failed",
                current_status_style="red",
                result_icon="✗",
                result_style="bold red",
            )
        else:
            self._progress.update(
                entry.task_id,
                status_msg="Connecting..." if entry.phase == DisplayPhase.CONNECTING else "Pending...",
                current_status_style=_STYLES[entry.runtime][2],
            )

    def finalize(self) -> None:
        """Stop the live display and print a summary line."""
        if self._finalized:
            return
        self._finalized = True

        if self._progress is not None:
            for entry in self._ordered:
                if entry.task_id is not None and not self._progress.tasks[entry.task_id].finished:
                    entry.phase = DisplayPhase.SKIPPED
                    self._progress.update(
                        entry.task_id,
                        completed=1,
                        status_msg="Skipped",
                        current_status_style="dim",
                        result_icon="-",
                        result_style="dim",
                    )
            self._progress.stop()

        if not self._ordered:
            return
        total = len(self._ordered)
        if self.failed_count == 0:
            self._console.print(
                f"\n[bold bright_green]Backends: {self.ready_count}/{total} connected"
                f"[/bold bright_green]\n"
            )
        else:
            self._console.print(
                f"\n[bold bright_red]Backends: {self.ready_count}/{total} connected"
                f"[/bold bright_red]  [red]({self.failed_count} failed)[/red]\n"
            )

    def make_callback(self) -> Callable[[str, str, Optional[str]], None]:
        """Return a ``callback(name, phase, message)`` for ProxyAggregator.start."""

        def _cb(name: str, phase: str, message: Optional[str] = None) -> None:
            self.update(name, phase, message)

        return _cb
