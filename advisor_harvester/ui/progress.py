"""Terminal progress helpers with Rich-based rendering."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text


@dataclass
class ProgressState:
    total: int
    completed: int = 0
    success: int = 0
    failed: int = 0


class RateColumn(ProgressColumn):
    """Requests settled per second."""

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text("", style="progress.percentage")
        return Text(f"{speed:.1f} req/s", style="progress.percentage")


class ProgressReporter:
    """Render one progress bar per phase and keep counters for the summary.

    Falls back to counting silently when stdout is not a terminal.
    """

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self.state: ProgressState | None = None

    def start(self, total: int, label: str, completed: int = 0) -> None:
        self.close()
        self.state = ProgressState(total=total, completed=completed)
        if not self.enabled:
            return
        if self._console is None:
            self._console = Console()
        if not self._console.is_terminal:
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.description:<22}"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            RateColumn(),
            TextColumn("[red]✗{task.fields[failed]:>3}", justify="right"),
            console=self._console,
            transient=True,
            expand=True,
        )
        try:
            self._progress.start()
        except LiveError:
            # Another live display owns the console.
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(label, total=total, completed=completed, failed=0)

    def advance(self, success: bool = True) -> None:
        if not self.state:
            raise RuntimeError("ProgressReporter.start must be called before advance")
        self.state.completed += 1
        if success:
            self.state.success += 1
        else:
            self.state.failed += 1
        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, advance=1, failed=self.state.failed)

    def close(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
        self._task_id = None


__all__ = ["ProgressReporter", "ProgressState", "RateColumn"]
