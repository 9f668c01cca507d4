from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table


def _format_last_item(name: str, *, max_len: int = 48) -> str:
    if len(name) <= max_len:
        return name
    return "..." + name[-(max_len - 3):]


class BuildProgress:
    """One bar per build stage; disabled progress turns every call into a no-op."""

    def __init__(self, *, enabled: bool, console: Optional[Console] = None) -> None:
        self._enabled = bool(enabled)
        self._console = console or Console(stderr=True)
        self._progress: Optional[Progress] = None
        self._tasks: Dict[str, Any] = {}
        self._started = False
        if self._enabled:
            self._progress = Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TextColumn("{task.fields[item]}", justify="left"),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )

    def __enter__(self) -> BuildProgress:
        if self._enabled and self._progress and not self._started:
            self._progress.start()
            self._started = True
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        if self._enabled and self._progress and self._started:
            self._progress.stop()
            self._started = False

    def start_stage(self, stage: str, *, total: Optional[int] = None) -> None:
        if not self._enabled or not self._progress:
            return
        task = self._tasks.get(stage)
        if task is None:
            self._tasks[stage] = self._progress.add_task(stage, total=total, item="")
        else:
            self._progress.reset(task, total=total, completed=0)

    def advance(self, stage: str, item: str = "", *, count: int = 1) -> None:
        if not self._enabled or not self._progress:
            return
        task = self._tasks.get(stage)
        if task is None:
            return
        self._progress.update(task, advance=count, item=_format_last_item(item))


def render_build_summary_table(
    *,
    enabled: bool,
    title: str,
    status: str,
    metrics: Dict[str, Any],
    outdir: str,
    console: Optional[Console] = None,
) -> None:
    if not enabled:
        return
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Status", status)
    for key, value in metrics.items():
        table.add_row(key.replace("_", " ").capitalize(), str(value))
    table.add_row("Output dir", outdir)
    (console or Console(stderr=True)).print(table)
