from __future__ import annotations

import os
import time
from typing import Any, Dict, List

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .base import (
    Reporter,
    TaskStatus,
    TaskRecord,
    format_task_line,
    get_verbosity,
)

_STATUS_ICON = {
    TaskStatus.SUCCESS: "[green]✔[/]",
    TaskStatus.FAILED: "[red]✖[/]",
    TaskStatus.SKIPPED: "[yellow]→[/]",
}


class RichReporter(Reporter):
    """Progress bars per written table on an interactive terminal."""

    supports_progress = True

    def __init__(self, console: Console | None = None):
        self.console = console or Console(
            stderr=True, highlight=False, soft_wrap=False
        )
        self._transient = os.getenv(
            "RPAKGEN_PROGRESS_TRANSIENT", "0"
        ).lower() in ("1", "true", "yes")
        self.progress: Progress | None = None
        self._tasks: Dict[str, TaskRecord] = {}
        self._progress_ids: Dict[str, TaskID] = {}
        self._deferred: List[str] = []

    def _ensure_progress(self) -> Progress:
        if self.progress is None:
            self.progress = Progress(
                SpinnerColumn(spinner_name="dots"),
                TextColumn("{task.description}", justify="left"),
                BarColumn(bar_width=None),
                TextColumn("{task.completed}/{task.total}"),
                TimeElapsedColumn(),
                transient=self._transient,
                console=self.console,
                expand=True,
            )
            self.progress.start()
        return self.progress

    def _stop_progress(self) -> None:
        if self.progress is None:
            return
        try:
            self.progress.stop()
        finally:
            self.progress = None
            self._progress_ids.clear()
            if self._deferred:
                self.console.print("\n".join(self._deferred))
                self._deferred.clear()

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        self._tasks[task_id] = TaskRecord(task_id, name, total, meta=meta)
        if total is None:
            # Open-ended tasks render as a heading, not a bar.
            self.console.rule(name)
            return
        progress = self._ensure_progress()
        self._progress_ids[task_id] = progress.add_task(name, total=total)

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        rec = self._tasks.get(task_id)
        if rec is None:
            return
        rec.completed += step
        rec.meta.update(meta)
        pid = self._progress_ids.get(task_id)
        if pid is not None and self.progress is not None:
            self.progress.update(pid, completed=rec.completed)

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        rec = self._tasks.pop(task_id, None)
        if rec is None:
            return
        rec.status = status
        rec.end_time = time.time()
        rec.meta.update(final_meta)
        pid = self._progress_ids.pop(task_id, None)
        if pid is not None and self.progress is not None:
            if rec.total is not None:
                self.progress.update(pid, completed=rec.total)
            self.progress.remove_task(pid)
        line = format_task_line(rec, _STATUS_ICON.get(status, ""))
        if self._transient and self.progress is not None:
            self._deferred.append(line)
        else:
            self.console.print(line)
        if not self._progress_ids:
            self._stop_progress()

    def status(self, message: str, **fields: Any) -> None:
        self.console.print(f"[green]INFO[/]: {message}")

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() < level:
            return
        self.console.print(f"[cyan]VERB{level}[/]: {message}")

    def error(self, message: str, **fields: Any) -> None:
        self.console.print(f"[bold red]ERROR[/]: {message}")

    def warning(self, message: str, **fields: Any) -> None:
        self.console.print(f"[yellow]WARN[/]: {message}")

    def section(self, title: str) -> None:
        self.console.rule(title)

    def flush(self) -> None:
        self._stop_progress()
