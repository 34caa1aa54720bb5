from __future__ import annotations

import sys
import time
from typing import Any, Dict
from .base import (
    Reporter,
    TaskStatus,
    TaskRecord,
    format_task_line,
    get_verbosity,
)

ICONS = {
    TaskStatus.SUCCESS: "✔",
    TaskStatus.FAILED: "✖",
    TaskStatus.SKIPPED: "→",
}


class PlainReporter(Reporter):
    """Line-oriented reporter for logs and non-TTY output."""

    supports_progress = False

    def __init__(self, stream=None, use_color: bool | None = None):
        self.stream = stream or sys.stderr
        if use_color is None:
            use_color = getattr(self.stream, "isatty", lambda: False)()
        self.use_color = use_color
        self._tasks: Dict[str, TaskRecord] = {}

    def _write(self, line: str) -> None:
        self.stream.write(line + "\n")

    def _tag(self, code: str, label: str) -> str:
        if not self.use_color:
            return label
        return f"\x1b[{code}m{label}\x1b[0m"

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        self._tasks[task_id] = TaskRecord(task_id, name, total, meta=meta)

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        rec = self._tasks.get(task_id)
        if rec is None:
            return
        rec.completed += step
        rec.meta.update(meta)
        item = meta.get("current_item")
        if item is not None:
            total = rec.total if rec.total is not None else "?"
            self._write(f"   · {rec.name}: {item} ({rec.completed}/{total})")

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
        self._write(" " + format_task_line(rec, ICONS.get(status, "?")))

    def status(self, message: str, **fields: Any) -> None:
        self._write(f"{self._tag('32', 'INFO')}: {message}")

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() < level:
            return
        self._write(f"{self._tag('36', f'VERB{level}')}: {message}")

    def error(self, message: str, **fields: Any) -> None:
        self._write(f"{self._tag('31', 'ERROR')}: {message}")

    def warning(self, message: str, **fields: Any) -> None:
        self._write(f"{self._tag('33', 'WARN')}: {message}")

    def section(self, title: str) -> None:
        self._write(f"\n[{title}]")
