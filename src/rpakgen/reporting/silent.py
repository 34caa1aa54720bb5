from __future__ import annotations

from typing import Any

from .base import Reporter, TaskStatus


class SilentReporter(Reporter):
    """Prints nothing; used by tests and ``--reporter silent``.

    Warnings and errors are kept on the instance so callers can still inspect
    what a quiet build complained about.
    """

    def __init__(self) -> None:
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        pass

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        pass

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        pass

    def status(self, message: str, **fields: Any) -> None:
        pass

    def warning(self, message: str, **fields: Any) -> None:
        self.warnings.append(message)

    def error(self, message: str, **fields: Any) -> None:
        self.errors.append(message)

    def section(self, title: str) -> None:
        pass
