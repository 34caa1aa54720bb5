"""Progress and diagnostic reporters.

``create_reporter`` maps a ``--reporter`` choice to a backend; the active
instance is installed with ``set_reporter`` and shared by logging and the
writers.
"""

from __future__ import annotations

import sys

from .base import (
    Reporter,
    TaskStatus,
    get_reporter,
    get_verbosity,
    section,
    set_reporter,
    set_verbosity,
    task,
)
from .plain import PlainReporter
from .rich_reporter import RichReporter
from .silent import SilentReporter

REPORTER_KINDS = ("plain", "rich", "silent")


def create_reporter(kind: str, *, isatty: bool | None = None) -> Reporter:
    """Build the reporter for ``kind``; rich needs a terminal on stderr."""
    if kind not in REPORTER_KINDS:
        raise ValueError(f"Unknown reporter '{kind}'")
    if kind == "silent":
        return SilentReporter()
    if isatty is None:
        isatty = sys.stderr.isatty()
    if kind == "rich" and isatty:
        return RichReporter()
    return PlainReporter()


__all__ = [
    "REPORTER_KINDS",
    "Reporter",
    "TaskStatus",
    "create_reporter",
    "get_reporter",
    "set_reporter",
    "section",
    "task",
    "set_verbosity",
    "get_verbosity",
    "PlainReporter",
    "SilentReporter",
    "RichReporter",
]
