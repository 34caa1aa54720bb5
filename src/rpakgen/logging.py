"""Logging utilities for rpakgen.

Stdlib logging routed through the active reporter.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from .reporting import get_reporter, get_verbosity

_LOGGER_NAME = "rpakgen"
_STEP_PREFIX = "  ->"

__all__ = [
    "get_logger",
    "configure_logging",
    "section",
    "step",
]


def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAME)


class _ReporterHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:  # noqa: D401
        rep = get_reporter()
        msg = self.format(record)
        lvl = record.levelno
        if lvl >= logging.ERROR:
            rep.error(msg)
        elif lvl >= logging.WARNING:
            rep.warning(msg)
        elif lvl >= logging.INFO:
            rep.status(msg)
        else:
            rep.verbose(msg)


def configure_logging(verbosity: int = 0) -> None:
    logger = get_logger()
    logger.setLevel(logging.DEBUG if verbosity >= 1 else logging.INFO)

    for h in list(logger.handlers):  # pragma: no cover
        logger.removeHandler(h)

    handler = _ReporterHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def step(message: str) -> None:
    get_reporter().status(f"{_STEP_PREFIX} {message}")


@contextmanager
def section(title: str) -> Iterator[logging.Logger]:
    logger = get_logger()
    get_reporter().section(title)
    try:
        yield logger
    finally:
        if get_verbosity() >= 1:
            logger.debug("end section: %s", title)
