"""Windows FILETIME helpers."""

from __future__ import annotations

import time

from ..packing.constants import FILETIME_TICKS_PER_SECOND, FILETIME_UNIX_OFFSET

__all__ = ["filetime_now", "unix_to_filetime", "filetime_to_unix"]


def unix_to_filetime(seconds: float) -> int:
    return int((seconds + FILETIME_UNIX_OFFSET) * FILETIME_TICKS_PER_SECOND)


def filetime_to_unix(filetime: int) -> float:
    return filetime / FILETIME_TICKS_PER_SECOND - FILETIME_UNIX_OFFSET


def filetime_now() -> int:
    return unix_to_filetime(time.time())
