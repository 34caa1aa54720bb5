"""Build summary JSON.

The summary is an optional artifact describing what a build wrote. It is only
produced when the caller asks for it (``--emit-summary``).
"""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
import hashlib
import json
from typing import Any

from .packing.models import PackHeader

__all__ = ["build_summary", "summary_dict"]


def _file_info(path: Path) -> dict[str, Any]:
    data = path.read_bytes()
    return {
        "name": path.name,
        "size": len(data),
        "sha256": hashlib.sha256(data).hexdigest(),
    }


def summary_dict(
    header: PackHeader,
    pak_path: Path,
    *,
    stream_path: Path | None = None,
    stream_entry_count: int = 0,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    counts = asdict(header)
    counts.pop("flags", None)
    d: dict[str, Any] = {
        "version": 1,
        "pak": _file_info(pak_path),
        "header": counts,
        "stream": None,
    }
    if stream_path is not None:
        d["stream"] = {
            **_file_info(stream_path),
            "entries": stream_entry_count,
        }
    if warnings:
        d["warnings"] = warnings
    return d


def build_summary(
    header: PackHeader,
    pak_path: Path,
    output_path: Path,
    *,
    stream_path: Path | None = None,
    stream_entry_count: int = 0,
    warnings: list[str] | None = None,
) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = summary_dict(
        header,
        pak_path,
        stream_path=stream_path,
        stream_entry_count=stream_entry_count,
        warnings=warnings,
    )
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)
        f.write("\n")
    return output_path
