"""Stream (starpak) file writer.

Layout::

    magic u32 | version u32 | 0xCB padding up to 4096
    payload 0 | payload 1 | ...
    (offset u64, size u64) per payload
    entry count u64

Payload offsets were fixed when each entry was registered, so the trailer can
be emitted after the payloads without any backpatching.
"""

from __future__ import annotations

from pathlib import Path, PureWindowsPath
from typing import Optional

from ..logging import get_logger, section
from ..reporting import get_reporter
from .context import BuildContext
from .errors import (
    BinaryFormatError,
    ValidationError,
    E_INTERNAL,
    E_MULTI_STREAM,
    E_WRITE_IO,
)
from .packers import pack_stream_preamble, pack_stream_trailer

__all__ = ["stream_file_name", "write_stream_file", "maybe_write_stream_file"]


def stream_file_name(declared_path: str) -> str:
    """Base name of a declared stream path (accepts ``\\`` and ``/``)."""
    return PureWindowsPath(declared_path).name


def write_stream_file(ctx: BuildContext, output_path: Path) -> int:
    """Write every registered stream entry to ``output_path``.

    Returns the number of bytes written.
    """
    logger = get_logger()
    rep = get_reporter()
    entries = ctx.stream_entries.rows
    output_path = Path(output_path)
    with section(f"Write stream file {output_path.name}"):
        try:
            f = output_path.open("wb")
        except OSError as exc:
            raise BinaryFormatError(
                E_WRITE_IO,
                f"Cannot create {output_path}: {exc}",
                {"path": str(output_path)},
            ) from exc
        try:
            with f:
                f.write(pack_stream_preamble())
                rep.start_task(
                    "write.stream", "Stream payloads", total=len(entries)
                )
                for entry in entries:
                    if f.tell() != entry.offset:
                        raise BinaryFormatError(
                            E_INTERNAL,
                            f"Stream entry expected at {entry.offset}, "
                            f"writer at {f.tell()}",
                        )
                    f.write(entry.data)
                    rep.advance("write.stream")
                rep.end_task(
                    "write.stream",
                    rows=len(entries),
                    bytes=ctx.stream_entries.next_offset,
                )
                f.write(pack_stream_trailer(entries))
                size = f.tell()
        except Exception:
            output_path.unlink(missing_ok=True)
            raise
    logger.info(
        "Wrote %s: size=%d entries=%d", output_path.name, size, len(entries)
    )
    return size


def maybe_write_stream_file(
    ctx: BuildContext, output_dir: Path
) -> Optional[Path]:
    """Write the stream file when exactly one stream path was declared."""
    paths = ctx.stream_paths
    if not paths:
        if len(ctx.stream_entries):
            get_logger().warning(
                "%d stream entries registered but no stream path declared; "
                "no stream file written",
                len(ctx.stream_entries),
            )
        return None
    if len(paths) > 1:
        raise ValidationError(
            E_MULTI_STREAM,
            f"Only one stream file is supported, {len(paths)} declared",
            {"stream_paths": list(paths)},
        )
    out = Path(output_dir) / stream_file_name(paths[0])
    write_stream_file(ctx, out)
    return out
