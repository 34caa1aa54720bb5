"""Two-phase pack file writer.

The header is the first thing in the file but most of its fields (table
counts, total size) are only known once the body has been emitted. The
writer therefore reserves a zeroed header, streams every table and raw block
in format order, then seeks back to offset 0 and rewrites the header with the
final values.

Body order (readers depend on it):

    header | stream paths | optional stream paths | segments | pages |
    descriptors | assets | guid descriptors | relations | raw blocks
"""

from __future__ import annotations

from enum import Enum, auto
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Optional, TypeVar

from ..logging import get_logger, section
from ..reporting import get_reporter
from ..utils.filetime import filetime_now
from .constants import HEADER_SIZE
from .context import BuildContext
from .errors import BinaryFormatError, E_WRITE_IO, internal_error
from .models import PackHeader
from .packers import (
    pack_asset_entry,
    pack_descriptor,
    pack_header,
    pack_page,
    pack_relation,
    pack_segment,
    pack_string_block,
)

__all__ = ["WriterState", "PakFileWriter", "compute_header", "write_pak"]

T = TypeVar("T")


class WriterState(Enum):
    NEW = auto()
    OPENED = auto()
    BODY_WRITTEN = auto()
    CLOSED = auto()


def compute_header(
    ctx: BuildContext,
    *,
    file_size: int,
    stream_ref_size: int,
    optional_stream_ref_size: int,
    created_time: int,
) -> PackHeader:
    """Header values for a pack whose body ended at ``file_size``.

    No compression is performed so both sizes are the file size.
    """
    return PackHeader(
        created_time=created_time,
        compressed_size=file_size,
        decompressed_size=file_size,
        stream_ref_size=stream_ref_size,
        optional_stream_ref_size=optional_stream_ref_size,
        segment_count=len(ctx.segments),
        page_count=len(ctx.pages),
        descriptor_count=len(ctx.pointers),
        asset_count=len(ctx.assets),
        guid_descriptor_count=len(ctx.guid_pointers),
        relation_count=len(ctx.relations),
    )


class PakFileWriter:
    """Writes one pack file from a sealed :class:`BuildContext`.

    Use as a context manager or call :meth:`open`, :meth:`write_body` and
    :meth:`close` in order. If anything fails before :meth:`close` the partial
    file is removed.
    """

    def __init__(
        self,
        ctx: BuildContext,
        output_path: Path,
        *,
        created_time: Optional[int] = None,
    ) -> None:
        self.ctx = ctx
        self.output_path = Path(output_path)
        self.created_time = created_time
        self.state = WriterState.NEW
        self.header: Optional[PackHeader] = None
        self._f: Optional[BinaryIO] = None
        self._stream_ref_size = 0
        self._optional_stream_ref_size = 0

    def _expect(self, state: WriterState) -> None:
        if self.state is not state:
            raise internal_error(
                f"Writer in state {self.state.name}, expected {state.name}"
            )

    def open(self) -> None:
        self._expect(WriterState.NEW)
        if self.ctx.raw_blocks.released:
            raise internal_error("Raw blocks already released; context spent")
        self.ctx.seal()
        try:
            self._f = self.output_path.open("wb")
        except OSError as exc:
            raise BinaryFormatError(
                E_WRITE_IO,
                f"Cannot create {self.output_path}: {exc}",
                {"path": str(self.output_path)},
            ) from exc
        # Placeholder, rewritten in close().
        self._f.write(b"\x00" * HEADER_SIZE)
        self.state = WriterState.OPENED

    def _write_table(
        self,
        key: str,
        label: str,
        rows: Iterable[T],
        packer: Callable[[T], bytes],
    ) -> None:
        assert self._f is not None
        rows = list(rows)
        rep = get_reporter()
        task_id = f"write.{key}"
        start = self._f.tell()
        rep.start_task(task_id, label, total=len(rows))
        for row in rows:
            self._f.write(packer(row))
        rep.advance(task_id, step=len(rows))
        rep.end_task(
            task_id, rows=len(rows), bytes=self._f.tell() - start, offset=start
        )

    def write_body(self) -> None:
        self._expect(WriterState.OPENED)
        assert self._f is not None
        f = self._f
        ctx = self.ctx

        stream_block = pack_string_block(ctx.stream_paths)
        optional_block = pack_string_block(ctx.optional_stream_paths)
        f.write(stream_block)
        f.write(optional_block)
        self._stream_ref_size = len(stream_block)
        self._optional_stream_ref_size = len(optional_block)

        self._write_table("segments", "Virtual segments", ctx.segments, pack_segment)
        self._write_table("pages", "Pages", ctx.pages, pack_page)
        self._write_table(
            "descriptors", "Pointer descriptors", ctx.pointers, pack_descriptor
        )
        self._write_table("assets", "Asset entries", ctx.assets, pack_asset_entry)
        self._write_table(
            "guid_descriptors",
            "GUID descriptors",
            ctx.guid_pointers,
            pack_descriptor,
        )
        self._write_table("relations", "File relations", ctx.relations, pack_relation)

        rep = get_reporter()
        blocks = ctx.raw_blocks.rows
        start = f.tell()
        rep.start_task("write.raw", "Raw data blocks", total=len(blocks))
        for block in blocks:
            f.write(block.data)
            rep.advance("write.raw", current_item=f"page {block.page_index}")
        rep.end_task(
            "write.raw", blocks=len(blocks), bytes=f.tell() - start, offset=start
        )
        self.state = WriterState.BODY_WRITTEN

    def close(self) -> PackHeader:
        self._expect(WriterState.BODY_WRITTEN)
        assert self._f is not None
        f = self._f
        created = (
            self.created_time if self.created_time is not None else filetime_now()
        )
        header = compute_header(
            self.ctx,
            file_size=f.tell(),
            stream_ref_size=self._stream_ref_size,
            optional_stream_ref_size=self._optional_stream_ref_size,
            created_time=created,
        )
        f.seek(0)
        f.write(pack_header(header))
        f.close()
        self._f = None
        self.state = WriterState.CLOSED
        self.header = header
        # Buffers are dropped only once the file handle is closed.
        self.ctx.raw_blocks.release()
        return header

    def abort(self) -> None:
        if self._f is not None:
            self._f.close()
            self._f = None
            self.output_path.unlink(missing_ok=True)
        self.state = WriterState.CLOSED

    def __enter__(self) -> "PakFileWriter":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.abort()


def write_pak(
    ctx: BuildContext,
    output_path: Path,
    *,
    created_time: Optional[int] = None,
) -> PackHeader:
    """Write ``ctx`` to ``output_path`` and return the final header."""
    logger = get_logger()
    output_path = Path(output_path)
    with section(f"Write pak {output_path.name}"):
        with PakFileWriter(ctx, output_path, created_time=created_time) as w:
            w.write_body()
            header = w.close()
    logger.info(
        "Wrote %s: size=%d segments=%d pages=%d descriptors=%d assets=%d "
        "guid_descriptors=%d relations=%d",
        output_path.name,
        header.decompressed_size,
        header.segment_count,
        header.page_count,
        header.descriptor_count,
        header.asset_count,
        header.guid_descriptor_count,
        header.relation_count,
    )
    return header
