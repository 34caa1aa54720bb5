"""Pure binary packing functions for rpakgen.

All functions are side-effect free and validate sizes.
"""

from __future__ import annotations

import struct
from typing import Iterable, Sequence

from .constants import (
    RPAK_MAGIC,
    RPAK_VERSION,
    HEADER_FORMAT,
    HEADER_SIZE,
    SEGMENT_FORMAT,
    PAGE_FORMAT,
    DESCRIPTOR_FORMAT,
    RELATION_FORMAT,
    ASSET_ENTRY_FORMAT,
    ASSET_ENTRY_SIZE,
    PAGE_PTR_FORMAT,
    MAX_U32,
    STREAM_MAGIC,
    STREAM_VERSION,
    STREAM_PREAMBLE_FORMAT,
    STREAM_PADDING_BYTE,
    STREAM_PADDING_SIZE,
    STREAM_ALIGNMENT,
    STREAM_TRAILER_ENTRY_FORMAT,
    STREAM_COUNT_FORMAT,
)
from .errors import BinaryFormatError, E_COUNT_OVERFLOW
from .models import (
    AssetEntry,
    FileRelation,
    PackHeader,
    PageDescriptor,
    PageInfo,
    PagePtr,
    StreamEntry,
    VirtualSegment,
)

__all__ = [
    "pack_header",
    "pack_segment",
    "pack_page",
    "pack_descriptor",
    "pack_relation",
    "pack_asset_entry",
    "pack_page_ptr",
    "pack_string_block",
    "pack_stream_preamble",
    "pack_stream_trailer",
]


def _u32(value: int) -> int:
    # -1 sentinels are stored as all-ones.
    return value & MAX_U32


def pack_header(header: PackHeader) -> bytes:
    try:
        out = struct.pack(
            HEADER_FORMAT,
            RPAK_MAGIC,
            RPAK_VERSION,
            header.flags,
            header.created_time,
            b"",
            header.compressed_size,
            0,  # embedded stream offset
            b"",
            header.decompressed_size,
            0,  # embedded stream size
            b"",
            header.stream_ref_size,
            header.optional_stream_ref_size,
            header.segment_count,
            header.page_count,
            0,  # patch index
            0,  # alignment
            header.descriptor_count,
            header.asset_count,
            header.guid_descriptor_count,
            header.relation_count,
            b"",
        )
    except struct.error as exc:
        raise BinaryFormatError(
            E_COUNT_OVERFLOW,
            f"Header field out of range: {exc}",
            {"header": header},
        ) from exc
    if len(out) != HEADER_SIZE:  # pragma: no cover
        raise BinaryFormatError("E_SIZE", f"Header size mismatch: {len(out)}")
    return out


def _pack_row(label: str, row: object, fmt: str, *values: object) -> bytes:
    try:
        return struct.pack(fmt, *values)
    except struct.error as exc:
        raise BinaryFormatError(
            E_COUNT_OVERFLOW,
            f"{label} field out of range: {exc}",
            {label.lower().replace(" ", "_"): row},
        ) from exc


def pack_segment(seg: VirtualSegment) -> bytes:
    return _pack_row(
        "Segment", seg, SEGMENT_FORMAT, seg.flags, seg.alignment, seg.byte_size
    )


def pack_page(page: PageInfo) -> bytes:
    return _pack_row(
        "Page",
        page,
        PAGE_FORMAT,
        page.segment_index,
        page.alignment,
        page.byte_size,
    )


def pack_descriptor(desc: PageDescriptor) -> bytes:
    return _pack_row(
        "Descriptor",
        desc,
        DESCRIPTOR_FORMAT,
        desc.page_index,
        desc.byte_offset,
    )


def pack_relation(rel: FileRelation) -> bytes:
    return _pack_row("Relation", rel, RELATION_FORMAT, rel.owner_asset_index)


def pack_page_ptr(ptr: PagePtr) -> bytes:
    return _pack_row(
        "Page pointer", ptr, PAGE_PTR_FORMAT, ptr.page_index, ptr.byte_offset
    )


def pack_asset_entry(entry: AssetEntry) -> bytes:
    out = _pack_row(
        "Asset entry",
        entry,
        ASSET_ENTRY_FORMAT,
        entry.guid,
        b"",
        _u32(entry.sub_header_page),
        entry.sub_header_offset,
        _u32(entry.raw_data_page),
        entry.raw_data_offset,
        entry.stream_offset,
        entry.optional_stream_offset,
        entry.page_end,
        entry.remaining_dependency_count,
        entry.relations_start,
        entry.uses_start,
        entry.relations_count,
        entry.uses_count,
        entry.sub_header_size,
        entry.version,
        entry.magic,
    )
    if len(out) != ASSET_ENTRY_SIZE:  # pragma: no cover
        raise BinaryFormatError(
            "E_SIZE", f"Asset entry size mismatch: {len(out)}"
        )
    return out


def pack_string_block(paths: Iterable[str]) -> bytes:
    """Concatenate paths as NUL-terminated UTF-8 strings."""
    return b"".join(p.encode("utf-8") + b"\x00" for p in paths)


def pack_stream_preamble() -> bytes:
    out = struct.pack(STREAM_PREAMBLE_FORMAT, STREAM_MAGIC, STREAM_VERSION)
    out += bytes([STREAM_PADDING_BYTE]) * STREAM_PADDING_SIZE
    if len(out) != STREAM_ALIGNMENT:  # pragma: no cover
        raise BinaryFormatError(
            "E_SIZE", f"Stream preamble size mismatch: {len(out)}"
        )
    return out


def pack_stream_trailer(entries: Sequence[StreamEntry]) -> bytes:
    rows = b"".join(
        struct.pack(STREAM_TRAILER_ENTRY_FORMAT, e.offset, e.byte_size)
        for e in entries
    )
    return rows + struct.pack(STREAM_COUNT_FORMAT, len(entries))
