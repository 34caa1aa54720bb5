"""Binary pack / stream file inspection.

Public functions:
- parse_header(data) -> dict
- inspect_pak(path) -> dict
- validate_pak(path) -> list[str]
- parse_stream_file(data) -> dict
- inspect_stream(path) -> dict

Table offsets are not stored in the file; they follow from the header counts
and the fixed body order, which is what :func:`table_layout` recomputes.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List
import struct

from .constants import (
    RPAK_MAGIC,
    RPAK_VERSION,
    HEADER_FORMAT,
    HEADER_SIZE,
    SEGMENT_FORMAT,
    SEGMENT_SIZE,
    PAGE_FORMAT,
    PAGE_SIZE,
    DESCRIPTOR_FORMAT,
    DESCRIPTOR_SIZE,
    RELATION_FORMAT,
    RELATION_SIZE,
    ASSET_ENTRY_FORMAT,
    ASSET_ENTRY_SIZE,
    STREAM_MAGIC,
    STREAM_ALIGNMENT,
    STREAM_PREAMBLE_FORMAT,
    STREAM_PADDING_BYTE,
    STREAM_TRAILER_ENTRY_FORMAT,
    STREAM_TRAILER_ENTRY_SIZE,
    STREAM_COUNT_FORMAT,
    STREAM_COUNT_SIZE,
)

__all__ = [
    "Table",
    "parse_header",
    "table_layout",
    "inspect_pak",
    "validate_pak",
    "parse_stream_file",
    "inspect_stream",
]


@dataclass(slots=True)
class Table:
    offset: int
    count: int
    entry_size: int

    @property
    def end(self) -> int:
        return self.offset + self.count * self.entry_size


def _read_exact(data: bytes, offset: int, size: int, label: str) -> bytes:
    end = offset + size
    if end > len(data):
        raise ValueError(
            f"Out of range read for {label}: {offset}+{size}>{len(data)}"
        )
    return data[offset:end]


def parse_header(data: bytes) -> Dict[str, Any]:
    raw = _read_exact(data, 0, HEADER_SIZE, "header")
    (
        magic,
        version,
        flags,
        created_time,
        _r0,
        compressed_size,
        embedded_stream_offset,
        _r1,
        decompressed_size,
        embedded_stream_size,
        _r2,
        stream_ref_size,
        optional_stream_ref_size,
        segment_count,
        page_count,
        patch_index,
        alignment,
        descriptor_count,
        asset_count,
        guid_descriptor_count,
        relation_count,
        _r3,
    ) = struct.unpack(HEADER_FORMAT, raw)
    return {
        "magic_ok": magic == RPAK_MAGIC,
        "version": version,
        "flags": flags.hex(),
        "created_time": created_time,
        "compressed_size": compressed_size,
        "decompressed_size": decompressed_size,
        "embedded_stream_offset": embedded_stream_offset,
        "embedded_stream_size": embedded_stream_size,
        "stream_ref_size": stream_ref_size,
        "optional_stream_ref_size": optional_stream_ref_size,
        "segment_count": segment_count,
        "page_count": page_count,
        "patch_index": patch_index,
        "alignment": alignment,
        "descriptor_count": descriptor_count,
        "asset_count": asset_count,
        "guid_descriptor_count": guid_descriptor_count,
        "relation_count": relation_count,
    }


def table_layout(header: Dict[str, Any]) -> Dict[str, Table]:
    off = HEADER_SIZE
    stream_paths = Table(off, header["stream_ref_size"], 1)
    off = stream_paths.end
    optional_paths = Table(off, header["optional_stream_ref_size"], 1)
    off = optional_paths.end
    layout: Dict[str, Table] = {
        "stream_paths": stream_paths,
        "optional_stream_paths": optional_paths,
    }
    for name, count_key, size in (
        ("segments", "segment_count", SEGMENT_SIZE),
        ("pages", "page_count", PAGE_SIZE),
        ("descriptors", "descriptor_count", DESCRIPTOR_SIZE),
        ("assets", "asset_count", ASSET_ENTRY_SIZE),
        ("guid_descriptors", "guid_descriptor_count", DESCRIPTOR_SIZE),
        ("relations", "relation_count", RELATION_SIZE),
    ):
        layout[name] = Table(off, header[count_key], size)
        off = layout[name].end
    return layout


def _split_strings(block: bytes) -> List[str]:
    if not block:
        return []
    return [s.decode("utf-8") for s in block.rstrip(b"\x00").split(b"\x00")]


def _rows(data: bytes, table: Table, fmt: str) -> List[tuple]:
    raw = _read_exact(data, table.offset, table.count * table.entry_size, fmt)
    return [row for row in struct.iter_unpack(fmt, raw)]


def _asset_dict(row: tuple) -> Dict[str, Any]:
    (
        guid,
        _reserved,
        sub_header_page,
        sub_header_offset,
        raw_data_page,
        raw_data_offset,
        stream_offset,
        optional_stream_offset,
        page_end,
        remaining_dependency_count,
        relations_start,
        uses_start,
        relations_count,
        uses_count,
        sub_header_size,
        version,
        magic,
    ) = row
    return {
        "guid": f"0x{guid:016X}",
        "type": magic.to_bytes(4, "little").decode("ascii", "replace"),
        "sub_header_page": sub_header_page,
        "sub_header_offset": sub_header_offset,
        "sub_header_size": sub_header_size,
        "raw_data_page": raw_data_page,
        "raw_data_offset": raw_data_offset,
        "stream_offset": stream_offset,
        "optional_stream_offset": optional_stream_offset,
        "page_end": page_end,
        "remaining_dependency_count": remaining_dependency_count,
        "relations_start": relations_start,
        "relations_count": relations_count,
        "uses_start": uses_start,
        "uses_count": uses_count,
        "version": version,
    }


def inspect_pak(path: str | Path) -> Dict[str, Any]:
    data = Path(path).read_bytes()
    header = parse_header(data)
    layout = table_layout(header)
    result: Dict[str, Any] = {
        "file_size": len(data),
        "header": header,
        "layout": {k: asdict(v) for k, v in layout.items()},
    }
    body_end = layout["relations"].end
    if body_end > len(data):
        return result
    result["stream_paths"] = _split_strings(
        data[layout["stream_paths"].offset : layout["stream_paths"].end]
    )
    result["optional_stream_paths"] = _split_strings(
        data[
            layout["optional_stream_paths"].offset : layout[
                "optional_stream_paths"
            ].end
        ]
    )
    result["segments"] = [
        {"flags": fl, "alignment": al, "size": sz}
        for fl, al, sz in _rows(data, layout["segments"], SEGMENT_FORMAT)
    ]
    result["pages"] = [
        {"segment": seg, "alignment": al, "size": sz}
        for seg, al, sz in _rows(data, layout["pages"], PAGE_FORMAT)
    ]
    result["descriptors"] = [
        {"page": p, "offset": o}
        for p, o in _rows(data, layout["descriptors"], DESCRIPTOR_FORMAT)
    ]
    result["assets"] = [
        _asset_dict(r)
        for r in _rows(data, layout["assets"], ASSET_ENTRY_FORMAT)
    ]
    result["guid_descriptors"] = [
        {"page": p, "offset": o}
        for p, o in _rows(data, layout["guid_descriptors"], DESCRIPTOR_FORMAT)
    ]
    result["relations"] = [
        owner for (owner,) in _rows(data, layout["relations"], RELATION_FORMAT)
    ]
    result["raw_data_offset"] = body_end
    result["raw_data_size"] = len(data) - body_end
    return result


def validate_pak(path: str | Path) -> List[str]:
    info = inspect_pak(path)
    header = info["header"]
    issues: List[str] = []
    if not header["magic_ok"]:
        issues.append("Header magic mismatch")
    if header["version"] != RPAK_VERSION:
        issues.append(f"Unsupported version {header['version']}")
    if header["compressed_size"] != header["decompressed_size"]:
        issues.append("Compressed and decompressed sizes differ")
    if header["decompressed_size"] != info["file_size"]:
        issues.append(
            f"Header size {header['decompressed_size']} != file size {info['file_size']}"
        )
    if "segments" not in info:
        issues.append("Tables exceed file size")
        return issues
    for i, page in enumerate(info["pages"]):
        if page["segment"] >= header["segment_count"]:
            issues.append(f"Page {i} references missing segment {page['segment']}")
    for label in ("descriptors", "guid_descriptors"):
        for i, d in enumerate(info[label]):
            if d["page"] >= header["page_count"]:
                issues.append(f"{label}[{i}] references missing page {d['page']}")
    for i, owner in enumerate(info["relations"]):
        if owner >= header["asset_count"]:
            issues.append(f"relations[{i}] references missing asset {owner}")
    page_total = sum(page["size"] for page in info["pages"])
    if info["raw_data_size"] != page_total:
        issues.append(
            f"Raw data is {info['raw_data_size']} bytes, pages total {page_total}"
        )
    return issues


def parse_stream_file(data: bytes) -> Dict[str, Any]:
    padding = _read_exact(data, 8, STREAM_ALIGNMENT - 8, "stream preamble")
    magic, version = struct.unpack_from(STREAM_PREAMBLE_FORMAT, data, 0)
    count_off = len(data) - STREAM_COUNT_SIZE
    if count_off < STREAM_ALIGNMENT:
        raise ValueError("Stream file has no entry count")
    (entry_count,) = struct.unpack_from(STREAM_COUNT_FORMAT, data, count_off)
    trailer_off = count_off - entry_count * STREAM_TRAILER_ENTRY_SIZE
    if trailer_off < STREAM_ALIGNMENT:
        raise ValueError(
            f"Stream trailer for {entry_count} entries overlaps the preamble"
        )
    trailer = data[trailer_off:count_off]
    entries = [
        {"offset": off, "size": size}
        for off, size in struct.iter_unpack(STREAM_TRAILER_ENTRY_FORMAT, trailer)
    ]
    return {
        "file_size": len(data),
        "magic_ok": magic == STREAM_MAGIC,
        "version": version,
        "padding_ok": all(b == STREAM_PADDING_BYTE for b in padding),
        "entry_count": entry_count,
        "entries": entries,
        "trailer_offset": trailer_off,
    }


def inspect_stream(path: str | Path) -> Dict[str, Any]:
    return parse_stream_file(Path(path).read_bytes())
