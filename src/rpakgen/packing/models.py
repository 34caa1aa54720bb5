"""Table row models for the pack and stream files.

Every row type is a small slotted dataclass. Binary encoding lives in
:mod:`rpakgen.packing.packers`; these classes only carry values.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import NO_PAGE, NO_STREAM_OFFSET

__all__ = [
    "VirtualSegment",
    "PageInfo",
    "RawDataBlock",
    "PageDescriptor",
    "FileRelation",
    "PagePtr",
    "AssetEntry",
    "PackHeader",
    "StreamEntry",
    "type_tag_to_magic",
]


@dataclass(frozen=True, slots=True)
class VirtualSegment:
    flags: int
    alignment: int
    byte_size: int


@dataclass(frozen=True, slots=True)
class PageInfo:
    segment_index: int
    alignment: int
    byte_size: int


@dataclass(slots=True)
class RawDataBlock:
    page_index: int
    data: bytes

    @property
    def byte_size(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class PageDescriptor:
    """A (page, offset) location; used for pointer and GUID descriptors."""

    page_index: int
    byte_offset: int


@dataclass(frozen=True, slots=True)
class FileRelation:
    owner_asset_index: int


@dataclass(frozen=True, slots=True)
class PagePtr:
    """Pointer into a page as stored inside page data."""

    page_index: int = 0
    byte_offset: int = 0


def type_tag_to_magic(tag: str) -> int:
    """Read a four-character asset tag as a little-endian u32."""
    raw = tag.encode("ascii")
    if len(raw) != 4:
        raise ValueError(f"Asset type tag must be 4 characters: {tag!r}")
    return int.from_bytes(raw, "little")


@dataclass(slots=True)
class AssetEntry:
    guid: int
    type_tag: str
    sub_header_page: int = 0
    sub_header_offset: int = 0
    sub_header_size: int = 0
    raw_data_page: int = NO_PAGE
    raw_data_offset: int = 0
    stream_offset: int = NO_STREAM_OFFSET
    optional_stream_offset: int = NO_STREAM_OFFSET
    page_end: int = 0
    remaining_dependency_count: int = 0
    relations_start: int = 0
    relations_count: int = 0
    uses_start: int = 0
    uses_count: int = 0
    version: int = 1

    @property
    def magic(self) -> int:
        return type_tag_to_magic(self.type_tag)


@dataclass(slots=True)
class PackHeader:
    created_time: int = 0
    compressed_size: int = 0
    decompressed_size: int = 0
    stream_ref_size: int = 0
    optional_stream_ref_size: int = 0
    segment_count: int = 0
    page_count: int = 0
    descriptor_count: int = 0
    asset_count: int = 0
    guid_descriptor_count: int = 0
    relation_count: int = 0
    flags: bytes = b"\x00\x00"


@dataclass(frozen=True, slots=True)
class StreamEntry:
    offset: int
    data: bytes

    @property
    def byte_size(self) -> int:
        return len(self.data)
