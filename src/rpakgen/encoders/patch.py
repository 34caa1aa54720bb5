"""``Ptch`` patch-master asset.

Sub-header page (24 bytes)::

    u32 unk (255) | u32 entry_count | ptr names | ptr patch_numbers

Data page::

    ptr name[entry_count] | u8 patch_number[entry_count] | NUL-terminated names

Every pointer is registered as a pointer descriptor so the loader can
relocate it.
"""

from __future__ import annotations

import struct
from pathlib import Path
from typing import List, Tuple

from ..packing.constants import PAGE_PTR_SIZE
from ..packing.context import BuildContext
from ..packing.models import AssetEntry, PagePtr
from ..packing.packers import pack_page_ptr
from ..spec.models import FileEntry
from .base import AssetEncoder, parse_guid

__all__ = ["PatchEncoder", "PATCH_MASTER_GUID"]

PATCH_MASTER_GUID = 0x6FC6FA5AD8F8BC9C
PATCH_HEADER_PREFIX = "<II"
PATCH_HEADER_SIZE = struct.calcsize(PATCH_HEADER_PREFIX) + 2 * PAGE_PTR_SIZE
PATCH_HEADER_UNK = 255
PATCH_ALIGNMENT = 8
HEADER_SEGMENT_FLAGS = 0
DATA_SEGMENT_FLAGS = 1


class PatchEncoder(AssetEncoder):
    tag = "Ptch"

    def _entries(self, entry: FileEntry) -> List[Tuple[str, int]]:
        raw = entry.get("entries")
        if not isinstance(raw, list) or not raw:
            raise self.fail(entry, "'entries' must be a non-empty list")
        out: List[Tuple[str, int]] = []
        for i, item in enumerate(raw):
            if not isinstance(item, dict):
                raise self.fail(entry, f"entries[{i}] must be an object")
            name = item.get("path")
            version = item.get("version")
            if not isinstance(name, str) or not name:
                raise self.fail(entry, f"entries[{i}].path must be a string")
            if not isinstance(version, int) or not 0 <= version <= 0xFF:
                raise self.fail(entry, f"entries[{i}].version must be 0-255")
            out.append((name, version))
        return out

    def encode(
        self, ctx: BuildContext, entry: FileEntry, assets_dir: Path
    ) -> int:
        patches = self._entries(entry)
        try:
            guid = parse_guid(entry.get("guid", PATCH_MASTER_GUID))
        except ValueError as exc:
            raise self.fail(entry, str(exc)) from exc

        count = len(patches)
        names = [name.encode("utf-8") + b"\x00" for name, _ in patches]
        numbers_offset = count * PAGE_PTR_SIZE
        names_offset = numbers_offset + count
        data_size = names_offset + sum(len(n) for n in names)

        header_page, _ = ctx.allocate(
            PATCH_HEADER_SIZE, HEADER_SEGMENT_FLAGS, PATCH_ALIGNMENT
        )
        data_page, _ = ctx.allocate(
            data_size, DATA_SEGMENT_FLAGS, PATCH_ALIGNMENT
        )

        prefix_size = struct.calcsize(PATCH_HEADER_PREFIX)
        header = (
            struct.pack(PATCH_HEADER_PREFIX, PATCH_HEADER_UNK, count)
            + pack_page_ptr(PagePtr(data_page, 0))
            + pack_page_ptr(PagePtr(data_page, numbers_offset))
        )
        ctx.register_pointer(header_page, prefix_size)
        ctx.register_pointer(header_page, prefix_size + PAGE_PTR_SIZE)

        data = bytearray()
        cursor = names_offset
        for name in names:
            ctx.register_pointer(data_page, len(data))
            data += pack_page_ptr(PagePtr(data_page, cursor))
            cursor += len(name)
        data += bytes(version for _, version in patches)
        data += b"".join(names)

        ctx.add_raw_block(header_page, header)
        ctx.add_raw_block(data_page, data)

        return ctx.add_asset(
            AssetEntry(
                guid=guid,
                type_tag=self.tag,
                sub_header_page=header_page,
                sub_header_size=PATCH_HEADER_SIZE,
                raw_data_page=data_page,
                page_end=data_page + 1,
                remaining_dependency_count=1,
                version=1,
            )
        )
