"""Build context shared by encoders and writers.

A :class:`BuildContext` owns every table of one build. Encoders mutate it
through the methods below; :meth:`BuildContext.seal` freezes it before the
writers drain it.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from .allocator import PageAllocator
from .models import AssetEntry, StreamEntry, VirtualSegment
from .registries import (
    AssetTable,
    RawBlockRegistry,
    RelocationRegistry,
    StreamEntryRegistry,
)
from .errors import PakError, E_SEALED

__all__ = ["BuildContext"]


class BuildContext:
    def __init__(self) -> None:
        self.allocator = PageAllocator()
        self.relocations = RelocationRegistry()
        self.assets = AssetTable()
        self.raw_blocks = RawBlockRegistry()
        self.stream_entries = StreamEntryRegistry()
        self.stream_paths: List[str] = []
        self.optional_stream_paths: List[str] = []
        self._sealed = False

    # Allocation / registration -------------------------------------------------
    def allocate(
        self,
        size: int,
        flags: int,
        alignment: int,
        page_alignment: Optional[int] = None,
    ) -> Tuple[int, VirtualSegment]:
        return self.allocator.allocate(size, flags, alignment, page_alignment)

    def register_pointer(self, page_index: int, byte_offset: int) -> None:
        self.relocations.register_pointer(page_index, byte_offset)

    def register_guid_pointer(self, page_index: int, byte_offset: int) -> None:
        self.relocations.register_guid_pointer(page_index, byte_offset)

    def register_relations(self, owner_asset_index: int, count: int) -> int:
        return self.relocations.register_relations(owner_asset_index, count)

    def add_raw_block(self, page_index: int, data: bytes | bytearray) -> int:
        return self.raw_blocks.add(page_index, data)

    def add_asset(self, entry: AssetEntry) -> int:
        return self.assets.append(entry)

    def find_asset(self, guid: int) -> Optional[Tuple[AssetEntry, int]]:
        return self.assets.find(guid)

    def add_stream_entry(self, data: bytes | bytearray) -> StreamEntry:
        return self.stream_entries.add(data)

    def declare_stream_path(self, path: str) -> None:
        self._check_open()
        if path not in self.stream_paths:
            self.stream_paths.append(path)

    def declare_optional_stream_path(self, path: str) -> None:
        self._check_open()
        if path not in self.optional_stream_paths:
            self.optional_stream_paths.append(path)

    # Views -----------------------------------------------------------------------
    @property
    def segments(self):
        return self.allocator.segments

    @property
    def pages(self):
        return self.allocator.pages

    @property
    def pointers(self):
        return self.relocations.pointers

    @property
    def guid_pointers(self):
        return self.relocations.guid_pointers

    @property
    def relations(self):
        return self.relocations.relations

    # Phase control ---------------------------------------------------------------
    def _check_open(self) -> None:
        if self._sealed:
            raise PakError(E_SEALED, "Build context is sealed")

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        if self._sealed:
            return
        self.allocator.seal()
        self.relocations.seal()
        self.assets.seal()
        self.raw_blocks.seal()
        self.stream_entries.seal()
        self._sealed = True
