"""Append-only build tables.

Each table only grows while assets are being encoded. Once the writers start
the owning :class:`~rpakgen.packing.context.BuildContext` seals every table
and further mutation raises ``E_SEALED``.
"""

from __future__ import annotations

from typing import Generic, Iterator, List, Optional, Tuple, TypeVar

from .constants import STREAM_ALIGNMENT
from .errors import (
    PakError,
    ResourceError,
    E_EMPTY_SEGMENT,
    E_SEALED,
    E_SPEC_TYPE_MISMATCH,
    internal_error,
)
from .models import (
    AssetEntry,
    FileRelation,
    PageDescriptor,
    RawDataBlock,
    StreamEntry,
)

__all__ = [
    "AppendOnlyTable",
    "RelocationRegistry",
    "RawBlockRegistry",
    "AssetTable",
    "StreamEntryRegistry",
]

T = TypeVar("T")


class AppendOnlyTable(Generic[T]):
    def __init__(self, name: str) -> None:
        self.name = name
        self._rows: List[T] = []
        self._sealed = False

    def _check_open(self) -> None:
        if self._sealed:
            raise PakError(
                E_SEALED,
                f"Table '{self.name}' is sealed; no mutation after writing starts",
            )

    def _append(self, row: T) -> int:
        self._check_open()
        self._rows.append(row)
        return len(self._rows) - 1

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def rows(self) -> Tuple[T, ...]:
        return tuple(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[T]:
        return iter(self._rows)

    def __getitem__(self, index: int) -> T:
        return self._rows[index]


class RelocationRegistry:
    """Pointer descriptors, GUID descriptors and file relations."""

    def __init__(self) -> None:
        self.pointers: AppendOnlyTable[PageDescriptor] = AppendOnlyTable(
            "descriptors"
        )
        self.guid_pointers: AppendOnlyTable[PageDescriptor] = (
            AppendOnlyTable("guid_descriptors")
        )
        self.relations: AppendOnlyTable[FileRelation] = AppendOnlyTable(
            "relations"
        )

    def register_pointer(self, page_index: int, byte_offset: int) -> None:
        self.pointers._append(PageDescriptor(page_index, byte_offset))

    def register_guid_pointer(self, page_index: int, byte_offset: int) -> None:
        self.guid_pointers._append(PageDescriptor(page_index, byte_offset))

    def register_relations(self, owner_asset_index: int, count: int) -> int:
        """Append ``count`` rows owned by one asset; return the first row index."""
        if count < 0:
            raise ResourceError(
                E_SPEC_TYPE_MISMATCH,
                f"Relation count must not be negative: {count}",
            )
        self.relations._check_open()
        for _ in range(count):
            self.relations._append(FileRelation(owner_asset_index))
        return len(self.relations) - count

    def seal(self) -> None:
        self.pointers.seal()
        self.guid_pointers.seal()
        self.relations.seal()


class RawBlockRegistry(AppendOnlyTable[RawDataBlock]):
    """Opaque page payloads written verbatim after the tables.

    The registry owns the bytes from :meth:`add` until :meth:`release`, which
    must run exactly once after the pack file is closed.
    """

    def __init__(self) -> None:
        super().__init__("raw_blocks")
        self._released = False

    def add(self, page_index: int, data: bytes | bytearray) -> int:
        if self._released:
            raise internal_error("Raw blocks already released")
        if not data:
            raise ResourceError(
                E_EMPTY_SEGMENT,
                f"Raw block for page {page_index} is empty",
                {"page_index": page_index},
            )
        return self._append(RawDataBlock(page_index, bytes(data)))

    @property
    def released(self) -> bool:
        return self._released

    @property
    def total_size(self) -> int:
        return sum(b.byte_size for b in self._rows)

    def release(self) -> None:
        if self._released:
            raise internal_error("Raw blocks released twice")
        self._rows.clear()
        self._released = True


class AssetTable(AppendOnlyTable[AssetEntry]):
    def __init__(self) -> None:
        super().__init__("assets")

    def append(self, entry: AssetEntry) -> int:
        return self._append(entry)

    def find(self, guid: int) -> Optional[Tuple[AssetEntry, int]]:
        """Return ``(entry, index)`` for the first entry with ``guid``."""
        for idx, entry in enumerate(self._rows):
            if entry.guid == guid:
                return entry, idx
        return None


class StreamEntryRegistry(AppendOnlyTable[StreamEntry]):
    """Payloads bound for the stream file.

    Offsets are absolute file positions fixed at registration: the first
    payload lands right after the 4096-byte preamble and each later one
    directly after its predecessor.
    """

    def __init__(self) -> None:
        super().__init__("stream_entries")
        self._next_offset = STREAM_ALIGNMENT

    @property
    def next_offset(self) -> int:
        return self._next_offset

    def add(self, data: bytes | bytearray) -> StreamEntry:
        if not data:
            raise ResourceError(E_EMPTY_SEGMENT, "Stream entry is empty")
        entry = StreamEntry(self._next_offset, bytes(data))
        self._append(entry)
        self._next_offset += entry.byte_size
        return entry
