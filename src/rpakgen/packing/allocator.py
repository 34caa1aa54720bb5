"""Virtual segment / page allocator."""

from __future__ import annotations

from typing import Optional, Tuple

from .errors import ResourceError, E_ALIGNMENT, E_EMPTY_SEGMENT
from .models import PageInfo, VirtualSegment
from .registries import AppendOnlyTable

__all__ = ["PageAllocator"]


def _check_alignment(value: int, label: str) -> None:
    if value <= 0 or value & (value - 1):
        raise ResourceError(
            E_ALIGNMENT,
            f"{label} must be a positive power of two: {value}",
            {label: value},
        )


class PageAllocator:
    """Hands out one (segment, page) pair per allocation.

    Both tables grow in lockstep so the returned index addresses the segment
    and its page alike.
    """

    def __init__(self) -> None:
        self.segments: AppendOnlyTable[VirtualSegment] = AppendOnlyTable(
            "segments"
        )
        self.pages: AppendOnlyTable[PageInfo] = AppendOnlyTable("pages")

    def allocate(
        self,
        size: int,
        flags: int,
        alignment: int,
        page_alignment: Optional[int] = None,
    ) -> Tuple[int, VirtualSegment]:
        if size <= 0:
            raise ResourceError(
                E_EMPTY_SEGMENT,
                f"Segment size must be positive: {size}",
                {"size": size, "flags": flags},
            )
        _check_alignment(alignment, "alignment")
        if page_alignment is None:
            page_alignment = alignment
        else:
            _check_alignment(page_alignment, "page_alignment")

        segment = VirtualSegment(flags, alignment, size)
        self.pages._check_open()
        seg_idx = self.segments._append(segment)
        page_idx = self.pages._append(PageInfo(seg_idx, page_alignment, size))
        if seg_idx != page_idx:  # pragma: no cover
            raise AssertionError("segment/page tables out of step")
        return page_idx, segment

    def page_exists(self, page_index: int) -> bool:
        return 0 <= page_index < len(self.pages)

    def seal(self) -> None:
        self.segments.seal()
        self.pages.seal()

    def __len__(self) -> int:
        return len(self.pages)
