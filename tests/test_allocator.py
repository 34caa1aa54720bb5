import pytest

from rpakgen.packing.context import BuildContext
from rpakgen.packing.errors import (
    PakError,
    ResourceError,
    E_ALIGNMENT,
    E_EMPTY_SEGMENT,
    E_SEALED,
)
from rpakgen.packing.models import PageInfo, VirtualSegment


def test_allocation_indices_are_sequential():
    ctx = BuildContext()
    indices = [ctx.allocate(16 * (i + 1), i, 8)[0] for i in range(10)]
    assert indices == list(range(10))
    assert len(ctx.segments) == 10
    assert len(ctx.pages) == 10
    for i, page in enumerate(ctx.pages):
        assert page.segment_index == i


def test_allocate_returns_segment_copy():
    ctx = BuildContext()
    idx, seg = ctx.allocate(40, 1, 8)
    assert idx == 0
    assert seg == VirtualSegment(flags=1, alignment=8, byte_size=40)
    assert ctx.segments[0] == seg
    assert ctx.pages[0] == PageInfo(segment_index=0, alignment=8, byte_size=40)


def test_page_alignment_override():
    ctx = BuildContext()
    _, seg = ctx.allocate(64, 2, 16, page_alignment=4096)
    assert seg.alignment == 16
    assert ctx.pages[0].alignment == 4096


def test_zero_size_rejected():
    ctx = BuildContext()
    with pytest.raises(ResourceError) as exc:
        ctx.allocate(0, 0, 8)
    assert exc.value.code == E_EMPTY_SEGMENT
    assert len(ctx.pages) == 0


@pytest.mark.parametrize("alignment", [0, 3, -8])
def test_bad_alignment_rejected(alignment):
    ctx = BuildContext()
    with pytest.raises(ResourceError) as exc:
        ctx.allocate(8, 0, alignment)
    assert exc.value.code == E_ALIGNMENT


def test_allocate_after_seal_fails():
    ctx = BuildContext()
    ctx.allocate(8, 0, 8)
    ctx.seal()
    with pytest.raises(PakError) as exc:
        ctx.allocate(8, 0, 8)
    assert exc.value.code == E_SEALED
    assert len(ctx.segments) == len(ctx.pages) == 1
