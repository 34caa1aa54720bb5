from pathlib import Path
import struct

import pytest

from rpakgen.packing.constants import (
    ASSET_ENTRY_SIZE,
    DESCRIPTOR_SIZE,
    HEADER_SIZE,
    PAGE_SIZE,
    RELATION_SIZE,
    SEGMENT_SIZE,
)
from rpakgen.packing.context import BuildContext
from rpakgen.api import write_outputs
from rpakgen.packing.errors import (
    BinaryFormatError,
    PakError,
    E_COUNT_OVERFLOW,
    E_INTERNAL,
)
from rpakgen.packing.inspector import inspect_pak, parse_header, validate_pak
from rpakgen.packing.models import AssetEntry
from rpakgen.packing.writer import PakFileWriter, WriterState, write_pak


def _populated_context() -> BuildContext:
    ctx = BuildContext()
    ctx.declare_stream_path("paks\\Win64\\demo.starpak")
    ctx.declare_optional_stream_path("paks\\Win64\\demo.opt.starpak")
    hdr_page, _ = ctx.allocate(16, 0, 8)
    data_page, _ = ctx.allocate(32, 1, 8, page_alignment=16)
    ctx.register_pointer(hdr_page, 0)
    ctx.register_pointer(hdr_page, 8)
    ctx.register_guid_pointer(data_page, 24)
    ctx.add_raw_block(hdr_page, b"\xAA" * 16)
    ctx.add_raw_block(data_page, b"\xBB" * 32)
    a0 = ctx.add_asset(
        AssetEntry(
            guid=0x1111,
            type_tag="matl",
            sub_header_page=hdr_page,
            sub_header_size=16,
            raw_data_page=data_page,
        )
    )
    a1 = ctx.add_asset(AssetEntry(guid=0x2222, type_tag="txtr"))
    ctx.register_relations(a0, 2)
    ctx.register_relations(a1, 1)
    return ctx


def test_header_backpatch_roundtrip(tmp_path: Path):
    ctx = _populated_context()
    stream_block = b"paks\\Win64\\demo.starpak\x00"
    optional_block = b"paks\\Win64\\demo.opt.starpak\x00"
    expected_size = (
        HEADER_SIZE
        + len(stream_block)
        + len(optional_block)
        + 2 * SEGMENT_SIZE
        + 2 * PAGE_SIZE
        + 2 * DESCRIPTOR_SIZE
        + 2 * ASSET_ENTRY_SIZE
        + 1 * DESCRIPTOR_SIZE
        + 3 * RELATION_SIZE
        + 16
        + 32
    )
    out = tmp_path / "demo.rpak"
    header = write_pak(ctx, out, created_time=1234)
    data = out.read_bytes()
    parsed = parse_header(data)

    assert len(data) == expected_size
    assert parsed["magic_ok"]
    assert parsed["version"] == 8
    assert parsed["created_time"] == 1234
    assert parsed["compressed_size"] == parsed["decompressed_size"] == expected_size
    assert parsed["stream_ref_size"] == len(stream_block)
    assert parsed["optional_stream_ref_size"] == len(optional_block)
    assert parsed["segment_count"] == 2
    assert parsed["page_count"] == 2
    assert parsed["descriptor_count"] == 2
    assert parsed["asset_count"] == 2
    assert parsed["guid_descriptor_count"] == 1
    assert parsed["relation_count"] == 3
    assert header.decompressed_size == expected_size
    assert validate_pak(out) == []


def test_body_order(tmp_path: Path):
    ctx = _populated_context()
    out = tmp_path / "order.rpak"
    write_pak(ctx, out, created_time=0)
    data = out.read_bytes()
    info = inspect_pak(out)

    assert info["stream_paths"] == ["paks\\Win64\\demo.starpak"]
    assert info["optional_stream_paths"] == ["paks\\Win64\\demo.opt.starpak"]
    assert info["segments"] == [
        {"flags": 0, "alignment": 8, "size": 16},
        {"flags": 1, "alignment": 8, "size": 32},
    ]
    assert info["pages"] == [
        {"segment": 0, "alignment": 8, "size": 16},
        {"segment": 1, "alignment": 16, "size": 32},
    ]
    assert info["descriptors"] == [
        {"page": 0, "offset": 0},
        {"page": 0, "offset": 8},
    ]
    assert [a["guid"] for a in info["assets"]] == [
        "0x0000000000001111",
        "0x0000000000002222",
    ]
    assert info["assets"][0]["type"] == "matl"
    assert info["assets"][1]["raw_data_page"] == 0xFFFFFFFF
    assert info["assets"][1]["stream_offset"] == -1
    assert info["guid_descriptors"] == [{"page": 1, "offset": 24}]
    assert info["relations"] == [0, 0, 1]
    raw = data[info["raw_data_offset"] :]
    assert raw == b"\xAA" * 16 + b"\xBB" * 32


def test_empty_pack(tmp_path: Path):
    out = tmp_path / "empty.rpak"
    header = write_pak(BuildContext(), out)
    data = out.read_bytes()
    assert len(data) == HEADER_SIZE
    parsed = parse_header(data)
    for key in (
        "segment_count",
        "page_count",
        "descriptor_count",
        "asset_count",
        "guid_descriptor_count",
        "relation_count",
        "stream_ref_size",
        "optional_stream_ref_size",
    ):
        assert parsed[key] == 0
    assert parsed["decompressed_size"] == HEADER_SIZE
    assert parsed["created_time"] == header.created_time > 0


def test_raw_blocks_released_after_write(tmp_path: Path):
    ctx = _populated_context()
    write_pak(ctx, tmp_path / "a.rpak")
    assert ctx.sealed
    assert ctx.raw_blocks.released
    with pytest.raises(PakError) as exc:
        write_pak(ctx, tmp_path / "b.rpak")
    assert exc.value.code == E_INTERNAL
    assert not (tmp_path / "b.rpak").exists()


def test_deterministic_rebuild_is_identical(tmp_path: Path):
    a = tmp_path / "a.rpak"
    b = tmp_path / "b.rpak"
    write_pak(_populated_context(), a, created_time=0)
    write_pak(_populated_context(), b, created_time=0)
    assert a.read_bytes() == b.read_bytes()


def test_writer_states_enforced(tmp_path: Path):
    w = PakFileWriter(BuildContext(), tmp_path / "x.rpak")
    with pytest.raises(PakError):
        w.close()
    w.open()
    assert w.state is WriterState.OPENED
    with pytest.raises(PakError):
        w.close()
    w.write_body()
    assert w.state is WriterState.BODY_WRITTEN
    w.close()
    assert w.state is WriterState.CLOSED
    with pytest.raises(PakError):
        w.write_body()


def test_failed_backpatch_removes_partial_file(tmp_path: Path):
    ctx = BuildContext()
    # String block size is a u16 header field.
    ctx.declare_stream_path("x" * 70000)
    out = tmp_path / "overflow.rpak"
    with pytest.raises(BinaryFormatError):
        with PakFileWriter(ctx, out) as w:
            w.write_body()
            w.close()
    assert not out.exists()


def test_header_magic_bytes(tmp_path: Path):
    out = tmp_path / "m.rpak"
    write_pak(BuildContext(), out)
    data = out.read_bytes()
    assert data[:4] == b"RPak"
    assert struct.unpack_from("<H", data, 4)[0] == 8


@pytest.mark.parametrize(
    "fields",
    [
        {"remaining_dependency_count": 70000},
        {"page_end": 0x10000},
        {"relations_count": 1 << 32},
    ],
)
def test_asset_field_overflow_is_format_error(tmp_path: Path, fields):
    ctx = BuildContext()
    ctx.add_asset(AssetEntry(guid=1, type_tag="txtr", **fields))
    with pytest.raises(BinaryFormatError) as exc:
        write_outputs(ctx, tmp_path / "out", "big.rpak", created_time=0)
    assert exc.value.code == E_COUNT_OVERFLOW
    assert not (tmp_path / "out" / "big.rpak").exists()


def test_validate_pak_reports_short_raw_data(tmp_path: Path):
    # write_pak itself does not validate the context.
    ctx = BuildContext()
    page, _ = ctx.allocate(16, 0, 8)
    ctx.add_raw_block(page, b"abcd")
    out = tmp_path / "short.rpak"
    write_pak(ctx, out, created_time=0)
    issues = validate_pak(out)
    assert issues == ["Raw data is 4 bytes, pages total 16"]
