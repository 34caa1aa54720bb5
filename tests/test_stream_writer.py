from pathlib import Path
import struct

import pytest

from rpakgen.api import write_outputs
from rpakgen.packing.context import BuildContext
from rpakgen.packing import stream_writer
from rpakgen.packing.errors import (
    BinaryFormatError,
    ValidationError,
    E_COUNT_OVERFLOW,
    E_MULTI_STREAM,
)
from rpakgen.packing.inspector import inspect_stream
from rpakgen.packing.stream_writer import (
    maybe_write_stream_file,
    stream_file_name,
    write_stream_file,
)


def _ctx_with_entries(*sizes: int) -> tuple[BuildContext, list[bytes]]:
    ctx = BuildContext()
    payloads = [bytes([i + 1]) * size for i, size in enumerate(sizes)]
    for p in payloads:
        ctx.add_stream_entry(p)
    return ctx, payloads


def test_stream_layout(tmp_path: Path):
    ctx, (p0, p1) = _ctx_with_entries(100, 250)
    out = tmp_path / "demo.starpak"
    size = write_stream_file(ctx, out)
    data = out.read_bytes()

    assert size == len(data) == 4096 + 350 + 2 * 16 + 8
    assert data[:4] == b"SRPk"
    assert struct.unpack_from("<I", data, 4)[0] == 1
    assert data[8:4096] == b"\xCB" * 4088
    assert data[4096:4196] == p0
    assert data[4196:4446] == p1
    rows = list(struct.iter_unpack("<QQ", data[4446:4478]))
    assert rows == [(4096, 100), (4196, 250)]
    assert struct.unpack("<Q", data[-8:])[0] == 2


def test_inspect_stream_roundtrip(tmp_path: Path):
    ctx, _ = _ctx_with_entries(10, 20, 30)
    out = tmp_path / "s.starpak"
    write_stream_file(ctx, out)
    info = inspect_stream(out)
    assert info["magic_ok"]
    assert info["padding_ok"]
    assert info["version"] == 1
    assert info["entry_count"] == 3
    assert info["entries"] == [
        {"offset": 4096, "size": 10},
        {"offset": 4106, "size": 20},
        {"offset": 4126, "size": 30},
    ]


def test_empty_stream_file(tmp_path: Path):
    out = tmp_path / "empty.starpak"
    write_stream_file(BuildContext(), out)
    data = out.read_bytes()
    assert len(data) == 4096 + 8
    assert struct.unpack("<Q", data[-8:])[0] == 0


def test_stream_file_name_uses_basename():
    assert stream_file_name("paks\\Win64\\demo.starpak") == "demo.starpak"
    assert stream_file_name("paks/Win64/demo.starpak") == "demo.starpak"


def test_no_stream_path_means_no_stream_file(tmp_path: Path):
    ctx, _ = _ctx_with_entries(8)
    assert maybe_write_stream_file(ctx, tmp_path) is None
    assert list(tmp_path.iterdir()) == []


def test_single_stream_path_written_to_output_dir(tmp_path: Path):
    ctx, _ = _ctx_with_entries(100, 250)
    ctx.declare_stream_path("paks\\Win64\\demo.starpak")
    header, pak_path, stream_path = write_outputs(
        ctx, tmp_path / "out", "demo.rpak", created_time=0
    )
    assert stream_path == tmp_path / "out" / "demo.starpak"
    assert stream_path.exists()
    assert pak_path.exists()
    assert header.stream_ref_size == len("paks\\Win64\\demo.starpak") + 1


def test_multiple_stream_paths_rejected_before_writing(tmp_path: Path):
    ctx, _ = _ctx_with_entries(100)
    ctx.declare_stream_path("paks/Win64/a.starpak")
    ctx.declare_stream_path("paks/Win64/b.starpak")
    out_dir = tmp_path / "out"
    with pytest.raises(ValidationError) as exc:
        write_outputs(ctx, out_dir, "demo.rpak")
    assert exc.value.code == E_MULTI_STREAM
    assert not out_dir.exists()


def test_multiple_stream_paths_rejected_by_stream_writer(tmp_path: Path):
    ctx, _ = _ctx_with_entries(100)
    ctx.declare_stream_path("a.starpak")
    ctx.declare_stream_path("b.starpak")
    with pytest.raises(ValidationError):
        maybe_write_stream_file(ctx, tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_failed_stream_write_removes_partial_file(tmp_path: Path, monkeypatch):
    def fail(entries):
        raise BinaryFormatError(E_COUNT_OVERFLOW, "trailer too large")

    monkeypatch.setattr(stream_writer, "pack_stream_trailer", fail)
    ctx, _ = _ctx_with_entries(100)
    ctx.declare_stream_path("paks/Win64/demo.starpak")
    out_dir = tmp_path / "out"
    with pytest.raises(BinaryFormatError):
        write_outputs(ctx, out_dir, "demo.rpak", created_time=0)
    assert (out_dir / "demo.rpak").exists()
    assert not (out_dir / "demo.starpak").exists()
