from pathlib import Path
import hashlib
import json

from rpakgen.api import BuildOptions, build_pak
from rpakgen.encoders import AssetEncoder, EncoderRegistry
from rpakgen.packing.models import AssetEntry


class _StreamedBlobEncoder(AssetEncoder):
    """Puts the entry's text into the stream file."""

    tag = "blob"

    def encode(self, ctx, entry, assets_dir):
        ctx.declare_stream_path("paks\\Win64\\summary.starpak")
        page, _ = ctx.allocate(8, 0, 8)
        ctx.add_raw_block(page, b"\x00" * 8)
        stream = ctx.add_stream_entry(entry.get("text").encode("utf-8"))
        return ctx.add_asset(
            AssetEntry(
                guid=entry.get("guid"),
                type_tag=self.tag,
                sub_header_page=page,
                sub_header_size=8,
                stream_offset=stream.offset,
            )
        )


def test_summary_with_stream_file(tmp_path: Path):
    manifest = tmp_path / "map.json"
    manifest.write_text(
        json.dumps(
            {
                "name": "summary",
                "outputDir": str(tmp_path / "build"),
                "files": [
                    {"$type": "blob", "guid": 1, "text": "a" * 100},
                    {"$type": "blob", "guid": 2, "text": "b" * 250},
                ],
            }
        ),
        encoding="utf-8",
    )
    registry = EncoderRegistry()
    registry.register(_StreamedBlobEncoder())
    summary_path = tmp_path / "summary.json"
    result = build_pak(
        BuildOptions(
            manifest_path=manifest,
            summary_path=summary_path,
            registry=registry,
        )
    )
    summary = json.loads(summary_path.read_text())

    assert result.stream_path == tmp_path / "build" / "summary.starpak"
    pak_bytes = result.pak_path.read_bytes()
    assert summary["pak"]["sha256"] == hashlib.sha256(pak_bytes).hexdigest()
    assert summary["pak"]["size"] == len(pak_bytes)
    assert summary["header"]["asset_count"] == 2
    assert summary["header"]["compressed_size"] == len(pak_bytes)
    assert summary["stream"]["name"] == "summary.starpak"
    assert summary["stream"]["entries"] == 2
    assert summary["stream"]["size"] == 4096 + 350 + 32 + 8
    # assetsDir missing from the manifest
    assert len(summary["warnings"]) == 1
