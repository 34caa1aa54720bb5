"""High-level API for rpakgen.

``build_pak`` runs the whole pipeline: load the manifest, encode every file
entry into a fresh :class:`BuildContext`, validate it, write the pack file
and, when one stream path was declared, the stream file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .encoders import EncoderRegistry, default_registry
from .logging import get_logger, section
from .reporting import task, get_reporter
from .packing.context import BuildContext
from .packing.inspector import (
    inspect_pak as _inspect_pak_impl,
    inspect_stream as _inspect_stream_impl,
    validate_pak as _validate_pak_impl,
)
from .packing.models import PackHeader
from .packing.stream_writer import maybe_write_stream_file
from .packing.writer import write_pak
from .spec.loader import load_manifest
from .spec.models import PakManifest
from .spec.validator import raise_on_errors, validate_build_context
from .summary import build_summary

__all__ = [
    "BuildOptions",
    "BuildResult",
    "build_pak",
    "encode_manifest",
    "write_outputs",
    "load_models",
    "inspect_pak",
    "inspect_stream",
    "validate_pak",
]


@dataclass(slots=True)
class BuildOptions:
    manifest_path: Path
    # Overrides the manifest's outputDir when set
    output_dir: Path | None = None
    # Creation time forced to 0 so identical inputs give identical bytes
    deterministic: bool = False
    # Optional path; when provided a JSON build summary is written there
    summary_path: Path | None = None
    registry: EncoderRegistry | None = None


@dataclass(slots=True)
class BuildResult:
    pak_path: Path
    header: PackHeader
    stream_path: Path | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def bytes_written(self) -> int:
        return self.header.decompressed_size


def load_models(path: str | Path) -> PakManifest:
    return load_manifest(path)


def encode_manifest(
    manifest: PakManifest,
    registry: EncoderRegistry | None = None,
    ctx: BuildContext | None = None,
) -> tuple[BuildContext, list[str]]:
    """Run every file entry through its encoder.

    Returns the populated context and the warnings raised along the way.
    Entries whose tag has no encoder are skipped with a warning.
    """
    logger = get_logger()
    registry = registry or default_registry()
    ctx = ctx or BuildContext()
    warnings: list[str] = []
    rep = get_reporter()
    with section("Encode assets"):
        with task("encode", "Encode assets", total=len(manifest.files)):
            for entry in manifest.files:
                encoder = registry.get(entry.type_tag)
                if encoder is None:
                    msg = (
                        f"No encoder for asset type '{entry.type_tag}' "
                        f"(files[{entry.index}]); skipping"
                    )
                    logger.warning(msg)
                    warnings.append(msg)
                else:
                    idx = encoder.encode(ctx, entry, manifest.assets_dir)
                    logger.debug(
                        "Encoded %s files[%d] as asset %d",
                        entry.type_tag,
                        entry.index,
                        idx,
                    )
                rep.advance(
                    "encode", current_item=entry.path or entry.type_tag
                )
    return ctx, warnings


def write_outputs(
    ctx: BuildContext,
    output_dir: Path,
    pak_file_name: str,
    *,
    created_time: Optional[int] = None,
) -> tuple[PackHeader, Path, Path | None]:
    """Validate ``ctx`` and write the pack file plus optional stream file."""
    raise_on_errors(validate_build_context(ctx))
    output_dir.mkdir(parents=True, exist_ok=True)
    pak_path = output_dir / pak_file_name
    header = write_pak(ctx, pak_path, created_time=created_time)
    stream_path = maybe_write_stream_file(ctx, output_dir)
    return header, pak_path, stream_path


def build_pak(options: BuildOptions) -> BuildResult:
    logger = get_logger()
    rep = get_reporter()
    manifest = load_models(options.manifest_path)
    logger.info("Building %s", manifest.pak_file_name)

    ctx, encode_warnings = encode_manifest(manifest, options.registry)
    warnings = manifest.warnings + encode_warnings

    output_dir = options.output_dir or manifest.output_dir
    header, pak_path, stream_path = write_outputs(
        ctx,
        output_dir,
        manifest.pak_file_name,
        created_time=0 if options.deterministic else None,
    )

    if options.summary_path is not None:
        with task("summary.emit", "Emit build summary"):
            build_summary(
                header,
                pak_path,
                options.summary_path,
                stream_path=stream_path,
                stream_entry_count=len(ctx.stream_entries),
                warnings=warnings,
            )

    rep.status(
        "Build summary: file="
        + f"{pak_path.name} bytes={header.decompressed_size} assets={header.asset_count} "
        + f"pages={header.page_count} stream={stream_path.name if stream_path else '-'}"
    )
    return BuildResult(
        pak_path=pak_path,
        header=header,
        stream_path=stream_path,
        warnings=warnings,
    )


def inspect_pak(path: str | Path) -> dict:
    return _inspect_pak_impl(path)


def inspect_stream(path: str | Path) -> dict:
    return _inspect_stream_impl(path)


def validate_pak(path: str | Path) -> list[str]:
    return _validate_pak_impl(path)
