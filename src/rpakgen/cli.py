"""Command line interface for rpakgen."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .logging import configure_logging, get_logger, step
from .packing.constants import STREAM_MAGIC
from .packing.errors import PakError
from .reporting import (
    REPORTER_KINDS,
    create_reporter,
    set_reporter,
    set_verbosity,
)
from .api import BuildOptions, build_pak, inspect_pak, inspect_stream, validate_pak


def _build_cmd(args: argparse.Namespace) -> int:
    opts = BuildOptions(
        manifest_path=args.manifest,
        output_dir=args.output_dir,
        deterministic=args.deterministic,
        summary_path=args.emit_summary,
    )
    build_pak(opts)
    return 0


def _is_stream_file(path: Path) -> bool:
    with path.open("rb") as f:
        head = f.read(4)
    return int.from_bytes(head, "little") == STREAM_MAGIC


def _inspect_cmd(args: argparse.Namespace) -> int:
    step(f"inspecting {args.file.name}")
    if _is_stream_file(args.file):
        info = inspect_stream(args.file)
        issues = [] if info["magic_ok"] else ["Stream magic mismatch"]
    else:
        info = inspect_pak(args.file)
        issues = validate_pak(args.file)
    info["issues"] = issues
    print(json.dumps(info, indent=2, sort_keys=True))
    return 1 if issues else 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="rpakgen", description="RPak pack file builder"
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (repeatable)",
    )
    p.add_argument(
        "-r",
        "--reporter",
        choices=REPORTER_KINDS,
        default="plain",
        help="Select reporter backend: plain (default), rich, silent",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    b = sub.add_parser("build", help="Build a pak from a manifest file")
    b.add_argument("manifest", type=Path)
    b.add_argument(
        "-o",
        "--output-dir",
        dest="output_dir",
        type=Path,
        help="Override the manifest's outputDir",
    )
    b.add_argument(
        "--emit-summary",
        dest="emit_summary",
        type=Path,
        help="Optional path to write a JSON build summary",
    )
    b.add_argument(
        "--deterministic",
        action="store_true",
        help="Write a zero creation time so rebuilds are byte-identical",
    )
    b.set_defaults(func=_build_cmd)

    i = sub.add_parser("inspect", help="Inspect a pak or stream file")
    i.add_argument("file", type=Path)
    i.set_defaults(func=_inspect_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    set_reporter(create_reporter(args.reporter))
    set_verbosity(args.verbose)
    configure_logging(args.verbose)
    try:
        return args.func(args)
    except FileNotFoundError as exc:
        get_logger().error("File not found: %s", exc.filename or exc)
    except (PakError, OSError, ValueError) as exc:
        get_logger().error("%s", exc)
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
