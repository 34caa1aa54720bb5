"""Asset encoder interface and tag registry.

An encoder turns one manifest ``files[]`` entry into pages, relocations and
an :class:`~rpakgen.packing.models.AssetEntry` inside a
:class:`~rpakgen.packing.context.BuildContext`. Encoders are selected by the
entry's four-character ``$type`` tag.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, Optional

from ..packing.context import BuildContext
from ..packing.errors import AssetError, E_SPEC_TYPE_MISMATCH
from ..spec.models import FileEntry

__all__ = ["AssetEncoder", "EncoderRegistry", "parse_guid"]


class AssetEncoder:
    tag: str = ""

    def encode(
        self, ctx: BuildContext, entry: FileEntry, assets_dir: Path
    ) -> int:
        """Add the asset to ``ctx`` and return its asset table index."""
        raise NotImplementedError

    def fail(self, entry: FileEntry, message: str) -> AssetError:
        return AssetError(
            E_SPEC_TYPE_MISMATCH,
            f"{self.tag} asset files[{entry.index}]: {message}",
            {"path": entry.path},
        )


class EncoderRegistry:
    def __init__(self) -> None:
        self._encoders: Dict[str, AssetEncoder] = {}

    def register(self, encoder: AssetEncoder) -> AssetEncoder:
        if len(encoder.tag) != 4:
            raise ValueError(f"Encoder tag must be 4 characters: {encoder.tag!r}")
        if encoder.tag in self._encoders:
            raise ValueError(f"Encoder already registered for '{encoder.tag}'")
        self._encoders[encoder.tag] = encoder
        return encoder

    def get(self, tag: str) -> Optional[AssetEncoder]:
        return self._encoders.get(tag)

    def __contains__(self, tag: str) -> bool:
        return tag in self._encoders

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._encoders))


def parse_guid(value: object) -> int:
    """Accept an int or a hex string (``0x`` prefix optional)."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid GUID: {value!r}")
    if isinstance(value, int):
        guid = value
    elif isinstance(value, str):
        guid = int(value, 16)
    else:
        raise ValueError(f"Invalid GUID: {value!r}")
    if not 0 < guid <= 0xFFFFFFFFFFFFFFFF:
        raise ValueError(f"GUID out of range: {value!r}")
    return guid
