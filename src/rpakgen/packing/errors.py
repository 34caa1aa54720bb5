"""Error definitions for rpakgen."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

E_SPEC_MISSING_FIELD = "E_SPEC_MISSING_FIELD"
E_SPEC_TYPE_MISMATCH = "E_SPEC_TYPE_MISMATCH"
E_EMPTY_SEGMENT = "E_EMPTY_SEGMENT"
E_ALIGNMENT = "E_ALIGNMENT"
E_DUP_ASSET_KEY = "E_DUP_ASSET_KEY"
E_INVALID_REFERENCE = "E_INVALID_REFERENCE"
E_INDEX_OUT_OF_RANGE = "E_INDEX_OUT_OF_RANGE"
E_MULTI_STREAM = "E_MULTI_STREAM"
E_COUNT_OVERFLOW = "E_COUNT_OVERFLOW"
E_SEALED = "E_SEALED"
E_WRITE_IO = "E_WRITE_IO"
E_INTERNAL = "E_INTERNAL"


@dataclass
class PakError(Exception):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}" + (
            f" | ctx={self.context}" if self.context else ""
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context or {},
        }


class SpecificationError(PakError):
    """Malformed build manifest."""


class ResourceError(PakError):
    """Bad allocation or raw block request."""


class AssetError(PakError):
    """An encoder could not turn a manifest entry into an asset."""


class BinaryFormatError(PakError):
    """Writer or reader found bytes that do not match the format."""


class ValidationError(PakError):
    """Structural validation of a build context failed."""


def spec_error(
    code: str, message: str, context: Optional[Dict[str, Any]] = None
) -> SpecificationError:
    return SpecificationError(code=code, message=message, context=context)


def internal_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> PakError:
    return PakError(code=E_INTERNAL, message=message, context=context)


__all__ = [
    "PakError",
    "SpecificationError",
    "ResourceError",
    "AssetError",
    "BinaryFormatError",
    "ValidationError",
    "spec_error",
    "internal_error",
    "E_SPEC_MISSING_FIELD",
    "E_SPEC_TYPE_MISMATCH",
    "E_EMPTY_SEGMENT",
    "E_ALIGNMENT",
    "E_DUP_ASSET_KEY",
    "E_INVALID_REFERENCE",
    "E_INDEX_OUT_OF_RANGE",
    "E_MULTI_STREAM",
    "E_COUNT_OVERFLOW",
    "E_SEALED",
    "E_WRITE_IO",
    "E_INTERNAL",
]
