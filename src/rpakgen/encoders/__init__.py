from .base import AssetEncoder, EncoderRegistry, parse_guid
from .patch import PatchEncoder


def default_registry() -> EncoderRegistry:
    """Registry holding the built-in encoders."""
    registry = EncoderRegistry()
    registry.register(PatchEncoder())
    return registry


__all__ = [
    "AssetEncoder",
    "EncoderRegistry",
    "PatchEncoder",
    "default_registry",
    "parse_guid",
]
