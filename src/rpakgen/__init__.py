"""RPak pack file builder."""

__version__ = "0.1.0"
