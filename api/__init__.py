"""HTTP surface for the content archive."""

__version__ = "0.1.0"
