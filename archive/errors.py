"""Error hierarchy for the archive core."""
from __future__ import annotations


class ArchiveError(RuntimeError):
    """Base exception for archive failures."""


class CompileError(ArchiveError, ValueError):
    """Raised when a filter query cannot be compiled; nothing is applied."""


class StorageError(ArchiveError):
    """Raised when the entry store fails to execute a statement."""


__all__ = ["ArchiveError", "CompileError", "StorageError"]
