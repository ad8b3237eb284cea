"""Content archive core: filter compilation and paginated retrieval."""
from __future__ import annotations

from .errors import ArchiveError, CompileError, StorageError
from .models import CompiledQuery, Entry, EntryForm, Page
from .query_compiler import compile_query
from .retrieval import PAGE_SIZE, RetrievalEngine
from .store import EntryStore

__all__ = [
    "ArchiveError",
    "CompileError",
    "CompiledQuery",
    "Entry",
    "EntryForm",
    "EntryStore",
    "PAGE_SIZE",
    "Page",
    "RetrievalEngine",
    "StorageError",
    "compile_query",
]
