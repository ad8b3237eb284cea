"""Value objects passed between the compiler, the store and the engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from .entry_types import EntryType


@dataclass(slots=True)
class EntryForm:
    """Caller-owned entry attributes used for inserts and updates."""

    link: str
    title: str
    description: str = ""
    authors: List[str] = field(default_factory=list)
    category: str = ""
    themes: List[str] = field(default_factory=list)
    works_mentioned: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    date_published: date = field(default_factory=date.today)
    exceptional: bool = False
    entry_type: EntryType = field(default_factory=EntryType)


@dataclass(slots=True)
class Entry:
    id: int
    link: str
    title: str
    description: str
    authors: List[str]
    category: str
    themes: List[str]
    works_mentioned: List[str]
    tags: List[str]
    date_published: date
    date_saved: date
    exceptional: bool
    entry_type: EntryType

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "link": self.link,
            "title": self.title,
            "description": self.description,
            "authors": list(self.authors),
            "category": self.category,
            "themes": list(self.themes),
            "works_mentioned": list(self.works_mentioned),
            "tags": list(self.tags),
            "date_published": self.date_published.isoformat(),
            "date_saved": self.date_saved.isoformat(),
            "exceptional": self.exceptional,
            "entry_type": self.entry_type.as_dict(),
        }


@dataclass(slots=True)
class CompiledQuery:
    """Parameterized WHERE fragment plus out-of-band paging directives.

    ``predicate`` only ever contains column names, operators, placeholders and
    literals chosen by the compiler; user text travels in ``parameters``.
    """

    predicate: str = ""
    parameters: List[Any] = field(default_factory=list)
    offset: int = 0
    seed: Optional[int] = None

    @property
    def is_filtered(self) -> bool:
        return bool(self.predicate)


@dataclass(slots=True)
class Page:
    entries: List[Entry]
    current_offset: int
    next_offset: int
    total_size: int
    seed: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "entries": [entry.as_dict() for entry in self.entries],
            "current_offset": self.current_offset,
            "next_offset": self.next_offset,
            "total_size": self.total_size,
            "seed": self.seed,
        }


__all__ = ["CompiledQuery", "Entry", "EntryForm", "Page"]
