"""Closed enumeration of entry kinds and their numeric metadata."""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional


class EntryKind(IntEnum):
    ARTICLE = 0
    PAPER = 1
    BOOK = 2
    VIDEO = 3
    AUDIO = 4

    @property
    def token(self) -> str:
        return self.name.lower()

    @property
    def metadata_field(self) -> str:
        if self in (EntryKind.VIDEO, EntryKind.AUDIO):
            return "length_in_seconds"
        return "pages"

    @classmethod
    def from_token(cls, token: str) -> Optional["EntryKind"]:
        return _BY_TOKEN.get(token)


_BY_TOKEN: Dict[str, EntryKind] = {kind.token: kind for kind in EntryKind}


@dataclass(slots=True, frozen=True)
class EntryType:
    """Entry kind plus its page count or duration in seconds."""

    kind: EntryKind = EntryKind.ARTICLE
    metadata: int = 0

    @property
    def index(self) -> int:
        return int(self.kind)

    @classmethod
    def from_columns(cls, index: int, metadata: int) -> "EntryType":
        return cls(kind=EntryKind(int(index)), metadata=int(metadata or 0))

    def as_dict(self) -> Dict[str, object]:
        return {"kind": self.kind.token, self.kind.metadata_field: self.metadata}


__all__ = ["EntryKind", "EntryType"]
