"""Pydantic schemas for the content archive HTTP API."""
from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from archive.entry_types import EntryKind, EntryType
from archive.models import EntryForm

EntryKindToken = Literal["article", "paper", "book", "video", "audio"]


class EntryTypeModel(BaseModel):
    """Entry kind with its page count (texts) or duration (video/audio)."""

    kind: EntryKindToken = Field(..., description="Entry kind token.")
    pages: Optional[int] = Field(None, ge=0, description="Page count for articles, papers and books.")
    length_in_seconds: Optional[int] = Field(
        None, ge=0, description="Duration in seconds for video and audio entries."
    )

    def to_entry_type(self) -> EntryType:
        kind = EntryKind[self.kind.upper()]
        metadata = self.pages if kind.metadata_field == "pages" else self.length_in_seconds
        return EntryType(kind=kind, metadata=int(metadata or 0))


class EntryModel(BaseModel):
    """Archived entry as served by the API."""

    id: int = Field(..., description="Storage identifier of the entry.")
    link: str
    title: str
    description: str
    authors: List[str]
    category: str
    themes: List[str]
    works_mentioned: List[str]
    tags: List[str]
    date_published: date
    date_saved: date = Field(..., description="Date the entry was first saved; set by the server.")
    exceptional: bool
    entry_type: EntryTypeModel


class EntryFormRequest(BaseModel):
    """Request body for creating or replacing an entry."""

    link: str = Field(..., description="Address of the archived content.")
    title: str
    description: str = ""
    authors: List[str] = Field(default_factory=list)
    category: str = ""
    themes: List[str] = Field(default_factory=list)
    works_mentioned: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    date_published: date
    exceptional: bool = False
    entry_type: EntryTypeModel

    def to_form(self) -> EntryForm:
        return EntryForm(
            link=self.link,
            title=self.title,
            description=self.description,
            authors=list(self.authors),
            category=self.category,
            themes=list(self.themes),
            works_mentioned=list(self.works_mentioned),
            tags=list(self.tags),
            date_published=self.date_published,
            exceptional=self.exceptional,
            entry_type=self.entry_type.to_entry_type(),
        )


class TextsPageResponse(BaseModel):
    """One page of entries plus the metadata needed to request the next."""

    entries: List[EntryModel] = Field(..., description="Entries on this page.")
    current_offset: int = Field(..., ge=0, description="Offset that produced this page.")
    next_offset: int = Field(..., ge=0, description="Offset to request the following page.")
    total_size: int = Field(
        ..., ge=0, description="Rows matching the filter, or the whole collection when unfiltered."
    )
    seed: int = Field(
        ..., ge=0, description="Seed of the discovery order; pass it back to keep paging consistently."
    )


class EntryCreatedResponse(BaseModel):
    id: int = Field(..., description="Identifier assigned to the new entry.")
    link: str = Field(..., description="API path of the new entry.")


class VocabularyItem(BaseModel):
    """A previously used author, theme, work or tag and the category it was saved under."""

    value: str
    category: str
