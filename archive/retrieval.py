"""Paginated retrieval over the entry store.

Two regimes share one :class:`Page` shape:

* filtered: the compiled predicate runs as a single windowed scan, ten rows
  per page in storage order, with the matching-row count computed alongside;
* discovery: no predicate, the whole collection is walked in a stable
  pseudo-random order derived from a seed that is echoed back to the caller.

Reusing a seed only yields disjoint pages while the collection is unchanged;
inserts or deletes between requests shift the permutation.
"""
from __future__ import annotations

import logging
import random
import secrets
import sqlite3
from typing import List, Optional, Set

from .dates import read_sql_date
from .entry_types import EntryType
from .errors import StorageError
from .field_codec import decode
from .models import CompiledQuery, Entry, Page
from .store import EntryStore

LOGGER = logging.getLogger("archive.retrieval")

__all__ = ["PAGE_SIZE", "RetrievalEngine", "entry_from_row", "generate_seed"]

PAGE_SIZE = 10

_ENTRY_COLUMNS = (
    "entry_id, link, title, description, author, category, themes, works_mentioned, "
    "tags, date_published, date_saved, exceptional, entry_type, entry_type_metadata"
)


def generate_seed() -> int:
    return secrets.randbelow(2**31)


def entry_from_row(row: sqlite3.Row) -> Entry:
    return Entry(
        id=int(row["entry_id"]),
        link=row["link"],
        title=row["title"],
        description=row["description"],
        authors=decode(row["author"]),
        category=row["category"],
        themes=decode(row["themes"]),
        works_mentioned=decode(row["works_mentioned"]),
        tags=decode(row["tags"]),
        date_published=read_sql_date(row["date_published"]),
        date_saved=read_sql_date(row["date_saved"]),
        exceptional=bool(row["exceptional"]),
        entry_type=EntryType.from_columns(row["entry_type"], row["entry_type_metadata"]),
    )


class RetrievalEngine:
    """Serve :class:`Page` results for compiled queries."""

    def __init__(self, store: EntryStore, *, page_size: int = PAGE_SIZE) -> None:
        self._store = store
        self.page_size = max(1, int(page_size))

    def retrieve(self, query: CompiledQuery) -> Page:
        seed = query.seed if query.seed is not None else generate_seed()
        try:
            with self._store.session() as conn:
                if query.is_filtered:
                    return self._select_filtered(conn, query, seed)
                return self._select_random(conn, query.offset, seed)
        except sqlite3.Error as exc:
            LOGGER.exception("Entry scan failed for predicate %r", query.predicate)
            raise StorageError("entry scan failed") from exc
        except ValueError as exc:
            LOGGER.exception("Stored entry could not be decoded")
            raise StorageError("stored entry is malformed") from exc

    def get_entry(self, entry_id: int) -> Optional[Entry]:
        page = self.retrieve(CompiledQuery(predicate="entry_id = ?", parameters=[int(entry_id)]))
        return page.entries[0] if page.entries else None

    def _select_filtered(self, conn: sqlite3.Connection, query: CompiledQuery, seed: int) -> Page:
        sql = (
            f"SELECT {_ENTRY_COLUMNS}, count(*) OVER () AS full_count "
            f"FROM entries WHERE {query.predicate} "
            "ORDER BY entry_id LIMIT ? OFFSET ?"
        )
        LOGGER.debug("SQL query: %s params=%s", sql, query.parameters)
        rows = conn.execute(sql, (*query.parameters, self.page_size, query.offset)).fetchall()
        entries = [entry_from_row(row) for row in rows]
        if rows:
            total_size = int(rows[0]["full_count"])
        elif query.offset > 0:
            # Past the last match the window has no row to report the count on.
            total_size = int(
                conn.execute(
                    f"SELECT count(*) FROM entries WHERE {query.predicate}",
                    tuple(query.parameters),
                ).fetchone()[0]
            )
        else:
            total_size = 0
        return Page(
            entries=entries,
            current_offset=query.offset,
            next_offset=query.offset + len(entries),
            total_size=total_size,
            seed=seed,
        )

    def _select_random(self, conn: sqlite3.Connection, offset: int, seed: int) -> Page:
        total_size = int(conn.execute("SELECT count(*) FROM entries").fetchone()[0])
        entries: List[Entry] = []
        if offset < total_size:
            indices = list(range(total_size))
            random.Random(seed).shuffle(indices)
            wanted: Set[int] = set(indices[offset : offset + self.page_size])
            cursor = conn.execute(f"SELECT {_ENTRY_COLUMNS} FROM entries ORDER BY entry_id")
            # Membership comes from the permutation, order from the scan.
            for ordinal, row in enumerate(cursor):
                if ordinal in wanted:
                    entries.append(entry_from_row(row))
        return Page(
            entries=entries,
            current_offset=offset,
            next_offset=offset + len(entries),
            total_size=total_size,
            seed=seed,
        )
