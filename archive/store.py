"""SQLite-backed entry store guarded by a single process-wide lock."""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from core.db import connect, transaction

from .dates import format_sql_date, today
from .errors import StorageError
from .field_codec import encode
from .models import EntryForm

LOGGER = logging.getLogger("archive.store")

__all__ = ["VOCABULARY_KINDS", "EntryStore", "ensure_tables"]

VOCABULARY_KINDS = ("authors", "themes", "works", "tags")

_ENTRIES_SCHEMA = """
CREATE TABLE IF NOT EXISTS entries (
    entry_id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
    link TEXT NOT NULL COLLATE NOCASE,
    title TEXT NOT NULL COLLATE NOCASE,
    description TEXT NOT NULL COLLATE NOCASE,
    author TEXT NOT NULL,
    category TEXT NOT NULL,
    themes TEXT NOT NULL,
    works_mentioned TEXT NOT NULL,
    tags TEXT NOT NULL,
    date_published DATE NOT NULL,
    date_saved DATE NOT NULL,
    exceptional BOOL NOT NULL,
    entry_type INT NOT NULL,
    entry_type_metadata INT NOT NULL
);
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
    value TEXT UNIQUE NOT NULL
);
"""

_VOCABULARY_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
    value TEXT NOT NULL,
    category TEXT NOT NULL,
    UNIQUE(value, category)
);
"""

_INSERT_ENTRY = """
INSERT INTO entries (
    link, title, description, author, category, themes, works_mentioned, tags,
    date_published, exceptional, entry_type, entry_type_metadata, date_saved
)
VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?)
"""

_UPDATE_ENTRY = """
UPDATE entries
SET link = ?,
    title = ?,
    description = ?,
    author = ?,
    category = ?,
    themes = ?,
    works_mentioned = ?,
    tags = ?,
    date_published = ?,
    exceptional = ?,
    entry_type = ?,
    entry_type_metadata = ?
WHERE entry_id = ?
"""


def ensure_tables(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.executescript(_ENTRIES_SCHEMA)
    for table in VOCABULARY_KINDS:
        cur.executescript(_VOCABULARY_SCHEMA.format(table=table))


def _form_values(form: EntryForm) -> Tuple[object, ...]:
    return (
        form.link,
        form.title,
        form.description,
        encode(form.authors),
        form.category,
        encode(form.themes),
        encode(form.works_mentioned),
        encode(form.tags),
        format_sql_date(form.date_published),
        bool(form.exceptional),
        form.entry_type.index,
        int(form.entry_type.metadata),
    )


def _record_vocabulary(conn: sqlite3.Connection, form: EntryForm) -> None:
    conn.execute("INSERT OR IGNORE INTO categories (value) VALUES (?)", (form.category,))
    for table, values in (
        ("authors", form.authors),
        ("themes", form.themes),
        ("works", form.works_mentioned),
        ("tags", form.tags),
    ):
        conn.executemany(
            f"INSERT OR IGNORE INTO {table} (value, category) VALUES (?, ?)",
            [(value, form.category) for value in values],
        )


class EntryStore:
    """Explicitly opened handle around one connection and one lock.

    Retrieval and writes both run inside :meth:`session`, so they never
    interleave. The connection is shared across FastAPI worker threads, which
    is why it is opened with ``check_same_thread=False``.
    """

    def __init__(self, db_path: str | Path, *, timeout: float = 5.0) -> None:
        self.db_path = Path(db_path)
        self._timeout = float(timeout)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> "EntryStore":
        with self._lock:
            if self._conn is not None:
                return self
            try:
                conn = connect(self.db_path, timeout=self._timeout, check_same_thread=False)
            except sqlite3.Error as exc:
                raise StorageError(f"unable to open entry store at {self.db_path}") from exc
            try:
                conn.row_factory = sqlite3.Row
                ensure_tables(conn)
            except sqlite3.Error as exc:
                conn.close()
                raise StorageError(f"unable to prepare entry store at {self.db_path}") from exc
            self._conn = conn
        LOGGER.info("Opened entry store at %s", self.db_path)
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        LOGGER.info("Closed entry store at %s", self.db_path)

    def __enter__(self) -> "EntryStore":
        return self.open()

    def __exit__(self, *_exc: object) -> None:
        self.close()

    @contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        """Hold the store lock for the duration of the block."""

        with self._lock:
            if self._conn is None:
                raise StorageError("entry store is closed")
            yield self._conn

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_entry(self, form: EntryForm) -> int:
        """Insert *form* with today's saved date and return the new id."""

        with self.session() as conn:
            try:
                with transaction(conn):
                    cursor = conn.execute(
                        _INSERT_ENTRY, (*_form_values(form), format_sql_date(today()))
                    )
                    entry_id = int(cursor.lastrowid)
                    _record_vocabulary(conn, form)
            except sqlite3.Error as exc:
                LOGGER.exception("Insert into entries failed")
                raise StorageError("failed to insert entry") from exc
        LOGGER.info("Inserted entry %s (%s)", entry_id, form.link)
        return entry_id

    def update_entry(self, entry_id: int, form: EntryForm) -> bool:
        """Overwrite caller-owned columns; ``date_saved`` is kept."""

        with self.session() as conn:
            try:
                with transaction(conn):
                    cursor = conn.execute(_UPDATE_ENTRY, (*_form_values(form), int(entry_id)))
                    updated = cursor.rowcount > 0
                    if updated:
                        _record_vocabulary(conn, form)
            except sqlite3.Error as exc:
                LOGGER.exception("Update of entry %s failed", entry_id)
                raise StorageError(f"failed to update entry {entry_id}") from exc
        if updated:
            LOGGER.info("Updated entry %s", entry_id)
        return updated

    def delete_entry(self, entry_id: int) -> bool:
        with self.session() as conn:
            try:
                with transaction(conn):
                    cursor = conn.execute("DELETE FROM entries WHERE entry_id = ?", (int(entry_id),))
            except sqlite3.Error as exc:
                LOGGER.exception("Delete of entry %s failed", entry_id)
                raise StorageError(f"failed to delete entry {entry_id}") from exc
        deleted = cursor.rowcount > 0
        if deleted:
            LOGGER.info("Deleted entry %s", entry_id)
        return deleted

    # ------------------------------------------------------------------
    # Vocabulary
    # ------------------------------------------------------------------

    def list_categories(self) -> List[str]:
        with self.session() as conn:
            try:
                rows = conn.execute("SELECT value FROM categories ORDER BY id").fetchall()
            except sqlite3.Error as exc:
                LOGGER.exception("Listing categories failed")
                raise StorageError("failed to list categories") from exc
        return [str(row["value"]) for row in rows]

    def list_vocabulary(self, kind: str) -> List[Tuple[str, str]]:
        """Return ``(value, category)`` pairs for authors, themes, works or tags."""

        if kind not in VOCABULARY_KINDS:
            raise ValueError(f"unknown vocabulary {kind!r}")
        with self.session() as conn:
            try:
                rows = conn.execute(f"SELECT value, category FROM {kind} ORDER BY id").fetchall()
            except sqlite3.Error as exc:
                LOGGER.exception("Listing %s failed", kind)
                raise StorageError(f"failed to list {kind}") from exc
        return [(str(row["value"]), str(row["category"])) for row in rows]
