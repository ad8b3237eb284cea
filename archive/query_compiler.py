"""Compile URL-style filter strings into parameterized SQLite predicates.

Every value that originates from the caller is bound through a ``?``
placeholder. The only literals written into the predicate text are the entry
type index and the ``TRUE``/``FALSE`` keywords, both picked by the compiler
from closed sets.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Tuple
from urllib.parse import unquote

from .dates import format_sql_date, parse_sql_date
from .entry_types import EntryKind
from .errors import CompileError
from .field_codec import DELIMITER, contains_pattern
from .models import CompiledQuery

LOGGER = logging.getLogger("archive.query")

__all__ = ["compile_query"]

_SUBSTRING_COLUMNS: Dict[str, str] = {
    "link": "link",
    "title": "title",
    "description": "description",
}

_AUTHOR_KEYS = frozenset({"author", "authors"})

_LIST_COLUMNS: Dict[str, str] = {
    "themes": "themes",
    "works_mentioned": "works_mentioned",
    "tags": "tags",
}

_DATE_BOUNDS: Dict[str, Tuple[str, str]] = {
    "published_between_from": ("date_published", ">="),
    "published_between_until": ("date_published", "<="),
    "saved_between_from": ("date_saved", ">="),
    "saved_between_until": ("date_saved", "<="),
}

_MAX_SEED = 2**64 - 1
_MAX_OFFSET = 2**63 - 1


def compile_query(query_text: str) -> CompiledQuery:
    """Translate ``key=value&...`` into a :class:`CompiledQuery`.

    Raises :class:`CompileError` for unknown keys, malformed values or
    undecodable text. No partial query is ever returned.
    """

    clauses: List[str] = []
    params: List[str] = []
    offset = 0
    seed: Optional[int] = None

    for key, value in _iter_arguments(query_text or ""):
        if key in _SUBSTRING_COLUMNS:
            clauses.append(f"{_SUBSTRING_COLUMNS[key]} LIKE ?")
            params.append(f"%{value}%")
        elif key == "category":
            clauses.append("category = ?")
            params.append(value)
        elif key in _AUTHOR_KEYS:
            clauses.append("author LIKE ?")
            params.append(contains_pattern(value))
        elif key in _LIST_COLUMNS:
            column = _LIST_COLUMNS[key]
            for item in value.split(DELIMITER):
                clauses.append(f"{column} LIKE ?")
                params.append(contains_pattern(item))
        elif key == "type":
            kind = EntryKind.from_token(value)
            if kind is None:
                raise CompileError(f"unknown entry type {value!r}")
            clauses.append(f"entry_type = {int(kind)}")
        elif key in _DATE_BOUNDS:
            column, operator = _DATE_BOUNDS[key]
            parsed = parse_sql_date(value)
            if parsed is None:
                raise CompileError(f"invalid date {value!r} for {key}")
            clauses.append(f"{column} {operator} DATE(?)")
            params.append(format_sql_date(parsed))
        elif key == "exceptional":
            clauses.append("exceptional = TRUE" if value == "true" else "exceptional = FALSE")
        elif key == "offset":
            offset = _parse_non_negative(key, value)
            if offset > _MAX_OFFSET:
                raise CompileError(f"offset out of range: {value!r}")
        elif key == "seed":
            seed = _parse_non_negative(key, value)
            if seed > _MAX_SEED:
                raise CompileError(f"seed out of range: {value!r}")
        else:
            raise CompileError(f"unrecognized filter key {key!r}")

    compiled = CompiledQuery(
        predicate=" AND ".join(clauses),
        parameters=params,
        offset=offset,
        seed=seed,
    )
    LOGGER.debug(
        "Compiled filter %r -> %r params=%s offset=%s seed=%s",
        query_text,
        compiled.predicate,
        compiled.parameters,
        compiled.offset,
        compiled.seed,
    )
    return compiled


def _iter_arguments(query_text: str) -> Iterator[Tuple[str, str]]:
    for segment in query_text.split("&"):
        if not segment:
            continue
        raw_key, sep, raw_value = segment.partition("=")
        if not sep:
            raise CompileError(f"malformed filter argument {segment!r}")
        yield _percent_decode(raw_key), _percent_decode(raw_value)


def _percent_decode(text: str) -> str:
    try:
        return unquote(text, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        raise CompileError("filter query is not valid percent-encoded UTF-8") from exc


def _parse_non_negative(key: str, value: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise CompileError(f"{key} must be a non-negative integer, got {value!r}")
    return int(value)
