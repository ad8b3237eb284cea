"""Delimited single-column encoding for multi-valued entry fields.

A list such as ``["Hamlet", "King Lear"]`` is stored as ``"|Hamlet|King Lear|"``.
The surrounding delimiters let a ``LIKE '%|value|%'`` pattern match whole
elements only. Values containing the delimiter do not round-trip.
"""
from __future__ import annotations

from typing import List, Sequence

__all__ = ["DELIMITER", "EMPTY_MARKER", "contains_pattern", "decode", "encode"]

DELIMITER = "|"
EMPTY_MARKER = DELIMITER * 2


def encode(values: Sequence[str]) -> str:
    if not values:
        return ""
    return DELIMITER + DELIMITER.join(values) + DELIMITER


def decode(stored: str) -> List[str]:
    if not stored or stored == EMPTY_MARKER:
        return []
    return stored[1:-1].split(DELIMITER)


def contains_pattern(value: str) -> str:
    """Return a LIKE pattern matching encoded columns that hold *value*."""

    return f"%{DELIMITER}{value}{DELIMITER}%"
