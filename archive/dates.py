"""Calendar date helpers shared by the compiler and the entry store."""
from __future__ import annotations

import re
from datetime import date
from typing import Optional

__all__ = ["format_sql_date", "parse_sql_date", "read_sql_date", "today"]

_SQL_DATE_PATTERN = re.compile(r"^(\d{1,4})-(\d{1,2})-(\d{1,2})$")


def parse_sql_date(text: str) -> Optional[date]:
    """Parse ``Y-M-D`` text (unpadded fields allowed); ``None`` when invalid."""

    match = _SQL_DATE_PATTERN.match(text.strip())
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def format_sql_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def read_sql_date(text: str) -> date:
    """Read a date column written by :func:`format_sql_date`."""

    parsed = parse_sql_date(str(text))
    if parsed is None:
        raise ValueError(f"invalid stored date: {text!r}")
    return parsed


def today() -> date:
    return date.today()
