from __future__ import annotations

from datetime import date
from typing import Callable

import pytest

from archive.entry_types import EntryKind, EntryType
from archive.models import EntryForm
from archive.store import EntryStore


def _make_form(**overrides) -> EntryForm:
    values = dict(
        link="https://example.org/entry",
        title="Example entry",
        description="",
        authors=[],
        category="Misc",
        themes=[],
        works_mentioned=[],
        tags=[],
        date_published=date(2020, 1, 1),
        exceptional=False,
        entry_type=EntryType(EntryKind.ARTICLE, 12),
    )
    values.update(overrides)
    return EntryForm(**values)


@pytest.fixture
def make_form() -> Callable[..., EntryForm]:
    return _make_form


@pytest.fixture
def store(tmp_path):
    with EntryStore(tmp_path / "data" / "archive.db") as opened:
        yield opened
