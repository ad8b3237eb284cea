import random
import threading
from datetime import date

import pytest

from archive.entry_types import EntryKind, EntryType
from archive.errors import StorageError
from archive.models import CompiledQuery
from archive.query_compiler import compile_query
from archive.retrieval import PAGE_SIZE, RetrievalEngine


def _populate(store, make_form, count: int, **overrides) -> list:
    return [
        store.insert_entry(make_form(title=f"Entry {index}", **overrides))
        for index in range(count)
    ]


def test_filtered_total_size_is_independent_of_offset(store, make_form) -> None:
    tagged = _populate(store, make_form, 23, tags=["Keep"])
    _populate(store, make_form, 5, tags=["Other"])
    engine = RetrievalEngine(store)

    first = engine.retrieve(compile_query("tags=Keep"))
    assert [entry.id for entry in first.entries] == tagged[:PAGE_SIZE]
    assert first.total_size == 23
    assert first.current_offset == 0
    assert first.next_offset == PAGE_SIZE

    last = engine.retrieve(compile_query("tags=Keep&offset=20"))
    assert [entry.id for entry in last.entries] == tagged[20:]
    assert last.total_size == 23
    assert last.next_offset == 23

    beyond = engine.retrieve(compile_query("tags=Keep&offset=40"))
    assert beyond.entries == []
    assert beyond.total_size == 23
    assert beyond.next_offset == 40


def test_filtered_without_matches(store, make_form) -> None:
    _populate(store, make_form, 3)
    page = RetrievalEngine(store).retrieve(compile_query("category=Nothing"))
    assert page.entries == []
    assert page.total_size == 0
    assert page.next_offset == 0


def test_list_containment_has_no_substring_false_positives(store, make_form) -> None:
    rust = store.insert_entry(make_form(tags=["Rust", "Testing"]))
    store.insert_entry(make_form(tags=["Rusty"]))
    store.insert_entry(make_form(tags=["Trust", "Testing"]))
    engine = RetrievalEngine(store)

    page = engine.retrieve(compile_query("tags=Rust"))
    assert [entry.id for entry in page.entries] == [rust]

    both = engine.retrieve(compile_query("tags=Rust%7CTesting"))
    assert [entry.id for entry in both.entries] == [rust]


def test_scalar_filters(store, make_form) -> None:
    book = store.insert_entry(
        make_form(
            link="https://en.wikipedia.org/wiki/Hamlet",
            category="Literature",
            exceptional=True,
            date_published=date(1603, 1, 1),
            entry_type=EntryType(EntryKind.BOOK, 320),
            authors=["William Shakespeare"],
        )
    )
    store.insert_entry(make_form(link="https://example.org/video", entry_type=EntryType(EntryKind.VIDEO, 60)))
    engine = RetrievalEngine(store)

    for text in (
        "type=book",
        "link=WIKIPEDIA",
        "category=Literature",
        "exceptional=true",
        "published_between_until=1700-1-1",
        "author=William%20Shakespeare",
        f"saved_between_from={date.today().isoformat()}&type=book",
    ):
        page = engine.retrieve(compile_query(text))
        assert [entry.id for entry in page.entries] == [book], text

    assert engine.retrieve(compile_query("published_between_from=1700-1-1")).total_size == 1
    assert engine.retrieve(compile_query("exceptional=false")).total_size == 1


def test_entries_are_decoded(store, make_form) -> None:
    entry_id = store.insert_entry(
        make_form(
            authors=["A", "B"],
            works_mentioned=["Hamlet"],
            entry_type=EntryType(EntryKind.AUDIO, 1800),
        )
    )
    entry = RetrievalEngine(store).get_entry(entry_id)
    assert entry is not None
    assert entry.authors == ["A", "B"]
    assert entry.works_mentioned == ["Hamlet"]
    assert entry.themes == []
    assert entry.date_published == date(2020, 1, 1)
    assert entry.date_saved == date.today()
    assert entry.entry_type == EntryType(EntryKind.AUDIO, 1800)
    assert entry.as_dict()["entry_type"] == {"kind": "audio", "length_in_seconds": 1800}


def test_get_entry_missing(store) -> None:
    assert RetrievalEngine(store).get_entry(99) is None


def test_seed_is_echoed_or_generated(store, make_form) -> None:
    _populate(store, make_form, 2)
    engine = RetrievalEngine(store)

    assert engine.retrieve(compile_query("type=article&seed=5")).seed == 5
    generated = engine.retrieve(compile_query("")).seed
    assert 0 <= generated < 2**31


def test_discovery_is_reproducible_for_a_seed(store, make_form) -> None:
    _populate(store, make_form, 25)
    engine = RetrievalEngine(store)

    first = engine.retrieve(compile_query("seed=42&offset=10"))
    again = engine.retrieve(compile_query("offset=10&seed=42"))
    assert [entry.id for entry in first.entries] == [entry.id for entry in again.entries]
    assert first.total_size == 25
    assert first.seed == 42


def test_discovery_membership_follows_seeded_permutation(store, make_form) -> None:
    ids = _populate(store, make_form, 25)
    page = RetrievalEngine(store).retrieve(CompiledQuery(offset=10, seed=7))

    indices = list(range(25))
    random.Random(7).shuffle(indices)
    expected = sorted(ids[ordinal] for ordinal in indices[10:20])
    assert [entry.id for entry in page.entries] == expected


def test_discovery_pages_are_disjoint_and_complete(store, make_form) -> None:
    ids = _populate(store, make_form, 25)
    engine = RetrievalEngine(store)

    seen = []
    offset = 0
    while True:
        page = engine.retrieve(CompiledQuery(offset=offset, seed=1234))
        if not page.entries:
            break
        assert page.current_offset == offset
        assert page.next_offset == offset + len(page.entries)
        seen.extend(entry.id for entry in page.entries)
        offset = page.next_offset
    assert offset == 25
    assert sorted(seen) == ids


def test_discovery_offset_past_end_is_empty(store, make_form) -> None:
    _populate(store, make_form, 3)
    engine = RetrievalEngine(store)

    for offset in (3, 50):
        page = engine.retrieve(CompiledQuery(offset=offset, seed=1))
        assert page.entries == []
        assert page.next_offset == offset
        assert page.total_size == 3


def test_discovery_on_empty_store(store) -> None:
    page = RetrievalEngine(store).retrieve(CompiledQuery(seed=3))
    assert page.entries == []
    assert page.total_size == 0
    assert page.next_offset == 0


def test_scan_failures_surface_as_storage_error(store, make_form) -> None:
    _populate(store, make_form, 1)
    with store.session() as conn:
        conn.execute("DROP TABLE entries")
    engine = RetrievalEngine(store)

    with pytest.raises(StorageError):
        engine.retrieve(compile_query("type=book"))
    with pytest.raises(StorageError):
        engine.retrieve(compile_query(""))


def test_retrieval_waits_for_the_store_lock(store, make_form) -> None:
    _populate(store, make_form, 1)
    engine = RetrievalEngine(store)
    results = []

    worker = threading.Thread(target=lambda: results.append(engine.retrieve(CompiledQuery(seed=1))))
    with store.session():
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        assert results == []
    worker.join(timeout=5)
    assert not worker.is_alive()
    assert len(results[0].entries) == 1


@pytest.mark.parametrize(
    "column, value",
    [("date_published", "not-a-date"), ("entry_type", 99)],
)
def test_malformed_rows_surface_as_storage_error(store, make_form, column, value) -> None:
    _populate(store, make_form, 1)
    with store.session() as conn:
        conn.execute(f"UPDATE entries SET {column} = ?", (value,))
    engine = RetrievalEngine(store)

    with pytest.raises(StorageError):
        engine.retrieve(CompiledQuery(seed=3))
