import pytest

from archive.errors import CompileError
from archive.query_compiler import compile_query


def test_link_checks_for_containment() -> None:
    query = compile_query("link=wikipedia")
    assert query.predicate == "link LIKE ?"
    assert query.parameters == ["%wikipedia%"]
    assert query.offset == 0
    assert query.seed is None


@pytest.mark.parametrize(
    "text, predicate, params",
    [
        ("title=Hello", "title LIKE ?", ["%Hello%"]),
        ("description=compiler", "description LIKE ?", ["%compiler%"]),
        ("category=Programming", "category = ?", ["Programming"]),
        ("author=Pauline%20Kael", "author LIKE ?", ["%|Pauline Kael|%"]),
        ("authors=Pauline%20Kael", "author LIKE ?", ["%|Pauline Kael|%"]),
    ],
)
def test_single_value_keys(text: str, predicate: str, params: list) -> None:
    query = compile_query(text)
    assert query.predicate == predicate
    assert query.parameters == params


def test_tags_add_one_clause_per_value() -> None:
    query = compile_query("tags=A|B")
    assert query.predicate == "tags LIKE ? AND tags LIKE ?"
    assert query.parameters == ["%|A|%", "%|B|%"]


def test_encoded_bars_split_themes_and_works() -> None:
    themes = compile_query("themes=Rust%7CTesting")
    assert themes.predicate == "themes LIKE ? AND themes LIKE ?"
    assert themes.parameters == ["%|Rust|%", "%|Testing|%"]

    works = compile_query("works_mentioned=Hamlet%7CMacBeth%7CKing%20Lear")
    assert works.predicate == (
        "works_mentioned LIKE ? AND works_mentioned LIKE ? AND works_mentioned LIKE ?"
    )
    assert works.parameters == ["%|Hamlet|%", "%|MacBeth|%", "%|King Lear|%"]


@pytest.mark.parametrize(
    "token, index",
    [("article", 0), ("paper", 1), ("book", 2), ("video", 3), ("audio", 4)],
)
def test_type_is_converted_to_an_index(token: str, index: int) -> None:
    query = compile_query(f"type={token}")
    assert query.predicate == f"entry_type = {index}"
    assert query.parameters == []


def test_dates_are_normalised_and_bound() -> None:
    query = compile_query("published_between_from=1967-5-3")
    assert query.predicate == "date_published >= DATE(?)"
    assert query.parameters == ["1967-05-03"]

    query = compile_query("published_between_until=1967-11-24&saved_between_from=2021-01-01")
    assert query.predicate == "date_published <= DATE(?) AND date_saved >= DATE(?)"
    assert query.parameters == ["1967-11-24", "2021-01-01"]

    query = compile_query("saved_between_until=2022-12-31")
    assert query.predicate == "date_saved <= DATE(?)"


def test_exceptional_is_a_compiler_literal() -> None:
    assert compile_query("exceptional=true").predicate == "exceptional = TRUE"
    assert compile_query("exceptional=false").predicate == "exceptional = FALSE"
    assert compile_query("exceptional=yes").predicate == "exceptional = FALSE"
    assert compile_query("exceptional=true").parameters == []


def test_several_predicates_are_anded_in_order() -> None:
    query = compile_query(
        "link=wikipedia&author=Pauline%20Kael&tags=Soulslike%7CGreat%20soundtrack"
    )
    assert query.predicate == "link LIKE ? AND author LIKE ? AND tags LIKE ? AND tags LIKE ?"
    assert query.parameters == [
        "%wikipedia%",
        "%|Pauline Kael|%",
        "%|Soulslike|%",
        "%|Great soundtrack|%",
    ]


def test_offset_and_seed_never_add_clauses() -> None:
    query = compile_query("offset=10")
    assert query.predicate == ""
    assert query.parameters == []
    assert query.offset == 10

    query = compile_query("seed=10")
    assert query.predicate == ""
    assert query.seed == 10

    query = compile_query("offset=10&type=article&seed=7")
    assert query.predicate == "entry_type = 0"
    assert query.offset == 10
    assert query.seed == 7

    query = compile_query("type=article&offset=10&link=a")
    assert query.predicate == "entry_type = 0 AND link LIKE ?"


def test_empty_query_is_unfiltered() -> None:
    query = compile_query("")
    assert query.predicate == ""
    assert not query.is_filtered
    assert query.offset == 0


def test_user_text_is_only_ever_bound() -> None:
    query = compile_query("title=x'%20OR%201=1%20--&category=a%22;DROP%20TABLE%20entries")
    assert query.predicate == "title LIKE ? AND category = ?"
    assert query.parameters == ["%x' OR 1=1 --%", 'a";DROP TABLE entries']

    quoted = compile_query("link=%22wikipedia%22")
    assert quoted.parameters == ['%"wikipedia"%']


def test_encoded_ampersand_stays_inside_value() -> None:
    query = compile_query("title=Tom%20%26%20Jerry")
    assert query.parameters == ["%Tom & Jerry%"]


@pytest.mark.parametrize(
    "text",
    [
        "bogus=1",
        "link=a&bogus=1",
        "type=snafucated",
        "offset=-1",
        "offset=ten",
        "offset=1.5",
        "offset=9223372036854775808",
        "type=article&offset=99999999999999999999",
        "seed=abc",
        "seed=18446744073709551616",
        "published_between_from=1967-13-01",
        "published_between_from=1967-02-30",
        "saved_between_until=yesterday",
        "link=%FF",
        "link",
    ],
)
def test_invalid_queries_fail_entirely(text: str) -> None:
    with pytest.raises(CompileError):
        compile_query(text)


def test_compile_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        compile_query("bogus=1")


def test_offset_accepts_largest_sqlite_integer() -> None:
    assert compile_query("offset=9223372036854775807").offset == 2**63 - 1
