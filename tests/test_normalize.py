import pytest

from normalize import (
    WILEY_DOI_BASE,
    build_record,
    canonicalize_document_url,
    core_code_for,
    join_authors,
    normalize_date,
    sanitize_field,
    split_authors,
    to_absolute_url,
)


def test_sanitize_field_replaces_delimiter_and_collapses_whitespace() -> None:
    assert sanitize_field("  Drugs |  for\n\tpain  ") == "Drugs - for pain"


def test_sanitize_field_none_and_lists() -> None:
    assert sanitize_field(None) == ""
    assert sanitize_field(["Smith J", "Doe A"]) == "Smith J, Doe A"


def test_sanitize_field_unicode_line_separator() -> None:
    assert sanitize_field("a b\r\nc") == "a b c"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("28 February 2013", "2013-02-28"),
        ("2013-02-28", "2013-02-28"),
        ("2013-02-28T10:15:00Z", "2013-02-28"),
        ("2019", "2019-01-01"),
        ("2019-07", "2019-07-01"),
        ("March 2020", "2020-03-01"),
    ],
)
def test_normalize_date_known_formats(raw: str, expected: str) -> None:
    assert normalize_date(raw) == expected


def test_normalize_date_empty_and_unparseable() -> None:
    assert normalize_date("") == ""
    assert normalize_date(None) == ""
    assert normalize_date("  not a date ") == "not a date"
    assert normalize_date("Issue 2024 zzz qqq") == "Issue 2024 zzz qqq"


def test_to_absolute_url() -> None:
    assert to_absolute_url("/cdsr/doi/x/full") == "https://www.cochranelibrary.com/cdsr/doi/x/full"
    assert to_absolute_url("//example.org/a") == "https://example.org/a"
    assert to_absolute_url("https://example.org/a") == "https://example.org/a"
    assert to_absolute_url("a/b", base="http://localhost:8080/") == "http://localhost:8080/a/b"


def test_canonicalize_document_url_rewrites_doi_full_path() -> None:
    href = "/cdsr/doi/10.1002/14651858.CD012345.pub2/full"
    assert canonicalize_document_url(href) == f"{WILEY_DOI_BASE}/10.1002/14651858.CD012345.pub2/full"


def test_canonicalize_document_url_leaves_other_urls() -> None:
    assert canonicalize_document_url("/some/page") == "https://www.cochranelibrary.com/some/page"


def test_core_code_for() -> None:
    url = "https://onlinelibrary.wiley.com/doi/10.1002/14651858.CD000001.pub3/full"
    assert core_code_for(url) == "CD000001"
    assert core_code_for("https://example.org/nothing") is None


def test_join_authors_dedupes_in_order() -> None:
    assert join_authors(["Smith J", "", "Doe A", "Smith J"]) == "Smith J, Doe A"


def test_build_record_normalizes_every_field() -> None:
    record = build_record(
        "https://example.org/a|b",
        "Neurology",
        "Title | with pipe",
        ["Smith J", "Doe A"],
        "28 February 2013",
    )
    assert record.url == "https://example.org/a%7Cb"
    assert record.topic == "Neurology"
    assert record.title == "Title - with pipe"
    assert record.authors == "Smith J, Doe A"
    assert record.date == "2013-02-28"


def test_build_record_unparseable_date_becomes_empty() -> None:
    record = build_record("https://example.org/a", "Neurology", "T", "", "sometime")
    assert record.date == ""


def test_build_record_requires_url() -> None:
    with pytest.raises(ValueError):
        build_record("  ", "Neurology", "T", "", "")


def test_normalize_date_passthrough_for_non_dates() -> None:
    assert normalize_date("not-a-date") == "not-a-date"
    assert normalize_date("2013-02") == "2013-02-01"
    assert normalize_date("2013") == "2013-01-01"


@pytest.mark.parametrize("value", ["a|b", "line\nbreak", "x\r\ny | z", "|||", " sep"])
def test_sanitize_field_never_contains_delimiter_or_newline(value: str) -> None:
    cleaned = sanitize_field(value)
    assert "|" not in cleaned
    assert "\n" not in cleaned
    assert "\r" not in cleaned


def test_normalize_date_out_of_range_month_is_not_padded() -> None:
    assert normalize_date("2013-13") == "2013-13"
    assert normalize_date("2013-00") == "2013-00"
    assert normalize_date("2013-12") == "2013-12-01"


def test_build_record_drops_impossible_month() -> None:
    assert build_record("https://example.org/a", "Neurology", "T", "", "2013-13").date == ""


def test_split_authors() -> None:
    assert split_authors("Smith J; Doe A, Lee K") == ["Smith J", "Doe A", "Lee K"]
    assert split_authors(" , ;") == []


def test_join_authors_dedupes_names_inside_joined_strings() -> None:
    assert join_authors(["Smith J, Doe A", "Doe A", "Lee K; Smith J"]) == "Smith J, Doe A, Lee K"


def test_build_record_dedupes_comma_joined_author_string() -> None:
    record = build_record("https://example.org/a", "Neurology", "T", "Smith J, Doe A, Smith J", "")
    assert record.authors == "Smith J, Doe A"
