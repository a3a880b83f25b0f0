from listing_parser import parse_listing

CARD_PAGE = """
<html><body>
<div class="search-results-item">
  <div class="search-results-item-body">
    <h3 class="result-title"><a href="/cdsr/doi/10.1002/14651858.CD000001.pub3/full">Drugs for   stroke</a></h3>
    <div class="search-result-authors"><div>Smith J, Doe A</div></div>
    <div class="search-result-date"><div>28 February 2013</div></div>
  </div>
</div>
<div class="search-results-item">
  <h3><a href="https://www.cochranelibrary.com/cdsr/doi/10.1002/14651858.CD000002/full">Exercise for migraine</a></h3>
  <time datetime="2020-05-01">May 2020</time>
</div>
</body></html>
"""


def test_parse_listing_extracts_cards() -> None:
    entries = parse_listing(CARD_PAGE)

    assert len(entries) == 2
    first, second = entries
    assert first.href == "https://www.cochranelibrary.com/cdsr/doi/10.1002/14651858.CD000001.pub3/full"
    assert first.title == "Drugs for stroke"
    assert first.authors == "Smith J, Doe A"
    assert first.date == "28 February 2013"
    assert second.title == "Exercise for migraine"
    assert second.authors == ""
    assert second.date == "2020-05-01"


def test_parse_listing_dedupes_by_href() -> None:
    card = '<div class="search-results-item"><h3><a href="/cdsr/doi/a/full">A</a></h3></div>'
    entries = parse_listing(f"<html><body>{card}{card}</body></html>")
    assert [e.href for e in entries] == ["https://www.cochranelibrary.com/cdsr/doi/a/full"]


def test_parse_listing_skips_cards_without_usable_link() -> None:
    body = """
    <div class="search-results-item"><h3>No link here</h3></div>
    <div class="search-results-item"><h3><a href="#">Anchor</a></h3></div>
    <div class="search-results-item"><h3><a href="/cdsr/doi/b/full">B</a></h3></div>
    """
    entries = parse_listing(body)
    assert [e.title for e in entries] == ["B"]


def test_parse_listing_sibling_author_and_date_blocks() -> None:
    body = """
    <div class="result-item"><a href="/cdsr/doi/c/full">C</a></div>
    <div class="result-authors-block"><div>Lee K</div></div>
    <div class="result-date-block"><div>2018</div></div>
    """
    (entry,) = parse_listing(body)
    assert entry.authors == "Lee K"
    assert entry.date == "2018"


def test_parse_listing_falls_back_to_bare_doi_links() -> None:
    body = """
    <ul>
      <li><a href="/cdsr/doi/10.1002/14651858.CD000003/full">Review C</a></li>
      <li><a href="/cdsr/doi/10.1002/14651858.CD000003/abstract">Abstract only</a></li>
      <li><a href="/about">About</a></li>
    </ul>
    """
    entries = parse_listing(body)
    assert len(entries) == 1
    assert entries[0].title == "Review C"


def test_parse_listing_uses_custom_base() -> None:
    body = '<article><h3><a href="/cdsr/doi/d/full">D</a></h3></article>'
    (entry,) = parse_listing(body, base="http://127.0.0.1:8000")
    assert entry.href == "http://127.0.0.1:8000/cdsr/doi/d/full"


def test_parse_listing_empty_and_malformed() -> None:
    assert parse_listing("") == []
    assert isinstance(parse_listing("<div class='search-results-item'><h3><a href='/x'>unclosed"), list)
    assert parse_listing("<html><body><p>No results</p></body></html>") == []


def test_parse_listing_three_cards_and_one_without_link() -> None:
    body = """
    <div class="search-results-item"><h3><a href="/cdsr/doi/one/full">One</a></h3></div>
    <div class="search-results-item"><h3>Missing link</h3><p>no anchor</p></div>
    <div class="search-results-item"><h3><a href="/cdsr/doi/two/full">Two</a></h3></div>
    <div class="search-results-item"><h3><a href="/cdsr/doi/three/full">Three</a></h3></div>
    """
    assert [e.title for e in parse_listing(body)] == ["One", "Two", "Three"]


def test_parse_listing_ignores_non_web_links() -> None:
    body = """
    <div class="search-results-item"><a href="mailto:x@y.z">Contact</a></div>
    <div class="search-results-item"><a href="javascript:void(0)">Open</a></div>
    <div class="search-results-item"><a href="//www.cochranelibrary.com/cdsr/doi/e/full">E</a></div>
    <div class="search-results-item"><a href="http://www.cochranelibrary.com/cdsr/doi/f/full">F</a></div>
    """
    assert [e.href for e in parse_listing(body)] == [
        "https://www.cochranelibrary.com/cdsr/doi/e/full",
        "http://www.cochranelibrary.com/cdsr/doi/f/full",
    ]
