from urllib.parse import parse_qs, urlsplit

from candidates import ALT_SEARCH_PATH, PORTLET_ID, SEARCH_PATH, build_candidates

NS = f"_{PORTLET_ID}_"
TOPIC = "Allergy & intolerance"
TOPIC_ID = "z1506030924307755598196034641807"


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


def test_build_candidates_order_and_paths() -> None:
    urls = build_candidates(TOPIC, TOPIC_ID, page=2, page_size=25)

    assert len(urls) == 7
    paths = [urlsplit(u).path for u in urls]
    assert paths == [
        SEARCH_PATH,
        SEARCH_PATH,
        SEARCH_PATH,
        SEARCH_PATH,
        ALT_SEARCH_PATH,
        SEARCH_PATH,
        ALT_SEARCH_PATH,
    ]
    assert all(u.startswith("https://www.cochranelibrary.com/") for u in urls)


def test_build_candidates_exact_variant_first() -> None:
    q = _query(build_candidates(TOPIC, TOPIC_ID, page=3, page_size=50)[0])

    assert q["p_p_id"] == PORTLET_ID
    assert q["p_p_col_id"] == "column-1"
    assert q[f"{NS}facetQueryTerm"] == TOPIC_ID
    assert q[f"{NS}facetQueryField"] == "topic_id"
    assert q[f"{NS}displayText"] == TOPIC
    assert q[f"{NS}cur"] == "3"
    assert q[f"{NS}delta"] == "50"
    assert "p_p_isolated" not in q


def test_build_candidates_every_variant_carries_same_query() -> None:
    for url in build_candidates(TOPIC, TOPIC_ID, page=2, page_size=10):
        q = _query(url)
        prefix = "" if "cur" in q else NS
        assert q[f"{prefix}facetQueryTerm"] == TOPIC_ID
        assert q[f"{prefix}searchText"] == TOPIC
        assert q[f"{prefix}cur"] == "2"
        assert q[f"{prefix}orderBy"] == "displayDate-true"


def test_build_candidates_offset_and_unprefixed_variants() -> None:
    urls = build_candidates(TOPIC, TOPIC_ID, page=3, page_size=25)

    assert _query(urls[2])[f"{NS}start"] == "50"
    unprefixed = _query(urls[3])
    assert unprefixed["resultPerPage"] == "25"
    assert unprefixed["p_p_isolated"] == "1"
    legacy = _query(urls[5])
    assert "p_p_isolated" not in legacy
    assert legacy["p_p_col_count"] == "1"


def test_build_candidates_encodes_spaces_and_ampersands() -> None:
    url = build_candidates(TOPIC, TOPIC_ID, page=1, page_size=25)[0]
    assert "Allergy+%26+intolerance" in url


def test_build_candidates_custom_origin() -> None:
    urls = build_candidates(TOPIC, TOPIC_ID, 1, 25, origin="http://localhost:8000/")
    assert urls[0].startswith("http://localhost:8000/search?")
