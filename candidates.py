"""Listing URL variants for the Cochrane search-results portlet.

The portlet (Liferay) accepts its query under several parameter-naming
conventions depending on the skin and on whether the request is "isolated".
The parameter names below were captured from browser DevTools and are an
opaque contract with the site: keep them verbatim. Every candidate encodes the
same logical query (topic facet, search text, ordering, page, page size); the
order only decides which one is tried first.
"""

from __future__ import annotations

from urllib.parse import urlencode

from normalize import SITE_ORIGIN

PORTLET_ID = "scolarissearchresultsportlet_WAR_scolarissearchresults"
_NS = f"_{PORTLET_ID}_"

SEARCH_PATH = "/search"
ALT_SEARCH_PATH = "/web/cochrane/search"


def build_candidates(
    topic_name: str,
    topic_id: str,
    page: int,
    page_size: int,
    origin: str = SITE_ORIGIN,
) -> list[str]:
    """Return absolute listing URLs for one page, most likely accepted first."""
    page_str = str(page)
    size_str = str(page_size)

    # Exact form seen in the browser.
    exact = {
        "p_p_id": PORTLET_ID,
        "p_p_lifecycle": "0",
        "p_p_state": "normal",
        "p_p_mode": "view",
        "p_p_col_id": "column-1",
        "p_p_col_count": "1",
        f"{_NS}displayText": topic_name,
        f"{_NS}searchText": topic_name,
        f"{_NS}searchType": "basic",
        f"{_NS}facetQueryField": "topic_id",
        f"{_NS}searchBy": "13",
        f"{_NS}orderBy": "displayDate-true",
        f"{_NS}facetDisplayName": topic_name,
        f"{_NS}facetQueryTerm": topic_id,
        f"{_NS}facetCategory": "Topics",
        f"{_NS}delta": size_str,
        f"{_NS}cur": page_str,
    }

    iso_unprefixed = {
        "p_p_id": PORTLET_ID,
        "p_p_lifecycle": "0",
        "p_p_state": "normal",
        "p_p_mode": "view",
        "p_p_isolated": "1",
        "displayText": topic_name,
        "searchText": topic_name,
        "searchType": "basic",
        "searchBy": "13",
        "orderBy": "displayDate-true",
        "cur": page_str,
        "resultPerPage": size_str,
        "facetQueryField": "topic_id",
        "facetQueryTerm": topic_id,
        "facetDisplayName": topic_name,
        "facetCategory": "Topics",
        "selectedType": "review",
        "forceTypeSelection": "true",
    }

    iso_prefixed = {
        "p_p_id": PORTLET_ID,
        "p_p_lifecycle": "0",
        "p_p_state": "normal",
        "p_p_mode": "view",
        "p_p_isolated": "1",
        f"{_NS}displayText": topic_name,
        f"{_NS}searchText": topic_name,
        f"{_NS}searchType": "basic",
        f"{_NS}searchBy": "13",
        f"{_NS}orderBy": "displayDate-true",
        f"{_NS}cur": page_str,
        f"{_NS}delta": size_str,
        f"{_NS}facetQueryField": "topic_id",
        f"{_NS}facetQueryTerm": topic_id,
        f"{_NS}facetDisplayName": topic_name,
        f"{_NS}facetCategory": "Topics",
        f"{_NS}selectedType": "review",
        f"{_NS}forceTypeSelection": "true",
    }

    iso_prefixed_offset = {
        **iso_prefixed,
        f"{_NS}start": str((page - 1) * page_size),
    }

    legacy = {key: value for key, value in iso_prefixed.items() if key != "p_p_isolated"}
    legacy["p_p_col_id"] = "column-1"
    legacy["p_p_col_count"] = "1"

    variants = [
        (SEARCH_PATH, exact),
        (SEARCH_PATH, iso_prefixed),
        (SEARCH_PATH, iso_prefixed_offset),
        (SEARCH_PATH, iso_unprefixed),
        (ALT_SEARCH_PATH, iso_prefixed),
        (SEARCH_PATH, legacy),
        (ALT_SEARCH_PATH, legacy),
    ]

    base = origin.rstrip("/")
    return [f"{base}{path}?{urlencode(params)}" for path, params in variants]
