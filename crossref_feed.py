"""Crossref fallback: Cochrane reviews for a topic when the Library is unreachable."""

from __future__ import annotations

import logging
import os
import re
import time
from typing import Any

import requests

from filters import build_include_patterns, matches_topic, tokenize_topic
from models import FallbackItem, Record
from normalize import build_record

CROSSREF_WORKS_URL = "https://api.crossref.org/works"
CDSR_CONTAINER_TITLE = "Cochrane Database of Systematic Reviews"
CDSR_DOI_MARKER = "10.1002/14651858."
REQUEST_TIMEOUT_SECONDS = 25
ROWS_PER_PAGE = 200
MAX_PAGES_PER_TERM = 50
MAX_RETRIES = 3
DEFAULT_MAX_RECORDS = 400

LOGGER = logging.getLogger(__name__)

_CDSR_DOI_RE = re.compile(r"^10\.1002/14651858\.(CD\d{6})(?:\.pub(\d+))?", re.IGNORECASE)


class ExternalApiFailure(RuntimeError):
    """A Crossref request failed after retries or returned an unusable payload."""


def resolve_by_topic(
    topic_name: str,
    max_records: int = DEFAULT_MAX_RECORDS,
    filter_titles: bool = True,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> list[Record]:
    """Search Crossref for Cochrane reviews on a topic and return normalized records.

    Queries the full topic string and then each topic token, keeps one item
    per review core code (latest ``.pubN``, then newest issue date), and
    returns at most ``max_records`` records sorted newest first. A failing
    query term is logged and skipped.
    """
    if max_records <= 0:
        return []

    tokens = tokenize_topic(topic_name)
    patterns = build_include_patterns(tokens)
    terms = _query_terms(topic_name, tokens)
    headers = _crossref_headers()

    best_by_core: dict[str, FallbackItem] = {}

    for term in terms:
        if len(best_by_core) >= max_records:
            break
        try:
            accepted = _collect_term(term, best_by_core, max_records, patterns, filter_titles, headers, timeout)
        except ExternalApiFailure as exc:
            LOGGER.warning("Crossref query %r failed, trying next term: %s", term, exc)
            continue
        LOGGER.info("Crossref term=%r accepted=%s unique_reviews=%s", term, accepted, len(best_by_core))

    ranked = sorted(best_by_core.values(), key=lambda it: (it.issued, it.version), reverse=True)

    records = [
        build_record(item.url, topic_name, item.title, item.authors, _format_issued(item.issued))
        for item in ranked[:max_records]
    ]
    LOGGER.info(
        "Crossref fallback: topic=%r terms=%s unique_reviews=%s returned=%s",
        topic_name,
        len(terms),
        len(best_by_core),
        len(records),
    )
    return records


def _collect_term(
    term: str,
    best_by_core: dict[str, FallbackItem],
    max_records: int,
    patterns: list[re.Pattern[str]],
    filter_titles: bool,
    headers: dict[str, str],
    timeout: float,
) -> int:
    """Page through one query term, updating ``best_by_core`` in place."""
    cursor: str | None = "*"
    accepted = 0

    for _ in range(MAX_PAGES_PER_TERM):
        if not cursor or len(best_by_core) >= max_records:
            break

        message = _fetch_works_page(term, cursor, headers, timeout)
        items = message.get("items") or []
        if not items:
            break

        for raw in items:
            if not isinstance(raw, dict):
                continue
            if filter_titles and not matches_topic(_item_title(raw).lower(), _item_subjects(raw), patterns):
                continue
            item = parse_work_item(raw)
            if item is None:
                continue

            current = best_by_core.get(item.core_code)
            if current is None or is_better_version(item, current):
                best_by_core[item.core_code] = item
                LOGGER.debug("Keeping %s (v%s) for %s", item.doi, item.version, item.core_code)
                accepted += 1

            if len(best_by_core) >= max_records:
                break

        cursor = _as_str(message.get("next-cursor"))

    return accepted


def parse_work_item(item: dict[str, Any]) -> FallbackItem | None:
    """Map one Crossref work to a FallbackItem; None if it is not a CDSR review."""
    doi = _as_str(item.get("DOI"))
    if not doi:
        return None

    container = _first(item.get("container-title")) or ""
    if CDSR_CONTAINER_TITLE.lower() not in container.lower():
        return None

    match = _CDSR_DOI_RE.match(doi)
    if not match:
        return None

    return FallbackItem(
        core_code=match.group(1).upper(),
        version=int(match.group(2)) if match.group(2) else 1,
        doi=doi,
        title=_item_title(item),
        authors=_format_authors(item.get("author")),
        url=_preferred_url(item, doi),
        issued=_issued_parts(item.get("issued")),
    )


def is_better_version(candidate: FallbackItem, current: FallbackItem) -> bool:
    """Higher ``.pubN`` wins; on a tie the later issue date wins."""
    if candidate.version != current.version:
        return candidate.version > current.version
    return candidate.issued > current.issued


def _fetch_works_page(term: str, cursor: str, headers: dict[str, str], timeout: float) -> dict[str, Any]:
    params = {
        "query": term,
        "query.container-title": CDSR_CONTAINER_TITLE,
        "filter": "prefix:10.1002,type:journal-article",
        "select": "DOI,title,author,URL,issued,link,container-title,subject",
        "sort": "issued",
        "order": "desc",
        "rows": ROWS_PER_PAGE,
        "cursor": cursor,
    }
    response = _request_with_backoff(params=params, headers=headers, timeout=timeout)
    try:
        body = response.json()
    except ValueError as exc:
        raise ExternalApiFailure(f"Crossref returned invalid JSON: {exc}") from exc

    message = body.get("message") if isinstance(body, dict) else None
    if not isinstance(message, dict):
        raise ExternalApiFailure("Unexpected Crossref payload shape: missing 'message'")
    return message


def _request_with_backoff(
    *,
    params: dict[str, Any],
    headers: dict[str, str],
    timeout: float,
) -> requests.Response:
    """GET /works with simple exponential backoff on 429 and transport errors."""
    delay_seconds = 1.0
    last_error: Exception | None = None

    for attempt in range(1, MAX_RETRIES + 1):
        try:
            response = requests.get(CROSSREF_WORKS_URL, params=params, headers=headers, timeout=timeout)
            if response.status_code == 429 and attempt < MAX_RETRIES:
                time.sleep(delay_seconds)
                delay_seconds *= 2
                continue
            response.raise_for_status()
            return response
        except requests.RequestException as exc:
            last_error = exc
            if attempt >= MAX_RETRIES:
                break
            time.sleep(delay_seconds)
            delay_seconds *= 2

    raise ExternalApiFailure(f"Crossref request failed after retries: {last_error}")


def _crossref_headers() -> dict[str, str]:
    mailto = os.getenv("CROSSREF_MAILTO", "you@example.com")
    return {
        "User-Agent": f"cochrane-topic-harvester/1.0 (mailto:{mailto})",
        "Accept": "application/json",
    }


def _query_terms(topic: str, tokens: list[str]) -> list[str]:
    terms: list[str] = []
    for term in [topic.strip(), *tokens]:
        if term and term not in terms:
            terms.append(term)
    return terms


def _preferred_url(item: dict[str, Any], doi: str) -> str:
    links = item.get("link")
    if isinstance(links, list):
        for link in links:
            url = _as_str(link.get("URL")) if isinstance(link, dict) else None
            if url and CDSR_DOI_MARKER in url.lower():
                return url
    url = _as_str(item.get("URL"))
    if url and CDSR_DOI_MARKER in url.lower():
        return url
    return f"https://doi.org/{doi}"


def _format_authors(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    names: list[str] = []
    for author in value:
        if not isinstance(author, dict):
            continue
        name = " ".join(
            part for part in (_as_str(author.get("given")), _as_str(author.get("family"))) if part
        ) or _as_str(author.get("name"))
        if name:
            names.append(name)
    return tuple(names)


def _issued_parts(value: Any) -> tuple[int, int, int]:
    try:
        parts = value["date-parts"][0]
    except (KeyError, IndexError, TypeError):
        return (0, 0, 0)
    if not isinstance(parts, list):
        return (0, 0, 0)

    padded = [_as_int(p) for p in parts[:3]] + [0, 0, 0]
    return (padded[0], padded[1], padded[2])


def _format_issued(issued: tuple[int, int, int]) -> str:
    year, month, day = issued
    if not year:
        return ""
    return f"{year:04d}-{month or 1:02d}-{day or 1:02d}"


def _item_title(item: dict[str, Any]) -> str:
    return _first(item.get("title")) or ""


def _item_subjects(item: dict[str, Any]) -> list[str]:
    subjects = item.get("subject")
    if not isinstance(subjects, list):
        return []
    return [s for s in subjects if isinstance(s, str)]


def _first(value: Any) -> str | None:
    if isinstance(value, list):
        value = value[0] if value else None
    return _as_str(value)


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None
