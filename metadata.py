"""Title/author/date extraction from a single review page."""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup

from models import DocumentMetadata
from normalize import join_authors, normalize_date

LOGGER = logging.getLogger(__name__)

TITLE_META_NAMES: tuple[str, ...] = ("dc.title", "citation_title")
AUTHOR_META_NAMES: tuple[str, ...] = ("dc.creator", "citation_author", "citation_authors")
DATE_META_NAMES: tuple[str, ...] = (
    "dc.date",
    "citation_date",
    "citation_publication_date",
    "citation_online_date",
)

_AUTHOR_CLASS_RE = re.compile(r"author", re.IGNORECASE)


def extract_metadata(body: str) -> DocumentMetadata:
    """Extract metadata from a review page; any parse error yields empty fields."""
    try:
        return _extract(body)
    except Exception as exc:  # one bad page must not abort the listing
        LOGGER.warning("Metadata extraction failed, using empty fields: %s", exc)
        return DocumentMetadata()


def _extract(body: str) -> DocumentMetadata:
    soup = BeautifulSoup(body or "", "html.parser")
    meta = _meta_by_name(soup)

    title = _first_meta(meta, TITLE_META_NAMES)
    if not title:
        h1 = soup.find("h1")
        title = _clean(h1.get_text(" ")) if h1 is not None else ""

    authors = _meta_authors(meta)
    if not authors:
        # Innermost matches only, so a wrapper's text does not repeat its children.
        authors = [
            _clean(node.get_text(" "))
            for node in soup.find_all(class_=_AUTHOR_CLASS_RE)
            if node.find(class_=_AUTHOR_CLASS_RE) is None
        ]

    date = _first_meta(meta, DATE_META_NAMES)
    if not date:
        time_node = soup.find("time", attrs={"datetime": True})
        date = str(time_node["datetime"]).strip() if time_node is not None else ""

    return DocumentMetadata(
        title=title,
        authors=join_authors(authors),
        date=normalize_date(date),
    )


def _meta_by_name(soup: BeautifulSoup) -> dict[str, list[str]]:
    """Group <meta name=… content=…> values by lower-cased name, in page order."""
    grouped: dict[str, list[str]] = {}
    for tag in soup.find_all("meta", attrs={"name": True, "content": True}):
        name = str(tag["name"]).strip().lower()
        content = _clean(str(tag["content"]))
        if content:
            grouped.setdefault(name, []).append(content)
    return grouped


def _first_meta(meta: dict[str, list[str]], names: tuple[str, ...]) -> str:
    for name in names:
        values = meta.get(name)
        if values:
            return values[0]
    return ""


def _meta_authors(meta: dict[str, list[str]]) -> list[str]:
    # citation_authors packs several names into one tag; join_authors splits them.
    return [value for name in AUTHOR_META_NAMES for value in meta.get(name, [])]


def _clean(text: str) -> str:
    return " ".join(text.split())
