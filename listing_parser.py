"""Extract review links and card fragments from a search-results page."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag

from models import ListingEntry
from normalize import SITE_ORIGIN, to_absolute_url

LOGGER = logging.getLogger(__name__)

# Most specific first; the first selector that finds any card wins.
CARD_SELECTORS: tuple[str, ...] = (
    "div.search-results-item",
    ".search-result",
    ".search-results-item",
    ".result-item",
    "article",
    "li.result",
)

TITLE_LINK_SELECTORS: tuple[str, ...] = (
    "h3.result-title a[href]",
    ".search-results-item-body h3 a[href]",
    "h3 a[href]",
    ".result-title a[href]",
)

AUTHOR_SELECTORS: tuple[str, ...] = (
    ".search-result-authors div",
    ".search-result-authors",
    ".result-authors",
    ".authors",
)

DATE_SELECTORS: tuple[str, ...] = (
    ".search-result-date div",
    ".search-result-date",
    ".result-date",
    "time",
)

_AUTHORS_CLASS_RE = re.compile(r"authors", re.IGNORECASE)
_DATE_CLASS_RE = re.compile(r"date", re.IGNORECASE)


def parse_listing(body: str, base: str = SITE_ORIGIN) -> list[ListingEntry]:
    """Return one entry per usable result card, deduplicated by href.

    Malformed markup never raises; cards without a destination link are
    skipped. When no card layout is recognized, bare review DOI anchors are
    used instead.
    """
    soup = BeautifulSoup(body or "", "html.parser")

    cards = _find_cards(soup)
    entries: list[ListingEntry] = []
    if cards:
        for card in cards:
            entry = _parse_card(card, base)
            if entry is not None:
                entries.append(entry)
    else:
        entries = _parse_bare_doi_links(soup, base)

    return _dedupe(entries)


def _find_cards(soup: BeautifulSoup) -> list[Tag]:
    for selector in CARD_SELECTORS:
        cards = soup.select(selector)
        if cards:
            LOGGER.debug("Listing cards matched selector %r (%s)", selector, len(cards))
            return cards
    return []


def _parse_card(card: Tag, base: str) -> ListingEntry | None:
    link = _title_link(card)
    if link is None:
        LOGGER.debug("Skipping result card without a title link")
        return None

    href = str(link.get("href", "")).strip()
    if not _usable_href(href):
        return None

    authors = _first_text(card, AUTHOR_SELECTORS) or _sibling_text(card, _AUTHORS_CLASS_RE)
    date = _first_text(card, DATE_SELECTORS) or _sibling_text(card, _DATE_CLASS_RE)

    return ListingEntry(
        href=to_absolute_url(href, base),
        title=_clean(link.get_text(" ")),
        authors=authors,
        date=date,
    )


def _title_link(card: Tag) -> Tag | None:
    for selector in TITLE_LINK_SELECTORS:
        node = card.select_one(selector)
        if node is not None:
            return node
    return card.find("a", href=True)


def _first_text(card: Tag, selectors: tuple[str, ...]) -> str:
    for selector in selectors:
        node = card.select_one(selector)
        if node is None:
            continue
        text = _node_text(node)
        if text:
            return text
    return ""


def _sibling_text(card: Tag, class_re: re.Pattern[str]) -> str:
    sibling = card.find_next_sibling(class_=class_re)
    if sibling is None:
        return ""
    inner = sibling.find("div")
    return _node_text(inner if inner is not None else sibling)


def _node_text(node: Tag) -> str:
    if node.name == "time" and node.get("datetime"):
        return _clean(str(node["datetime"]))
    return _clean(node.get_text(" "))


def _parse_bare_doi_links(soup: BeautifulSoup, base: str) -> list[ListingEntry]:
    entries: list[ListingEntry] = []
    for anchor in soup.select('a[href*="/cdsr/doi/"]'):
        href = str(anchor.get("href", "")).strip()
        if "/full" not in href or not _usable_href(href):
            continue
        entries.append(ListingEntry(href=to_absolute_url(href, base), title=_clean(anchor.get_text(" "))))
    return entries


def _dedupe(entries: list[ListingEntry]) -> list[ListingEntry]:
    seen: set[str] = set()
    unique: list[ListingEntry] = []
    for entry in entries:
        if entry.href in seen:
            continue
        seen.add(entry.href)
        unique.append(entry)
    return unique


def _usable_href(href: str) -> bool:
    # Relative, protocol-relative or http(s) only.
    if not href or href.startswith("#"):
        return False
    try:
        scheme = urlsplit(href).scheme.lower()
    except ValueError:
        return False
    return scheme in ("", "http", "https")


def _clean(text: str) -> str:
    return " ".join(text.split())
