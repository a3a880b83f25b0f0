"""Field cleaning and canonicalization for pipe-delimited output."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from dateutil import parser as dateparser

from models import Record

SITE_ORIGIN = "https://www.cochranelibrary.com"
WILEY_DOI_BASE = "https://onlinelibrary.wiley.com/doi"
FIELD_DELIMITER = "|"

_DOI_FULL_PATH_RE = re.compile(r"/(10\.\d{4,9}/[^/]+)/full")
_AUTHOR_SPLIT_RE = re.compile(r"[;,]")
_CORE_CODE_RE = re.compile(r"14651858\.(CD\d{6})", re.IGNORECASE)
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_YEAR_ONLY_RE = re.compile(r"^\d{4}$")
_YEAR_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
_HAS_YEAR_RE = re.compile(r"\d{4}")
_ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")

# Missing components parse to the first day/month instead of today's.
_DATE_DEFAULT = datetime(2000, 1, 1)


def sanitize_field(value: Any) -> str:
    """Make a value safe for one pipe-delimited field."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value if v is not None)
    text = str(value).replace(FIELD_DELIMITER, " - ")
    # str.split() also breaks on CR, LF and the Unicode line separators.
    return " ".join(text.split())


def normalize_date(raw: str | None) -> str:
    """Return YYYY-MM-DD when the input looks like a date, else the trimmed input."""
    value = (raw or "").strip()
    if not value:
        return ""
    if _YEAR_ONLY_RE.match(value):
        return f"{value}-01-01"
    if _YEAR_MONTH_RE.match(value):
        if not 1 <= int(value[5:]) <= 12:
            return value
        return f"{value}-01"
    if not _HAS_YEAR_RE.search(value):
        return value

    try:
        parsed = dateparser.parse(value, default=_DATE_DEFAULT)
    except (ValueError, OverflowError):
        return value
    return parsed.strftime("%Y-%m-%d")


def to_absolute_url(href: str, base: str = SITE_ORIGIN) -> str:
    href = href.strip()
    if href.startswith("//"):
        return "https:" + href
    if _SCHEME_RE.match(href):
        return href
    return base.rstrip("/") + "/" + href.lstrip("/")


def canonicalize_document_url(href: str, base: str = SITE_ORIGIN) -> str:
    """Prefer the Wiley mirror URL when the link carries a ``<doi>/full`` path."""
    absolute = to_absolute_url(href, base)
    match = _DOI_FULL_PATH_RE.search(absolute)
    if match:
        return f"{WILEY_DOI_BASE}/{match.group(1)}/full"
    return absolute


def core_code_for(value: str) -> str | None:
    """Return the Cochrane core code (CDnnnnnn) embedded in a DOI or URL."""
    match = _CORE_CODE_RE.search(value or "")
    return match.group(1).upper() if match else None


def split_authors(value: str) -> list[str]:
    """Split a delimiter-separated author string (``;`` or ``,``) into names."""
    return [piece.strip() for piece in _AUTHOR_SPLIT_RE.split(value or "") if piece.strip()]


def join_authors(names: Iterable[str]) -> str:
    """Comma-join individual names, dropping blanks and repeats (first occurrence wins).

    Each item may itself be a ``;``/``,`` separated list; it is split first so
    duplicates are detected per name.
    """
    seen: dict[str, None] = {}
    for item in names:
        for name in split_authors(sanitize_field(item)):
            if name not in seen:
                seen[name] = None
    return ", ".join(seen)


def build_record(url: str, topic: str, title: Any, authors: Any, date: str | None) -> Record:
    """Build a Record that satisfies the output-stream invariants."""
    cleaned_url = (url or "").strip().replace(FIELD_DELIMITER, "%7C")
    if not cleaned_url:
        raise ValueError("Record URL must not be empty")

    names = authors if isinstance(authors, (list, tuple)) else [authors]

    return Record(
        url="".join(to_absolute_url(cleaned_url).split()),
        topic=sanitize_field(topic),
        title=sanitize_field(title),
        authors=join_authors(names),
        date=_iso_date_or_empty(date),
    )


def _iso_date_or_empty(raw: str | None) -> str:
    # Record dates are strictly YYYY-MM-DD or empty.
    normalized = normalize_date(raw)
    match = _ISO_DATE_RE.search(normalized)
    return match.group(0) if match else ""
