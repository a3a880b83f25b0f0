"""Shared typed models for the harvester."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class Record:
    """One output line: a single review as written to the record stream."""

    url: str
    topic: str
    title: str
    authors: str
    date: str


@dataclass(frozen=True, slots=True)
class Topic:
    name: str
    id: str


class FetchStatus(Enum):
    OK = "ok"
    CHALLENGED = "challenged"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FetchResponse:
    """Raw response returned by a fetch capability (HTTP or browser)."""

    status: int
    body: str
    content_encoding: str = ""


@dataclass(frozen=True, slots=True)
class PageFetchResult:
    """Classified outcome of fetching one listing or document page."""

    status: FetchStatus
    body: str | None = None
    http_status: int | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.OK


@dataclass(frozen=True, slots=True)
class ListingEntry:
    """Raw fragment extracted from one result card on a listing page."""

    href: str
    title: str = ""
    authors: str = ""
    date: str = ""


@dataclass(frozen=True, slots=True)
class DocumentMetadata:
    title: str = ""
    authors: str = ""
    date: str = ""


@dataclass(frozen=True, slots=True)
class FallbackItem:
    """A Crossref work accepted by the fallback resolver.

    ``issued`` holds (year, month, day) with missing parts as 0 so that
    tuples compare chronologically.
    """

    core_code: str
    version: int
    doi: str
    title: str
    authors: tuple[str, ...]
    url: str
    issued: tuple[int, int, int]
