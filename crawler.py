"""Paginated topic crawl: listing candidates -> review pages -> records."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from candidates import build_candidates
from challenge import is_challenge
from config import CrawlConfig
from http_client import FetchFailed, build_browser_headers, parse_cookie_pairs
from listing_parser import parse_listing
from metadata import extract_metadata
from models import DocumentMetadata, FetchResponse, FetchStatus, ListingEntry, PageFetchResult, Record, Topic
from normalize import build_record, canonicalize_document_url, core_code_for
from record_sink import RecordSink

LOGGER = logging.getLogger(__name__)

# Statuses the Library's WAF uses instead of serving the page.
BLOCKED_STATUSES = frozenset({403, 429})

FallbackResolver = Callable[[str, int], list[Record]]


class Fetcher(Protocol):
    def fetch(self, url: str, headers: dict[str, str], timeout: float) -> FetchResponse: ...


class StopReason(Enum):
    MAX_PAGES = "max_pages"
    END_OF_RESULTS = "end_of_results"
    BLOCKED = "blocked"


@dataclass
class CrawlSummary:
    topic: str
    pages_fetched: int = 0
    records_written: int = 0
    fallback_written: int = 0
    challenged: bool = False
    stop_reason: StopReason | None = None


@dataclass
class _ListingAttempt:
    url: str | None = None
    body: str = ""
    challenged: bool = False
    last_error: str = ""
    tried: list[str] = field(default_factory=list)


def fetch_page(fetcher: Fetcher, url: str, headers: dict[str, str], timeout: float) -> PageFetchResult:
    """Fetch one URL and classify it as OK, CHALLENGED or FAILED."""
    try:
        response = fetcher.fetch(url, headers, timeout)
    except FetchFailed as exc:
        LOGGER.info("  <- transport error: %s", exc)
        return PageFetchResult(FetchStatus.FAILED, error=str(exc))

    LOGGER.info("  <- HTTP %s, content-encoding=%s", response.status, response.content_encoding or "none")
    body = response.body or ""

    if response.status in BLOCKED_STATUSES or (response.status != 200 and is_challenge(body)):
        return PageFetchResult(FetchStatus.CHALLENGED, body, response.status, f"HTTP {response.status}")
    if response.status != 200:
        return PageFetchResult(FetchStatus.FAILED, body, response.status, f"HTTP {response.status}")
    if not body.strip():
        return PageFetchResult(FetchStatus.FAILED, body, response.status, "empty body")
    if is_challenge(body):
        LOGGER.info("  <- challenge/robot page detected")
        return PageFetchResult(FetchStatus.CHALLENGED, body, response.status, "challenge page")
    return PageFetchResult(FetchStatus.OK, body, response.status)


def crawl_topic(
    topic: Topic,
    config: CrawlConfig,
    fetcher: Fetcher,
    sink: RecordSink,
    fallback: FallbackResolver | None = None,
) -> CrawlSummary:
    """Walk the topic's listing pages and append one record per review.

    Stops at ``max_pages``, at the first page with no results, or when every
    listing URL variant for a page fails. In the last case a challenged or
    forbidden listing hands over to ``fallback`` (Crossref) when enabled.
    """
    headers = build_browser_headers(config.user_agent, referer=config.listing_referer)
    if config.cookie:
        headers["Cookie"] = config.cookie
        LOGGER.info("Using cookies: %s", ", ".join(parse_cookie_pairs(config.cookie)))
    else:
        LOGGER.warning("No cookie provided; the listing will likely answer with a challenge (403/robot check)")

    if config.warm_up:
        _warm_up(fetcher, headers, config)

    summary = CrawlSummary(topic=topic.name)
    seen_urls: set[str] = set()
    emitted_cores: set[str] = set()

    last_page = config.page_start + config.max_pages
    for page in range(config.page_start, last_page):
        candidates = build_candidates(topic.name, topic.id, page, config.page_size, config.origin)
        LOGGER.info("Page %s: trying %s candidate URL(s)", page, len(candidates))

        attempt = _fetch_listing(fetcher, candidates, headers, config)
        if attempt.url is None:
            LOGGER.warning(
                "Page %s: failed to fetch listing after %s candidate(s): %s. Stopping.",
                page,
                len(attempt.tried),
                ", ".join(attempt.tried),
            )
            summary.stop_reason = StopReason.BLOCKED
            _handle_blocked_listing(attempt, candidates[0], topic, config, sink, summary, fallback, seen_urls, emitted_cores)
            break

        entries = parse_listing(attempt.body, base=config.origin)
        LOGGER.info("Page %s: found %s review link(s)", page, len(entries))
        if not entries:
            LOGGER.info("No more results; stopping.")
            summary.stop_reason = StopReason.END_OF_RESULTS
            break
        summary.pages_fetched += 1

        for entry in entries:
            url = canonicalize_document_url(entry.href, config.origin)
            if url in seen_urls:
                LOGGER.debug("Already emitted %s, skipping", url)
                continue
            seen_urls.add(url)

            meta = _document_metadata(fetcher, entry, attempt.url, headers, config)
            record = build_record(
                url,
                topic.name,
                meta.title or entry.title,
                meta.authors or entry.authors,
                meta.date or entry.date,
            )
            sink.write_record(record)
            summary.records_written += 1
            core = core_code_for(url)
            if core:
                emitted_cores.add(core)
            LOGGER.info("Wrote record %s: %s", summary.records_written, record.title or url)

            time.sleep(config.document_delay)

        time.sleep(config.page_delay)
    else:
        summary.stop_reason = StopReason.MAX_PAGES

    LOGGER.info(
        "Crawl complete: topic=%r pages=%s records=%s fallback_records=%s stop=%s",
        topic.name,
        summary.pages_fetched,
        summary.records_written,
        summary.fallback_written,
        summary.stop_reason.value if summary.stop_reason else "unknown",
    )
    if summary.records_written == 0:
        LOGGER.warning(
            "No reviews from the Library. If blocked: recopy a fresh Cookie header "
            "(with cf_clearance) and pass --ua with your exact browser User-Agent."
        )
    return summary


def write_fallback_records(
    topic_name: str,
    config: CrawlConfig,
    sink: RecordSink,
    fallback: FallbackResolver,
    seen_urls: set[str] | None = None,
    emitted_cores: set[str] | None = None,
) -> int:
    """Run the fallback resolver and append records not already emitted this run."""
    seen_urls = seen_urls if seen_urls is not None else set()
    emitted_cores = emitted_cores if emitted_cores is not None else set()

    LOGGER.info("Falling back to Crossref for topic: %s (cap=%s)", topic_name, config.fallback_max)
    try:
        records = fallback(topic_name, config.fallback_max)
    except Exception as exc:  # fallback is best-effort; the crawl result stands
        LOGGER.exception("Fallback resolver failed for topic %r: %s", topic_name, exc)
        return 0

    written = 0
    for record in records:
        core = core_code_for(record.url)
        if record.url in seen_urls or (core and core in emitted_cores):
            continue
        seen_urls.add(record.url)
        if core:
            emitted_cores.add(core)
        sink.write_record(record)
        written += 1

    sink.write_comment("FALLBACK", topic_name, str(written))
    LOGGER.info("Fallback wrote %s record(s) (resolver returned %s)", written, len(records))
    return written


def _fetch_listing(
    fetcher: Fetcher,
    candidates: list[str],
    headers: dict[str, str],
    config: CrawlConfig,
) -> _ListingAttempt:
    attempt = _ListingAttempt()
    for url in candidates:
        LOGGER.info("  -> %s", url)
        attempt.tried.append(url)
        result = fetch_page(fetcher, url, headers, config.timeout)
        if result.ok:
            attempt.url = url
            attempt.body = result.body or ""
            return attempt

        if result.status is FetchStatus.CHALLENGED:
            attempt.challenged = True
        attempt.last_error = result.error
        time.sleep(config.candidate_delay)
    return attempt


def _handle_blocked_listing(
    attempt: _ListingAttempt,
    page_url: str,
    topic: Topic,
    config: CrawlConfig,
    sink: RecordSink,
    summary: CrawlSummary,
    fallback: FallbackResolver | None,
    seen_urls: set[str],
    emitted_cores: set[str],
) -> None:
    if not attempt.challenged:
        sink.write_comment("ERROR_FETCHING", page_url, attempt.last_error or "all listing candidates failed")
        return

    summary.challenged = True
    sink.write_comment("CHALLENGE_DETECTED", topic.name, page_url, "")
    if fallback is None or not config.fallback_enabled:
        LOGGER.warning("Challenge detected for topic %r; fallback disabled", topic.name)
        return
    summary.fallback_written = write_fallback_records(
        topic.name, config, sink, fallback, seen_urls=seen_urls, emitted_cores=emitted_cores
    )


def _document_metadata(
    fetcher: Fetcher,
    entry: ListingEntry,
    listing_url: str,
    headers: dict[str, str],
    config: CrawlConfig,
) -> DocumentMetadata:
    """Fetch and parse one review page; any failure yields empty metadata."""
    try:
        result = fetch_page(fetcher, entry.href, {**headers, "Referer": listing_url}, config.timeout)
        if not result.ok:
            LOGGER.warning(
                "Review page unavailable (status=%s, http=%s, %s): %s",
                result.status.value,
                result.http_status,
                result.error,
                entry.href,
            )
            return DocumentMetadata()
        return extract_metadata(result.body or "")
    except Exception as exc:  # a single bad review must not abort the page
        LOGGER.exception("Unexpected error fetching %s: %s", entry.href, exc)
        return DocumentMetadata()


def _warm_up(fetcher: Fetcher, headers: dict[str, str], config: CrawlConfig) -> None:
    url = f"{config.origin.rstrip('/')}/search"
    LOGGER.info("Warm-up: GET %s", url)
    try:
        result = fetch_page(fetcher, url, headers, config.timeout)
    except Exception as exc:  # warm-up never aborts the crawl
        LOGGER.warning("Warm-up failed (%s). Continuing…", exc)
        return
    if not result.ok:
        LOGGER.warning("Warm-up blocked or challenged. Continuing…")
