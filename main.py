"""CLI entrypoint: collect Cochrane reviews for one topic into a pipe-delimited file."""

from __future__ import annotations

import argparse
import contextlib
import functools
import logging
import os
import sys

from dotenv import load_dotenv

from config import CrawlConfig, load_config
from crawler import crawl_topic, write_fallback_records
from crossref_feed import resolve_by_topic
from http_client import HttpFetcher
from models import Topic
from record_sink import OutputWriteFailure, RecordSink
from topics import load_topic_index


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(
        description=(
            "Collect URL|Topic|Title|Authors|Date for Cochrane reviews of one topic. "
            "Detects anti-bot challenges and falls back to Crossref (no bypass)."
        )
    )
    parser.add_argument("--topic", required=True, help='Human-readable topic name (e.g. "Neurology")')
    parser.add_argument("--topic-id", default=None, help="topic_id facet (z…); resolved from --topic when omitted")
    parser.add_argument("--topics-file", default=None, help="JSON list of {id, title} rows replacing the built-in table")
    parser.add_argument("--out", dest="output_path", default=None, help="Output file (appended to unless --fresh)")
    parser.add_argument("--fresh", action="store_true", help="Truncate the output file before writing")
    parser.add_argument("--page-start", type=int, default=None)
    parser.add_argument("--page-size", type=int, default=None)
    parser.add_argument("--max-pages", type=int, default=None)
    parser.add_argument("--cookie", default=None, help="Raw Cookie header from your browser (must include cf_clearance)")
    parser.add_argument("--ua", dest="user_agent", default=None, help="Exact User-Agent of the same browser session")
    parser.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds")
    parser.add_argument("--origin", default=None, help="Listing origin (point at a mock server for local runs)")
    parser.add_argument("--fallback-max", type=int, default=None, help="Maximum number of Crossref fallback records")
    parser.add_argument(
        "--no-filter-titles",
        dest="filter_titles",
        action="store_false",
        default=None,
        help="Keep Crossref results whose title/subjects do not match the topic",
    )
    parser.add_argument("--no-fallback", dest="fallback_enabled", action="store_false", default=None)
    parser.add_argument("--fallback-only", action="store_true", help="Skip the Library crawl and query Crossref only")
    parser.add_argument("--no-warm-up", dest="warm_up", action="store_false", default=None)
    parser.add_argument("--browser", action="store_true", help="Render pages with headless Chromium (Playwright)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    return load_config(
        origin=args.origin,
        user_agent=args.user_agent,
        cookie=args.cookie,
        timeout=args.timeout,
        page_start=args.page_start,
        page_size=args.page_size,
        max_pages=args.max_pages,
        output_path=args.output_path,
        filter_titles=args.filter_titles,
        fallback_enabled=args.fallback_enabled,
        fallback_max=args.fallback_max,
        warm_up=args.warm_up,
    )


def run(args: argparse.Namespace) -> int:
    """Run one topic harvest; returns the process exit status."""
    config = build_config(args)
    topic_name = args.topic.strip() or "Topic"
    fallback = functools.partial(resolve_by_topic, filter_titles=config.filter_titles, timeout=config.timeout)

    topic_id = (args.topic_id or "").strip()
    if not topic_id:
        index = load_topic_index(args.topics_file, threshold=config.topic_match_threshold)
        topic_id = index.resolve(topic_name) or ""
        if topic_id:
            logging.info("Resolved topic ID: %s", topic_id)
    if not topic_id and not args.fallback_only:
        logging.error("Could not resolve a topic_id for %r; pass --topic-id z… or use --fallback-only", topic_name)
        return 1

    if not args.user_agent and not os.getenv("COCHRANE_UA"):
        logging.warning("No --ua provided. Pass your exact browser UA (cf_clearance is often UA-bound).")

    # Fail on an unwritable destination before any request is made.
    sink = RecordSink(config.output_path, fresh=args.fresh)
    try:
        sink.open()
    except OutputWriteFailure as exc:
        logging.error("%s", exc)
        return 1

    logging.info("Topic: %s", topic_name)
    logging.info("TopicId: %s", topic_id or "(none)")
    logging.info("Output: %s", config.output_path)

    try:
        if args.fallback_only:
            written = write_fallback_records(topic_name, config, sink, fallback)
            logging.info("Done. Wrote %s fallback review(s) to: %s", written, config.output_path)
            return 0

        with _open_fetcher(args.browser) as fetcher:
            summary = crawl_topic(Topic(name=topic_name, id=topic_id), config, fetcher, sink, fallback=fallback)
    except OutputWriteFailure as exc:
        logging.error("%s", exc)
        return 1
    finally:
        sink.close()

    logging.info(
        "Done. Wrote %s review(s) (+%s fallback) to: %s",
        summary.records_written,
        summary.fallback_written,
        config.output_path,
    )
    return 0


def _open_fetcher(use_browser: bool) -> contextlib.AbstractContextManager:
    if use_browser:
        from browser_client import BrowserFetcher  # noqa: PLC0415

        return BrowserFetcher()
    return HttpFetcher()


def main(argv: list[str] | None = None) -> int:
    """Initialize config and execute the harvest."""
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
