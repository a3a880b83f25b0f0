"""Run configuration: environment defaults overridden by CLI flags."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any

from normalize import SITE_ORIGIN

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"
)
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class CrawlConfig:
    origin: str = SITE_ORIGIN
    user_agent: str = DEFAULT_USER_AGENT
    cookie: str = ""
    timeout: float = 25.0
    page_start: int = 1
    page_size: int = 25
    max_pages: int = 50
    output_path: str = "cochrane_reviews.txt"
    candidate_delay: float = 0.15  # seconds between listing URL variants
    document_delay: float = 0.25  # seconds after each review page
    page_delay: float = 0.4  # seconds between listing pages
    filter_titles: bool = True
    fallback_enabled: bool = True
    fallback_max: int = 400
    topic_match_threshold: float = 80.0
    warm_up: bool = True

    @property
    def listing_referer(self) -> str:
        return f"{self.origin.rstrip('/')}/cdsr/reviews/topics"


def load_config(**overrides: Any) -> CrawlConfig:
    """Read defaults from the environment, then apply non-None overrides.

    Page bounds are clamped: start page and max pages to at least 1, page
    size to 1..100.
    """
    config = CrawlConfig(
        origin=os.getenv("COCHRANE_ORIGIN", SITE_ORIGIN),
        user_agent=os.getenv("COCHRANE_UA") or DEFAULT_USER_AGENT,
        cookie=os.getenv("COCHRANE_COOKIES", ""),
        timeout=float(os.getenv("COCHRANE_TIMEOUT", "25")),
        page_start=int(os.getenv("COCHRANE_PAGE_START", "1")),
        page_size=int(os.getenv("COCHRANE_PAGE_SIZE", "25")),
        max_pages=int(os.getenv("COCHRANE_MAX_PAGES", "50")),
        output_path=os.getenv("COCHRANE_OUTPUT_PATH", "cochrane_reviews.txt"),
        candidate_delay=float(os.getenv("CANDIDATE_DELAY_SECONDS", "0.15")),
        document_delay=float(os.getenv("DOCUMENT_DELAY_SECONDS", "0.25")),
        page_delay=float(os.getenv("PAGE_DELAY_SECONDS", "0.4")),
        filter_titles=_env_flag("FALLBACK_FILTER_TITLES", True),
        fallback_enabled=_env_flag("FALLBACK_ENABLED", True),
        fallback_max=int(os.getenv("FALLBACK_MAX_RECORDS", "400")),
        topic_match_threshold=float(os.getenv("TOPIC_MATCH_THRESHOLD", "80")),
        warm_up=_env_flag("COCHRANE_WARM_UP", True),
    )

    known = {f.name for f in fields(CrawlConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise TypeError(f"Unknown config option(s): {', '.join(sorted(unknown))}")

    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
    return replace(
        config,
        page_start=max(1, config.page_start),
        page_size=max(1, min(MAX_PAGE_SIZE, config.page_size)),
        max_pages=max(1, config.max_pages),
        fallback_max=max(0, config.fallback_max),
    )


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}
