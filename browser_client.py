"""Headless-Chromium fetch capability (Playwright), same contract as HttpFetcher."""

from __future__ import annotations

import logging
from typing import Any

from http_client import FetchFailed
from models import FetchResponse

LOGGER = logging.getLogger(__name__)

# Only these are forwarded; Chromium sets the rest itself.
_FORWARDED_HEADERS = ("cookie", "referer", "accept-language")


class BrowserFetcher:
    """Render pages in headless Chromium. Use as a context manager."""

    def __init__(self, settle_ms: int = 2000, headless: bool = True) -> None:
        self.settle_ms = settle_ms
        self.headless = headless
        self._playwright: Any = None
        self._browser: Any = None

    def __enter__(self) -> BrowserFetcher:
        from playwright.sync_api import sync_playwright  # noqa: PLC0415

        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(headless=self.headless)
        LOGGER.info("Started headless Chromium for page rendering")
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def fetch(self, url: str, headers: dict[str, str], timeout: float) -> FetchResponse:
        if self._browser is None:
            raise RuntimeError("BrowserFetcher must be entered before fetching")

        extra = {k: v for k, v in headers.items() if k.lower() in _FORWARDED_HEADERS}
        context = self._browser.new_context(
            user_agent=headers.get("User-Agent") or None,
            extra_http_headers=extra,
        )
        try:
            page = context.new_page()
            response = page.goto(url, timeout=timeout * 1000, wait_until="networkidle")
            if self.settle_ms:
                page.wait_for_timeout(self.settle_ms)
            body = page.content()
            status = response.status if response is not None else 200
        except Exception as exc:  # Playwright raises its own Error/TimeoutError types
            raise FetchFailed(str(exc)) from exc
        finally:
            context.close()

        return FetchResponse(status=status, body=body)
