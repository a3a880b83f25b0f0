"""requests-based fetch capability with browser-like headers."""

from __future__ import annotations

import logging

import requests

from models import FetchResponse

LOGGER = logging.getLogger(__name__)

# Only encodings requests decodes on its own; br/zstd would need extra packages.
ACCEPT_ENCODING = "gzip, deflate"
_UNDECODED_ENCODINGS = frozenset({"br", "zstd"})


class FetchFailed(RuntimeError):
    """Transport-level failure (timeout, connection error, TLS, …)."""


def build_browser_headers(user_agent: str, referer: str | None = None) -> dict[str, str]:
    """Return a navigation header set consistent with the given User-Agent.

    Cloudflare clearance cookies are bound to the UA, so the client-hint
    brand list has to agree with it.
    """
    is_edge = "Edg/" in user_agent or "Edge/" in user_agent
    is_chrome = "Chrome/" in user_agent and not is_edge

    if is_edge:
        sec_ua = '"Chromium";v="140", "Microsoft Edge";v="140", "Not=A?Brand";v="24"'
    elif is_chrome:
        sec_ua = '"Chromium";v="140", "Google Chrome";v="140", "Not=A?Brand";v="24"'
    else:
        sec_ua = '"Not.A/Brand";v="99", "Chromium";v="140"'

    headers = {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": ACCEPT_ENCODING,
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "DNT": "1",
        "Sec-Fetch-Site": "same-origin",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Dest": "document",
        "Sec-CH-UA": sec_ua,
        "Sec-CH-UA-Mobile": "?0",
        "Sec-CH-UA-Platform": '"Windows"',
    }
    if referer:
        headers["Referer"] = referer
    return headers


def parse_cookie_pairs(raw: str) -> dict[str, str]:
    """Split a raw ``Cookie`` header into name -> value (empty pairs dropped)."""
    pairs: dict[str, str] = {}
    for chunk in raw.split(";"):
        name, sep, value = chunk.strip().partition("=")
        name, value = name.strip(), value.strip()
        if sep and name and value:
            pairs[name] = value
    return pairs


class HttpFetcher:
    """Blocking GET over a shared ``requests.Session``."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or requests.Session()

    def fetch(self, url: str, headers: dict[str, str], timeout: float) -> FetchResponse:
        request_headers = dict(headers)
        request_headers["Accept-Encoding"] = ACCEPT_ENCODING

        try:
            response = self.session.get(
                url,
                headers=request_headers,
                timeout=timeout,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise FetchFailed(str(exc)) from exc

        encoding = response.headers.get("Content-Encoding", "")
        if encoding.strip().lower() in _UNDECODED_ENCODINGS:
            LOGGER.warning("Server ignored Accept-Encoding for %s (content-encoding=%s)", url, encoding)

        return FetchResponse(status=response.status_code, body=response.text, content_encoding=encoding)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> HttpFetcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
