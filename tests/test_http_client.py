from unittest.mock import MagicMock

import pytest
import requests

from http_client import ACCEPT_ENCODING, FetchFailed, HttpFetcher, build_browser_headers, parse_cookie_pairs

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"
)
EDGE_UA = CHROME_UA + " Edg/140.0.0.0"


def test_build_browser_headers_chrome_brands() -> None:
    headers = build_browser_headers(CHROME_UA, referer="https://www.cochranelibrary.com/cdsr/reviews/topics")
    assert headers["User-Agent"] == CHROME_UA
    assert "Google Chrome" in headers["Sec-CH-UA"]
    assert headers["Referer"] == "https://www.cochranelibrary.com/cdsr/reviews/topics"
    assert headers["Accept-Encoding"] == ACCEPT_ENCODING


def test_build_browser_headers_edge_and_other() -> None:
    assert "Microsoft Edge" in build_browser_headers(EDGE_UA)["Sec-CH-UA"]
    other = build_browser_headers("curl/8.0")
    assert "Google Chrome" not in other["Sec-CH-UA"]
    assert "Referer" not in other


def test_parse_cookie_pairs() -> None:
    raw = "cf_clearance=abc; JSESSIONID=xyz ; empty=; =novalue; junk"
    assert parse_cookie_pairs(raw) == {"cf_clearance": "abc", "JSESSIONID": "xyz"}


def _mock_session(status: int = 200, text: str = "<html></html>", encoding: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.text = text
    response.headers = {"Content-Encoding": encoding} if encoding else {}
    session = MagicMock()
    session.get.return_value = response
    return session


def test_http_fetcher_returns_status_and_body() -> None:
    session = _mock_session(status=403, text="Just a moment", encoding="gzip")
    fetcher = HttpFetcher(session=session)

    result = fetcher.fetch("https://example.org/", {"Accept-Encoding": "br"}, timeout=5)

    assert result.status == 403
    assert result.body == "Just a moment"
    assert result.content_encoding == "gzip"
    _, kwargs = session.get.call_args
    assert kwargs["headers"]["Accept-Encoding"] == ACCEPT_ENCODING
    assert kwargs["timeout"] == 5


def test_http_fetcher_wraps_transport_errors() -> None:
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("boom")
    fetcher = HttpFetcher(session=session)

    with pytest.raises(FetchFailed):
        fetcher.fetch("https://example.org/", {}, timeout=5)


def test_http_fetcher_context_manager_closes_session() -> None:
    session = _mock_session()
    with HttpFetcher(session=session) as fetcher:
        fetcher.fetch("https://example.org/", {}, timeout=5)
    session.close.assert_called_once()
