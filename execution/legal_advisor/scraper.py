"""
Source page fetcher for the scrape-by-URL ingestion entry point.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import InputValidationError, SourceFetchError
from .language_patterns import ERROR_MESSAGES

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "fa-IR,fa;q=0.9,en;q=0.8",
}


def _make_session() -> requests.Session:
    """Create a session with browser headers and retry on transient server errors."""
    s = requests.Session()
    s.headers.update(BROWSER_HEADERS)
    # The last 5xx response is returned, not raised, so its status reaches the caller
    retries = Retry(total=3, backoff_factor=2, status_forcelist=[500, 502, 503, 504], raise_on_status=False)
    s.mount("https://", HTTPAdapter(max_retries=retries))
    s.mount("http://", HTTPAdapter(max_retries=retries))
    return s


def validate_source_url(url: str) -> str:
    """Accept only absolute http(s) URLs."""
    parsed = urlparse((url or "").strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InputValidationError(ERROR_MESSAGES["invalid_url"])
    return parsed.geturl()


def fetch_source_html(
    url: str,
    timeout: int = 60,
    session: Optional[requests.Session] = None,
) -> str:
    """
    Fetch a legal source page as UTF-8 HTML.

    Args:
        url: Absolute http(s) URL
        timeout: Request timeout in seconds
        session: Optional session (a browser-header session by default)

    Returns:
        Decoded HTML

    Raises:
        InputValidationError: The URL is not http(s)
        SourceFetchError: Network failure or non-success status
    """
    url = validate_source_url(url)
    session = session or _make_session()

    try:
        resp = session.get(url, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"Fetching {url} failed: {e}")
        raise SourceFetchError(ERROR_MESSAGES["fetch_failed"].format(status=type(e).__name__))

    if not resp.ok:
        logger.error(f"Fetching {url} returned status {resp.status_code}")
        raise SourceFetchError(
            ERROR_MESSAGES["fetch_failed"].format(status=resp.status_code),
            upstream_status=resp.status_code,
        )

    # Persian pages frequently omit or mislabel their charset
    return resp.content.decode("utf-8", errors="replace")
