"""
Tests for execution/legal_advisor/scraper.py

Covers: URL validation, browser-header session setup, and the mapping of
        network failures and non-success statuses to SourceFetchError.
"""

from unittest.mock import MagicMock

import pytest
import requests


class TestValidateSourceUrl:

    @pytest.mark.parametrize("url", ["https://example.ir/law", "http://example.ir", "  https://a.ir/x?y=1  "])
    def test_accepts_http_urls(self, url):
        from execution.legal_advisor.scraper import validate_source_url

        assert validate_source_url(url).startswith("http")

    @pytest.mark.parametrize("url", ["", None, "ftp://example.ir", "example.ir/law", "https://", "javascript:alert(1)"])
    def test_rejects_other_input(self, url):
        from execution.legal_advisor.errors import InputValidationError
        from execution.legal_advisor.scraper import validate_source_url

        with pytest.raises(InputValidationError):
            validate_source_url(url)


class TestMakeSession:

    def test_browser_headers_and_retry_adapter(self):
        from execution.legal_advisor.scraper import _make_session

        session = _make_session()
        assert "Mozilla" in session.headers["User-Agent"]
        assert session.headers["Accept-Language"].startswith("fa-IR")
        adapter = session.get_adapter("https://example.ir")
        assert adapter.max_retries.total == 3


class TestFetchSourceHtml:

    def test_returns_utf8_text(self):
        from execution.legal_advisor.scraper import fetch_source_html

        session = MagicMock()
        resp = MagicMock(ok=True, status_code=200)
        resp.content = "<p>ماده 1</p>".encode("utf-8")
        session.get.return_value = resp

        html = fetch_source_html("https://example.ir/law", timeout=5, session=session)

        assert html == "<p>ماده 1</p>"
        session.get.assert_called_once_with("https://example.ir/law", timeout=5)

    def test_invalid_bytes_are_replaced(self):
        from execution.legal_advisor.scraper import fetch_source_html

        session = MagicMock()
        resp = MagicMock(ok=True, status_code=200)
        resp.content = b"abc\xff"
        session.get.return_value = resp

        assert fetch_source_html("https://example.ir", session=session) == "abc\ufffd"

    def test_non_success_status(self):
        from execution.legal_advisor.errors import SourceFetchError
        from execution.legal_advisor.scraper import fetch_source_html

        session = MagicMock()
        session.get.return_value = MagicMock(ok=False, status_code=404)

        with pytest.raises(SourceFetchError) as exc_info:
            fetch_source_html("https://example.ir/missing", session=session)
        assert "404" in exc_info.value.message
        assert exc_info.value.status_code == 500
        assert exc_info.value.upstream_status == 404

    def test_upstream_rate_limit_passes_through(self):
        from execution.legal_advisor.errors import SourceFetchError
        from execution.legal_advisor.scraper import fetch_source_html

        session = MagicMock()
        session.get.return_value = MagicMock(ok=False, status_code=429)

        with pytest.raises(SourceFetchError) as exc_info:
            fetch_source_html("https://example.ir", session=session)
        assert exc_info.value.status_code == 429

    def test_network_error(self):
        from execution.legal_advisor.errors import SourceFetchError
        from execution.legal_advisor.scraper import fetch_source_html

        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("dns failure")

        with pytest.raises(SourceFetchError) as exc_info:
            fetch_source_html("https://example.ir", session=session)
        assert exc_info.value.status_code == 500
