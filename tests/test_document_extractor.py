"""
Tests for execution/legal_advisor/document_extractor.py and llm.py

Covers: local decoding of text and HTML uploads, the multimodal gateway
        request for scans, empty extraction, and the translation of gateway
        errors into UpstreamServiceError.
"""

import base64
from unittest.mock import MagicMock

import httpx
import pytest


def _status_error(status):
    from openai import APIStatusError

    request = httpx.Request("POST", "https://gateway.example/v1/chat/completions")
    response = httpx.Response(status, request=request)
    return APIStatusError(f"status {status}", response=response, body=None)


# ---------------------------------------------------------------------------
# DocumentTextExtractor
# ---------------------------------------------------------------------------

class TestLocalExtraction:
    """Text and HTML uploads never reach the gateway."""

    def test_plain_text(self, advisor_config, chat_client):
        from execution.legal_advisor.document_extractor import DocumentTextExtractor

        extractor = DocumentTextExtractor(advisor_config, client=chat_client)
        text = extractor.extract("  ماده 1 متن  ".encode("utf-8"), "law.txt", "text/plain")

        assert text == "ماده 1 متن"
        chat_client.chat.completions.create.assert_not_called()

    def test_text_detected_by_extension(self, advisor_config, chat_client):
        from execution.legal_advisor.document_extractor import DocumentTextExtractor

        extractor = DocumentTextExtractor(advisor_config, client=chat_client)
        text = extractor.extract("ماده 1".encode("utf-8"), "LAW.MD", None)

        assert text == "ماده 1"
        chat_client.chat.completions.create.assert_not_called()

    def test_html_is_normalized(self, advisor_config, chat_client):
        from execution.legal_advisor.document_extractor import DocumentTextExtractor

        extractor = DocumentTextExtractor(advisor_config, client=chat_client)
        text = extractor.extract(
            "<p>ماده 1 متن</p><p>ماده 2 متن</p>".encode("utf-8"), "law.html", "text/html; charset=utf-8",
        )
        assert text == "ماده 1 متن\n\nماده 2 متن"


class TestModelExtraction:
    """Scans and PDFs are transcribed by the gateway model."""

    def test_sends_base64_data_url(self, advisor_config, chat_client_factory):
        from execution.legal_advisor.document_extractor import DocumentTextExtractor

        client = chat_client_factory("ماده 1: متن استخراج شده")
        extractor = DocumentTextExtractor(advisor_config, client=client)

        text = extractor.extract(b"%PDF-1.4 fake", "law.pdf", "application/pdf")

        assert text == "ماده 1: متن استخراج شده"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == advisor_config.extraction_model
        assert kwargs["max_tokens"] == advisor_config.extraction_max_tokens
        user_content = kwargs["messages"][1]["content"]
        expected_url = "data:application/pdf;base64," + base64.b64encode(b"%PDF-1.4 fake").decode("ascii")
        assert user_content[1]["image_url"]["url"] == expected_url

    def test_unknown_type_defaults_to_octet_stream(self, advisor_config, chat_client_factory):
        from execution.legal_advisor.document_extractor import DocumentTextExtractor

        client = chat_client_factory("ماده 1")
        DocumentTextExtractor(advisor_config, client=client).extract(b"\x89PNG", "scan", None)

        user_content = client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert user_content[1]["image_url"]["url"].startswith("data:application/octet-stream;base64,")

    def test_empty_extraction_raises(self, advisor_config, chat_client_factory):
        from execution.legal_advisor.document_extractor import DocumentTextExtractor
        from execution.legal_advisor.errors import UpstreamServiceError

        extractor = DocumentTextExtractor(advisor_config, client=chat_client_factory("   "))
        with pytest.raises(UpstreamServiceError):
            extractor.extract(b"data", "scan.png", "image/png")

    def test_client_built_lazily_from_config(self, advisor_config):
        from execution.legal_advisor.document_extractor import DocumentTextExtractor
        from execution.legal_advisor.errors import ConfigurationError

        advisor_config.ai_gateway_api_key = None
        extractor = DocumentTextExtractor(advisor_config)

        # Local types work without the gateway key
        assert extractor.extract(b"matn", "a.txt", "text/plain") == "matn"
        with pytest.raises(ConfigurationError):
            extractor.extract(b"data", "scan.png", "image/png")


# ---------------------------------------------------------------------------
# complete_chat
# ---------------------------------------------------------------------------

class TestCompleteChat:

    def test_returns_first_choice(self, chat_client_factory):
        from execution.legal_advisor.llm import complete_chat

        client = chat_client_factory("پاسخ")
        assert complete_chat(client, "m", [{"role": "user", "content": "q"}], 100) == "پاسخ"

    def test_no_choices(self):
        from execution.legal_advisor.llm import complete_chat

        client = MagicMock()
        client.chat.completions.create.return_value = MagicMock(choices=[])
        assert complete_chat(client, "m", [], 100) is None

    @pytest.mark.parametrize("status,expected", [(429, 429), (402, 402), (400, 500), (503, 500)])
    def test_status_errors(self, status, expected):
        from execution.legal_advisor.errors import UpstreamServiceError
        from execution.legal_advisor.llm import complete_chat

        client = MagicMock()
        client.chat.completions.create.side_effect = _status_error(status)

        with pytest.raises(UpstreamServiceError) as exc_info:
            complete_chat(client, "m", [], 100)
        assert exc_info.value.status_code == expected

    def test_connection_error(self):
        from openai import APIConnectionError
        from execution.legal_advisor.errors import UpstreamServiceError
        from execution.legal_advisor.llm import complete_chat

        client = MagicMock()
        client.chat.completions.create.side_effect = APIConnectionError(
            request=httpx.Request("POST", "https://gateway.example/v1/chat/completions"),
        )

        with pytest.raises(UpstreamServiceError) as exc_info:
            complete_chat(client, "m", [], 100)
        assert exc_info.value.status_code == 500


class TestGetChatClient:

    def test_requires_gateway_key(self, advisor_config):
        from execution.legal_advisor.errors import ConfigurationError
        from execution.legal_advisor.llm import get_chat_client

        advisor_config.ai_gateway_api_key = None
        with pytest.raises(ConfigurationError):
            get_chat_client(advisor_config)

    def test_points_at_gateway(self, advisor_config):
        from execution.legal_advisor.llm import get_chat_client

        client = get_chat_client(advisor_config)
        assert str(client.base_url).rstrip("/") == advisor_config.ai_gateway_base_url
        assert client.max_retries == 0
