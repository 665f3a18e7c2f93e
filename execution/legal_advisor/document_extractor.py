"""
Document Text Extractor for the file-upload entry point.

Scanned PDFs and images are sent to a multimodal model on the AI gateway as a
base64 data URL and transcribed article by article. Plain text and HTML
uploads are decoded locally without a gateway call.
"""

import base64
import logging
from typing import Optional

from .config import AdvisorConfig
from .errors import UpstreamServiceError
from .html_normalizer import normalize_html
from .language_patterns import LLM_PROMPTS, ERROR_MESSAGES
from .llm import complete_chat, get_chat_client

logger = logging.getLogger(__name__)

LOCAL_TEXT_TYPES = ("text/plain", "text/markdown")
LOCAL_HTML_TYPES = ("text/html", "application/xhtml+xml")


class DocumentTextExtractor:
    """Turns an uploaded legal document into plain text."""

    def __init__(self, config: AdvisorConfig, client=None):
        self.config = config
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = get_chat_client(self.config)
        return self._client

    def extract(self, data: bytes, filename: str, mime_type: Optional[str] = None) -> str:
        """
        Extract the full text of an uploaded document.

        Args:
            data: Raw file bytes
            filename: Original file name (used to guess local types)
            mime_type: Declared content type

        Returns:
            Extracted text, stripped

        Raises:
            UpstreamServiceError: Gateway failure or empty extraction
        """
        mime_type = (mime_type or "application/octet-stream").split(";")[0].strip().lower()
        lower_name = (filename or "").lower()

        if mime_type in LOCAL_TEXT_TYPES or lower_name.endswith((".txt", ".md")):
            text = data.decode("utf-8", errors="replace").strip()
        elif mime_type in LOCAL_HTML_TYPES or lower_name.endswith((".html", ".htm")):
            text = normalize_html(data.decode("utf-8", errors="replace"))
        else:
            text = self._extract_with_model(data, mime_type)

        if not text:
            raise UpstreamServiceError(ERROR_MESSAGES["extraction_empty"])
        return text

    def _extract_with_model(self, data: bytes, mime_type: str) -> str:
        encoded = base64.b64encode(data).decode("ascii")
        logger.info(f"Sending {len(data)} bytes ({mime_type}) to the extraction model")

        content = complete_chat(
            self._get_client(),
            model=self.config.extraction_model,
            messages=[
                {"role": "system", "content": LLM_PROMPTS["extraction_system"]},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": LLM_PROMPTS["extraction_user"]},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
                        },
                    ],
                },
            ],
            max_tokens=self.config.extraction_max_tokens,
            label="extract-document-text",
        )
        return (content or "").strip()
