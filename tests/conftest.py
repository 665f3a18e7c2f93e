"""
Shared fixtures and test utilities for Legal Advisor tests.

Provides fake services, sample Persian legal text, and reusable fixtures so
that all tests can run without API keys, databases, or external network access.
"""

import sys
import hashlib
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Path setup - ensure the execution package is importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

TEST_DIMENSIONS = 8

# ---------------------------------------------------------------------------
# Sample Persian labor-law text
# ---------------------------------------------------------------------------
SAMPLE_LAW_TEXT = """قانون کار جمهوری اسلامی ایران مصوب مجمع تشخیص مصلحت نظام که مشتمل بر فصول و مواد زیر است

ماده 1 کلیه کارفرمایان، کارگران، کارگاه‌ها، مؤسسات تولیدی، صنعتی، خدماتی و کشاورزی مکلف به تبعیت از این قانون می‌باشند.

ماده 2 کارگر از لحاظ این قانون کسی است که به هر عنوان در مقابل دریافت حق‌السعی به درخواست کارفرما کار می‌کند.

ماده 3 کارفرما شخصی است حقیقی یا حقوقی که کارگر به درخواست و به حساب او در مقابل دریافت حق‌السعی کار می‌کند.
"""

SAMPLE_LAW_HTML = """<html>
<head><title>قانون کار</title><style>body { color: red; }</style></head>
<body>
<nav><a href="/">خانه</a></nav>
<article>
<h1>قانون کار جمهوری اسلامی ایران</h1>
<p>ماده 1 کلیه کارفرمایان، کارگران، کارگاه‌ها، مؤسسات تولیدی، صنعتی، خدماتی و کشاورزی مکلف به تبعیت از این قانون می‌باشند.</p>
<p>ماده 2 کارگر از لحاظ این قانون کسی است که به هر عنوان در مقابل دریافت حق‌السعی به درخواست کارفرما کار می&#8204;کند.</p>
<p>ماده 3 کارفرما شخصی است حقیقی یا حقوقی که کارگر به درخواست و به حساب او کار می‌کند &amp; مزد می‌دهد.</p>
</article>
<script>console.log("tracking");</script>
<footer>کلیه حقوق محفوظ است</footer>
</body>
</html>"""


@pytest.fixture
def sample_law_text():
    return SAMPLE_LAW_TEXT


@pytest.fixture
def sample_law_html():
    return SAMPLE_LAW_HTML


# ---------------------------------------------------------------------------
# Fake embedding client
# ---------------------------------------------------------------------------

class FakeEmbeddingClient:
    """Deterministic embedding client -- never calls external APIs."""

    def __init__(self, dimensions=TEST_DIMENSIONS, fail_on=None, fail_status=None):
        self._dimensions = dimensions
        self._fail_on = fail_on or set()
        self._fail_status = fail_status
        self.calls = []

    def embed(self, text):
        self.calls.append(text)
        if any(marker in text for marker in self._fail_on):
            return None
        return self._deterministic_embedding(text)

    def embed_query(self, query):
        return self.embed(query)

    def embed_query_or_raise(self, query):
        from execution.legal_advisor.errors import UpstreamServiceError
        vector = self.embed_query(query)
        if vector is None:
            raise UpstreamServiceError("embedding failed", upstream_status=self._fail_status)
        return vector

    def _deterministic_embedding(self, text):
        h = hashlib.sha256(text.encode()).hexdigest()
        seed = int(h[:8], 16)
        return [((seed + i * 7919) % 1000) / 1000.0 + 0.001 for i in range(self._dimensions)]

    @property
    def is_configured(self):
        return True

    @property
    def dimensions(self):
        return self._dimensions


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddingClient()


# ---------------------------------------------------------------------------
# Stores and configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_store():
    """Empty in-memory document store with test-sized vectors."""
    from execution.legal_advisor.document_store import DocumentStoreConfig, InMemoryDocumentStore
    store = InMemoryDocumentStore(DocumentStoreConfig(embedding_dimensions=TEST_DIMENSIONS))
    store.connect()
    store.initialize_schema()
    return store


@pytest.fixture
def advisor_config():
    """Fully keyed configuration pointing at the in-memory store."""
    from execution.legal_advisor.config import AdvisorConfig
    return AdvisorConfig(
        store_backend="memory",
        embedding_provider="gemini",
        gemini_api_key="test-gemini-key",
        ai_gateway_api_key="test-gateway-key",
        embedding_dimensions=TEST_DIMENSIONS,
    )


# ---------------------------------------------------------------------------
# Fake chat client (OpenAI-compatible shape)
# ---------------------------------------------------------------------------

def make_chat_client(content="پاسخ آزمایشی"):
    """MagicMock with client.chat.completions.create returning ``content``."""
    client = MagicMock()
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    client.chat.completions.create.return_value = response
    return client


@pytest.fixture
def chat_client():
    return make_chat_client()


@pytest.fixture
def chat_client_factory():
    return make_chat_client


@pytest.fixture
def embeddings_factory():
    return FakeEmbeddingClient
