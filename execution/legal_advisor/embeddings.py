"""
Embedding Client for the Legal Advisor

Turns chunk and query text into fixed-length vectors through an external
embedding API. Failures never raise from embed(): ingestion stores the chunk
with a null embedding and moves on to the next one.

Architecture:
    BaseEmbeddingClient        -- truncation, caching, failure-to-None policy
        GeminiEmbeddingClient  -- Google text-embedding-004 (768 dims)
        GatewayEmbeddingClient -- OpenAI-compatible /embeddings on the AI gateway
"""

import hashlib
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

import requests

from .config import AdvisorConfig
from .errors import UpstreamServiceError
from .language_patterns import ERROR_MESSAGES

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingConfig:
    """Configuration for an embedding client."""
    provider: str = "gemini"  # "gemini" or "gateway"
    model: str = "text-embedding-004"
    dimensions: int = 768
    max_input_chars: int = 2000  # Longer inputs are truncated before the call
    timeout: int = 60
    use_cache: bool = True
    max_cache_size: int = 10000  # LRU bound on cached vectors


class BaseEmbeddingClient:
    """
    Base class for HTTP embedding providers.

    Subclasses implement _request(text, input_type) returning the parsed
    vector or raising; everything else (truncation, caching, turning
    failures into None) lives here.
    """

    _provider_name: str = "Base"
    _doc_input_type: str = "document"
    _query_input_type: str = "query"

    def __init__(
        self,
        api_key: Optional[str],
        config: Optional[EmbeddingConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or EmbeddingConfig()
        self._api_key = api_key
        self._session = session or requests.Session()
        self._cache: OrderedDict[str, list[float]] = OrderedDict()
        self._cache_lock = threading.Lock()

        if not api_key:
            logger.warning(
                f"{self._provider_name} API key not found. Chunks will be stored "
                "without embeddings and will not be searchable."
            )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def dimensions(self) -> int:
        return self.config.dimensions

    def _request(self, text: str, input_type: str) -> Optional[list[float]]:
        raise NotImplementedError("Subclasses must implement _request()")

    def _embed_with_status(self, text: str, input_type: str) -> tuple[Optional[list[float]], Optional[int]]:
        """
        Embed text, never raising.

        Returns:
            (vector, status): vector is None on any failure; status is the
            upstream HTTP status when the provider rejected the call
        """
        if not self.is_configured:
            return None, None

        text = text[:self.config.max_input_chars]
        if not text.strip():
            return None, None

        cache_key = self._get_cache_key(text, input_type)
        if self.config.use_cache:
            cached = self._get_cached(cache_key)
            if cached is not None:
                return cached, None

        try:
            vector = self._request(text, input_type)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.warning(f"{self._provider_name} embedding failed with status {status}: {e}")
            return None, status
        except requests.RequestException as e:
            logger.warning(f"{self._provider_name} embedding request failed: {e}")
            return None, None
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"{self._provider_name} returned a malformed embedding response: {e}")
            return None, None

        if not vector:
            logger.warning(f"{self._provider_name} response contained no embedding vector")
            return None, None

        if len(vector) != self.config.dimensions:
            logger.warning(
                f"{self._provider_name} returned {len(vector)} dimensions, "
                f"expected {self.config.dimensions}"
            )
            return None, None

        if self.config.use_cache:
            self._set_cached(cache_key, vector)
        return vector, None

    def embed(self, text: str) -> Optional[list[float]]:
        """
        Embed one chunk of document text.

        Returns:
            The embedding vector, or None on any failure
        """
        vector, _ = self._embed_with_status(text, self._doc_input_type)
        return vector

    def embed_query(self, query: str) -> Optional[list[float]]:
        """
        Embed a search query.

        Returns:
            The embedding vector, or None on any failure
        """
        vector, _ = self._embed_with_status(query, self._query_input_type)
        return vector

    def embed_query_or_raise(self, query: str) -> list[float]:
        """Embed a query where a missing vector is terminal for the caller."""
        vector, status = self._embed_with_status(query, self._query_input_type)
        if vector is None:
            raise UpstreamServiceError(ERROR_MESSAGES["embedding_failed"], upstream_status=status)
        return vector

    def _get_cache_key(self, text: str, input_type: str) -> str:
        """Generate cache key for text."""
        content = f"{self.config.model}:{input_type}:{text}"
        return hashlib.sha256(content.encode()).hexdigest()[:32]

    def _get_cached(self, cache_key: str) -> Optional[list[float]]:
        with self._cache_lock:
            vector = self._cache.get(cache_key)
            if vector is not None:
                self._cache.move_to_end(cache_key)
            return vector

    def _set_cached(self, cache_key: str, vector: list[float]) -> None:
        with self._cache_lock:
            self._cache[cache_key] = vector
            self._cache.move_to_end(cache_key)
            while len(self._cache) > self.config.max_cache_size:
                self._cache.popitem(last=False)


class GeminiEmbeddingClient(BaseEmbeddingClient):
    """Google Generative Language embedContent endpoint."""

    _provider_name = "Gemini"
    _doc_input_type = "RETRIEVAL_DOCUMENT"
    _query_input_type = "RETRIEVAL_QUERY"

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def _request(self, text: str, input_type: str) -> Optional[list[float]]:
        url = f"{self.BASE_URL}/{self.config.model}:embedContent"
        response = self._session.post(
            url,
            params={"key": self._api_key},
            json={
                "model": f"models/{self.config.model}",
                "content": {"parts": [{"text": text}]},
                "taskType": input_type,
            },
            timeout=self.config.timeout,
        )
        response.raise_for_status()
        data = response.json()
        return (data.get("embedding") or {}).get("values")


class GatewayEmbeddingClient(BaseEmbeddingClient):
    """OpenAI-compatible /embeddings endpoint on the AI gateway."""

    _provider_name = "AI gateway"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        config: Optional[EmbeddingConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(api_key, config, session)
        self._base_url = base_url.rstrip("/")

    def _request(self, text: str, input_type: str) -> Optional[list[float]]:
        response = self._session.post(
            f"{self._base_url}/embeddings",
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={
                "input": text,
                "model": self.config.model,
                "dimensions": self.config.dimensions,
            },
            timeout=self.config.timeout,
        )
        response.raise_for_status()
        data = response.json().get("data") or []
        return data[0].get("embedding") if data else None


def get_embedding_client(config: AdvisorConfig) -> BaseEmbeddingClient:
    """
    Factory returning the embedding client selected by configuration.

    Args:
        config: Service configuration

    Returns:
        Configured embedding client (unconfigured when the key is missing)
    """
    if config.embedding_provider == "gateway":
        return GatewayEmbeddingClient(
            api_key=config.ai_gateway_api_key,
            base_url=config.ai_gateway_base_url,
            config=EmbeddingConfig(
                provider="gateway",
                model=config.gateway_embedding_model,
                dimensions=config.embedding_dimensions,
                max_input_chars=8000,
                timeout=config.request_timeout,
            ),
        )

    return GeminiEmbeddingClient(
        api_key=config.gemini_api_key,
        config=EmbeddingConfig(
            provider="gemini",
            model=config.gemini_embedding_model,
            dimensions=config.embedding_dimensions,
            max_input_chars=2000,
            timeout=config.request_timeout,
        ),
    )


# CLI for testing
if __name__ == "__main__":
    import sys

    logging.basicConfig(level=logging.INFO)

    client = get_embedding_client(AdvisorConfig.from_env())
    query = " ".join(sys.argv[1:]) if len(sys.argv) > 1 else "مرخصی زایمان"

    print(f"Query: {query}")
    try:
        vector = client.embed_query_or_raise(query)
    except UpstreamServiceError as e:
        print(f"Embedding failed (status: {e.upstream_status})")
    else:
        print(f"Embedding dimensions: {len(vector)}")
        print(f"First 10 values: {vector[:10]}")
