"""
Service Configuration for the Legal Advisor

All process-wide settings (API keys, model names, database URL) are read once
from the environment into an AdvisorConfig and injected into each handler.
Required keys are checked up front with require() so a missing key fails the
request immediately instead of deep inside the pipeline.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

SUPPORTED_STORE_BACKENDS = frozenset({"postgres", "memory"})
SUPPORTED_EMBEDDING_PROVIDERS = frozenset({"gemini", "gateway"})

# Similarity policy used by the chat orchestrator
CHAT_MATCH_THRESHOLD = 0.3
CHAT_MATCH_COUNT = 5

# Defaults for the search endpoint
DEFAULT_MATCH_THRESHOLD = 0.3
DEFAULT_MATCH_COUNT = 10


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


@dataclass
class AdvisorConfig:
    """Settings shared by the ingestion and query pipelines."""
    database_url: Optional[str] = None
    store_backend: str = "postgres"  # "postgres" or "memory"
    db_pool_min_connections: int = 1
    db_pool_max_connections: int = 10

    embedding_provider: str = "gemini"  # "gemini" or "gateway"
    gemini_api_key: Optional[str] = None
    gemini_embedding_model: str = "text-embedding-004"
    embedding_dimensions: int = 768

    ai_gateway_api_key: Optional[str] = None
    ai_gateway_base_url: str = "https://ai.gateway.lovable.dev/v1"
    gateway_embedding_model: str = "text-embedding-3-small"
    chat_model: str = "google/gemini-2.5-flash"
    extraction_model: str = "google/gemini-2.5-flash"
    chat_max_tokens: int = 2000
    extraction_max_tokens: int = 16000

    request_timeout: int = 60
    rate_limit_rpm: int = 30
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "AdvisorConfig":
        """
        Build configuration from environment variables.

        Args:
            dotenv: Load a .env file first (disabled in tests)

        Returns:
            AdvisorConfig populated from the environment
        """
        if dotenv:
            load_dotenv()

        config = cls(
            database_url=os.getenv("POSTGRES_URL") or os.getenv("DATABASE_URL"),
            store_backend=os.getenv("LEGAL_STORE_BACKEND", "postgres").strip().lower(),
            db_pool_min_connections=_env_int("DB_POOL_MIN_CONNECTIONS", 1),
            db_pool_max_connections=_env_int("DB_POOL_MAX_CONNECTIONS", 10),
            embedding_provider=os.getenv("EMBEDDING_PROVIDER", "gemini").strip().lower(),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_embedding_model=os.getenv("GEMINI_EMBEDDING_MODEL", "text-embedding-004"),
            embedding_dimensions=_env_int("EMBEDDING_DIMENSIONS", 768),
            ai_gateway_api_key=os.getenv("AI_GATEWAY_API_KEY") or None,
            ai_gateway_base_url=os.getenv("AI_GATEWAY_BASE_URL", "https://ai.gateway.lovable.dev/v1"),
            gateway_embedding_model=os.getenv("GATEWAY_EMBEDDING_MODEL", "text-embedding-3-small"),
            chat_model=os.getenv("CHAT_MODEL", "google/gemini-2.5-flash"),
            extraction_model=os.getenv("EXTRACTION_MODEL", "google/gemini-2.5-flash"),
            request_timeout=_env_int("REQUEST_TIMEOUT", 60),
            rate_limit_rpm=_env_int("RATE_LIMIT_RPM", 30),
            cors_origins=[
                o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
            ],
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Check enumerated settings."""
        if self.store_backend not in SUPPORTED_STORE_BACKENDS:
            raise ConfigurationError(
                f"Unsupported LEGAL_STORE_BACKEND: {self.store_backend!r}"
            )
        if self.embedding_provider not in SUPPORTED_EMBEDDING_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported EMBEDDING_PROVIDER: {self.embedding_provider!r}"
            )
        if self.embedding_dimensions <= 0:
            raise ConfigurationError("EMBEDDING_DIMENSIONS must be positive")
        if not 1 <= self.db_pool_min_connections <= self.db_pool_max_connections:
            raise ConfigurationError(
                "DB_POOL_MIN_CONNECTIONS must be at least 1 and not above DB_POOL_MAX_CONNECTIONS"
            )
        if self.rate_limit_rpm <= 0:
            raise ConfigurationError("RATE_LIMIT_RPM must be positive")

    def require(self, *names: str) -> None:
        """
        Fail fast when any of the named settings is missing.

        Raises:
            ConfigurationError: naming the first missing setting
        """
        known = {f.name for f in fields(self)}
        for name in names:
            if name not in known:
                raise ValueError(f"Unknown setting: {name}")
            if not getattr(self, name):
                raise ConfigurationError(f"{name.upper()} is not configured")

    @property
    def embedding_key_name(self) -> str:
        """Name of the setting holding the active embedding provider's key."""
        return "gemini_api_key" if self.embedding_provider == "gemini" else "ai_gateway_api_key"

    @property
    def embedding_key_configured(self) -> bool:
        return bool(getattr(self, self.embedding_key_name))
