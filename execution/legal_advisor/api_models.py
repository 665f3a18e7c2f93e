"""
Pydantic models for the Legal Advisor FastAPI backend.

The public JSON uses camelCase keys (sourceUrl, matchCount, totalChunks);
Python code uses the snake_case field names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_MATCH_COUNT, DEFAULT_MATCH_THRESHOLD


class CamelModel(BaseModel):
    """Accepts both alias and field names on input, emits aliases."""
    model_config = ConfigDict(populate_by_name=True)


# =========================================================================
# Ingestion
# =========================================================================

class ScrapeRequest(CamelModel):
    """Request body for scrape-by-URL ingestion."""
    source_url: Optional[str] = Field(None, alias="sourceUrl")
    category: Optional[str] = None


class ProcessHtmlRequest(CamelModel):
    """Request body for pasted-HTML ingestion."""
    html_content: Optional[str] = Field(None, alias="htmlContent")
    source_url: Optional[str] = Field(None, alias="sourceUrl")
    category: Optional[str] = None


class IngestionStatsInfo(CamelModel):
    total_chunks: int = Field(alias="totalChunks")
    saved_count: int = Field(alias="savedCount")
    embedded_count: int = Field(0, alias="embeddedCount")
    content_length: int = Field(alias="contentLength")


class IngestionResponse(CamelModel):
    """Response body shared by all ingestion endpoints."""
    success: bool
    logs: list[str]
    stats: IngestionStatsInfo


# =========================================================================
# Query
# =========================================================================

class SearchRequest(CamelModel):
    """Request body for semantic search."""
    query: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = None
    match_count: int = Field(default=DEFAULT_MATCH_COUNT, ge=1, le=100, alias="matchCount")
    match_threshold: float = Field(default=DEFAULT_MATCH_THRESHOLD, ge=0.0, le=1.0, alias="matchThreshold")


class SearchResultInfo(BaseModel):
    """One similarity match (keys follow the stored column names)."""
    id: str
    content: str
    category: str
    source_url: str
    article_number: Optional[str] = None
    similarity: float


class SearchResponse(CamelModel):
    """Response body for semantic search."""
    success: bool = True
    results: list[SearchResultInfo]
    query: str
    category: Optional[str] = None


class ChatRequest(CamelModel):
    """Request body for the legal advisor chat."""
    query: Optional[str] = Field(None, max_length=2000)


class SourceInfo(CamelModel):
    """Citation source in a chat response."""
    article_number: Optional[str] = Field(None, alias="articleNumber")
    category: str
    similarity: float


class ChatResponse(CamelModel):
    """Response body for the legal advisor chat."""
    success: bool = True
    answer: str
    sources: list[SourceInfo]


# =========================================================================
# Status
# =========================================================================

class CategoryCount(CamelModel):
    category: str
    label: str
    count: int


class KnowledgeBaseStatsResponse(CamelModel):
    """Response body for knowledge base status."""
    total_count: int = Field(alias="totalCount")
    embedded_count: int = Field(alias="embeddedCount")
    categories: list[CategoryCount]


class HealthResponse(BaseModel):
    """Response body for health check."""
    status: str
    version: str
    database: str


class ErrorResponse(BaseModel):
    """Body of every failed request."""
    success: bool = False
    error: str
    logs: Optional[list[str]] = None
