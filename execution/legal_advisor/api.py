"""
FastAPI Backend for the Labor-Law Legal Advisor

Ingestion endpoints (scrape, paste-HTML, file upload) feed the knowledge base;
query endpoints (search, chat) answer from it. Every failure is returned as a
JSON body {"success": false, "error": ...} with the matching status code.

Run with: uvicorn execution.legal_advisor.api:app --host 0.0.0.0 --port 8000
"""

import time
import logging
from typing import Optional
from collections import defaultdict

from fastapi import FastAPI, HTTPException, UploadFile, File, Form, Depends, Request, BackgroundTasks
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api_models import (
    ScrapeRequest, ProcessHtmlRequest, IngestionResponse,
    SearchRequest, SearchResponse,
    ChatRequest, ChatResponse,
    KnowledgeBaseStatsResponse, HealthResponse, ErrorResponse,
)
from .config import AdvisorConfig
from .errors import LegalAdvisorError, InputValidationError
from .language_patterns import ERROR_MESSAGES

logger = logging.getLogger(__name__)

# Process settings (loads .env); CORS and rate limiting are fixed at startup
_settings = AdvisorConfig.from_env()

app = FastAPI(
    title="Legal Advisor API",
    description="Retrieval-augmented question answering over Iranian labor law",
    version=__version__,
)

# Public endpoints: no credentials
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Error handlers
# =============================================================================

@app.exception_handler(LegalAdvisorError)
async def legal_advisor_error_handler(request: Request, exc: LegalAdvisorError):
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field_name = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field_name}: {first.get('msg')}" if field_name else str(first.get("msg"))
    else:
        message = ERROR_MESSAGES["unknown"]
    return JSONResponse(status_code=400, content={"success": False, "error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": ERROR_MESSAGES["unknown"]},
    )


# =============================================================================
# Rate Limiting
# =============================================================================

class RateLimiter:
    """Simple in-memory rate limiter using sliding window."""

    def __init__(self, max_requests: int = 30, window_seconds: int = 60):
        self._max_requests = max_requests
        self._window = window_seconds
        self._requests: dict[str, list[float]] = defaultdict(list)

    def is_allowed(self, key: str) -> bool:
        """Check if request is allowed for the given key."""
        now = time.time()
        window_start = now - self._window

        # Clean old entries
        self._requests[key] = [t for t in self._requests[key] if t > window_start]

        if len(self._requests[key]) >= self._max_requests:
            return False

        self._requests[key].append(now)
        return True

    def reset(self) -> None:
        self._requests.clear()


_rate_limiter = RateLimiter(max_requests=_settings.rate_limit_rpm, window_seconds=60)


async def check_rate_limit(request: Request):
    """FastAPI dependency that enforces rate limiting per client address."""
    key = request.client.host if request.client else "anonymous"
    if not _rate_limiter.is_allowed(key):
        raise HTTPException(status_code=429, detail=ERROR_MESSAGES["too_many_requests"])


# =============================================================================
# Service Container - caches clients for the process lifetime
# =============================================================================

class ServiceContainer:
    """
    Lazily builds and caches the store, embedding client and chat client.

    Anything passed to the constructor is used as-is, which lets tests inject
    an in-memory store and fake clients.
    """

    def __init__(self, config: Optional[AdvisorConfig] = None, store=None, embeddings=None, chat_client=None):
        self._config = config
        self._store = store
        self._embeddings = embeddings
        self._chat_client = chat_client

    @property
    def config(self) -> AdvisorConfig:
        if self._config is None:
            self._config = AdvisorConfig.from_env()
        return self._config

    def get_store(self):
        if self._store is None:
            from .document_store import get_document_store
            self._store = get_document_store(self.config)
        return self._store

    def get_embeddings(self):
        if self._embeddings is None:
            from .embeddings import get_embedding_client
            self._embeddings = get_embedding_client(self.config)
        return self._embeddings

    def get_chat_client(self):
        """Get or create the cached OpenAI client for the AI gateway."""
        if self._chat_client is None:
            from .llm import get_chat_client
            self._chat_client = get_chat_client(self.config)
        return self._chat_client

    def get_pipeline(self):
        from .document_extractor import DocumentTextExtractor
        from .ingestion import IngestionPipeline

        config = self.config
        return IngestionPipeline(
            store=self.get_store(),
            embeddings=self.get_embeddings(),
            extractor=DocumentTextExtractor(config, client=self._chat_client),
            request_timeout=config.request_timeout,
        )

    def get_advisor(self):
        from .advisor import LegalAdvisor

        return LegalAdvisor(
            store=self.get_store(),
            embeddings=self.get_embeddings(),
            chat_client=self.get_chat_client(),
            config=self.config,
        )


_container = ServiceContainer(config=_settings)


def get_config() -> AdvisorConfig:
    """Configuration injected into each handler."""
    return _container.config


# Failure bodies documented in the OpenAPI schema
_ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in (400, 402, 429, 500)}


# =============================================================================
# Ingestion endpoints
# =============================================================================

@app.post("/api/v1/scrape-legal-docs", response_model=IngestionResponse, responses=_ERROR_RESPONSES)
def scrape_legal_docs(request: ScrapeRequest, config: AdvisorConfig = Depends(get_config)):
    """Fetch a legal source page and ingest its articles."""
    if not config.embedding_key_configured:
        logger.warning("Embedding key missing, chunks will be stored without embeddings")
    report = _container.get_pipeline().ingest_url(request.source_url, request.category)
    return report.to_dict()


@app.post("/api/v1/process-legal-html", response_model=IngestionResponse, responses=_ERROR_RESPONSES)
def process_legal_html(request: ProcessHtmlRequest, config: AdvisorConfig = Depends(get_config)):
    """Ingest HTML pasted by an administrator."""
    if not config.embedding_key_configured:
        logger.warning("Embedding key missing, chunks will be stored without embeddings")
    report = _container.get_pipeline().ingest_html(
        request.html_content, request.category, request.source_url,
    )
    return report.to_dict()


@app.post("/api/v1/extract-document-text", response_model=IngestionResponse, responses=_ERROR_RESPONSES)
async def extract_document_text(
    file: Optional[UploadFile] = File(None),
    category: Optional[str] = Form(None),
    source_url: Optional[str] = Form(None, alias="sourceUrl"),
    config: AdvisorConfig = Depends(get_config),
):
    """Extract text from an uploaded PDF or image and ingest it."""
    if file is None or not file.filename:
        raise InputValidationError(ERROR_MESSAGES["upload_fields_required"])

    data = await file.read()
    report = await run_in_threadpool(
        _container.get_pipeline().ingest_document,
        data,
        file.filename,
        category,
        file.content_type,
        source_url,
    )
    return report.to_dict()


# =============================================================================
# Query endpoints
# =============================================================================

@app.post(
    "/api/v1/search-legal-docs",
    response_model=SearchResponse,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(check_rate_limit)],
)
def search_legal_docs(request: SearchRequest, config: AdvisorConfig = Depends(get_config)):
    """Semantic search over stored legal chunks."""
    query = (request.query or "").strip()
    if not query:
        raise InputValidationError(ERROR_MESSAGES["query_required"])
    config.require(config.embedding_key_name)

    category = request.category or None
    query_embedding = _container.get_embeddings().embed_query_or_raise(query)
    matches = _container.get_store().search(
        query_embedding,
        match_threshold=request.match_threshold,
        match_count=request.match_count,
        category=category,
    )
    logger.info(f"Search returned {len(matches)} results for category={category}")

    return {
        "success": True,
        "results": [m.to_dict() for m in matches],
        "query": query,
        "category": category,
    }


@app.post(
    "/api/v1/legal-advisor-chat",
    response_model=ChatResponse,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(check_rate_limit)],
)
def legal_advisor_chat(
    request: ChatRequest,
    background_tasks: BackgroundTasks,
    config: AdvisorConfig = Depends(get_config),
):
    """Answer a labor-law question grounded on the knowledge base."""
    if not (request.query or "").strip():
        raise InputValidationError(ERROR_MESSAGES["query_required"])
    config.require("ai_gateway_api_key")

    advisor = _container.get_advisor()
    result = advisor.answer(request.query)
    body = result.to_dict()

    # Interaction log is written after the response; failures only warn
    background_tasks.add_task(
        advisor.store.log_chat_interaction, request.query.strip(), result.answer, body["sources"],
    )
    return body


# =============================================================================
# Status endpoints
# =============================================================================

@app.get("/api/v1/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint."""
    db_status = "unknown"
    try:
        store = _container.get_store()
        db_status = "connected" if store.is_healthy() else "disconnected"
    except Exception as e:
        logger.warning(f"Health check: database disconnected: {e}")
        db_status = "disconnected"

    return HealthResponse(
        status="ok",
        version=__version__,
        database=db_status,
    )


@app.get("/api/v1/knowledge-base/stats", response_model=KnowledgeBaseStatsResponse, responses={500: {"model": ErrorResponse}})
def knowledge_base_stats():
    """Row counts per category for the admin status panel."""
    stats = _container.get_store().knowledge_base_stats()
    return {
        "totalCount": stats["total_count"],
        "embeddedCount": stats["embedded_count"],
        "categories": stats["categories"],
    }
