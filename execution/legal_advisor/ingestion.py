"""
Legal Document Ingestion Pipeline

Shared pipeline behind the three ingestion entry points:

    scrape-by-URL  : fetch -> main content -> normalize -> chunk -> embed -> store
    paste-HTML     :          normalize -> chunk -> embed -> store
    file-upload    : extract text (gateway) -> chunk -> embed -> store

Chunks are processed sequentially, one at a time. A failed embedding stores
the chunk with a null embedding; a failed insert is logged and counted. Only
failures that prevent the run from starting (bad input, unreachable source,
missing configuration) abort it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .chunker import LegalChunker
from .document_extractor import DocumentTextExtractor
from .document_store import LegalDocumentChunk
from .errors import InputValidationError, InsufficientContentError, LegalAdvisorError
from .html_normalizer import extract_main_content, has_sufficient_content, normalize_html
from .language_patterns import ERROR_MESSAGES, INGESTION_LOGS
from .scraper import fetch_source_html, validate_source_url

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_SOURCE = "uploaded-file"


class IngestionLog:
    """Timestamped, human-readable progress messages returned to the caller."""

    def __init__(self):
        self.entries: list[str] = []

    def add(self, key: str, **kwargs) -> None:
        message = INGESTION_LOGS[key].format(**kwargs)
        logger.info(message)
        self.entries.append(f"[{datetime.now().strftime('%H:%M:%S')}] {message}")

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class IngestionStats:
    total_chunks: int = 0
    saved_count: int = 0
    embedded_count: int = 0
    content_length: int = 0

    def to_dict(self) -> dict:
        return {
            "totalChunks": self.total_chunks,
            "savedCount": self.saved_count,
            "embeddedCount": self.embedded_count,
            "contentLength": self.content_length,
        }


@dataclass
class IngestionReport:
    """Outcome of one ingestion run."""
    success: bool
    logs: list[str] = field(default_factory=list)
    stats: IngestionStats = field(default_factory=IngestionStats)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "logs": self.logs,
            "stats": self.stats.to_dict(),
        }


def _require(message_key: str, *values) -> None:
    if any(value is None or (isinstance(value, str) and not value.strip()) for value in values):
        raise InputValidationError(ERROR_MESSAGES[message_key])


class IngestionPipeline:
    """
    Runs chunking, embedding and persistence for one source document.

    Args:
        store: Document store (insert_chunk must return bool, never raise)
        embeddings: Embedding client (embed must return a vector or None)
        chunker: Article chunker
        extractor: Document text extractor for file uploads
        request_timeout: Timeout for fetching scraped pages
    """

    def __init__(
        self,
        store,
        embeddings,
        chunker: Optional[LegalChunker] = None,
        extractor: Optional[DocumentTextExtractor] = None,
        request_timeout: int = 60,
    ):
        self.store = store
        self.embeddings = embeddings
        self.chunker = chunker or LegalChunker()
        self.extractor = extractor
        self.request_timeout = request_timeout

    def ingest_text(
        self,
        text: str,
        category: str,
        source_url: str,
        log: Optional[IngestionLog] = None,
    ) -> IngestionReport:
        """
        Chunk, embed and store already-normalized text.

        Args:
            text: Plain text of the legal source
            category: Topical category (e.g. labor_law)
            source_url: Where the text came from
            log: Progress log to append to

        Returns:
            IngestionReport with per-run statistics
        """
        log = log or IngestionLog()
        stats = IngestionStats(content_length=len(text))

        log.add("chunking")
        chunks = self.chunker.chunk(text)
        stats.total_chunks = len(chunks)
        log.add("chunks_found", count=len(chunks))

        for chunk in chunks:
            label = chunk.label
            log.add("processing_chunk", label=label)
            try:
                embedding = self.embeddings.embed(chunk.content)
                if embedding is not None:
                    stats.embedded_count += 1
                    log.add("embedding_created", label=label)
                else:
                    log.add("embedding_missing", label=label)

                record = LegalDocumentChunk(
                    content=chunk.content,
                    category=category,
                    source_url=source_url,
                    article_number=chunk.article_number,
                    embedding=embedding,
                )
                if self.store.insert_chunk(record):
                    stats.saved_count += 1
                    log.add("chunk_saved", label=label)
                else:
                    log.add("chunk_failed", label=label, error=ERROR_MESSAGES["unknown"])
            except Exception as e:
                logger.exception(f"Error processing chunk {label}")
                log.add("chunk_failed", label=label, error=str(e))

        log.add("completed", saved=stats.saved_count, total=stats.total_chunks)
        return IngestionReport(success=True, logs=log.entries, stats=stats)

    def _ingest_normalized(
        self,
        text: str,
        category: str,
        source_url: str,
        log: IngestionLog,
    ) -> IngestionReport:
        log.add("text_extracted", length=f"{len(text):,}")
        if not has_sufficient_content(text):
            log.add("error", error=ERROR_MESSAGES["insufficient_content"])
            raise InsufficientContentError(len(text), logs=log.entries)
        return self.ingest_text(text, category, source_url, log)

    def ingest_html(self, html: str, category: str, source_url: str) -> IngestionReport:
        """Ingest pasted HTML (paste-HTML entry point)."""
        _require("html_fields_required", html, source_url, category)

        log = IngestionLog()
        log.add("html_received", length=f"{len(html):,}")
        log.add("source_url", url=source_url)
        log.add("category", category=category)
        log.add("extracting_text")

        text = normalize_html(html)
        return self._ingest_normalized(text, category, source_url, log)

    def ingest_url(self, source_url: str, category: str) -> IngestionReport:
        """Fetch a page and ingest its main content (scrape-by-URL entry point)."""
        _require("scrape_fields_required", source_url, category)
        source_url = validate_source_url(source_url)

        log = IngestionLog()
        log.add("fetching_url", url=source_url)
        try:
            html = fetch_source_html(source_url, timeout=self.request_timeout)
        except LegalAdvisorError as e:
            log.add("error", error=e.message)
            e.logs = log.entries
            raise
        log.add("page_fetched")
        log.add("category", category=category)

        text = normalize_html(extract_main_content(html))
        return self._ingest_normalized(text, category, source_url, log)

    def ingest_document(
        self,
        data: bytes,
        filename: str,
        category: str,
        mime_type: Optional[str] = None,
        source_url: Optional[str] = None,
    ) -> IngestionReport:
        """Extract text from an uploaded file and ingest it (file-upload entry point)."""
        _require("upload_fields_required", filename, category)
        if not data:
            raise InputValidationError(ERROR_MESSAGES["upload_fields_required"])
        if self.extractor is None:
            raise LegalAdvisorError("Document extractor is not configured")

        log = IngestionLog()
        log.add("file_received", name=filename, size_kb=len(data) / 1024)
        log.add("category", category=category)
        log.add("sending_to_extractor")
        try:
            text = self.extractor.extract(data, filename, mime_type)
        except LegalAdvisorError as e:
            log.add("error", error=e.message)
            e.logs = log.entries
            raise
        log.add("text_extracted", length=f"{len(text):,}")

        source = f"{source_url or DEFAULT_UPLOAD_SOURCE}#{filename}"
        return self.ingest_text(text, category, source, log)
