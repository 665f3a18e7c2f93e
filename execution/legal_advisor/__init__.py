"""
Legal Advisor - Retrieval-augmented Q&A over Iranian labor law

This module provides:
- Ingestion of Persian legal sources (scraped pages, pasted HTML, uploaded scans)
- Article-aware chunking on "ماده N" markers with a paragraph fallback
- Embedding and pgvector similarity search
- A chat advisor that answers with cited articles

Run the API with: uvicorn execution.legal_advisor.api:app
"""

from .html_normalizer import normalize_html
from .chunker import LegalChunker
from .embeddings import get_embedding_client
from .document_store import PostgresDocumentStore, InMemoryDocumentStore
from .ingestion import IngestionPipeline
from .advisor import LegalAdvisor

__all__ = [
    "normalize_html",
    "LegalChunker",
    "get_embedding_client",
    "PostgresDocumentStore",
    "InMemoryDocumentStore",
    "IngestionPipeline",
    "LegalAdvisor",
]

__version__ = "0.1.0"
