"""
Legal Document Store with PostgreSQL + pgvector

Persists one row per legal chunk and answers nearest-neighbour queries over
the stored embeddings. Rows are insert-only: ingestion never updates or
deduplicates, so re-ingesting a source creates new rows.

Backends:
- PostgresDocumentStore: production store (psycopg2, pgvector cosine distance)
- InMemoryDocumentStore: list-backed store for development and tests
"""

import json
import uuid
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import numpy as np
import psycopg2
import psycopg2.extras
import psycopg2.pool

from .config import AdvisorConfig
from .errors import InputValidationError
from .language_patterns import CATEGORY_LABELS

logger = logging.getLogger(__name__)


@dataclass
class LegalDocumentChunk:
    """One stored unit of legal text."""
    content: str
    category: str
    source_url: str
    article_number: Optional[str] = None
    # None when embedding generation failed; such rows are never searched
    embedding: Optional[list[float]] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        self.content = (self.content or "").strip()
        if not self.content:
            raise ValueError("Chunk content must be non-empty")

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None


@dataclass
class SimilarityMatch:
    """A stored chunk scored against a query vector."""
    id: str
    content: str
    category: str
    source_url: str
    article_number: Optional[str]
    similarity: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "category": self.category,
            "source_url": self.source_url,
            "article_number": self.article_number,
            "similarity": self.similarity,
        }


@dataclass
class DocumentStoreConfig:
    """Configuration for the document store."""
    connection_string: Optional[str] = None
    table_name: str = "legal_docs"
    log_table_name: str = "legal_advisor_logs"
    embedding_dimensions: int = 768
    pool_min_connections: int = 1
    pool_max_connections: int = 10


def validate_search_params(match_threshold: float, match_count: int) -> None:
    if not 0.0 <= match_threshold <= 1.0:
        raise InputValidationError("matchThreshold must be between 0 and 1")
    if match_count < 1:
        raise InputValidationError("matchCount must be a positive integer")


def summarize_categories(counts: dict[str, int]) -> list[dict]:
    """Category breakdown with display labels, largest first."""
    return [
        {"category": category, "label": CATEGORY_LABELS.get(category, category), "count": count}
        for category, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


class PostgresDocumentStore:
    """
    PostgreSQL document store with pgvector.

    Features:
    - One durable insert per chunk (per-row fault isolation)
    - Cosine similarity search over non-null embeddings
    - Optional exact category filter
    - ThreadedConnectionPool; every operation runs on its own connection
    """

    def __init__(self, config: Optional[DocumentStoreConfig] = None):
        self.config = config or DocumentStoreConfig()
        self._pool = None
        self._connection_string = self.config.connection_string or "postgresql://localhost:5432/legal_advisor"

    def connect(self) -> None:
        """Create the connection pool and make sure pgvector is installed."""
        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=self.config.pool_min_connections,
                maxconn=self.config.pool_max_connections,
                dsn=self._connection_string,
                cursor_factory=psycopg2.extras.RealDictCursor,
            )

            conn = self._pool.getconn()
            try:
                with conn.cursor() as cur:
                    cur.execute("CREATE EXTENSION IF NOT EXISTS vector")
                conn.commit()
            finally:
                self._pool.putconn(conn)

            logger.info(
                f"Connection pool initialized (min={self.config.pool_min_connections}, "
                f"max={self.config.pool_max_connections})"
            )
        except Exception as e:
            logger.error(f"Database connection failed: {e}")
            raise

    def close(self) -> None:
        if self._pool:
            self._pool.closeall()
            self._pool = None
            logger.info("Connection pool closed")

    def _get_connection(self):
        """Check out a connection owned by the caller until released."""
        if self._pool is None or self._pool.closed:
            self.connect()
        return self._pool.getconn()

    def _release_connection(self, conn, discard: bool = False) -> None:
        """Return a connection to the pool; discarded connections are closed."""
        if self._pool and conn is not None:
            self._pool.putconn(conn, close=discard)

    def _safe_rollback(self, conn) -> None:
        """Rollback a connection, ignoring errors if the connection is dead."""
        try:
            conn.rollback()
        except (psycopg2.InterfaceError, psycopg2.OperationalError):
            pass

    def _execute_with_retry(self, operation, label="db_operation"):
        """Execute a DB operation on its own pooled connection, retrying once if it is stale.

        Args:
            operation: Callable(conn) that performs the DB work and returns a result.
            label: Human-readable name for logging.

        Returns:
            Whatever ``operation`` returns.
        """
        for attempt in range(2):
            conn = self._get_connection()
            try:
                result = operation(conn)
            except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
                self._safe_rollback(conn)
                self._release_connection(conn, discard=True)
                if attempt == 0:
                    logger.warning(f"{label}: stale conn, retrying on a fresh one: {e}")
                    continue
                raise
            except Exception:
                self._safe_rollback(conn)
                self._release_connection(conn)
                raise
            self._release_connection(conn)
            return result

    def initialize_schema(self) -> None:
        """Create the chunk table, indexes and the search function if missing."""
        table = self.config.table_name
        dims = self.config.embedding_dimensions

        schema_sql = f"""
        CREATE TABLE IF NOT EXISTS {table} (
            id UUID PRIMARY KEY,
            content TEXT NOT NULL,
            category TEXT NOT NULL,
            source_url TEXT NOT NULL,
            article_number TEXT,
            embedding VECTOR({dims}),
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE INDEX IF NOT EXISTS idx_{table}_category ON {table}(category);
        CREATE INDEX IF NOT EXISTS idx_{table}_created ON {table}(created_at);

        CREATE TABLE IF NOT EXISTS {self.config.log_table_name} (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            query TEXT NOT NULL,
            answer TEXT,
            sources JSONB DEFAULT '[]',
            created_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE OR REPLACE FUNCTION search_{table}(
            query_embedding VECTOR({dims}),
            match_threshold FLOAT,
            match_count INT,
            filter_category TEXT DEFAULT NULL
        )
        RETURNS TABLE (
            id UUID, content TEXT, category TEXT, source_url TEXT,
            article_number TEXT, similarity FLOAT
        )
        LANGUAGE sql STABLE
        AS $$
            SELECT d.id, d.content, d.category, d.source_url, d.article_number,
                   COALESCE(1 - NULLIF(d.embedding <=> query_embedding, 'NaN'), 0) AS similarity
            FROM {table} d
            WHERE d.embedding IS NOT NULL
              AND (filter_category IS NULL OR d.category = filter_category)
              AND COALESCE(1 - NULLIF(d.embedding <=> query_embedding, 'NaN'), 0) >= match_threshold
            ORDER BY d.embedding <=> query_embedding, d.created_at
            LIMIT match_count;
        $$;
        """

        def _op(conn):
            with conn.cursor() as cur:
                cur.execute(schema_sql)
            conn.commit()

        try:
            self._execute_with_retry(_op, "initialize_schema")
            logger.info("Schema initialized successfully")
        except Exception as e:
            logger.error(f"Schema initialization failed: {e}")
            raise

    def insert_chunk(self, chunk: LegalDocumentChunk) -> bool:
        """
        Insert one chunk as a new row.

        Args:
            chunk: The chunk to persist

        Returns:
            True if the row was committed, False on any failure
        """
        sql = f"""
        INSERT INTO {self.config.table_name}
            (id, content, category, source_url, article_number, embedding, created_at)
        VALUES (%s::uuid, %s, %s, %s, %s, %s::vector, %s)
        """

        def _op(conn):
            with conn.cursor() as cur:
                cur.execute(sql, (
                    chunk.id,
                    chunk.content,
                    chunk.category,
                    chunk.source_url,
                    chunk.article_number,
                    chunk.embedding,
                    chunk.created_at,
                ))
                conn.commit()
            return True

        try:
            return self._execute_with_retry(_op, "insert_chunk")
        except Exception as e:
            logger.error(f"Failed to insert chunk {chunk.article_number or chunk.id}: {e}")
            return False

    def search(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        category: Optional[str] = None,
    ) -> list[SimilarityMatch]:
        """
        Nearest-neighbour search over stored embeddings.

        Args:
            query_embedding: Query vector
            match_threshold: Minimum cosine similarity (0-1)
            match_count: Maximum number of results
            category: Optional exact category filter

        Returns:
            Matches sorted by similarity descending; empty when nothing
            clears the threshold
        """
        validate_search_params(match_threshold, match_count)

        filters = ["embedding IS NOT NULL"]
        filter_params = []
        if category:
            filters.append("category = %s")
            filter_params.append(category)

        sql = f"""
        SELECT id, content, category, source_url, article_number, similarity
        FROM (
            SELECT id, content, category, source_url, article_number, created_at,
                   GREATEST(0, LEAST(1, ROUND(
                       COALESCE(1 - NULLIF(embedding <=> %s::vector, 'NaN'::float8), 0)::numeric, 10
                   )))::float8 AS similarity
            FROM {self.config.table_name}
            WHERE {' AND '.join(filters)}
        ) scored
        WHERE similarity >= %s
        ORDER BY similarity DESC, created_at ASC
        LIMIT %s
        """
        params = [query_embedding] + filter_params + [match_threshold, match_count]

        def _op(conn):
            with conn.cursor() as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
            return [
                SimilarityMatch(
                    id=str(row["id"]),
                    content=row["content"],
                    category=row["category"],
                    source_url=row["source_url"],
                    article_number=row["article_number"],
                    similarity=float(row["similarity"]),
                )
                for row in rows
            ]

        return self._execute_with_retry(_op, "search")

    def knowledge_base_stats(self) -> dict:
        """Total, embedded and per-category row counts."""
        sql = f"""
        SELECT category,
               COUNT(*) AS total,
               COUNT(embedding) AS embedded
        FROM {self.config.table_name}
        GROUP BY category
        """

        def _op(conn):
            with conn.cursor() as cur:
                cur.execute(sql)
                return cur.fetchall()

        rows = self._execute_with_retry(_op, "knowledge_base_stats")
        return {
            "total_count": sum(int(r["total"]) for r in rows),
            "embedded_count": sum(int(r["embedded"]) for r in rows),
            "categories": summarize_categories({r["category"]: int(r["total"]) for r in rows}),
        }

    def log_chat_interaction(self, query: str, answer: str, sources: list[dict]) -> None:
        """Record an advisor conversation turn. Never raises."""
        sql = f"""
        INSERT INTO {self.config.log_table_name} (query, answer, sources)
        VALUES (%s, %s, %s)
        """

        def _op(conn):
            with conn.cursor() as cur:
                cur.execute(sql, (query, answer, json.dumps(sources, ensure_ascii=False)))
                conn.commit()

        try:
            self._execute_with_retry(_op, "log_chat_interaction")
        except Exception as e:
            # Logging failures must never reach the user
            logger.warning(f"Chat interaction logging failed: {e}")

    def is_healthy(self) -> bool:
        def _op(conn):
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
            return True

        try:
            return self._execute_with_retry(_op, "health_check")
        except Exception as e:
            logger.warning(f"Health check: database disconnected: {e}")
            return False


class InMemoryDocumentStore:
    """
    List-backed store with the same interface as PostgresDocumentStore.

    Insertion order is storage order, which also breaks similarity ties.
    """

    def __init__(self, config: Optional[DocumentStoreConfig] = None):
        self.config = config or DocumentStoreConfig()
        self.rows: list[LegalDocumentChunk] = []
        self.chat_logs: list[dict] = []

    def connect(self) -> None:
        logger.info("Using in-memory document store")

    def close(self) -> None:
        pass

    def initialize_schema(self) -> None:
        pass

    def insert_chunk(self, chunk: LegalDocumentChunk) -> bool:
        if chunk.embedding is not None and len(chunk.embedding) != self.config.embedding_dimensions:
            logger.error(
                f"Failed to insert chunk {chunk.article_number or chunk.id}: expected "
                f"{self.config.embedding_dimensions} dimensions, got {len(chunk.embedding)}"
            )
            return False
        self.rows.append(chunk)
        return True

    @staticmethod
    def _cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
        norm_a = np.linalg.norm(a)
        norm_b = np.linalg.norm(b)
        if norm_a == 0 or norm_b == 0:
            return 0.0
        similarity = float(np.dot(a, b) / (norm_a * norm_b))
        return min(1.0, max(0.0, round(similarity, 10)))

    def search(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        category: Optional[str] = None,
    ) -> list[SimilarityMatch]:
        validate_search_params(match_threshold, match_count)
        query = np.asarray(query_embedding, dtype=float)

        scored = []
        for row in self.rows:
            if row.embedding is None:
                continue
            if category and row.category != category:
                continue
            similarity = self._cosine_similarity(np.asarray(row.embedding, dtype=float), query)
            if similarity >= match_threshold:
                scored.append((similarity, row))

        # sorted() is stable, so equal scores keep storage order
        scored = sorted(scored, key=lambda item: item[0], reverse=True)[:match_count]
        return [
            SimilarityMatch(
                id=row.id,
                content=row.content,
                category=row.category,
                source_url=row.source_url,
                article_number=row.article_number,
                similarity=similarity,
            )
            for similarity, row in scored
        ]

    def knowledge_base_stats(self) -> dict:
        counts = Counter(row.category for row in self.rows)
        return {
            "total_count": len(self.rows),
            "embedded_count": sum(1 for row in self.rows if row.has_embedding),
            "categories": summarize_categories(dict(counts)),
        }

    def log_chat_interaction(self, query: str, answer: str, sources: list[dict]) -> None:
        self.chat_logs.append({"query": query, "answer": answer, "sources": sources})

    def is_healthy(self) -> bool:
        return True


def get_document_store(config: AdvisorConfig):
    """
    Factory returning a connected store for the configured backend.

    Args:
        config: Service configuration

    Returns:
        PostgresDocumentStore or InMemoryDocumentStore
    """
    store_config = DocumentStoreConfig(
        connection_string=config.database_url,
        embedding_dimensions=config.embedding_dimensions,
        pool_min_connections=config.db_pool_min_connections,
        pool_max_connections=config.db_pool_max_connections,
    )
    if config.store_backend == "memory":
        store = InMemoryDocumentStore(store_config)
    else:
        config.require("database_url")
        store = PostgresDocumentStore(store_config)
    store.connect()
    store.initialize_schema()
    return store
