"""
Legal Article Chunker

Splits normalized legal text into semantic units, ideally one chunk per
article ("ماده N").

Two interchangeable strategies:
- ArticleMarkerStrategy: one chunk per article marker, optional preamble
- ParagraphFallbackStrategy: greedy paragraph grouping, used only when the
  text contains no article marker at all

LegalChunker picks the strategy; callers never choose one directly.
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional

from .language_patterns import ARTICLE_MARKER, PARAGRAPH_BREAK, LABELS

logger = logging.getLogger(__name__)

_ASCII_DIGITS = str.maketrans("۰۱۲۳۴۵۶۷۸۹٠١٢٣٤٥٦٧٨٩", "0123456789" * 2)


def to_ascii_digits(text: str) -> str:
    """Map Persian and Arabic-Indic digits to ASCII; other characters pass through."""
    return text.translate(_ASCII_DIGITS)


@dataclass
class ArticleChunk:
    """One semantic unit of legal text in document order."""
    article_number: Optional[str]
    content: str

    @property
    def label(self) -> str:
        """Human-readable label for progress logs."""
        if self.article_number is None:
            return LABELS["section"]
        if self.article_number[:1].isdigit():
            return f"{LABELS['article']} {to_ascii_digits(self.article_number)}"
        return self.article_number

    def to_dict(self) -> dict:
        return {
            "article_number": self.article_number,
            "content": self.content,
        }


@dataclass
class ChunkConfig:
    """Configuration for chunking thresholds (in characters)."""
    # Text before the first article is kept only when longer than this
    min_preamble_chars: int = 50

    # Article fragments this short are dropped
    min_chunk_chars: int = 10

    # Cap for paragraph-fallback chunks
    max_section_chars: int = 2000


class ChunkingStrategy:
    """Interface for a text splitting strategy."""

    def __init__(self, config: Optional[ChunkConfig] = None):
        self.config = config or ChunkConfig()

    def split(self, text: str) -> list[ArticleChunk]:
        raise NotImplementedError("Subclasses must implement split()")


class ArticleMarkerStrategy(ChunkingStrategy):
    """Starts a new chunk at every article marker."""

    def __init__(self, config: Optional[ChunkConfig] = None, pattern: re.Pattern = ARTICLE_MARKER):
        super().__init__(config)
        self._pattern = pattern

    def count_markers(self, text: str) -> int:
        return sum(1 for _ in self._pattern.finditer(text))

    def split(self, text: str) -> list[ArticleChunk]:
        matches = list(self._pattern.finditer(text))
        if not matches:
            return []

        chunks = []

        preamble = text[:matches[0].start()].strip()
        if len(preamble) > self.config.min_preamble_chars:
            chunks.append(ArticleChunk(article_number=LABELS["preamble"], content=preamble))

        for i, match in enumerate(matches):
            end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
            content = text[match.start():end].strip()
            if len(content) <= self.config.min_chunk_chars:
                continue
            chunks.append(ArticleChunk(article_number=match.group(1), content=content))

        return chunks


class ParagraphFallbackStrategy(ChunkingStrategy):
    """Groups blank-line separated paragraphs into capped sections."""

    def split(self, text: str) -> list[ArticleChunk]:
        max_chars = self.config.max_section_chars
        paragraphs = [p.strip() for p in PARAGRAPH_BREAK.split(text) if p.strip()]

        sections: list[str] = []
        current = ""
        for paragraph in paragraphs:
            for piece in self._split_oversized(paragraph, max_chars):
                if current and len(current) + len(piece) + 2 > max_chars:
                    sections.append(current)
                    current = piece
                else:
                    current = f"{current}\n\n{piece}" if current else piece
        if current:
            sections.append(current)

        chunks = [
            ArticleChunk(article_number=f"{LABELS['section']} {i}", content=section)
            for i, section in enumerate(sections, start=1)
            if len(section) > self.config.min_chunk_chars
        ]

        if not chunks and text.strip():
            # Degenerate case: keep the whole text as one unlabeled chunk
            return [ArticleChunk(article_number=None, content=text.strip())]
        return chunks

    @staticmethod
    def _split_oversized(paragraph: str, max_chars: int) -> list[str]:
        """Split a single paragraph longer than max_chars on whitespace."""
        if len(paragraph) <= max_chars:
            return [paragraph]

        pieces = []
        current = ""
        for word in paragraph.split():
            while len(word) > max_chars:
                # A single unbroken token longer than the cap
                if current:
                    pieces.append(current)
                    current = ""
                pieces.append(word[:max_chars])
                word = word[max_chars:]
            if current and len(current) + 1 + len(word) > max_chars:
                pieces.append(current)
                current = word
            else:
                current = f"{current} {word}" if current else word
        if current:
            pieces.append(current)
        return pieces


class LegalChunker:
    """
    Chunks normalized legal text into articles.

    Uses the marker strategy whenever at least one article marker is
    present and the paragraph fallback otherwise. Output order always
    matches document order.
    """

    def __init__(
        self,
        config: Optional[ChunkConfig] = None,
        marker_strategy: Optional[ArticleMarkerStrategy] = None,
        fallback_strategy: Optional[ChunkingStrategy] = None,
    ):
        self.config = config or ChunkConfig()
        self.marker_strategy = marker_strategy or ArticleMarkerStrategy(self.config)
        self.fallback_strategy = fallback_strategy or ParagraphFallbackStrategy(self.config)

    def select_strategy(self, text: str) -> ChunkingStrategy:
        if self.marker_strategy.count_markers(text) > 0:
            return self.marker_strategy
        return self.fallback_strategy

    def chunk(self, text: str) -> list[ArticleChunk]:
        """
        Split text into ordered (article_number, content) chunks.

        Args:
            text: Normalized plain text

        Returns:
            List of ArticleChunk objects, empty for blank input
        """
        if not text or not text.strip():
            return []

        strategy = self.select_strategy(text)
        chunks = strategy.split(text)
        logger.info(
            f"Created {len(chunks)} chunks using {type(strategy).__name__}"
        )
        return chunks
