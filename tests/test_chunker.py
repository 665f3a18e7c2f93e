"""
Tests for execution/legal_advisor/chunker.py

Covers: ArticleChunk labels, ChunkConfig defaults, article-marker splitting
        (preamble, Persian digits, short fragments), the paragraph fallback
        (grouping, size cap, degenerate input), and strategy selection.
"""

import pytest


# ---------------------------------------------------------------------------
# ArticleChunk / ChunkConfig
# ---------------------------------------------------------------------------

class TestArticleChunk:

    def test_label_for_numbered_article(self):
        from execution.legal_advisor.chunker import ArticleChunk

        assert ArticleChunk(article_number="12", content="x").label == "ماده 12"
    def test_label_uses_ascii_digits(self):
        from execution.legal_advisor.chunker import ArticleChunk

        chunk = ArticleChunk(article_number="۱۲", content="x")
        assert chunk.label == "ماده 12"
        assert ArticleChunk(article_number="٣", content="x").label == "ماده 3"
        assert chunk.article_number == "۱۲"

    def test_label_for_named_sections(self):
        from execution.legal_advisor.chunker import ArticleChunk

        assert ArticleChunk(article_number="مقدمه", content="x").label == "مقدمه"
        assert ArticleChunk(article_number="بخش 2", content="x").label == "بخش 2"
        assert ArticleChunk(article_number=None, content="x").label == "بخش"

    @pytest.mark.parametrize("text,expected", [
        ("۰۱۲۳۴۵۶۷۸۹", "0123456789"),
        ("٠١٢٣٤٥٦٧٨٩", "0123456789"),
        ("ماده ۷۶ و 12", "ماده 76 و 12"),
        ("", ""),
    ])
    def test_to_ascii_digits(self, text, expected):
        from execution.legal_advisor.chunker import to_ascii_digits

        assert to_ascii_digits(text) == expected

    def test_to_dict(self):
        from execution.legal_advisor.chunker import ArticleChunk

        assert ArticleChunk("1", "متن").to_dict() == {"article_number": "1", "content": "متن"}


class TestChunkConfig:

    def test_defaults(self):
        from execution.legal_advisor.chunker import ChunkConfig

        cfg = ChunkConfig()
        assert cfg.min_preamble_chars == 50
        assert cfg.min_chunk_chars == 10
        assert cfg.max_section_chars == 2000


# ---------------------------------------------------------------------------
# Article marker strategy
# ---------------------------------------------------------------------------

class TestArticleMarkerSplitting:
    """Tests for one-chunk-per-article splitting."""

    def test_three_articles_plus_preamble(self, sample_law_text):
        from execution.legal_advisor.chunker import LegalChunker

        chunks = LegalChunker().chunk(sample_law_text)
        assert [c.article_number for c in chunks] == ["مقدمه", "1", "2", "3"]
        assert chunks[1].content.startswith("ماده 1")
        assert chunks[3].content.startswith("ماده 3")

    def test_article_content_runs_to_next_marker(self, sample_law_text):
        from execution.legal_advisor.chunker import LegalChunker

        chunks = LegalChunker().chunk(sample_law_text)
        assert "ماده 2" not in chunks[1].content
        assert chunks[2].content.endswith("کار می‌کند.")

    def test_short_preamble_is_dropped(self):
        from execution.legal_advisor.chunker import LegalChunker

        text = "عنوان کوتاه\n\nماده 1 متن کامل ماده اول قانون.\n\nماده 2 متن کامل ماده دوم قانون."
        chunks = LegalChunker().chunk(text)
        assert [c.article_number for c in chunks] == ["1", "2"]

    def test_persian_digits(self):
        from execution.legal_advisor.chunker import LegalChunker

        text = "ماده ۱۲ کارفرما مکلف است مزد را پرداخت کند.\n\nماده ۱۳ کارگر حق مرخصی دارد."
        chunks = LegalChunker().chunk(text)
        assert [c.article_number for c in chunks] == ["۱۲", "۱۳"]

    def test_marker_without_space(self):
        from execution.legal_advisor.chunker import LegalChunker

        chunks = LegalChunker().chunk("ماده5 مدت قرارداد کار موقت تعیین می‌شود.")
        assert len(chunks) == 1
        assert chunks[0].article_number == "5"

    def test_short_fragments_are_dropped(self):
        from execution.legal_advisor.chunker import LegalChunker

        text = "ماده 1 متن کافی برای یک ماده قانونی کامل\nماده 2"
        chunks = LegalChunker().chunk(text)
        assert [c.article_number for c in chunks] == ["1"]

    def test_document_order_is_kept(self):
        from execution.legal_advisor.chunker import LegalChunker

        text = "ماده 7 متن ماده هفتم قانون کار.\n\nماده 3 متن ماده سوم قانون کار."
        chunks = LegalChunker().chunk(text)
        assert [c.article_number for c in chunks] == ["7", "3"]

    def test_count_markers(self, sample_law_text):
        from execution.legal_advisor.chunker import ArticleMarkerStrategy

        assert ArticleMarkerStrategy().count_markers(sample_law_text) == 3
        assert ArticleMarkerStrategy().count_markers("متن بدون ماده شماره‌دار") == 0


# ---------------------------------------------------------------------------
# Paragraph fallback strategy
# ---------------------------------------------------------------------------

class TestParagraphFallback:
    """Tests for text without any article marker."""

    def test_paragraphs_grouped_up_to_cap(self):
        from execution.legal_advisor.chunker import LegalChunker

        paragraphs = [("الف" * 300)[:900] for _ in range(5)]
        chunks = LegalChunker().chunk("\n\n".join(paragraphs))

        assert len(chunks) == 3
        assert [c.article_number for c in chunks] == ["بخش 1", "بخش 2", "بخش 3"]
        assert all(len(c.content) <= 2000 for c in chunks)

    def test_oversized_paragraph_is_split(self):
        from execution.legal_advisor.chunker import LegalChunker

        text = " ".join(["واژه"] * 1500)
        chunks = LegalChunker().chunk(text)

        assert len(chunks) > 1
        assert all(len(c.content) <= 2000 for c in chunks)
        assert sum(c.content.count("واژه") for c in chunks) == 1500

    def test_unbroken_token_longer_than_cap(self):
        from execution.legal_advisor.chunker import LegalChunker

        chunks = LegalChunker().chunk("ب" * 4500)
        assert [len(c.content) for c in chunks] == [2000, 2000, 500]

    def test_degenerate_text_kept_as_single_chunk(self):
        from execution.legal_advisor.chunker import LegalChunker

        chunks = LegalChunker().chunk("متن کوتاه")
        assert len(chunks) == 1
        assert chunks[0].article_number is None
        assert chunks[0].content == "متن کوتاه"

    def test_blank_text(self):
        from execution.legal_advisor.chunker import LegalChunker

        assert LegalChunker().chunk("") == []
        assert LegalChunker().chunk("   \n\n  ") == []


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------

class TestStrategySelection:

    def test_marker_strategy_when_any_marker(self, sample_law_text):
        from execution.legal_advisor.chunker import ArticleMarkerStrategy, LegalChunker

        assert isinstance(LegalChunker().select_strategy(sample_law_text), ArticleMarkerStrategy)

    def test_fallback_without_markers(self):
        from execution.legal_advisor.chunker import LegalChunker, ParagraphFallbackStrategy

        chunker = LegalChunker()
        assert isinstance(chunker.select_strategy("فصل اول\n\nتعاریف"), ParagraphFallbackStrategy)

    def test_custom_config_applies_to_default_strategies(self):
        from execution.legal_advisor.chunker import ChunkConfig, LegalChunker

        chunker = LegalChunker(ChunkConfig(max_section_chars=100))
        chunks = chunker.chunk("\n\n".join(["پاراگراف " * 8] * 4))
        assert all(len(c.content) <= 100 for c in chunks)

    @pytest.mark.parametrize("digits", ["1", "۱", "١"])
    def test_all_digit_systems_select_marker_strategy(self, digits):
        from execution.legal_advisor.chunker import ArticleMarkerStrategy, LegalChunker

        strategy = LegalChunker().select_strategy(f"ماده {digits} متن")
        assert isinstance(strategy, ArticleMarkerStrategy)
