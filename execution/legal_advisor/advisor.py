"""
Legal Advisor Chat Orchestrator

Answers a labor-law question with retrieval-augmented generation:

    1. embed the question
    2. similarity search (threshold 0.3, top 5)
    3. build a numbered context block from the matches
    4. ask the chat model, constrained to that context
    5. return the answer with up to 3 cited articles

When retrieval yields nothing, either because no stored chunk is similar
enough or because the question could not be embedded, the model is told to
answer from general legal knowledge and to say that confidence is reduced.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .config import AdvisorConfig, CHAT_MATCH_COUNT, CHAT_MATCH_THRESHOLD
from .document_store import SimilarityMatch
from .errors import InputValidationError
from .language_patterns import ERROR_MESSAGES, LABELS, LLM_PROMPTS
from .llm import complete_chat

logger = logging.getLogger(__name__)

MAX_CONTEXT_CHARS_PER_MATCH = 1500
MAX_CITED_SOURCES = 3
CONTEXT_SEPARATOR = "\n\n---\n\n"


@dataclass
class SourceCitation:
    """A cited article in a chat answer."""
    article_number: Optional[str]
    category: str
    similarity: float

    def to_dict(self) -> dict:
        return {
            "articleNumber": self.article_number,
            "category": self.category,
            "similarity": self.similarity,
        }


@dataclass
class ChatAnswer:
    """Generated answer plus the sources it was grounded on."""
    answer: str
    sources: list[SourceCitation] = field(default_factory=list)
    used_general_knowledge: bool = False

    def to_dict(self) -> dict:
        return {
            "success": True,
            "answer": self.answer,
            "sources": [s.to_dict() for s in self.sources],
        }


def build_context(matches: list[SimilarityMatch]) -> str:
    """Numbered context block with article headers, one entry per match."""
    entries = []
    for i, match in enumerate(matches, start=1):
        header = f"[{i}]"
        if match.article_number:
            number = match.article_number
            if number[:1].isdigit():
                number = f"{LABELS['article']} {number}"
            header = f"{header} {number}"
        entries.append(f"{header}\n{match.content[:MAX_CONTEXT_CHARS_PER_MATCH]}")
    return CONTEXT_SEPARATOR.join(entries)


def build_messages(query: str, context: str) -> list[dict]:
    """System + user messages; an empty context switches to general-knowledge mode."""
    if context:
        user_prompt = LLM_PROMPTS["advisor_user_with_context"].format(context=context, query=query)
    else:
        user_prompt = LLM_PROMPTS["advisor_user_general_knowledge"].format(query=query)
    return [
        {"role": "system", "content": LLM_PROMPTS["advisor_system"]},
        {"role": "user", "content": user_prompt},
    ]


class LegalAdvisor:
    """
    Retrieval-augmented legal question answering.

    Args:
        store: Document store providing search()
        embeddings: Embedding client providing embed_query()
        chat_client: OpenAI-compatible client for the AI gateway
        config: Service configuration (chat model, token budget)
    """

    def __init__(self, store, embeddings, chat_client, config: AdvisorConfig):
        self.store = store
        self.embeddings = embeddings
        self.chat_client = chat_client
        self.config = config

    def retrieve(self, query: str) -> list[SimilarityMatch]:
        """Top matches for the query, empty when the query cannot be embedded."""
        query_embedding = self.embeddings.embed_query(query)
        if query_embedding is None:
            logger.warning("Query embedding failed, answering from general knowledge")
            return []

        matches = self.store.search(
            query_embedding,
            match_threshold=CHAT_MATCH_THRESHOLD,
            match_count=CHAT_MATCH_COUNT,
            category=None,
        )
        logger.info(f"Found {len(matches)} relevant documents")
        return matches

    def answer(self, query: str) -> ChatAnswer:
        """
        Answer a user question.

        Args:
            query: The user's question

        Returns:
            ChatAnswer with the generated text and up to 3 citations

        Raises:
            InputValidationError: Empty question
            UpstreamServiceError: Chat completion failed
        """
        query = (query or "").strip()
        if not query:
            raise InputValidationError(ERROR_MESSAGES["query_required"])

        logger.info(f"Legal advisor query: {query[:100]!r}")
        matches = self.retrieve(query)
        context = build_context(matches)

        content = complete_chat(
            self.chat_client,
            model=self.config.chat_model,
            messages=build_messages(query, context),
            max_tokens=self.config.chat_max_tokens,
            label="legal-advisor-chat",
        )
        answer = (content or "").strip() or ERROR_MESSAGES["no_answer"]

        sources = [
            SourceCitation(
                article_number=m.article_number,
                category=m.category,
                similarity=m.similarity,
            )
            for m in matches[:MAX_CITED_SOURCES]
        ]
        return ChatAnswer(answer=answer, sources=sources, used_general_knowledge=not matches)
