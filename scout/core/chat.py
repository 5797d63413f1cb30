"""Question answering over the index: retrieve sources, then ask the model."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from scout.models import ChatResponse, QueryExpansion, RetrievalResult, SearchResult
from scout.utils.llm import LLMProvider

from .retriever import HybridRetriever, compute_confidence, deduplicate

logger = logging.getLogger(__name__)

NO_RESULTS_ANSWER = (
    "I could not find code related to this question. "
    "Try different keywords or a more specific question."
)
NO_ANSWER = "I could not generate an answer from the retrieved code."

SYSTEM_PROMPT = """You are an experienced software engineer answering questions about a codebase.
Use only the code context provided. Explain what the code does and how, point to
the files involved, and say so when the context is not enough to answer."""

FOLLOW_UP_CONTEXT_WINDOW = 2500
FOLLOW_UP_MAX_SOURCES = 3

# Metadata keys rendered as hints above each source.
_HINT_KEYS = ("class_name", "purpose", "methods")


class Expander(Protocol):
    async def expand_async(self, query: str) -> QueryExpansion:
        ...


class CodeChatService:
    """Answers natural-language questions with the code that grounds them."""

    def __init__(
        self,
        retriever: HybridRetriever,
        provider: Optional[LLMProvider],
        expander: Optional[Expander] = None,
        max_sources: int = 5,
        max_expansion_terms: int = 3,
    ) -> None:
        self._retriever = retriever
        self._max_sources = max_sources
        self._provider = provider
        self._expander = expander
        self._max_expansion_terms = max_expansion_terms

    async def ask(
        self,
        question: str,
        max_sources: Optional[int] = None,
        include_code: bool = True,
        context_window: int = 3000,
    ) -> ChatResponse:
        """Retrieve sources for ``question`` and answer from them.

        Raises:
            RetrievalError: If no search term could be embedded.
        """
        retrieval = await self._retrieve(
            question, self._max_sources if max_sources is None else max_sources
        )

        if not retrieval.found:
            return ChatResponse(
                answer=NO_RESULTS_ANSWER,
                confidence=0.0,
                search_terms=retrieval.search_terms,
            )

        context = build_context(retrieval.results, context_window, include_code)
        answer = await self._generate(f"Question: {question}\n\nCode context:\n{context}")
        return ChatResponse(
            answer=answer,
            sources=retrieval.results,
            confidence=retrieval.confidence,
            search_terms=retrieval.search_terms,
        )

    async def follow_up(
        self,
        question: str,
        previous_sources: Sequence[SearchResult],
        history: Sequence[tuple[str, str]] = (),
    ) -> ChatResponse:
        """Answer a follow-up using earlier sources plus fresh ones.

        Args:
            question: The new question.
            previous_sources: Sources shown with earlier answers; they keep
                priority over new hits for the same id.
            history: Earlier (question, answer) pairs, oldest first.
        """
        fresh = await self._retrieve(question, FOLLOW_UP_MAX_SOURCES)
        sources = deduplicate([*previous_sources, *fresh.results])

        transcript = "\n\n".join(f"Q: {q}\nA: {a}" for q, a in history)
        context = build_context(sources, FOLLOW_UP_CONTEXT_WINDOW, include_code=True)
        answer = await self._generate(
            f"Conversation so far:\n{transcript}\n\n"
            f"Relevant code:\n{context}\n\n"
            f"Using the conversation above, answer: {question}"
        )
        return ChatResponse(
            answer=answer,
            sources=sources,
            confidence=compute_confidence([source.score for source in sources]),
            search_terms=fresh.search_terms,
        )

    async def _retrieve(self, question: str, max_sources: int) -> RetrievalResult:
        expansion = await self._expander.expand_async(question) if self._expander else None
        return await self._retriever.retrieve(
            question,
            expansion=expansion,
            max_sources=max_sources,
            max_expansion_terms=self._max_expansion_terms,
        )

    async def _generate(self, prompt: str) -> str:
        if self._provider is None:
            return NO_ANSWER
        answer = await self._provider.generate_text_async(f"{SYSTEM_PROMPT}\n\n{prompt}")
        if not answer:
            logger.warning("Provider returned no answer")
            return NO_ANSWER
        return answer


def build_context(sources: Sequence[SearchResult], max_length: int, include_code: bool) -> str:
    """Render sources for the prompt, stopping before ``max_length`` is exceeded."""
    blocks: list[str] = []
    used = 0
    for source in sources:
        meta = source.metadata
        lines = [f"File: {meta.get('file_path', meta.get('source', source.id))}"]
        lines.extend(f"{key.replace('_', ' ').title()}: {meta[key]}" for key in _HINT_KEYS if key in meta)
        lines.append(f"Relevance: {source.score * 100:.1f}%")
        if include_code:
            lines.append(f"```{meta.get('language', '')}\n{source.content}\n```")
        block = "\n".join(lines)

        if used + len(block) > max_length:
            break
        blocks.append(block)
        used += len(block)
    return "\n\n".join(blocks)
