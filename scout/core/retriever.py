"""Hybrid retrieval: fan a query out over its expansion terms and merge the hits."""

from __future__ import annotations

import asyncio
import logging
from typing import Literal, Optional, Sequence

from scout.database.document_store import DocumentStore, MetadataFilter
from scout.errors import EmbeddingError, RetrievalError
from scout.models import QueryExpansion, RetrievalResult, SearchResult
from scout.utils.llm import LLMProvider
from scout.utils.vectors import is_valid_vector, magnitude

logger = logging.getLogger(__name__)

DedupStrategy = Literal["first_seen", "highest_score"]

# Confidence bonus reaches its maximum at this many results.
CONFIDENCE_SATURATION = 5
CONFIDENCE_BONUS = 0.2


def compute_confidence(scores: Sequence[float]) -> float:
    """``mean(scores) + min(n / 5, 1) * 0.2``, clamped to [0, 1]; 0 for no scores."""
    if not scores:
        return 0.0
    mean = sum(scores) / len(scores)
    bonus = min(len(scores) / CONFIDENCE_SATURATION, 1.0) * CONFIDENCE_BONUS
    return max(0.0, min(1.0, mean + bonus))


def deduplicate(
    results: Sequence[SearchResult], strategy: DedupStrategy = "first_seen"
) -> list[SearchResult]:
    """Drop repeated ids, keeping first-seen position.

    With "first_seen" the first occurrence's score is kept. With
    "highest_score" the best score for the id replaces it.
    """
    kept: dict[str, SearchResult] = {}
    for result in results:
        current = kept.get(result.id)
        if current is None:
            kept[result.id] = result
        elif strategy == "highest_score" and result.score > current.score:
            kept[result.id] = result
    return list(kept.values())


def _clamp(score: float) -> float:
    return max(0.0, min(1.0, score))


class HybridRetriever:
    """Ranks documents for a query using lexical and vector signals.

    Stateless per call; all state lives in the store.
    """

    def __init__(
        self,
        store: DocumentStore,
        embedder: LLMProvider,
        *,
        lexical_weight: float = 0.3,
        vector_weight: float = 0.7,
        embed_timeout: float = 10.0,
        dedup_strategy: DedupStrategy = "first_seen",
    ) -> None:
        if lexical_weight < 0 or vector_weight < 0 or lexical_weight + vector_weight <= 0:
            raise ValueError("weights must be non-negative and not both zero")
        self._store = store
        self._embedder = embedder
        self._lexical_weight = lexical_weight
        self._vector_weight = vector_weight
        self._embed_timeout = embed_timeout
        self._dedup_strategy = dedup_strategy

    async def retrieve(
        self,
        query: str,
        expansion: Optional[QueryExpansion] = None,
        max_sources: int = 5,
        max_expansion_terms: int = 3,
        filter: Optional[MetadataFilter] = None,
    ) -> RetrievalResult:
        """Search every term concurrently and merge the hits in term order.

        Args:
            query: The user's query; always searched first.
            expansion: Alternate phrasings; at most ``max_expansion_terms`` are used.
            max_sources: Maximum number of results returned.
            max_expansion_terms: Cap on expansion terms searched.
            filter: Exact-match metadata filter applied to every term.

        Returns:
            Ranked, deduplicated results. ``status`` is "no_results" when nothing
            matched.

        Raises:
            RetrievalError: If no term could be embedded.
        """
        terms = self._build_terms(query, expansion, max_expansion_terms)
        outcomes = await asyncio.gather(
            *(self._search_term(term, max_sources, filter) for term in terms),
            return_exceptions=True,
        )

        pool: list[SearchResult] = []
        term_errors: dict[str, BaseException] = {}
        # gather preserves argument order, so the pool is built in term priority order.
        for term, outcome in zip(terms, outcomes):
            if isinstance(outcome, EmbeddingError):
                term_errors[term] = outcome.__cause__ or outcome
                logger.warning("Dropping search term %r: %s", term, outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                pool.extend(outcome)

        if term_errors and len(term_errors) == len(terms):
            raise RetrievalError(term_errors)

        failed = [term for term in terms if term in term_errors]
        unique = deduplicate(pool, self._dedup_strategy)
        ranked = sorted(unique, key=lambda result: result.score, reverse=True)[: max(max_sources, 0)]

        if not ranked:
            logger.info("No results for %r (%d terms)", query, len(terms))
            return RetrievalResult(
                query=query,
                search_terms=terms,
                failed_terms=failed,
                status="no_results",
            )

        confidence = compute_confidence([result.score for result in ranked])
        logger.info(
            "Retrieved %d results for %r (confidence %.2f, %d/%d terms ok)",
            len(ranked),
            query,
            confidence,
            len(terms) - len(failed),
            len(terms),
        )
        return RetrievalResult(
            query=query,
            results=ranked,
            confidence=confidence,
            search_terms=terms,
            failed_terms=failed,
        )

    @staticmethod
    def _build_terms(
        query: str, expansion: Optional[QueryExpansion], max_expansion_terms: int
    ) -> list[str]:
        terms = [query]
        if expansion is not None and max_expansion_terms > 0:
            for term in expansion.expanded_terms[:max_expansion_terms]:
                if term and term not in terms:
                    terms.append(term)
        return terms

    async def _embed(self, term: str) -> list[float]:
        """Embed one term, turning every failure mode into EmbeddingError."""
        try:
            vector = await asyncio.wait_for(
                self._embedder.embed_async(term), timeout=self._embed_timeout
            )
        except asyncio.CancelledError as exc:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            raise EmbeddingError(f"embedding cancelled for {term!r}") from exc
        except TimeoutError as exc:
            raise EmbeddingError(
                f"embedding timed out after {self._embed_timeout}s for {term!r}"
            ) from exc
        except Exception as exc:
            raise EmbeddingError(f"embedding failed for {term!r}: {exc}") from exc

        if vector is None or not is_valid_vector(vector):
            raise EmbeddingError(f"no usable embedding for {term!r}")
        return list(vector)

    async def _search_term(
        self, term: str, limit: int, filter: Optional[MetadataFilter]
    ) -> list[SearchResult]:
        """Hybrid read for one term: lexical and vector hits fused per id.

        A zero embedding (text with nothing to embed) has no direction, so the
        term is read lexically only.
        """
        vector = await self._embed(term)
        if magnitude(vector) == 0.0:
            lexical_hits = await self._store.search(term, limit=limit, filter=filter)
            return self.fuse(lexical_hits, [], self._lexical_weight, self._vector_weight)
        lexical_hits, vector_hits = await asyncio.gather(
            self._store.search(term, limit=limit, filter=filter),
            self._store.search_by_vector(vector, limit=limit, filter=filter),
        )
        return self.fuse(lexical_hits, vector_hits, self._lexical_weight, self._vector_weight)

    @staticmethod
    def fuse(
        lexical_hits: Sequence[SearchResult],
        vector_hits: Sequence[SearchResult],
        lexical_weight: float,
        vector_weight: float,
    ) -> list[SearchResult]:
        """Weighted fusion of both signals per id.

        Each signal is clamped to [0, 1] and a missing signal counts as 0. The
        fused score is the weighted sum over the sum of weights, so it stays in
        [0, 1]. Output is sorted by fused score; ties keep vector-hit order
        followed by lexical-only hits.
        """
        total = lexical_weight + vector_weight
        by_id: dict[str, SearchResult] = {}
        lexical: dict[str, float] = {}
        semantic: dict[str, float] = {}

        for hit in vector_hits:
            by_id.setdefault(hit.id, hit)
            semantic.setdefault(hit.id, _clamp(hit.score))
        for hit in lexical_hits:
            by_id.setdefault(hit.id, hit)
            lexical.setdefault(hit.id, _clamp(hit.score))

        fused = [
            hit.model_copy(
                update={
                    "score": (
                        lexical_weight * lexical.get(doc_id, 0.0)
                        + vector_weight * semantic.get(doc_id, 0.0)
                    )
                    / total
                }
            )
            for doc_id, hit in by_id.items()
        ]
        return sorted(fused, key=lambda result: result.score, reverse=True)
