"""Tests for hybrid retrieval."""

import asyncio

import pytest

from scout.core.retriever import HybridRetriever, compute_confidence, deduplicate
from scout.errors import NotInitializedError, RetrievalError
from scout.models import QueryExpansion, SearchResult
from scout.utils.llm import HashEmbeddingProvider
from tests.fakes import FakeProvider


def hit(doc_id: str, score: float) -> SearchResult:
    return SearchResult(id=doc_id, score=score, content=f"content {doc_id}")


class ScriptedStore:
    """Store returning fixed hits per term, keyed by the term's fake vector."""

    def __init__(self, hits_by_term: dict[str, list[SearchResult]], vectors: dict[str, list[float]]):
        self._hits = hits_by_term
        self._term_by_vector = {tuple(v): term for term, v in vectors.items()}
        self.filters: list[object] = []

    async def search(self, query, limit=10, filter=None):
        self.filters.append(filter)
        return list(self._hits.get(query, []))

    async def search_by_vector(self, query_vector, limit=10, filter=None):
        term = self._term_by_vector[tuple(query_vector)]
        return list(self._hits.get(term, []))


VECTORS = {"auth": [1.0, 0.0], "login": [0.0, 1.0], "session": [1.0, 1.0]}


def make_retriever(hits_by_term, provider=None, **kwargs):
    provider = provider or FakeProvider(vectors=dict(VECTORS))
    store = ScriptedStore(hits_by_term, VECTORS)
    return HybridRetriever(store, provider, **kwargs), store, provider


class TestRetrieve:
    """End-to-end ranking behavior."""

    @pytest.mark.asyncio
    async def test_first_seen_dedup_then_sort(self):
        """B keeps its score from the primary term, not the higher expansion score."""
        retriever, _, _ = make_retriever(
            {
                "auth": [hit("A", 0.9), hit("B", 0.5)],
                "login": [hit("B", 0.7), hit("C", 0.6)],
            }
        )

        result = await retriever.retrieve(
            "auth", QueryExpansion(original_query="auth", expanded_terms=["login"])
        )

        assert [(r.id, r.score) for r in result.results] == [
            ("A", pytest.approx(0.9)),
            ("C", pytest.approx(0.6)),
            ("B", pytest.approx(0.5)),
        ]
        assert result.status == "ok"
        assert result.search_terms == ["auth", "login"]

    @pytest.mark.asyncio
    async def test_highest_score_strategy(self):
        retriever, _, _ = make_retriever(
            {"auth": [hit("B", 0.5)], "login": [hit("B", 0.7)]},
            dedup_strategy="highest_score",
        )
        result = await retriever.retrieve(
            "auth", QueryExpansion(original_query="auth", expanded_terms=["login"])
        )
        assert [(r.id, r.score) for r in result.results] == [("B", pytest.approx(0.7))]

    @pytest.mark.asyncio
    async def test_term_order_survives_out_of_order_completion(self):
        """The primary term finishing last still wins deduplication."""

        class SlowPrimary(FakeProvider):
            async def embed_async(self, text):
                if text == "auth":
                    await asyncio.sleep(0.05)
                return await super().embed_async(text)

        retriever, _, _ = make_retriever(
            {"auth": [hit("B", 0.5)], "login": [hit("B", 0.9)]},
            provider=SlowPrimary(vectors=dict(VECTORS)),
        )
        result = await retriever.retrieve(
            "auth", QueryExpansion(original_query="auth", expanded_terms=["login"])
        )
        assert result.results[0].score == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_truncates_to_max_sources(self):
        retriever, _, _ = make_retriever(
            {"auth": [hit(str(i), 0.1 * i) for i in range(1, 9)]}
        )
        result = await retriever.retrieve("auth", max_sources=3)
        assert [r.id for r in result.results] == ["8", "7", "6"]

    @pytest.mark.asyncio
    async def test_expansion_terms_capped_and_deduplicated(self):
        retriever, _, provider = make_retriever({})
        expansion = QueryExpansion(
            original_query="auth", expanded_terms=["auth", "login", "session", "extra"]
        )
        result = await retriever.retrieve("auth", expansion, max_expansion_terms=2)

        assert result.search_terms == ["auth", "login"]
        assert sorted(provider.embed_calls) == ["auth", "login"]

    @pytest.mark.asyncio
    async def test_no_results(self):
        retriever, _, _ = make_retriever({})
        result = await retriever.retrieve("auth")

        assert result.status == "no_results"
        assert result.found is False
        assert result.results == []
        assert result.confidence == 0.0

    @pytest.mark.asyncio
    async def test_filter_passed_to_store(self):
        retriever, store, _ = make_retriever({"auth": [hit("A", 0.9)]})
        await retriever.retrieve("auth", filter={"lang": "py"})
        assert store.filters == [{"lang": "py"}]


class TestFailures:
    """Per-term degradation and total failure."""

    @pytest.mark.asyncio
    async def test_failed_term_is_dropped(self):
        vectors = dict(VECTORS)
        vectors["login"] = RuntimeError("provider down")
        retriever, _, _ = make_retriever(
            {"auth": [hit("A", 0.9)], "login": [hit("C", 0.6)]},
            provider=FakeProvider(vectors=vectors),
        )
        result = await retriever.retrieve(
            "auth", QueryExpansion(original_query="auth", expanded_terms=["login"])
        )

        assert [r.id for r in result.results] == ["A"]
        assert result.failed_terms == ["login"]

    @pytest.mark.asyncio
    async def test_none_and_invalid_vectors_count_as_failures(self):
        vectors = dict(VECTORS)
        vectors["login"] = None
        vectors["session"] = [float("nan")]
        retriever, _, _ = make_retriever(
            {"auth": [hit("A", 0.9)]}, provider=FakeProvider(vectors=vectors)
        )
        result = await retriever.retrieve(
            "auth",
            QueryExpansion(original_query="auth", expanded_terms=["login", "session"]),
        )
        assert result.failed_terms == ["login", "session"]
        assert result.status == "ok"

    @pytest.mark.asyncio
    async def test_timeout_is_a_term_failure(self):
        class Hanging(FakeProvider):
            async def embed_async(self, text):
                if text == "login":
                    await asyncio.sleep(10)
                return await super().embed_async(text)

        retriever, _, _ = make_retriever(
            {"auth": [hit("A", 0.9)]},
            provider=Hanging(vectors=dict(VECTORS)),
            embed_timeout=0.05,
        )
        result = await retriever.retrieve(
            "auth", QueryExpansion(original_query="auth", expanded_terms=["login"])
        )
        assert result.failed_terms == ["login"]
        assert [r.id for r in result.results] == ["A"]

    @pytest.mark.asyncio
    async def test_all_terms_failing_raises(self):
        boom = RuntimeError("provider down")
        retriever, _, _ = make_retriever(
            {"auth": [hit("A", 0.9)]},
            provider=FakeProvider(vectors={"auth": boom, "login": None}),
        )
        with pytest.raises(RetrievalError) as exc_info:
            await retriever.retrieve(
                "auth", QueryExpansion(original_query="auth", expanded_terms=["login"])
            )

        assert set(exc_info.value.term_errors) == {"auth", "login"}
        assert exc_info.value.term_errors["auth"] is boom

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self):
        class Broken(ScriptedStore):
            async def search(self, query, limit=10, filter=None):
                raise NotInitializedError("Broken")

        retriever = HybridRetriever(Broken({}, VECTORS), FakeProvider(vectors=dict(VECTORS)))
        with pytest.raises(NotInitializedError):
            await retriever.retrieve("auth")


class TestFusion:
    """Weighted combination of lexical and vector signals."""

    def test_weighted_average_with_missing_signal_as_zero(self):
        fused = HybridRetriever.fuse(
            lexical_hits=[hit("both", 1.0), hit("lex", 0.5)],
            vector_hits=[hit("both", 0.5), hit("vec", 1.0)],
            lexical_weight=0.3,
            vector_weight=0.7,
        )
        scores = {r.id: r.score for r in fused}

        assert scores["both"] == pytest.approx(0.65)
        assert scores["vec"] == pytest.approx(0.7)
        assert scores["lex"] == pytest.approx(0.15)
        assert [r.id for r in fused] == ["vec", "both", "lex"]

    def test_signals_are_clamped(self):
        fused = HybridRetriever.fuse([], [hit("a", 5.0), hit("b", -3.0)], 0.0, 1.0)
        assert [(r.id, r.score) for r in fused] == [("a", 1.0), ("b", 0.0)]

    def test_invalid_weights(self):
        with pytest.raises(ValueError):
            HybridRetriever(ScriptedStore({}, {}), FakeProvider(), lexical_weight=0, vector_weight=0)


class TestConfidence:
    """compute_confidence() and deduplicate()."""

    def test_zero_results(self):
        assert compute_confidence([]) == 0.0

    def test_saturates_at_one(self):
        assert compute_confidence([0.8] * 5) == 1.0

    def test_partial_bonus(self):
        assert compute_confidence([0.5, 0.5]) == pytest.approx(0.5 + 0.4 * 0.2)

    def test_clamped_low(self):
        assert compute_confidence([-1.0]) == 0.0

    def test_deduplicate_first_seen(self):
        result = deduplicate([hit("a", 0.1), hit("b", 0.2), hit("a", 0.9)])
        assert [(r.id, r.score) for r in result] == [("a", 0.1), ("b", 0.2)]


class TestDirectionlessQuery:
    """Terms with nothing to embed still get a lexical read."""

    @pytest.mark.asyncio
    async def test_punctuation_only_query_matches_lexically(self, store):
        await store.add_document("faq", "what ??? now")
        await store.store_vector("other", [1.0] * 8, "unrelated")
        retriever = HybridRetriever(store, HashEmbeddingProvider(dimension=8))

        result = await retriever.retrieve("???")

        assert [r.id for r in result.results] == ["faq"]
        assert result.results[0].score == pytest.approx(0.3 * (1 / 3))
        assert result.failed_terms == []

    @pytest.mark.asyncio
    async def test_punctuation_only_query_without_matches(self, store):
        await store.add_document("doc", "plain words")
        retriever = HybridRetriever(store, HashEmbeddingProvider(dimension=8))

        result = await retriever.retrieve("?!")

        assert result.status == "no_results"
