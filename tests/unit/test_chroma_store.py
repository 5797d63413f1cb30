"""Tests for the Chroma document store."""

from __future__ import annotations

import math
from pathlib import Path

import pytest

from scout.database.chroma_store import HAS_VECTOR_KEY, SEQ_KEY, ChromaDocumentStore
from scout.errors import InvalidQueryVectorError, InvalidVectorError, NotInitializedError, UnknownMetricError


def test_build_where_pushes_down_strings_and_bools() -> None:
    where, post = ChromaDocumentStore.build_where({"lang": "py"})
    assert where == {"lang": {"$eq": "py"}}
    assert post is False

    where, post = ChromaDocumentStore.build_where({"lang": "py", "test": False})
    assert where == {"$and": [{"lang": {"$eq": "py"}}, {"test": {"$eq": False}}]}
    assert post is False


def test_build_where_leaves_numbers_for_post_filter() -> None:
    where, post = ChromaDocumentStore.build_where({"line": 3})
    assert where is None
    assert post is True


def test_build_where_requires_vector_for_vector_queries() -> None:
    where, post = ChromaDocumentStore.build_where(None, require_vector=True)
    assert where == {HAS_VECTOR_KEY: {"$eq": True}}
    assert post is False


def test_score_from_distance() -> None:
    assert ChromaDocumentStore.score_from_distance(0.0, "cosine") == 1.0
    assert ChromaDocumentStore.score_from_distance(1.5, "cosine") == pytest.approx(-0.5)
    assert ChromaDocumentStore.score_from_distance(4.0, "l2") == pytest.approx(1 / 3)
    assert ChromaDocumentStore.score_from_distance(math.inf, "l2") == 0.0
    assert ChromaDocumentStore.score_from_distance(-2.0, "ip") == 3.0
    assert ChromaDocumentStore.score_from_distance(math.nan, "cosine") == 0.0


def test_public_metadata_strips_internal_keys() -> None:
    meta = {"lang": "py", SEQ_KEY: 4, HAS_VECTOR_KEY: True}
    assert ChromaDocumentStore.public_metadata(meta) == {"lang": "py"}


def test_unknown_metric(tmp_path: Path) -> None:
    with pytest.raises(UnknownMetricError):
        ChromaDocumentStore(tmp_path, metric="hamming")


@pytest.mark.asyncio
async def test_operations_before_initialize(tmp_path: Path) -> None:
    store = ChromaDocumentStore(tmp_path)
    with pytest.raises(NotInitializedError):
        await store.search("anything")
    with pytest.raises(NotInitializedError):
        await store.count()


class TestPersistentCollection:
    """Round trips against a real on-disk collection."""

    @pytest.fixture
    def chroma_path(self, tmp_path: Path) -> Path:
        pytest.importorskip("chromadb")
        return tmp_path / "chroma"

    @pytest.mark.asyncio
    async def test_store_search_and_reopen(self, chroma_path: Path) -> None:
        store = ChromaDocumentStore(chroma_path, vector_dimension=2)
        await store.initialize("code")
        await store.store_vector("a", [1.0, 0.0], "parse config file", {"lang": "py", "line": 3})
        await store.add_document("b", "parse config values", {"lang": "js"})

        lexical = await store.search("parse config")
        assert [r.id for r in lexical] == ["a", "b"]

        vector_hits = await store.search_by_vector([1.0, 0.0])
        assert [r.id for r in vector_hits] == ["a"]
        assert vector_hits[0].score == pytest.approx(1.0)
        assert vector_hits[0].metadata == {"lang": "py", "line": 3}

        numeric = await store.search("parse", filter={"line": 3.0})
        assert [r.id for r in numeric] == ["a"]

        reopened = ChromaDocumentStore(chroma_path, vector_dimension=2)
        await reopened.initialize("code")
        assert await reopened.count() == 2
        doc = await reopened.get("a")
        assert doc.vector == pytest.approx([1.0, 0.0])
        assert (await reopened.get("b")).vector is None

    @pytest.mark.asyncio
    async def test_vector_validation(self, chroma_path: Path) -> None:
        store = ChromaDocumentStore(chroma_path, vector_dimension=2)
        await store.initialize("code")

        with pytest.raises(InvalidVectorError):
            await store.store_vector("a", [1.0, 0.0, 0.0], "wrong dimension")
        with pytest.raises(InvalidQueryVectorError):
            await store.search_by_vector([math.nan, 1.0])
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, chroma_path: Path) -> None:
        store = ChromaDocumentStore(chroma_path, vector_dimension=2)
        await store.initialize("code")
        await store.add_document("a", "alpha")
        await store.add_document("b", "beta")

        await store.delete("a")
        await store.delete("missing")
        assert await store.get("a") is None
        assert await store.count() == 1

        await store.clear()
        assert await store.count() == 0
