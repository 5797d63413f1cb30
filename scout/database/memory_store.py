"""Volatile in-process document store."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from scout.errors import (
    InvalidQueryVectorError,
    InvalidVectorError,
    NotInitializedError,
    UnknownMetricError,
)
from scout.models import Document, Metadata, SearchResult
from scout.utils.vectors import SIMILARITY_METRICS, is_valid_vector, similarity

from .document_store import MetadataFilter, lexical_score, metadata_matches, rank, tokenize

logger = logging.getLogger(__name__)


class InMemoryDocumentStore:
    """Reference backend keeping documents in per-collection dicts.

    ``initialize`` switches the active collection; collections created earlier
    keep their documents until ``clear`` is called while they are active.
    Dict insertion order doubles as the tie-break order for equal scores.
    """

    def __init__(self, metric: str = "cosine") -> None:
        if metric not in SIMILARITY_METRICS:
            raise UnknownMetricError(metric)
        self._metric = metric
        self._collections: dict[str, dict[str, Document]] = {}
        self._collection_name: Optional[str] = None

    @property
    def metric(self) -> str:
        return self._metric

    @property
    def collection_name(self) -> Optional[str]:
        return self._collection_name

    @property
    def _documents(self) -> dict[str, Document]:
        if self._collection_name is None:
            raise NotInitializedError("InMemoryDocumentStore")
        return self._collections[self._collection_name]

    async def initialize(self, collection_name: str) -> None:
        self._collections.setdefault(collection_name, {})
        self._collection_name = collection_name
        logger.debug("In-memory collection %r active", collection_name)

    async def add_document(
        self, id: str, content: str, metadata: Optional[Metadata] = None
    ) -> None:
        self._documents[id] = Document(id=id, content=content, metadata=dict(metadata or {}))

    async def add_documents(self, documents: Sequence[Document]) -> None:
        """Upsert documents one at a time; a failure keeps earlier ones stored."""
        store = self._documents
        for document in documents:
            if document.vector is not None and not is_valid_vector(document.vector):
                raise InvalidVectorError(f"Invalid vector for document {document.id!r}")
            store[document.id] = document.model_copy(deep=True)

    async def store_vector(
        self,
        id: str,
        vector: Sequence[float],
        content: str,
        metadata: Optional[Metadata] = None,
    ) -> None:
        store = self._documents
        if not is_valid_vector(vector):
            raise InvalidVectorError(f"Invalid vector for document {id!r}")
        store[id] = Document(
            id=id,
            content=content,
            metadata=dict(metadata or {}),
            vector=list(vector),
        )

    async def search(
        self, query: str, limit: int = 10, filter: Optional[MetadataFilter] = None
    ) -> list[SearchResult]:
        store = self._documents
        query_tokens = tokenize(query)
        if not query_tokens:
            return []

        hits: list[SearchResult] = []
        for document in store.values():
            if not metadata_matches(document.metadata, filter):
                continue
            score = lexical_score(query_tokens, document.content)
            if score > 0:
                hits.append(_to_result(document, score))
        return rank(hits, limit)

    async def search_by_vector(
        self,
        query_vector: Sequence[float],
        limit: int = 10,
        filter: Optional[MetadataFilter] = None,
    ) -> list[SearchResult]:
        store = self._documents
        if not is_valid_vector(query_vector):
            raise InvalidQueryVectorError("Query vector is empty or has non-finite values")

        hits: list[SearchResult] = []
        for document in store.values():
            if not document.has_vector or not metadata_matches(document.metadata, filter):
                continue
            if len(document.vector) != len(query_vector):
                logger.debug(
                    "Skipping %s: dimension %d != query dimension %d",
                    document.id,
                    len(document.vector),
                    len(query_vector),
                )
                continue
            score = similarity(query_vector, document.vector, self._metric)
            hits.append(_to_result(document, score))
        return rank(hits, limit)

    async def get(self, id: str) -> Optional[Document]:
        document = self._documents.get(id)
        return document.model_copy(deep=True) if document is not None else None

    async def delete(self, id: str) -> None:
        self._documents.pop(id, None)

    async def delete_many(self, ids: Sequence[str]) -> None:
        store = self._documents
        for id in ids:
            store.pop(id, None)

    async def clear(self) -> None:
        self._documents.clear()

    async def count(self) -> int:
        return len(self._documents)


def _to_result(document: Document, score: float) -> SearchResult:
    return SearchResult(
        id=document.id,
        score=score,
        content=document.content,
        metadata=dict(document.metadata),
    )
