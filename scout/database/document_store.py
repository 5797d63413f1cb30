"""Document store interface shared by all backends."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping, Optional, Protocol, Sequence

from scout.models import Document, Metadata, MetadataValue, SearchResult

if TYPE_CHECKING:
    from scout.config import Settings

logger = logging.getLogger(__name__)

MetadataFilter = Mapping[str, MetadataValue]


class DocumentStore(Protocol):
    """Async store of documents searchable by text and by vector.

    Every method except ``initialize`` raises ``NotInitializedError`` until
    ``initialize`` has completed.
    """

    async def initialize(self, collection_name: str) -> None:
        ...

    async def add_document(
        self, id: str, content: str, metadata: Optional[Metadata] = None
    ) -> None:
        ...

    async def add_documents(self, documents: Sequence[Document]) -> None:
        ...

    async def store_vector(
        self,
        id: str,
        vector: Sequence[float],
        content: str,
        metadata: Optional[Metadata] = None,
    ) -> None:
        ...

    async def search(
        self, query: str, limit: int = 10, filter: Optional[MetadataFilter] = None
    ) -> list[SearchResult]:
        ...

    async def search_by_vector(
        self,
        query_vector: Sequence[float],
        limit: int = 10,
        filter: Optional[MetadataFilter] = None,
    ) -> list[SearchResult]:
        ...

    async def get(self, id: str) -> Optional[Document]:
        ...

    async def delete(self, id: str) -> None:
        ...

    async def delete_many(self, ids: Sequence[str]) -> None:
        ...

    async def clear(self) -> None:
        ...

    async def count(self) -> int:
        ...


# =============================================================================
# Scoring helpers used by every backend
# =============================================================================


def tokenize(text: str) -> set[str]:
    """Distinct lowercase whitespace-separated tokens."""
    return set(text.lower().split())


def lexical_score(query_tokens: set[str], content: str) -> float:
    """Share of distinct tokens in common, over the larger token set.

    1.0 only when query and content carry exactly the same distinct tokens.
    """
    content_tokens = tokenize(content)
    if not query_tokens or not content_tokens:
        return 0.0
    shared = len(query_tokens & content_tokens)
    return shared / max(len(query_tokens), len(content_tokens))


def metadata_value_equals(stored: object, expected: object) -> bool:
    """Equality for metadata filtering.

    Booleans only equal booleans, ints and floats compare numerically, strings
    equal strings. Anything else never matches.
    """
    if isinstance(stored, bool) or isinstance(expected, bool):
        return (
            isinstance(stored, bool)
            and isinstance(expected, bool)
            and stored == expected
        )
    if isinstance(stored, (int, float)) and isinstance(expected, (int, float)):
        return stored == expected
    if isinstance(stored, str) and isinstance(expected, str):
        return stored == expected
    return False


def metadata_matches(metadata: Mapping[str, object], filter: Optional[MetadataFilter]) -> bool:
    """True when every filter key is present with an equal value."""
    if not filter:
        return True
    return all(
        key in metadata and metadata_value_equals(metadata[key], value)
        for key, value in filter.items()
    )


def rank(results: list[SearchResult], limit: int) -> list[SearchResult]:
    """Stable descending sort by score, truncated to ``limit``."""
    if limit <= 0:
        return []
    return sorted(results, key=lambda result: result.score, reverse=True)[:limit]


# =============================================================================
# Backend selection
# =============================================================================


def create_document_store(settings: "Settings") -> DocumentStore:
    """Build the backend named by ``settings.store_provider``.

    The returned store still needs ``initialize()``.
    """
    if settings.store_provider == "chroma":
        from .chroma_store import ChromaDocumentStore

        logger.debug("Using Chroma document store at %s", settings.chroma_path)
        return ChromaDocumentStore(
            settings.chroma_path,
            metric=settings.similarity_metric,
            vector_dimension=settings.vector_dimension,
        )

    from .memory_store import InMemoryDocumentStore

    logger.debug("Using in-memory document store")
    return InMemoryDocumentStore(metric=settings.similarity_metric)
