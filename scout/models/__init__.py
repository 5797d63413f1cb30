"""Domain models."""

from .document import (
    ChatResponse,
    Document,
    Metadata,
    MetadataValue,
    QueryExpansion,
    RetrievalResult,
    RetrievalStatus,
    SearchResult,
)

__all__ = [
    "ChatResponse",
    "Document",
    "Metadata",
    "MetadataValue",
    "QueryExpansion",
    "RetrievalResult",
    "RetrievalStatus",
    "SearchResult",
]
