"""Document store backends."""

from .document_store import DocumentStore, create_document_store
from .memory_store import InMemoryDocumentStore

__all__ = ["DocumentStore", "InMemoryDocumentStore", "create_document_store"]
