"""Application logic layer."""

from .chat import CodeChatService
from .expansion import KeywordExpander, KeywordMapping, LLMQueryExpander
from .indexer import Indexer
from .retriever import HybridRetriever, compute_confidence, deduplicate

__all__ = [
    "CodeChatService",
    "HybridRetriever",
    "Indexer",
    "KeywordExpander",
    "KeywordMapping",
    "LLMQueryExpander",
    "compute_confidence",
    "deduplicate",
]
