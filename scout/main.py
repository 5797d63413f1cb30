"""Application bootstrap: logging and explicit service wiring."""

import logging
import sys
from dataclasses import dataclass, replace
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import Settings, get_settings
from .core import CodeChatService, HybridRetriever, Indexer, KeywordExpander, LLMQueryExpander
from .database import DocumentStore, create_document_store
from .utils.llm import (
    HashConfig,
    HashEmbeddingProvider,
    LLMConfig,
    LLMManager,
    LLMProvider,
    load_config,
)

logger = logging.getLogger(__name__)

# Logging configuration constants
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024  # 5MB max log file size
LOG_FILE_BACKUP_COUNT = 3  # Keep 3 backup log files


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure application-wide logging.

    Logs everything to the rotating log file and WARNING+ to stderr. Falls back
    to defaults when settings cannot be loaded so logging is always available.
    """
    try:
        settings = settings or get_settings()
        log_file = settings.log_file
        log_level = settings.log_level
    except Exception as e:
        print(f"Warning: Failed to load settings for logging: {e}", file=sys.stderr)
        log_file = Path("data/scout.log")
        log_level = "INFO"

    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_formatter = logging.Formatter("%(levelname)-8s | %(name)s | %(message)s")

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(file_formatter)
    file_handler.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level))
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Quiet noisy third-party loggers
    for name in ("httpx", "httpcore", "chromadb"):
        logging.getLogger(name).setLevel(logging.WARNING)


@dataclass
class Services:
    """Everything a caller needs, constructed once and passed by reference."""

    settings: Settings
    store: DocumentStore
    provider: LLMProvider
    retriever: HybridRetriever
    indexer: Indexer
    chat: CodeChatService
    manager: Optional[LLMManager] = None

    async def close(self) -> None:
        if self.manager is not None:
            await self.manager.close()
        else:
            await self.provider.close()


def _align_hash_dimension(config: LLMConfig, settings: Settings) -> LLMConfig:
    """Size the offline embedder to the store's vector dimension."""
    if config.hash.dimension == settings.vector_dimension:
        return config
    logger.info(
        "Hash embedding dimension %d overridden by vector_dimension %d",
        config.hash.dimension,
        settings.vector_dimension,
    )
    return replace(config, hash=HashConfig(dimension=settings.vector_dimension))


async def build_services(
    settings: Optional[Settings] = None,
    llm_config: Optional[LLMConfig] = None,
) -> Services:
    """Construct and initialize the store, provider and services.

    With ``enable_ai`` off, or when the configured provider is unusable, the
    offline hash embedder is used and answers fall back to fixed text.
    """
    settings = settings or get_settings()

    store = create_document_store(settings)
    await store.initialize(settings.collection_name)

    manager: Optional[LLMManager] = None
    provider: Optional[LLMProvider] = None
    if settings.enable_ai:
        manager = LLMManager(_align_hash_dimension(llm_config or load_config(), settings))
        provider = manager.get_provider()
    if provider is None:
        logger.info("Using offline hash embeddings (dimension %d)", settings.vector_dimension)
        manager = None
        provider = HashEmbeddingProvider(dimension=settings.vector_dimension)

    retriever = HybridRetriever(
        store,
        provider,
        lexical_weight=settings.lexical_weight,
        vector_weight=settings.vector_weight,
        embed_timeout=settings.embed_timeout,
        dedup_strategy=settings.dedup_strategy,
    )
    indexer = Indexer(
        store,
        provider,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
    )
    expander = LLMQueryExpander(provider, KeywordExpander())
    chat = CodeChatService(
        retriever,
        provider,
        expander,
        max_sources=settings.max_sources,
        max_expansion_terms=settings.max_expansion_terms,
    )
    return Services(
        settings=settings,
        store=store,
        provider=provider,
        retriever=retriever,
        indexer=indexer,
        chat=chat,
        manager=manager,
    )
