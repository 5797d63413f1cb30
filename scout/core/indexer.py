"""Write path: chunk source text, embed the chunks and store them."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from scout.database.document_store import DocumentStore
from scout.models import Metadata
from scout.utils.chunking import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, chunk_text
from scout.utils.llm import LLMProvider
from scout.utils.vectors import (
    is_valid_text_for_embedding,
    is_valid_vector,
    magnitude,
    preprocess_code_for_embedding,
)

logger = logging.getLogger(__name__)

# Concurrent embedding requests per source.
MAX_CONCURRENT_EMBEDS = 4


def chunk_id(source_id: str, index: int) -> str:
    return f"{source_id}#{index}"


class Indexer:
    """Indexes whole sources (files, snippets) as ``source#n`` chunk documents."""

    def __init__(
        self,
        store: DocumentStore,
        embedder: Optional[LLMProvider],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        max_concurrency: int = MAX_CONCURRENT_EMBEDS,
    ) -> None:
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        self._store = store
        self._embedder = embedder
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def index_source(
        self, source_id: str, text: str, metadata: Optional[Metadata] = None
    ) -> int:
        """Replace every chunk of ``source_id`` with chunks of ``text``.

        Chunks whose embedding fails, and chunks too short or too long to
        embed, are still stored for lexical search.

        Returns:
            Number of chunks stored.
        """
        previous = await self._chunk_count(source_id)
        chunks = chunk_text(
            preprocess_code_for_embedding(text), self._chunk_size, self._chunk_overlap
        )
        vectors = await asyncio.gather(*(self._embed(chunk) for chunk in chunks))

        lexical_only = 0
        for index, (chunk, vector) in enumerate(zip(chunks, vectors)):
            meta: Metadata = dict(metadata or {})
            meta.setdefault("source", source_id)
            meta["chunk"] = index
            meta["chunks"] = len(chunks)
            doc_id = chunk_id(source_id, index)
            if vector is not None:
                await self._store.store_vector(doc_id, vector, chunk, meta)
            else:
                lexical_only += 1
                await self._store.add_document(doc_id, chunk, meta)

        stale = [chunk_id(source_id, index) for index in range(len(chunks), previous)]
        if stale:
            await self._store.delete_many(stale)

        if lexical_only:
            logger.warning(
                "Indexed %s: %d/%d chunks without embeddings", source_id, lexical_only, len(chunks)
            )
        logger.info("Indexed %s into %d chunks (%d stale removed)", source_id, len(chunks), len(stale))
        return len(chunks)

    async def remove_source(self, source_id: str) -> int:
        """Delete every chunk of ``source_id``; returns how many existed."""
        count = await self._chunk_count(source_id)
        if count:
            await self._store.delete_many([chunk_id(source_id, index) for index in range(count)])
            logger.info("Removed %s (%d chunks)", source_id, count)
        return count

    async def _chunk_count(self, source_id: str) -> int:
        first = await self._store.get(chunk_id(source_id, 0))
        if first is None:
            return 0
        count = first.metadata.get("chunks")
        if isinstance(count, bool) or not isinstance(count, int):
            return 1
        return count

    async def _embed(self, chunk: str) -> Optional[list[float]]:
        if self._embedder is None or not is_valid_text_for_embedding(chunk):
            return None
        async with self._semaphore:
            try:
                vector = await self._embedder.embed_async(chunk)
            except Exception as exc:
                logger.warning("Embedding failed for chunk: %s: %s", type(exc).__name__, exc)
                return None
        # A zero vector carries no direction to search by.
        if vector is None or not is_valid_vector(vector) or magnitude(vector) == 0.0:
            return None
        return list(vector)
