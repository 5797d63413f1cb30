"""ChromaDB-backed persistent document store."""

from __future__ import annotations

import asyncio
import logging
import math
from pathlib import Path
from typing import Any, Optional, Sequence

from scout.errors import (
    InvalidQueryVectorError,
    InvalidVectorError,
    NotInitializedError,
    StoreError,
    UnknownMetricError,
)
from scout.models import Document, Metadata, SearchResult
from scout.utils.vectors import SIMILARITY_METRICS, is_valid_vector

from .document_store import (
    MetadataFilter,
    lexical_score,
    metadata_matches,
    rank,
    tokenize,
)

logger = logging.getLogger(__name__)

# Chroma distance space per similarity metric.
HNSW_SPACES = {"cosine": "cosine", "euclidean": "l2", "dot": "ip"}

HAS_VECTOR_KEY = "_scout_has_vector"
SEQ_KEY = "_scout_seq"
INTERNAL_KEYS = frozenset({HAS_VECTOR_KEY, SEQ_KEY})


class ChromaDocumentStore:
    """Persistent local Chroma collection behind the document store interface.

    Documents written without a vector carry a zero placeholder embedding and
    are excluded from vector search. A per-document sequence number keeps
    first-insertion order for tie-breaking across upserts.
    """

    def __init__(
        self,
        store_path: Path,
        metric: str = "cosine",
        vector_dimension: int = 1536,
    ) -> None:
        if metric not in SIMILARITY_METRICS:
            raise UnknownMetricError(metric)
        self._store_path = Path(store_path)
        self._metric = metric
        self._dimension = vector_dimension
        self._client: Any = None
        self._collection: Any = None
        self._collection_name: Optional[str] = None
        self._next_seq = 0

    @property
    def metric(self) -> str:
        return self._metric

    @property
    def space(self) -> str:
        return HNSW_SPACES[self._metric]

    def _require_collection(self) -> Any:
        if self._collection is None:
            raise NotInitializedError("ChromaDocumentStore")
        return self._collection

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self, collection_name: str) -> None:
        if self._collection is not None and self._collection_name == collection_name:
            return
        await asyncio.to_thread(self._open_sync, collection_name)

    def _open_sync(self, collection_name: str) -> None:
        try:
            if self._client is None:
                import chromadb
                from chromadb.config import Settings

                self._store_path.mkdir(parents=True, exist_ok=True)
                self._client = chromadb.PersistentClient(
                    path=str(self._store_path),
                    settings=Settings(anonymized_telemetry=False),
                )
            self._collection = self._get_or_create(collection_name)
        except Exception as exc:
            self._collection = None
            raise StoreError(f"Failed to open Chroma collection {collection_name!r}: {exc}") from exc

        self._collection_name = collection_name
        existing = self._collection.get(include=["metadatas"])
        seqs = [
            int(meta[SEQ_KEY])
            for meta in (existing.get("metadatas") or [])
            if meta and SEQ_KEY in meta
        ]
        self._next_seq = max(seqs, default=-1) + 1
        logger.info(
            "Opened Chroma collection %r (%s space, %d documents)",
            collection_name,
            self.space,
            self._collection.count(),
        )

    def _get_or_create(self, collection_name: str) -> Any:
        return self._client.get_or_create_collection(
            name=collection_name,
            embedding_function=None,
            metadata={"hnsw:space": self.space},
        )

    # =========================================================================
    # Writes
    # =========================================================================

    async def add_document(
        self, id: str, content: str, metadata: Optional[Metadata] = None
    ) -> None:
        await self.add_documents([Document(id=id, content=content, metadata=dict(metadata or {}))])

    async def add_documents(self, documents: Sequence[Document]) -> None:
        """Upsert the whole batch in a single Chroma call."""
        self._require_collection()
        for document in documents:
            if document.vector is not None:
                self._check_vector(document.vector, InvalidVectorError)
        if documents:
            await asyncio.to_thread(self._upsert_sync, list(documents))

    async def store_vector(
        self,
        id: str,
        vector: Sequence[float],
        content: str,
        metadata: Optional[Metadata] = None,
    ) -> None:
        self._require_collection()
        self._check_vector(vector, InvalidVectorError)
        document = Document(
            id=id, content=content, metadata=dict(metadata or {}), vector=list(vector)
        )
        await asyncio.to_thread(self._upsert_sync, [document])

    def _check_vector(self, vector: Sequence[float], error: type[InvalidVectorError]) -> None:
        if not is_valid_vector(vector):
            raise error("Vector is empty or has non-finite values")
        if len(vector) != self._dimension:
            raise error(
                f"Vector dimension {len(vector)} does not match collection dimension {self._dimension}"
            )

    def _upsert_sync(self, documents: list[Document]) -> None:
        collection = self._require_collection()
        # Last write wins within a batch.
        latest = {document.id: document for document in documents}
        ids = list(latest)

        existing = collection.get(ids=ids, include=["metadatas"])
        seq_by_id = {
            doc_id: meta[SEQ_KEY]
            for doc_id, meta in zip(existing.get("ids") or [], existing.get("metadatas") or [])
            if meta and SEQ_KEY in meta
        }

        embeddings: list[list[float]] = []
        metadatas: list[dict[str, Any]] = []
        for doc_id in ids:
            document = latest[doc_id]
            if doc_id not in seq_by_id:
                seq_by_id[doc_id] = self._next_seq
                self._next_seq += 1
            meta: dict[str, Any] = {
                key: value for key, value in document.metadata.items() if key not in INTERNAL_KEYS
            }
            meta[SEQ_KEY] = seq_by_id[doc_id]
            meta[HAS_VECTOR_KEY] = document.has_vector
            metadatas.append(meta)
            embeddings.append(
                list(document.vector) if document.vector is not None else [0.0] * self._dimension
            )

        collection.upsert(
            ids=ids,
            embeddings=embeddings,
            documents=[latest[doc_id].content for doc_id in ids],
            metadatas=metadatas,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def search(
        self, query: str, limit: int = 10, filter: Optional[MetadataFilter] = None
    ) -> list[SearchResult]:
        self._require_collection()
        query_tokens = tokenize(query)
        if not query_tokens or limit <= 0:
            return []
        return await asyncio.to_thread(self._search_sync, query_tokens, limit, filter)

    def _search_sync(
        self, query_tokens: set[str], limit: int, filter: Optional[MetadataFilter]
    ) -> list[SearchResult]:
        collection = self._require_collection()
        where, needs_post_filter = self.build_where(filter)
        rows = collection.get(where=where, include=["documents", "metadatas"])

        candidates: list[tuple[int, SearchResult]] = []
        for doc_id, content, meta in zip(
            rows.get("ids") or [], rows.get("documents") or [], rows.get("metadatas") or []
        ):
            meta = meta or {}
            if needs_post_filter and not metadata_matches(meta, filter):
                continue
            score = lexical_score(query_tokens, content or "")
            if score > 0:
                candidates.append((int(meta.get(SEQ_KEY, 0)), self._to_result(doc_id, score, content, meta)))

        candidates.sort(key=lambda item: item[0])
        return rank([result for _, result in candidates], limit)

    async def search_by_vector(
        self,
        query_vector: Sequence[float],
        limit: int = 10,
        filter: Optional[MetadataFilter] = None,
    ) -> list[SearchResult]:
        self._require_collection()
        self._check_vector(query_vector, InvalidQueryVectorError)
        if limit <= 0:
            return []
        return await asyncio.to_thread(self._query_sync, list(query_vector), limit, filter)

    def _query_sync(
        self, query_vector: list[float], limit: int, filter: Optional[MetadataFilter]
    ) -> list[SearchResult]:
        collection = self._require_collection()
        total = collection.count()
        if total == 0:
            return []

        where, needs_post_filter = self.build_where(filter, require_vector=True)
        # Numeric filters are checked here, so fetch everything Chroma matched.
        n_results = total if needs_post_filter else min(limit, total)
        try:
            result = collection.query(
                query_embeddings=[query_vector],
                n_results=n_results,
                where=where,
                include=["metadatas", "distances", "documents"],
            )
        except Exception as exc:
            raise StoreError(f"Chroma vector query failed: {exc}") from exc

        ids = (result.get("ids") or [[]])[0]
        metas = (result.get("metadatas") or [[]])[0]
        docs = (result.get("documents") or [[]])[0]
        distances = (result.get("distances") or [[]])[0]

        hits: list[tuple[int, SearchResult]] = []
        for idx, doc_id in enumerate(ids):
            meta = metas[idx] if idx < len(metas) and metas[idx] else {}
            if needs_post_filter and not metadata_matches(meta, filter):
                continue
            content = docs[idx] if idx < len(docs) and docs[idx] else ""
            distance = distances[idx] if idx < len(distances) else math.inf
            score = self.score_from_distance(float(distance), self.space)
            hits.append((int(meta.get(SEQ_KEY, 0)), self._to_result(doc_id, score, content, meta)))

        hits.sort(key=lambda item: item[0])
        return rank([hit for _, hit in hits], limit)

    async def get(self, id: str) -> Optional[Document]:
        collection = self._require_collection()
        rows = await asyncio.to_thread(
            collection.get, ids=[id], include=["documents", "metadatas", "embeddings"]
        )
        ids = rows.get("ids") or []
        if not ids:
            return None
        meta = (rows.get("metadatas") or [{}])[0] or {}
        content = (rows.get("documents") or [""])[0] or ""
        vector: Optional[list[float]] = None
        embeddings = rows.get("embeddings")
        if meta.get(HAS_VECTOR_KEY) and embeddings is not None and len(embeddings) > 0:
            vector = [float(value) for value in embeddings[0]]
        return Document(id=ids[0], content=content, metadata=self.public_metadata(meta), vector=vector)

    async def count(self) -> int:
        collection = self._require_collection()
        return await asyncio.to_thread(collection.count)

    # =========================================================================
    # Deletes
    # =========================================================================

    async def delete(self, id: str) -> None:
        await self.delete_many([id])

    async def delete_many(self, ids: Sequence[str]) -> None:
        collection = self._require_collection()
        if not ids:
            return
        await asyncio.to_thread(collection.delete, ids=list(ids))

    async def clear(self) -> None:
        self._require_collection()
        await asyncio.to_thread(self._clear_sync)

    def _clear_sync(self) -> None:
        name = self._collection_name
        self._client.delete_collection(name)
        self._collection = self._get_or_create(name)
        self._next_seq = 0
        logger.info("Cleared Chroma collection %r", name)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def build_where(
        filter: Optional[MetadataFilter], require_vector: bool = False
    ) -> tuple[Optional[dict[str, Any]], bool]:
        """Translate an equality filter into a Chroma ``where`` clause.

        String and boolean values are pushed down to Chroma. Numeric values
        compare across int and float here but not in Chroma, so they are left
        for the caller to check.

        Returns:
            The clause (or None when there is nothing to push down) and whether
            the caller still has to apply the filter in Python.
        """
        clauses: list[dict[str, Any]] = []
        if require_vector:
            clauses.append({HAS_VECTOR_KEY: {"$eq": True}})

        needs_post_filter = False
        for key, value in (filter or {}).items():
            if isinstance(value, (bool, str)):
                clauses.append({key: {"$eq": value}})
            else:
                needs_post_filter = True

        if not clauses:
            return None, needs_post_filter
        if len(clauses) == 1:
            return clauses[0], needs_post_filter
        return {"$and": clauses}, needs_post_filter

    @staticmethod
    def score_from_distance(distance: float, space: str) -> float:
        """Convert a Chroma distance back to the matching similarity score.

        ``l2`` distances are squared; ``cosine`` and ``ip`` are ``1 - sim``.
        """
        if math.isnan(distance):
            return 0.0
        if space == "l2":
            if math.isinf(distance):
                return 0.0
            return 1.0 / (1.0 + math.sqrt(max(distance, 0.0)))
        if space == "cosine":
            return max(-1.0, min(1.0, 1.0 - distance))
        return 1.0 - distance

    @staticmethod
    def public_metadata(meta: dict[str, Any]) -> Metadata:
        return {key: value for key, value in meta.items() if key not in INTERNAL_KEYS}

    def _to_result(self, doc_id: str, score: float, content: str, meta: dict[str, Any]) -> SearchResult:
        return SearchResult(
            id=doc_id, score=score, content=content or "", metadata=self.public_metadata(meta)
        )

