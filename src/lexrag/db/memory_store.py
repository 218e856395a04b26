"""
In-Memory Vector Store

Process-local implementation of the EmbeddingStore contract backed by numpy.
Used for tests, local development and deployments without pgvector.

Key Properties
--------------
- Whole-set replacement per document (a reader sees the old set or the new
  one, never a mix)
- Exact cosine similarity over all stored vectors
- Concurrency-safe (thread locking)
- Vector search can be disabled to exercise the text fallback
"""

from __future__ import annotations

from threading import RLock
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..embeddings.models import (
    Chunk,
    DocumentChunkCount,
    EmbeddingStats,
    SearchResult,
)
from .vector_store import (
    FALLBACK_SIMILARITY,
    EmbeddingStore,
    RetrievalError,
    clamp_similarity,
)


class InMemoryVectorStore(EmbeddingStore):
    """
    Dictionary of document id -> ordered chunk list.

    Parameters
    ----------
    vector_search_enabled : bool
        When False every vector query raises RetrievalError internally, so
        ``similarity_search`` answers from the text fallback.
    """

    def __init__(self, vector_search_enabled: bool = True) -> None:
        self._chunks: Dict[str, List[Chunk]] = {}
        self._lock = RLock()
        self.vector_search_enabled = vector_search_enabled

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------

    async def replace_chunks(self, document_id: str, chunks: Sequence[Chunk]) -> int:
        self._validate_chunks(document_id, chunks)
        ordered = sorted(chunks, key=lambda c: c.chunk_index)

        with self._lock:
            if ordered:
                self._chunks[document_id] = ordered
            else:
                self._chunks.pop(document_id, None)

        return len(ordered)

    async def delete_chunks(self, document_id: str) -> int:
        with self._lock:
            removed = self._chunks.pop(document_id, [])
        return len(removed)

    async def get_chunks(self, document_id: str) -> List[SearchResult]:
        with self._lock:
            chunks = list(self._chunks.get(document_id, []))

        return [self._to_result(chunk, 1.0) for chunk in chunks]

    async def text_search(
        self,
        query_text: str,
        document_ids: Optional[Sequence[str]] = None,
        limit: int = 10,
    ) -> List[SearchResult]:
        needle = query_text.lower()
        matches = [
            chunk
            for chunk in self._candidates(document_ids)
            if needle in chunk.text.lower()
        ]
        matches.sort(key=lambda c: (c.chunk_index, c.document_id))

        return [self._to_result(chunk, FALLBACK_SIMILARITY) for chunk in matches[:limit]]

    async def get_stats(self, document_id: Optional[str] = None) -> EmbeddingStats:
        with self._lock:
            if document_id is not None:
                snapshot = {document_id: list(self._chunks.get(document_id, []))}
            else:
                snapshot = {k: list(v) for k, v in self._chunks.items()}

        indexes = [c.chunk_index for chunks in snapshot.values() for c in chunks]
        counts = [
            DocumentChunkCount(document_id=doc_id, chunk_count=len(chunks))
            for doc_id, chunks in sorted(snapshot.items())
            if chunks
        ]

        return EmbeddingStats(
            total_chunks=len(indexes),
            average_chunk_index=float(np.mean(indexes)) if indexes else None,
            documents_with_embeddings=len(counts),
            chunks_per_document=counts,
        )

    # ------------------------------------------------------------------
    # Vector search
    # ------------------------------------------------------------------

    async def _vector_search(
        self,
        query_vector: Sequence[float],
        document_ids: Optional[Sequence[str]],
        limit: int,
        threshold: float,
    ) -> List[SearchResult]:
        if not self.vector_search_enabled:
            raise RetrievalError("Vector search is disabled.")

        candidates = self._candidates(document_ids)
        if not candidates:
            return []

        query = np.asarray(query_vector, dtype="float64")
        dims = {len(c.embedding) for c in candidates}
        if dims != {query.shape[0]}:
            raise RetrievalError(
                f"Query dimension {query.shape[0]} does not match stored {sorted(dims)}."
            )

        matrix = np.asarray([c.embedding for c in candidates], dtype="float64")
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, matrix @ query / norms, 0.0)

        ranked = sorted(
            (
                (float(score), chunk)
                for score, chunk in zip(scores, candidates)
                if float(score) >= threshold
            ),
            key=lambda pair: (-pair[0], pair[1].chunk_index, pair[1].document_id),
        )

        return [
            self._to_result(chunk, clamp_similarity(score))
            for score, chunk in ranked[:limit]
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _candidates(self, document_ids: Optional[Sequence[str]]) -> List[Chunk]:
        with self._lock:
            if document_ids:
                wanted = set(document_ids)
                return [
                    chunk
                    for doc_id, chunks in self._chunks.items()
                    if doc_id in wanted
                    for chunk in chunks
                ]
            return [chunk for chunks in self._chunks.values() for chunk in chunks]

    @staticmethod
    def _to_result(chunk: Chunk, similarity: float) -> SearchResult:
        return SearchResult(
            document_id=chunk.document_id,
            chunk_index=chunk.chunk_index,
            content=chunk.text,
            similarity=similarity,
            metadata=dict(chunk.metadata),
        )
