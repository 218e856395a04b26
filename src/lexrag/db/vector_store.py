"""
Vector Store

Storage contract for document chunks and their embeddings, plus the
PostgreSQL + pgvector implementation.

Contract
--------
- ``replace_chunks`` swaps a document's whole chunk set in one unit
- ``delete_chunks`` / ``get_chunks`` operate per document
- ``similarity_search`` ranks by cosine similarity and, when the vector
  engine is unavailable, falls back to a case-insensitive substring search
  with a fixed low-confidence score
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from sqlalchemy import select, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..embeddings.models import (
    Chunk,
    DocumentChunkCount,
    EmbeddingStats,
    SearchResult,
)
from .models import DocumentEmbedding

logger = logging.getLogger("lexrag.store")

FALLBACK_SIMILARITY = 0.5


class StoreError(RuntimeError):
    """Raised when a write to the store fails."""


class RetrievalError(RuntimeError):
    """Raised internally when the vector engine cannot serve a query."""


def clamp_similarity(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class EmbeddingStore(ABC):
    """
    Abstract chunk store.

    Subclasses implement the storage primitives; the fallback policy of
    ``similarity_search`` lives here so every backend shares it.
    """

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------

    @abstractmethod
    async def replace_chunks(self, document_id: str, chunks: Sequence[Chunk]) -> int:
        """Delete every chunk of ``document_id`` and insert ``chunks``."""

    @abstractmethod
    async def delete_chunks(self, document_id: str) -> int:
        """Remove all chunks for a document. Returns the number removed."""

    @abstractmethod
    async def get_chunks(self, document_id: str) -> List[SearchResult]:
        """Return a document's chunks ordered by chunk index."""

    @abstractmethod
    async def text_search(
        self,
        query_text: str,
        document_ids: Optional[Sequence[str]] = None,
        limit: int = 10,
    ) -> List[SearchResult]:
        """Case-insensitive substring search with a fixed similarity."""

    @abstractmethod
    async def get_stats(self, document_id: Optional[str] = None) -> EmbeddingStats:
        """Return aggregate chunk statistics."""

    @abstractmethod
    async def _vector_search(
        self,
        query_vector: Sequence[float],
        document_ids: Optional[Sequence[str]],
        limit: int,
        threshold: float,
    ) -> List[SearchResult]:
        """Rank chunks by cosine similarity. Raises RetrievalError."""

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def similarity_search(
        self,
        query_vector: Sequence[float],
        *,
        query_text: str,
        document_ids: Optional[Sequence[str]] = None,
        limit: int = 10,
        threshold: float = 0.7,
    ) -> List[SearchResult]:
        """
        Return up to ``limit`` chunks with similarity >= ``threshold``.

        Parameters
        ----------
        query_vector : Sequence[float]
            Embedded query.
        query_text : str
            Original query, used only by the text fallback.
        document_ids : Optional[Sequence[str]]
            Restrict results to these documents. Empty means no filter.
        limit : int
            Maximum number of results.
        threshold : float
            Similarity lower bound. Ignored by the text fallback.

        Returns
        -------
        List[SearchResult]
            Ordered by similarity descending, ties by chunk index ascending.
        """
        if limit <= 0:
            return []

        try:
            results = await self._vector_search(
                query_vector, document_ids or None, limit, threshold
            )
        except RetrievalError as exc:
            logger.warning("Vector search failed, falling back to text search: %s", exc)
            return await self.text_search(query_text, document_ids, limit)

        return results[:limit]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_chunks(document_id: str, chunks: Sequence[Chunk]) -> None:
        seen = set()
        for chunk in chunks:
            if chunk.document_id != document_id:
                raise StoreError(
                    f"Chunk {chunk.chunk_index} belongs to {chunk.document_id!r}, "
                    f"not {document_id!r}."
                )
            if chunk.chunk_index in seen:
                raise StoreError(f"Duplicate chunk index {chunk.chunk_index}.")
            seen.add(chunk.chunk_index)


# ---------------------------------------------------------------------
# PostgreSQL / pgvector
# ---------------------------------------------------------------------

class PgVectorStore(EmbeddingStore):
    """
    PostgreSQL-backed chunk store using pgvector for similarity search.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize with an async database session.

        Parameters
        ----------
        session : AsyncSession
            SQLAlchemy async session for database operations.
        """
        self._session = session

    async def replace_chunks(self, document_id: str, chunks: Sequence[Chunk]) -> int:
        """
        Replace a document's chunks inside a savepoint.

        If the insert fails the savepoint is rolled back and the previous
        chunk set is still in place.
        """
        self._validate_chunks(document_id, chunks)

        try:
            async with self._session.begin_nested():
                await self._session.execute(
                    delete(DocumentEmbedding).where(
                        DocumentEmbedding.document_id == document_id
                    )
                )
                self._session.add_all(
                    DocumentEmbedding(
                        document_id=chunk.document_id,
                        chunk_index=chunk.chunk_index,
                        content=chunk.text,
                        metadata_=dict(chunk.metadata),
                        embedding=list(chunk.embedding),
                    )
                    for chunk in chunks
                )
                await self._session.flush()
        except SQLAlchemyError as exc:
            logger.error("Failed to replace chunks for document %s: %s", document_id, exc)
            raise StoreError(f"Failed to replace chunks for {document_id}") from exc

        logger.info("Stored %d chunks for document %s", len(chunks), document_id)
        return len(chunks)

    async def delete_chunks(self, document_id: str) -> int:
        try:
            result = await self._session.execute(
                delete(DocumentEmbedding).where(
                    DocumentEmbedding.document_id == document_id
                )
            )
        except SQLAlchemyError as exc:
            logger.error("Failed to delete chunks for document %s: %s", document_id, exc)
            raise StoreError(f"Failed to delete chunks for {document_id}") from exc

        logger.info("Deleted embeddings for document %s", document_id)
        return result.rowcount

    async def get_chunks(self, document_id: str) -> List[SearchResult]:
        result = await self._session.execute(
            select(DocumentEmbedding)
            .where(DocumentEmbedding.document_id == document_id)
            .order_by(DocumentEmbedding.chunk_index)
        )
        return [
            SearchResult(
                document_id=row.document_id,
                chunk_index=row.chunk_index,
                content=row.content,
                similarity=1.0,
                metadata=row.metadata_,
            )
            for row in result.scalars().all()
        ]

    async def _vector_search(
        self,
        query_vector: Sequence[float],
        document_ids: Optional[Sequence[str]],
        limit: int,
        threshold: float,
    ) -> List[SearchResult]:
        # pgvector's <=> operator; similarity = 1 - cosine distance
        distance = DocumentEmbedding.embedding.cosine_distance(list(query_vector))

        stmt = (
            select(
                DocumentEmbedding.document_id,
                DocumentEmbedding.chunk_index,
                DocumentEmbedding.content,
                DocumentEmbedding.metadata_,
                (1 - distance).label("similarity"),
            )
            .where(1 - distance >= threshold)
            .order_by(distance, DocumentEmbedding.chunk_index)
            .limit(limit)
        )

        if document_ids:
            stmt = stmt.where(DocumentEmbedding.document_id.in_(list(document_ids)))

        try:
            async with self._session.begin_nested():
                result = await self._session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as exc:
            raise RetrievalError(f"pgvector query failed: {type(exc).__name__}") from exc

        return [
            SearchResult(
                document_id=row.document_id,
                chunk_index=row.chunk_index,
                content=row.content,
                similarity=clamp_similarity(row.similarity),
                metadata=row.metadata_,
            )
            for row in rows
        ]

    async def text_search(
        self,
        query_text: str,
        document_ids: Optional[Sequence[str]] = None,
        limit: int = 10,
    ) -> List[SearchResult]:
        stmt = (
            select(DocumentEmbedding)
            .where(DocumentEmbedding.content.icontains(query_text, autoescape=True))
            .order_by(DocumentEmbedding.chunk_index, DocumentEmbedding.document_id)
            .limit(limit)
        )

        if document_ids:
            stmt = stmt.where(DocumentEmbedding.document_id.in_(list(document_ids)))

        result = await self._session.execute(stmt)
        return [
            SearchResult(
                document_id=row.document_id,
                chunk_index=row.chunk_index,
                content=row.content,
                similarity=FALLBACK_SIMILARITY,
                metadata=row.metadata_,
            )
            for row in result.scalars().all()
        ]

    async def get_stats(self, document_id: Optional[str] = None) -> EmbeddingStats:
        """
        Return statistics about stored chunks, optionally for one document.
        """
        filters = []
        if document_id is not None:
            filters.append(DocumentEmbedding.document_id == document_id)

        totals = await self._session.execute(
            select(
                func.count(DocumentEmbedding.id),
                func.avg(DocumentEmbedding.chunk_index),
            ).where(*filters)
        )
        total_chunks, average_index = totals.one()

        per_doc = await self._session.execute(
            select(DocumentEmbedding.document_id, func.count(DocumentEmbedding.id))
            .where(*filters)
            .group_by(DocumentEmbedding.document_id)
            .order_by(DocumentEmbedding.document_id)
        )
        counts = [
            DocumentChunkCount(document_id=doc_id, chunk_count=count)
            for doc_id, count in per_doc.all()
        ]

        return EmbeddingStats(
            total_chunks=total_chunks or 0,
            average_chunk_index=float(average_index) if average_index is not None else None,
            documents_with_embeddings=len(counts),
            chunks_per_document=counts,
        )
