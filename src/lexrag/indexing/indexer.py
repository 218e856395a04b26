"""
Document Indexer

Write path of the retrieval pipeline:

    raw text -> chunk_text -> Embedder (bounded concurrency) -> replace_chunks

Failure policy
--------------
- A document with no text is a hard error (IndexingError).
- A chunk whose embedding fails is logged and skipped; the remaining
  chunks are still stored (partial success) and renumbered so stored
  indexes stay contiguous.
- Store write failures propagate as StoreError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from ..config import settings
from ..db.vector_store import EmbeddingStore
from ..embeddings.chunker import chunk_text
from ..embeddings.embedder import Embedder, EmbeddingError
from ..embeddings.models import Chunk

logger = logging.getLogger("lexrag.indexer")


class IndexingError(RuntimeError):
    """Raised when a document cannot be indexed at all."""


class IndexReport(BaseModel):
    """Outcome of indexing one document."""
    document_id: str
    chunks_total: int = Field(..., ge=0)
    chunks_indexed: int = Field(..., ge=0)
    chunks_failed: int = Field(..., ge=0)
    failed_indexes: List[int] = Field(default_factory=list)


class DocumentIndexer:
    def __init__(
        self,
        embedder: Embedder,
        store: EmbeddingStore,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None,
        concurrency: Optional[int] = None,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.chunk_size = chunk_size or settings.chunk_size
        self.overlap = settings.chunk_overlap if overlap is None else overlap
        self.concurrency = max(1, concurrency or settings.index_concurrency)

    async def index_document(self, document_id: str, text: str) -> IndexReport:
        """
        Chunk, embed and store a document, replacing any previous chunks.

        Raises
        ------
        IndexingError
            If ``text`` is empty or blank.
        """
        if not text or not text.strip():
            raise IndexingError(f"Document {document_id} has no content to index")

        pieces = chunk_text(text, self.chunk_size, self.overlap)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _embed_piece(index: int, piece: str) -> Optional[Chunk]:
            async with semaphore:
                try:
                    result = await self.embedder.embed(piece)
                except EmbeddingError as exc:
                    logger.warning(
                        "Failed to generate embedding for chunk %d of document %s: %s",
                        index,
                        document_id,
                        exc,
                    )
                    return None

            return Chunk(
                document_id=document_id,
                chunk_index=index,
                text=piece,
                embedding=result.vector,
                metadata={
                    "model": result.model,
                    "usage": result.usage.model_dump(),
                    "chunk_length": len(piece),
                    "chunk_position": index,
                },
            )

        embedded = await asyncio.gather(
            *(_embed_piece(i, piece) for i, piece in enumerate(pieces))
        )

        failed = [i for i, chunk in enumerate(embedded) if chunk is None]
        # Stored indexes stay contiguous; the chunker position is kept in metadata
        chunks = [
            chunk.model_copy(update={"chunk_index": stored_index})
            for stored_index, chunk in enumerate(c for c in embedded if c is not None)
        ]

        await self.store.replace_chunks(document_id, chunks)

        if chunks:
            logger.info("Created %d embeddings for document %s", len(chunks), document_id)
        else:
            logger.warning("No chunks could be embedded for document %s", document_id)

        return IndexReport(
            document_id=document_id,
            chunks_total=len(pieces),
            chunks_indexed=len(chunks),
            chunks_failed=len(failed),
            failed_indexes=failed,
        )

    async def remove_document(self, document_id: str) -> int:
        return await self.store.delete_chunks(document_id)
