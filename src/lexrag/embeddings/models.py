"""
Embedding Data Models

This module defines the canonical data models that flow through the
retrieval pipeline:

- EmbeddingResult: one vector produced by an embedding provider
- Chunk: one indexed segment of a document, with its vector
- SearchResult: read-only projection returned by similarity search
- EmbeddingStats: store diagnostics

Each Chunk corresponds to ONE embedding vector and ONE segment of text.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict


class EmbeddingUsage(BaseModel):
    """Token accounting reported by the embedding provider."""

    prompt_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class EmbeddingResult(BaseModel):
    """
    A single embedding vector together with the model that produced it.

    Vectors from different models must never be compared with each other.
    """

    vector: List[float] = Field(..., min_length=1)
    model: str
    usage: EmbeddingUsage = Field(default_factory=EmbeddingUsage)

    @property
    def dimensions(self) -> int:
        return len(self.vector)


class Chunk(BaseModel):
    """
    A single indexed document chunk.

    This model is the authoritative schema for:
    - Embedding store writes
    - Vector search result mapping
    """

    document_id: str = Field(
        ...,
        min_length=1,
        description="Identifier of the document this chunk belongs to.",
    )

    chunk_index: int = Field(
        ...,
        ge=0,
        description="0-based position of the chunk within its document.",
    )

    text: str = Field(
        ...,
        min_length=1,
        description="Raw text content for this embedded chunk.",
    )

    embedding: List[float] = Field(
        ...,
        min_length=1,
        description="Embedding vector for the chunk text.",
    )

    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


class SearchResult(BaseModel):
    """
    Projection of a stored chunk returned by retrieval.

    ``similarity`` is cosine-like in [0, 1]; text-fallback matches carry a
    fixed 0.5.
    """

    document_id: str
    chunk_index: int = Field(..., ge=0)
    content: str
    similarity: float = Field(..., ge=0.0, le=1.0)
    metadata: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(frozen=True)


class DocumentChunkCount(BaseModel):
    document_id: str
    chunk_count: int = Field(..., ge=0)


class EmbeddingStats(BaseModel):
    """Aggregate statistics over stored chunks."""

    total_chunks: int = Field(default=0, ge=0)
    average_chunk_index: Optional[float] = None
    documents_with_embeddings: int = Field(default=0, ge=0)
    chunks_per_document: List[DocumentChunkCount] = Field(default_factory=list)
