"""
Embedding Routes

Read-only statistics over the embedding store.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from .dependencies import get_store
from ..db.vector_store import EmbeddingStore
from ..embeddings.models import EmbeddingStats

router = APIRouter(prefix="/embeddings", tags=["embeddings"])


@router.get(
    "/stats",
    response_model=EmbeddingStats,
    summary="Get embedding store statistics",
)
async def get_embedding_stats(
    store: Annotated[EmbeddingStore, Depends(get_store)],
    document_id: Optional[str] = None,
) -> EmbeddingStats:
    """
    Return chunk counts, optionally restricted to one document.
    """
    return await store.get_stats(document_id)
