"""
Search Routes

Semantic search over stored chunks. When the query cannot be embedded, or
the vector engine is down, results come from the substring fallback with a
fixed similarity of 0.5.
"""

from fastapi import APIRouter, Depends, status
from typing import List, Annotated

from .models import SearchRequest
from .dependencies import get_search_engine
from ..embeddings.models import SearchResult
from ..retrieval.search import SimilaritySearchEngine

router = APIRouter(prefix="/search", tags=["search"])


@router.post(
    "",
    response_model=List[SearchResult],
    summary="Vector-based semantic search",
    status_code=status.HTTP_200_OK,
)
async def search(
    req: SearchRequest,
    engine: Annotated[SimilaritySearchEngine, Depends(get_search_engine)],
) -> List[SearchResult]:
    """
    Perform a similarity search over embedded document chunks.

    Parameters
    ----------
    req : SearchRequest
        Contains:
        - query: Search query string
        - document_ids: Optional list of documents to search within
        - limit: Maximum number of results
        - threshold: Minimum similarity score

    Returns
    -------
    List[SearchResult]
        Results ordered by similarity, highest first. An empty list is a
        normal outcome.
    """
    return await engine.search(
        req.query,
        req.document_ids,
        limit=req.limit,
        threshold=req.threshold,
    )
