"""
Document Routes

Endpoints that act on one document:
- (Re-)index its text into the embedding store, inline or via the
  background queue
- Delete or list its stored chunks
- Produce (or return the cached) structured analysis

Document ids arrive already authorized by the surrounding REST layer.
"""

import uuid
from typing import Annotated, List, Union

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from .models import IndexRequest, OperationResult
from .dependencies import (
    get_analysis_cache,
    get_analysis_service,
    get_comparison_cache,
    get_document_source,
    get_indexer,
    get_indexing_queue,
    get_store,
)
from ..db.vector_store import EmbeddingStore
from ..documents.source import DocumentSource
from ..embeddings.models import SearchResult
from ..indexing.indexer import DocumentIndexer, IndexReport
from ..indexing.queue import IndexingJob, IndexingQueue
from ..services.artifacts import AnalysisService, ArtifactCache, forget_document
from ..services.models import AnalysisResult, ComparisonResult

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post(
    "/{document_id}/index",
    response_model=Union[IndexReport, OperationResult],
    summary="Index or re-index a document",
)
async def index_document(
    document_id: str,
    req: IndexRequest,
    indexer: Annotated[DocumentIndexer, Depends(get_indexer)],
    documents: Annotated[DocumentSource, Depends(get_document_source)],
    queue: Annotated[IndexingQueue, Depends(get_indexing_queue)],
    analyses: Annotated[ArtifactCache[AnalysisResult], Depends(get_analysis_cache)],
    comparisons: Annotated[ArtifactCache[ComparisonResult], Depends(get_comparison_cache)],
):
    """
    Chunk, embed and store a document's text, replacing previous chunks.

    Workflow
    --------
    1. Use the request content, or load the stored document text.
    2. Drop cached analyses and comparisons of the document.
    3. Either enqueue an indexing job (``background``) or index inline.
    4. Return the indexing report (inline) or the queue position.
    """
    content = req.content
    if content is None:
        document = await documents.get(document_id)
        if document is None:
            raise LookupError(f"Document not found: {document_id}")
        content = document.content

    forget_document(document_id, analyses, comparisons)

    if req.background:
        qsize = await queue.enqueue(
            IndexingJob(
                document_id=document_id,
                content=content,
                request_id=uuid.uuid4().hex,
            )
        )
        result = OperationResult(status="queued", count=qsize)
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=result.model_dump(exclude_none=True),
        )

    # IndexingError (blank text) is mapped to 422 by the global handlers
    return await indexer.index_document(document_id, content)


@router.delete(
    "/{document_id}/embeddings",
    response_model=OperationResult,
    summary="Delete all stored chunks of a document",
)
async def delete_document_embeddings(
    document_id: str,
    indexer: Annotated[DocumentIndexer, Depends(get_indexer)],
    analyses: Annotated[ArtifactCache[AnalysisResult], Depends(get_analysis_cache)],
    comparisons: Annotated[ArtifactCache[ComparisonResult], Depends(get_comparison_cache)],
) -> OperationResult:
    count = await indexer.remove_document(document_id)
    forget_document(document_id, analyses, comparisons)
    return OperationResult(status="deleted", count=count)


@router.get(
    "/{document_id}/chunks",
    response_model=List[SearchResult],
    summary="List a document's stored chunks in order",
)
async def get_document_chunks(
    document_id: str,
    store: Annotated[EmbeddingStore, Depends(get_store)],
) -> List[SearchResult]:
    return await store.get_chunks(document_id)


@router.post(
    "/{document_id}/analysis",
    response_model=AnalysisResult,
    summary="Analyze a document (cached)",
)
async def analyze_document(
    document_id: str,
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
    force: bool = False,
) -> AnalysisResult:
    """
    Return the document's structured analysis.

    The result is cached per document; ``force=true`` recomputes it.
    """
    return await service.analyze(document_id, force=force)
