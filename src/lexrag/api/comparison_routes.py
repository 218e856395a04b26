"""
Comparison Routes

Pairwise document comparison. Stored-document comparisons are cached per
unordered pair; ad-hoc text comparisons are computed on every call.

Both endpoints always answer: with every provider down the lexical
baseline is returned (``source == "lexical"``).
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from .models import CompareDocumentsRequest, CompareTextsRequest
from .dependencies import get_comparer, get_comparison_service
from ..services.artifacts import ComparisonService
from ..services.comparison import DocumentComparer
from ..services.models import ComparisonResult

router = APIRouter(prefix="/comparisons", tags=["comparisons"])


@router.post(
    "",
    response_model=ComparisonResult,
    summary="Compare two stored documents",
)
async def compare_documents(
    req: CompareDocumentsRequest,
    service: Annotated[ComparisonService, Depends(get_comparison_service)],
) -> ComparisonResult:
    return await service.compare(req.doc1_id, req.doc2_id, force=req.force)


@router.post(
    "/text",
    response_model=ComparisonResult,
    summary="Compare two ad-hoc texts",
)
async def compare_texts(
    req: CompareTextsRequest,
    comparer: Annotated[DocumentComparer, Depends(get_comparer)],
) -> ComparisonResult:
    return await comparer.compare_documents(req.doc1, req.doc2)
