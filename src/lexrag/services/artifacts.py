"""
Cached Analysis Artifacts

Document analyses and pairwise comparisons are derived artifacts: computed
once and cached until an explicit re-analysis or an invalidation. They are
never updated incrementally.

Comparison entries are keyed by the unordered document pair, so (a, b)
and (b, a) share one entry.

Re-indexing a document or deleting its embeddings drops every artifact
that mentions it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import RLock
from typing import Dict, FrozenSet, Generic, Hashable, Optional, TypeVar

from ..documents.source import DocumentSource
from .answerer import Answerer
from .comparison import DocumentComparer
from .models import AnalysisResult, ComparisonResult

logger = logging.getLogger("lexrag.artifacts")

T = TypeVar("T")


@dataclass(frozen=True)
class Artifact(Generic[T]):
    value: T
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ArtifactCache(Generic[T]):
    """Thread-safe key -> Artifact map."""

    def __init__(self) -> None:
        self._items: Dict[Hashable, Artifact[T]] = {}
        self._lock = RLock()

    def get(self, key: Hashable) -> Optional[Artifact[T]]:
        with self._lock:
            return self._items.get(key)

    def put(self, key: Hashable, value: T) -> Artifact[T]:
        artifact = Artifact(value)
        with self._lock:
            self._items[key] = artifact
        return artifact

    def invalidate_matching(self, member: str) -> int:
        """Drop every entry whose key is ``member`` or a pair containing it."""
        with self._lock:
            doomed = [
                k for k in self._items
                if k == member or (isinstance(k, frozenset) and member in k)
            ]
            for k in doomed:
                del self._items[k]
            return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


def pair_key(doc1_id: str, doc2_id: str) -> FrozenSet[str]:
    return frozenset((doc1_id, doc2_id))


def forget_document(document_id: str, *caches: ArtifactCache) -> int:
    """
    Drop the cached analysis and every cached comparison involving
    ``document_id``. Returns the number of entries removed.
    """
    dropped = sum(cache.invalidate_matching(document_id) for cache in caches)
    if dropped:
        logger.info("Dropped %d cached artifact(s) for document %s", dropped, document_id)
    return dropped


class AnalysisService:
    def __init__(
        self,
        answerer: Answerer,
        documents: DocumentSource,
        cache: Optional[ArtifactCache[AnalysisResult]] = None,
    ) -> None:
        self.answerer = answerer
        self.documents = documents
        self.cache: ArtifactCache[AnalysisResult] = cache if cache is not None else ArtifactCache()

    async def analyze(self, document_id: str, force: bool = False) -> AnalysisResult:
        """
        Return the cached analysis of a document, computing it if needed.

        Raises
        ------
        LookupError
            If the document does not exist.
        GenerationError
            If no provider can analyze the document.
        """
        if not force:
            cached = self.cache.get(document_id)
            if cached is not None:
                return cached.value

        document = await self.documents.get(document_id)
        if document is None:
            raise LookupError(f"Document not found: {document_id}")

        result = await self.answerer.analyze_document(
            document.content,
            document.filename or document.title,
        )
        self.cache.put(document_id, result)
        logger.info("Document analyzed: %s (confidence %.2f)", document_id, result.confidence)
        return result


class ComparisonService:
    def __init__(
        self,
        comparer: DocumentComparer,
        documents: DocumentSource,
        cache: Optional[ArtifactCache[ComparisonResult]] = None,
    ) -> None:
        self.comparer = comparer
        self.documents = documents
        self.cache: ArtifactCache[ComparisonResult] = cache if cache is not None else ArtifactCache()

    async def compare(
        self,
        doc1_id: str,
        doc2_id: str,
        force: bool = False,
    ) -> ComparisonResult:
        """
        Return the cached comparison of two documents, computing it if needed.

        Raises
        ------
        ValueError
            If both ids name the same document.
        LookupError
            If either document does not exist.
        """
        if doc1_id == doc2_id:
            raise ValueError("Cannot compare document with itself")

        key = pair_key(doc1_id, doc2_id)
        if not force:
            cached = self.cache.get(key)
            if cached is not None:
                logger.info("Returning existing comparison: %s / %s", doc1_id, doc2_id)
                return cached.value

        doc1 = await self.documents.get(doc1_id)
        doc2 = await self.documents.get(doc2_id)
        if doc1 is None or doc2 is None:
            raise LookupError("One or both documents not found")

        result = await self.comparer.compare_documents(doc1.content, doc2.content)
        self.cache.put(key, result)
        logger.info(
            "Document comparison created: %s / %s (score %.2f, %s)",
            doc1_id,
            doc2_id,
            result.similarity_score,
            result.source,
        )
        return result
