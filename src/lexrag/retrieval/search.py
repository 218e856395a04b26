"""
Similarity Search Engine

Read path entry point: embed the query once, then let the store rank
chunks. Batched similarity computation is the store's job.

Responsibilities
----------------
- Embed the query
- Delegate to the store's similarity search (which owns the text fallback)
- Degrade to the text fallback when the query itself cannot be embedded
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..config import settings
from ..db.vector_store import EmbeddingStore
from ..embeddings.embedder import Embedder, EmbeddingError
from ..embeddings.models import SearchResult

logger = logging.getLogger("lexrag.search")


class SimilaritySearchEngine:
    def __init__(self, embedder: Embedder, store: EmbeddingStore) -> None:
        self.embedder = embedder
        self.store = store

    async def search(
        self,
        query: str,
        document_ids: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[SearchResult]:
        """
        Return the chunks most similar to ``query``.

        Parameters
        ----------
        query : str
            Natural-language query.
        document_ids : Optional[Sequence[str]]
            Documents the caller is allowed to read. Authorization happens
            upstream; this list is trusted as-is.
        limit : Optional[int]
            Maximum number of results. Defaults to settings.search_limit.
        threshold : Optional[float]
            Similarity lower bound. Defaults to settings.search_threshold.

        Returns
        -------
        List[SearchResult]
            At most ``limit`` results. An empty list means nothing scored
            above the threshold, which is not an error.
        """
        limit = settings.search_limit if limit is None else limit
        threshold = settings.search_threshold if threshold is None else threshold

        if limit <= 0:
            return []

        try:
            embedded = await self.embedder.embed(query)
        except EmbeddingError as exc:
            logger.warning("Query embedding failed, falling back to text search: %s", exc)
            return await self.store.text_search(query, document_ids, limit)

        return await self.store.similarity_search(
            embedded.vector,
            query_text=query,
            document_ids=document_ids,
            limit=limit,
            threshold=threshold,
        )
