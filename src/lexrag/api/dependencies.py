from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..db import get_async_session, EmbeddingStore, PgVectorStore
from ..documents.source import DocumentSource, SqlDocumentSource
from ..embeddings.embedder import Embedder
from ..indexing.indexer import DocumentIndexer
from ..indexing.queue import IndexingQueue, indexing_queue
from ..llm.chain import ProviderChain
from ..llm.client import build_openai_client, build_providers
from ..retrieval.search import SimilaritySearchEngine
from ..services.answerer import Answerer
from ..services.artifacts import AnalysisService, ArtifactCache, ComparisonService
from ..services.chat import ChatService
from ..services.comparison import DocumentComparer
from ..services.models import AnalysisResult, ComparisonResult
from ..sessions.store import SessionStore


# ---------------------------------------------------------------------
# Process-wide singletons
# ---------------------------------------------------------------------

@lru_cache
def get_provider_chain() -> ProviderChain:
    return ProviderChain(build_providers(settings))


@lru_cache
def get_embedder() -> Embedder:
    return Embedder(build_openai_client(settings))


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore(max_messages_per_session=settings.session_max_messages)


@lru_cache
def get_analysis_cache() -> ArtifactCache[AnalysisResult]:
    return ArtifactCache()


@lru_cache
def get_comparison_cache() -> ArtifactCache[ComparisonResult]:
    return ArtifactCache()


def get_indexing_queue() -> IndexingQueue:
    return indexing_queue


# ---------------------------------------------------------------------
# Per-request wiring
# ---------------------------------------------------------------------

def get_store(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> EmbeddingStore:
    return PgVectorStore(session)


def get_document_source(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> DocumentSource:
    return SqlDocumentSource(session)


def get_user_id(x_user_id: Annotated[str, Header(min_length=1)]) -> str:
    """Opaque caller identity; authentication happens upstream."""
    return x_user_id


def get_search_engine(
    embedder: Annotated[Embedder, Depends(get_embedder)],
    store: Annotated[EmbeddingStore, Depends(get_store)],
) -> SimilaritySearchEngine:
    return SimilaritySearchEngine(embedder, store)


def get_indexer(
    embedder: Annotated[Embedder, Depends(get_embedder)],
    store: Annotated[EmbeddingStore, Depends(get_store)],
) -> DocumentIndexer:
    return DocumentIndexer(embedder, store)


def get_answerer(
    chain: Annotated[ProviderChain, Depends(get_provider_chain)],
    search: Annotated[SimilaritySearchEngine, Depends(get_search_engine)],
) -> Answerer:
    return Answerer(chain, search)


def get_comparer(
    chain: Annotated[ProviderChain, Depends(get_provider_chain)],
) -> DocumentComparer:
    return DocumentComparer(chain)


def get_chat_service(
    answerer: Annotated[Answerer, Depends(get_answerer)],
    sessions: Annotated[SessionStore, Depends(get_session_store)],
    documents: Annotated[DocumentSource, Depends(get_document_source)],
) -> ChatService:
    return ChatService(answerer, sessions, documents)


def get_analysis_service(
    chain: Annotated[ProviderChain, Depends(get_provider_chain)],
    documents: Annotated[DocumentSource, Depends(get_document_source)],
    cache: Annotated[ArtifactCache[AnalysisResult], Depends(get_analysis_cache)],
) -> AnalysisService:
    return AnalysisService(Answerer(chain), documents, cache)


def get_comparison_service(
    comparer: Annotated[DocumentComparer, Depends(get_comparer)],
    documents: Annotated[DocumentSource, Depends(get_document_source)],
    cache: Annotated[ArtifactCache[ComparisonResult], Depends(get_comparison_cache)],
) -> ComparisonService:
    return ComparisonService(comparer, documents, cache)
