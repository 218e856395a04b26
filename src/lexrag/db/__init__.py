"""
Database Package

Provides SQLAlchemy async session management, model definitions for
PostgreSQL with pgvector, and the chunk store implementations.
"""

from .session import (
    get_async_session,
    async_engine,
    AsyncSessionLocal,
    init_database,
    session_scope,
)
from .models import Base, Document, DocumentEmbedding
from .vector_store import (
    EmbeddingStore,
    PgVectorStore,
    RetrievalError,
    StoreError,
    FALLBACK_SIMILARITY,
)
from .memory_store import InMemoryVectorStore

__all__ = [
    "get_async_session",
    "async_engine",
    "AsyncSessionLocal",
    "init_database",
    "session_scope",
    "Base",
    "Document",
    "DocumentEmbedding",
    "EmbeddingStore",
    "PgVectorStore",
    "RetrievalError",
    "StoreError",
    "FALLBACK_SIMILARITY",
    "InMemoryVectorStore",
]
