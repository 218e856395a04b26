"""
Database Session Management

Async SQLAlchemy engine, session factory and schema bootstrap for
PostgreSQL with the pgvector extension.
"""

from __future__ import annotations

import contextlib
import logging
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)

from ..config import settings
from .models import Base

logger = logging.getLogger("lexrag.db")


async_engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_database() -> None:
    """
    Enable pgvector and create any missing tables.

    Existing tables are left untouched; schema migrations are handled
    outside the application.
    """
    async with async_engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema verified")


@contextlib.asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    Transactional scope for code running outside a request, such as the
    indexing worker. Commits on success and rolls back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI endpoints that need database access.

    Usage:
        @router.get("/items")
        async def get_items(session: AsyncSession = Depends(get_async_session)):
            ...
    """
    async with session_scope() as session:
        yield session
