"""
Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures exception handling, and provides a test-friendly application
factory.

Startup
-------
- Configure logging at ``settings.log_level``.
- Optionally enable pgvector and create missing tables.
- Start the background indexing worker.

Missing provider keys are not fatal: the service starts degraded and the
affected features fall back (text search, lexical comparison, apologies).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator

from fastapi import FastAPI

from .config import settings
from .core.errors import register_exception_handlers
from .db import init_database
from .indexing.queue import indexing_queue, process_indexing_worker_task

from .api import (
    chat_routes,
    comparison_routes,
    document_routes,
    embedding_routes,
    health_routes,
    search_routes,
)


logger = logging.getLogger("lexrag.app")


# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------

@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup and shutdown around the served lifetime of ``app``.

    The indexing worker runs for the whole lifetime and is cancelled on
    shutdown; jobs still queued at that point are dropped.
    """
    logger.info("Starting lexrag")

    if settings.openai_api_key is None:
        logger.warning("OPENAI_API_KEY not set; indexing and vector search are disabled")
    if settings.openai_api_key is None and settings.gemini_api_key is None:
        logger.warning("No generative provider configured; answers and analyses are unavailable")

    if settings.create_tables:
        await init_database()

    worker = asyncio.create_task(process_indexing_worker_task(indexing_queue))
    try:
        yield
    finally:
        logger.info("Shutting down lexrag")
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Tests build isolated instances through this factory and replace
    ``app.router.lifespan_context`` to skip the database and worker.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="lexrag",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # --------------------------------------------------------------
    # Exception Handling
    # --------------------------------------------------------------

    register_exception_handlers(app)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(document_routes.router)
    app.include_router(embedding_routes.router)
    app.include_router(search_routes.router)
    app.include_router(chat_routes.router)
    app.include_router(comparison_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
