"""
Global Error Handling

Application-wide exception handlers for the retrieval service.

Domain errors raised by the service layer are mapped to HTTP status codes
here, so route handlers can let them propagate:

    LookupError      -> 404  (unknown document or session)
    PermissionError  -> 403  (session owned by another user)
    ValueError       -> 400  (invalid request, e.g. self-comparison)
    IndexingError    -> 422  (document has no text to index)
    GenerationError  -> 503  (no generative provider available)
    StoreError       -> 503  (embedding store unavailable)
    Exception        -> 500  (anything else; details never leak)

Every response body has the same shape: ``{"error": ..., "detail": ...}``.
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..db.vector_store import StoreError
from ..indexing.indexer import IndexingError
from ..llm.chain import GenerationError

logger = logging.getLogger("lexrag.errors")


def _error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    payload: Dict[str, Any] = {"error": error, "detail": detail}
    return JSONResponse(status_code=status_code, content=payload)


# ---------------------------------------------------------------------
# Domain Exception Handlers
# ---------------------------------------------------------------------

async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(404, "not_found", str(exc) or "Not found")


async def permission_denied_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(403, "forbidden", str(exc) or "Insufficient permissions")


async def bad_request_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(400, "bad_request", str(exc) or "Invalid request")


async def indexing_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(422, "indexing_failed", str(exc))


async def service_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Provider or store outage.

    The exception message is logged but not returned; it may contain
    upstream response bodies.
    """
    logger.error(
        "Service unavailable during request %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return _error_response(503, "service_unavailable", "AI or storage service unavailable")


# ---------------------------------------------------------------------
# Catch-all
# ---------------------------------------------------------------------

async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return _error_response(500, "internal_server_error", "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Install every handler above on ``app``."""
    app.add_exception_handler(LookupError, not_found_handler)
    app.add_exception_handler(PermissionError, permission_denied_handler)
    app.add_exception_handler(ValueError, bad_request_handler)
    app.add_exception_handler(IndexingError, indexing_error_handler)
    app.add_exception_handler(GenerationError, service_unavailable_handler)
    app.add_exception_handler(StoreError, service_unavailable_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
