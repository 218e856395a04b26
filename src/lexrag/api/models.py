"""
API Models

Pydantic models used for request/response validation across indexing,
search, chat, comparison and analysis endpoints. Result payloads reuse the
service-layer models directly.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, Field, ConfigDict

from ..config import settings
from ..services.models import Citation


class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    """
    status: Literal["indexed", "queued", "deleted", "ok"]
    count: Optional[int] = Field(default=None, ge=0)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")


class ErrorResponse(BaseModel):
    error: str
    detail: str


# ---------------------------------------------------------------------
# Indexing
# ---------------------------------------------------------------------

class IndexRequest(BaseModel):
    """
    Index (or re-index) a document. When ``content`` is omitted the stored
    document text is used.
    """
    content: Optional[str] = None
    background: bool = False

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------

class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    document_ids: Optional[List[str]] = None
    limit: int = Field(default=settings.search_limit, ge=1, le=100)
    threshold: float = Field(default=settings.search_threshold, ge=0.0, le=1.0)

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------

class CreateSessionRequest(BaseModel):
    document_id: str = Field(..., min_length=1)
    title: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SessionResponse(BaseModel):
    session_id: str
    document_id: str
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    message_count: int = 0


class UpdateSessionRequest(BaseModel):
    title: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class MessageResponse(BaseModel):
    message_id: str
    role: Literal["user", "assistant"]
    content: str
    citations: List[Citation] = Field(default_factory=list)
    confidence: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class ExchangeResponse(BaseModel):
    user_message: MessageResponse
    assistant_message: MessageResponse


# ---------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------

class CompareDocumentsRequest(BaseModel):
    doc1_id: str = Field(..., min_length=1)
    doc2_id: str = Field(..., min_length=1)
    force: bool = False

    model_config = ConfigDict(extra="forbid")


class CompareTextsRequest(BaseModel):
    doc1: str = ""
    doc2: str = ""

    model_config = ConfigDict(extra="forbid")
