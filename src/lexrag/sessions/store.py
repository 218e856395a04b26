"""
Session Store

In-memory storage for document chat sessions.

A session lives through one repeating cycle:

    CREATED -> user message appended -> retrieval
            -> assistant message appended -> updated_at bumped

Sessions are never closed, only deleted.

Design choices
--------------
- In-memory only (no persistence across process restarts).
- Per-session message lists with an optional maximum length.
- Thread-safe access using a re-entrant lock.
- Copy-on-read semantics (callers cannot mutate internal state).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from threading import RLock

from pydantic import BaseModel, Field

from ..services.models import Citation


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionNotFoundError(LookupError):
    """Raised when a session does not exist or is not visible to the caller."""


class ChatMessage(BaseModel):
    """
    Single message in a chat session.
    """
    message_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "assistant"]
    content: str
    citations: List[Citation] = Field(default_factory=list)
    confidence: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)


class ChatSession(BaseModel):
    """
    A chat about one document, owned by one user.

    ``user_id`` is an opaque identity supplied by the caller.
    """
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    document_id: str
    user_id: str
    title: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    messages: List[ChatMessage] = Field(default_factory=list)

    @property
    def message_count(self) -> int:
        return len(self.messages)


class SessionStore:
    """
    In-memory store mapping session IDs to ChatSession objects.

    For horizontally scaled or persistent setups, this class can be replaced
    with a database-backed implementation exposing the same interface.
    """

    def __init__(self, max_messages_per_session: Optional[int] = None) -> None:
        """
        Parameters
        ----------
        max_messages_per_session : Optional[int]
            If provided, each session keeps at most this many most recent
            messages. If None, history is unbounded.
        """
        self._store: Dict[str, ChatSession] = {}
        self._lock = RLock()
        self._max_messages_per_session = max_messages_per_session

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def create(self, document_id: str, user_id: str, title: str) -> ChatSession:
        session = ChatSession(document_id=document_id, user_id=user_id, title=title)
        with self._lock:
            self._store[session.session_id] = session
        return session.model_copy(deep=True)

    def get(self, session_id: str) -> Optional[ChatSession]:
        """
        Return a deep copy of the session, or None if unknown.
        """
        with self._lock:
            session = self._store.get(session_id)
            return session.model_copy(deep=True) if session else None

    def _require(self, session_id: str) -> ChatSession:
        session = self._store.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Chat session not found: {session_id}")
        return session

    def append(self, session_id: str, message: ChatMessage) -> None:
        """
        Append a message to the session's history.

        Raises
        ------
        SessionNotFoundError
            If the session does not exist.
        """
        with self._lock:
            session = self._require(session_id)
            session.messages.append(message)

            if (
                self._max_messages_per_session is not None
                and self._max_messages_per_session > 0
            ):
                excess = len(session.messages) - self._max_messages_per_session
                if excess > 0:
                    session.messages = session.messages[excess:]

    def touch(self, session_id: str) -> datetime:
        """Bump ``updated_at`` and return the new value."""
        with self._lock:
            session = self._require(session_id)
            session.updated_at = max(_utcnow(), session.updated_at)
            return session.updated_at

    def rename(self, session_id: str, title: str) -> ChatSession:
        with self._lock:
            session = self._require(session_id)
            session.title = title
            session.updated_at = max(_utcnow(), session.updated_at)
            return session.model_copy(deep=True)

    def get_messages(self, session_id: str) -> List[ChatMessage]:
        with self._lock:
            session = self._store.get(session_id)
            if session is None:
                return []
            return [m.model_copy(deep=True) for m in session.messages]

    def list_for_user(
        self,
        user_id: str,
        document_id: Optional[str] = None,
    ) -> List[ChatSession]:
        """Sessions owned by ``user_id``, most recently updated first."""
        with self._lock:
            sessions = [
                s.model_copy(deep=True)
                for s in self._store.values()
                if s.user_id == user_id
                and (document_id is None or s.document_id == document_id)
            ]
        return sorted(sessions, key=lambda s: s.updated_at, reverse=True)

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._store.pop(session_id, None) is not None

    # ------------------------------------------------------------------
    # Utility operations
    # ------------------------------------------------------------------

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
