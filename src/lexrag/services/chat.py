"""
Chat Service

Drives one document chat session through its message cycle:

1. Verify the session exists and belongs to the caller.
2. Append the user's message.
3. Retrieve context and generate an answer (never raises).
4. Append the assistant's message with citations and confidence.
5. Bump the session's ``updated_at``.

Document access is authorized upstream; ``user_id`` is opaque here.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..documents.source import DocumentSource
from ..sessions.store import ChatMessage, ChatSession, SessionNotFoundError, SessionStore
from .answerer import Answerer

logger = logging.getLogger("lexrag.chat")


class ChatService:
    def __init__(
        self,
        answerer: Answerer,
        sessions: SessionStore,
        documents: DocumentSource,
    ) -> None:
        self.answerer = answerer
        self.sessions = sessions
        self.documents = documents

    async def create_session(
        self,
        document_id: str,
        user_id: str,
        title: Optional[str] = None,
    ) -> ChatSession:
        """
        Open a chat about ``document_id``.

        Raises
        ------
        LookupError
            If the document does not exist.
        """
        document = await self.documents.get(document_id)
        if document is None:
            raise LookupError(f"Document not found: {document_id}")

        session = self.sessions.create(
            document_id=document_id,
            user_id=user_id,
            title=title or f"Chat about {document.title}",
        )
        logger.info("Chat session created: %s by user %s", session.session_id, user_id)
        return session

    def get_session(self, session_id: str, user_id: str) -> ChatSession:
        session = self.sessions.get(session_id)
        if session is None or session.user_id != user_id:
            raise SessionNotFoundError(f"Chat session not found: {session_id}")
        return session

    def get_messages(self, session_id: str, user_id: str) -> List[ChatMessage]:
        self.get_session(session_id, user_id)
        return self.sessions.get_messages(session_id)

    def list_sessions(self, user_id: str, document_id: Optional[str] = None) -> List[ChatSession]:
        return self.sessions.list_for_user(user_id, document_id)

    async def send_message(
        self,
        session_id: str,
        content: str,
        user_id: str,
    ) -> Tuple[ChatMessage, ChatMessage]:
        """
        Append a user message and the generated assistant reply.

        Returns
        -------
        Tuple[ChatMessage, ChatMessage]
            (user_message, assistant_message)

        Raises
        ------
        SessionNotFoundError
            If the session is unknown to ``user_id`` or is deleted before
            the reply is recorded.
        """
        session = self.get_session(session_id, user_id)

        user_message = ChatMessage(role="user", content=content)
        self.sessions.append(session_id, user_message)

        document = await self.documents.get(session.document_id)
        reply = await self.answerer.respond(
            content,
            session.document_id,
            document.content if document else None,
        )

        assistant_message = ChatMessage(
            role="assistant",
            content=reply.content,
            citations=reply.citations,
            confidence=reply.confidence,
            metadata=reply.metadata,
        )
        self.sessions.append(session_id, assistant_message)
        self.sessions.touch(session_id)

        logger.info("Chat message sent in session %s", session_id)
        return user_message, assistant_message

    def _owned_session(self, session_id: str, user_id: str) -> ChatSession:
        """
        Raises
        ------
        SessionNotFoundError
            If the session does not exist.
        PermissionError
            If ``user_id`` is not the owner.
        """
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Chat session not found: {session_id}")
        if session.user_id != user_id:
            raise PermissionError("Insufficient permissions")
        return session

    def update_session(self, session_id: str, user_id: str, title: str) -> ChatSession:
        """Rename a session owned by ``user_id``."""
        self._owned_session(session_id, user_id)
        session = self.sessions.rename(session_id, title)
        logger.info("Chat session renamed: %s by user %s", session_id, user_id)
        return session

    def delete_session(self, session_id: str, user_id: str) -> None:
        """Delete a session owned by ``user_id``."""
        self._owned_session(session_id, user_id)
        self.sessions.delete(session_id)
        logger.info("Chat session deleted: %s by user %s", session_id, user_id)
