"""
Chat Routes: Document-Grounded Conversations

Multi-turn chat sessions scoped to a single document. Each user message
goes through retrieval over that document's chunks and a generated answer
with chunk citations.

Security Model
--------------
- The caller identity arrives in the ``X-User-Id`` header, already
  authenticated upstream.
- Sessions are only visible to their owner; another user's session reads
  as not found, and renaming or deleting it is forbidden.
"""

from fastapi import APIRouter, Depends, status
from typing import Annotated, List, Optional

from .models import (
    CreateSessionRequest,
    ExchangeResponse,
    MessageResponse,
    OperationResult,
    SendMessageRequest,
    SessionResponse,
    UpdateSessionRequest,
)
from .dependencies import get_chat_service, get_user_id
from ..services.chat import ChatService
from ..sessions.store import ChatMessage, ChatSession

router = APIRouter(prefix="/chat", tags=["chat"])


# ---------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------

def _session_response(session: ChatSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        document_id=session.document_id,
        user_id=session.user_id,
        title=session.title,
        created_at=session.created_at,
        updated_at=session.updated_at,
        message_count=session.message_count,
    )


def _message_response(message: ChatMessage) -> MessageResponse:
    return MessageResponse(**message.model_dump())


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------

@router.get(
    "/sessions",
    response_model=List[SessionResponse],
    summary="List the caller's chat sessions",
)
async def list_sessions(
    user_id: Annotated[str, Depends(get_user_id)],
    service: Annotated[ChatService, Depends(get_chat_service)],
    document_id: Optional[str] = None,
) -> List[SessionResponse]:
    return [
        _session_response(s)
        for s in service.list_sessions(user_id, document_id)
    ]


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a chat session about a document",
)
async def create_session(
    req: CreateSessionRequest,
    user_id: Annotated[str, Depends(get_user_id)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> SessionResponse:
    session = await service.create_session(req.document_id, user_id, req.title)
    return _session_response(session)


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    summary="Get one chat session",
)
async def get_session(
    session_id: str,
    user_id: Annotated[str, Depends(get_user_id)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> SessionResponse:
    return _session_response(service.get_session(session_id, user_id))


@router.get(
    "/sessions/{session_id}/messages",
    response_model=List[MessageResponse],
    summary="Get a session's message history",
)
async def get_messages(
    session_id: str,
    user_id: Annotated[str, Depends(get_user_id)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> List[MessageResponse]:
    return [_message_response(m) for m in service.get_messages(session_id, user_id)]


@router.post(
    "/sessions/{session_id}/messages",
    response_model=ExchangeResponse,
    summary="Send a message and receive the grounded answer",
)
async def send_message(
    session_id: str,
    req: SendMessageRequest,
    user_id: Annotated[str, Depends(get_user_id)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> ExchangeResponse:
    """
    Append the user's message, answer it from the session's document and
    append the reply.

    Answer generation never fails the request: provider outages produce an
    apology message with confidence 0.1.
    """
    user_message, assistant_message = await service.send_message(
        session_id, req.content, user_id
    )
    return ExchangeResponse(
        user_message=_message_response(user_message),
        assistant_message=_message_response(assistant_message),
    )


@router.put(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    summary="Rename a chat session",
)
async def update_session(
    session_id: str,
    req: UpdateSessionRequest,
    user_id: Annotated[str, Depends(get_user_id)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> SessionResponse:
    return _session_response(service.update_session(session_id, user_id, req.title))


@router.delete(
    "/sessions/{session_id}",
    response_model=OperationResult,
    summary="Delete a chat session",
)
async def delete_session(
    session_id: str,
    user_id: Annotated[str, Depends(get_user_id)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> OperationResult:
    service.delete_session(session_id, user_id)
    return OperationResult(status="deleted", count=1)
