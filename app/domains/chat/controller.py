"""Chat API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import (
    get_chat_client,
    get_current_user,
    get_db,
    get_workspace,
    validate_token,
)
from app.domains.chat.service import ChatService
from app.domains.chat.state import ChatWorkspace
from app.schemas.base import ResponseSchema
from app.schemas.chat import (
    ActiveSessionRequest,
    ChatMessageSubmit,
    ChatSessionRename,
    SelectedDocumentsRequest,
)
from app.services.gemini_service import GeminiChatService
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/chat",
    tags=["chat"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)


async def get_chat_service(
    current_user: User = Depends(get_current_user),
    workspace: ChatWorkspace = Depends(get_workspace),
    chat_client: GeminiChatService | None = Depends(get_chat_client),
    db: AsyncSession = Depends(get_db),
) -> ChatService:
    return ChatService(db, workspace, current_user, chat_client)


def _state_response(service: ChatService, message: str) -> ResponseSchema:
    return ResponseSchema(
        status="success",
        message=message,
        data=service.snapshot().model_dump(mode="json", by_alias=True),
    )


# ----- sessions -----


@router.get("/sessions", response_model=ResponseSchema)
async def list_sessions(_request: Request, service: ChatService = Depends(get_chat_service)):
    """Load the first window of chat sessions, newest activity first."""
    await service.list_sessions()
    return _state_response(service, "Chat sessions retrieved successfully")


@router.post("/sessions/load-more", response_model=ResponseSchema)
async def load_more_sessions(_request: Request, service: ChatService = Depends(get_chat_service)):
    """Grow the session window by one page."""
    await service.load_more_sessions()
    return _state_response(service, "Chat sessions retrieved successfully")


@router.post("/sessions", response_model=ResponseSchema, status_code=201)
async def create_session(_request: Request, service: ChatService = Depends(get_chat_service)):
    """Create an empty session and make it active."""
    session = await service.create_session()
    if session is None:
        return _state_response(service, "Chat session was not created")
    return _state_response(service, "Chat session created successfully")


@router.patch("/sessions/{session_id}", response_model=ResponseSchema)
async def rename_session(
    _request: Request,
    payload: ChatSessionRename,
    session_id: UUID = Path(..., description="Chat session ID"),
    service: ChatService = Depends(get_chat_service),
):
    """Rename a chat session."""
    await service.rename_session(session_id, payload.title)
    return _state_response(service, "Chat session renamed successfully")


@router.delete("/sessions/{session_id}", response_model=ResponseSchema)
async def delete_session(
    _request: Request,
    session_id: UUID = Path(..., description="Chat session ID"),
    service: ChatService = Depends(get_chat_service),
):
    """Delete a session together with all of its messages."""
    await service.delete_session(session_id)
    return _state_response(service, "Chat session deleted successfully")


@router.put("/sessions/active", response_model=ResponseSchema)
async def set_active_session(
    _request: Request,
    payload: ActiveSessionRequest,
    service: ChatService = Depends(get_chat_service),
):
    """Select a session, or clear the selection when ``session_id`` is null."""
    await service.set_active_session(payload.session_id)
    return _state_response(service, "Active chat session updated")


@router.put("/selected-documents", response_model=ResponseSchema)
async def select_documents(
    _request: Request,
    payload: SelectedDocumentsRequest,
    service: ChatService = Depends(get_chat_service),
):
    service.select_documents(payload.document_ids)
    return _state_response(service, "Selected documents updated")


@router.get("/state", response_model=ResponseSchema)
async def get_state(_request: Request, service: ChatService = Depends(get_chat_service)):
    """Current workspace state without touching the database."""
    return _state_response(service, "Chat state retrieved successfully")


# ----- messages -----


@router.get("/messages", response_model=ResponseSchema)
async def load_messages(_request: Request, service: ChatService = Depends(get_chat_service)):
    """Reload the newest page of messages in the active session."""
    await service.load_messages()
    return _state_response(service, "Chat messages retrieved successfully")


@router.post("/messages/older", response_model=ResponseSchema)
async def load_older_messages(_request: Request, service: ChatService = Depends(get_chat_service)):
    await service.load_older_messages()
    return _state_response(service, "Chat messages retrieved successfully")


@router.post("/messages", response_model=ResponseSchema, status_code=201)
async def send_message(
    _request: Request,
    payload: ChatMessageSubmit,
    service: ChatService = Depends(get_chat_service),
):
    """Send a user message and wait for the assistant's answer.

    AI failures are recorded as an error message in the conversation and do
    not fail the request.
    """
    await service.send_message(payload)
    return _state_response(service, "Message sent successfully")


@router.post("/messages/regenerate", response_model=ResponseSchema)
async def regenerate_response(_request: Request, service: ChatService = Depends(get_chat_service)):
    """Replace the last assistant answer with a fresh one."""
    await service.regenerate()
    return _state_response(service, "Response regenerated")


@router.post("/messages/{message_id}/retry", response_model=ResponseSchema)
async def retry_message(
    _request: Request,
    message_id: UUID = Path(..., description="Assistant message ID"),
    service: ChatService = Depends(get_chat_service),
):
    """Retry a failed assistant message in place."""
    await service.retry(message_id)
    return _state_response(service, "Message retried")


@router.delete("/messages/{message_id}", response_model=ResponseSchema)
async def delete_message(
    _request: Request,
    message_id: UUID = Path(..., description="Message ID"),
    service: ChatService = Depends(get_chat_service),
):
    await service.delete_message(message_id)
    return _state_response(service, "Message deleted successfully")
