"""Chat service layer tying the workspace stores to the AI orchestrator."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.domains.chat.message_store import MessageStore
from app.domains.chat.orchestrator import ChatClient, ChatOrchestrator
from app.domains.chat.session_store import SessionStore
from app.domains.chat.state import ChatWorkspace, MessageEntry, SessionEntry
from app.schemas.chat import (
    ChatMessageResponse,
    ChatMessageSubmit,
    ChatSessionResponse,
    ChatStateResponse,
    NotificationResponse,
)
from app.schemas.user import LearningProfile
from models import User

logger = logging.getLogger(__name__)


class ChatService:
    """Service class for chat operations of one signed-in user."""

    def __init__(
        self,
        db: AsyncSession,
        workspace: ChatWorkspace,
        user: User | None,
        chat_client: ChatClient | None = None,
    ):
        """Initialize chat service.

        Args:
            db: Async database session for data operations.
            workspace: The user's chat workspace.
            user: Signed-in user, or None.
            chat_client: Model client used for AI answers.
        """
        self.db = db
        self.workspace = workspace
        self.user = user
        self.messages = MessageStore(db, workspace)
        self.sessions = SessionStore(db, workspace, self.messages)
        self.orchestrator = ChatOrchestrator(
            db,
            workspace,
            self.sessions,
            self.messages,
            chat_client,
            LearningProfile.from_user(user),
        )

    # ----- sessions -----

    async def list_sessions(self) -> list[SessionEntry]:
        return await self.sessions.load()

    async def load_more_sessions(self) -> list[SessionEntry]:
        return await self.sessions.load_more()

    async def create_session(self) -> SessionEntry | None:
        return await self.sessions.create(self.user.id if self.user else None)

    async def rename_session(self, session_id: UUID, title: str) -> SessionEntry:
        return await self.sessions.rename(session_id, title.strip())

    async def delete_session(self, session_id: UUID) -> None:
        await self.sessions.delete(session_id)

    async def set_active_session(self, session_id: UUID | None) -> None:
        if session_id is None:
            self.sessions.clear_selection()
            return
        await self.sessions.select(session_id)

    def select_documents(self, document_ids: list[str]) -> None:
        self.workspace.select_documents(document_ids)

    # ----- messages -----

    async def load_messages(self) -> list[MessageEntry]:
        """Reload the newest page of the active session."""
        if await self.sessions.validate_active():
            return await self.messages.load_for_session(self.workspace.active_session_id)
        return []

    async def load_older_messages(self) -> list[MessageEntry]:
        return await self.messages.load_older()

    async def send_message(self, request: ChatMessageSubmit) -> MessageEntry | None:
        return await self.orchestrator.submit(
            self.user,
            request.content,
            document_ids=request.attached_document_ids,
            note_ids=request.attached_note_ids,
            image_url=request.image_url,
            image_mime_type=request.image_mime_type,
            image_data=request.image_data,
        )

    async def regenerate(self) -> MessageEntry | None:
        return await self.orchestrator.regenerate()

    async def retry(self, message_id: UUID) -> MessageEntry | None:
        return await self.orchestrator.retry(message_id)

    async def delete_message(self, message_id: UUID) -> None:
        await self.messages.delete(message_id)

    # ----- snapshot -----

    def snapshot(self, drain: bool = True) -> ChatStateResponse:
        """Current workspace state; draining hands over pending notifications."""
        workspace = self.workspace
        notifications = workspace.notifications.drain() if drain else workspace.notifications.pending()
        return ChatStateResponse(
            sessions=[ChatSessionResponse.model_validate(s) for s in workspace.sessions],
            has_more_sessions=workspace.has_more_sessions,
            session_limit=workspace.session_window.limit,
            active_session_id=workspace.active_session_id,
            messages=[ChatMessageResponse.model_validate(m) for m in workspace.messages],
            has_more_messages=workspace.has_more_messages,
            is_ai_loading=workspace.is_ai_loading,
            is_submitting_user_message=workspace.is_submitting_user_message,
            selected_document_ids=list(workspace.selected_document_ids),
            notifications=[NotificationResponse.model_validate(n) for n in notifications],
        )
