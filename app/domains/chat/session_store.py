"""Chat session list for one user.

The list is a window over the user's sessions ordered by latest activity.
Loading more grows the window and re-fetches it from the top.
"""

import logging
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domains.chat.message_store import MessageStore
from app.domains.chat.state import ChatWorkspace, SessionEntry, normalize_ids
from app.exceptions.chat import ChatSessionNotFoundError, ChatStoreError
from app.shared.pagination import page_is_full
from models import ChatMessage, ChatSession, utc_now

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TITLE = "New Chat"


class SessionStore:
    def __init__(self, db: AsyncSession, workspace: ChatWorkspace, messages: MessageStore):
        self.db = db
        self.workspace = workspace
        self.messages = messages

    async def _get_row(self, session_id: UUID) -> ChatSession | None:
        result = await self.db.execute(
            select(ChatSession).where(
                ChatSession.id == session_id,
                ChatSession.user_id == self.workspace.user_id,
            )
        )
        return result.scalar_one_or_none()

    async def load(self) -> list[SessionEntry]:
        """Fetch the current window of sessions, most recently active first."""
        limit = self.workspace.session_window.limit
        query = (
            select(ChatSession)
            .where(ChatSession.user_id == self.workspace.user_id)
            .order_by(ChatSession.last_message_at.desc(), ChatSession.created_at.desc())
            .limit(limit)
        )
        try:
            result = await self.db.execute(query)
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Error loading chat sessions: %s", str(e))
            self.workspace.notifications.error("Failed to load chat sessions.")
            return self.workspace.sessions

        entries = [SessionEntry.from_row(row) for row in rows]
        self.workspace.set_sessions(entries, has_more=page_is_full(len(rows), limit))
        return entries

    async def load_more(self) -> list[SessionEntry]:
        self.workspace.session_window.grow()
        return await self.load()

    async def create(self, user_id: UUID | None) -> SessionEntry | None:
        """Insert a session seeded with the selected documents and activate it.

        Returns None when there is no signed-in user or the insert fails.
        """
        if user_id is None:
            self.workspace.notifications.error("Please sign in to create a new chat session.")
            return None

        row = ChatSession(
            user_id=user_id,
            title=DEFAULT_SESSION_TITLE,
            document_ids=list(self.workspace.selected_document_ids),
            last_message_at=utc_now(),
        )
        try:
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error creating session: %s", str(e))
            self.workspace.notifications.error(f"Failed to create new chat session: {str(e)}")
            return None

        entry = SessionEntry.from_row(row)
        logger.info("Created chat session %s for user %s", entry.id, user_id)

        self.workspace.session_window.reset()
        await self.load()
        self.workspace.activate_session(entry.id)
        self.workspace.select_documents(entry.document_ids)
        return entry

    async def select(self, session_id: UUID) -> SessionEntry:
        """Make a session active and load its newest messages."""
        row = await self._get_row(session_id)
        if row is None:
            raise ChatSessionNotFoundError()

        entry = SessionEntry.from_row(row)
        self.workspace.activate_session(entry.id)
        self.workspace.select_documents(entry.document_ids)
        await self.messages.load_for_session(entry.id)
        return entry

    def clear_selection(self) -> None:
        self.workspace.clear_active_session()

    async def delete(self, session_id: UUID) -> None:
        """Delete a session with its messages.

        When the deleted session was active, the most recently active
        remaining session becomes active, or nothing is selected.
        """
        if await self._get_row(session_id) is None:
            raise ChatSessionNotFoundError()

        try:
            await self.db.execute(delete(ChatMessage).where(ChatMessage.session_id == session_id))
            await self.db.execute(
                delete(ChatSession).where(
                    ChatSession.id == session_id,
                    ChatSession.user_id == self.workspace.user_id,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Error deleting session: %s", str(e))
            self.workspace.notifications.error(f"Failed to delete chat session: {str(e)}")
            raise ChatStoreError("Failed to delete chat session") from e

        was_active = self.workspace.active_session_id == session_id
        self.workspace.session_window.reset()
        remaining = await self.load()

        if was_active:
            if remaining:
                await self.select(remaining[0].id)
            else:
                self.clear_selection()

        self.workspace.notifications.success("Chat session deleted.")

    async def rename(self, session_id: UUID, title: str) -> SessionEntry:
        try:
            result = await self.db.execute(
                update(ChatSession)
                .where(
                    ChatSession.id == session_id,
                    ChatSession.user_id == self.workspace.user_id,
                )
                .values(title=title)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Error renaming session: %s", str(e))
            self.workspace.notifications.error("Failed to rename chat session")
            raise ChatStoreError("Failed to rename chat session") from e

        if result.rowcount == 0:
            raise ChatSessionNotFoundError()

        self.workspace.rename_session(session_id, title)
        self.workspace.notifications.success("Chat session renamed.")
        entry = self.workspace.find_session(session_id)
        if entry is None:
            entry = SessionEntry.from_row(await self._get_row(session_id))
        return entry

    async def validate_active(self) -> bool:
        """Check the active session still exists; drop the selection if not."""
        session_id = self.workspace.active_session_id
        if session_id is None:
            return False

        try:
            row = await self._get_row(session_id)
        except SQLAlchemyError as e:
            logger.error("Error validating session: %s", str(e))
            return False

        if row is None:
            logger.info("Active session %s no longer exists", session_id)
            self.clear_selection()
            return False
        return True

    async def touch(self, session_id: UUID, document_ids: list[str]) -> None:
        """Record activity on a session with the attachment set just used."""
        now = utc_now()
        ids = normalize_ids(document_ids)
        try:
            await self.db.execute(
                update(ChatSession)
                .where(ChatSession.id == session_id)
                .values(last_message_at=now, document_ids=ids)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Error updating session: %s", str(e))
        self.workspace.touch_session(session_id, ids, now)

    async def set_document_ids(self, session_id: UUID, document_ids: list[str]) -> None:
        try:
            await self.db.execute(
                update(ChatSession)
                .where(ChatSession.id == session_id)
                .values(document_ids=normalize_ids(document_ids))
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Error updating session document_ids: %s", str(e))
