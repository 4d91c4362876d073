"""Message buffer for the active chat session.

Reads fill the workspace buffer newest page first; writes change the buffer
before the database answers and then confirm the entry or mark it failed.
"""

import logging
from dataclasses import replace
from uuid import UUID, uuid4

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domains.chat.state import ChatWorkspace, MessageEntry, SyncState, normalize_ids
from app.exceptions.chat import ChatStoreError, MessageNotFoundError
from app.shared.pagination import page_is_full
from models import ChatMessage, MessageRole, utc_now

logger = logging.getLogger(__name__)


class MessageStore:
    def __init__(self, db: AsyncSession, workspace: ChatWorkspace):
        self.db = db
        self.workspace = workspace

    def _session_messages(self, session_id: UUID):
        return select(ChatMessage).where(
            ChatMessage.session_id == session_id,
            ChatMessage.user_id == self.workspace.user_id,
        )

    async def load_for_session(self, session_id: UUID) -> list[MessageEntry]:
        """Replace the buffer with the newest page of a session, oldest first."""
        page_size = self.workspace.messages_per_page
        query = (
            self._session_messages(session_id)
            .order_by(ChatMessage.timestamp.desc(), ChatMessage.id.desc())
            .limit(page_size)
        )
        try:
            result = await self.db.execute(query)
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Error loading session messages: %s", str(e))
            self.workspace.replace_messages([], has_more=False)
            self.workspace.notifications.error("Failed to load chat messages for this session.")
            return []

        entries = [MessageEntry.from_row(row) for row in reversed(rows)]
        self.workspace.replace_messages(entries, has_more=page_is_full(len(rows), page_size))
        return entries

    async def load_older(self) -> list[MessageEntry]:
        """Prepend the page of messages just before the oldest loaded one."""
        session_id = self.workspace.active_session_id
        if session_id is None or not self.workspace.messages:
            return []

        oldest = self.workspace.messages[0]
        page_size = self.workspace.messages_per_page
        query = (
            self._session_messages(session_id)
            .where(
                or_(
                    ChatMessage.timestamp < oldest.timestamp,
                    and_(ChatMessage.timestamp == oldest.timestamp, ChatMessage.id < oldest.id),
                )
            )
            .order_by(ChatMessage.timestamp.desc(), ChatMessage.id.desc())
            .limit(page_size)
        )
        try:
            result = await self.db.execute(query)
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Error loading older messages: %s", str(e))
            self.workspace.notifications.error("Failed to load older messages.")
            return []

        older = [MessageEntry.from_row(row) for row in reversed(rows)]
        self.workspace.prepend_messages(older, has_more=page_is_full(len(rows), page_size))
        return older

    async def _insert(self, row: ChatMessage, failure_message: str) -> MessageEntry:
        entry = MessageEntry.from_row(row, sync_state=SyncState.PENDING)
        self.workspace.append_message(entry)
        self.db.add(row)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("%s: %s", failure_message, str(e))
            self.workspace.update_message(entry.id, sync_state=SyncState.FAILED)
            raise ChatStoreError(failure_message) from e
        return self.workspace.update_message(entry.id, sync_state=SyncState.CONFIRMED)

    async def append_user_message(
        self,
        session_id: UUID,
        content: str,
        document_ids: list[str] | None = None,
        note_ids: list[str] | None = None,
        image_url: str | None = None,
        image_mime_type: str | None = None,
    ) -> MessageEntry:
        row = ChatMessage(
            id=uuid4(),
            session_id=session_id,
            user_id=self.workspace.user_id,
            role=MessageRole.USER,
            content=content,
            timestamp=utc_now(),
            is_error=False,
            attached_document_ids=normalize_ids(document_ids),
            attached_note_ids=normalize_ids(note_ids),
            image_url=image_url,
            image_mime_type=image_mime_type,
        )
        return await self._insert(row, "Failed to save your message")

    async def insert_assistant_message(
        self,
        session_id: UUID,
        content: str,
        is_error: bool = False,
        original_user_message_content: str | None = None,
    ) -> MessageEntry:
        row = ChatMessage(
            id=uuid4(),
            session_id=session_id,
            user_id=self.workspace.user_id,
            role=MessageRole.ASSISTANT,
            content=content,
            timestamp=utc_now(),
            is_error=is_error,
            attached_document_ids=[],
            attached_note_ids=[],
            original_user_message_content=original_user_message_content,
        )
        return await self._insert(row, "Failed to save AI response")

    async def update_message(self, message_id: UUID, **changes) -> MessageEntry:
        """Rewrite content, timestamp or error flag of a stored message."""
        session_id = self.workspace.active_session_id
        entry = self.workspace.update_message(message_id, sync_state=SyncState.PENDING, **changes)
        if entry is None:
            raise MessageNotFoundError()

        try:
            await self.db.execute(
                update(ChatMessage)
                .where(ChatMessage.id == message_id, ChatMessage.session_id == session_id)
                .values(**changes)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Error updating message %s: %s", message_id, str(e))
            self.workspace.update_message(message_id, sync_state=SyncState.FAILED)
            raise ChatStoreError("Failed to save AI response") from e
        return self.workspace.update_message(message_id, sync_state=SyncState.CONFIRMED)

    async def delete(self, message_id: UUID) -> None:
        session_id = self.workspace.active_session_id
        index, entry = self.workspace.remove_message(message_id)
        if entry is None:
            raise MessageNotFoundError()
        self.workspace.notifications.info("Deleting message...", key="message-delete")

        try:
            await self.db.execute(
                delete(ChatMessage).where(
                    ChatMessage.id == message_id,
                    ChatMessage.session_id == session_id,
                    ChatMessage.user_id == self.workspace.user_id,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Error deleting message from DB: %s", str(e))
            self.workspace.restore_message(index, replace(entry, sync_state=SyncState.FAILED))
            self.workspace.notifications.error("Failed to delete message from database.", key="message-delete")
            raise ChatStoreError("Failed to delete message") from e

        self.workspace.notifications.success("Message deleted successfully.", key="message-delete")
