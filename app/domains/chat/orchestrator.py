"""AI response orchestration for the chat workspace.

Builds the conversation history sent to the model, asks the model for an
answer and reconciles the outcome with the buffer and the database, either
as a new assistant message or by rewriting an existing one in place.
"""

import logging
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.domains.chat.context_builder import build_context
from app.domains.chat.message_store import MessageStore
from app.domains.chat.session_store import SessionStore
from app.domains.chat.state import ChatWorkspace, MessageEntry, SyncState, normalize_ids
from app.exceptions.ai import AIConfigurationError, AIEmptyResponseError
from app.exceptions.base import AuthenticationRequiredError
from app.exceptions.chat import (
    ChatSessionNotFoundError,
    ChatStoreError,
    EmptySubmissionError,
    InvalidChatOperationError,
    MessageNotFoundError,
    SubmissionInProgressError,
)
from app.schemas.user import LearningProfile
from models import Document, DocumentType, MessageRole, Note, User, utc_now

logger = logging.getLogger(__name__)

THINKING_PLACEHOLDER = "AI is thinking..."
HISTORY_CONTEXT_PREFIX = "\n\nContext from previous attachments:\n"
CURRENT_CONTEXT_PREFIX = "\n\nContext from attachments:\n"
RESPONSE_NOTIFICATION_KEY = "ai-response"


class ChatClient(Protocol):
    async def generate_reply(self, chat_history: list[dict], profile: LearningProfile) -> str: ...


def _as_uuids(ids) -> list[UUID]:
    result = []
    for value in ids or []:
        try:
            result.append(value if isinstance(value, UUID) else UUID(str(value)))
        except ValueError:
            logger.warning("Ignoring malformed attachment id %r", value)
    return result


def _strip_data_url(data: str) -> str:
    """Return the base64 payload of a data URL, or the input unchanged."""
    if data.startswith("data:") and "," in data:
        return data.split(",", 1)[1]
    return data


def _failure_reason(error: Exception) -> str:
    return str(error) or "Unknown error"


class ChatOrchestrator:
    def __init__(
        self,
        db: AsyncSession,
        workspace: ChatWorkspace,
        sessions: SessionStore,
        messages: MessageStore,
        chat_client: ChatClient | None,
        profile: LearningProfile,
    ):
        self.db = db
        self.workspace = workspace
        self.sessions = sessions
        self.messages = messages
        self.chat_client = chat_client
        self.profile = profile

    # ----- study material -----

    async def _load_material(self, document_ids, note_ids) -> tuple[list[Document], list[Note]]:
        doc_uuids = _as_uuids(document_ids)
        note_uuids = _as_uuids(note_ids)
        documents: list[Document] = []
        notes: list[Note] = []

        if doc_uuids:
            result = await self.db.execute(
                select(Document)
                .where(Document.id.in_(doc_uuids), Document.user_id == self.workspace.user_id)
                .order_by(Document.created_at)
                .execution_options(populate_existing=True)
            )
            documents = list(result.scalars().all())

        if note_uuids:
            result = await self.db.execute(
                select(Note)
                .where(Note.id.in_(note_uuids), Note.user_id == self.workspace.user_id)
                .order_by(Note.created_at)
                .execution_options(populate_existing=True)
            )
            notes = list(result.scalars().all())

        return documents, notes

    async def _refresh_image_document(self, image_url: str, document_ids: list[str]) -> Document | None:
        """Re-read the image document behind ``image_url`` so its extracted text is current."""
        result = await self.db.execute(
            select(Document)
            .where(
                Document.id.in_(_as_uuids(document_ids)),
                Document.user_id == self.workspace.user_id,
                Document.type == DocumentType.IMAGE.value,
                Document.file_url == image_url,
            )
            .execution_options(populate_existing=True)
        )
        document = result.scalars().first()
        if document is None:
            logger.warning("No image document matches %s; AI might not get full image context", image_url)
        return document

    # ----- history -----

    def _history_before(self, anchor_id: UUID | None, exclude: set[UUID]) -> list[MessageEntry]:
        """Messages preceding ``anchor_id`` that are sent to the model as history."""
        history = []
        for message in self.workspace.messages:
            if message.id == anchor_id:
                break
            if message.id in exclude or message.is_error:
                continue
            if message.sync_state == SyncState.FAILED:
                continue
            history.append(message)
        return history

    def _context(self, document_ids, note_ids, documents, notes) -> str:
        return build_context(
            document_ids,
            note_ids,
            documents,
            notes,
            document_limit=settings.context_document_char_limit,
            note_limit=settings.context_note_char_limit,
        )

    def build_chat_history(
        self,
        history: list[MessageEntry],
        content: str,
        document_ids: list[str],
        note_ids: list[str],
        documents: list[Document],
        notes: list[Note],
        image_data: str | None = None,
        image_mime_type: str | None = None,
    ) -> list[dict]:
        chat_history = []
        for message in history:
            if message.role == MessageRole.USER:
                parts = [{"text": message.content}]
                if message.attached_document_ids or message.attached_note_ids:
                    context = self._context(
                        message.attached_document_ids, message.attached_note_ids, documents, notes
                    )
                    if context:
                        parts.append({"text": HISTORY_CONTEXT_PREFIX + context})
                chat_history.append({"role": "user", "parts": parts})
            else:
                chat_history.append({"role": "model", "parts": [{"text": message.content}]})

        current_parts = []
        if content:
            current_parts.append({"text": content})
        context = self._context(document_ids, note_ids, documents, notes)
        if context:
            current_parts.append({"text": CURRENT_CONTEXT_PREFIX + context})
        if image_data and image_mime_type:
            current_parts.append(
                {"inline_data": {"mime_type": image_mime_type, "data": _strip_data_url(image_data)}}
            )
        chat_history.append({"role": "user", "parts": current_parts})
        return chat_history

    # ----- model call -----

    async def get_ai_response(
        self,
        content: str,
        session_id: UUID,
        document_ids: list[str],
        note_ids: list[str],
        anchor_id: UUID | None = None,
        target_message_id: UUID | None = None,
        replayed_user_id: UUID | None = None,
        image_data: str | None = None,
        image_mime_type: str | None = None,
    ) -> MessageEntry | None:
        """Ask the model for an answer and store it.

        With ``target_message_id`` the answer rewrites that assistant message;
        otherwise a new assistant message is inserted. A failed call leaves
        exactly one error-flagged assistant message behind and returns it.
        """
        self.workspace.begin_ai()
        try:
            history_anchor = target_message_id or anchor_id
            exclude = {i for i in (target_message_id, replayed_user_id, anchor_id) if i is not None}
            history = self._history_before(history_anchor, exclude)

            try:
                if self.chat_client is None:
                    raise AIConfigurationError("AI service is not properly configured")

                all_doc_ids = set(document_ids)
                all_note_ids = set(note_ids)
                for message in history:
                    all_doc_ids.update(message.attached_document_ids)
                    all_note_ids.update(message.attached_note_ids)
                documents, notes = await self._load_material(all_doc_ids, all_note_ids)

                chat_history = self.build_chat_history(
                    history, content, document_ids, note_ids, documents, notes, image_data, image_mime_type
                )
                reply = await self.chat_client.generate_reply(chat_history, self.profile)
                if not reply:
                    raise AIEmptyResponseError()
            except Exception as e:
                return await self._record_failure(e, content, session_id, target_message_id)

            if target_message_id is not None:
                entry = await self.messages.update_message(
                    target_message_id, content=reply, timestamp=utc_now(), is_error=False
                )
            else:
                entry = await self.messages.insert_assistant_message(session_id, reply)

            await self.sessions.touch(session_id, document_ids)
            self.workspace.notifications.dismiss(RESPONSE_NOTIFICATION_KEY)
            return entry
        finally:
            self.workspace.end_ai()

    async def _record_failure(
        self,
        error: Exception,
        content: str,
        session_id: UUID,
        target_message_id: UUID | None,
    ) -> MessageEntry | None:
        reason = _failure_reason(error)
        logger.error("AI response failed for session %s: %s", session_id, reason)
        self.workspace.notifications.error(f"Failed to get AI response: {reason}", key=RESPONSE_NOTIFICATION_KEY)

        try:
            if target_message_id is not None:
                return await self.messages.update_message(
                    target_message_id,
                    content=f"Failed to regenerate response: {reason}. Please try again.",
                    timestamp=utc_now(),
                    is_error=True,
                )
            return await self.messages.insert_assistant_message(
                session_id,
                f"I'm sorry, I couldn't generate a response: {reason}. Please try again.",
                is_error=True,
                original_user_message_content=content,
            )
        except ChatStoreError:
            # The entry stays in the buffer flagged as failed
            logger.error("Could not store the failed AI response for session %s", session_id)
            if target_message_id is not None:
                return self.workspace.find_message(target_message_id)
            return self.workspace.messages[-1] if self.workspace.messages else None

    # ----- entry points -----

    async def submit(
        self,
        user: User | None,
        content: str,
        document_ids: list[str] | None = None,
        note_ids: list[str] | None = None,
        image_url: str | None = None,
        image_mime_type: str | None = None,
        image_data: str | None = None,
    ) -> MessageEntry | None:
        """Store a user message and answer it, creating a session when none is active."""
        trimmed = (content or "").strip()
        document_ids = normalize_ids(document_ids)
        note_ids = normalize_ids(note_ids)
        if not trimmed and not document_ids and not note_ids and not image_url:
            raise EmptySubmissionError()

        self.workspace.begin_submission()
        try:
            if user is None:
                self.workspace.notifications.error("You must be logged in to chat.")
                raise AuthenticationRequiredError("You must be logged in to chat.")

            session_id = self.workspace.active_session_id
            if session_id is not None and not await self.sessions.validate_active():
                session_id = None

            self.workspace.select_documents(document_ids)

            if session_id is None:
                created = await self.sessions.create(user.id)
                if created is None:
                    self.workspace.notifications.error("Failed to create chat session. Please try again.")
                    raise ChatStoreError("Failed to create chat session. Please try again.")
                self.workspace.notifications.info("New chat session created.")
                session_id = created.id

            if image_url and document_ids:
                await self._refresh_image_document(image_url, document_ids)

            try:
                user_entry = await self.messages.append_user_message(
                    session_id,
                    trimmed,
                    document_ids=document_ids,
                    note_ids=note_ids,
                    image_url=image_url,
                    image_mime_type=image_mime_type,
                )
            except ChatStoreError as e:
                self.workspace.notifications.error(f"Failed to send message: {e.message}")
                raise

            reply = await self.get_ai_response(
                trimmed,
                session_id,
                document_ids,
                note_ids,
                anchor_id=user_entry.id,
                image_data=image_data,
                image_mime_type=image_mime_type,
            )
            await self.sessions.set_document_ids(session_id, document_ids)
            return reply
        finally:
            self.workspace.end_submission()

    def _require_active_session(self) -> UUID:
        session_id = self.workspace.active_session_id
        if session_id is None:
            self.workspace.notifications.error("Authentication required or no active chat session.")
            raise ChatSessionNotFoundError("No active chat session")
        return session_id

    def _show_placeholder(self, message_id: UUID) -> None:
        self.workspace.update_message(
            message_id,
            content=THINKING_PLACEHOLDER,
            timestamp=utc_now(),
            is_error=False,
            sync_state=SyncState.PENDING,
        )

    async def regenerate(self) -> MessageEntry | None:
        """Answer the last user message again, rewriting the last assistant message."""
        session_id = self._require_active_session()
        last_user = self.workspace.last_message(MessageRole.USER)
        last_assistant = self.workspace.last_message(MessageRole.ASSISTANT)

        if last_user is None:
            self.workspace.notifications.info("No previous user message to regenerate from.")
            raise InvalidChatOperationError("No previous user message to regenerate from.")
        if last_assistant is None:
            self.workspace.notifications.info("No previous AI message to regenerate.")
            raise InvalidChatOperationError("No previous AI message to regenerate.")
        if self.workspace.is_busy:
            raise SubmissionInProgressError()

        self._show_placeholder(last_assistant.id)
        self.workspace.notifications.info("Regenerating response...", key=RESPONSE_NOTIFICATION_KEY)
        return await self.get_ai_response(
            last_user.content,
            session_id,
            last_user.attached_document_ids,
            last_user.attached_note_ids,
            target_message_id=last_assistant.id,
            replayed_user_id=last_user.id,
        )

    def _find_original_user_message(self, failed: MessageEntry) -> MessageEntry | None:
        original = failed.original_user_message_content
        users = [m for m in self.workspace.messages if m.role == MessageRole.USER]
        if original is not None:
            return next((m for m in reversed(users) if m.content == original), None)

        # Failed regenerations keep no original text; answer the user turn before them
        preceding = None
        for message in self.workspace.messages:
            if message.id == failed.id:
                break
            if message.role == MessageRole.USER:
                preceding = message
        return preceding

    async def retry(self, message_id: UUID) -> MessageEntry | None:
        """Answer again the user message behind a failed assistant message."""
        session_id = self._require_active_session()
        failed = self.workspace.find_message(message_id)
        if failed is None or failed.role != MessageRole.ASSISTANT:
            raise MessageNotFoundError()

        user_message = self._find_original_user_message(failed)
        if user_message is None:
            self.workspace.notifications.error("Could not find original user message to retry.")
            raise InvalidChatOperationError("Could not find original user message to retry.")
        if self.workspace.is_busy:
            raise SubmissionInProgressError()

        self._show_placeholder(failed.id)
        self.workspace.notifications.info("Retrying message...", key=RESPONSE_NOTIFICATION_KEY)
        return await self.get_ai_response(
            user_message.content,
            session_id,
            user_message.attached_document_ids,
            user_message.attached_note_ids,
            target_message_id=failed.id,
            replayed_user_id=user_message.id,
        )
