"""Per-user chat workspace.

The workspace is the in-process view of one user's chat: the cached session
list and its window, the active session, the message buffer, the two
submission flags, the selected documents and the notification feed. Stores
and the orchestrator change it only through the methods below.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from uuid import UUID

from app.exceptions.chat import SubmissionInProgressError
from app.shared.notifications import NotificationCenter
from app.shared.pagination import WindowPagination
from models import ChatMessage, ChatSession, MessageRole

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


def normalize_ids(ids) -> list[str]:
    """Return attachment ids as a de-duplicated list of strings, order kept."""
    seen = []
    for item in ids or []:
        value = str(item)
        if value and value not in seen:
            seen.append(value)
    return seen


@dataclass
class SessionEntry:
    id: UUID
    title: str
    created_at: datetime
    updated_at: datetime
    last_message_at: datetime
    document_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: ChatSession) -> "SessionEntry":
        return cls(
            id=row.id,
            title=row.title,
            created_at=row.created_at,
            updated_at=row.updated_at,
            last_message_at=row.last_message_at,
            document_ids=normalize_ids(row.document_ids),
        )


@dataclass
class MessageEntry:
    id: UUID
    session_id: UUID
    role: MessageRole
    content: str
    timestamp: datetime
    is_error: bool = False
    attached_document_ids: list[str] = field(default_factory=list)
    attached_note_ids: list[str] = field(default_factory=list)
    image_url: str | None = None
    image_mime_type: str | None = None
    original_user_message_content: str | None = None
    sync_state: SyncState = SyncState.CONFIRMED

    @classmethod
    def from_row(cls, row: ChatMessage, sync_state: SyncState = SyncState.CONFIRMED) -> "MessageEntry":
        return cls(
            id=row.id,
            session_id=row.session_id,
            role=MessageRole(row.role),
            content=row.content,
            timestamp=row.timestamp,
            is_error=bool(row.is_error),
            attached_document_ids=normalize_ids(row.attached_document_ids),
            attached_note_ids=normalize_ids(row.attached_note_ids),
            image_url=row.image_url,
            image_mime_type=row.image_mime_type,
            original_user_message_content=row.original_user_message_content,
            sync_state=sync_state,
        )


class ChatWorkspace:
    def __init__(self, user_id: UUID, sessions_per_page: int = 10, messages_per_page: int = 20):
        self.user_id = user_id
        self.session_window = WindowPagination(step=sessions_per_page)
        self.messages_per_page = messages_per_page

        self.sessions: list[SessionEntry] = []
        self.has_more_sessions = False
        self.active_session_id: UUID | None = None

        self.messages: list[MessageEntry] = []
        self.has_more_messages = False

        self.is_ai_loading = False
        self.is_submitting_user_message = False
        self.selected_document_ids: list[str] = []

        self.notifications = NotificationCenter()

    # ----- sessions -----

    def set_sessions(self, sessions: list[SessionEntry], has_more: bool) -> None:
        self.sessions = list(sessions)
        self.has_more_sessions = has_more

    def find_session(self, session_id: UUID) -> SessionEntry | None:
        return next((s for s in self.sessions if s.id == session_id), None)

    def rename_session(self, session_id: UUID, title: str) -> None:
        self.sessions = [replace(s, title=title) if s.id == session_id else s for s in self.sessions]

    def touch_session(self, session_id: UUID, document_ids: list[str], at: datetime) -> None:
        """Move a session to ``at`` with a new attachment set and re-sort."""
        updated = [
            replace(s, last_message_at=at, document_ids=normalize_ids(document_ids))
            if s.id == session_id
            else s
            for s in self.sessions
        ]
        self.sessions = sorted(updated, key=lambda s: s.last_message_at, reverse=True)

    def activate_session(self, session_id: UUID) -> None:
        """Switch sessions. The caller reloads the buffer."""
        self.active_session_id = session_id
        self.messages = []
        self.has_more_messages = False
        session = self.find_session(session_id)
        if session is not None:
            self.selected_document_ids = list(session.document_ids)

    def clear_active_session(self) -> None:
        self.active_session_id = None
        self.messages = []
        self.has_more_messages = False
        self.selected_document_ids = []

    def select_documents(self, document_ids) -> None:
        self.selected_document_ids = normalize_ids(document_ids)

    # ----- messages -----

    def replace_messages(self, messages: list[MessageEntry], has_more: bool) -> None:
        self.messages = list(messages)
        self.has_more_messages = has_more

    def prepend_messages(self, older: list[MessageEntry], has_more: bool) -> int:
        known = {m.id for m in self.messages}
        fresh = [m for m in older if m.id not in known]
        self.messages = fresh + self.messages
        self.has_more_messages = has_more
        return len(fresh)

    def append_message(self, entry: MessageEntry) -> None:
        self.messages = [*self.messages, entry]

    def find_message(self, message_id: UUID) -> MessageEntry | None:
        return next((m for m in self.messages if m.id == message_id), None)

    def update_message(self, message_id: UUID, **changes) -> MessageEntry | None:
        updated = None
        messages = []
        for message in self.messages:
            if message.id == message_id:
                message = replace(message, **changes)
                updated = message
            messages.append(message)
        self.messages = messages
        return updated

    def remove_message(self, message_id: UUID) -> tuple[int, MessageEntry | None]:
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                self.messages = self.messages[:index] + self.messages[index + 1 :]
                return index, message
        return -1, None

    def restore_message(self, index: int, entry: MessageEntry) -> None:
        self.messages = self.messages[:index] + [entry] + self.messages[index:]

    def last_message(self, role: MessageRole) -> MessageEntry | None:
        return next((m for m in reversed(self.messages) if m.role == role), None)

    # ----- submission guard -----

    @property
    def is_busy(self) -> bool:
        return self.is_ai_loading or self.is_submitting_user_message

    def begin_submission(self) -> None:
        if self.is_busy:
            raise SubmissionInProgressError()
        self.is_submitting_user_message = True

    def end_submission(self) -> None:
        self.is_submitting_user_message = False

    def begin_ai(self) -> None:
        self.is_ai_loading = True

    def end_ai(self) -> None:
        self.is_ai_loading = False


class WorkspaceRegistry:
    """Holds one workspace per user for the lifetime of the process."""

    def __init__(self, sessions_per_page: int = 10, messages_per_page: int = 20):
        self.sessions_per_page = sessions_per_page
        self.messages_per_page = messages_per_page
        self._workspaces: dict[UUID, ChatWorkspace] = {}

    def get(self, user_id: UUID) -> ChatWorkspace:
        workspace = self._workspaces.get(user_id)
        if workspace is None:
            workspace = ChatWorkspace(
                user_id,
                sessions_per_page=self.sessions_per_page,
                messages_per_page=self.messages_per_page,
            )
            self._workspaces[user_id] = workspace
            logger.debug("Created chat workspace for user %s", user_id)
        return workspace

    def discard(self, user_id: UUID) -> None:
        self._workspaces.pop(user_id, None)

    def clear(self) -> None:
        self._workspaces.clear()

    def __len__(self) -> int:
        return len(self._workspaces)
