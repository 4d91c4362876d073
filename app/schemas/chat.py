"""Chat schemas for request/response serialization.

Message payloads use camelCase field names on the wire; everything else in
the chat API stays snake_case.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domains.chat.state import SyncState
from app.shared.notifications import NotificationLevel
from models import MessageRole

from .base import BaseSchema


class CamelSchema(BaseSchema):
    """Schema serialized with camelCase aliases, accepting either spelling."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class ChatSessionResponse(BaseSchema):
    """Schema for a cached chat session."""

    id: UUID
    title: str
    created_at: datetime
    updated_at: datetime
    last_message_at: datetime
    document_ids: list[str] = Field(default_factory=list)


class ChatMessageResponse(CamelSchema):
    """Schema for a buffered chat message."""

    id: UUID
    session_id: UUID
    content: str
    role: MessageRole
    timestamp: datetime
    is_error: bool = False
    attached_document_ids: list[str] = Field(default_factory=list)
    attached_note_ids: list[str] = Field(default_factory=list)
    image_url: str | None = None
    image_mime_type: str | None = None
    original_user_message_content: str | None = None
    sync_state: SyncState = SyncState.CONFIRMED


class NotificationResponse(BaseSchema):
    """Schema for a user-visible notification."""

    level: NotificationLevel
    message: str
    key: str | None = None
    persistent: bool = False
    created_at: datetime


class ChatStateResponse(BaseSchema):
    """Snapshot of a user's chat workspace."""

    sessions: list[ChatSessionResponse] = Field(default_factory=list)
    has_more_sessions: bool = False
    session_limit: int
    active_session_id: UUID | None = None
    messages: list[ChatMessageResponse] = Field(default_factory=list)
    has_more_messages: bool = False
    is_ai_loading: bool = False
    is_submitting_user_message: bool = False
    selected_document_ids: list[str] = Field(default_factory=list)
    notifications: list[NotificationResponse] = Field(default_factory=list)


class ChatSessionRename(BaseSchema):
    """Schema for renaming a session."""

    title: str = Field(..., min_length=1, max_length=255)


class ActiveSessionRequest(BaseSchema):
    """Schema for selecting a session, or clearing the selection with null."""

    session_id: UUID | None = None


class SelectedDocumentsRequest(BaseSchema):
    """Schema for replacing the selected document ids."""

    document_ids: list[str] = Field(default_factory=list)


class ChatMessageSubmit(CamelSchema):
    """Schema for sending a user message."""

    content: str = Field(default="", max_length=20000, description="Message text")
    attached_document_ids: list[str] = Field(default_factory=list)
    attached_note_ids: list[str] = Field(default_factory=list)
    image_url: str | None = Field(None, description="Public URL of an uploaded image")
    image_mime_type: str | None = Field(None, max_length=100)
    image_data: str | None = Field(None, description="Image as a base64 data URL, sent to the model only")
