"""
Chat message model for AI assistant messages.
"""

import enum

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, utc_now


class MessageRole(str, enum.Enum):
    """Message role enumeration."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """
    Represents a chat message entity in the application.

    Attachment ids are written once on insert and never rewritten; they are
    what lets a regenerated answer see the same context as the original one.
    """

    __tablename__ = "chat_messages"

    session_id = Column(UUID(), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(), ForeignKey("users.id"), nullable=False)
    role = Column(Enum(MessageRole, values_callable=lambda roles: [r.value for r in roles]), nullable=False)
    content = Column(Text, nullable=False, default="")
    timestamp = Column(DateTime, nullable=False, default=utc_now, index=True)
    is_error = Column(Boolean, nullable=False, default=False)

    attached_document_ids = Column(JSON, nullable=False, default=list)
    attached_note_ids = Column(JSON, nullable=False, default=list)
    image_url = Column(Text, nullable=True)
    image_mime_type = Column(String(100), nullable=True)

    # Only set on failed assistant messages, so the turn can be retried
    original_user_message_content = Column(Text, nullable=True)

    # Relationships
    session = relationship("ChatSession", back_populates="messages")
