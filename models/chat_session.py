"""
Chat session model for AI assistant conversations.
"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, utc_now


class ChatSession(BaseModel):
    """
    Represents a chat session entity in the application.

    ``document_ids`` always mirrors the attachment set of the most recent
    message sent in the session.
    """

    __tablename__ = "chat_sessions"

    user_id = Column(UUID(), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="New Chat")
    last_message_at = Column(DateTime, nullable=False, default=utc_now, index=True)
    document_ids = Column(JSON, nullable=False, default=list)

    # Relationships
    user = relationship("User", back_populates="chat_sessions")
    messages = relationship(
        "ChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ChatMessage.timestamp",
    )
