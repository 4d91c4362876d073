"""
Note model for user study notes.
"""

from sqlalchemy import JSON, Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class Note(BaseModel):
    """
    Represents a study note, optionally generated from a source document.
    """

    __tablename__ = "notes"

    user_id = Column(UUID(), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="Untitled Note")
    content = Column(Text, nullable=False, default="")
    category = Column(String(50), nullable=False, default="general")
    tags = Column(JSON, nullable=False, default=list)
    ai_summary = Column(Text, nullable=True)
    document_id = Column(UUID(), ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    user = relationship("User", back_populates="notes")
    document = relationship("Document")
