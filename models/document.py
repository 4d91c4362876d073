"""
Document model for uploaded study material.
"""

import enum

from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class DocumentType(str, enum.Enum):
    """Kind of uploaded document."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"


class ProcessingStatus(str, enum.Enum):
    """Extraction state of a document."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Document(BaseModel):
    """
    Represents an uploaded file and the text extracted from it.

    ``file_url`` is the public storage URL and the canonical reference to
    the file everywhere else in the system.
    """

    __tablename__ = "documents"

    user_id = Column(UUID(), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_url = Column(Text, nullable=True)
    file_type = Column(String(150), nullable=True)
    file_size = Column(Integer, nullable=True)
    type = Column(String(20), nullable=False, default=DocumentType.TEXT.value)
    processing_status = Column(String(20), nullable=False, default=ProcessingStatus.PENDING.value)
    processing_error = Column(Text, nullable=True)
    content_extracted = Column(Text, nullable=True)

    # Relationships
    user = relationship("User", back_populates="documents")
