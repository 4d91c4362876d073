"""
Models package initialization.
"""

from .audio_processing_result import AudioJobStatus, AudioProcessingResult
from .base import Base, BaseModel, utc_now
from .chat_message import ChatMessage, MessageRole
from .chat_session import ChatSession
from .document import Document, DocumentType, ProcessingStatus
from .note import Note
from .user import User

__all__ = [
    "Base",
    "BaseModel",
    "utc_now",
    "User",
    # Chat models
    "ChatSession",
    "ChatMessage",
    "MessageRole",
    # Study material
    "Document",
    "DocumentType",
    "ProcessingStatus",
    "Note",
    "AudioProcessingResult",
    "AudioJobStatus",
]
