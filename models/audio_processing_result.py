"""
Status row written by the hosted audio-processing functions.
"""

import enum

from sqlalchemy import Column, ForeignKey, String, Text

from .base import UUID, BaseModel


class AudioJobStatus(str, enum.Enum):
    """Lifecycle of an audio processing job."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class AudioProcessingResult(BaseModel):
    """
    One audio transcription/summary/translation job.

    The row ``id`` is the job id handed back by the processing function; the
    function updates ``status`` and the result columns as it progresses.
    """

    __tablename__ = "audio_processing_results"

    user_id = Column(UUID(), ForeignKey("users.id"), nullable=False, index=True)
    document_id = Column(UUID(), ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), nullable=False, default=AudioJobStatus.PROCESSING.value)
    transcript = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    translated_content = Column(Text, nullable=True)
    target_language = Column(String(20), nullable=True)
    error_message = Column(Text, nullable=True)
