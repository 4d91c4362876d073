"""Audio schemas for request/response serialization."""

from typing import Literal
from uuid import UUID

from pydantic import Field

from .base import BaseSchema
from .chat import NotificationResponse


class AudioUploadResponse(BaseSchema):
    """Where an uploaded audio file lives, ready for processing."""

    audio_url: str
    file_type: str
    file_name: str
    is_audio_options_visible: bool = True


class AudioProcessRequest(BaseSchema):
    """Schema for starting an audio processing job."""

    action: Literal["transcribe", "summarize", "translate"]
    audio_url: str = Field(..., min_length=1)
    file_type: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=255)
    target_language: str | None = Field(None, max_length=20)
    document_id: UUID | None = None
    note_id: UUID | None = None


class AudioJobResponse(BaseSchema):
    """Schema for the state of an audio job."""

    job_id: UUID
    action: str
    status: str
    note_id: UUID | None = None
    document_id: UUID | None = None
    is_processing_audio: bool
    is_generating_audio_note: bool
    is_generating_audio_summary: bool
    is_translating_audio: bool
    transcript: str | None = None
    summary: str | None = None
    translated_content: str | None = None
    error_message: str | None = None
    notifications: list[NotificationResponse] = Field(default_factory=list)
