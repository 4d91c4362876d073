"""Document schemas for request/response serialization."""

from uuid import UUID

from pydantic import Field

from .base import BaseModelSchema, BaseSchema
from .note import NoteResponse


class DocumentResponse(BaseModelSchema):
    """Schema for document response."""

    user_id: UUID
    title: str
    file_name: str
    file_url: str | None = None
    file_type: str | None = None
    file_size: int | None = None
    type: str
    processing_status: str
    processing_error: str | None = None
    content_extracted: str | None = None


class DocumentUploadResponse(BaseSchema):
    """Result of an upload: either sections to choose from or the generated note."""

    document: DocumentResponse
    sections: list[str] = Field(default_factory=list)
    note: NoteResponse | None = None


class GenerateNoteRequest(BaseSchema):
    """Schema for generating a note from a processed document."""

    selected_section: str | None = Field(None, description="Section to focus on, or the whole document")
    note_id: UUID | None = Field(None, description="Existing note to overwrite")
