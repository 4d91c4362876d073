"""Note schemas for request/response serialization."""

from uuid import UUID

from pydantic import Field, field_validator

from .base import BaseModelSchema, BaseSchema

UNTITLED_NOTE = "Untitled Note"


def clean_tags(tags: list[str] | None) -> list[str]:
    """Trim tags and drop the empty ones."""
    return [tag.strip() for tag in tags or [] if tag and tag.strip()]


class NoteBase(BaseSchema):
    """Base note schema with common fields."""

    title: str = Field(default=UNTITLED_NOTE, max_length=255)
    content: str = Field(default="")
    category: str = Field(default="general", max_length=50)
    tags: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = (v or "").strip()
        return v or UNTITLED_NOTE

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return clean_tags(v)


class NoteCreate(NoteBase):
    """Schema for creating a new note."""

    document_id: UUID | None = None


class NoteUpdate(BaseSchema):
    """Schema for updating a note."""

    title: str | None = Field(None, max_length=255)
    content: str | None = None
    category: str | None = Field(None, max_length=50)
    tags: list[str] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip() or UNTITLED_NOTE

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return clean_tags(v)


class NoteResponse(BaseModelSchema):
    """Schema for note response."""

    user_id: UUID
    title: str
    content: str
    category: str
    tags: list[str] = Field(default_factory=list)
    ai_summary: str | None = None
    document_id: UUID | None = None
