"""Shared schemas: ORM-backed base classes and the response envelopes."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema that reads from ORM rows."""

    model_config = ConfigDict(from_attributes=True)


class BaseModelSchema(BaseSchema):
    """Rows with an id and audit timestamps."""

    id: UUID
    created_at: datetime
    updated_at: datetime


class ResponseSchema(BaseSchema):
    """Envelope of every successful API answer."""

    status: Literal["success"] = "success"
    message: str | None = None
    data: dict[str, Any] | None = None


class ErrorResponse(BaseSchema):
    """Envelope of every error answer, built by the global exception handlers."""

    status: Literal["error"] = "error"
    message: str
    error_code: str
    details: Any = None
    timestamp: str
    request_id: str | None = None
