"""Note API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, get_functions_service, validate_token
from app.domains.document.service import DocumentService
from app.domains.note.service import NoteService
from app.schemas.base import ResponseSchema
from app.schemas.note import NoteCreate, NoteResponse, NoteUpdate
from app.services.functions_service import FunctionsService
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/notes",
    tags=["notes"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)


@router.post("/", response_model=ResponseSchema, status_code=201)
async def create_note(
    _request: Request,
    note_data: NoteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new note."""
    service = NoteService(db)
    note = await service.create_note(note_data, current_user.id)

    return ResponseSchema(
        status="success",
        message="Note created successfully",
        data=NoteResponse.model_validate(note).model_dump(mode="json"),
    )


@router.get("/", response_model=ResponseSchema)
async def list_notes(
    _request: Request,
    category: str | None = Query(None, description="Only notes in this category"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = NoteService(db)
    notes = await service.list_notes(current_user.id, category=category)

    return ResponseSchema(
        status="success",
        message="Notes retrieved successfully",
        data={
            "notes": [NoteResponse.model_validate(n).model_dump(mode="json") for n in notes],
            "total": len(notes),
        },
    )


@router.get("/{note_id}", response_model=ResponseSchema)
async def get_note(
    _request: Request,
    note_id: UUID = Path(..., description="Note ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = NoteService(db)
    note = await service.get_note(note_id, current_user.id)

    return ResponseSchema(
        status="success",
        message="Note retrieved successfully",
        data=NoteResponse.model_validate(note).model_dump(mode="json"),
    )


@router.put("/{note_id}", response_model=ResponseSchema)
async def update_note(
    _request: Request,
    note_data: NoteUpdate,
    note_id: UUID = Path(..., description="Note ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a note."""
    service = NoteService(db)
    note = await service.update_note(note_id, note_data, current_user.id)

    return ResponseSchema(
        status="success",
        message="Note saved successfully!",
        data=NoteResponse.model_validate(note).model_dump(mode="json"),
    )


@router.delete("/{note_id}", response_model=ResponseSchema)
async def delete_note(
    _request: Request,
    note_id: UUID = Path(..., description="Note ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a note."""
    service = NoteService(db)
    await service.delete_note(note_id, current_user.id)

    return ResponseSchema(status="success", message="Note deleted successfully", data=None)


@router.post("/{note_id}/regenerate", response_model=ResponseSchema)
async def regenerate_note(
    _request: Request,
    note_id: UUID = Path(..., description="Note ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    functions: FunctionsService = Depends(get_functions_service),
):
    """Generate the note's content again from its linked document."""
    service = DocumentService(db, current_user, functions)
    note = await service.regenerate_note(note_id)

    return ResponseSchema(
        status="success",
        message="Note regenerated successfully!",
        data=NoteResponse.model_validate(note).model_dump(mode="json"),
    )
