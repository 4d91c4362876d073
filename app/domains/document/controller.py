"""Document API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Path, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import (
    get_current_user,
    get_db,
    get_functions_service,
    get_storage_service,
    validate_token,
)
from app.domains.document.service import DocumentService
from app.schemas.base import ResponseSchema
from app.schemas.document import DocumentResponse, DocumentUploadResponse, GenerateNoteRequest
from app.schemas.note import NoteResponse
from app.services.functions_service import FunctionsService
from app.services.storage_service import StorageService
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/documents",
    tags=["documents"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)


async def get_document_service(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    functions: FunctionsService = Depends(get_functions_service),
    storage: StorageService = Depends(get_storage_service),
) -> DocumentService:
    return DocumentService(db, current_user, functions, storage)


@router.post("/upload", response_model=ResponseSchema, status_code=201)
async def upload_document(
    _request: Request,
    file: UploadFile = File(...),
    note_id: UUID | None = Form(None),
    service: DocumentService = Depends(get_document_service),
):
    """Upload a document, extract its text and analyse its structure.

    When the document has sections the response lists them and no note is
    generated yet; otherwise the note generated from the whole document is
    returned.
    """
    data = await file.read()
    document, sections, note = await service.upload_document(
        file_name=file.filename or "document",
        content_type=file.content_type or "",
        data=data,
        note_id=note_id,
    )

    result = DocumentUploadResponse(
        document=DocumentResponse.model_validate(document),
        sections=sections,
        note=NoteResponse.model_validate(note) if note else None,
    )
    message = "Select a section to generate the note from" if sections else "New note generated from document!"
    return ResponseSchema(status="success", message=message, data=result.model_dump(mode="json"))


@router.get("/", response_model=ResponseSchema)
async def list_documents(
    _request: Request,
    type: str | None = Query(None, pattern="^(text|image|audio)$"),
    service: DocumentService = Depends(get_document_service),
):
    documents = await service.list_documents(document_type=type)

    return ResponseSchema(
        status="success",
        message="Documents retrieved successfully",
        data={
            "documents": [DocumentResponse.model_validate(d).model_dump(mode="json") for d in documents],
            "total": len(documents),
        },
    )


@router.get("/{document_id}", response_model=ResponseSchema)
async def get_document(
    _request: Request,
    document_id: UUID = Path(..., description="Document ID"),
    refresh: bool = Query(False, description="Re-read the row, e.g. after extraction finished"),
    service: DocumentService = Depends(get_document_service),
):
    if refresh:
        document = await service.refresh_document(document_id)
    else:
        document = await service.get_document(document_id)

    return ResponseSchema(
        status="success",
        message="Document loaded.",
        data=DocumentResponse.model_validate(document).model_dump(mode="json"),
    )


@router.post("/{document_id}/notes", response_model=ResponseSchema, status_code=201)
async def generate_note(
    _request: Request,
    payload: GenerateNoteRequest,
    document_id: UUID = Path(..., description="Document ID"),
    service: DocumentService = Depends(get_document_service),
):
    """Generate a note from the whole document or one of its sections."""
    note = await service.generate_note(
        document_id,
        selected_section=payload.selected_section,
        note_id=payload.note_id,
    )
    message = "Note updated from document!" if payload.note_id else "New note generated from document!"
    return ResponseSchema(
        status="success",
        message=message,
        data=NoteResponse.model_validate(note).model_dump(mode="json"),
    )


@router.delete("/{document_id}", response_model=ResponseSchema)
async def delete_document(
    _request: Request,
    document_id: UUID = Path(..., description="Document ID"),
    service: DocumentService = Depends(get_document_service),
):
    await service.delete_document(document_id)
    return ResponseSchema(status="success", message="Document deleted successfully", data=None)
