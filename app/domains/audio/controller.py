"""Audio API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Path, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.dependencies import (
    get_audio_jobs,
    get_current_user,
    get_db,
    get_functions_service,
    get_session_factory,
    get_storage_service,
    get_workspace,
    validate_token,
)
from app.domains.audio.poller import AudioJobRegistry, AudioJobState
from app.domains.audio.service import AudioService
from app.domains.chat.state import ChatWorkspace
from app.schemas.audio import AudioJobResponse, AudioProcessRequest, AudioUploadResponse
from app.schemas.base import ResponseSchema
from app.schemas.chat import NotificationResponse
from app.services.functions_service import FunctionsService
from app.services.storage_service import StorageService
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/audio",
    tags=["audio"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)


async def get_audio_service(
    current_user: User = Depends(get_current_user),
    workspace: ChatWorkspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
    functions: FunctionsService = Depends(get_functions_service),
    storage: StorageService = Depends(get_storage_service),
    jobs: AudioJobRegistry = Depends(get_audio_jobs),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AudioService:
    return AudioService(
        db,
        current_user,
        functions,
        jobs,
        workspace.notifications,
        session_factory,
        storage,
    )


def _job_response(service: AudioService, state: AudioJobState) -> dict:
    notifications = [NotificationResponse.model_validate(n) for n in service.notifications.drain()]
    return AudioJobResponse(
        job_id=state.job_id,
        action=state.action,
        status=state.status,
        note_id=state.note_id,
        document_id=state.document_id,
        is_processing_audio=state.is_processing_audio,
        is_generating_audio_note=state.is_generating_audio_note,
        is_generating_audio_summary=state.is_generating_audio_summary,
        is_translating_audio=state.is_translating_audio,
        transcript=state.transcript,
        summary=state.summary,
        translated_content=state.translated_content,
        error_message=state.error_message,
        notifications=notifications,
    ).model_dump(mode="json")


@router.post("/upload", response_model=ResponseSchema, status_code=201)
async def upload_audio(
    _request: Request,
    file: UploadFile = File(...),
    service: AudioService = Depends(get_audio_service),
):
    """Upload an audio file for later processing."""
    data = await file.read()
    uploaded = await service.upload_audio(file.filename or "audio", file.content_type or "", data)

    return ResponseSchema(
        status="success",
        message="Audio file uploaded. Processing options available.",
        data=AudioUploadResponse(**uploaded).model_dump(),
    )


@router.post("/jobs", response_model=ResponseSchema, status_code=201)
async def start_audio_job(
    _request: Request,
    payload: AudioProcessRequest,
    service: AudioService = Depends(get_audio_service),
):
    """Start transcription, summary or translation of an uploaded audio file."""
    state = await service.process(
        payload.action,
        audio_url=payload.audio_url,
        file_type=payload.file_type,
        file_name=payload.file_name,
        target_language=payload.target_language,
        document_id=payload.document_id,
        note_id=payload.note_id,
    )
    return ResponseSchema(
        status="success",
        message="Audio processing job started. We will notify you when it's done!",
        data=_job_response(service, state),
    )


@router.get("/jobs/{job_id}", response_model=ResponseSchema)
async def get_audio_job(
    _request: Request,
    job_id: UUID = Path(..., description="Audio job ID"),
    service: AudioService = Depends(get_audio_service),
):
    state = service.get_job(job_id)
    return ResponseSchema(
        status="success",
        message="Audio job retrieved successfully",
        data=_job_response(service, state),
    )


@router.delete("/jobs/{job_id}", response_model=ResponseSchema)
async def stop_audio_job(
    _request: Request,
    job_id: UUID = Path(..., description="Audio job ID"),
    service: AudioService = Depends(get_audio_service),
):
    """Stop polling a job. Its status row is left as it is."""
    state = await service.stop_job(job_id)
    return ResponseSchema(
        status="success",
        message="Audio job polling stopped",
        data=_job_response(service, state),
    )
