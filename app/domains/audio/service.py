"""Audio upload and processing jobs."""

import logging
import time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.domains.audio.poller import AudioJobRegistry, AudioJobState
from app.domains.document.service import check_file_size
from app.exceptions.base import BaseAppException, ValidationError
from app.exceptions.remote import (
    AudioJobNotFoundError,
    DocumentNotFoundError,
    NoteNotFoundError,
    RemoteResponseError,
    UnsupportedFileTypeError,
)
from app.services.functions_service import (
    AUDIO_SUMMARIZE,
    AUDIO_TRANSCRIBE,
    AUDIO_TRANSLATE,
    FunctionsService,
)
from app.services.storage_service import StorageService, safe_file_name
from app.shared.notifications import NotificationCenter
from models import Document, DocumentType, Note, ProcessingStatus, User

logger = logging.getLogger(__name__)

ALLOWED_AUDIO_TYPES = ["audio/mpeg", "audio/wav", "audio/mp4", "audio/x-m4a", "audio/webm"]

# action -> (function, flag set on the job state, progress message)
AUDIO_ACTIONS = {
    "transcribe": (AUDIO_TRANSCRIBE, "is_generating_audio_note", "Transcribing audio..."),
    "summarize": (AUDIO_SUMMARIZE, "is_generating_audio_summary", "Generating audio summary..."),
    "translate": (AUDIO_TRANSLATE, "is_translating_audio", "Translating audio to {language}..."),
}


def audio_upload_path(user_id: UUID, file_name: str) -> str:
    return f"{user_id}/audio/{int(time.time() * 1000)}_{safe_file_name(file_name)}"


class AudioService:
    def __init__(
        self,
        db: AsyncSession,
        user: User,
        functions: FunctionsService,
        jobs: AudioJobRegistry,
        notifications: NotificationCenter,
        session_factory: async_sessionmaker[AsyncSession],
        storage: StorageService | None = None,
    ):
        self.db = db
        self.user = user
        self.functions = functions
        self.jobs = jobs
        self.notifications = notifications
        self.session_factory = session_factory
        self.storage = storage

    async def upload_audio(self, file_name: str, content_type: str, data: bytes) -> dict:
        """Store an audio file and return what the processing step needs."""
        if content_type not in ALLOWED_AUDIO_TYPES:
            raise UnsupportedFileTypeError(
                "Unsupported audio file type. Please upload an MP3, WAV, M4A, or WebM file.",
                allowed=ALLOWED_AUDIO_TYPES,
            )
        check_file_size(len(data))

        url = await self.storage.upload(audio_upload_path(self.user.id, file_name), data, content_type)
        self.notifications.success("Audio file uploaded. Processing options available.")
        return {
            "audio_url": url,
            "file_type": content_type,
            "file_name": file_name,
            "is_audio_options_visible": True,
        }

    async def _get_note(self, note_id: UUID) -> Note:
        result = await self.db.execute(select(Note).where(Note.id == note_id, Note.user_id == self.user.id))
        note = result.scalar_one_or_none()
        if not note:
            raise NoteNotFoundError()
        return note

    async def _create_audio_document(self, audio_url: str, file_type: str, file_name: str, note: Note | None) -> UUID:
        document = Document(
            user_id=self.user.id,
            title=file_name,
            file_name=file_name,
            file_url=audio_url,
            file_type=file_type,
            type=DocumentType.AUDIO.value,
            processing_status=ProcessingStatus.PENDING.value,
        )
        try:
            self.db.add(document)
            await self.db.flush()
            if note is not None:
                note.document_id = document.id
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to create document record for audio: {str(e)}") from e
        return document.id

    async def process(
        self,
        action: str,
        audio_url: str,
        file_type: str,
        file_name: str,
        target_language: str | None = None,
        document_id: UUID | None = None,
        note_id: UUID | None = None,
    ) -> AudioJobState:
        """Start an audio job and begin polling its status."""
        if action not in AUDIO_ACTIONS:
            raise ValidationError("Invalid audio processing action.")
        function_name, flag, progress = AUDIO_ACTIONS[action]
        if action == "translate" and not target_language:
            raise ValidationError("A target language is required for translation.")

        note = await self._get_note(note_id) if note_id else None
        if document_id is None:
            document_id = await self._create_audio_document(audio_url, file_type, file_name, note)
        else:
            result = await self.db.execute(
                select(Document.id).where(Document.id == document_id, Document.user_id == self.user.id)
            )
            if result.scalar_one_or_none() is None:
                raise DocumentNotFoundError()

        self.notifications.loading(progress.format(language=target_language), key=f"audio-{action}")
        try:
            data = await self.functions.invoke(
                function_name,
                {
                    "audioUrl": audio_url,
                    "fileType": file_type,
                    "userId": str(self.user.id),
                    "documentId": str(document_id),
                    "targetLanguage": target_language,
                },
            )
            job_id = self._job_id(data)
        except BaseAppException as e:
            self.notifications.error(e.message, key=f"audio-{action}")
            raise

        self.notifications.success(
            "Audio processing job started. We will notify you when it's done!", key=f"audio-{action}"
        )
        state = AudioJobState(
            job_id=job_id,
            user_id=self.user.id,
            action=action,
            note_id=note_id,
            document_id=document_id,
        )
        setattr(state, flag, True)
        poller = self.jobs.start(
            state, self.session_factory, self.notifications, settings.audio_poll_interval_seconds
        )
        logger.info("Started audio %s job %s", action, job_id)
        return poller.state

    @staticmethod
    def _job_id(data: dict) -> UUID:
        if not data.get("jobId"):
            raise RemoteResponseError("No job ID received from audio processing function.")
        try:
            return UUID(str(data["jobId"]))
        except ValueError as e:
            raise RemoteResponseError(f"Invalid job ID received: {data['jobId']}") from e

    def get_job(self, job_id: UUID) -> AudioJobState:
        poller = self.jobs.collect(job_id, self.user.id)
        if poller is None:
            raise AudioJobNotFoundError()
        return poller.state

    async def stop_job(self, job_id: UUID) -> AudioJobState:
        if self.jobs.get(job_id, self.user.id) is None:
            raise AudioJobNotFoundError()
        poller = await self.jobs.stop(job_id)
        return poller.state
