"""Unit tests for audio uploads and job start-up."""

import json
import uuid

import httpx
import pytest
from sqlalchemy import select

from app.domains.audio.service import AudioService, audio_upload_path
from app.exceptions.base import ValidationError
from app.exceptions.remote import (
    AudioJobNotFoundError,
    DocumentNotFoundError,
    RemoteFunctionError,
    RemoteResponseError,
    UnsupportedFileTypeError,
)
from app.shared.notifications import NotificationCenter, NotificationLevel
from models import AudioJobStatus, Document, DocumentType, Note
from tests.factories import AudioProcessingResultFactory, DocumentFactory, NoteFactory
from tests.helpers import functions_service, persist, wait_until

AUDIO_URL = "https://storage.test/documents/user/audio/lecture.mp3"


@pytest.fixture
def notifications():
    return NotificationCenter()


def job_answer(job_id, calls: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append((request.url.path.rsplit("/", 1)[-1], json.loads(request.content)))
        return httpx.Response(200, json={"jobId": str(job_id)})

    return handler


def make_service(db, user, handler, jobs, notifications, session_factory, storage=None) -> AudioService:
    return AudioService(db, user, functions_service(handler), jobs, notifications, session_factory, storage)


class TestUpload:
    def test_upload_path_is_sanitised(self):
        path = audio_upload_path(uuid.uuid4(), "my lecture (1).mp3")
        assert path.split("/")[1] == "audio"
        assert path.endswith("_my_lecture__1_.mp3")

    async def test_upload_audio(self, test_db, test_user, audio_jobs, notifications, session_factory, fake_storage):
        service = make_service(
            test_db, test_user, job_answer(uuid.uuid4()), audio_jobs, notifications, session_factory, fake_storage
        )

        result = await service.upload_audio("lecture.mp3", "audio/mpeg", b"ID3")

        assert result["file_type"] == "audio/mpeg"
        assert result["file_name"] == "lecture.mp3"
        assert result["audio_url"].startswith("https://storage.test/documents/")
        assert result["is_audio_options_visible"] is True
        assert notifications.pending()[-1].level == NotificationLevel.SUCCESS

    async def test_upload_rejects_non_audio(
        self, test_db, test_user, audio_jobs, notifications, session_factory, fake_storage
    ):
        service = make_service(
            test_db, test_user, job_answer(uuid.uuid4()), audio_jobs, notifications, session_factory, fake_storage
        )

        with pytest.raises(UnsupportedFileTypeError) as exc_info:
            await service.upload_audio("notes.pdf", "application/pdf", b"%PDF")

        assert "MP3, WAV, M4A, or WebM" in exc_info.value.message


class TestProcess:
    """Starting processing jobs."""

    async def test_transcribe_creates_document_and_starts_polling(
        self, test_db, test_user, audio_jobs, notifications, session_factory
    ):
        """A new audio document is linked to the note and the job is tracked."""
        note = NoteFactory.build(user_id=test_user.id)
        job = AudioProcessingResultFactory.build(user_id=test_user.id)
        await persist(test_db, note, job)
        calls = []
        service = make_service(
            test_db, test_user, job_answer(job.id, calls), audio_jobs, notifications, session_factory
        )

        state = await service.process("transcribe", AUDIO_URL, "audio/mpeg", "lecture.mp3", note_id=note.id)

        assert state.job_id == job.id
        assert state.is_processing_audio is True
        assert state.is_generating_audio_note is True
        assert state.status == AudioJobStatus.PROCESSING.value
        assert audio_jobs.get(job.id, test_user.id) is not None

        name, body = calls[0]
        assert name == "process-audio-for-transcription"
        assert body["audioUrl"] == AUDIO_URL
        assert body["userId"] == str(test_user.id)
        assert body["targetLanguage"] is None

        document = (
            await test_db.execute(select(Document).where(Document.id == state.document_id))
        ).scalar_one()
        assert document.type == DocumentType.AUDIO.value
        stored_note = (
            await test_db.execute(select(Note).where(Note.id == note.id).execution_options(populate_existing=True))
        ).scalar_one()
        assert stored_note.document_id == document.id

        started = [n for n in notifications.pending() if n.key == "audio-transcribe"]
        assert started[0].message == "Audio processing job started. We will notify you when it's done!"

    async def test_translate_requires_language(self, test_db, test_user, audio_jobs, notifications, session_factory):
        service = make_service(
            test_db, test_user, job_answer(uuid.uuid4()), audio_jobs, notifications, session_factory
        )

        with pytest.raises(ValidationError):
            await service.process("translate", AUDIO_URL, "audio/mpeg", "lecture.mp3")

    async def test_translate_sends_language(self, test_db, test_user, audio_jobs, notifications, session_factory):
        job = AudioProcessingResultFactory.build(user_id=test_user.id)
        await persist(test_db, job)
        calls = []
        service = make_service(
            test_db, test_user, job_answer(job.id, calls), audio_jobs, notifications, session_factory
        )

        state = await service.process("translate", AUDIO_URL, "audio/mpeg", "lecture.mp3", target_language="es")

        assert state.is_translating_audio is True
        assert calls[0][0] == "process-audio-for-translation"
        assert calls[0][1]["targetLanguage"] == "es"

    async def test_invalid_action(self, test_db, test_user, audio_jobs, notifications, session_factory):
        service = make_service(
            test_db, test_user, job_answer(uuid.uuid4()), audio_jobs, notifications, session_factory
        )

        with pytest.raises(ValidationError):
            await service.process("dance", AUDIO_URL, "audio/mpeg", "lecture.mp3")

    async def test_existing_document_must_belong_to_user(
        self, test_db, test_user, test_user_2, audio_jobs, notifications, session_factory
    ):
        document = DocumentFactory.build(user_id=test_user_2.id, type=DocumentType.AUDIO.value)
        await persist(test_db, document)
        service = make_service(
            test_db, test_user, job_answer(uuid.uuid4()), audio_jobs, notifications, session_factory
        )

        with pytest.raises(DocumentNotFoundError):
            await service.process("summarize", AUDIO_URL, "audio/mpeg", "a.mp3", document_id=document.id)

    async def test_missing_job_id(self, test_db, test_user, audio_jobs, notifications, session_factory):
        """An answer without a job id is an error and nothing is polled."""
        service = make_service(
            test_db,
            test_user,
            lambda request: httpx.Response(200, json={"status": "queued"}),
            audio_jobs,
            notifications,
            session_factory,
        )

        with pytest.raises(RemoteResponseError) as exc_info:
            await service.process("summarize", AUDIO_URL, "audio/mpeg", "a.mp3")

        assert exc_info.value.message == "No job ID received from audio processing function."
        assert len(audio_jobs) == 0
        errors = [n for n in notifications.pending() if n.key == "audio-summarize"]
        assert errors[0].level == NotificationLevel.ERROR

    async def test_invalid_job_id(self, test_db, test_user, audio_jobs, notifications, session_factory):
        service = make_service(
            test_db,
            test_user,
            lambda request: httpx.Response(200, json={"jobId": "not-a-uuid"}),
            audio_jobs,
            notifications,
            session_factory,
        )

        with pytest.raises(RemoteResponseError) as exc_info:
            await service.process("summarize", AUDIO_URL, "audio/mpeg", "a.mp3")

        assert exc_info.value.message == "Invalid job ID received: not-a-uuid"

    async def test_function_failure(self, test_db, test_user, audio_jobs, notifications, session_factory):
        service = make_service(
            test_db,
            test_user,
            lambda request: httpx.Response(500, json={"error": "audio too long"}),
            audio_jobs,
            notifications,
            session_factory,
        )

        with pytest.raises(RemoteFunctionError):
            await service.process("summarize", AUDIO_URL, "audio/mpeg", "a.mp3")

        assert notifications.pending()[-1].message == "Function error (500): audio too long"


class TestJobs:
    async def test_get_unknown_job(self, test_db, test_user, audio_jobs, notifications, session_factory):
        service = make_service(
            test_db, test_user, job_answer(uuid.uuid4()), audio_jobs, notifications, session_factory
        )

        with pytest.raises(AudioJobNotFoundError):
            service.get_job(uuid.uuid4())

    async def test_stop_job(self, test_db, test_user, audio_jobs, notifications, session_factory):
        job = AudioProcessingResultFactory.build(user_id=test_user.id)
        await persist(test_db, job)
        service = make_service(test_db, test_user, job_answer(job.id), audio_jobs, notifications, session_factory)
        await service.process("summarize", AUDIO_URL, "audio/mpeg", "a.mp3")

        poller = audio_jobs.get(job.id, test_user.id)

        state = await service.stop_job(job.id)

        assert state.job_id == job.id
        assert poller.is_running is False
        assert len(audio_jobs) == 0

    async def test_finished_job_is_collected_once(
        self, test_db, test_user, audio_jobs, notifications, session_factory
    ):
        """A finished job is read back once and then forgotten."""
        job = AudioProcessingResultFactory.build(
            user_id=test_user.id, status=AudioJobStatus.COMPLETED.value, transcript="Lecture text"
        )
        await persist(test_db, job)
        service = make_service(test_db, test_user, job_answer(job.id), audio_jobs, notifications, session_factory)
        await service.process("transcribe", AUDIO_URL, "audio/mpeg", "a.mp3")
        poller = audio_jobs.get(job.id, test_user.id)
        assert await wait_until(lambda: not poller.is_running)

        state = service.get_job(job.id)

        assert state.status == AudioJobStatus.COMPLETED.value
        assert state.transcript == "Lecture text"
        with pytest.raises(AudioJobNotFoundError):
            service.get_job(job.id)
