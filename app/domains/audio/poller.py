"""Background polling of audio processing jobs.

The hosted audio functions write their progress to a status row. A poller
reads that row right away and then every ``interval`` seconds until the job
completes, fails, the read itself fails, or the poller is stopped. A job
that has finished is never polled again.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.shared.notifications import NotificationCenter
from models import AudioJobStatus, AudioProcessingResult, Note, utc_now

logger = logging.getLogger(__name__)

JOB_STATUS_KEY = "audio-job-status"
NO_SUMMARY = "No summary available."


@dataclass
class AudioJobState:
    """Client-facing state of one audio job."""

    job_id: UUID
    user_id: UUID
    action: str
    note_id: UUID | None = None
    document_id: UUID | None = None
    status: str = AudioJobStatus.PROCESSING.value
    is_processing_audio: bool = True
    is_generating_audio_note: bool = False
    is_generating_audio_summary: bool = False
    is_translating_audio: bool = False
    transcript: str | None = None
    summary: str | None = None
    translated_content: str | None = None
    error_message: str | None = None

    @property
    def is_finished(self) -> bool:
        return self.status != AudioJobStatus.PROCESSING.value

    def clear_flags(self) -> None:
        self.is_processing_audio = False
        self.is_generating_audio_note = False
        self.is_generating_audio_summary = False
        self.is_translating_audio = False


class AudioJobPoller:
    def __init__(
        self,
        state: AudioJobState,
        session_factory: async_sessionmaker[AsyncSession],
        notifications: NotificationCenter,
        interval: float = 5.0,
    ):
        self.state = state
        self.session_factory = session_factory
        self.notifications = notifications
        self.interval = interval
        self.finished_at: float | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.state.is_finished or self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=f"audio-job-{self.state.job_id}")

    async def stop(self) -> None:
        """Cancel polling and wait for the task to end."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.notifications.dismiss(JOB_STATUS_KEY)

    async def _run(self) -> None:
        while not self.state.is_finished:
            await self.check_once()
            if self.state.is_finished:
                break
            await asyncio.sleep(self.interval)

    async def check_once(self) -> AudioJobState:
        """Read the status row once and act on it.

        Any failure while reading ends the job in the error state.
        """
        if self.state.is_finished:
            return self.state

        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(AudioProcessingResult).where(
                        AudioProcessingResult.id == self.state.job_id,
                        AudioProcessingResult.user_id == self.state.user_id,
                    )
                )
                row = result.scalar_one_or_none()
                if row is None:
                    raise LookupError("job not found")

                if row.status == AudioJobStatus.COMPLETED.value:
                    await self._complete(db, row)
                elif row.status == AudioJobStatus.ERROR.value:
                    self._fail(row.error_message)
                else:
                    self.notifications.loading("Audio processing in progress...", key=JOB_STATUS_KEY)
        except Exception as e:
            logger.error("Polling audio job %s failed: %s", self.state.job_id, str(e))
            self._end_with_error(f"Failed to fetch job status: {str(e)}")
        return self.state

    def _finish(self, status: str) -> None:
        self.state.status = status
        self.state.clear_flags()
        self.finished_at = time.monotonic()
        self.notifications.dismiss(JOB_STATUS_KEY)

    def _end_with_error(self, message: str) -> None:
        self._finish(AudioJobStatus.ERROR.value)
        self.state.error_message = message
        self.notifications.error(message, key=JOB_STATUS_KEY)

    async def _complete(self, db: AsyncSession, row: AudioProcessingResult) -> None:
        self.state.transcript = row.transcript
        self.state.summary = row.summary or NO_SUMMARY
        self.state.translated_content = row.translated_content
        if row.document_id is not None:
            self.state.document_id = row.document_id

        if self.state.note_id is not None:
            values = {
                "content": row.transcript or "",
                "ai_summary": row.summary or NO_SUMMARY,
                "updated_at": utc_now(),
            }
            if row.document_id is not None:
                values["document_id"] = row.document_id
            try:
                await db.execute(
                    update(Note)
                    .where(Note.id == self.state.note_id, Note.user_id == self.state.user_id)
                    .values(**values)
                )
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(
                    "Saving audio job %s into note %s failed: %s", self.state.job_id, self.state.note_id, str(e)
                )
                self._end_with_error(f"Audio was processed but the note could not be saved: {str(e)}")
                return

        self._finish(AudioJobStatus.COMPLETED.value)
        self.notifications.success("Audio processing completed!")
        logger.info("Audio job %s completed", self.state.job_id)

    def _fail(self, error_message: str | None) -> None:
        self._finish(AudioJobStatus.ERROR.value)
        self.state.error_message = error_message or "Unknown error"
        self.notifications.error(f"Audio processing failed: {self.state.error_message}")
        logger.warning("Audio job %s failed: %s", self.state.job_id, self.state.error_message)


class AudioJobRegistry:
    """Pollers of audio jobs, keyed by job id.

    A finished job stays readable until its state has been collected or
    ``retention`` seconds have passed; a stopped job is dropped at once.
    """

    def __init__(self, retention: float | None = None):
        self.retention = settings.audio_job_retention_seconds if retention is None else retention
        self._pollers: dict[UUID, AudioJobPoller] = {}

    def start(
        self,
        state: AudioJobState,
        session_factory: async_sessionmaker[AsyncSession],
        notifications: NotificationCenter,
        interval: float = 5.0,
    ) -> AudioJobPoller:
        self.prune()
        existing = self._pollers.get(state.job_id)
        if existing is not None:
            return existing

        poller = AudioJobPoller(state, session_factory, notifications, interval)
        self._pollers[state.job_id] = poller
        poller.start()
        return poller

    def prune(self) -> int:
        """Drop finished jobs older than the retention window."""
        now = time.monotonic()
        expired = [
            job_id
            for job_id, poller in self._pollers.items()
            if poller.finished_at is not None and not poller.is_running and now - poller.finished_at >= self.retention
        ]
        for job_id in expired:
            del self._pollers[job_id]
        if expired:
            logger.debug("Pruned %d finished audio jobs", len(expired))
        return len(expired)

    def get(self, job_id: UUID, user_id: UUID) -> AudioJobPoller | None:
        poller = self._pollers.get(job_id)
        if poller is None or poller.state.user_id != user_id:
            return None
        return poller

    def collect(self, job_id: UUID, user_id: UUID) -> AudioJobPoller | None:
        """Like ``get``, but a finished job is handed out once and then forgotten."""
        self.prune()
        poller = self.get(job_id, user_id)
        if poller is not None and poller.state.is_finished and not poller.is_running:
            del self._pollers[job_id]
        return poller

    async def stop(self, job_id: UUID) -> AudioJobPoller | None:
        poller = self._pollers.pop(job_id, None)
        if poller is not None:
            await poller.stop()
        return poller

    async def stop_all(self) -> None:
        pollers = list(self._pollers.values())
        self._pollers.clear()
        for poller in pollers:
            await poller.stop()
        logger.info("Stopped %d audio job pollers", len(pollers))

    def __len__(self) -> int:
        return len(self._pollers)
