"""Document pipeline: upload, text extraction, structure analysis and note generation.

Every remote step goes through a hosted function. A failing step marks the
document ``failed`` with the error message before the error propagates.
"""

import logging
import time
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.exceptions.base import BaseAppException, ValidationError
from app.exceptions.remote import (
    DocumentNotFoundError,
    FileTooLargeError,
    NoteNotFoundError,
    RemoteResponseError,
    UnsupportedFileTypeError,
)
from app.schemas.note import UNTITLED_NOTE
from app.schemas.user import LearningProfile
from app.services.functions_service import (
    ANALYZE_STRUCTURE,
    EXTRACT_DOCUMENT,
    GENERATE_NOTE,
    FunctionsService,
)
from app.services.storage_service import StorageService
from models import Document, DocumentType, Note, ProcessingStatus, User, utc_now

logger = logging.getLogger(__name__)

ALLOWED_DOCUMENT_TYPES = [
    "application/pdf",
    "text/plain",
    "text/markdown",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
]

UNSUPPORTED_DOCUMENT_MESSAGE = "Unsupported file type. Please upload a PDF, TXT, Word document, or an audio file."


def document_upload_path(user_id: UUID, file_name: str) -> str:
    return f"{user_id}/{int(time.time() * 1000)}_{file_name}"


def check_file_size(size: int) -> None:
    if size > settings.max_file_size:
        raise FileTooLargeError(f"File exceeds the {settings.max_file_size} byte limit")


class DocumentService:
    """Service class for documents of one signed-in user."""

    def __init__(
        self,
        db: AsyncSession,
        user: User,
        functions: FunctionsService,
        storage: StorageService | None = None,
    ):
        self.db = db
        self.user = user
        self.functions = functions
        self.storage = storage
        self.profile = LearningProfile.from_user(user)

    # ----- reads -----

    async def _get_document(self, document_id: UUID, refresh: bool = False) -> Document | None:
        stmt = select(Document).where(Document.id == document_id, Document.user_id == self.user.id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_document(self, document_id: UUID) -> Document:
        document = await self._get_document(document_id)
        if not document:
            raise DocumentNotFoundError()
        return document

    async def refresh_document(self, document_id: UUID) -> Document:
        """Read a document back from the database, discarding cached state."""
        document = await self._get_document(document_id, refresh=True)
        if not document:
            raise DocumentNotFoundError()
        return document

    async def list_documents(self, document_type: str | None = None) -> list[Document]:
        stmt = select(Document).where(Document.user_id == self.user.id)
        if document_type:
            stmt = stmt.where(Document.type == document_type)
        result = await self.db.execute(stmt.order_by(Document.created_at.desc()))
        return list(result.scalars().all())

    async def _get_note(self, note_id: UUID) -> Note:
        result = await self.db.execute(select(Note).where(Note.id == note_id, Note.user_id == self.user.id))
        note = result.scalar_one_or_none()
        if not note:
            raise NoteNotFoundError()
        return note

    # ----- writes -----

    async def delete_document(self, document_id: UUID) -> None:
        await self.get_document(document_id)
        try:
            await self.db.execute(
                update(Note)
                .where(Note.document_id == document_id, Note.user_id == self.user.id)
                .values(document_id=None)
            )
            await self.db.execute(
                delete(Document).where(Document.id == document_id, Document.user_id == self.user.id)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to delete document: {str(e)}") from e

    async def _mark_failed(self, document_id: UUID, message: str) -> None:
        try:
            await self.db.execute(
                update(Document)
                .where(Document.id == document_id)
                .values(
                    processing_status=ProcessingStatus.FAILED.value,
                    processing_error=message,
                    updated_at=utc_now(),
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Could not mark document %s as failed: %s", document_id, str(e))

    async def _save_pending_document(
        self,
        file_name: str,
        file_url: str,
        content_type: str,
        size: int,
        note: Note | None,
    ) -> Document:
        """Overwrite the note's linked document, or create one and link it."""
        document = None
        if note is not None and note.document_id is not None:
            document = await self._get_document(note.document_id)

        if document is None:
            document = Document(user_id=self.user.id, type=DocumentType.TEXT.value)
            self.db.add(document)

        document.title = file_name
        document.file_name = file_name
        document.file_url = file_url
        document.file_type = content_type
        document.file_size = size
        document.processing_status = ProcessingStatus.PENDING.value
        document.processing_error = None

        try:
            await self.db.flush()
            if note is not None:
                note.document_id = document.id
            await self.db.commit()
            await self.db.refresh(document)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to save document record: {str(e)}") from e
        return document

    async def upload_document(
        self,
        file_name: str,
        content_type: str,
        data: bytes,
        note_id: UUID | None = None,
    ) -> tuple[Document, list[str], Note | None]:
        """Upload and process a document.

        Returns the document with either the sections found in it, for the
        caller to pick one, or the note generated from the whole document.
        """
        if content_type not in ALLOWED_DOCUMENT_TYPES:
            raise UnsupportedFileTypeError(UNSUPPORTED_DOCUMENT_MESSAGE, allowed=ALLOWED_DOCUMENT_TYPES)
        check_file_size(len(data))

        note = await self._get_note(note_id) if note_id else None
        file_url = await self.storage.upload(document_upload_path(self.user.id, file_name), data, content_type)
        document = await self._save_pending_document(file_name, file_url, content_type, len(data), note)
        document_id = document.id

        try:
            extraction = await self.functions.invoke(
                EXTRACT_DOCUMENT,
                {
                    "documentId": str(document_id),
                    "file_url": file_url,
                    "file_type": content_type,
                    "userId": str(self.user.id),
                },
            )
            extracted = extraction.get("content_extracted") or ""
            document.content_extracted = extracted
            document.processing_status = ProcessingStatus.COMPLETED.value
            await self.db.commit()

            structure = await self.functions.invoke(ANALYZE_STRUCTURE, {"documentContent": extracted})
            sections = [str(section) for section in structure.get("sections") or []]
        except BaseAppException as e:
            await self.db.rollback()
            await self._mark_failed(document_id, e.message)
            raise

        await self.db.refresh(document)
        if sections:
            logger.info("Document %s has %d sections", document_id, len(sections))
            return document, sections, None

        generated = await self.generate_note(document_id, note_id=note.id if note else None)
        return document, [], generated

    async def generate_note(
        self,
        document_id: UUID,
        selected_section: str | None = None,
        note_id: UUID | None = None,
    ) -> Note:
        """Generate note content from a document and store it on a new or existing note."""
        document = await self.get_document(document_id)
        note = await self._get_note(note_id) if note_id else None

        try:
            generated = await self.functions.invoke(
                GENERATE_NOTE,
                {
                    "documentId": str(document.id),
                    "userProfile": self.profile.to_payload(),
                    "selectedSection": selected_section,
                },
            )
            if not generated.get("content"):
                raise RemoteResponseError("Note generation returned no content")
        except BaseAppException as e:
            await self._mark_failed(document.id, e.message)
            raise

        return await self._store_generated_note(generated, document.id, note)

    async def regenerate_note(self, note_id: UUID) -> Note:
        """Generate a linked note again from its source document."""
        note = await self._get_note(note_id)
        if note.document_id is None:
            raise ValidationError("This note is not linked to a source document and cannot be regenerated.")
        return await self.generate_note(note.document_id, note_id=note.id)

    async def _store_generated_note(self, generated: dict, document_id: UUID, note: Note | None) -> Note:
        if note is None:
            note = Note(
                user_id=self.user.id,
                title=generated.get("title") or UNTITLED_NOTE,
                category="general",
                tags=[],
            )
            self.db.add(note)
        else:
            note.title = generated.get("title") or note.title

        note.content = generated["content"]
        note.ai_summary = generated.get("aiSummary")
        note.document_id = document_id

        try:
            await self.db.commit()
            await self.db.refresh(note)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to save generated note: {str(e)}") from e
        logger.info("Stored generated note %s from document %s", note.id, document_id)
        return note
