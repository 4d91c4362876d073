"""Note service layer with business logic."""

from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions.base import ValidationError
from app.exceptions.remote import DocumentNotFoundError, NoteNotFoundError
from app.schemas.note import NoteCreate, NoteUpdate
from models import Document, Note


class NoteService:
    """Service class for note business logic."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_note_by_id_and_user(self, note_id: UUID, user_id: UUID) -> Note | None:
        result = await self.db.execute(select(Note).where(Note.id == note_id, Note.user_id == user_id))
        return result.scalar_one_or_none()

    async def _ensure_document(self, document_id: UUID, user_id: UUID) -> None:
        result = await self.db.execute(
            select(Document.id).where(Document.id == document_id, Document.user_id == user_id)
        )
        if result.scalar_one_or_none() is None:
            raise DocumentNotFoundError()

    async def create_note(self, note_data: NoteCreate, user_id: UUID) -> Note:
        """Create a new note."""
        if note_data.document_id is not None:
            await self._ensure_document(note_data.document_id, user_id)

        note = Note(
            user_id=user_id,
            title=note_data.title,
            content=note_data.content,
            category=note_data.category,
            tags=note_data.tags,
            document_id=note_data.document_id,
        )

        try:
            self.db.add(note)
            await self.db.commit()
            await self.db.refresh(note)
            return note
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to create note: {str(e)}") from e

    async def get_note(self, note_id: UUID, user_id: UUID) -> Note:
        note = await self._get_note_by_id_and_user(note_id, user_id)
        if not note:
            raise NoteNotFoundError()
        return note

    async def list_notes(self, user_id: UUID, category: str | None = None) -> list[Note]:
        """Get the user's notes, most recently updated first."""
        stmt = select(Note).where(Note.user_id == user_id)
        if category:
            stmt = stmt.where(Note.category == category)
        stmt = stmt.order_by(desc(Note.updated_at))

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update_note(self, note_id: UUID, note_data: NoteUpdate, user_id: UUID) -> Note:
        """Update a note."""
        note = await self.get_note(note_id, user_id)

        update_data = note_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if value is not None:
                setattr(note, field, value)

        try:
            await self.db.commit()
            await self.db.refresh(note)
            return note
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to update note: {str(e)}") from e

    async def delete_note(self, note_id: UUID, user_id: UUID) -> bool:
        note = await self.get_note(note_id, user_id)

        try:
            await self.db.delete(note)
            await self.db.commit()
            return True
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to delete note: {str(e)}") from e
