"""Unit tests for the document pipeline."""

import json
import uuid

import httpx
import pytest
from sqlalchemy import select

from app.domains.document.service import DocumentService, document_upload_path
from app.exceptions.base import ValidationError
from app.exceptions.remote import (
    DocumentNotFoundError,
    FileTooLargeError,
    NoteNotFoundError,
    RemoteFunctionError,
    RemoteResponseError,
    UnsupportedFileTypeError,
)
from app.services.functions_service import ANALYZE_STRUCTURE, EXTRACT_DOCUMENT, GENERATE_NOTE
from models import Document, Note, ProcessingStatus
from tests.factories import DocumentFactory, NoteFactory
from tests.helpers import functions_service, persist


class FunctionStub:
    """Answers hosted function calls by name and records the bodies it receives."""

    def __init__(self, **answers):
        self.answers = answers
        self.calls: list[tuple[str, dict]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content)
        self.calls.append((name, body))
        answer = self.answers.get(name)
        if answer is None:
            return httpx.Response(404, json={"error": f"unknown function {name}"})
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def body(self, name: str) -> dict:
        return next(body for called, body in self.calls if called == name)


def make_service(db, user, stub, storage=None) -> DocumentService:
    return DocumentService(db, user, functions_service(stub), storage)


async def load_document(db, document_id) -> Document:
    result = await db.execute(
        select(Document).where(Document.id == document_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestHelpers:
    def test_upload_path(self):
        user_id = uuid.uuid4()
        path = document_upload_path(user_id, "notes.pdf")
        prefix, name = path.split("/")
        assert prefix == str(user_id)
        assert name.endswith("_notes.pdf")
        assert name.split("_", 1)[0].isdigit()


class TestUpload:
    """Uploading a file and running extraction."""

    async def test_sections_returned_for_selection(self, test_db, test_user, fake_storage):
        """A structured document hands its sections back instead of a note."""
        stub = FunctionStub(
            **{
                EXTRACT_DOCUMENT: {"content_extracted": "Chapter 1 ... Chapter 2 ..."},
                ANALYZE_STRUCTURE: {"sections": ["Chapter 1", "Chapter 2"]},
            }
        )
        service = make_service(test_db, test_user, stub, fake_storage)

        document, sections, note = await service.upload_document("bio.pdf", "application/pdf", b"%PDF")

        assert sections == ["Chapter 1", "Chapter 2"]
        assert note is None
        assert document.processing_status == ProcessingStatus.COMPLETED.value
        assert document.content_extracted == "Chapter 1 ... Chapter 2 ..."
        assert document.file_url.startswith("https://storage.test/documents/")
        assert stub.names() == [EXTRACT_DOCUMENT, ANALYZE_STRUCTURE]
        extract = stub.body(EXTRACT_DOCUMENT)
        assert extract["documentId"] == str(document.id)
        assert extract["file_type"] == "application/pdf"
        assert extract["userId"] == str(test_user.id)
        assert len(fake_storage.uploads) == 1

    async def test_unstructured_document_generates_note(self, test_db, test_user, fake_storage):
        stub = FunctionStub(
            **{
                EXTRACT_DOCUMENT: {"content_extracted": "Short text"},
                ANALYZE_STRUCTURE: {"sections": []},
                GENERATE_NOTE: {"title": "Short text notes", "content": "# Notes", "aiSummary": "Summary"},
            }
        )
        service = make_service(test_db, test_user, stub, fake_storage)

        document, sections, note = await service.upload_document("short.txt", "text/plain", b"Short text")

        assert sections == []
        assert note.title == "Short text notes"
        assert note.content == "# Notes"
        assert note.ai_summary == "Summary"
        assert note.document_id == document.id
        generate = stub.body(GENERATE_NOTE)
        assert generate["selectedSection"] is None
        assert generate["userProfile"]["learning_style"] == "auditory"

    async def test_upload_into_existing_note_reuses_document(self, test_db, test_user, fake_storage):
        """Uploading for a note overwrites the document already linked to it."""
        old_document = DocumentFactory.build(user_id=test_user.id)
        await persist(test_db, old_document)
        note = NoteFactory.build(user_id=test_user.id, document_id=old_document.id, title="Keep me")
        await persist(test_db, note)
        stub = FunctionStub(
            **{
                EXTRACT_DOCUMENT: {"content_extracted": "New text"},
                ANALYZE_STRUCTURE: {"sections": []},
                GENERATE_NOTE: {"content": "Fresh content"},
            }
        )
        service = make_service(test_db, test_user, stub, fake_storage)

        document, _, generated = await service.upload_document(
            "new.pdf", "application/pdf", b"%PDF", note_id=note.id
        )

        assert document.id == old_document.id
        assert document.file_name == "new.pdf"
        assert generated.id == note.id
        assert generated.title == "Keep me"
        assert generated.content == "Fresh content"

    async def test_upload_links_new_document_to_note(self, test_db, test_user, fake_storage):
        note = NoteFactory.build(user_id=test_user.id)
        await persist(test_db, note)
        stub = FunctionStub(
            **{
                EXTRACT_DOCUMENT: {"content_extracted": "Text"},
                ANALYZE_STRUCTURE: {"sections": ["Intro"]},
            }
        )
        service = make_service(test_db, test_user, stub, fake_storage)

        document, _, _ = await service.upload_document("a.pdf", "application/pdf", b"%PDF", note_id=note.id)

        stored = (
            await test_db.execute(select(Note).where(Note.id == note.id).execution_options(populate_existing=True))
        ).scalar_one()
        assert stored.document_id == document.id

    async def test_unsupported_type(self, test_db, test_user, fake_storage):
        service = make_service(test_db, test_user, FunctionStub(), fake_storage)

        with pytest.raises(UnsupportedFileTypeError):
            await service.upload_document("song.mp3", "audio/mpeg", b"ID3")

        assert fake_storage.uploads == {}

    async def test_file_too_large(self, test_db, test_user, fake_storage, monkeypatch):
        monkeypatch.setattr("app.core.config.settings.max_file_size", 4)
        service = make_service(test_db, test_user, FunctionStub(), fake_storage)

        with pytest.raises(FileTooLargeError):
            await service.upload_document("big.pdf", "application/pdf", b"12345")

    async def test_unknown_note(self, test_db, test_user, fake_storage):
        service = make_service(test_db, test_user, FunctionStub(), fake_storage)

        with pytest.raises(NoteNotFoundError):
            await service.upload_document("a.pdf", "application/pdf", b"%PDF", note_id=uuid.uuid4())

    async def test_extraction_failure_marks_document_failed(self, test_db, test_user, fake_storage):
        """A failing step leaves the document failed with the error message."""
        stub = FunctionStub(**{EXTRACT_DOCUMENT: httpx.Response(500, json={"error": "cannot read PDF"})})
        service = make_service(test_db, test_user, stub, fake_storage)

        with pytest.raises(RemoteFunctionError):
            await service.upload_document("broken.pdf", "application/pdf", b"%PDF")

        documents = (await test_db.execute(select(Document).execution_options(populate_existing=True))).scalars().all()
        assert len(documents) == 1
        assert documents[0].processing_status == ProcessingStatus.FAILED.value
        assert documents[0].processing_error == "Function error (500): cannot read PDF"


class TestGenerateNote:
    async def test_generate_from_section(self, test_db, test_user):
        document = DocumentFactory.build(user_id=test_user.id)
        await persist(test_db, document)
        stub = FunctionStub(**{GENERATE_NOTE: {"title": "Chapter 2", "content": "Body"}})
        service = make_service(test_db, test_user, stub)

        note = await service.generate_note(document.id, selected_section="Chapter 2")

        assert note.title == "Chapter 2"
        assert note.category == "general"
        assert note.tags == []
        assert stub.body(GENERATE_NOTE)["selectedSection"] == "Chapter 2"

    async def test_missing_content_fails(self, test_db, test_user):
        document = DocumentFactory.build(user_id=test_user.id)
        await persist(test_db, document)
        stub = FunctionStub(**{GENERATE_NOTE: {"title": "Empty"}})
        service = make_service(test_db, test_user, stub)

        with pytest.raises(RemoteResponseError):
            await service.generate_note(document.id)

        stored = await load_document(test_db, document.id)
        assert stored.processing_status == ProcessingStatus.FAILED.value
        assert stored.processing_error == "Note generation returned no content"

    async def test_generate_for_unknown_document(self, test_db, test_user):
        service = make_service(test_db, test_user, FunctionStub())

        with pytest.raises(DocumentNotFoundError):
            await service.generate_note(uuid.uuid4())

    async def test_regenerate_linked_note(self, test_db, test_user):
        document = DocumentFactory.build(user_id=test_user.id)
        await persist(test_db, document)
        note = NoteFactory.build(user_id=test_user.id, document_id=document.id, title="Mine")
        await persist(test_db, note)
        stub = FunctionStub(**{GENERATE_NOTE: {"content": "Regenerated", "aiSummary": "Sum"}})
        service = make_service(test_db, test_user, stub)

        regenerated = await service.regenerate_note(note.id)

        assert regenerated.id == note.id
        assert regenerated.title == "Mine"
        assert regenerated.content == "Regenerated"
        assert regenerated.ai_summary == "Sum"

    async def test_regenerate_unlinked_note(self, test_db, test_user):
        note = NoteFactory.build(user_id=test_user.id)
        await persist(test_db, note)
        service = make_service(test_db, test_user, FunctionStub())

        with pytest.raises(ValidationError) as exc_info:
            await service.regenerate_note(note.id)

        assert "not linked to a source document" in exc_info.value.message


class TestReadsAndDelete:
    async def test_list_documents_by_type(self, test_db, test_user, test_user_2):
        await persist(
            test_db,
            DocumentFactory.build(user_id=test_user.id, type="text"),
            DocumentFactory.build(user_id=test_user.id, type="image"),
            DocumentFactory.build(user_id=test_user_2.id, type="text"),
        )
        service = make_service(test_db, test_user, FunctionStub())

        assert len(await service.list_documents()) == 2
        assert [d.type for d in await service.list_documents("image")] == ["image"]

    async def test_delete_unlinks_notes(self, test_db, test_user):
        document = DocumentFactory.build(user_id=test_user.id)
        await persist(test_db, document)
        note = NoteFactory.build(user_id=test_user.id, document_id=document.id)
        await persist(test_db, note)
        service = make_service(test_db, test_user, FunctionStub())

        await service.delete_document(document.id)

        stored = (
            await test_db.execute(select(Note).where(Note.id == note.id).execution_options(populate_existing=True))
        ).scalar_one()
        assert stored.document_id is None
        with pytest.raises(DocumentNotFoundError):
            await service.get_document(document.id)

    async def test_get_other_users_document(self, test_db, test_user, test_user_2):
        document = DocumentFactory.build(user_id=test_user_2.id)
        await persist(test_db, document)
        service = make_service(test_db, test_user, FunctionStub())

        with pytest.raises(DocumentNotFoundError):
            await service.get_document(document.id)
