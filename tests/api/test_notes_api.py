"""
API tests for the note endpoints.
"""

import uuid

import httpx
import pytest
from httpx import AsyncClient

from app.core.dependencies import get_functions_service
from app.main import app
from app.services.functions_service import GENERATE_NOTE
from tests.factories import DocumentFactory, NoteFactory
from tests.helpers import functions_service, persist


@pytest.mark.api
class TestNotesAPI:
    """Test note CRUD endpoints."""

    async def test_create_note(self, authenticated_client: AsyncClient, test_user):
        """Test creating a note with cleaned tags."""
        response = await authenticated_client.post(
            "/api/notes/",
            json={"title": "Cells", "content": "The cell is the unit of life.", "tags": [" bio ", ""]},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Note created successfully"
        assert data["data"]["title"] == "Cells"
        assert data["data"]["tags"] == ["bio"]
        assert data["data"]["category"] == "general"
        assert data["data"]["user_id"] == str(test_user.id)

    async def test_create_note_with_unknown_document(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post("/api/notes/", json={"document_id": str(uuid.uuid4())})

        assert response.status_code == 404
        assert response.json()["error_code"] == "DOCUMENT_NOT_FOUND"

    async def test_list_notes(self, authenticated_client: AsyncClient, test_db, test_user, test_user_2):
        await persist(
            test_db,
            NoteFactory.build(user_id=test_user.id, category="biology"),
            NoteFactory.build(user_id=test_user.id, category="history"),
            NoteFactory.build(user_id=test_user_2.id),
        )

        response = await authenticated_client.get("/api/notes/")
        filtered = await authenticated_client.get("/api/notes/", params={"category": "history"})

        assert response.json()["data"]["total"] == 2
        assert [n["category"] for n in filtered.json()["data"]["notes"]] == ["history"]

    async def test_get_note(self, authenticated_client: AsyncClient, test_db, test_user):
        note = NoteFactory.build(user_id=test_user.id, title="Genetics")
        await persist(test_db, note)

        response = await authenticated_client.get(f"/api/notes/{note.id}")

        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Genetics"

    async def test_get_other_users_note(self, authenticated_client: AsyncClient, test_db, test_user_2):
        note = NoteFactory.build(user_id=test_user_2.id)
        await persist(test_db, note)

        response = await authenticated_client.get(f"/api/notes/{note.id}")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOTE_NOT_FOUND"

    async def test_update_note(self, authenticated_client: AsyncClient, test_db, test_user):
        note = NoteFactory.build(user_id=test_user.id, title="Draft")
        await persist(test_db, note)

        response = await authenticated_client.put(f"/api/notes/{note.id}", json={"content": "Final text"})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Note saved successfully!"
        assert data["data"]["title"] == "Draft"
        assert data["data"]["content"] == "Final text"

    async def test_delete_note(self, authenticated_client: AsyncClient, test_db, test_user):
        note = NoteFactory.build(user_id=test_user.id)
        await persist(test_db, note)

        response = await authenticated_client.delete(f"/api/notes/{note.id}")
        missing = await authenticated_client.get(f"/api/notes/{note.id}")

        assert response.status_code == 200
        assert response.json()["data"] is None
        assert missing.status_code == 404

    async def test_invalid_note_id(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/api/notes/not-a-uuid")

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.api
class TestRegenerateNoteAPI:
    """Test regenerating a note from its source document."""

    async def test_regenerate_linked_note(self, authenticated_client: AsyncClient, test_db, test_user):
        document = DocumentFactory.build(user_id=test_user.id)
        await persist(test_db, document)
        note = NoteFactory.build(user_id=test_user.id, document_id=document.id)
        await persist(test_db, note)

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith(GENERATE_NOTE)
            return httpx.Response(200, json={"title": "Photosynthesis", "content": "Regenerated body"})

        app.dependency_overrides[get_functions_service] = lambda: functions_service(handler)

        response = await authenticated_client.post(f"/api/notes/{note.id}/regenerate")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Note regenerated successfully!"
        assert data["data"]["content"] == "Regenerated body"
        assert data["data"]["title"] == "Photosynthesis"

    async def test_regenerate_unlinked_note(self, authenticated_client: AsyncClient, test_db, test_user):
        note = NoteFactory.build(user_id=test_user.id)
        await persist(test_db, note)

        response = await authenticated_client.post(f"/api/notes/{note.id}/regenerate")

        assert response.status_code == 422
        assert "not linked to a source document" in response.json()["message"]
