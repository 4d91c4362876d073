# tests/conftest.py
import os

# Set up test environment variables BEFORE any other imports
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("ENVIRONMENT", "testing")
default_test_url = "sqlite+aiosqlite:///./test.db"
os.environ.setdefault("TEST_DATABASE_URL", default_test_url)
os.environ.setdefault("DATABASE_URL", os.environ.get("TEST_DATABASE_URL", default_test_url))
os.environ["GEMINI_API_KEY"] = ""
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SERVICE_KEY"] = ""
os.environ["SUPABASE_JWT_SECRET"] = ""
os.environ["AI_RETRY_MIN_WAIT"] = "0"
os.environ["AI_RETRY_MAX_WAIT"] = "0"

import uuid

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.dependencies import (
    get_audio_jobs,
    get_chat_client,
    get_current_user,
    get_functions_service,
    get_session_factory,
    get_storage_service,
    get_workspace_registry,
    validate_token,
)
from app.database import get_db
from app.domains.audio.poller import AudioJobRegistry
from app.domains.chat.state import ChatWorkspace, WorkspaceRegistry
from app.main import app
from models import Base, User
from tests.helpers import FakeChatClient, FakeStorage, functions_service


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """A fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


# User fixtures
@pytest_asyncio.fixture
async def test_user(test_db):
    """Create a test user."""
    user = User(
        auth_user_id=f"auth_user_{uuid.uuid4()}",
        email="test@example.com",
        username="testuser",
        is_active=True,
        learning_style="auditory",
        learning_preferences={"explanation_style": "concise", "examples": True, "difficulty": "beginner"},
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user_2(test_db):
    """Create a second test user."""
    user = User(
        auth_user_id=f"auth_user_{uuid.uuid4()}",
        email="test2@example.com",
        username="testuser2",
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


# Chat fixtures
@pytest.fixture
def workspace(test_user):
    return ChatWorkspace(test_user.id, sessions_per_page=10, messages_per_page=20)


@pytest.fixture
def chat_client():
    return FakeChatClient()


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest_asyncio.fixture
async def audio_jobs(session_factory):
    """Audio job registry whose pollers are stopped after the test."""
    registry = AudioJobRegistry()
    yield registry
    await registry.stop_all()


# Client fixtures
@pytest_asyncio.fixture
async def client(test_db):
    """Create a test client with database dependency override."""
    app.dependency_overrides[get_db] = lambda: test_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(test_db, test_user, chat_client, fake_storage, session_factory, audio_jobs):
    """Create an authenticated test client."""
    registry = WorkspaceRegistry(sessions_per_page=10, messages_per_page=20)

    def override_get_current_user():
        return test_user

    def override_validate_token():
        return {"sub": test_user.auth_user_id, "email": test_user.email}

    app.dependency_overrides[get_db] = lambda: test_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[validate_token] = override_validate_token
    app.dependency_overrides[get_workspace_registry] = lambda: registry
    app.dependency_overrides[get_chat_client] = lambda: chat_client
    app.dependency_overrides[get_storage_service] = lambda: fake_storage
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_audio_jobs] = lambda: audio_jobs
    app.dependency_overrides[get_functions_service] = lambda: functions_service(
        lambda request: httpx.Response(500, json={"error": "functions not stubbed"})
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
