"""
Test doubles and small helpers shared by the unit and API tests.
"""

import asyncio

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.functions_service import FunctionsService


class FakeChatClient:
    """Stands in for the Gemini client and records every history it is sent."""

    def __init__(self, replies: list[str] | None = None, error: Exception | None = None):
        self.replies = list(replies or [])
        self.error = error
        self.calls: list[list[dict]] = []
        self.profiles = []

    async def generate_reply(self, chat_history, profile) -> str:
        self.calls.append(chat_history)
        self.profiles.append(profile)
        if self.error is not None:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return "Here is an explanation."


class FakeStorage:
    """In-memory replacement for the storage bucket."""

    def __init__(self):
        self.uploads: dict[str, bytes] = {}

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        self.uploads[path] = data
        return f"https://storage.test/documents/{path}"


def functions_service(handler) -> FunctionsService:
    """FunctionsService whose HTTP calls are answered by ``handler``."""
    return FunctionsService(
        base_url="https://functions.test/functions/v1",
        api_key="service-key",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


async def persist(db: AsyncSession, *objects):
    db.add_all(objects)
    await db.commit()
    return objects


async def wait_until(predicate, timeout: float = 2.0) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` seconds pass."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            return False
        await asyncio.sleep(0.01)
    return True
