"""Object storage uploads through the Supabase client."""

import asyncio
import logging
import re

from supabase import Client, create_client

from app.core.config import settings
from app.exceptions.remote import StorageError

logger = logging.getLogger(__name__)


def safe_file_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9._-]", "_", name)


class StorageService:
    """Uploads files into one bucket and hands back their public URLs."""

    def __init__(self, client: Client | None = None, bucket: str | None = None):
        self.bucket = bucket or settings.storage_bucket
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            if not settings.has_file_storage:
                raise StorageError("File storage is not configured")
            self._client = create_client(settings.supabase_url, settings.supabase_service_key)
        return self._client

    def _upload_sync(self, path: str, data: bytes, content_type: str) -> str:
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(path=path, file=data, file_options={"content-type": content_type})
        public_url = bucket.get_public_url(path)
        if isinstance(public_url, dict):
            public_url = public_url.get("publicURL") or public_url.get("public_url")
        return public_url

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Upload ``data`` to ``path`` and return its public URL."""
        try:
            loop = asyncio.get_event_loop()
            public_url = await loop.run_in_executor(None, lambda: self._upload_sync(path, data, content_type))
        except StorageError:
            raise
        except Exception as e:
            logger.error("Upload of %s failed: %s", path, str(e))
            raise StorageError(f"Upload failed: {str(e)}") from e

        if not public_url:
            raise StorageError("Could not get public URL for the uploaded file.")
        logger.info("Uploaded %s to bucket %s", path, self.bucket)
        return public_url
