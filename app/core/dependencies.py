# app/core/dependencies.py
import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.security import SupabaseAuthenticator
from app.database import AsyncSessionLocal, get_db
from app.domains.audio.poller import AudioJobRegistry
from app.domains.chat.state import ChatWorkspace, WorkspaceRegistry
from app.domains.user.service import UserService
from app.services.functions_service import FunctionsService
from app.services.gemini_service import GeminiChatService
from app.services.storage_service import StorageService
from models import User

logger = logging.getLogger(__name__)

security = HTTPBearer()
auth = SupabaseAuthenticator()

workspace_registry = WorkspaceRegistry(
    sessions_per_page=settings.chat_sessions_per_page,
    messages_per_page=settings.chat_messages_per_page,
)
audio_jobs = AudioJobRegistry()

_chat_client: GeminiChatService | None = None


async def validate_token(token: str = Depends(security)) -> dict:
    """Validate and decode the bearer access token.

    Returns:
        dict: Decoded token payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        if not token or not token.credentials:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication token is required",
                headers={"WWW-Authenticate": "Bearer"},
            )

        payload = await auth.verify_token(token.credentials)

        if not payload:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return payload

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Token validation error: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user(
    request: Request,
    payload: dict = Depends(validate_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from JWT payload.

    Returns:
        User: Current authenticated user

    Raises:
        HTTPException: If user not found or inactive
    """
    try:
        auth_user_id = payload.get("sub")

        if not auth_user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token payload - missing user ID",
            )

        user_service = UserService(db)
        user = await user_service.get_or_create_user(auth_user_id, payload)

        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")

        # Add user info to request state for logging
        request.state.user_id = user.id
        request.state.auth_user_id = auth_user_id

        return user

    except HTTPException:
        raise
    except Exception as e:
        logger.error("User authentication error: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication service error",
        ) from e


def get_workspace_registry() -> WorkspaceRegistry:
    return workspace_registry


async def get_workspace(
    current_user: User = Depends(get_current_user),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> ChatWorkspace:
    """The signed-in user's chat workspace."""
    return registry.get(current_user.id)


def get_chat_client() -> GeminiChatService | None:
    """Shared Gemini client, or None when AI is not configured."""
    global _chat_client
    if not settings.has_ai_enabled:
        return None
    if _chat_client is None:
        _chat_client = GeminiChatService()
    return _chat_client


def get_functions_service() -> FunctionsService:
    return FunctionsService()


def get_storage_service() -> StorageService:
    return StorageService()


def get_audio_jobs() -> AudioJobRegistry:
    return audio_jobs


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for background work that outlives the request."""
    return AsyncSessionLocal
