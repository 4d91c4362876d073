# app/domains/user/service.py
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.user import LearningPreferences
from models import User


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_auth_id(self, auth_user_id: str) -> User | None:
        """Get a user by the auth service's user ID."""
        result = await self.db.execute(select(User).where(User.auth_user_id == auth_user_id))
        return result.scalar_one_or_none()

    async def create_user(self, auth_user_id: str, email: str | None, username: str | None = None) -> User:
        """Create a new user with the default learning profile."""
        user = User(
            auth_user_id=auth_user_id,
            email=email,
            username=username,
            learning_style="visual",
            learning_preferences=LearningPreferences().model_dump(),
        )

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

    async def get_or_create_user(self, auth_user_id: str, token_payload: dict) -> User:
        """Get existing user or create new one from the token payload."""
        user = await self.get_user_by_auth_id(auth_user_id)
        if not user:
            metadata = token_payload.get("user_metadata") or {}
            user = await self.create_user(
                auth_user_id=auth_user_id,
                email=token_payload.get("email"),
                username=metadata.get("username") or token_payload.get("username"),
            )
        return user

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def update_profile(
        self,
        user_id: UUID,
        username: str | None = None,
        learning_style: str | None = None,
        learning_preferences: LearningPreferences | None = None,
    ) -> User | None:
        """Update the display name and learning profile."""
        user = await self.get_user_by_id(user_id)
        if not user:
            return None

        try:
            if username is not None:
                user.username = username
            if learning_style is not None:
                user.learning_style = learning_style
            if learning_preferences is not None:
                user.learning_preferences = learning_preferences.model_dump()

            await self.db.commit()
            await self.db.refresh(user)
            return user
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e
