"""User profile controller endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user
from app.database import get_db
from app.domains.user.service import UserService
from app.exceptions.base import NotFoundError
from app.schemas.base import ResponseSchema
from app.schemas.user import UserProfileUpdate, UserResponse
from models.user import User

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/me", response_model=ResponseSchema)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get the signed-in user with their learning profile.

    The account is created on first use from the access token's claims.
    """
    return ResponseSchema(
        status="success",
        message="User retrieved successfully",
        data=UserResponse.model_validate(current_user).model_dump(mode="json"),
    )


@router.put("/me", response_model=ResponseSchema)
async def update_current_user(
    update_data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update the display name and learning profile used for AI answers."""
    user_service = UserService(db)
    user = await user_service.update_profile(
        current_user.id,
        username=update_data.username,
        learning_style=update_data.learning_style,
        learning_preferences=update_data.learning_preferences,
    )
    if user is None:
        raise NotFoundError("User not found")

    return ResponseSchema(
        status="success",
        message="Profile updated successfully",
        data=UserResponse.model_validate(user).model_dump(mode="json"),
    )
