"""User and learning-profile schemas."""

from uuid import UUID

from pydantic import Field

from .base import BaseModelSchema, BaseSchema

DEFAULT_LEARNING_STYLE = "visual"


class LearningPreferences(BaseSchema):
    """How the learner wants answers shaped."""

    explanation_style: str = Field(default="detailed")
    examples: bool = Field(default=False)
    difficulty: str = Field(default="intermediate")


class LearningProfile(BaseSchema):
    """Learning style and preferences sent along with every AI request."""

    user_id: UUID | None = None
    learning_style: str = Field(default=DEFAULT_LEARNING_STYLE)
    learning_preferences: LearningPreferences = Field(default_factory=LearningPreferences)

    @classmethod
    def from_user(cls, user) -> "LearningProfile":
        if user is None:
            return cls()
        preferences = user.learning_preferences or {}
        return cls(
            user_id=user.id,
            learning_style=user.learning_style or DEFAULT_LEARNING_STYLE,
            learning_preferences=LearningPreferences(
                explanation_style=preferences.get("explanation_style") or "detailed",
                examples=bool(preferences.get("examples", False)),
                difficulty=preferences.get("difficulty") or "intermediate",
            ),
        )

    def to_payload(self) -> dict:
        """Profile in the shape the hosted functions expect."""
        return {
            "id": str(self.user_id) if self.user_id else None,
            "learning_style": self.learning_style,
            "learning_preferences": self.learning_preferences.model_dump(),
        }


class UserResponse(BaseModelSchema):
    """Schema for user response."""

    auth_user_id: str
    email: str | None = None
    username: str | None = None
    is_active: bool
    learning_style: str | None = None
    learning_preferences: dict | None = None


class UserProfileUpdate(BaseSchema):
    """Schema for updating the learning profile."""

    username: str | None = Field(None, max_length=100)
    learning_style: str | None = Field(None, pattern="^(visual|auditory|reading|kinesthetic)$")
    learning_preferences: LearningPreferences | None = None
