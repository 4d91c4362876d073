"""
Provides the User model for the application's database schema.

The User model mirrors the account issued by the hosted authentication
service and carries the learning profile that personalises AI answers.

Attributes
----------
auth_user_id : sqlalchemy.Column
    Subject (``sub`` claim) of the access token issued by the auth service.
email : sqlalchemy.Column
    The email address of the user.
username : sqlalchemy.Column
    The optional display name chosen by the user.
is_active : sqlalchemy.Column
    A boolean indicating if the user is active. Defaults to `True`.
learning_style : sqlalchemy.Column
    Preferred learning style (visual, auditory, reading, kinesthetic).
learning_preferences : sqlalchemy.Column
    JSON object with ``explanation_style``, ``examples`` and ``difficulty``.
"""

from sqlalchemy import JSON, Boolean, Column, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class User(BaseModel):
    """
    Represents a user entity in the application.

    :ivar auth_user_id: Unique identifier for the user provided by the auth service.
    :type auth_user_id: str
    :ivar email: Email address of the user.
    :type email: str
    :ivar username: Username of the user. This is optional.
    :type username: str
    :ivar is_active: Indicates whether the user account is active.
    :type is_active: bool
    """

    __tablename__ = "users"

    auth_user_id = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), nullable=True)
    username = Column(String(100))
    is_active = Column(Boolean, default=True)
    learning_style = Column(String(50), default="visual")
    learning_preferences = Column(JSON, nullable=True)

    # Relationships
    chat_sessions = relationship("ChatSession", back_populates="user", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="user", cascade="all, delete-orphan")
    notes = relationship("Note", back_populates="user", cascade="all, delete-orphan")
