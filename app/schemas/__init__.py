# ruff: noqa: F403, F401
"""Schemas package initialization."""

# Import all schemas to ensure they're registered
from .audio import *
from .base import *
from .chat import *
from .document import *
from .note import *
from .user import *
