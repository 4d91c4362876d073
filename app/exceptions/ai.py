# ruff: noqa: D107
"""AI service exceptions."""

from typing import Any

from .base import BaseAppException

# Substring the model backends use when they shed load
MODEL_OVERLOADED_MARKER = "The model is overloaded"
MODEL_OVERLOADED_MESSAGE = "AI model is currently overloaded. Please try again in a few moments."


class AIServiceError(BaseAppException):
    """Base exception for AI service errors."""

    status_code_default = 502

    def __init__(
        self,
        message: str = "AI service error occurred",
        error_code: str = "AI_SERVICE_ERROR",
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code or self.status_code_default,
            error_code=error_code,
            details=details,
        )


class AIServiceUnavailableError(AIServiceError):
    """Exception raised when AI service is unavailable."""

    status_code_default = 503

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_SERVICE_UNAVAILABLE", details)


class ModelOverloadedError(AIServiceUnavailableError):
    """Exception raised when the model reports it is overloaded."""

    def __init__(
        self,
        message: str = MODEL_OVERLOADED_MESSAGE,
        details: dict[str, Any] | None = None,
    ):
        AIServiceError.__init__(self, message, "AI_MODEL_OVERLOADED", details)


class AIQuotaExceededError(AIServiceError):
    """Exception raised when AI service quota is exceeded."""

    status_code_default = 429

    def __init__(
        self,
        message: str = "AI service quota exceeded",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_QUOTA_EXCEEDED", details)


class AITimeoutError(AIServiceError):
    """Exception raised when AI service request times out."""

    status_code_default = 504

    def __init__(
        self,
        message: str = "AI service request timed out",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_TIMEOUT", details)


class AIConfigurationError(AIServiceError):
    """Exception raised when AI service is not properly configured."""

    status_code_default = 500

    def __init__(
        self,
        message: str = "AI service is not properly configured",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_CONFIGURATION_ERROR", details)


class AIContentFilterError(AIServiceError):
    """Exception raised when content is blocked by AI safety filters."""

    status_code_default = 422

    def __init__(
        self,
        message: str = "Content was blocked by AI safety filters",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_CONTENT_FILTERED", details)


class AIRateLimitError(AIServiceError):
    """Exception raised when AI service rate limit is hit."""

    status_code_default = 429

    def __init__(
        self,
        message: str = "AI service rate limit exceeded",
        retry_after: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        if details is None:
            details = {}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(message, "AI_RATE_LIMITED", details)


class AIEmptyResponseError(AIServiceError):
    """Exception raised when the model answers with no text."""

    def __init__(
        self,
        message: str = "Empty response from AI service",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_EMPTY_RESPONSE", details)


def map_ai_error(error: Exception) -> AIServiceError:
    """Translate a raw model client error into the AI exception family."""
    if isinstance(error, AIServiceError):
        return error

    raw = str(error)
    error_msg = raw.lower()
    if MODEL_OVERLOADED_MARKER.lower() in error_msg or "overloaded" in error_msg:
        return ModelOverloadedError()
    if "rate" in error_msg and "limit" in error_msg:
        return AIRateLimitError("Rate limit exceeded")
    if "quota" in error_msg or "resource has been exhausted" in error_msg:
        return AIQuotaExceededError("API quota exceeded")
    if "safety" in error_msg or "blocked" in error_msg:
        return AIContentFilterError("Content blocked by safety filters")
    if "deadline" in error_msg or "timed out" in error_msg:
        return AITimeoutError("AI request timed out")
    return AIServiceError(f"AI service error: {raw}")
