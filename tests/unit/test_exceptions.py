"""
Unit tests for Exception classes.
"""

from fastapi import HTTPException

from app.exceptions.ai import (
    AIConfigurationError,
    AIContentFilterError,
    AIQuotaExceededError,
    AIRateLimitError,
    AIServiceError,
    AIServiceUnavailableError,
    AITimeoutError,
    ModelOverloadedError,
    map_ai_error,
)
from app.exceptions.base import BaseAppException, NotFoundError, ValidationError
from app.exceptions.chat import ChatSessionNotFoundError, SubmissionInProgressError
from app.exceptions.remote import (
    AudioJobNotFoundError,
    DocumentNotFoundError,
    NoteNotFoundError,
    RemoteFunctionError,
    UnsupportedFileTypeError,
)


class TestBaseAppException:
    """Test cases for BaseAppException."""

    def test_base_exception_default_values(self):
        """Test BaseAppException with default values."""
        exc = BaseAppException("Something broke")

        assert isinstance(exc, HTTPException)
        assert exc.status_code == 500
        assert exc.error_code == "INTERNAL_ERROR"
        assert exc.detail == {"message": "Something broke", "error_code": "INTERNAL_ERROR", "details": {}}
        assert str(exc) == "Something broke"

    def test_not_found(self):
        exc = NotFoundError()
        assert exc.status_code == 404
        assert exc.error_code == "NOT_FOUND"

    def test_validation_error(self):
        exc = ValidationError("Bad input", details={"field": "title"})
        assert exc.status_code == 422
        assert exc.detail["details"] == {"field": "title"}


class TestDomainExceptions:
    def test_chat_exceptions(self):
        assert ChatSessionNotFoundError().status_code == 404
        assert SubmissionInProgressError().status_code == 409

    def test_not_found_subclasses_keep_their_codes(self):
        """Resource-specific not-found errors carry their own error codes."""
        for exc, code in [
            (DocumentNotFoundError(), "DOCUMENT_NOT_FOUND"),
            (NoteNotFoundError(), "NOTE_NOT_FOUND"),
            (AudioJobNotFoundError(), "AUDIO_JOB_NOT_FOUND"),
        ]:
            assert isinstance(exc, NotFoundError)
            assert exc.status_code == 404
            assert exc.error_code == code
            assert exc.detail["error_code"] == code

    def test_remote_function_error_names_function(self):
        exc = RemoteFunctionError("failed", function_name="generate-note-from-document")
        assert exc.status_code == 502
        assert exc.details == {"function": "generate-note-from-document"}

    def test_unsupported_file_type_lists_allowed(self):
        exc = UnsupportedFileTypeError(allowed=["application/pdf"])
        assert exc.status_code == 415
        assert exc.details == {"allowed": ["application/pdf"]}


class TestAIExceptions:
    """Test cases for AI exceptions."""

    def test_status_codes(self):
        assert AIServiceError().status_code == 502
        assert AIServiceUnavailableError().status_code == 503
        assert ModelOverloadedError().status_code == 503
        assert AIQuotaExceededError().status_code == 429
        assert AITimeoutError().status_code == 504
        assert AIConfigurationError().status_code == 500
        assert AIContentFilterError().status_code == 422

    def test_overloaded_is_unavailable(self):
        exc = ModelOverloadedError()
        assert isinstance(exc, AIServiceUnavailableError)
        assert exc.error_code == "AI_MODEL_OVERLOADED"

    def test_rate_limit_retry_after(self):
        exc = AIRateLimitError(retry_after=30)
        assert exc.details == {"retry_after": 30}


class TestMapAIError:
    def test_passes_through_ai_errors(self):
        original = AITimeoutError()
        assert map_ai_error(original) is original

    def test_overloaded(self):
        assert isinstance(map_ai_error(Exception("The model is overloaded")), ModelOverloadedError)

    def test_rate_limit(self):
        assert isinstance(map_ai_error(Exception("Rate limit reached")), AIRateLimitError)

    def test_quota(self):
        assert isinstance(map_ai_error(Exception("429 Resource has been exhausted")), AIQuotaExceededError)

    def test_safety(self):
        assert isinstance(map_ai_error(Exception("Response blocked by safety")), AIContentFilterError)

    def test_deadline(self):
        assert isinstance(map_ai_error(Exception("Deadline exceeded")), AITimeoutError)

    def test_fallback(self):
        exc = map_ai_error(Exception("weird"))
        assert type(exc) is AIServiceError
        assert exc.message == "AI service error: weird"
