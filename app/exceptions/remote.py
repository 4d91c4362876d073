"""Exceptions for hosted functions, storage and study material."""

from typing import Any

from .base import BaseAppException, NotFoundError


class RemoteFunctionError(BaseAppException):
    """Raised when a serverless function call fails."""

    def __init__(
        self,
        message: str = "Remote function call failed",
        function_name: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        if details is None:
            details = {}
        if function_name:
            details["function"] = function_name
        super().__init__(
            message=message,
            status_code=502,
            error_code="REMOTE_FUNCTION_ERROR",
            details=details,
        )


class RemoteResponseError(BaseAppException):
    """Raised when a remote service answers without the data it must return."""

    def __init__(
        self,
        message: str = "Malformed response from remote service",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=502,
            error_code="REMOTE_RESPONSE_ERROR",
            details=details,
        )


class StorageError(BaseAppException):
    """Raised when an object storage upload fails."""

    def __init__(self, message: str = "File upload failed"):
        super().__init__(message=message, status_code=502, error_code="STORAGE_ERROR")


class UnsupportedFileTypeError(BaseAppException):
    """Raised when an uploaded file has a content type we do not process."""

    def __init__(self, message: str = "Unsupported file type", allowed: list[str] | None = None):
        super().__init__(
            message=message,
            status_code=415,
            error_code="UNSUPPORTED_FILE_TYPE",
            details={"allowed": allowed or []},
        )


class FileTooLargeError(BaseAppException):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, message: str = "File is too large"):
        super().__init__(message=message, status_code=413, error_code="FILE_TOO_LARGE")


class DocumentNotFoundError(NotFoundError):
    """Raised when a document is not found."""

    def __init__(self, message: str = "Document not found"):
        super().__init__(message=message)
        self.error_code = "DOCUMENT_NOT_FOUND"
        self.detail["error_code"] = self.error_code


class NoteNotFoundError(NotFoundError):
    """Raised when a note is not found."""

    def __init__(self, message: str = "Note not found"):
        super().__init__(message=message)
        self.error_code = "NOTE_NOT_FOUND"
        self.detail["error_code"] = self.error_code


class AudioJobNotFoundError(NotFoundError):
    """Raised when an audio job is not found."""

    def __init__(self, message: str = "Audio job not found"):
        super().__init__(message=message)
        self.error_code = "AUDIO_JOB_NOT_FOUND"
        self.detail["error_code"] = self.error_code
