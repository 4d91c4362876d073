"""Chat-related exceptions."""

from .base import BaseAppException


class ChatSessionNotFoundError(BaseAppException):
    """Raised when a chat session is not found."""

    def __init__(self, message: str = "Chat session not found"):
        super().__init__(message=message, status_code=404, error_code="CHAT_SESSION_NOT_FOUND")


class MessageNotFoundError(BaseAppException):
    """Raised when a chat message is not found."""

    def __init__(self, message: str = "Message not found"):
        super().__init__(message=message, status_code=404, error_code="MESSAGE_NOT_FOUND")


class SubmissionInProgressError(BaseAppException):
    """Raised when a chat submission arrives while another one is in flight."""

    def __init__(self, message: str = "A message is already being processed"):
        super().__init__(message=message, status_code=409, error_code="SUBMISSION_IN_PROGRESS")


class EmptySubmissionError(BaseAppException):
    """Raised when a submission has no text, attachments or image."""

    def __init__(self, message: str = "Message content or attachments are required"):
        super().__init__(message=message, status_code=400, error_code="EMPTY_SUBMISSION")


class ChatStoreError(BaseAppException):
    """Raised when a chat row could not be written."""

    def __init__(self, message: str = "Failed to save chat data"):
        super().__init__(message=message, status_code=500, error_code="CHAT_STORE_ERROR")


class InvalidChatOperationError(BaseAppException):
    """Raised when regenerate or retry has nothing to act on."""

    def __init__(self, message: str = "Invalid chat operation"):
        super().__init__(message=message, status_code=400, error_code="INVALID_CHAT_OPERATION")
