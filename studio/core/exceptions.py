"""Domain errors for account selection, media validation, publishing and scheduling.

Every error carries a stable ``code`` and an HTTP status so the API layer can
render the same ``{"detail": {"code": ..., "message": ...}}`` body for all of them.
"""

from enum import Enum
from typing import Any, Optional

from fastapi import HTTPException

NO_ACCOUNTS_CONNECTED = "NO_ACCOUNTS_CONNECTED"
ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
ACCOUNT_CREDENTIALS_MISSING = "ACCOUNT_CREDENTIALS_MISSING"
INVALID_TWEET_TEXT = "INVALID_TWEET_TEXT"
MEDIA_VALIDATION_ERROR = "MEDIA_VALIDATION_ERROR"
INVALID_SCHEDULE_TIME = "INVALID_SCHEDULE_TIME"
SCHEDULED_TWEET_NOT_FOUND = "SCHEDULED_TWEET_NOT_FOUND"
INVALID_CURSOR = "INVALID_CURSOR"
PUBLISH_FAILURE = "PUBLISH_FAILURE"
QUEUE_OPERATION_FAILURE = "QUEUE_OPERATION_FAILURE"
QUEUE_MESSAGE_NOT_FOUND = "QUEUE_MESSAGE_NOT_FOUND"
PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
STORAGE_FAILURE = "STORAGE_FAILURE"


class StudioError(Exception):
    code: str = "STUDIO_ERROR"
    status_code: int = 500
    default_message: str = "Request failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def extra(self) -> dict[str, Any]:
        return {}

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.extra()}


class NoAccountsConnected(StudioError):
    code = NO_ACCOUNTS_CONNECTED
    status_code = 400
    default_message = "No connected Twitter accounts. Connect an account first."


class AccountNotFound(StudioError):
    code = ACCOUNT_NOT_FOUND
    status_code = 404
    default_message = "Account not found or you do not have permission to access it"


class AccountCredentialsMissing(StudioError):
    code = ACCOUNT_CREDENTIALS_MISSING
    status_code = 400
    default_message = "Account is missing credentials. Reconnect it and try again."


class InvalidTweetText(StudioError):
    code = INVALID_TWEET_TEXT
    status_code = 422
    default_message = "Tweet text is invalid."


class MediaValidationReason(str, Enum):
    OVERSIZE = "oversize"
    FORMAT_MISMATCH = "format-mismatch"
    COMPOSITION_VIOLATION = "composition-violation"
    CORRUPT_HEADER = "corrupt-header"


class MediaValidationError(StudioError):
    code = MEDIA_VALIDATION_ERROR
    status_code = 422
    default_message = "Media failed validation."

    def __init__(self, reason: MediaValidationReason, message: Optional[str] = None):
        self.reason = MediaValidationReason(reason)
        super().__init__(message)

    def __reduce__(self):
        return (type(self), (self.reason, self.message))

    def extra(self) -> dict[str, Any]:
        return {"reason": self.reason.value}


class InvalidScheduleTime(StudioError):
    code = INVALID_SCHEDULE_TIME
    status_code = 422
    default_message = "Schedule time is out of range."


class InvalidCursor(StudioError):
    code = INVALID_CURSOR
    status_code = 422
    default_message = "Invalid pagination cursor"


class ScheduledTweetNotFound(StudioError):
    code = SCHEDULED_TWEET_NOT_FOUND
    status_code = 404
    default_message = "Scheduled tweet not found"


class PublishFailure(StudioError):
    code = PUBLISH_FAILURE
    status_code = 502
    default_message = "Failed to post tweet"

    def __init__(self, message: Optional[str] = None, platform_message: Optional[str] = None):
        self.platform_message = platform_message or message
        super().__init__(message)

    def __reduce__(self):
        return (type(self), (self.message, self.platform_message))

    def extra(self) -> dict[str, Any]:
        return {"platformMessage": self.platform_message}


class QueueOperationFailure(StudioError):
    code = QUEUE_OPERATION_FAILURE
    status_code = 503
    default_message = "Scheduling queue is unavailable. Please try again."


class QueueMessageNotFound(QueueOperationFailure):
    code = QUEUE_MESSAGE_NOT_FOUND
    status_code = 404
    default_message = "Queued job no longer exists."


class PersistenceFailure(StudioError):
    code = PERSISTENCE_FAILURE
    status_code = 500
    default_message = "Failed to save tweet."


class StorageFailure(StudioError):
    code = STORAGE_FAILURE
    status_code = 502
    default_message = "Object storage request failed."


def to_http_exception(err: StudioError) -> HTTPException:
    """Map a domain error to the HTTPException body the frontend expects."""
    return HTTPException(status_code=err.status_code, detail=err.to_detail())
