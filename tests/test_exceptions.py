"""Tests for studio.core.exceptions -- codes, statuses and response bodies."""

import pickle

import pytest

from studio.core.exceptions import (
    AccountCredentialsMissing,
    AccountNotFound,
    InvalidCursor,
    InvalidScheduleTime,
    InvalidTweetText,
    MediaValidationError,
    MediaValidationReason,
    NoAccountsConnected,
    PersistenceFailure,
    PublishFailure,
    QueueMessageNotFound,
    QueueOperationFailure,
    ScheduledTweetNotFound,
    StorageFailure,
    StudioError,
    to_http_exception,
)


class TestStatusCodes:
    @pytest.mark.parametrize(
        "exc_cls,status",
        [
            (NoAccountsConnected, 400),
            (AccountNotFound, 404),
            (AccountCredentialsMissing, 400),
            (InvalidTweetText, 422),
            (InvalidScheduleTime, 422),
            (InvalidCursor, 422),
            (ScheduledTweetNotFound, 404),
            (PublishFailure, 502),
            (QueueOperationFailure, 503),
            (QueueMessageNotFound, 404),
            (PersistenceFailure, 500),
            (StorageFailure, 502),
        ],
    )
    def test_status_code(self, exc_cls, status):
        err = exc_cls()
        assert isinstance(err, StudioError)
        assert err.status_code == status
        assert err.message == exc_cls.default_message

    def test_message_not_found_is_a_queue_failure(self):
        assert issubclass(QueueMessageNotFound, QueueOperationFailure)


class TestDetailBody:
    def test_to_detail(self):
        assert AccountNotFound("Selected account not found").to_detail() == {
            "code": "ACCOUNT_NOT_FOUND",
            "message": "Selected account not found",
        }

    def test_publish_failure_carries_platform_message(self):
        err = PublishFailure("Rate limit exceeded. Please try again later.", platform_message="Too Many Requests")
        assert err.to_detail()["platformMessage"] == "Too Many Requests"

    def test_to_http_exception(self):
        http = to_http_exception(MediaValidationError(MediaValidationReason.OVERSIZE, "too big"))
        assert http.status_code == 422
        assert http.detail == {"code": "MEDIA_VALIDATION_ERROR", "message": "too big", "reason": "oversize"}


class TestPickling:
    """Worker results and retries serialize exceptions; extra constructor args must survive."""

    def test_media_validation_error(self):
        err = pickle.loads(pickle.dumps(MediaValidationError(MediaValidationReason.CORRUPT_HEADER, "bad")))
        assert err.reason is MediaValidationReason.CORRUPT_HEADER
        assert err.message == "bad"

    def test_publish_failure(self):
        err = pickle.loads(pickle.dumps(PublishFailure("failed", platform_message="401 Unauthorized")))
        assert err.platform_message == "401 Unauthorized"
