"""Tests for studio.services.job_queue -- Celery-backed delayed job queue."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from kombu.exceptions import OperationalError

from studio.core.exceptions import QueueMessageNotFound, QueueOperationFailure
from studio.services.job_queue import PUBLISH_TASK_NAME, CeleryJobQueue


@pytest.fixture
def app():
    app = MagicMock()
    app.send_task.return_value.id = "task-123"
    app.AsyncResult.return_value.state = "PENDING"
    return app


class TestPublish:
    def test_sends_eta_task(self, app):
        message_id = CeleryJobQueue(app).publish({"tweet_id": "t-1"}, 1_800_000_000)
        assert message_id == "task-123"
        app.send_task.assert_called_once_with(
            PUBLISH_TASK_NAME,
            kwargs={"tweet_id": "t-1"},
            eta=datetime.fromtimestamp(1_800_000_000, tz=timezone.utc),
        )

    def test_broker_failure(self, app):
        app.send_task.side_effect = OperationalError("broker unreachable")
        with pytest.raises(QueueOperationFailure):
            CeleryJobQueue(app).publish({"tweet_id": "t-1"}, 1_800_000_000)


class TestDeleteMessage:
    def test_revokes_pending_job(self, app):
        CeleryJobQueue(app).delete_message("task-123")
        app.control.revoke.assert_called_once_with("task-123")

    @pytest.mark.parametrize("state", ["SUCCESS", "FAILURE", "REVOKED"])
    def test_finished_job_is_not_found(self, app, state):
        app.AsyncResult.return_value.state = state
        with pytest.raises(QueueMessageNotFound):
            CeleryJobQueue(app).delete_message("task-123")
        app.control.revoke.assert_not_called()

    def test_backend_failure(self, app):
        app.control.revoke.side_effect = ConnectionRefusedError()
        with pytest.raises(QueueOperationFailure) as exc:
            CeleryJobQueue(app).delete_message("task-123")
        assert not isinstance(exc.value, QueueMessageNotFound)
