"""Delayed job queue for scheduled tweets, backed by Celery ETA tasks.

``publish`` hands the worker a body holding only the tweet id and a not-before
unix time; the returned Celery task id is the message id stored on the tweet.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from celery import Celery
from celery.states import READY_STATES
from kombu.exceptions import KombuError
from redis.exceptions import RedisError

from studio.core.exceptions import QueueMessageNotFound, QueueOperationFailure

logger = logging.getLogger(__name__)

PUBLISH_TASK_NAME = "studio.workers.tasks.publish.publish_scheduled_tweet"

_QUEUE_ERRORS = (KombuError, RedisError, OSError)


class JobQueue(Protocol):
    def publish(self, body: dict[str, Any], not_before: int) -> str: ...

    def delete_message(self, message_id: str) -> None: ...


class CeleryJobQueue:
    def __init__(self, app: Celery, task_name: str = PUBLISH_TASK_NAME):
        self.app = app
        self.task_name = task_name

    def publish(self, body: dict[str, Any], not_before: int) -> str:
        eta = datetime.fromtimestamp(not_before, tz=timezone.utc)
        try:
            result = self.app.send_task(self.task_name, kwargs=body, eta=eta)
        except _QUEUE_ERRORS as e:
            logger.error("Failed to enqueue %s at %s: %s", self.task_name, eta.isoformat(), e)
            raise QueueOperationFailure("Failed to schedule tweet. Please try again.") from e
        logger.info("Enqueued job %s for %s", result.id, eta.isoformat())
        return result.id

    def delete_message(self, message_id: str) -> None:
        """Revoke a pending job; QueueMessageNotFound when it has already run."""
        try:
            state = self.app.AsyncResult(message_id).state
            if state in READY_STATES:
                raise QueueMessageNotFound(f"Job {message_id} already finished ({state})")
            self.app.control.revoke(message_id)
        except _QUEUE_ERRORS as e:
            logger.error("Failed to revoke job %s: %s", message_id, e)
            raise QueueOperationFailure("Failed to cancel scheduled job. Please try again.") from e
        logger.info("Revoked job %s", message_id)


def get_job_queue() -> CeleryJobQueue:
    from studio.workers.celery_app import celery_app

    return CeleryJobQueue(celery_app)
