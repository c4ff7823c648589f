"""Celery app configuration."""

from celery import Celery
from studio.config import get_settings

settings = get_settings()
celery_app = Celery(
    "content_studio",
    broker=settings.celery_broker,
    backend=settings.redis_url,
    include=[
        "studio.workers.tasks.publish",
    ],
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # ETA jobs can sit in the broker for a long time; keep redis from redelivering them early.
    broker_transport_options={"visibility_timeout": 60 * 60 * 24 * 7},
)
