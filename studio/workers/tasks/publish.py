"""Fire scheduled tweets: load the record, publish with the account's credentials, mark Published."""

import logging

from sqlalchemy.orm import Session

from studio.core.exceptions import AccountCredentialsMissing, AccountNotFound, PublishFailure
from studio.db.base import SessionLocal
from studio.services.tweet_service import publish_scheduled
from studio.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, autoretry_for=(PublishFailure,), retry_backoff=True, max_retries=5)
def publish_scheduled_tweet(self, tweet_id: str):
    """Publish one scheduled tweet. The task id is the queue message id, so superseded jobs skip."""
    db: Session = SessionLocal()
    try:
        return publish_scheduled(db, tweet_id, message_id=self.request.id)
    except (AccountNotFound, AccountCredentialsMissing) as e:
        # Recorded on the row already; retrying cannot fix a missing account.
        logger.error("Scheduled tweet %s cannot be published: %s", tweet_id, e.message)
        return {"tweet_id": tweet_id, "status": "failed", "error": e.to_detail()}
    finally:
        db.close()
