"""Post-now and scheduled-post pipelines, plus the worker callback that fires scheduled tweets.

Lifecycle of a ``Tweet`` row:

- Draft-pending: inserted, not yet sent (also where failed immediate posts stay)
- Scheduled: future ``scheduled_unix`` plus the queue ``job_message_id``
- Published: ``is_published`` with the platform ``twitter_id``

Input validation always happens before any row is written or any network
call is made.
"""

import base64
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio.config import get_settings
from studio.core.exceptions import (
    AccountCredentialsMissing,
    AccountNotFound,
    InvalidCursor,
    InvalidScheduleTime,
    InvalidTweetText,
    PersistenceFailure,
    PublishFailure,
    QueueMessageNotFound,
    QueueOperationFailure,
    ScheduledTweetNotFound,
)
from studio.core.token_encryption import decrypt_credentials
from studio.db.models.connected_account import ConnectedAccount
from studio.db.models.tweet import Tweet
from studio.services.account_cache import AccountCache
from studio.services.account_service import list_db_accounts, resolve_target, to_cached
from studio.services.job_queue import JobQueue
from studio.services.twitter_client import get_twitter_client

logger = logging.getLogger(__name__)


def validate_tweet(text: str, media_ids: Sequence[str] = ()) -> list[str]:
    """Check text length and media id list; return the media ids as a list."""
    settings = get_settings()
    if not text or not text.strip():
        raise InvalidTweetText("Tweet cannot be empty")
    if len(text) > settings.tweet_max_chars:
        raise InvalidTweetText(f"Tweet exceeds {settings.tweet_max_chars} characters")
    ids = [str(m) for m in (media_ids or [])]
    if len(ids) > settings.max_media_per_tweet:
        raise InvalidTweetText(f"A tweet can have at most {settings.max_media_per_tweet} media attachments")
    if len(set(ids)) != len(ids):
        raise InvalidTweetText("Media attachments must be unique")
    return ids


def validate_schedule_time(scheduled_unix: float, now: Optional[float] = None) -> None:
    """Require a minimum lead time and a bounded horizon (both in seconds)."""
    settings = get_settings()
    now = time.time() if now is None else now
    if scheduled_unix <= now + settings.schedule_min_lead_seconds:
        raise InvalidScheduleTime(
            f"Schedule time must be at least {settings.schedule_min_lead_seconds} seconds in the future"
        )
    horizon = settings.schedule_max_horizon_days * 24 * 60 * 60
    if scheduled_unix > now + horizon:
        raise InvalidScheduleTime(
            f"Schedule time cannot be more than {settings.schedule_max_horizon_days} days in the future"
        )


def _credentials(account: ConnectedAccount) -> tuple[str, str]:
    token, secret = decrypt_credentials(account.access_token, account.access_secret)
    if not token or not secret:
        raise AccountCredentialsMissing()
    return token, secret


def _publish(tweet: Tweet, account: ConnectedAccount) -> str:
    """Send the tweet with the account's current credentials; return the platform id."""
    token, secret = _credentials(account)
    client = get_twitter_client(token, secret)
    return client.post_tweet(tweet.content, tweet.media_ids or None)


def _mark_published(tweet: Tweet, twitter_id: str) -> None:
    tweet.twitter_id = twitter_id
    tweet.is_published = True
    tweet.is_scheduled = False
    tweet.job_message_id = None
    tweet.error = None
    tweet.published_at = datetime.now(timezone.utc)


def _record_error(db: Session, tweet: Tweet, err: Exception) -> None:
    tweet.error = {
        "code": getattr(err, "code", err.__class__.__name__),
        "message": getattr(err, "message", str(err)),
        "at": datetime.now(timezone.utc).isoformat(),
    }
    db.commit()


def post_now(
    db: Session,
    cache: AccountCache,
    user_id: str,
    text: str,
    account_id: Optional[str] = None,
    media_ids: Sequence[str] = (),
) -> dict[str, Any]:
    ids = validate_tweet(text, media_ids)
    target = resolve_target(db, cache, user_id, account_id)
    if not target.has_credentials:
        raise AccountCredentialsMissing()

    # Persisted before the network call so a crash mid-publish leaves a retryable record.
    tweet = Tweet(
        id=str(uuid.uuid4()),
        user_id=user_id,
        account_id=target.id,
        content=text,
        media_ids=ids,
        is_scheduled=False,
        is_published=False,
    )
    db.add(tweet)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to store tweet for user %s: %s", user_id, e)
        raise PersistenceFailure("Failed to store tweet in database") from e

    try:
        twitter_id = _publish(tweet, target)
    except (PublishFailure, AccountCredentialsMissing) as e:
        logger.warning("Tweet %s failed to publish: %s", tweet.id, e.message)
        _record_error(db, tweet, e)
        raise

    _mark_published(tweet, twitter_id)
    db.commit()
    logger.info("Tweet %s published as %s", tweet.id, twitter_id)
    return {"tweet_id": tweet.id, "twitter_id": twitter_id, "account_id": target.id}


def schedule(
    db: Session,
    cache: AccountCache,
    queue: JobQueue,
    user_id: str,
    text: str,
    scheduled_unix: float,
    account_id: Optional[str] = None,
    media_ids: Sequence[str] = (),
    now: Optional[float] = None,
) -> dict[str, Any]:
    ids = validate_tweet(text, media_ids)
    target = resolve_target(db, cache, user_id, account_id)
    if not target.has_credentials:
        raise AccountCredentialsMissing()
    validate_schedule_time(scheduled_unix, now=now)

    tweet_id = str(uuid.uuid4())
    message_id = queue.publish({"tweet_id": tweet_id}, int(scheduled_unix))

    scheduled_for = datetime.fromtimestamp(scheduled_unix, tz=timezone.utc)
    tweet = Tweet(
        id=tweet_id,
        user_id=user_id,
        account_id=target.id,
        content=text,
        media_ids=ids,
        is_scheduled=True,
        scheduled_unix=int(scheduled_unix * 1000),
        scheduled_for=scheduled_for,
        job_message_id=message_id,
    )
    db.add(tweet)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to store scheduled tweet %s: %s", tweet_id, e)
        _discard_job(queue, message_id)
        raise PersistenceFailure("Failed to schedule tweet") from e

    logger.info("Tweet %s scheduled for %s (job %s)", tweet_id, scheduled_for.isoformat(), message_id)
    return {
        "tweet_id": tweet_id,
        "scheduled_for": scheduled_for,
        "account_id": target.id,
        "job_message_id": message_id,
    }


def update_scheduled(
    db: Session,
    queue: JobQueue,
    user_id: str,
    tweet_id: str,
    text: str,
    scheduled_unix: float,
    media_ids: Sequence[str] = (),
    now: Optional[float] = None,
) -> dict[str, Any]:
    tweet = _get_pending(db, user_id, tweet_id)
    ids = validate_tweet(text, media_ids)
    validate_schedule_time(scheduled_unix, now=now)

    # Old job goes first: if it cannot be removed the update is refused so one tweet never has two jobs.
    if tweet.job_message_id:
        try:
            queue.delete_message(tweet.job_message_id)
        except QueueMessageNotFound:
            logger.info("Job %s for tweet %s was already gone", tweet.job_message_id, tweet.id)
        except QueueOperationFailure as e:
            raise QueueOperationFailure("Failed to cancel existing scheduled tweet") from e

    try:
        message_id = queue.publish({"tweet_id": tweet.id}, int(scheduled_unix))
    except QueueOperationFailure as e:
        logger.error("Failed to enqueue new job for tweet %s: %s", tweet.id, e.message)
        _restore_schedule(db, queue, tweet, e)
        raise

    scheduled_for = datetime.fromtimestamp(scheduled_unix, tz=timezone.utc)
    tweet.content = text
    tweet.media_ids = ids
    tweet.scheduled_unix = int(scheduled_unix * 1000)
    tweet.scheduled_for = scheduled_for
    tweet.job_message_id = message_id
    tweet.error = None
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to update scheduled tweet %s: %s", tweet.id, e)
        _discard_job(queue, message_id)
        failure = PersistenceFailure("Failed to update scheduled tweet")
        _restore_schedule(db, queue, tweet, failure)
        raise failure from e

    logger.info("Tweet %s rescheduled for %s (job %s)", tweet.id, scheduled_for.isoformat(), message_id)
    return {
        "tweet_id": tweet.id,
        "scheduled_for": scheduled_for,
        "account_id": tweet.account_id,
        "job_message_id": message_id,
    }


def cancel_scheduled(db: Session, queue: JobQueue, user_id: str, tweet_id: str) -> None:
    tweet = _get_pending(db, user_id, tweet_id)
    if tweet.job_message_id:
        try:
            queue.delete_message(tweet.job_message_id)
        except QueueMessageNotFound:
            logger.info("Job %s for tweet %s was already gone", tweet.job_message_id, tweet.id)
    db.delete(tweet)
    db.commit()
    logger.info("Scheduled tweet %s cancelled", tweet_id)


def list_scheduled(db: Session, user_id: str) -> list[Tweet]:
    return (
        db.query(Tweet)
        .filter(
            Tweet.user_id == user_id,
            Tweet.is_scheduled.is_(True),
            Tweet.is_published.is_(False),
        )
        .order_by(Tweet.scheduled_for.desc())
        .all()
    )


def encode_cursor(tweet: Tweet) -> str:
    """Opaque, URL-safe position after ``tweet`` in the newest-first listing."""
    raw = f"{tweet.created_at.isoformat()}|{tweet.id}"
    return base64.urlsafe_b64encode(raw.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, str]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
        stamp, sep, tweet_id = raw.partition("|")
        if not sep or not tweet_id:
            raise ValueError("cursor has no tweet id")
        return datetime.fromisoformat(stamp), tweet_id
    except ValueError as e:
        raise InvalidCursor() from e


def list_posted(
    db: Session,
    cache: AccountCache,
    user_id: str,
    limit: int = 20,
    cursor: Optional[str] = None,
    account_id: Optional[str] = None,
    search: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> dict[str, Any]:
    """Published tweets newest first, paged by a ``(created_at, id)`` cursor, with account profiles attached."""
    accounts = {a.id: a for a in list_db_accounts(db, user_id)}
    if not accounts:
        return {"tweets": [], "next_cursor": None, "has_more": False}

    q = db.query(Tweet).filter(
        Tweet.user_id == user_id,
        Tweet.is_published.is_(True),
        Tweet.account_id.in_(list(accounts)),
    )
    if account_id:
        q = q.filter(Tweet.account_id == account_id)
    if date_from:
        q = q.filter(Tweet.created_at >= date_from)
    if date_to:
        q = q.filter(Tweet.created_at <= date_to)
    if cursor:
        created_at, last_id = decode_cursor(cursor)
        q = q.filter(
            or_(
                Tweet.created_at < created_at,
                and_(Tweet.created_at == created_at, Tweet.id < last_id),
            )
        )
    if search and search.strip():
        q = q.filter(Tweet.content.ilike(f"%{search.strip()}%"))
    rows = q.order_by(Tweet.created_at.desc(), Tweet.id.desc()).limit(limit + 1).all()

    has_more = len(rows) > limit
    rows = rows[:limit]
    items = []
    for tweet in rows:
        account = accounts[tweet.account_id]
        profile = cache.get_account(user_id, account.account_id) or to_cached(account)
        items.append(
            {
                "tweet": tweet,
                "account": {
                    "id": account.id,
                    "account_id": account.account_id,
                    "username": profile.username,
                    "display_name": profile.display_name,
                    "profile_image": profile.profile_image,
                    "verified": profile.verified,
                },
            }
        )
    next_cursor = encode_cursor(rows[-1]) if has_more and rows else None
    return {"tweets": items, "next_cursor": next_cursor, "has_more": has_more}


def publish_scheduled(db: Session, tweet_id: str, message_id: Optional[str] = None) -> dict[str, Any]:
    """Worker callback for a fired job. Safe under at-least-once delivery.

    Missing records, already-published tweets and superseded jobs are no-ops.
    A missing account or credentials is recorded on the row and raised.
    """
    # Row lock held until the publish outcome is committed, so concurrent redeliveries serialize.
    tweet = db.get(Tweet, tweet_id, with_for_update=True, populate_existing=True)
    if tweet is None:
        logger.info("Scheduled job fired for missing tweet %s; ignoring", tweet_id)
        return {"tweet_id": tweet_id, "status": "skipped", "reason": "not_found"}
    if tweet.is_published:
        logger.info("Tweet %s already published as %s; ignoring redelivery", tweet_id, tweet.twitter_id)
        return {"tweet_id": tweet_id, "status": "skipped", "reason": "already_published"}
    if message_id and tweet.job_message_id and message_id != tweet.job_message_id:
        logger.info("Job %s superseded by %s for tweet %s; ignoring", message_id, tweet.job_message_id, tweet_id)
        return {"tweet_id": tweet_id, "status": "skipped", "reason": "superseded"}

    account = db.get(ConnectedAccount, tweet.account_id)
    if account is None:
        err = AccountNotFound("Account for scheduled tweet no longer exists")
        logger.error("Scheduled tweet %s: %s", tweet_id, err.message)
        _record_error(db, tweet, err)
        raise err

    try:
        twitter_id = _publish(tweet, account)
    except (PublishFailure, AccountCredentialsMissing) as e:
        logger.error("Scheduled tweet %s failed to publish: %s", tweet_id, e.message)
        _record_error(db, tweet, e)
        raise

    _mark_published(tweet, twitter_id)
    db.commit()
    logger.info("Scheduled tweet %s published as %s", tweet_id, twitter_id)
    return {"tweet_id": tweet_id, "status": "published", "twitter_id": twitter_id}


def _get_pending(db: Session, user_id: str, tweet_id: str) -> Tweet:
    tweet = (
        db.query(Tweet)
        .filter(
            Tweet.id == tweet_id,
            Tweet.user_id == user_id,
            Tweet.is_scheduled.is_(True),
            Tweet.is_published.is_(False),
        )
        .first()
    )
    if tweet is None:
        raise ScheduledTweetNotFound()
    return tweet


def _restore_schedule(db: Session, queue: JobQueue, tweet: Tweet, cause: Exception) -> None:
    """Re-arm a tweet at its stored time after a failed reschedule and record the failure on the row.

    The old job is already revoked at this point, so without a fresh job the
    tweet would stay Scheduled and never fire.
    """
    try:
        stored_unix = tweet.scheduled_unix
    except SQLAlchemyError as e:
        logger.error("Could not reload the tweet to re-arm it: %s", e)
        return
    restored_id = None
    if stored_unix is not None:
        try:
            restored_id = queue.publish({"tweet_id": tweet.id}, stored_unix // 1000)
        except QueueOperationFailure as e:
            logger.error("Could not re-arm tweet %s at its previous time: %s", tweet.id, e.message)
    tweet.job_message_id = restored_id
    try:
        _record_error(db, tweet, cause)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to record reschedule failure on tweet %s: %s", tweet.id, e)
        # The row still names the revoked job, so the worker would skip this one anyway.
        if restored_id:
            _discard_job(queue, restored_id)
        return
    if restored_id:
        logger.info("Tweet %s re-armed for its previous time (job %s)", tweet.id, restored_id)


def _discard_job(queue: JobQueue, message_id: str) -> None:
    """Best-effort removal of a job no tweet row points at."""
    try:
        queue.delete_message(message_id)
        logger.info("Removed orphaned job %s", message_id)
    except QueueOperationFailure as e:
        logger.error("Failed to clean up orphaned job %s: %s", message_id, e.message)
