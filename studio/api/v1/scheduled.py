"""Scheduled tweets: create, list, reschedule, cancel; plus the worker delivery webhook."""

from fastapi import APIRouter, Depends, status

from studio.dependencies import Cache, CurrentUser, DbSession, Queue, require_worker_token
from studio.schemas.twitter import (
    ScheduleTweetRequest,
    ScheduleTweetResponse,
    TweetResponse,
    UpdateScheduledRequest,
    WorkerPublishRequest,
)
from studio.services import tweet_service

router = APIRouter(prefix="/twitter/scheduled", tags=["twitter-scheduled"])
worker_router = APIRouter(prefix="/scheduled", tags=["worker"])


def _schedule_response(result: dict) -> ScheduleTweetResponse:
    return ScheduleTweetResponse(
        tweetId=result["tweet_id"],
        scheduledFor=result["scheduled_for"],
        accountId=result["account_id"],
        jobMessageId=result["job_message_id"],
    )


@router.post("", response_model=ScheduleTweetResponse, status_code=status.HTTP_201_CREATED)
def schedule_tweet(body: ScheduleTweetRequest, db: DbSession, user: CurrentUser, cache: Cache, queue: Queue):
    result = tweet_service.schedule(
        db,
        cache,
        queue,
        user.id,
        body.text,
        body.scheduledUnix,
        account_id=body.accountId,
        media_ids=body.mediaIds,
    )
    return _schedule_response(result)


@router.get("", response_model=list[TweetResponse])
def list_scheduled(db: DbSession, user: CurrentUser):
    """Pending scheduled tweets, latest scheduled time first."""
    return [TweetResponse.model_validate(t) for t in tweet_service.list_scheduled(db, user.id)]


@router.put("/{tweet_id}", response_model=ScheduleTweetResponse)
def update_scheduled(tweet_id: str, body: UpdateScheduledRequest, db: DbSession, user: CurrentUser, queue: Queue):
    result = tweet_service.update_scheduled(
        db,
        queue,
        user.id,
        tweet_id,
        body.text,
        body.scheduledUnix,
        media_ids=body.mediaIds,
    )
    return _schedule_response(result)


@router.delete("/{tweet_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_scheduled(tweet_id: str, db: DbSession, user: CurrentUser, queue: Queue):
    tweet_service.cancel_scheduled(db, queue, user.id, tweet_id)


@worker_router.post("/twitter/post", dependencies=[Depends(require_worker_token)])
def deliver_scheduled_tweet(body: WorkerPublishRequest, db: DbSession):
    """Queue delivery over HTTP. Non-2xx responses make the sender retry."""
    return tweet_service.publish_scheduled(db, body.tweetId, message_id=body.messageId)
