"""Post a tweet now and browse published tweets."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query, status

from studio.dependencies import Cache, CurrentUser, DbSession
from studio.schemas.twitter import (
    PostedAccount,
    PostedTweet,
    PostedTweetsResponse,
    PostTweetRequest,
    PostTweetResponse,
    TweetResponse,
)
from studio.services import tweet_service

router = APIRouter(prefix="/twitter/tweets", tags=["twitter-tweets"])


@router.post("", response_model=PostTweetResponse, status_code=status.HTTP_201_CREATED)
def post_tweet(body: PostTweetRequest, db: DbSession, user: CurrentUser, cache: Cache):
    result = tweet_service.post_now(
        db,
        cache,
        user.id,
        body.text,
        account_id=body.accountId,
        media_ids=body.mediaIds,
    )
    return PostTweetResponse(
        tweetId=result["tweet_id"],
        twitterId=result["twitter_id"],
        accountId=result["account_id"],
    )


@router.get("/posted", response_model=PostedTweetsResponse)
def list_posted(
    db: DbSession,
    user: CurrentUser,
    cache: Cache,
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[str] = None,
    accountId: Optional[str] = None,
    search: Optional[str] = None,
    dateFrom: Optional[datetime] = None,
    dateTo: Optional[datetime] = None,
):
    """Published tweets newest first. Pass nextCursor back as cursor for the next page."""
    page = tweet_service.list_posted(
        db,
        cache,
        user.id,
        limit=limit,
        cursor=cursor,
        account_id=accountId,
        search=search,
        date_from=dateFrom,
        date_to=dateTo,
    )
    return PostedTweetsResponse(
        tweets=[
            PostedTweet(
                tweet=TweetResponse.model_validate(item["tweet"]),
                account=PostedAccount.model_validate(item["account"]),
            )
            for item in page["tweets"]
        ],
        nextCursor=page["next_cursor"],
        hasMore=page["has_more"],
    )
