"""Twitter/X platform calls for one connected account: publish, media upload, profile lookup."""

import io
import logging
from typing import Any, Optional, Sequence

import requests
import tweepy

from studio.config import get_settings
from studio.core.exceptions import PublishFailure

logger = logging.getLogger(__name__)

MEDIA_CATEGORY = {
    "image": "tweet_image",
    "gif": "tweet_gif",
    "video": "tweet_video",
}


def _platform_message(exc: Exception) -> str:
    if isinstance(exc, tweepy.HTTPException):
        messages = list(exc.api_messages or [])
        if messages:
            return "; ".join(str(m) for m in messages)
        return f"{exc.response.status_code} {exc.response.reason}"
    return str(exc) or exc.__class__.__name__


def _publish_failure(action: str, exc: Exception) -> PublishFailure:
    platform_message = _platform_message(exc)
    if isinstance(exc, requests.RequestException):
        message = f"Failed to {action}: Twitter could not be reached"
    elif isinstance(exc, tweepy.TooManyRequests):
        message = "Rate limit exceeded. Please try again later."
    elif isinstance(exc, tweepy.Unauthorized):
        message = "Twitter authorization expired. Reconnect the account and try again."
    else:
        message = f"Failed to {action}: {platform_message}"
    return PublishFailure(message, platform_message=platform_message)


class TwitterClient:
    """OAuth 1.0a user-context client built from app keys plus the account's decrypted credentials."""

    def __init__(self, access_token: str, access_secret: str):
        settings = get_settings()
        self.client = tweepy.Client(
            consumer_key=settings.twitter_consumer_key,
            consumer_secret=settings.twitter_consumer_secret,
            access_token=access_token,
            access_token_secret=access_secret,
        )
        auth = tweepy.OAuth1UserHandler(
            settings.twitter_consumer_key,
            settings.twitter_consumer_secret,
            access_token,
            access_secret,
        )
        self.api = tweepy.API(auth)

    def post_tweet(self, text: str, media_ids: Optional[Sequence[str]] = None) -> str:
        """Create a tweet; return the platform tweet id."""
        try:
            response = self.client.create_tweet(text=text, media_ids=list(media_ids) if media_ids else None)
        except (tweepy.TweepyException, requests.RequestException) as e:
            raise _publish_failure("post tweet", e) from e
        data = response.data or {}
        tweet_id = data.get("id")
        if not tweet_id:
            raise PublishFailure("Twitter response missing tweet id")
        return str(tweet_id)

    def upload_media(self, data: bytes, filename: str, kind: str) -> str:
        """Upload raw bytes; return the platform media id once processing finishes."""
        category = MEDIA_CATEGORY.get(kind, "tweet_image")
        try:
            media = self.api.media_upload(
                filename,
                file=io.BytesIO(data),
                chunked=kind != "image",
                media_category=category,
            )
        except (tweepy.TweepyException, requests.RequestException) as e:
            raise _publish_failure("upload media to Twitter", e) from e
        return str(media.media_id_string)

    def fetch_profile(self) -> dict[str, Any]:
        try:
            me = self.api.verify_credentials()
        except (tweepy.TweepyException, requests.RequestException) as e:
            raise _publish_failure("fetch profile", e) from e
        return {
            "username": me.screen_name or "",
            "display_name": me.name or me.screen_name or "",
            "profile_image": getattr(me, "profile_image_url_https", "") or "",
            "verified": bool(getattr(me, "verified", False)),
        }


def get_twitter_client(access_token: str, access_secret: str) -> TwitterClient:
    return TwitterClient(access_token, access_secret)
