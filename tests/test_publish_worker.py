"""Tests for studio.workers.tasks.publish -- the Celery task that fires scheduled tweets."""

from unittest.mock import patch

import pytest

from conftest import make_tweet
from studio.core.exceptions import PublishFailure
from studio.db.models import Tweet
from studio.workers.tasks.publish import publish_scheduled_tweet


@pytest.fixture
def task_session(session_factory):
    with patch("studio.workers.tasks.publish.SessionLocal", session_factory):
        yield


class TestPublishScheduledTweetTask:
    def test_publishes_with_own_task_id(self, db, user, account, twitter, task_session):
        tweet = make_tweet(db, account, content="from the queue", is_scheduled=True, job_message_id="job-a")
        result = publish_scheduled_tweet.apply(kwargs={"tweet_id": tweet.id}, task_id="job-a").get()
        assert result["status"] == "published"
        twitter.post_tweet.assert_called_once_with("from the queue", None)
        db.expire_all()
        assert db.get(Tweet, tweet.id).is_published is True

    def test_superseded_task_is_skipped(self, db, user, account, twitter, task_session):
        tweet = make_tweet(db, account, is_scheduled=True, job_message_id="job-b")
        result = publish_scheduled_tweet.apply(kwargs={"tweet_id": tweet.id}, task_id="job-a").get()
        assert result["reason"] == "superseded"
        twitter.post_tweet.assert_not_called()

    def test_missing_account_fails_without_retry(self, db, user, account, twitter, task_session):
        tweet = make_tweet(db, account, is_scheduled=True, account_id="acct-gone", job_message_id="job-a")
        result = publish_scheduled_tweet.apply(kwargs={"tweet_id": tweet.id}, task_id="job-a").get()
        assert result["status"] == "failed"
        assert result["error"]["code"] == "ACCOUNT_NOT_FOUND"

    def test_publish_failure_is_retried_under_same_task_id(self, db, user, account, twitter, task_session):
        twitter.post_tweet.side_effect = PublishFailure("Failed to post tweet: Twitter could not be reached")
        tweet = make_tweet(db, account, is_scheduled=True, job_message_id="job-a")
        result = publish_scheduled_tweet.apply(kwargs={"tweet_id": tweet.id}, task_id="job-a")
        assert result.failed()
        assert twitter.post_tweet.call_count > 1
        db.expire_all()
        assert db.get(Tweet, tweet.id).error["code"] == "PUBLISH_FAILURE"
