"""Shared fixtures for the content studio test suite."""

import os

# Settings are cached on first use; point them at throwaway backends before studio is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["WORKER_CALLBACK_TOKEN"] = "worker-token"
os.environ["TWITTER_CONSUMER_KEY"] = "consumer-key"
os.environ["TWITTER_CONSUMER_SECRET"] = "consumer-secret"

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studio.core.token_encryption import encrypt_token
from studio.db.models import Base, ConnectedAccount, Tweet, User
from studio.services.account_cache import AccountCache

BASE_TIME = datetime(2026, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ---------------------------------------------------------------------------
# Cache and queue
# ---------------------------------------------------------------------------
@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def cache(redis_client):
    return AccountCache(redis_client, ttl_seconds=3600)


@pytest.fixture
def queue():
    """A JobQueue double that hands out sequential message ids."""
    q = MagicMock()
    q.publish.side_effect = [f"job-{i}" for i in range(1, 50)]
    return q


# ---------------------------------------------------------------------------
# Platform client
# ---------------------------------------------------------------------------
@pytest.fixture
def twitter():
    """Patch every place that builds a platform client; yield the shared mock."""
    client = MagicMock()
    client.post_tweet.return_value = "1790000000000000001"
    client.upload_media.return_value = "1790000000000000999"
    client.fetch_profile.return_value = {
        "username": "studio_dev",
        "display_name": "Studio Dev",
        "profile_image": "https://pbs.twimg.com/profile_images/1/a.jpg",
        "verified": False,
    }
    factory = MagicMock(return_value=client)
    with patch("studio.services.account_service.get_twitter_client", factory), patch(
        "studio.services.tweet_service.get_twitter_client", factory
    ), patch("studio.services.media_service.get_twitter_client", factory):
        yield client


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
@pytest.fixture
def user(db):
    u = User(id="user-1", email="writer@example.com", name="Writer")
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def other_user(db):
    u = User(id="user-2", email="other@example.com", name="Other")
    db.add(u)
    db.commit()
    return u


def make_account(
    db,
    user_id,
    external_id,
    username=None,
    created_at=None,
    token="access-token",
    secret="access-secret",
    account_id=None,
):
    account = ConnectedAccount(
        id=account_id or f"acct-{external_id}",
        user_id=user_id,
        provider_id="twitter",
        account_id=external_id,
        access_token=encrypt_token(token) if token else None,
        access_secret=encrypt_token(secret) if secret else None,
        username=username,
        display_name=username,
        created_at=created_at or BASE_TIME,
        updated_at=created_at or BASE_TIME,
    )
    db.add(account)
    db.commit()
    return account


def make_tweet(db, account, content="hello", **fields):
    values = {
        "user_id": account.user_id,
        "account_id": account.id,
        "content": content,
        "media_ids": [],
        "created_at": BASE_TIME,
    }
    values.update(fields)
    tweet = Tweet(**values)
    db.add(tweet)
    db.commit()
    return tweet


@pytest.fixture
def account(db, user):
    return make_account(db, user.id, "1001", username="first", created_at=BASE_TIME)


@pytest.fixture
def second_account(db, user):
    return make_account(db, user.id, "1002", username="second", created_at=BASE_TIME + timedelta(minutes=5))
