"""Redis read-through cache of connected-account profiles and the active-account pointer.

The cache is advisory: every entry can be rebuilt from the durable store, so
Redis errors are logged and treated as misses instead of failing the request.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

import redis

from studio.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CachedAccount:
    id: str
    account_id: str
    username: str
    display_name: str
    profile_image: str
    verified: bool
    created_at: datetime
    updated_at: datetime
    is_active: bool = False

    def to_json(self) -> str:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return json.dumps(data)

    @classmethod
    def from_json(cls, raw: str) -> "CachedAccount":
        data = json.loads(raw)
        data["created_at"] = datetime.fromisoformat(data["created_at"])
        data["updated_at"] = datetime.fromisoformat(data["updated_at"])
        return cls(**data)


def _account_key(user_id: str, account_id: str) -> str:
    return f"account:{user_id}:{account_id}"


def _accounts_list_key(user_id: str) -> str:
    return f"accounts:{user_id}"


def _active_account_key(user_id: str) -> str:
    return f"active-account:{user_id}"


def _username_key(user_id: str, username: str) -> str:
    return f"account-username:{user_id}:{username}"


class AccountCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int = 3600):
        self.client = client
        self.ttl_seconds = ttl_seconds

    def cache_account(self, user_id: str, account: CachedAccount) -> None:
        list_key = _accounts_list_key(user_id)
        try:
            pipe = self.client.pipeline()
            pipe.setex(_account_key(user_id, account.account_id), self.ttl_seconds, account.to_json())
            pipe.sadd(list_key, account.account_id)
            pipe.expire(list_key, self.ttl_seconds)
            if account.username:
                pipe.setex(_username_key(user_id, account.username), self.ttl_seconds, account.account_id)
            pipe.execute()
        except redis.RedisError as e:
            logger.warning("Account cache write failed for user %s: %s", user_id, e)

    def get_account(self, user_id: str, account_id: str) -> Optional[CachedAccount]:
        try:
            raw = self.client.get(_account_key(user_id, account_id))
        except redis.RedisError as e:
            logger.warning("Account cache read failed for user %s: %s", user_id, e)
            return None
        if not raw:
            return None
        try:
            return CachedAccount.from_json(raw)
        except (ValueError, TypeError, KeyError):
            logger.warning("Discarding unreadable cache entry for account %s", account_id)
            return None

    def get_user_accounts(self, user_id: str) -> list[CachedAccount]:
        """Cached accounts for the user in creation order; [] on miss.

        A partially expired entry set counts as a miss so callers rebuild from the store.
        """
        try:
            account_ids = self.client.smembers(_accounts_list_key(user_id))
        except redis.RedisError as e:
            logger.warning("Account cache read failed for user %s: %s", user_id, e)
            return []
        if not account_ids:
            return []
        accounts = [self.get_account(user_id, account_id) for account_id in account_ids]
        if any(a is None for a in accounts):
            return []
        return sorted(accounts, key=lambda a: (a.created_at, a.id))

    def is_username_connected(self, user_id: str, username: str) -> Optional[str]:
        try:
            return self.client.get(_username_key(user_id, username))
        except redis.RedisError as e:
            logger.warning("Account cache read failed for user %s: %s", user_id, e)
            return None

    def set_active_account(self, user_id: str, account_id: str) -> None:
        try:
            self.client.setex(_active_account_key(user_id), self.ttl_seconds, account_id)
        except redis.RedisError as e:
            logger.warning("Active account cache write failed for user %s: %s", user_id, e)

    def get_active_account_id(self, user_id: str) -> Optional[str]:
        try:
            return self.client.get(_active_account_key(user_id)) or None
        except redis.RedisError as e:
            logger.warning("Active account cache read failed for user %s: %s", user_id, e)
            return None

    def clear_active_account(self, user_id: str) -> None:
        try:
            self.client.delete(_active_account_key(user_id))
        except redis.RedisError as e:
            logger.warning("Active account cache clear failed for user %s: %s", user_id, e)

    def remove_account(self, user_id: str, account_id: str, username: Optional[str] = None) -> None:
        """Evict one account; clears the active pointer when it referenced this account."""
        active_key = _active_account_key(user_id)
        try:
            active_id = self.client.get(active_key)
            pipe = self.client.pipeline()
            pipe.delete(_account_key(user_id, account_id))
            pipe.srem(_accounts_list_key(user_id), account_id)
            if username:
                pipe.delete(_username_key(user_id, username))
            if active_id == account_id:
                pipe.delete(active_key)
            pipe.execute()
        except redis.RedisError as e:
            logger.warning("Account cache eviction failed for user %s: %s", user_id, e)

    def clear_user_cache(self, user_id: str) -> None:
        list_key = _accounts_list_key(user_id)
        try:
            account_ids = self.client.smembers(list_key)
            keys = [list_key, _active_account_key(user_id)]
            keys.extend(_account_key(user_id, account_id) for account_id in account_ids)
            self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Account cache clear failed for user %s: %s", user_id, e)


def _client() -> redis.Redis:
    settings = get_settings()
    return redis.from_url(settings.redis_url, decode_responses=True)


def get_account_cache() -> AccountCache:
    settings = get_settings()
    return AccountCache(_client(), ttl_seconds=settings.account_cache_ttl_seconds)
