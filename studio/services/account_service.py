"""Connected-account listing, active-account selection and target resolution."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from studio.core.exceptions import (
    AccountNotFound,
    NoAccountsConnected,
    PublishFailure,
    QueueMessageNotFound,
    QueueOperationFailure,
)
from studio.core.token_encryption import decrypt_credentials, encrypt_token
from studio.db.models.connected_account import TWITTER_PROVIDER, ActiveAccount, ConnectedAccount
from studio.db.models.tweet import Tweet
from studio.services.account_cache import AccountCache, CachedAccount
from studio.services.job_queue import JobQueue
from studio.services.twitter_client import get_twitter_client

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def placeholder_username(account_id: str) -> str:
    return f"user_{account_id}"


def list_db_accounts(db: Session, user_id: str) -> list[ConnectedAccount]:
    """User's Twitter accounts in creation order."""
    return (
        db.query(ConnectedAccount)
        .filter(
            ConnectedAccount.user_id == user_id,
            ConnectedAccount.provider_id == TWITTER_PROVIDER,
        )
        .order_by(ConnectedAccount.created_at.asc(), ConnectedAccount.id.asc())
        .all()
    )


def _refresh_profile(account: ConnectedAccount) -> None:
    """Best-effort live profile lookup; placeholder username when the platform call fails."""
    token, secret = decrypt_credentials(account.access_token, account.access_secret)
    if not token or not secret:
        account.username = account.username or placeholder_username(account.account_id)
        account.display_name = account.display_name or account.username
        return
    try:
        profile = get_twitter_client(token, secret).fetch_profile()
    except PublishFailure as e:
        logger.warning("Profile lookup failed for account %s: %s", account.account_id, e.message)
        account.username = account.username or placeholder_username(account.account_id)
        account.display_name = account.display_name or account.username
        return
    account.username = profile["username"] or placeholder_username(account.account_id)
    account.display_name = profile["display_name"] or account.username
    account.profile_image = profile["profile_image"]
    account.verified = profile["verified"]


def to_cached(account: ConnectedAccount, active_account_id: Optional[str] = None) -> CachedAccount:
    username = account.username or placeholder_username(account.account_id)
    return CachedAccount(
        id=account.id,
        account_id=account.account_id,
        username=username,
        display_name=account.display_name or username,
        profile_image=account.profile_image or "",
        verified=bool(account.verified),
        created_at=_as_utc(account.created_at),
        updated_at=_as_utc(account.updated_at),
        is_active=account.account_id == active_account_id,
    )


def get_active_account_id(db: Session, cache: AccountCache, user_id: str) -> Optional[str]:
    """External id of the active account: cache first, durable pointer on miss."""
    cached = cache.get_active_account_id(user_id)
    if cached:
        return cached
    pointer = db.get(ActiveAccount, user_id)
    if pointer is None or pointer.account is None:
        return None
    cache.set_active_account(user_id, pointer.account.account_id)
    return pointer.account.account_id


def get_accounts(db: Session, cache: AccountCache, user_id: str) -> list[CachedAccount]:
    """Read-through listing of the user's accounts with the active one marked."""
    active_id = get_active_account_id(db, cache, user_id)
    cached = cache.get_user_accounts(user_id)
    if cached:
        for account in cached:
            account.is_active = account.account_id == active_id
        return cached

    accounts = list_db_accounts(db, user_id)
    if not accounts:
        return []
    views = []
    for account in accounts:
        _refresh_profile(account)
        view = to_cached(account, active_id)
        cache.cache_account(user_id, view)
        views.append(view)
    db.commit()
    return views


def get_active_account(db: Session, cache: AccountCache, user_id: str) -> Optional[CachedAccount]:
    active_id = get_active_account_id(db, cache, user_id)
    if not active_id:
        return None
    cached = cache.get_account(user_id, active_id)
    if cached is not None:
        cached.is_active = True
        return cached

    # Rebuild the whole listing so the cached account set never holds a partial list.
    for account in get_accounts(db, cache, user_id):
        if account.account_id == active_id:
            return account
    logger.info("Clearing dangling active account %s for user %s", active_id, user_id)
    _clear_active_pointer(db, cache, user_id)
    db.commit()
    return None


def set_active_account(db: Session, cache: AccountCache, user_id: str, account_id: str) -> str:
    """Point the user's active account at an owned external account id."""
    account = _find_by_external_id(db, user_id, account_id)
    if account is None:
        raise AccountNotFound()
    _write_active_pointer(db, user_id, account)
    db.commit()
    cache.set_active_account(user_id, account.account_id)
    logger.info("User %s switched active account to %s", user_id, account.account_id)
    return account.account_id


def resolve_target(
    db: Session,
    cache: AccountCache,
    user_id: str,
    explicit_account_id: Optional[str] = None,
) -> ConnectedAccount:
    """Pick the account a post applies to.

    Order: explicit internal id, then the active pointer, then the oldest account.
    An explicit id the user does not own is an error, never a fallback.
    """
    accounts = list_db_accounts(db, user_id)
    if not accounts:
        raise NoAccountsConnected()

    if explicit_account_id:
        for account in accounts:
            if account.id == explicit_account_id:
                return account
        raise AccountNotFound("Selected account not found")

    active_id = get_active_account_id(db, cache, user_id)
    if active_id:
        for account in accounts:
            if account.account_id == active_id:
                return account
        logger.info("Active account %s not found for user %s; using first account", active_id, user_id)
    return accounts[0]


def connect_account(
    db: Session,
    cache: AccountCache,
    user_id: str,
    external_account_id: str,
    access_token: str,
    access_secret: str,
    profile: Optional[dict] = None,
) -> ConnectedAccount:
    """Store credentials for a completed OAuth connect; first account becomes active."""
    account = _find_by_external_id(db, user_id, external_account_id)
    if account is None:
        account = ConnectedAccount(
            user_id=user_id,
            provider_id=TWITTER_PROVIDER,
            account_id=external_account_id,
        )
        db.add(account)
    account.access_token = encrypt_token(access_token)
    account.access_secret = encrypt_token(access_secret)
    if profile:
        account.username = profile.get("username") or account.username
        account.display_name = profile.get("display_name") or account.display_name
        account.profile_image = profile.get("profile_image") or account.profile_image
        account.verified = bool(profile.get("verified", account.verified))
    db.flush()

    if db.get(ActiveAccount, user_id) is None:
        _write_active_pointer(db, user_id, account)
    db.commit()

    # Drop the cached list so the next listing rebuilds it with the new account.
    cache.clear_user_cache(user_id)
    get_active_account_id(db, cache, user_id)
    logger.info("Connected account %s for user %s", external_account_id, user_id)
    return account


def delete_account(
    db: Session,
    cache: AccountCache,
    queue: JobQueue,
    user_id: str,
    account_id: str,
) -> None:
    """Disconnect an account: cancel its pending scheduled tweets, then drop it and its pointer."""
    account = (
        db.query(ConnectedAccount)
        .filter(
            ConnectedAccount.id == account_id,
            ConnectedAccount.user_id == user_id,
            ConnectedAccount.provider_id == TWITTER_PROVIDER,
        )
        .first()
    )
    if account is None:
        raise AccountNotFound("Account not found or you do not have permission to delete it")

    cached = cache.get_account(user_id, account.account_id)
    username = (cached.username if cached else None) or account.username or placeholder_username(account.account_id)

    pending = (
        db.query(Tweet)
        .filter(
            Tweet.account_id == account.id,
            Tweet.user_id == user_id,
            Tweet.is_scheduled.is_(True),
            Tweet.is_published.is_(False),
        )
        .all()
    )
    for tweet in pending:
        if not tweet.job_message_id:
            continue
        try:
            queue.delete_message(tweet.job_message_id)
        except QueueMessageNotFound:
            pass
        except QueueOperationFailure as e:
            # The record is deleted below, so a job that still fires is a no-op.
            logger.warning("Could not revoke job %s for tweet %s: %s", tweet.job_message_id, tweet.id, e.message)
    for tweet in pending:
        db.delete(tweet)

    pointer = db.get(ActiveAccount, user_id)
    if pointer is not None and pointer.connected_account_id == account.id:
        db.delete(pointer)
    db.delete(account)
    db.commit()

    cache.remove_account(user_id, account.account_id, username)
    logger.info(
        "Deleted account %s for user %s (%d scheduled tweets cancelled)",
        account.account_id,
        user_id,
        len(pending),
    )


def _find_by_external_id(db: Session, user_id: str, external_account_id: str) -> Optional[ConnectedAccount]:
    return (
        db.query(ConnectedAccount)
        .filter(
            ConnectedAccount.account_id == external_account_id,
            ConnectedAccount.user_id == user_id,
            ConnectedAccount.provider_id == TWITTER_PROVIDER,
        )
        .first()
    )


def _write_active_pointer(db: Session, user_id: str, account: ConnectedAccount) -> None:
    pointer = db.get(ActiveAccount, user_id)
    if pointer is None:
        db.add(ActiveAccount(user_id=user_id, connected_account_id=account.id))
    else:
        pointer.connected_account_id = account.id


def _clear_active_pointer(db: Session, cache: AccountCache, user_id: str) -> None:
    pointer = db.get(ActiveAccount, user_id)
    if pointer is not None:
        db.delete(pointer)
    cache.clear_active_account(user_id)
