"""FastAPI dependency injection: db session, current user, account cache, job queue."""

import hmac
from collections.abc import Generator
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from studio.config import get_settings
from studio.core.security import decode_token
from studio.db.base import SessionLocal
from studio.db.models.user import User
from studio.services.account_cache import AccountCache, get_account_cache
from studio.services.job_queue import JobQueue, get_job_queue

security = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """Provide a DB session; close after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    db: Annotated[Session, Depends(get_db)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)] = None,
) -> User:
    """Require authenticated user; raise 401 if missing."""
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not credentials:
        raise unauthorized
    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub") if payload else None
    if not user_id:
        raise unauthorized
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise unauthorized
    return user


def get_cache() -> AccountCache:
    return get_account_cache()


def get_queue() -> JobQueue:
    return get_job_queue()


def require_worker_token(x_worker_token: Annotated[Optional[str], Header()] = None) -> None:
    """Shared-secret check for queue deliveries arriving over HTTP."""
    expected = get_settings().worker_callback_token
    if not expected or not x_worker_token or not hmac.compare_digest(x_worker_token, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid worker token")


DbSession = Annotated[Session, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
Cache = Annotated[AccountCache, Depends(get_cache)]
Queue = Annotated[JobQueue, Depends(get_queue)]
