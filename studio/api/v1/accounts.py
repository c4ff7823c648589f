"""Connected Twitter accounts: list, active selection, disconnect."""

from fastapi import APIRouter, status

from studio.dependencies import Cache, CurrentUser, DbSession, Queue
from studio.schemas.twitter import (
    AccountListResponse,
    AccountResponse,
    ActiveAccountResponse,
    SetActiveAccountRequest,
    SetActiveAccountResponse,
)
from studio.services import account_service

router = APIRouter(prefix="/twitter/accounts", tags=["twitter-accounts"])


@router.get("", response_model=AccountListResponse)
def list_accounts(db: DbSession, user: CurrentUser, cache: Cache):
    """All connected accounts in creation order, with the active one flagged."""
    accounts = account_service.get_accounts(db, cache, user.id)
    return AccountListResponse(accounts=[AccountResponse.model_validate(a) for a in accounts])


@router.get("/active", response_model=ActiveAccountResponse)
def get_active_account(db: DbSession, user: CurrentUser, cache: Cache):
    account = account_service.get_active_account(db, cache, user.id)
    return ActiveAccountResponse(account=AccountResponse.model_validate(account) if account else None)


@router.post("/active", response_model=SetActiveAccountResponse)
def set_active_account(body: SetActiveAccountRequest, db: DbSession, user: CurrentUser, cache: Cache):
    """Switch the active account. accountId is the platform's numeric account id."""
    account_id = account_service.set_active_account(db, cache, user.id, body.accountId)
    return SetActiveAccountResponse(accountId=account_id)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(account_id: str, db: DbSession, user: CurrentUser, cache: Cache, queue: Queue):
    """Disconnect an account and cancel its pending scheduled tweets."""
    account_service.delete_account(db, cache, queue, user.id, account_id)
