"""API v1 router: include all route modules, GET /me."""

from fastapi import APIRouter

from studio.api.v1 import accounts, media, scheduled, tweets
from studio.dependencies import CurrentUser

api_router = APIRouter()

api_router.include_router(accounts.router)
api_router.include_router(tweets.router)
api_router.include_router(scheduled.router)
api_router.include_router(scheduled.worker_router)
api_router.include_router(media.router)


@api_router.get("/me")
def me(user: CurrentUser):
    return {"user": {"id": user.id, "email": user.email, "name": user.name}}
