"""Media uploads: presigned storage targets and hand-off to the platform media endpoint."""

from fastapi import APIRouter

from studio.dependencies import Cache, CurrentUser, DbSession
from studio.schemas.twitter import (
    MediaUploadRequest,
    MediaUploadResponse,
    PresignedUrlRequest,
    PresignedUrlResponse,
)
from studio.services import media_service

router = APIRouter(tags=["media"])


@router.post("/media/presigned-url", response_model=PresignedUrlResponse)
def presigned_url(body: PresignedUrlRequest, user: CurrentUser):
    """Browser uploads go straight to storage; only the returned key comes back here."""
    return PresignedUrlResponse(**media_service.create_upload_target(user.id, body.filename, body.contentType))


@router.post("/twitter/media", response_model=MediaUploadResponse)
def upload_media(body: MediaUploadRequest, db: DbSession, user: CurrentUser, cache: Cache):
    result = media_service.upload_media_from_storage(
        db,
        cache,
        user.id,
        body.key,
        declared_kind=body.kind,
        declared_mime=body.mimeType,
        existing_kinds=body.existingKinds,
        account_id=body.accountId,
    )
    return MediaUploadResponse(
        mediaId=result["media_id"],
        kind=result["kind"],
        mimeType=result["mime"],
        size=result["size"],
    )
