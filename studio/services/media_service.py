"""Hand uploaded objects to the platform media endpoint after they pass the ingestion gate."""

import logging
import os
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from studio.core.exceptions import AccountCredentialsMissing, MediaValidationError, MediaValidationReason
from studio.core.token_encryption import decrypt_credentials
from studio.services import storage_service
from studio.services.account_cache import AccountCache
from studio.services.account_service import resolve_target
from studio.services.media_gate import (
    MediaKind,
    MediaLimits,
    classify_and_validate,
    validate_composition,
)
from studio.services.twitter_client import get_twitter_client

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
}


def create_upload_target(user_id: str, filename: str, content_type: str) -> dict[str, Any]:
    key = storage_service.upload_key(user_id, filename)
    return storage_service.presigned_upload(key, content_type)


def upload_media_from_storage(
    db: Session,
    cache: AccountCache,
    user_id: str,
    key: str,
    declared_kind: Optional[MediaKind] = None,
    declared_mime: Optional[str] = None,
    existing_kinds: Sequence[MediaKind] = (),
    account_id: Optional[str] = None,
    limits: Optional[MediaLimits] = None,
) -> dict[str, Any]:
    """Validate a stored upload and exchange it for a platform media id."""
    limits = limits or MediaLimits.from_settings()
    if not key.startswith(f"uploads/{user_id}/"):
        raise MediaValidationError(MediaValidationReason.FORMAT_MISMATCH, "Upload does not belong to this user")

    head = storage_service.head_object(key)
    if head.content_length > limits.largest:
        raise MediaValidationError(
            MediaValidationReason.OVERSIZE,
            f"File too large: {head.content_length} bytes exceeds the largest allowed upload.",
        )
    data = storage_service.get_object_bytes(key)
    media = classify_and_validate(
        data,
        declared_mime=declared_mime,
        declared_kind=declared_kind,
        observed_content_type=head.content_type,
        filename=key,
        limits=limits,
    )
    validate_composition(existing_kinds, media.kind)

    target = resolve_target(db, cache, user_id, account_id)
    token, secret = decrypt_credentials(target.access_token, target.access_secret)
    if not token or not secret:
        raise AccountCredentialsMissing()

    # The platform client picks its upload path from the extension, so name the file by confirmed mime.
    stem = os.path.splitext(os.path.basename(key))[0] or "media"
    filename = f"{stem}{MIME_EXTENSIONS[media.mime]}"
    media_id = get_twitter_client(token, secret).upload_media(data, filename, media.kind.value)
    logger.info("Uploaded %s (%s, %d bytes) as media %s", key, media.mime, media.size, media_id)
    return {
        "media_id": media_id,
        "kind": media.kind,
        "mime": media.mime,
        "size": media.size,
        "account_id": target.id,
    }
