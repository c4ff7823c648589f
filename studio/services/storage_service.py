"""S3-compatible object storage: presigned uploads and object reads for media ingestion."""

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from studio.config import get_settings
from studio.core.exceptions import StorageFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredObject:
    key: str
    content_type: Optional[str]
    content_length: int


def _client():
    settings = get_settings()
    kwargs = {
        "region_name": settings.s3_region,
        "aws_access_key_id": settings.aws_access_key_id or None,
        "aws_secret_access_key": settings.aws_secret_access_key or None,
        # Path-style keeps R2/MinIO presigned targets on one host.
        "config": Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    }
    if settings.s3_endpoint_url:
        kwargs["endpoint_url"] = settings.s3_endpoint_url
    return boto3.client("s3", **kwargs)


def upload_key(user_id: str, filename: str) -> str:
    """Key for a new upload: uploads/{user_id}/{random}.{ext}."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"uploads/{user_id}/{secrets.token_urlsafe(16)}.{ext}"


def presigned_upload(
    key: str,
    content_type: str,
    max_bytes: Optional[int] = None,
    expiration: Optional[int] = None,
    bucket: Optional[str] = None,
) -> dict[str, Any]:
    """Presigned POST target limited to one key, one content type and a size ceiling."""
    settings = get_settings()
    bucket = bucket or settings.s3_bucket
    max_bytes = max_bytes or settings.max_upload_bytes
    try:
        post = _client().generate_presigned_post(
            Bucket=bucket,
            Key=key,
            Fields={"Content-Type": content_type},
            Conditions=[
                {"Content-Type": content_type},
                ["content-length-range", 1, max_bytes],
            ],
            ExpiresIn=expiration or settings.presign_expiration_seconds,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Failed to presign upload for %s: %s", key, e)
        raise StorageFailure("Failed to generate upload URL") from e
    return {"url": post["url"], "fields": post["fields"], "key": key}


def head_object(key: str, bucket: Optional[str] = None) -> StoredObject:
    settings = get_settings()
    bucket = bucket or settings.s3_bucket
    try:
        head = _client().head_object(Bucket=bucket, Key=key)
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code")
        if code in ("404", "NoSuchKey", "NotFound"):
            raise StorageFailure(f"Uploaded file not found: {key}") from e
        logger.error("HEAD %s failed: %s", key, e)
        raise StorageFailure("Failed to read uploaded file") from e
    except BotoCoreError as e:
        logger.error("HEAD %s failed: %s", key, e)
        raise StorageFailure("Failed to read uploaded file") from e
    return StoredObject(
        key=key,
        content_type=head.get("ContentType") or None,
        content_length=int(head.get("ContentLength") or 0),
    )


def get_object_bytes(key: str, bucket: Optional[str] = None) -> bytes:
    settings = get_settings()
    bucket = bucket or settings.s3_bucket
    try:
        obj = _client().get_object(Bucket=bucket, Key=key)
        data = obj["Body"].read()
    except (BotoCoreError, ClientError) as e:
        logger.error("GET %s failed: %s", key, e)
        raise StorageFailure("Failed to fetch media from storage") from e
    if not data:
        raise StorageFailure("No data received from storage")
    return data
