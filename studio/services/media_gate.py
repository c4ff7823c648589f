"""Media ingestion gate: composition rules and server-side media classification.

Stateless. Given bytes, declared metadata and the current attachment set it
either returns the confirmed kind/mime or raises ``MediaValidationError``
with a specific reason. It never performs the platform upload itself.

Classification order for the claimed format:

1. server-observed ``Content-Type`` header of the stored object
2. file extension of the object key / filename
3. magic-byte sniffing

The byte signature is authoritative: a recognised signature wins over a
contradicting claim. Bytes with no known signature are a corrupt header when
the claim names a supported format, and a format mismatch otherwise.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from studio.config import get_settings
from studio.core.exceptions import MediaValidationError, MediaValidationReason

logger = logging.getLogger(__name__)


class MediaKind(str, Enum):
    IMAGE = "image"
    GIF = "gif"
    VIDEO = "video"


MIME_KINDS = {
    "image/png": MediaKind.IMAGE,
    "image/jpeg": MediaKind.IMAGE,
    "image/webp": MediaKind.IMAGE,
    "image/gif": MediaKind.GIF,
    "video/mp4": MediaKind.VIDEO,
    "video/quicktime": MediaKind.VIDEO,
}

EXTENSION_MIMES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".mov": "video/quicktime",
}

MIME_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "video/x-m4v": "video/mp4",
}

MAX_MEDIA_PER_TWEET = 4


@dataclass(frozen=True)
class MediaLimits:
    image_bytes: int
    gif_bytes: int
    video_bytes: int

    def for_kind(self, kind: MediaKind) -> int:
        if kind is MediaKind.IMAGE:
            return self.image_bytes
        if kind is MediaKind.GIF:
            return self.gif_bytes
        return self.video_bytes

    @property
    def largest(self) -> int:
        return max(self.image_bytes, self.gif_bytes, self.video_bytes)

    @classmethod
    def from_settings(cls) -> "MediaLimits":
        settings = get_settings()
        return cls(
            image_bytes=settings.max_image_bytes,
            gif_bytes=settings.max_gif_bytes,
            video_bytes=settings.max_video_bytes,
        )


@dataclass(frozen=True)
class ClassifiedMedia:
    kind: MediaKind
    mime: str
    size: int
    overridden: bool = False


def normalize_mime(mime: Optional[str]) -> Optional[str]:
    """Lower-case, drop parameters (``; charset=...``) and map common aliases."""
    if not mime:
        return None
    base = mime.split(";", 1)[0].strip().lower()
    if not base:
        return None
    return MIME_ALIASES.get(base, base)


def mime_from_extension(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    _, ext = os.path.splitext(name.lower())
    return EXTENSION_MIMES.get(ext)


def sniff_mime(data: bytes) -> Optional[str]:
    """Identify a supported format from its leading bytes."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if len(data) >= 12 and data[4:8] == b"ftyp":
        brand = data[8:12]
        if brand == b"qt  ":
            return "video/quicktime"
        if brand in (b"heic", b"heix", b"mif1", b"msf1"):
            return "image/heic"
        if brand in (b"avif", b"avis"):
            return "image/avif"
        return "video/mp4"
    return None


def kind_for_mime(mime: str) -> MediaKind:
    kind = MIME_KINDS.get(mime)
    if kind is None:
        raise MediaValidationError(
            MediaValidationReason.FORMAT_MISMATCH,
            f"Unsupported media type: {mime}. Use PNG, JPEG, WEBP, GIF, MP4 or MOV.",
        )
    return kind


def claimed_mime(
    data: bytes,
    observed_content_type: Optional[str] = None,
    filename: Optional[str] = None,
) -> Optional[str]:
    """First answer from header -> extension -> signature; None if all are silent."""
    header = normalize_mime(observed_content_type)
    if header and header != "application/octet-stream":
        return header
    by_extension = mime_from_extension(filename)
    if by_extension:
        return by_extension
    return sniff_mime(data)


def classify_and_validate(
    data: bytes,
    declared_mime: Optional[str] = None,
    declared_kind: Optional[MediaKind] = None,
    observed_content_type: Optional[str] = None,
    filename: Optional[str] = None,
    limits: Optional[MediaLimits] = None,
) -> ClassifiedMedia:
    """Confirm the media kind and mime of an upload from server-side signals.

    ``declared_mime`` / ``declared_kind`` come from the client and are only
    compared against the result; a mismatch is logged and overridden, never trusted.
    """
    limits = limits or MediaLimits.from_settings()
    if not data:
        raise MediaValidationError(MediaValidationReason.CORRUPT_HEADER, "Uploaded file is empty.")

    claim = claimed_mime(data, observed_content_type=observed_content_type, filename=filename)
    signature = sniff_mime(data)
    if signature is None:
        if claim is None:
            raise MediaValidationError(
                MediaValidationReason.FORMAT_MISMATCH,
                "Could not determine the media type of the upload.",
            )
        kind_for_mime(claim)
        raise MediaValidationError(
            MediaValidationReason.CORRUPT_HEADER,
            f"File contents do not match a valid {claim} header.",
        )
    if claim != signature:
        logger.warning("Media labelled %s has a %s signature; using the signature", claim, signature)
    mime = signature
    kind = kind_for_mime(mime)

    overridden = False
    declared = normalize_mime(declared_mime)
    if declared and declared != mime:
        logger.info("Declared mime %s overridden by %s", declared, mime)
        overridden = True
    if declared_kind is not None and MediaKind(declared_kind) is not kind:
        logger.info("Declared kind %s overridden by %s", MediaKind(declared_kind).value, kind.value)
        overridden = True

    max_bytes = limits.for_kind(kind)
    if len(data) > max_bytes:
        raise MediaValidationError(
            MediaValidationReason.OVERSIZE,
            f"{kind.value.capitalize()} file too large: {_format_mb(len(data))}. "
            f"Twitter limit is {_format_mb(max_bytes)}.",
        )
    return ClassifiedMedia(kind=kind, mime=mime, size=len(data), overridden=overridden)


def validate_composition(existing_kinds: Iterable[MediaKind], incoming_kind: MediaKind) -> None:
    """Reject an add that would leave the attachment set in an invalid state.

    Valid sets are 1-4 images, or exactly one video or gif.
    """
    kinds = [MediaKind(k) for k in existing_kinds]
    incoming = MediaKind(incoming_kind)
    if incoming in (MediaKind.VIDEO, MediaKind.GIF):
        if kinds:
            raise MediaValidationError(
                MediaValidationReason.COMPOSITION_VIOLATION,
                f"A {incoming.value} must be the only attachment on a tweet.",
            )
        return
    if any(k in (MediaKind.VIDEO, MediaKind.GIF) for k in kinds):
        raise MediaValidationError(
            MediaValidationReason.COMPOSITION_VIOLATION,
            "Images cannot be combined with a video or gif.",
        )
    image_count = sum(1 for k in kinds if k is MediaKind.IMAGE)
    if image_count >= MAX_MEDIA_PER_TWEET:
        raise MediaValidationError(
            MediaValidationReason.COMPOSITION_VIOLATION,
            f"A tweet can have at most {MAX_MEDIA_PER_TWEET} images.",
        )


def validate_media_set(kinds: Iterable[MediaKind]) -> None:
    """Check a whole attachment set by replaying it as a sequence of adds."""
    accepted: list[MediaKind] = []
    for kind in kinds:
        validate_composition(accepted, kind)
        accepted.append(MediaKind(kind))


def _format_mb(size: int) -> str:
    return f"{size / (1024 * 1024):.1f}MB"
