"""Tests for studio.services.media_gate -- classification, size ceilings, composition."""

import pytest

from studio.core.exceptions import MediaValidationError, MediaValidationReason
from studio.services.media_gate import (
    MediaKind,
    MediaLimits,
    classify_and_validate,
    claimed_mime,
    normalize_mime,
    sniff_mime,
    validate_composition,
    validate_media_set,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 24
GIF = b"GIF89a" + b"\x00" * 24
WEBP = b"RIFF\x10\x00\x00\x00WEBPVP8 " + b"\x00" * 16
MP4 = b"\x00\x00\x00\x18ftypisom" + b"\x00" * 20
MOV = b"\x00\x00\x00\x14ftypqt  " + b"\x00" * 20
HEIC = b"\x00\x00\x00\x18ftypheic" + b"\x00" * 20
GARBAGE = b"this is not media at all"

LIMITS = MediaLimits(image_bytes=64, gif_bytes=128, video_bytes=256)


# =========================================================================
# Helpers
# =========================================================================


class TestMimeHelpers:
    def test_normalize_mime_strips_parameters_and_aliases(self):
        assert normalize_mime("IMAGE/JPG; charset=binary") == "image/jpeg"

    def test_normalize_mime_empty(self):
        assert normalize_mime("") is None
        assert normalize_mime(None) is None

    @pytest.mark.parametrize(
        "data,expected",
        [
            (PNG, "image/png"),
            (JPEG, "image/jpeg"),
            (GIF, "image/gif"),
            (WEBP, "image/webp"),
            (MP4, "video/mp4"),
            (MOV, "video/quicktime"),
            (HEIC, "image/heic"),
            (GARBAGE, None),
        ],
        ids=["png", "jpeg", "gif", "webp", "mp4", "mov", "heic", "garbage"],
    )
    def test_sniff_mime(self, data, expected):
        assert sniff_mime(data) == expected

    def test_claimed_mime_prefers_header(self):
        assert claimed_mime(PNG, observed_content_type="image/gif", filename="a.mp4") == "image/gif"

    def test_claimed_mime_skips_octet_stream_header(self):
        assert claimed_mime(PNG, observed_content_type="application/octet-stream", filename="a.mov") == "video/quicktime"

    def test_claimed_mime_falls_back_to_signature(self):
        assert claimed_mime(JPEG) == "image/jpeg"


# =========================================================================
# Classification
# =========================================================================


class TestClassifyAndValidate:
    def test_png_is_image(self):
        media = classify_and_validate(PNG, observed_content_type="image/png", limits=LIMITS)
        assert media.kind is MediaKind.IMAGE
        assert media.mime == "image/png"
        assert media.size == len(PNG)
        assert media.overridden is False

    def test_mov_is_video(self):
        media = classify_and_validate(MOV, filename="clip.mov", limits=LIMITS)
        assert media.kind is MediaKind.VIDEO
        assert media.mime == "video/quicktime"

    def test_signature_wins_over_contradicting_header(self):
        media = classify_and_validate(JPEG, observed_content_type="image/png", limits=LIMITS)
        assert media.mime == "image/jpeg"
        assert media.kind is MediaKind.IMAGE

    def test_declared_kind_mismatch_is_overridden(self):
        media = classify_and_validate(GIF, declared_kind=MediaKind.IMAGE, declared_mime="image/png", limits=LIMITS)
        assert media.kind is MediaKind.GIF
        assert media.overridden is True

    def test_matching_declaration_is_not_overridden(self):
        media = classify_and_validate(MP4, declared_kind="video", declared_mime="video/mp4", limits=LIMITS)
        assert media.overridden is False

    def test_empty_upload_is_corrupt(self):
        with pytest.raises(MediaValidationError) as exc:
            classify_and_validate(b"", observed_content_type="image/png", limits=LIMITS)
        assert exc.value.reason is MediaValidationReason.CORRUPT_HEADER

    def test_supported_claim_without_signature_is_corrupt(self):
        with pytest.raises(MediaValidationError) as exc:
            classify_and_validate(GARBAGE, observed_content_type="image/png", limits=LIMITS)
        assert exc.value.reason is MediaValidationReason.CORRUPT_HEADER

    def test_extension_claim_without_signature_is_corrupt(self):
        with pytest.raises(MediaValidationError) as exc:
            classify_and_validate(GARBAGE, observed_content_type="application/octet-stream", filename="x.gif", limits=LIMITS)
        assert exc.value.reason is MediaValidationReason.CORRUPT_HEADER

    def test_unknown_bytes_without_claim_is_format_mismatch(self):
        with pytest.raises(MediaValidationError) as exc:
            classify_and_validate(GARBAGE, limits=LIMITS)
        assert exc.value.reason is MediaValidationReason.FORMAT_MISMATCH

    def test_unsupported_claim_is_format_mismatch(self):
        with pytest.raises(MediaValidationError) as exc:
            classify_and_validate(GARBAGE, observed_content_type="application/pdf", limits=LIMITS)
        assert exc.value.reason is MediaValidationReason.FORMAT_MISMATCH

    def test_heic_is_format_mismatch(self):
        with pytest.raises(MediaValidationError) as exc:
            classify_and_validate(HEIC, filename="photo.heic", limits=LIMITS)
        assert exc.value.reason is MediaValidationReason.FORMAT_MISMATCH

    def test_image_at_limit_passes(self):
        data = PNG + b"\x00" * (LIMITS.image_bytes - len(PNG))
        assert classify_and_validate(data, limits=LIMITS).size == LIMITS.image_bytes

    def test_image_over_limit_is_oversize(self):
        data = PNG + b"\x00" * (LIMITS.image_bytes - len(PNG) + 1)
        with pytest.raises(MediaValidationError) as exc:
            classify_and_validate(data, limits=LIMITS)
        assert exc.value.reason is MediaValidationReason.OVERSIZE

    def test_limit_follows_confirmed_kind_not_declared(self):
        """A gif declared as an image gets the gif ceiling."""
        data = GIF + b"\x00" * 80
        media = classify_and_validate(data, declared_kind=MediaKind.IMAGE, limits=LIMITS)
        assert media.kind is MediaKind.GIF

    def test_error_detail_carries_reason(self):
        with pytest.raises(MediaValidationError) as exc:
            classify_and_validate(GARBAGE, limits=LIMITS)
        detail = exc.value.to_detail()
        assert detail["code"] == "MEDIA_VALIDATION_ERROR"
        assert detail["reason"] == "format-mismatch"


# =========================================================================
# Composition
# =========================================================================


class TestComposition:
    def test_up_to_four_images(self):
        validate_media_set([MediaKind.IMAGE] * 4)

    def test_fifth_image_rejected(self):
        with pytest.raises(MediaValidationError) as exc:
            validate_composition([MediaKind.IMAGE] * 4, MediaKind.IMAGE)
        assert exc.value.reason is MediaValidationReason.COMPOSITION_VIOLATION

    @pytest.mark.parametrize("incoming", [MediaKind.VIDEO, MediaKind.GIF])
    def test_single_video_or_gif_allowed(self, incoming):
        validate_composition([], incoming)

    @pytest.mark.parametrize(
        "existing,incoming",
        [
            ([MediaKind.IMAGE], MediaKind.VIDEO),
            ([MediaKind.IMAGE], MediaKind.GIF),
            ([MediaKind.VIDEO], MediaKind.IMAGE),
            ([MediaKind.GIF], MediaKind.IMAGE),
            ([MediaKind.VIDEO], MediaKind.VIDEO),
            ([MediaKind.GIF], MediaKind.VIDEO),
        ],
        ids=["image+video", "image+gif", "video+image", "gif+image", "video+video", "gif+video"],
    )
    def test_mixed_sets_rejected(self, existing, incoming):
        with pytest.raises(MediaValidationError) as exc:
            validate_composition(existing, incoming)
        assert exc.value.reason is MediaValidationReason.COMPOSITION_VIOLATION

    def test_accepts_string_kinds(self):
        validate_composition(["image", "image"], "image")

    def test_media_set_with_video_and_image_rejected(self):
        with pytest.raises(MediaValidationError):
            validate_media_set([MediaKind.VIDEO, MediaKind.IMAGE])
