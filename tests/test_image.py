"""
Tests for image metadata and the image analysis layer.
"""

import io

from PIL import Image

from stegascan.analyzers import ExifAnalyzer, ImageAnalyzer
from stegascan.models import AnalysisStatus
from tests.fixtures.media_factory import (
    LARGE_COMMENT,
    clean_pixels,
    jpeg_with_encoded_description,
    png_bytes,
    png_with_large_comment,
    stego_pixels,
)


def _open(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


def test_image_without_metadata_has_zero_fields():
    with _open(png_bytes(clean_pixels(16))) as image:
        result = ExifAnalyzer().analyze(image)

    assert result.fields_found == 0
    assert result.has_thumbnail is False
    assert result.suspicious_fields == ()


def test_base64_description_is_flagged():
    with _open(jpeg_with_encoded_description()) as image:
        result = ExifAnalyzer().analyze(image)

    assert "ImageDescription" in result.comment_fields
    assert "ImageDescription: potential encoded data" in result.suspicious_fields
    assert result.fields_found >= 1


def test_large_text_chunk_is_flagged():
    with _open(png_with_large_comment()) as image:
        result = ExifAnalyzer().analyze(image)

    assert "Comment" in result.comment_fields
    assert f"Comment: unusually large ({len(LARGE_COMMENT)} bytes)" in result.suspicious_fields
    assert "Comment: potential encoded data" not in result.suspicious_fields
    assert ("Comment", LARGE_COMMENT[:200] + "...") in result.metadata


def test_field_size_limit_is_configurable():
    with _open(png_with_large_comment()) as image:
        result = ExifAnalyzer({"max_field_bytes": 10_000}).analyze(image)

    assert result.suspicious_fields == ()


def test_clean_image_layer():
    result = ImageAnalyzer().analyze(png_bytes(clean_pixels()))

    assert result.status is AnalysisStatus.COMPLETED
    assert (result.width, result.height) == (64, 64)
    assert result.lsb_analysis.is_suspicious is False
    assert result.to_dict()["dimensions"] == {"width": 64, "height": 64}


def test_stego_image_layer():
    result = ImageAnalyzer().analyze(png_bytes(stego_pixels()))

    assert result.lsb_analysis.is_suspicious is True
    assert len(result.lsb_analysis.channels) == 3


def test_overrides_reach_sub_analyzers():
    result = ImageAnalyzer({"LSB": {"entropy_threshold": 1.0}}).analyze(png_bytes(stego_pixels()))

    assert result.lsb_analysis.is_suspicious is False


def test_undecodable_image_fails_the_layer():
    result = ImageAnalyzer().analyze(b"\x89PNG\r\n\x1a\n" + b"\x00" * 40)

    assert result.status is AnalysisStatus.FAILED
    assert result.lsb_analysis is None
    assert result.errors
    assert result.to_dict()["dimensions"] is None


def test_truncated_pixel_data_keeps_dimensions():
    data = png_bytes(stego_pixels())
    result = ImageAnalyzer().analyze(data[: len(data) // 2])

    assert result.status is AnalysisStatus.FAILED
    assert (result.width, result.height) == (64, 64)
    assert result.lsb_analysis is None
