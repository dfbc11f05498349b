"""
End-to-end tests for a single scan.
"""

import pytest

from stegascan import engine
from stegascan.core.errors import FileTooLargeError, InputError
from stegascan.models import (
    AnalysisStatus,
    AudioAnalysis,
    ConfidenceLevel,
    ImageAnalysis,
    MediaType,
    TextAnalysis,
)
from stegascan.summary import INCOMPLETE_ANALYSIS, LSB_HIDDEN_DATA, MULTIPLE_FORMATS, SUSPICIOUS_STRUCTURE
from tests.fixtures.media_factory import (
    clean_pixels,
    docx_bytes,
    png_bytes,
    sine_ogg,
    sine_wav,
    solid_jpeg,
    solid_png,
    stego_pixels,
)


def _without_timestamp(result):
    document = result.to_dict()
    document.pop("timestamp")
    return document


def test_scan_is_idempotent_apart_from_timestamp():
    data = png_bytes(stego_pixels()) + solid_jpeg()

    first = engine.scan(data, "carrier.png")
    second = engine.scan(data, "carrier.png")

    assert _without_timestamp(first) == _without_timestamp(second)
    assert first.timestamp


def test_empty_buffer_is_clean_text():
    result = engine.scan(b"")

    assert result.file_info.size_bytes == 0
    assert result.file_info.detected_type is MediaType.TEXT
    assert isinstance(result.format_specific_analysis, TextAnalysis)
    assert result.magic_bytes_analysis.total_signatures_found == 0
    assert result.summary.confidence_level is ConfidenceLevel.NONE
    assert result.summary.steganography_detected is False


def test_clean_image():
    result = engine.scan(png_bytes(clean_pixels()), "clean.png")

    assert isinstance(result.format_specific_analysis, ImageAnalysis)
    assert result.summary.steganography_detected is False
    assert result.to_dict()["format_specific_analysis"]["type"] == "Image"


def test_stego_image_with_appended_jpeg():
    result = engine.scan(png_bytes(stego_pixels()) + solid_jpeg(), "carrier.png")

    indicators = result.summary.threat_indicators
    assert indicators[:2] == (SUSPICIOUS_STRUCTURE, MULTIPLE_FORMATS)
    assert LSB_HIDDEN_DATA in indicators
    assert result.summary.confidence_level is ConfidenceLevel.MEDIUM


def test_audio_dispatch():
    result = engine.scan(sine_wav(0.5), "tone.wav")

    assert isinstance(result.format_specific_analysis, AudioAnalysis)
    assert result.format_specific_analysis.status is AnalysisStatus.COMPLETED


def test_docx_is_measured_on_its_text():
    result = engine.scan(docx_bytes("Hello world", "Second paragraph here"), "report.docx")

    assert result.file_info.detected_type is MediaType.TEXT
    assert isinstance(result.format_specific_analysis, TextAnalysis)
    assert result.format_specific_analysis.file_type == "DOCX"
    assert result.format_specific_analysis.word_count == 5


def test_clean_ogg_is_not_flagged():
    result = engine.scan(sine_ogg(), "clean.ogg")

    assert isinstance(result.format_specific_analysis, AudioAnalysis)
    assert result.magic_bytes_analysis.has_suspicious_data is False
    assert result.summary.steganography_detected is False
    assert result.summary.confidence_level is ConfidenceLevel.NONE


def test_undecodable_image_still_scans_structure():
    data = solid_png()[:40]

    result = engine.scan(data, "broken.png")

    assert result.format_specific_analysis.status is AnalysisStatus.FAILED
    assert result.magic_bytes_analysis.primary_format == "PNG image"
    assert INCOMPLETE_ANALYSIS in result.summary.recommendations


def test_unexpected_layer_error_degrades_to_failed(monkeypatch):
    def explode(self, data):
        raise RuntimeError("boom")

    monkeypatch.setattr("stegascan.analyzers.image_analyzer.ImageAnalyzer.analyze", explode)

    result = engine.scan(solid_png(), "x.png")

    assert result.format_specific_analysis.status is AnalysisStatus.FAILED
    assert result.format_specific_analysis.errors == ("Internal error during image analysis",)


@pytest.mark.parametrize("value", [0, -3, "abc", "", 1.5, True])
def test_invalid_sample_rate(value):
    with pytest.raises(InputError):
        engine.scan(b"data", video_sample_rate=value)


def test_sample_rate_accepts_numeric_strings():
    assert engine.validate_sample_rate("12") == 12
    assert engine.validate_sample_rate(5) == 5


def test_missing_buffer_is_rejected():
    with pytest.raises(InputError):
        engine.scan(None)


def test_oversized_input_is_rejected():
    with pytest.raises(FileTooLargeError):
        engine.scan(b"x" * 100, overrides={"SERVICE": {"max_file_size": 10}})
