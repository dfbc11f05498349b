"""
Tests for the full-buffer signature scan.

Coverage:

  PNG followed by a complete JPEG       -> one embedded file, multiple formats
  Single clean file                     -> no embedded files, nothing suspicious
  Bytes appended after an end marker    -> appended-data finding
  Extension disagrees with content      -> format mismatch finding
  Empty and short buffers               -> empty match set, no error
  Ogg pages and MPEG pack headers       -> internal structure, not embedded files
  Cover art inside an ID3v2 tag         -> internal structure, not embedded files
"""

from stegascan.analyzers import MagicBytesAnalyzer
from stegascan.analyzers.magic_bytes_analyzer import MULTIPLE_SIGNATURES_FINDING, UNKNOWN_FORMAT
from stegascan.models import MatchConfidence, SignatureCategory
from tests.fixtures.media_factory import (
    mp3_with_cover_art,
    mpeg_ps_bytes,
    sine_ogg,
    solid_jpeg,
    solid_png,
)


def test_png_with_appended_jpeg_reports_one_embedded_file():
    png = solid_png()
    jpeg = solid_jpeg()

    result = MagicBytesAnalyzer().analyze(png + jpeg, "png")

    assert result.primary_format == "PNG image"
    assert len(result.embedded_files) == 1
    embedded = result.embedded_files[0]
    assert embedded.offset == len(png)
    assert embedded.category is SignatureCategory.IMAGE
    assert embedded.confidence in (MatchConfidence.MEDIUM, MatchConfidence.HIGH)
    assert result.has_multiple_formats is True
    assert result.has_suspicious_data is True
    assert result.total_signatures_found == 2
    assert result.format_summary.images == 1
    assert f"Complete file signature found at offset {embedded.offset_hex}: {embedded.description}" in (
        result.suspicious_findings
    )
    assert MULTIPLE_SIGNATURES_FINDING in result.suspicious_findings


def test_complete_embedded_jpeg_is_high_confidence():
    png = solid_png()
    result = MagicBytesAnalyzer().analyze(png + solid_jpeg())

    assert result.embedded_files[0].confidence is MatchConfidence.HIGH


def test_single_format_is_clean():
    result = MagicBytesAnalyzer().analyze(solid_png(), "png")

    assert result.primary_format == "PNG image"
    assert result.expected_format == "PNG"
    assert result.embedded_files == ()
    assert result.has_multiple_formats is False
    assert result.has_suspicious_data is False
    assert result.suspicious_findings == ()


def test_appended_data_after_end_marker():
    png = solid_png()
    payload = bytes(range(1, 101))

    result = MagicBytesAnalyzer().analyze(png + payload)

    assert result.has_suspicious_data is True
    assert result.has_multiple_formats is False
    assert f"Data appended after end of PNG image at offset 0x{len(png):X} (100 bytes)" in result.suspicious_findings


def test_trailing_garbage_is_not_an_embedded_file():
    png = solid_png()

    # A JPEG header with fewer than min_embedded_size bytes after it
    result = MagicBytesAnalyzer().analyze(png + b"\xff\xd8\xff\xe0\x00\x10JFIF")

    assert result.embedded_files == ()


def test_format_mismatch_finding():
    result = MagicBytesAnalyzer().analyze(solid_png(), "jpg")

    assert result.suspicious_findings[0] == "Format mismatch: extension says JPG, detected format is PNG image"


def test_embedded_signature_without_end_is_medium_confidence():
    data = b"plain text header " * 4 + b"7z\xbc\xaf\x27\x1c" + b"\x01" * 64

    result = MagicBytesAnalyzer().analyze(data)

    assert result.primary_format == "7-Zip archive"
    assert len(result.embedded_files) == 1
    assert result.embedded_files[0].confidence is MatchConfidence.MEDIUM
    assert result.has_suspicious_data is True
    assert result.has_multiple_formats is False


def test_short_signature_is_low_confidence_and_not_reported():
    data = b"x" * 40 + b"BZh" + b"\x02" * 40

    result = MagicBytesAnalyzer().analyze(data)

    assert result.embedded_files[0].confidence is MatchConfidence.LOW
    assert result.has_suspicious_data is False
    assert result.suspicious_findings == ()


def test_empty_buffer():
    result = MagicBytesAnalyzer().analyze(b"")

    assert result.primary_format == UNKNOWN_FORMAT
    assert result.total_signatures_found == 0
    assert result.embedded_files == ()
    assert result.has_multiple_formats is False
    assert result.has_suspicious_data is False


def test_buffer_shorter_than_any_signature():
    result = MagicBytesAnalyzer().analyze(b"\x89")

    assert result.primary_format == UNKNOWN_FORMAT
    assert result.total_signatures_found == 0


def test_dedup_window_is_configurable():
    zip_header = b"PK\x03\x04"
    data = b"\x00" * 20 + zip_header + b"\x00" * 10 + zip_header + b"\x00" * 64

    default = MagicBytesAnalyzer().analyze(data)
    narrow = MagicBytesAnalyzer({"dedup_window": 4}).analyze(data)

    assert len(default.embedded_files) == 1
    assert len(narrow.embedded_files) == 2


def test_ogg_page_headers_are_not_embedded_files():
    data = sine_ogg()
    assert data.count(b"OggS") > 2

    result = MagicBytesAnalyzer().analyze(data, "ogg")

    assert result.primary_format == "OGG audio"
    assert not [match for match in result.embedded_files if match.description == "OGG audio"]
    assert result.has_suspicious_data is False
    assert result.has_multiple_formats is False


def test_mpeg_pack_and_sequence_headers_are_not_embedded_files():
    result = MagicBytesAnalyzer().analyze(mpeg_ps_bytes(), "mpg")

    assert result.primary_format == "MPEG video"
    assert result.embedded_files == ()
    assert result.total_signatures_found == 1
    assert result.has_suspicious_data is False
    assert result.suspicious_findings == ()


def test_other_formats_inside_a_repeating_stream_are_still_reported():
    ogg = sine_ogg(seconds=1.0)
    png = solid_png()

    result = MagicBytesAnalyzer().analyze(ogg + png, "ogg")

    assert [match.offset for match in result.embedded_files if match.description == "PNG image"] == [len(ogg)]
    assert result.has_suspicious_data is True
    assert result.has_multiple_formats is True


def test_id3_cover_art_is_not_an_embedded_file():
    result = MagicBytesAnalyzer().analyze(mp3_with_cover_art(), "mp3")

    assert result.primary_format == "MP3 audio (ID3 tag)"
    assert result.embedded_files == ()
    assert result.has_suspicious_data is False
    assert result.has_multiple_formats is False
    assert MULTIPLE_SIGNATURES_FINDING not in result.suspicious_findings


def test_image_after_the_id3_tag_is_still_reported():
    mp3 = mp3_with_cover_art()

    result = MagicBytesAnalyzer().analyze(mp3 + solid_png(), "mp3")

    assert [match.offset for match in result.embedded_files] == [len(mp3)]
    assert result.has_suspicious_data is True
