"""
Tests for the signature table and its lookup helpers.
"""

import struct

from stegascan.analyzers.signatures import (
    EXTENSION_CATEGORIES,
    SIGNATURES,
    best_match_at,
    normalize_extension,
)
from stegascan.models import SignatureCategory
from tests.fixtures.media_factory import solid_jpeg, solid_png


def test_most_specific_signature_wins_at_offset_zero():
    wav = b"RIFF" + struct.pack("<I", 36) + b"WAVE" + b"\x00" * 32
    avi = b"RIFF" + struct.pack("<I", 36) + b"AVI " + b"\x00" * 32

    assert best_match_at(wav).description == "WAV audio (RIFF/WAVE)"
    assert best_match_at(avi).description == "AVI video (RIFF)"


def test_header_offset_signatures_match_from_file_start():
    mp4 = b"\x00\x00\x00\x18ftypisom" + b"\x00" * 16
    tar = b"\x00" * 257 + b"ustar" + b"\x00" * 250

    assert best_match_at(mp4).description == "MP4 video"
    assert best_match_at(tar).description == "TAR archive"


def test_no_match_for_plain_text():
    assert best_match_at(b"just some words") is None
    assert best_match_at(b"") is None


def test_png_span_ends_after_iend_chunk():
    png = solid_png()
    signature = best_match_at(png)

    assert signature.description == "PNG image"
    assert signature.span_end(png, 0) == len(png)


def test_jpeg_span_ends_after_eoi():
    jpeg = solid_jpeg()
    signature = best_match_at(jpeg)

    assert signature.category is SignatureCategory.IMAGE
    assert signature.span_end(jpeg + b"trailing bytes", 0) == len(jpeg)


def test_riff_length_field_bounds_the_span():
    wav = b"RIFF" + struct.pack("<I", 36) + b"WAVE" + b"\x00" * 32
    signature = best_match_at(wav)

    assert signature.span_end(wav, 0) == 44
    # Declared length past the buffer end gives no span
    assert signature.span_end(wav[:40], 0) is None


def test_generic_signatures_are_not_trusted_when_embedded():
    generic = {sig.description for sig in SIGNATURES if not sig.embedded}

    assert "BMP image" in generic
    assert "Windows PE executable" in generic


def test_extension_map_covers_table_and_plain_text():
    assert EXTENSION_CATEGORIES["png"] is SignatureCategory.IMAGE
    assert EXTENSION_CATEGORIES["mp3"] is SignatureCategory.AUDIO
    assert EXTENSION_CATEGORIES["mkv"] is SignatureCategory.VIDEO
    assert EXTENSION_CATEGORIES["txt"] is SignatureCategory.TEXT


def test_normalize_extension():
    assert normalize_extension("photo.JPG") == "jpg"
    assert normalize_extension("/tmp/archive.tar.gz") == "gz"
    assert normalize_extension("C:\\data\\song.Mp3") == "mp3"
    assert normalize_extension("README") is None
    assert normalize_extension(".bashrc") is None
    assert normalize_extension(None) is None
