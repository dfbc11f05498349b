"""
Tests for content-based media type classification.
"""

from stegascan.analyzers import TypeClassifier
from stegascan.models import MediaType
from tests.fixtures.media_factory import sine_wav, solid_jpeg, solid_png


def test_classifies_by_content_not_extension():
    info = TypeClassifier().classify(solid_png(), "holiday.mp3")

    assert info.detected_type is MediaType.IMAGE
    assert info.extension == "mp3"
    assert info.path == "holiday.mp3"


def test_media_categories():
    classifier = TypeClassifier()

    assert classifier.classify(solid_jpeg()).detected_type is MediaType.IMAGE
    assert classifier.classify(sine_wav(0.1)).detected_type is MediaType.AUDIO
    assert classifier.classify(b"%PDF-1.7\n...").detected_type is MediaType.TEXT
    assert classifier.classify(b"PK\x03\x04" + b"\x00" * 40).detected_type is MediaType.TEXT


def test_extension_fallback_without_signature():
    info = TypeClassifier().classify(b"\x00\x11\x22\x33 no header here", "clip.mkv")

    assert info.detected_type is MediaType.VIDEO


def test_defaults_to_text():
    info = TypeClassifier().classify(b"hello world", None)

    assert info.detected_type is MediaType.TEXT
    assert info.extension is None
    assert info.size_bytes == 11


def test_empty_and_truncated_buffers():
    classifier = TypeClassifier()
    empty = classifier.classify(b"")

    assert empty.size_bytes == 0
    assert empty.detected_type is MediaType.TEXT
    assert classifier.classify(b"\x89P").detected_type is MediaType.TEXT
