"""
Tests for ID3 tags, spectrogram analysis and the audio analysis layer.
"""

import base64

import numpy as np
import pytest

from stegascan.analyzers import AudioAnalyzer, Id3Analyzer, SpectrogramAnalyzer
from stegascan.analyzers.id3_analyzer import parse_id3v2
from stegascan.analyzers.spectrogram_analyzer import PERSISTENT_TONE_PATTERN, longest_run
from stegascan.models import AnalysisStatus
from tests.fixtures.media_factory import (
    SAMPLE_RATE,
    comment_frame,
    id3_frame,
    id3_tag,
    id3v1_trailer,
    sine_wav,
    sine_with_tone_samples,
    sine_with_tone_wav,
    text_frame,
    transient_burst_samples,
)


# ---------------------------------------------------------------------------
# ID3
# ---------------------------------------------------------------------------

def test_no_tag_gives_zero_field_result():
    result = Id3Analyzer().analyze(b"\x00" * 256)

    assert result.tag_version is None
    assert result.frames_found == 0
    assert result.suspicious_frames == ()


def test_basic_text_frames():
    tag = id3_tag(text_frame("TIT2", "Title"), text_frame("TPE1", "Artist"), text_frame("TALB", "Album"))

    result = Id3Analyzer().analyze(tag + b"\x00" * 64)

    assert result.tag_version == "ID3v2.3"
    assert (result.title, result.artist, result.album) == ("Title", "Artist", "Album")
    assert result.frames_found == 3
    assert result.suspicious_frames == ()


def test_large_and_encoded_comments_are_flagged():
    encoded = base64.b64encode(bytes(range(256)) * 3).decode("ascii")
    tag = id3_tag(comment_frame(encoded))

    result = Id3Analyzer().analyze(tag)

    assert result.comments_count == 1
    assert f"Large comment field: {len(encoded)} bytes" in result.suspicious_frames
    assert "Comment contains potential encoded data" in result.suspicious_frames


def test_private_and_picture_frames_are_counted():
    tag = id3_tag(
        id3_frame("PRIV", b"owner\x00" + b"\x01" * 2000),
        id3_frame("APIC", b"\x00image/png\x00\x03\x00" + b"\x02" * 100),
    )

    result = Id3Analyzer().analyze(tag)

    assert result.private_frames_count == 1
    assert result.pictures_count == 1
    assert "Large private frame: 2006 bytes" in result.suspicious_frames


def test_id3v1_trailer_fills_missing_fields():
    data = b"\x00" * 64 + id3v1_trailer(title="Old Song", artist="Someone", comment="hi")

    result = Id3Analyzer().analyze(data)

    assert result.tag_version == "ID3v1"
    assert result.title == "Old Song"
    assert result.year == "1999"
    assert result.comments_count == 1


def test_damaged_tag_keeps_frames_parsed_before_the_damage():
    tag = id3_tag(text_frame("TIT2", "Title"), padding=0)
    damaged = tag + b"\xff\xff\xff\xff garbage"
    # Declare a tag size that covers the garbage
    damaged = damaged[:6] + bytes([0, 0, 0, len(damaged) - 10]) + damaged[10:]

    version, frames = parse_id3v2(damaged)

    assert version == "2.3"
    assert [frame.frame_id for frame in frames] == ["TIT2"]


# ---------------------------------------------------------------------------
# Spectrogram
# ---------------------------------------------------------------------------

def test_longest_run():
    assert longest_run(np.array([False, True, True, False, True])) == (2, 1)
    assert longest_run(np.zeros(4, dtype=bool)) == (0, 0)


def test_plain_tone_has_no_hidden_message():
    samples = 0.4 * np.sin(2 * np.pi * 440.0 * np.arange(SAMPLE_RATE * 2) / SAMPLE_RATE)

    result = SpectrogramAnalyzer().analyze(samples, SAMPLE_RATE)

    assert result.hidden_message_detected is False
    assert result.high_frequency_energy < 0.01
    assert result.windows_analyzed == 1 + (SAMPLE_RATE * 2 - 2048) // 512


def test_persistent_high_frequency_tone_is_detected():
    result = SpectrogramAnalyzer().analyze(sine_with_tone_samples(), SAMPLE_RATE)

    assert result.hidden_message_detected is True
    assert result.suspicious_patterns[0] == PERSISTENT_TONE_PATTERN
    assert result.longest_elevated_run == result.windows_analyzed


def test_transient_burst_is_not_detected():
    result = SpectrogramAnalyzer().analyze(transient_burst_samples(), SAMPLE_RATE)

    assert result.hidden_message_detected is False
    assert 0 < result.longest_elevated_run < 20


def test_stereo_input_is_mixed_down():
    mono = sine_with_tone_samples(1.0)
    stereo = np.stack([mono, mono], axis=1)

    result = SpectrogramAnalyzer().analyze(stereo, SAMPLE_RATE)

    assert result.hidden_message_detected is True


def test_short_clip_needs_every_window_elevated():
    # Fewer windows than min_persistent_windows
    result = SpectrogramAnalyzer().analyze(sine_with_tone_samples(0.1), SAMPLE_RATE)

    assert result.windows_analyzed < 20
    assert result.hidden_message_detected is True


def test_invalid_sample_rate():
    with pytest.raises(ValueError):
        SpectrogramAnalyzer().analyze(np.zeros(4096), 0)


# ---------------------------------------------------------------------------
# Audio layer
# ---------------------------------------------------------------------------

def test_clean_wav_layer():
    result = AudioAnalyzer().analyze(sine_wav())

    assert result.status is AnalysisStatus.COMPLETED
    assert result.sample_rate == SAMPLE_RATE
    assert result.sample_count == SAMPLE_RATE * 2
    assert result.spectrogram_analysis.hidden_message_detected is False
    assert result.id3_analysis.tag_version is None


def test_wav_with_hidden_tone():
    result = AudioAnalyzer().analyze(sine_with_tone_wav())

    assert result.spectrogram_analysis.hidden_message_detected is True


def test_undecodable_audio_keeps_tag_result():
    data = id3_tag(text_frame("TIT2", "Broken")) + b"\x00\x01\x02" * 100

    result = AudioAnalyzer().analyze(data)

    assert result.status is AnalysisStatus.FAILED
    assert result.spectrogram_analysis is None
    assert result.id3_analysis.title == "Broken"
    assert result.errors
