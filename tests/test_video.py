"""
Tests for video frame sampling.

A video of N decodable frames sampled with stride s yields floor(N / s)
analyzed frames; frames that cannot be decoded or analyzed are counted as
errors and never as processed.
"""

import numpy as np
import pytest

from stegascan.analyzers import VideoAnalyzer
from stegascan.analyzers.video_analyzer import SampledFrameReader
from stegascan.models import AnalysisStatus
from tests.fixtures.media_factory import avi_file, clean_pixels, stego_pixels


@pytest.mark.parametrize("stride, expected", [(1, 10), (3, 3), (4, 2), (10, 1), (11, 0)])
def test_sampled_frame_count(tmp_path, stride, expected):
    path = avi_file(tmp_path, frame_count=10)

    reader = SampledFrameReader(str(path), stride)
    indices = [index for index, _ in reader]

    assert len(indices) == expected
    assert indices == [i for i in range(10) if (i + 1) % stride == 0]
    assert reader.frames_decoded == 10


def test_analyze_counts_sampled_frames(tmp_path):
    data = avi_file(tmp_path, frame_count=10).read_bytes()

    result = VideoAnalyzer().analyze(data, "avi", sample_rate=3)

    assert result.status is AnalysisStatus.COMPLETED
    assert result.frames_processed == 3
    assert result.errors_encountered == 0
    assert result.frames_decoded == 10
    assert result.sample_rate == 3


def test_undecodable_frames_are_errors():
    frames = [(0, clean_pixels(16)), (1, None), (2, clean_pixels(16)), (3, None)]

    processed, errors, suspicious = VideoAnalyzer().analyze_frames(frames)

    assert (processed, errors, suspicious) == (2, 2, [])


def test_suspicious_frames_are_sorted():
    # Frames are BGR, as OpenCV delivers them
    frames = [(index, stego_pixels(32, seed=index) if index % 2 else clean_pixels(32)) for index in range(12)]

    processed, errors, suspicious = VideoAnalyzer({"max_workers": 3}).analyze_frames(frames)

    assert processed == 12
    assert errors == 0
    assert suspicious == [1, 3, 5, 7, 9, 11]


def test_frame_analysis_errors_are_counted():
    frames = [(0, np.zeros((4, 4, 3), dtype=np.uint8)), (1, np.zeros(7, dtype=np.uint8))]

    processed, errors, _ = VideoAnalyzer().analyze_frames(frames)

    assert processed == 1
    assert errors == 1


def test_garbage_container_fails_the_layer():
    result = VideoAnalyzer().analyze(b"RIFF\x10\x00\x00\x00AVI " + b"\x00" * 64, "avi")

    assert result.status is AnalysisStatus.FAILED
    assert result.frames_processed == 0
    assert result.errors
