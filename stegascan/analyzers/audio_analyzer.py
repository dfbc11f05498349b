"""
Audio analysis: tag inspection plus spectral energy analysis.
"""
import io
from typing import Any, Dict, Optional, Tuple

import numpy as np
import soundfile as sf

from stegascan.analyzers.id3_analyzer import Id3Analyzer
from stegascan.analyzers.spectrogram_analyzer import SpectrogramAnalyzer
from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.core.errors import DecodeError
from stegascan.models import AnalysisStatus, AudioAnalysis


def decode_audio(data: bytes) -> Tuple[np.ndarray, int]:
    """
    Decode an audio buffer with libsndfile.

    Args:
        data: Raw audio file bytes (WAV, FLAC, OGG, MP3, AIFF)

    Returns:
        Tuple of (float32 samples shaped (frames, channels), sample rate)

    Raises:
        DecodeError: If no samples can be decoded
    """
    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (RuntimeError, ValueError, TypeError, OSError) as e:
        raise DecodeError(f"Audio decode failed: {e}") from e
    if samples.size == 0:
        raise DecodeError("Audio decode failed: stream contains no samples")
    return samples, int(sample_rate)


class AudioAnalyzer(BaseAnalyzer):
    """Run the tag and spectrogram sub-analyses over an audio buffer."""

    name: str = "audio"
    description: str = "ID3 tag and spectrogram analysis for audio"

    def __init__(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        super().__init__()
        overrides = overrides or {}
        self.id3_analyzer = Id3Analyzer(overrides.get("ID3"))
        self.spectrogram_analyzer = SpectrogramAnalyzer(overrides.get("SPECTROGRAM"))

    def analyze(self, data: bytes) -> AudioAnalysis:
        """
        Analyze an audio file.

        Tags are read straight from the bytes, so they are reported even when
        the audio stream itself cannot be decoded.

        Args:
            data: Raw audio bytes

        Returns:
            AudioAnalysis; status is failed when no samples could be decoded
        """
        id3_analysis = self.id3_analyzer.analyze(data)

        try:
            samples, sample_rate = decode_audio(data)
        except DecodeError as e:
            self.logger.warning(str(e))
            return AudioAnalysis(
                sample_count=0,
                sample_rate=None,
                id3_analysis=id3_analysis,
                spectrogram_analysis=None,
                status=AnalysisStatus.FAILED,
                errors=(str(e),),
            )

        sample_count = int(samples.shape[0])
        try:
            spectrogram = self.spectrogram_analyzer.analyze(samples, sample_rate)
        except ValueError as e:
            self.logger.warning(f"Spectrogram analysis failed: {e}")
            return AudioAnalysis(
                sample_count=sample_count,
                sample_rate=sample_rate,
                id3_analysis=id3_analysis,
                spectrogram_analysis=None,
                status=AnalysisStatus.PARTIAL,
                errors=(f"Spectrogram analysis failed: {e}",),
            )

        self.logger.debug(f"Analyzed {sample_count} samples at {sample_rate} Hz")
        return AudioAnalysis(
            sample_count=sample_count,
            sample_rate=sample_rate,
            id3_analysis=id3_analysis,
            spectrogram_analysis=spectrogram,
        )
