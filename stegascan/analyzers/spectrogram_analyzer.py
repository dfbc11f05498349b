"""
Spectral analysis of decoded audio.

Messages hidden in the spectrogram (a tone, an image drawn into the upper
band) show up as high-frequency energy that persists across many consecutive
windows. Natural recordings put little energy there, and transients such as
cymbal hits do not last. Detection therefore requires the high band to be
elevated for a sustained run of windows, not just on average.
"""
from typing import List, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.models import SpectrogramAnalysis

PERSISTENT_TONE_PATTERN = "Persistent high-frequency tone detected"

# Windows transformed per FFT batch
_BATCH_WINDOWS = 1024


def longest_run(mask: np.ndarray) -> Tuple[int, int]:
    """
    Longest run of True values in a boolean array.

    Args:
        mask: 1D boolean array

    Returns:
        Tuple of (run length, run start index); (0, 0) if no value is True
    """
    padded = np.concatenate(([0], mask.astype(np.int8), [0]))
    edges = np.diff(padded)
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    if starts.size == 0:
        return 0, 0
    lengths = ends - starts
    best = int(np.argmax(lengths))
    return int(lengths[best]), int(starts[best])


class SpectrogramAnalyzer(BaseAnalyzer):
    """Windowed FFT energy analysis of the upper frequency band."""

    name: str = "spectrogram"
    description: str = "Persistent high-frequency energy detection"
    config_section = "SPECTROGRAM"

    def analyze(self, samples: np.ndarray, sample_rate: int) -> SpectrogramAnalysis:
        """
        Analyze decoded samples.

        Args:
            samples: Array shaped (frames,) or (frames, channels)
            sample_rate: Samples per second

        Returns:
            SpectrogramAnalysis for the mono mix-down of the samples
        """
        if sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {sample_rate}")

        mono = np.asarray(samples, dtype=np.float64)
        if mono.ndim == 2:
            mono = mono.mean(axis=1)
        mono = np.nan_to_num(mono.ravel())

        window_size = int(self.config["window_size"])
        hop_size = int(self.config["hop_size"])
        if mono.size < window_size:
            mono = np.pad(mono, (0, window_size - mono.size))

        window_count = 1 + (mono.size - window_size) // hop_size
        hann = np.hanning(window_size)
        freqs = np.fft.rfftfreq(window_size, d=1.0 / sample_rate)
        high_band = freqs >= self.config["cutoff_ratio"] * (sample_rate / 2.0)
        high_freqs = freqs[high_band]

        ratios = np.zeros(window_count)
        peak_bins = np.zeros(window_count, dtype=np.int64)
        high_total = 0.0
        full_total = 0.0
        windows = sliding_window_view(mono, window_size)

        for batch_start in range(0, window_count, _BATCH_WINDOWS):
            index = np.arange(batch_start, min(batch_start + _BATCH_WINDOWS, window_count))
            power = np.abs(np.fft.rfft(windows[index * hop_size] * hann, axis=1)) ** 2
            high = power[:, high_band].sum(axis=1)
            full = power.sum(axis=1)
            ratios[index] = np.divide(high, full, out=np.zeros_like(high), where=full > 0)
            if high_freqs.size:
                peak_bins[index] = np.argmax(power[:, high_band], axis=1)
            high_total += float(high.sum())
            full_total += float(full.sum())

        elevated = ratios > self.config["energy_threshold"]
        run_length, run_start = longest_run(elevated)
        required = min(int(self.config["min_persistent_windows"]), window_count)
        detected = run_length > 0 and run_length >= required

        patterns: List[str] = []
        if detected:
            patterns.append(PERSISTENT_TONE_PATTERN)
            if high_freqs.size:
                run_peaks = peak_bins[run_start:run_start + run_length]
                dominant = high_freqs[int(np.bincount(run_peaks).argmax())]
                start_seconds = run_start * hop_size / sample_rate
                duration = ((run_length - 1) * hop_size + window_size) / sample_rate
                patterns.append(
                    f"Sustained energy near {dominant:.0f} Hz for {duration:.2f}s starting at {start_seconds:.2f}s"
                )
            self.logger.info(f"High-frequency energy persisted over {run_length} of {window_count} windows")

        return SpectrogramAnalysis(
            high_frequency_energy=high_total / full_total if full_total > 0 else 0.0,
            hidden_message_detected=detected,
            suspicious_patterns=tuple(patterns),
            windows_analyzed=window_count,
            longest_elevated_run=run_length,
        )
