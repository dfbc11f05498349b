"""
Least-significant-bit statistics over raw pixel buffers.

Two measurements per channel:

* Pairs-of-values chi-square. Replacing LSBs with message bits pushes the
  counts of each value pair (2k, 2k+1) toward equality. The score is the
  probability of seeing pair counts this close to equal if embedding had
  occurred, so it approaches 1.0 for an embedded channel and 0.0 for a
  natural one.
* Shannon entropy of the LSB sequence (0-1 bits). Encrypted or compressed
  payloads are close to 1.0.

A channel is flagged only when both exceed their thresholds.
"""
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.models import ChannelStatistics, LsbAnalysis

RGB_CHANNELS = ("Red", "Green", "Blue")
RGBA_CHANNELS = ("Red", "Green", "Blue", "Alpha")
GRAY_CHANNELS = ("Gray",)
GRAY_ALPHA_CHANNELS = ("Gray", "Alpha")


def bit_entropy(bits: np.ndarray) -> float:
    """
    Shannon entropy of a 0/1 sequence.

    Args:
        bits: Array of 0/1 values

    Returns:
        Entropy in bits, between 0.0 and 1.0
    """
    if bits.size == 0:
        return 0.0
    p_one = float(np.count_nonzero(bits)) / bits.size
    if p_one in (0.0, 1.0):
        return 0.0
    p_zero = 1.0 - p_one
    return float(-(p_one * np.log2(p_one) + p_zero * np.log2(p_zero)))


def pairs_of_values_chi_square(values: np.ndarray, min_pair_count: int = 5) -> Tuple[float, float]:
    """
    Chi-square test over value pairs (2k, 2k+1).

    Args:
        values: Flat array of 8-bit channel values
        min_pair_count: Pairs observed fewer times than this are skipped

    Returns:
        Tuple of (embedding probability, raw chi-square statistic)
    """
    histogram = np.bincount(values.ravel(), minlength=256).astype(np.float64)
    even = histogram[0::2]
    odd = histogram[1::2]
    totals = even + odd

    used = totals >= max(min_pair_count, 1)
    categories = int(np.count_nonzero(used))
    if categories < 2:
        return 0.0, 0.0

    expected = totals[used] / 2.0
    statistic = float(np.sum((even[used] - expected) ** 2 / expected))
    probability = float(stats.chi2.sf(statistic, categories - 1))
    return probability, statistic


def analyze_lsb(
    pixels: np.ndarray,
    channel_names: Optional[Sequence[str]] = None,
    chi_square_threshold: float = 0.95,
    entropy_threshold: float = 0.95,
    min_pair_count: int = 5,
) -> LsbAnalysis:
    """
    Compute per-channel LSB statistics for a pixel buffer.

    Used for still images and for every sampled video frame.

    Args:
        pixels: uint8 array shaped (height, width) or (height, width, channels)
        channel_names: Names for the channels, in array order
        chi_square_threshold: Minimum chi-square score for a suspicious channel
        entropy_threshold: Minimum entropy score for a suspicious channel
        min_pair_count: Minimum observations for a value pair to be tested

    Returns:
        LsbAnalysis; is_suspicious is true iff at least one channel is flagged
    """
    array = np.asarray(pixels)
    if array.ndim == 2:
        array = array[:, :, np.newaxis]
    if array.ndim != 3:
        raise ValueError(f"Expected a 2D or 3D pixel array, got shape {array.shape}")
    if array.dtype != np.uint8:
        array = np.clip(array, 0, 255).astype(np.uint8)

    channel_count = array.shape[2]
    if channel_names is None:
        channel_names = _default_channel_names(channel_count)
    if len(channel_names) != channel_count:
        raise ValueError(f"{len(channel_names)} channel names for {channel_count} channels")

    channels = []
    for index, name in enumerate(channel_names):
        values = array[:, :, index].ravel()
        score, statistic = pairs_of_values_chi_square(values, min_pair_count)
        entropy = bit_entropy(values & 1)
        channels.append(ChannelStatistics(
            channel_name=name,
            chi_square_score=score,
            chi_square_statistic=statistic,
            entropy_score=entropy,
            is_suspicious=score > chi_square_threshold and entropy > entropy_threshold,
        ))

    return LsbAnalysis(
        is_suspicious=any(channel.is_suspicious for channel in channels),
        channels=tuple(channels),
        pixel_count=int(array.shape[0] * array.shape[1]),
    )


def _default_channel_names(count: int) -> Sequence[str]:
    if count == 1:
        return GRAY_CHANNELS
    if count == 2:
        return GRAY_ALPHA_CHANNELS
    if count == 3:
        return RGB_CHANNELS
    if count == 4:
        return RGBA_CHANNELS
    return tuple(f"Channel {i}" for i in range(count))


class LsbAnalyzer(BaseAnalyzer):
    """LSB analysis bound to the configured thresholds."""

    name: str = "lsb"
    description: str = "Chi-square and entropy analysis of pixel least significant bits"
    config_section = "LSB"

    def analyze(self, pixels: np.ndarray, channel_names: Optional[Sequence[str]] = None) -> LsbAnalysis:
        result = analyze_lsb(pixels, channel_names, **self._thresholds())
        flagged = [c.channel_name for c in result.channels if c.is_suspicious]
        if flagged:
            self.logger.debug(f"LSB anomalies in channels: {', '.join(flagged)}")
        return result

    def _thresholds(self) -> Dict[str, Any]:
        return {
            "chi_square_threshold": self.config["chi_square_threshold"],
            "entropy_threshold": self.config["entropy_threshold"],
            "min_pair_count": self.config["min_pair_count"],
        }
