"""
Aggregation of per-layer findings into one verdict.

Each rule that fires contributes one indicator string. The verdict only
counts indicators, so evidence from different formats is comparable: two
indicators from a WAV file weigh the same as two from a PNG.
"""
from typing import List, Optional, Tuple

from stegascan.models import (
    AnalysisStatus,
    AudioAnalysis,
    ConfidenceLevel,
    FormatSpecificAnalysis,
    ImageAnalysis,
    MagicByteAnalysis,
    Summary,
    TextAnalysis,
    VideoAnalysis,
)

SUSPICIOUS_STRUCTURE = "Suspicious data in file structure"
MULTIPLE_FORMATS = "Multiple file formats detected"
LSB_HIDDEN_DATA = "LSB analysis indicates hidden data"
SUSPICIOUS_EXIF = "Suspicious EXIF metadata found"
HIDDEN_AUDIO_MESSAGE = "Hidden audio message detected"
SUSPICIOUS_AUDIO_TAGS = "Suspicious audio tag data found"
SUSPICIOUS_VIDEO_FRAMES = "Suspicious patterns in video frames"

INCOMPLETE_ANALYSIS = "Format-specific analysis incomplete; re-run with a supported decoder"

RECOMMENDATIONS = {
    ConfidenceLevel.NONE: ("No obvious steganography detected",),
    ConfidenceLevel.LOW: ("Review flagged indicator manually", "Verify file source"),
    ConfidenceLevel.MEDIUM: ("Further investigation recommended", "Verify file source"),
    ConfidenceLevel.HIGH: (
        "Further investigation recommended",
        "Consider specialized tools",
        "Verify file source",
        "Quarantine file until reviewed",
    ),
}


def confidence_for(indicator_count: int) -> ConfidenceLevel:
    """
    Map an indicator count to a confidence band.

    Args:
        indicator_count: Number of fired rules

    Returns:
        none for 0, low for 1, medium for 2-3, high for 4 or more
    """
    if indicator_count <= 0:
        return ConfidenceLevel.NONE
    if indicator_count == 1:
        return ConfidenceLevel.LOW
    if indicator_count <= 3:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.HIGH


def format_indicators(analysis: Optional[FormatSpecificAnalysis]) -> List[str]:
    """
    Indicators contributed by the format-specific layer.

    Args:
        analysis: The layer's result, possibly missing or partial

    Returns:
        Indicator strings in rule order
    """
    indicators: List[str] = []
    if analysis is None:
        return indicators

    if isinstance(analysis, ImageAnalysis):
        if analysis.lsb_analysis is not None and analysis.lsb_analysis.is_suspicious:
            indicators.append(LSB_HIDDEN_DATA)
        if analysis.exif_metadata.suspicious_fields:
            indicators.append(SUSPICIOUS_EXIF)
    elif isinstance(analysis, AudioAnalysis):
        if analysis.spectrogram_analysis is not None and analysis.spectrogram_analysis.hidden_message_detected:
            indicators.append(HIDDEN_AUDIO_MESSAGE)
        if analysis.id3_analysis is not None and analysis.id3_analysis.suspicious_frames:
            indicators.append(SUSPICIOUS_AUDIO_TAGS)
    elif isinstance(analysis, VideoAnalysis):
        if analysis.suspicious_frames:
            indicators.append(SUSPICIOUS_VIDEO_FRAMES)
    elif isinstance(analysis, TextAnalysis):
        pass
    else:
        raise TypeError(f"Unknown format analysis: {type(analysis).__name__}")
    return indicators


def summarize(
    magic: Optional[MagicByteAnalysis],
    analysis: Optional[FormatSpecificAnalysis],
) -> Summary:
    """
    Build the verdict for one scan.

    Args:
        magic: Signature scan result
        analysis: Format-specific result; may be missing or failed

    Returns:
        Summary with indicators in rule order and the tier's recommendations
    """
    indicators: List[str] = []
    if magic is not None:
        if magic.has_suspicious_data:
            indicators.append(SUSPICIOUS_STRUCTURE)
        if magic.has_multiple_formats:
            indicators.append(MULTIPLE_FORMATS)
    indicators.extend(format_indicators(analysis))

    level = confidence_for(len(indicators))
    recommendations: Tuple[str, ...] = RECOMMENDATIONS[level]
    if analysis is None or analysis.status is AnalysisStatus.FAILED:
        recommendations = recommendations + (INCOMPLETE_ANALYSIS,)

    return Summary(
        steganography_detected=len(indicators) >= 1,
        confidence_level=level,
        threat_indicators=tuple(indicators),
        recommendations=recommendations,
    )
