"""
Detection engine: one stateless scan over an in-memory file.

    raw bytes -> type classification -> signature scan -> format analysis -> summary

The signature scan always runs regardless of the detected type. The
format-specific layer is chosen by the detected type. Both see the same
bytes and only meet again in the summary.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from stegascan import config
from stegascan.analyzers import (
    AudioAnalyzer,
    ImageAnalyzer,
    MagicBytesAnalyzer,
    TextAnalyzer,
    TypeClassifier,
    VideoAnalyzer,
)
from stegascan.core.errors import AnalysisError, FileTooLargeError, InputError
from stegascan.models import (
    AnalysisStatus,
    AudioAnalysis,
    ExifMetadata,
    FileInfo,
    FormatSpecificAnalysis,
    ImageAnalysis,
    MediaType,
    ScanResult,
    TextAnalysis,
    VideoAnalysis,
)
from stegascan.summary import summarize

logger = logging.getLogger("stegascan.engine")

Overrides = Optional[Dict[str, Dict[str, Any]]]


def validate_sample_rate(value: Any) -> int:
    """
    Validate a video sampling stride.

    Args:
        value: Integer or numeric string

    Returns:
        The stride as an int

    Raises:
        InputError: If the value is not an integer of at least 1
    """
    if isinstance(value, bool):
        raise InputError(f"Invalid video_sample_rate: {value!r}")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InputError(f"Invalid video_sample_rate: {value!r}") from None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise InputError(f"Invalid video_sample_rate: {value!r}")
    if value < 1:
        raise InputError(f"video_sample_rate must be at least 1, got {value}")
    return value


def resolve_sample_rate(value: Any, overrides: Overrides = None) -> int:
    """Validate a stride, taking the configured default when it is None."""
    if value is None:
        value = config.section("VIDEO", (overrides or {}).get("VIDEO"))["default_sample_rate"]
    return validate_sample_rate(value)


def scan(
    file_bytes: bytes,
    filename: Optional[str] = None,
    video_sample_rate: Any = None,
    overrides: Overrides = None,
) -> ScanResult:
    """
    Scan one file for signs of steganography.

    Args:
        file_bytes: Complete file contents; an empty buffer is valid
        filename: Original filename, informational only
        video_sample_rate: Analyze every Nth video frame (default from config)
        overrides: Per-section threshold overrides, e.g. {"LSB": {"entropy_threshold": 0.9}}

    Returns:
        ScanResult. Identical bytes and settings give identical results apart
        from the timestamp

    Raises:
        InputError: Missing buffer, oversized buffer or invalid sample rate
        AnalysisError: The engine could not produce any usable result
    """
    overrides = overrides or {}
    stride = resolve_sample_rate(video_sample_rate, overrides)

    if file_bytes is None:
        raise InputError("No file provided")
    data = bytes(file_bytes)
    max_size = config.section("SERVICE", overrides.get("SERVICE"))["max_file_size"]
    if len(data) > max_size:
        raise FileTooLargeError(len(data), max_size)

    file_info = TypeClassifier().analyze(data, filename)
    logger.info(f"Scanning {filename or '<buffer>'}: {file_info.size_bytes} bytes, {file_info.detected_type.value}")

    try:
        magic = MagicBytesAnalyzer(overrides.get("MAGIC_BYTES")).analyze(data, file_info.extension)
    except Exception as e:
        logger.exception("Signature scan failed")
        raise AnalysisError(f"Signature scan failed: {e}") from e

    analysis = run_format_analysis(data, file_info, stride, overrides)
    summary = summarize(magic, analysis)
    logger.info(
        f"Scan of {filename or '<buffer>'} complete: detected={summary.steganography_detected}, "
        f"confidence={summary.confidence_level.value}"
    )

    return ScanResult(
        file_info=file_info,
        magic_bytes_analysis=magic,
        format_specific_analysis=analysis,
        summary=summary,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


def run_format_analysis(
    data: bytes,
    file_info: FileInfo,
    stride: int,
    overrides: Overrides = None,
) -> FormatSpecificAnalysis:
    """
    Run the analyzer selected by the detected media type.

    Unexpected errors inside an analyzer are contained here: the layer is
    reported as failed and the rest of the scan goes on.

    Args:
        data: Raw file bytes
        file_info: Classification result
        stride: Video sampling stride
        overrides: Per-section threshold overrides

    Returns:
        The matching FormatSpecificAnalysis variant
    """
    overrides = overrides or {}
    detected = file_info.detected_type
    try:
        if detected is MediaType.IMAGE:
            return ImageAnalyzer(overrides).analyze(data)
        if detected is MediaType.AUDIO:
            return AudioAnalyzer(overrides).analyze(data)
        if detected is MediaType.VIDEO:
            return VideoAnalyzer(overrides.get("VIDEO"), overrides.get("LSB")).analyze(
                data, file_info.extension, stride
            )
        return TextAnalyzer().analyze(data, file_info.extension)
    except Exception:
        logger.exception(f"{detected.value} analysis failed unexpectedly")
        return failed_analysis(detected, f"Internal error during {detected.value.lower()} analysis", stride)


def failed_analysis(detected: MediaType, message: str, stride: int) -> FormatSpecificAnalysis:
    """Placeholder variant for a layer that could not run at all."""
    errors = (message,)
    if detected is MediaType.IMAGE:
        return ImageAnalysis(ExifMetadata(), None, status=AnalysisStatus.FAILED, errors=errors)
    if detected is MediaType.AUDIO:
        return AudioAnalysis(0, None, None, None, status=AnalysisStatus.FAILED, errors=errors)
    if detected is MediaType.VIDEO:
        return VideoAnalysis(0, 0, sample_rate=stride, status=AnalysisStatus.FAILED, errors=errors)
    return TextAnalysis("TEXT", 0, 0, 0, 0, status=AnalysisStatus.FAILED, errors=errors)
