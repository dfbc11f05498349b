"""
Result models produced by a scan.

Every model is an immutable dataclass created fresh for one scan. ``to_dict``
produces the stable field names of the JSON result document.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from stegascan.core.serialization import make_json_serializable


class MediaType(str, Enum):
    """Dominant media category of a scanned file."""

    IMAGE = "Image"
    AUDIO = "Audio"
    VIDEO = "Video"
    TEXT = "Text"


class SignatureCategory(str, Enum):
    """Category of a format recognized by its byte signature."""

    IMAGE = "Image"
    AUDIO = "Audio"
    VIDEO = "Video"
    TEXT = "Text"
    ARCHIVE = "Archive"
    EXECUTABLE = "Executable"
    OTHER = "Other"

    @property
    def media_type(self) -> MediaType:
        """Media type a file of this category is analyzed as."""
        if self in (SignatureCategory.IMAGE, SignatureCategory.AUDIO, SignatureCategory.VIDEO):
            return MediaType(self.value)
        return MediaType.TEXT


class MatchConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def is_reportable(self) -> bool:
        return self is not MatchConfidence.LOW


class ConfidenceLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnalysisStatus(str, Enum):
    """Outcome of a format-specific analysis layer."""

    COMPLETED = "completed"
    PARTIAL = "partial"  # primary stream decoded, a sub-analysis failed
    FAILED = "failed"  # primary stream could not be decoded


@dataclass(frozen=True)
class FileInfo:
    path: Optional[str]
    size_bytes: int
    detected_type: MediaType
    extension: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "size_bytes": self.size_bytes,
            "detected_type": self.detected_type.value,
            "extension": self.extension,
        }


@dataclass(frozen=True)
class SignatureMatch:
    """A format signature found somewhere in the scanned buffer."""

    offset: int
    description: str
    category: SignatureCategory
    confidence: MatchConfidence
    specificity: int = 0

    @property
    def offset_hex(self) -> str:
        return f"0x{self.offset:X}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "offset": self.offset,
            "offset_hex": self.offset_hex,
            "description": self.description,
            "file_type": self.category.value,
            "confidence": self.confidence.value,
        }


@dataclass(frozen=True)
class FormatSummary:
    images: int = 0
    audio: int = 0
    video: int = 0
    text_documents: int = 0
    archives: int = 0
    executables: int = 0
    other: int = 0

    _FIELDS = {
        SignatureCategory.IMAGE: "images",
        SignatureCategory.AUDIO: "audio",
        SignatureCategory.VIDEO: "video",
        SignatureCategory.TEXT: "text_documents",
        SignatureCategory.ARCHIVE: "archives",
        SignatureCategory.EXECUTABLE: "executables",
        SignatureCategory.OTHER: "other",
    }

    @classmethod
    def from_matches(cls, matches) -> "FormatSummary":
        """
        Count matches per category.

        Args:
            matches: Iterable of SignatureMatch

        Returns:
            FormatSummary with one counter per category
        """
        counts = {name: 0 for name in cls._FIELDS.values()}
        for match in matches:
            counts[cls._FIELDS[match.category]] += 1
        return cls(**counts)

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self._FIELDS.values()}


@dataclass(frozen=True)
class MagicByteAnalysis:
    primary_format: str
    expected_format: Optional[str]
    total_signatures_found: int
    format_summary: FormatSummary
    embedded_files: Tuple[SignatureMatch, ...] = ()
    suspicious_findings: Tuple[str, ...] = ()
    has_multiple_formats: bool = False
    has_suspicious_data: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_format": self.primary_format,
            "expected_format": self.expected_format,
            "has_multiple_formats": self.has_multiple_formats,
            "has_suspicious_data": self.has_suspicious_data,
            "total_signatures_found": self.total_signatures_found,
            "format_summary": self.format_summary.to_dict(),
            "embedded_files": [match.to_dict() for match in self.embedded_files],
            "suspicious_findings": list(self.suspicious_findings),
        }


@dataclass(frozen=True)
class ChannelStatistics:
    channel_name: str
    chi_square_score: float
    chi_square_statistic: float
    entropy_score: float
    is_suspicious: bool

    def to_dict(self) -> Dict[str, Any]:
        return make_json_serializable({
            "channel_name": self.channel_name,
            "chi_square_score": self.chi_square_score,
            "chi_square_statistic": self.chi_square_statistic,
            "entropy_score": self.entropy_score,
            "is_suspicious": self.is_suspicious,
        })


@dataclass(frozen=True)
class LsbAnalysis:
    is_suspicious: bool
    channels: Tuple[ChannelStatistics, ...]
    pixel_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_suspicious": self.is_suspicious,
            "pixel_count": self.pixel_count,
            "channels": [channel.to_dict() for channel in self.channels],
        }


@dataclass(frozen=True)
class ExifMetadata:
    fields_found: int = 0
    has_thumbnail: bool = False
    thumbnail_size_bytes: int = 0
    comment_fields: Tuple[str, ...] = ()
    suspicious_fields: Tuple[str, ...] = ()
    metadata: Tuple[Tuple[str, str], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields_found": self.fields_found,
            "has_thumbnail": self.has_thumbnail,
            "thumbnail_size_bytes": self.thumbnail_size_bytes,
            "comment_fields": list(self.comment_fields),
            "suspicious_fields": list(self.suspicious_fields),
            "metadata": [{"key": key, "value": value} for key, value in self.metadata],
        }


@dataclass(frozen=True)
class ImageAnalysis:
    exif_metadata: ExifMetadata
    lsb_analysis: Optional[LsbAnalysis]
    width: Optional[int] = None
    height: Optional[int] = None
    status: AnalysisStatus = AnalysisStatus.COMPLETED
    errors: Tuple[str, ...] = ()

    type_name = MediaType.IMAGE

    def to_dict(self) -> Dict[str, Any]:
        dimensions = None
        if self.width is not None and self.height is not None:
            dimensions = {"width": self.width, "height": self.height}
        return {
            "type": self.type_name.value,
            "status": self.status.value,
            "errors": list(self.errors),
            "exif_metadata": self.exif_metadata.to_dict(),
            "lsb_analysis": self.lsb_analysis.to_dict() if self.lsb_analysis else None,
            "dimensions": dimensions,
        }


@dataclass(frozen=True)
class Id3Analysis:
    tag_version: Optional[str] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    year: Optional[str] = None
    comments_count: int = 0
    pictures_count: int = 0
    private_frames_count: int = 0
    frames_found: int = 0
    suspicious_frames: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag_version": self.tag_version,
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "year": self.year,
            "comments_count": self.comments_count,
            "pictures_count": self.pictures_count,
            "private_frames_count": self.private_frames_count,
            "frames_found": self.frames_found,
            "suspicious_frames": list(self.suspicious_frames),
        }


@dataclass(frozen=True)
class SpectrogramAnalysis:
    high_frequency_energy: float
    hidden_message_detected: bool
    suspicious_patterns: Tuple[str, ...] = ()
    windows_analyzed: int = 0
    longest_elevated_run: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return make_json_serializable({
            "high_frequency_energy": self.high_frequency_energy,
            "hidden_message_detected": self.hidden_message_detected,
            "suspicious_patterns": list(self.suspicious_patterns),
            "windows_analyzed": self.windows_analyzed,
            "longest_elevated_run": self.longest_elevated_run,
        })


@dataclass(frozen=True)
class AudioAnalysis:
    sample_count: int
    sample_rate: Optional[int]
    id3_analysis: Optional[Id3Analysis]
    spectrogram_analysis: Optional[SpectrogramAnalysis]
    status: AnalysisStatus = AnalysisStatus.COMPLETED
    errors: Tuple[str, ...] = ()

    type_name = MediaType.AUDIO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type_name.value,
            "status": self.status.value,
            "errors": list(self.errors),
            "sample_count": self.sample_count,
            "sample_rate": self.sample_rate,
            "id3_analysis": self.id3_analysis.to_dict() if self.id3_analysis else None,
            "spectrogram_analysis": (
                self.spectrogram_analysis.to_dict() if self.spectrogram_analysis else None
            ),
        }


@dataclass(frozen=True)
class VideoAnalysis:
    frames_processed: int
    errors_encountered: int
    suspicious_frames: Tuple[int, ...] = ()
    frames_decoded: int = 0
    sample_rate: int = 30
    status: AnalysisStatus = AnalysisStatus.COMPLETED
    errors: Tuple[str, ...] = ()

    type_name = MediaType.VIDEO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type_name.value,
            "status": self.status.value,
            "errors": list(self.errors),
            "frames_processed": self.frames_processed,
            "errors_encountered": self.errors_encountered,
            "suspicious_frames": list(self.suspicious_frames),
            "frames_decoded": self.frames_decoded,
            "sample_rate": self.sample_rate,
        }


@dataclass(frozen=True)
class TextAnalysis:
    file_type: str
    line_count: int
    word_count: int
    character_count: int
    size_bytes: int
    status: AnalysisStatus = AnalysisStatus.COMPLETED
    errors: Tuple[str, ...] = ()

    type_name = MediaType.TEXT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type_name.value,
            "status": self.status.value,
            "errors": list(self.errors),
            "file_type": self.file_type,
            "line_count": self.line_count,
            "word_count": self.word_count,
            "character_count": self.character_count,
            "size_bytes": self.size_bytes,
        }


FormatSpecificAnalysis = Union[ImageAnalysis, AudioAnalysis, VideoAnalysis, TextAnalysis]


@dataclass(frozen=True)
class Summary:
    steganography_detected: bool
    confidence_level: ConfidenceLevel
    threat_indicators: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steganography_detected": self.steganography_detected,
            "confidence_level": self.confidence_level.value,
            "threat_indicators": list(self.threat_indicators),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class ScanResult:
    """Complete outcome of scanning one file."""

    file_info: FileInfo
    magic_bytes_analysis: MagicByteAnalysis
    format_specific_analysis: Optional[FormatSpecificAnalysis]
    summary: Summary
    timestamp: str = field(default="")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_info": self.file_info.to_dict(),
            "magic_bytes_analysis": self.magic_bytes_analysis.to_dict(),
            "format_specific_analysis": (
                self.format_specific_analysis.to_dict() if self.format_specific_analysis else None
            ),
            "summary": self.summary.to_dict(),
            "timestamp": self.timestamp,
        }
