"""
Image metadata analysis.
"""
from typing import Any, Dict, List, Optional, Tuple, Union

from PIL import ExifTags, Image

from stegascan.analyzers.heuristics import byte_entropy, looks_like_base64, to_bytes
from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.models import ExifMetadata

# Free-text fields where a payload can be parked without breaking the image
COMMENT_TAGS = {
    "ImageDescription",
    "UserComment",
    "XPComment",
    "XPSubject",
    "XPTitle",
    "XPKeywords",
    "Artist",
    "Copyright",
}
# Fields viewers present as the image comment
DISPLAYED_COMMENT_TAGS = {"ImageDescription", "UserComment", "XPComment"}

_POINTER_TAGS = {0x8769, 0x8825, 0xA005}  # ExifOffset, GPSInfo, InteropOffset
_USER_COMMENT_PREFIXES = (b"ASCII\x00\x00\x00", b"UNICODE\x00", b"JIS\x00\x00\x00\x00\x00", b"\x00" * 8)
_TEXT_INFO_SKIP = {"exif", "icc_profile", "xmp", "photoshop", "adobe", "adobe_transform", "compression"}
# Vendor blobs that are large by nature
_BINARY_TAGS = {"MakerNote", "PrintImageMatching", "InterColorProfile", "ComponentsConfiguration"}
_METADATA_VALUE_LIMIT = 200


class ExifAnalyzer(BaseAnalyzer):
    """
    Inventory image metadata and flag fields that could carry a payload.

    Reads EXIF (IFD0, the Exif sub-IFD and GPS), the IFD1 thumbnail pointer,
    PNG text chunks and JPEG/GIF comments. Malformed metadata never raises;
    whatever could not be read is simply absent from the result.
    """

    name: str = "exif"
    description: str = "Metadata field inventory and anomaly detection"
    config_section = "EXIF"

    def analyze(self, image: Image.Image) -> ExifMetadata:
        """
        Analyze the metadata of an opened image.

        Args:
            image: PIL Image object

        Returns:
            ExifMetadata, zero-field if the image has no readable metadata
        """
        fields: Dict[str, Tuple[Any, bool]] = {}
        has_thumbnail = False
        thumbnail_size = 0

        try:
            exif = image.getexif()
        except Exception as e:
            self.logger.warning(f"Error reading EXIF: {e}")
            exif = None

        if exif:
            self._collect_ifd(exif.items(), ExifTags.TAGS, fields)
            for ifd, names in ((ExifTags.IFD.Exif, ExifTags.TAGS), (ExifTags.IFD.GPSInfo, ExifTags.GPSTAGS)):
                try:
                    self._collect_ifd(exif.get_ifd(ifd).items(), names, fields)
                except Exception as e:
                    self.logger.warning(f"Error reading EXIF {ifd.name} IFD: {e}")
            has_thumbnail, thumbnail_size = self._thumbnail_info(exif)

        for key, value in image.info.items():
            if key in _TEXT_INFO_SKIP:
                continue
            if isinstance(value, str) or (key == "comment" and isinstance(value, bytes)):
                fields[key] = (value, True)

        comment_fields: List[str] = []
        suspicious: List[str] = []
        metadata: List[Tuple[str, str]] = []
        for name, (value, is_text_chunk) in fields.items():
            payload = self._payload(name, value)
            metadata.append((name, self._display_value(value)))

            is_comment = is_text_chunk or name in COMMENT_TAGS
            if is_text_chunk or name in DISPLAYED_COMMENT_TAGS:
                comment_fields.append(name)

            if payload is None or name in _BINARY_TAGS:
                continue
            if len(payload) > self.config["max_field_bytes"]:
                suspicious.append(f"{name}: unusually large ({len(payload)} bytes)")
            if is_comment and self._looks_encoded(payload):
                suspicious.append(f"{name}: potential encoded data")

        if suspicious:
            self.logger.info(f"Suspicious metadata fields: {', '.join(suspicious)}")

        return ExifMetadata(
            fields_found=len(fields),
            has_thumbnail=has_thumbnail,
            thumbnail_size_bytes=thumbnail_size,
            comment_fields=tuple(comment_fields),
            suspicious_fields=tuple(suspicious),
            metadata=tuple(metadata),
        )

    @staticmethod
    def _collect_ifd(items, names: Dict[int, str], fields: Dict[str, Tuple[Any, bool]]) -> None:
        for tag, value in items:
            if tag in _POINTER_TAGS:
                continue
            fields[names.get(tag, f"Tag 0x{tag:04X}")] = (value, False)

    def _thumbnail_info(self, exif: Image.Exif) -> Tuple[bool, int]:
        """
        Read the IFD1 thumbnail pointer.

        Args:
            exif: Parsed EXIF of the image

        Returns:
            Tuple of (thumbnail present, declared thumbnail size in bytes)
        """
        try:
            ifd1 = exif.get_ifd(ExifTags.IFD.IFD1)
        except Exception as e:
            self.logger.warning(f"Error reading EXIF thumbnail IFD: {e}")
            return False, 0
        offset = ifd1.get(0x0201)  # JPEGInterchangeFormat
        length = ifd1.get(0x0202)  # JPEGInterchangeFormatLength
        if offset is None or not length:
            return False, 0
        return True, int(length)

    @staticmethod
    def _payload(name: str, value: Any) -> Optional[bytes]:
        """
        Bytes a metadata field carries, with format framing removed.

        Args:
            name: Field name
            value: Raw field value from Pillow

        Returns:
            Field content as bytes, or None for numeric fields
        """
        if isinstance(value, tuple) and name.startswith("XP") and all(isinstance(v, int) for v in value):
            value = bytes(value)
        if isinstance(value, bytes):
            if name == "UserComment":
                for prefix in _USER_COMMENT_PREFIXES:
                    if value.startswith(prefix):
                        value = value[len(prefix):]
                        break
            elif name.startswith("XP"):
                value = value.decode("utf-16-le", errors="replace").rstrip("\x00")
            return to_bytes(value).rstrip(b"\x00")
        if isinstance(value, str):
            return to_bytes(value).rstrip(b"\x00")
        return None

    def _looks_encoded(self, payload: bytes) -> bool:
        if len(payload) < self.config["min_encoded_length"]:
            return False
        return (
            byte_entropy(payload) > self.config["entropy_threshold"]
            or looks_like_base64(payload, self.config["min_encoded_length"])
        )

    @staticmethod
    def _display_value(value: Union[str, bytes, Any]) -> str:
        if isinstance(value, bytes):
            return f"<{len(value)} bytes>"
        text = str(value)
        if len(text) > _METADATA_VALUE_LIMIT:
            return text[:_METADATA_VALUE_LIMIT] + "..."
        return text
