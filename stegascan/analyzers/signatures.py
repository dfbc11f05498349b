"""
Format signature table.

Each entry is plain data; ``Signature`` knows how to find itself in a buffer
and how far the file it starts extends. Supporting a new format means adding
an entry here, nothing else.
"""
import struct
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from stegascan.models import SignatureCategory

JPEG_EOI = b"\xff\xd9"
_JPEG_STANDALONE_MARKERS = set(range(0xD0, 0xD8)) | {0x01, 0xD8}


@dataclass(frozen=True)
class Signature:
    """
    A byte signature identifying one file format.

    Attributes:
        description: Human readable format name, reported as-is
        category: Format category
        pattern: Bytes that must appear
        header_offset: Distance from the file start to the pattern
        subtype: (offset from file start, bytes) that must also match
        end_marker: Bytes that terminate a file of this format
        end_marker_tail: Bytes following the end marker that still belong to the file
        length_field: (offset, struct format, bias) of a declared file length
        end_marker_last: Whether the last end marker occurrence ends the file
        extensions: Extensions files of this format normally carry
        embedded: Whether the signature is trusted anywhere but offset 0
        repeats_internally: Whether files of this format repeat the signature
            throughout their own body (stream page and pack headers)
    """

    description: str
    category: SignatureCategory
    pattern: bytes
    header_offset: int = 0
    subtype: Optional[Tuple[int, bytes]] = None
    end_marker: Optional[bytes] = None
    end_marker_tail: int = 0
    length_field: Optional[Tuple[int, str, int]] = None
    end_marker_last: bool = False
    extensions: Tuple[str, ...] = ()
    embedded: bool = True
    repeats_internally: bool = False

    @property
    def specificity(self) -> int:
        return len(self.pattern) + (len(self.subtype[1]) if self.subtype else 0)

    @property
    def has_end(self) -> bool:
        return self.end_marker is not None or self.length_field is not None

    def matches_at(self, data: bytes, start: int) -> bool:
        """Check whether a file of this format starts at ``start``."""
        pos = start + self.header_offset
        if start < 0 or data[pos:pos + len(self.pattern)] != self.pattern:
            return False
        if self.subtype:
            sub_offset, sub_bytes = self.subtype
            return data[start + sub_offset:start + sub_offset + len(sub_bytes)] == sub_bytes
        return True

    def find_all(self, data: bytes) -> Iterator[int]:
        """
        Find every file start of this format in the buffer.

        Args:
            data: Buffer to search

        Yields:
            Offsets where a file of this format begins
        """
        pos = 0
        while True:
            pos = data.find(self.pattern, pos)
            if pos == -1:
                return
            start = pos - self.header_offset
            if start >= 0 and self.matches_at(data, start):
                yield start
            pos += len(self.pattern)

    def span_end(self, data: bytes, start: int) -> Optional[int]:
        """
        Locate the end of a file of this format starting at ``start``.

        Args:
            data: Buffer containing the file
            start: Offset the file begins at

        Returns:
            Offset one past the last byte of the file, or None if no end
            marker or usable length field was found
        """
        if self.length_field:
            field_offset, fmt, bias = self.length_field
            size = struct.calcsize(fmt)
            raw = data[start + field_offset:start + field_offset + size]
            if len(raw) < size:
                return None
            end = start + struct.unpack(fmt, raw)[0] + bias
            return end if start < end <= len(data) else None

        if self.end_marker:
            search_from = start + self.header_offset + len(self.pattern)
            if self.end_marker == JPEG_EOI:
                search_from = jpeg_scan_start(data, start)
            if self.end_marker_last:
                pos = data.rfind(self.end_marker, search_from)
            else:
                pos = data.find(self.end_marker, search_from)
            if pos == -1:
                return None
            end = pos + len(self.end_marker) + self.end_marker_tail
            return end if end <= len(data) else None
        return None


def jpeg_segments(data: bytes, start: int = 0) -> Iterator[Tuple[int, int, int]]:
    """
    Walk the marker segments of a JPEG up to its first scan.

    Args:
        data: Buffer containing the JPEG
        start: Offset of the SOI marker

    Yields:
        (marker, segment offset, segment end) for every length-prefixed segment
    """
    pos = start + 2
    while pos + 4 <= len(data):
        if data[pos] != 0xFF:
            return
        marker = data[pos + 1]
        if marker == 0xFF:  # fill byte
            pos += 1
            continue
        if marker in _JPEG_STANDALONE_MARKERS:
            pos += 2
            continue
        length = struct.unpack(">H", data[pos + 2:pos + 4])[0]
        end = pos + 2 + length
        yield marker, pos, min(end, len(data))
        if marker == 0xDA:  # SOS, entropy-coded data follows
            return
        pos = end


def jpeg_scan_start(data: bytes, start: int) -> int:
    """Offset of the entropy-coded data, or just past SOI if no scan is found."""
    scan_start = start + 2
    for marker, _, end in jpeg_segments(data, start):
        scan_start = end
    return scan_start


_RIFF_LENGTH = (4, "<I", 8)
_ZIP_EOCD = b"PK\x05\x06"

SIGNATURES: Tuple[Signature, ...] = (
    # Images
    Signature("PNG image", SignatureCategory.IMAGE, b"\x89PNG\r\n\x1a\n",
              end_marker=b"IEND\xaeB`\x82", extensions=("png",)),
    Signature("JPEG image (JFIF)", SignatureCategory.IMAGE, b"\xff\xd8\xff\xe0",
              end_marker=JPEG_EOI, extensions=("jpg", "jpeg", "jfif")),
    Signature("JPEG image (Exif)", SignatureCategory.IMAGE, b"\xff\xd8\xff\xe1",
              end_marker=JPEG_EOI, extensions=("jpg", "jpeg")),
    Signature("JPEG image", SignatureCategory.IMAGE, b"\xff\xd8\xff\xdb",
              end_marker=JPEG_EOI, extensions=("jpg", "jpeg")),
    Signature("JPEG image", SignatureCategory.IMAGE, b"\xff\xd8\xff",
              end_marker=JPEG_EOI, extensions=("jpg", "jpeg"), embedded=False),
    Signature("GIF87a image", SignatureCategory.IMAGE, b"GIF87a", extensions=("gif",)),
    Signature("GIF89a image", SignatureCategory.IMAGE, b"GIF89a", extensions=("gif",)),
    Signature("BMP image", SignatureCategory.IMAGE, b"BM",
              length_field=(2, "<I", 0), extensions=("bmp", "dib"), embedded=False),
    Signature("TIFF image (little endian)", SignatureCategory.IMAGE, b"II*\x00",
              extensions=("tif", "tiff")),
    Signature("TIFF image (big endian)", SignatureCategory.IMAGE, b"MM\x00*",
              extensions=("tif", "tiff")),
    Signature("WebP image (RIFF)", SignatureCategory.IMAGE, b"RIFF", subtype=(8, b"WEBP"),
              length_field=_RIFF_LENGTH, extensions=("webp",)),
    Signature("ICO image", SignatureCategory.IMAGE, b"\x00\x00\x01\x00",
              extensions=("ico",), embedded=False),

    # Audio
    Signature("WAV audio (RIFF/WAVE)", SignatureCategory.AUDIO, b"RIFF", subtype=(8, b"WAVE"),
              length_field=_RIFF_LENGTH, extensions=("wav", "wave")),
    Signature("AIFF audio", SignatureCategory.AUDIO, b"FORM", subtype=(8, b"AIFF"),
              length_field=(4, ">I", 8), extensions=("aif", "aiff")),
    Signature("MP3 audio (ID3 tag)", SignatureCategory.AUDIO, b"ID3",
              extensions=("mp3",)),
    Signature("MP3 audio", SignatureCategory.AUDIO, b"\xff\xfb", extensions=("mp3",), embedded=False),
    Signature("MP3 audio", SignatureCategory.AUDIO, b"\xff\xf3", extensions=("mp3",), embedded=False),
    Signature("MP3 audio", SignatureCategory.AUDIO, b"\xff\xf2", extensions=("mp3",), embedded=False),
    Signature("FLAC audio", SignatureCategory.AUDIO, b"fLaC", extensions=("flac",)),
    Signature("OGG audio", SignatureCategory.AUDIO, b"OggS", extensions=("ogg", "oga", "opus"),
              repeats_internally=True),
    Signature("M4A audio", SignatureCategory.AUDIO, b"ftyp", header_offset=4, subtype=(8, b"M4A "),
              extensions=("m4a",)),

    # Video
    Signature("AVI video (RIFF)", SignatureCategory.VIDEO, b"RIFF", subtype=(8, b"AVI "),
              length_field=_RIFF_LENGTH, extensions=("avi",)),
    Signature("MP4 video", SignatureCategory.VIDEO, b"ftyp", header_offset=4,
              extensions=("mp4", "m4v")),
    Signature("QuickTime video", SignatureCategory.VIDEO, b"ftyp", header_offset=4,
              subtype=(8, b"qt  "), extensions=("mov",)),
    Signature("3GP video", SignatureCategory.VIDEO, b"ftyp", header_offset=4,
              subtype=(8, b"3gp"), extensions=("3gp",)),
    Signature("Matroska/WebM video", SignatureCategory.VIDEO, b"\x1a\x45\xdf\xa3",
              extensions=("mkv", "webm")),
    Signature("MPEG video", SignatureCategory.VIDEO, b"\x00\x00\x01\xba", extensions=("mpg", "mpeg"),
              repeats_internally=True),
    Signature("MPEG video", SignatureCategory.VIDEO, b"\x00\x00\x01\xb3", extensions=("mpg", "mpeg"),
              repeats_internally=True),
    Signature("FLV video", SignatureCategory.VIDEO, b"FLV\x01", extensions=("flv",)),
    Signature("ASF/WMV media", SignatureCategory.VIDEO, b"\x30\x26\xb2\x75\x8e\x66\xcf\x11",
              extensions=("wmv", "asf", "wma")),

    # Documents
    Signature("PDF document", SignatureCategory.TEXT, b"%PDF-",
              end_marker=b"%%EOF", end_marker_last=True, extensions=("pdf",)),
    Signature("RTF document", SignatureCategory.TEXT, b"{\\rtf", extensions=("rtf",)),
    Signature("XML document", SignatureCategory.TEXT, b"<?xml", extensions=("xml", "svg")),
    Signature("HTML document", SignatureCategory.TEXT, b"<!DOCTYPE html", extensions=("html", "htm")),
    Signature("HTML document", SignatureCategory.TEXT, b"<html", extensions=("html", "htm")),
    Signature("Microsoft Office document (OLE2)", SignatureCategory.TEXT,
              b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", extensions=("doc", "xls", "ppt", "msg", "msi")),

    # Archives
    Signature("ZIP archive", SignatureCategory.ARCHIVE, b"PK\x03\x04",
              end_marker=_ZIP_EOCD, end_marker_tail=18, end_marker_last=True,
              extensions=("zip", "docx", "xlsx", "pptx", "odt", "jar", "apk", "epub")),
    Signature("RAR archive", SignatureCategory.ARCHIVE, b"Rar!\x1a\x07", extensions=("rar",)),
    Signature("7-Zip archive", SignatureCategory.ARCHIVE, b"7z\xbc\xaf\x27\x1c", extensions=("7z",)),
    Signature("GZIP archive", SignatureCategory.ARCHIVE, b"\x1f\x8b\x08", extensions=("gz", "tgz")),
    Signature("BZIP2 archive", SignatureCategory.ARCHIVE, b"BZh", extensions=("bz2",)),
    Signature("XZ archive", SignatureCategory.ARCHIVE, b"\xfd7zXZ\x00", extensions=("xz",)),
    Signature("TAR archive", SignatureCategory.ARCHIVE, b"ustar", header_offset=257, extensions=("tar",)),

    # Executables
    Signature("ELF executable", SignatureCategory.EXECUTABLE, b"\x7fELF", extensions=("elf", "so", "bin")),
    Signature("Windows PE executable", SignatureCategory.EXECUTABLE, b"MZ",
              extensions=("exe", "dll", "sys"), embedded=False),
    Signature("Mach-O executable", SignatureCategory.EXECUTABLE, b"\xcf\xfa\xed\xfe", extensions=("dylib",)),
    Signature("Mach-O executable", SignatureCategory.EXECUTABLE, b"\xce\xfa\xed\xfe", extensions=("dylib",)),
    Signature("Java class file", SignatureCategory.EXECUTABLE, b"\xca\xfe\xba\xbe", extensions=("class",)),

    # Other
    Signature("SQLite database", SignatureCategory.OTHER, b"SQLite format 3\x00",
              extensions=("sqlite", "db")),
)

# Extensions with no reliable signature of their own
_EXTRA_EXTENSIONS: Dict[str, SignatureCategory] = {
    "aac": SignatureCategory.AUDIO,
    "txt": SignatureCategory.TEXT,
    "csv": SignatureCategory.TEXT,
    "json": SignatureCategory.TEXT,
    "md": SignatureCategory.TEXT,
    "log": SignatureCategory.TEXT,
}


def _build_extension_map() -> Dict[str, SignatureCategory]:
    mapping = dict(_EXTRA_EXTENSIONS)
    for signature in SIGNATURES:
        for extension in signature.extensions:
            mapping.setdefault(extension, signature.category)
    return mapping


EXTENSION_CATEGORIES: Dict[str, SignatureCategory] = _build_extension_map()
KNOWN_SIGNATURE_EXTENSIONS = frozenset(ext for sig in SIGNATURES for ext in sig.extensions)


def best_match_at(data: bytes, offset: int = 0) -> Optional[Signature]:
    """
    Most specific signature starting at ``offset``.

    Args:
        data: Buffer to inspect
        offset: File start to test

    Returns:
        The matching signature with the highest specificity, or None
    """
    best = None
    for signature in SIGNATURES:
        if signature.matches_at(data, offset):
            if best is None or signature.specificity > best.specificity:
                best = signature
    return best


def normalize_extension(filename: Optional[str]) -> Optional[str]:
    """Lower-case extension of a filename without the dot, or None."""
    if not filename:
        return None
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name.strip("."):
        return None
    extension = name.rsplit(".", 1)[-1].lower()
    return extension or None
