"""
ID3 tag analysis for audio files.

Parses ID3v2.2/2.3/2.4 frames and the ID3v1 trailer directly from the byte
buffer and flags frames whose size or content is unusual for their purpose.
"""
import struct
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Tuple

from stegascan.analyzers.heuristics import looks_like_base64
from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.models import Id3Analysis

ID3V1_SIZE = 128

# ID3v2.2 uses three-character frame ids
_V22_FRAME_IDS = {
    "TT2": "TIT2",
    "TP1": "TPE1",
    "TAL": "TALB",
    "TYE": "TYER",
    "COM": "COMM",
    "ULT": "USLT",
    "PIC": "APIC",
    "TXX": "TXXX",
}
_TEXT_FIELDS = {"TIT2": "title", "TPE1": "artist", "TALB": "album", "TYER": "year", "TDRC": "year"}
_TEXT_ENCODINGS = {0: "latin-1", 1: "utf-16", 2: "utf-16-be", 3: "utf-8"}


@dataclass(frozen=True)
class Id3Frame:
    frame_id: str
    body: bytes
    declared_size: int


def _syncsafe(raw: bytes) -> int:
    """Decode a 28-bit syncsafe integer (7 bits per byte)."""
    value = 0
    for byte in raw:
        value = (value << 7) | (byte & 0x7F)
    return value


def id3v2_tag_end(data: bytes) -> Optional[int]:
    """
    Offset one past the ID3v2 tag at the start of a buffer.

    Args:
        data: Raw file bytes

    Returns:
        End of the tag including any footer, clamped to the buffer, or None
        if the buffer does not start with an ID3v2 tag
    """
    if len(data) < 10 or data[:3] != b"ID3" or data[3] not in (2, 3, 4):
        return None
    end = 10 + _syncsafe(data[6:10])
    if data[3] == 4 and data[5] & 0x10:
        end += 10
    return min(end, len(data))


def _split_terminated(data: bytes, encoding: int) -> Tuple[bytes, bytes]:
    """
    Split a null-terminated string off the front of a frame body.

    Args:
        data: Frame body bytes
        encoding: ID3 text encoding byte

    Returns:
        Tuple of (string bytes, remaining bytes)
    """
    if encoding in (1, 2):
        pos = 0
        while True:
            pos = data.find(b"\x00\x00", pos)
            if pos == -1:
                return data, b""
            if pos % 2 == 0:
                return data[:pos], data[pos + 2:]
            pos += 1
    pos = data.find(b"\x00")
    if pos == -1:
        return data, b""
    return data[:pos], data[pos + 1:]


def _decode_text(raw: bytes, encoding: int) -> str:
    codec = _TEXT_ENCODINGS.get(encoding, "latin-1")
    return raw.decode(codec, errors="replace").strip("\x00").strip()


def parse_id3v2(data: bytes) -> Tuple[Optional[str], List[Id3Frame]]:
    """
    Parse the ID3v2 tag at the start of a buffer.

    Parsing stops at padding or at the first damaged frame; frames read up to
    that point are returned.

    Args:
        data: Raw file bytes

    Returns:
        Tuple of (version string such as "2.3", frames), (None, []) if no tag
    """
    if id3v2_tag_end(data) is None:
        return None, []

    major, flags = data[3], data[5]
    tag_end = min(10 + _syncsafe(data[6:10]), len(data))
    body = data[10:tag_end]

    if flags & 0x80 and major < 4:
        body = body.replace(b"\xff\x00", b"\xff")

    pos = 0
    if flags & 0x40 and major >= 3 and len(body) >= 4:
        if major == 4:
            pos = _syncsafe(body[:4])
        else:
            pos = 4 + struct.unpack(">I", body[:4])[0]

    header_size = 6 if major == 2 else 10
    frames: List[Id3Frame] = []
    while pos + header_size <= len(body):
        header = body[pos:pos + header_size]
        if header[0] == 0:  # padding
            break
        if major == 2:
            frame_id = header[:3].decode("latin-1")
            size = int.from_bytes(header[3:6], "big")
        else:
            frame_id = header[:4].decode("latin-1")
            size = _syncsafe(header[4:8]) if major == 4 else struct.unpack(">I", header[4:8])[0]
        if not all(c.isupper() or c.isdigit() for c in frame_id):
            break

        start = pos + header_size
        frame_body = body[start:start + size]
        frames.append(Id3Frame(_V22_FRAME_IDS.get(frame_id, frame_id), frame_body, size))
        if start + size > len(body):  # truncated tag
            break
        pos = start + size

    return f"2.{major}", frames


def parse_id3v1(data: bytes) -> Optional[dict]:
    """
    Parse an ID3v1 trailer.

    Args:
        data: Raw file bytes

    Returns:
        Dict with title, artist, album, year and comment, or None
    """
    if len(data) < ID3V1_SIZE:
        return None
    tag = data[-ID3V1_SIZE:]
    if tag[:3] != b"TAG":
        return None

    def field(raw: bytes) -> Optional[str]:
        text = raw.split(b"\x00", 1)[0].decode("latin-1").strip()
        return text or None

    return {
        "title": field(tag[3:33]),
        "artist": field(tag[33:63]),
        "album": field(tag[63:93]),
        "year": field(tag[93:97]),
        "comment": field(tag[97:127]),
    }


class Id3Analyzer(BaseAnalyzer):
    """Inventory ID3 frames and flag the ones that could carry a payload."""

    name: str = "id3"
    description: str = "ID3 tag frame analysis"
    config_section = "ID3"

    def analyze(self, data: bytes) -> Id3Analysis:
        """
        Analyze the ID3 tags of an audio buffer.

        Args:
            data: Raw audio file bytes

        Returns:
            Id3Analysis, zero-field when the file carries no tag
        """
        version, frames = parse_id3v2(data)
        v1 = parse_id3v1(data)

        fields = {"title": None, "artist": None, "album": None, "year": None}
        counts: Counter = Counter()
        suspicious: List[str] = []

        for frame in frames:
            try:
                self._inspect_frame(frame, fields, suspicious, counts)
            except (UnicodeDecodeError, IndexError) as e:
                self.logger.warning(f"Skipping damaged {frame.frame_id} frame: {e}")

        if v1:
            for key in fields:
                fields[key] = fields[key] or v1[key]
            if v1["comment"]:
                counts["comments"] += 1

        versions = []
        if version:
            versions.append(f"ID3v{version}")
        if v1:
            versions.append("ID3v1")

        if suspicious:
            self.logger.info(f"Suspicious ID3 frames: {', '.join(suspicious)}")

        return Id3Analysis(
            tag_version=" + ".join(versions) or None,
            title=fields["title"],
            artist=fields["artist"],
            album=fields["album"],
            year=fields["year"],
            comments_count=counts["comments"],
            pictures_count=counts["pictures"],
            private_frames_count=counts["private"],
            frames_found=len(frames) + (1 if v1 else 0),
            suspicious_frames=tuple(suspicious),
        )

    def _inspect_frame(
        self,
        frame: Id3Frame,
        fields: dict,
        suspicious: List[str],
        counts: Counter,
    ) -> None:
        """
        Record one frame's fields and anomalies.

        Args:
            frame: Parsed frame
            fields: Basic text fields, updated in place
            suspicious: Findings, appended in place
            counts: Running comment, picture and private frame counts
        """
        body = frame.body
        frame_id = frame.frame_id

        if frame_id in _TEXT_FIELDS and body:
            key = _TEXT_FIELDS[frame_id]
            fields[key] = fields[key] or _decode_text(body[1:], body[0]) or None

        elif frame_id == "COMM" and body:
            counts["comments"] += 1
            _, text = _split_terminated(body[4:], body[0])
            size = len(text)
            if size > self.config["comment_size_threshold"]:
                suspicious.append(f"Large comment field: {size} bytes")
            if looks_like_base64(_decode_text(text, body[0]), self.config["min_encoded_length"]):
                suspicious.append("Comment contains potential encoded data")

        elif frame_id == "TXXX" and body:
            description, value = _split_terminated(body[1:], body[0])
            label = _decode_text(description, body[0]) or "unnamed"
            if len(value) > self.config["comment_size_threshold"]:
                suspicious.append(f"Large user text field ({label}): {len(value)} bytes")
            if looks_like_base64(_decode_text(value, body[0]), self.config["min_encoded_length"]):
                suspicious.append(f"User text field ({label}) contains potential encoded data")

        elif frame_id == "USLT" and body:
            _, lyrics = _split_terminated(body[4:], body[0])
            if len(lyrics) > self.config["lyrics_size_threshold"]:
                suspicious.append(f"Unusually large lyrics: {len(lyrics)} bytes")

        elif frame_id == "APIC":
            counts["pictures"] += 1
            if frame.declared_size > self.config["picture_size_threshold"]:
                suspicious.append(f"Large embedded picture: {frame.declared_size / 1_000_000:.1f} MB")

        elif frame_id == "PRIV":
            counts["private"] += 1
            if frame.declared_size > self.config["private_frame_threshold"]:
                suspicious.append(f"Large private frame: {frame.declared_size} bytes")
