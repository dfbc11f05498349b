"""
Structural statistics for text, documents and anything else that is not
image, audio or video.

Office documents are measured on their text content: DOCX and ODT files are
ZIP containers holding the text as XML, and RTF wraps it in control words.
"""
import codecs
import io
import re
import zipfile
import zlib
from typing import List, Optional, Tuple
from xml.etree import ElementTree

from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.core.errors import DecodeError
from stegascan.models import AnalysisStatus, TextAnalysis

# Runs of printable bytes at least this long survive binary extraction
MIN_STRING_LENGTH = 4
_PRINTABLE_RUN = re.compile(rb"[\x20-\x7e\t\r\n\x80-\xff]{%d,}" % MIN_STRING_LENGTH)
_CONTROL_BYTES = bytes(b for b in range(32) if b not in (9, 10, 12, 13))

_WORD_NS = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
_ODF_TEXT_NS = "{urn:oasis:names:tc:opendocument:xmlns:text:1.0}"
_ZIP_ERRORS = (
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    ElementTree.ParseError,
    NotImplementedError,
    RuntimeError,
    EOFError,
    OSError,
    zlib.error,
)

_RTF_TOKEN = re.compile(
    r"\\([a-zA-Z]{1,32})(-?\d{1,10})? ?"  # control word
    r"|\\'([0-9a-fA-F]{2})"  # hex escaped byte
    r"|\\([^a-zA-Z])"  # control symbol
    r"|([{}])"
    r"|[\r\n]+"
    r"|(.)",
    re.DOTALL,
)
# Groups whose content is never document text
_RTF_DESTINATIONS = {
    "fonttbl", "colortbl", "stylesheet", "info", "pict", "object", "header",
    "footer", "headerl", "headerr", "footerl", "footerr", "listtable",
    "listoverridetable", "rsidtbl", "generator", "themedata", "datastore",
    "latentstyles", "xmlnstbl", "fldinst",
}


def extract_strings(data: bytes) -> str:
    """
    Pull readable strings out of binary data.

    Args:
        data: Raw bytes

    Returns:
        Printable runs joined by single spaces
    """
    return " ".join(match.decode("latin-1") for match in _PRINTABLE_RUN.findall(data))


def decode_text(data: bytes) -> Tuple[str, bool]:
    """
    Decode a buffer as text, falling back to string extraction.

    Args:
        data: Raw bytes

    Returns:
        Tuple of (text, whether the binary fallback was used)
    """
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        try:
            return data.decode("utf-16"), False
        except UnicodeDecodeError:
            pass
    control = len(data) - len(data.translate(None, _CONTROL_BYTES))
    if b"\x00" in data or control > len(data) * 0.1:
        return extract_strings(data), True
    try:
        return data.decode("utf-8-sig"), False
    except UnicodeDecodeError:
        return data.decode("cp1252", errors="replace"), False


def _paragraph_lines(paragraphs: List[str]) -> str:
    return "".join(f"{paragraph}\n" for paragraph in paragraphs)


def _docx_text(document_xml: bytes) -> str:
    root = ElementTree.fromstring(document_xml)
    return _paragraph_lines([
        "".join(node.text or "" for node in paragraph.iter(f"{_WORD_NS}t"))
        for paragraph in root.iter(f"{_WORD_NS}p")
    ])


def _odt_text(content_xml: bytes) -> str:
    root = ElementTree.fromstring(content_xml)
    return _paragraph_lines([
        "".join(element.itertext())
        for element in root.iter()
        if element.tag in (f"{_ODF_TEXT_NS}p", f"{_ODF_TEXT_NS}h")
    ])


def extract_rtf_text(data: bytes) -> str:
    """
    Strip RTF control words and groups, keeping the document text.

    Args:
        data: Raw RTF bytes

    Returns:
        Plain text with paragraph marks as newlines
    """
    output: List[str] = []
    stack: List[bool] = []
    ignorable = False
    pending_skip = 0  # fallback characters following a \u escape

    for match in _RTF_TOKEN.finditer(data.decode("latin-1")):
        word, argument, hex_code, symbol, brace, char = match.groups()
        if brace == "{":
            stack.append(ignorable)
        elif brace == "}":
            ignorable = stack.pop() if stack else False
        elif word is not None:
            if word in _RTF_DESTINATIONS:
                ignorable = True
            elif ignorable:
                continue
            elif word in ("par", "line", "sect", "page"):
                output.append("\n")
            elif word == "tab":
                output.append("\t")
            elif word == "u" and argument:
                output.append(chr(int(argument) % 0x10000))
                pending_skip = 1
        elif symbol is not None:
            if symbol == "*":
                ignorable = True
            elif ignorable:
                continue
            elif symbol in "\\{}":
                output.append(symbol)
            elif symbol == "~":
                output.append(" ")
        elif hex_code is not None or char is not None:
            if ignorable:
                continue
            if pending_skip:
                pending_skip -= 1
                continue
            if hex_code is not None:
                output.append(bytes([int(hex_code, 16)]).decode("cp1252", errors="replace"))
            else:
                output.append(char)
    return "".join(output)


def extract_document_text(data: bytes) -> Optional[Tuple[str, str]]:
    """
    Extract the text of a DOCX, ODT or RTF document.

    Args:
        data: Raw file bytes

    Returns:
        Tuple of (document kind, text), or None if the buffer is not one of
        the supported document formats

    Raises:
        DecodeError: If the buffer looks like a document but cannot be read
    """
    if data.startswith(b"{\\rtf"):
        return "RTF", extract_rtf_text(data)
    if not data.startswith(b"PK\x03\x04"):
        return None

    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = set(archive.namelist())
            if "word/document.xml" in names:
                return "DOCX", _docx_text(archive.read("word/document.xml"))
            if "content.xml" in names:
                return "ODT", _odt_text(archive.read("content.xml"))
    except _ZIP_ERRORS as e:
        raise DecodeError(f"Could not read document text: {e}") from e
    return None


class TextAnalyzer(BaseAnalyzer):
    """Line, word and character statistics for text-like files."""

    name: str = "text"
    description: str = "Text structure statistics"

    def analyze(self, data: bytes, extension: Optional[str] = None) -> TextAnalysis:
        file_type = extension.upper() if extension else "TEXT"
        status = AnalysisStatus.COMPLETED
        errors: Tuple[str, ...] = ()

        try:
            document = extract_document_text(data)
        except DecodeError as e:
            self.logger.warning(str(e))
            document = None
            status = AnalysisStatus.PARTIAL
            errors = (str(e),)

        if document is not None:
            file_type, text = document
        else:
            text, extracted = decode_text(data)
            if extracted:
                file_type = f"{file_type} (binary extract)"
                self.logger.debug(f"Could not decode {len(data)} bytes as text, extracted readable strings")

        return TextAnalysis(
            file_type=file_type,
            line_count=len(text.splitlines()),
            word_count=len(text.split()),
            character_count=len(text),
            size_bytes=len(data),
            status=status,
            errors=errors,
        )
