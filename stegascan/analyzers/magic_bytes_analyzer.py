"""
Full-buffer signature scan for embedded files and polyglots.

A file whose bytes contain the complete start of a second format (a ZIP after
a JPEG's end marker, a PNG concatenated with a JPEG) is the classic carrier
for appended or embedded payloads. This analyzer finds every known signature
anywhere in the buffer and turns the matches into structural findings.
"""
from typing import Dict, List, Optional, Tuple

from stegascan.analyzers.id3_analyzer import id3v2_tag_end
from stegascan.analyzers.signatures import (
    JPEG_EOI,
    KNOWN_SIGNATURE_EXTENSIONS,
    SIGNATURES,
    Signature,
    jpeg_segments,
)
from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.models import (
    FormatSummary,
    MagicByteAnalysis,
    MatchConfidence,
    SignatureCategory,
    SignatureMatch,
)

UNKNOWN_FORMAT = "UNKNOWN"
POLYGLOT_FINDING = "POLYGLOT FILE DETECTED: Contains multiple media types (possible steganography)"
MULTIPLE_SIGNATURES_FINDING = "Multiple file signatures detected"


class MagicBytesAnalyzer(BaseAnalyzer):
    """Scan a buffer for every known file signature."""

    name: str = "magic_bytes"
    description: str = "Embedded file and polyglot detection from byte signatures"
    config_section = "MAGIC_BYTES"

    def analyze(self, data: bytes, extension: Optional[str] = None) -> MagicByteAnalysis:
        """
        Scan the whole buffer.

        Args:
            data: Raw file bytes
            extension: Lower-case extension of the original filename, if any

        Returns:
            MagicByteAnalysis with the primary format, embedded files and findings
        """
        hits = self._collect_hits(data)
        primary_sig = hits.get(0)

        primary_match: Optional[SignatureMatch] = None
        if 0 in hits:
            primary_match = self._to_match(data, 0, hits[0])

        excluded = self._internal_regions(data, primary_sig) if primary_sig else []
        primary_end = self._primary_extent(data, primary_sig) if primary_sig else 0
        embedded: List[SignatureMatch] = []
        for offset in sorted(hits):
            if offset == 0:
                continue
            signature = hits[offset]
            if len(data) - offset < self.config["min_embedded_size"]:
                self.logger.debug(f"Ignoring {signature.description} at 0x{offset:X}: trailing garbage")
                continue
            if (
                signature.repeats_internally
                and primary_sig is not None
                and signature.description == primary_sig.description
                and offset < primary_end
            ):
                continue
            if signature.category is SignatureCategory.IMAGE and any(
                start <= offset < end for start, end in excluded
            ):
                continue
            embedded.append(self._to_match(data, offset, signature))

        if primary_sig is not None:
            primary_format = primary_sig.description
        elif embedded:
            primary_format = max(embedded, key=lambda m: (m.specificity, -m.offset)).description
        else:
            primary_format = UNKNOWN_FORMAT

        findings: List[str] = []
        expected_format = extension.upper() if extension else None
        if (
            extension
            and primary_sig is not None
            and extension in KNOWN_SIGNATURE_EXTENSIONS
            and extension not in primary_sig.extensions
        ):
            findings.append(
                f"Format mismatch: extension says {expected_format}, detected format is {primary_format}"
            )

        reportable = [match for match in embedded if match.confidence.is_reportable]
        for match in reportable:
            findings.append(f"Complete file signature found at offset {match.offset_hex}: {match.description}")

        appended = self._appended_data(data, primary_sig, embedded)
        if appended is not None:
            start, size = appended
            findings.append(
                f"Data appended after end of {primary_format} at offset 0x{start:X} ({size} bytes)"
            )

        present = ([primary_match] if primary_match else []) + reportable
        distinct_formats = {match.description for match in present}
        has_multiple_formats = len(distinct_formats) > 1
        if has_multiple_formats:
            findings.append(MULTIPLE_SIGNATURES_FINDING)

        categories = {match.category for match in present}
        if (
            SignatureCategory.AUDIO in categories
            and SignatureCategory.IMAGE in categories
            and (SignatureCategory.VIDEO in categories or SignatureCategory.TEXT in categories)
        ):
            findings.append(POLYGLOT_FINDING)

        has_suspicious_data = bool(reportable) or appended is not None
        total = len(embedded) + (1 if primary_match else 0)

        if has_suspicious_data or has_multiple_formats:
            self.logger.info(f"Found {total} signatures, {len(reportable)} reportable embedded files")
        else:
            self.logger.debug(f"Found {total} signatures, primary format {primary_format}")

        return MagicByteAnalysis(
            primary_format=primary_format,
            expected_format=expected_format,
            total_signatures_found=total,
            format_summary=FormatSummary.from_matches(embedded),
            embedded_files=tuple(embedded),
            suspicious_findings=tuple(findings),
            has_multiple_formats=has_multiple_formats,
            has_suspicious_data=has_suspicious_data,
        )

    def _collect_hits(self, data: bytes) -> Dict[int, Signature]:
        """
        Find every signature occurrence, keeping the most specific per offset.

        Args:
            data: Buffer to scan

        Returns:
            Mapping of file-start offset to signature
        """
        window = self.config["dedup_window"]
        hits: Dict[int, Signature] = {}
        for signature in SIGNATURES:
            last_kept = None
            for offset in signature.find_all(data):
                if offset > 0 and not signature.embedded:
                    continue
                # Repeated internal structures of one format collapse to the first hit
                if last_kept is not None and offset - last_kept < window:
                    continue
                last_kept = offset
                current = hits.get(offset)
                if current is None or signature.specificity > current.specificity:
                    hits[offset] = signature
        return hits

    def _to_match(self, data: bytes, offset: int, signature: Signature) -> SignatureMatch:
        return SignatureMatch(
            offset=offset,
            description=signature.description,
            category=signature.category,
            confidence=self._evaluate_confidence(data, offset, signature),
            specificity=signature.specificity,
        )

    def _evaluate_confidence(self, data: bytes, offset: int, signature: Signature) -> MatchConfidence:
        """
        Grade a match by signature length and structural completeness.

        Args:
            data: Buffer containing the match
            offset: File start of the match
            signature: Signature that matched

        Returns:
            Confidence tier for the match
        """
        if signature.specificity < self.config["min_signature_length"]:
            return MatchConfidence.LOW
        end = signature.span_end(data, offset)
        if end is not None and end - offset >= self.config["min_embedded_size"]:
            return MatchConfidence.HIGH
        return MatchConfidence.MEDIUM

    @staticmethod
    def _internal_regions(data: bytes, primary: Signature) -> List[Tuple[int, int]]:
        """
        Regions of the primary file that legitimately carry another image.

        A JPEG's EXIF segment holds a JPEG thumbnail and an MP3's ID3v2 tag
        holds cover art; that is structure, not an embedded payload.
        """
        if primary.end_marker == JPEG_EOI:
            return [(start, end) for marker, start, end in jpeg_segments(data, 0) if marker == 0xE1]
        tag_end = id3v2_tag_end(data) if primary.pattern == b"ID3" else None
        if tag_end is not None:
            return [(0, tag_end)]
        return []

    @staticmethod
    def _primary_extent(data: bytes, primary: Signature) -> int:
        """End of the primary file, or the whole buffer when it has no usable end."""
        end = primary.span_end(data, 0)
        return end if end is not None else len(data)

    def _appended_data(
        self,
        data: bytes,
        primary: Optional[Signature],
        embedded: List[SignatureMatch],
    ) -> Optional[Tuple[int, int]]:
        """
        Detect bytes following the primary file's end that no signature explains.

        Args:
            data: Buffer to inspect
            primary: Signature matched at offset 0
            embedded: Embedded matches already reported

        Returns:
            (offset, size) of the appended region, or None
        """
        if primary is None or not primary.has_end:
            return None
        end = primary.span_end(data, 0)
        if end is None or end >= len(data):
            return None
        trailing = data[end:]
        if len(trailing) < self.config["min_embedded_size"] or not trailing.strip(b"\x00"):
            return None
        if any(match.offset >= end for match in embedded):
            return None
        return end, len(trailing)
