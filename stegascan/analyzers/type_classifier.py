"""
Content-based media type classification.
"""
from typing import Optional

from stegascan.analyzers.signatures import EXTENSION_CATEGORIES, best_match_at, normalize_extension
from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.models import FileInfo, MediaType


class TypeClassifier(BaseAnalyzer):
    """
    Identify the dominant media category of a buffer.

    The leading bytes decide. The filename extension is only consulted when
    no signature matches at offset 0, so a renamed file is still analyzed as
    what it really is.
    """

    name: str = "type_classifier"
    description: str = "Media type detection from leading bytes"

    def analyze(self, data: bytes, filename: Optional[str] = None) -> FileInfo:
        """
        Classify a buffer.

        Args:
            data: Raw file bytes, possibly empty
            filename: Optional original filename

        Returns:
            FileInfo describing the buffer
        """
        extension = normalize_extension(filename)
        signature = best_match_at(data, 0) if data else None

        if signature is not None:
            detected = signature.category.media_type
            self.logger.debug(f"Detected {signature.description} at offset 0, analyzing as {detected.value}")
        elif extension in EXTENSION_CATEGORIES:
            detected = EXTENSION_CATEGORIES[extension].media_type
            self.logger.debug(f"No leading signature, falling back to extension .{extension}")
        else:
            detected = MediaType.TEXT

        return FileInfo(
            path=filename,
            size_bytes=len(data),
            detected_type=detected,
            extension=extension,
        )

    classify = analyze
