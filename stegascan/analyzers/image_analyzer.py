"""
Still image analysis: metadata inventory plus LSB statistics.
"""
import io
import struct
from typing import Any, Dict, Optional, Tuple

import numpy as np
from PIL import Image

from stegascan.analyzers.exif_analyzer import ExifAnalyzer
from stegascan.analyzers.lsb_analyzer import (
    GRAY_ALPHA_CHANNELS,
    GRAY_CHANNELS,
    RGB_CHANNELS,
    RGBA_CHANNELS,
    LsbAnalyzer,
)
from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.core.errors import DecodeError
from stegascan.models import AnalysisStatus, ExifMetadata, ImageAnalysis

_GRAY_BANDS = {("L",), ("1",), ("I",), ("F",), ("I;16",)}
IMAGE_DECODE_ERRORS = (OSError, ValueError, SyntaxError, EOFError, struct.error, Image.DecompressionBombError)


def decode_pixels(image: Image.Image) -> Tuple[np.ndarray, Tuple[str, ...]]:
    """
    Decode an image to an 8-bit pixel array.

    Args:
        image: Opened PIL image

    Returns:
        Tuple of (uint8 array shaped HxWxC, channel names)

    Raises:
        DecodeError: If Pillow cannot decode the pixel data
    """
    bands = image.getbands()
    has_alpha = "A" in bands or "transparency" in image.info
    if bands in _GRAY_BANDS or bands == ("L", "A") or image.mode.startswith("I;16"):
        mode, names = ("LA", GRAY_ALPHA_CHANNELS) if has_alpha else ("L", GRAY_CHANNELS)
    else:
        mode, names = ("RGBA", RGBA_CHANNELS) if has_alpha else ("RGB", RGB_CHANNELS)

    try:
        converted = image.convert(mode) if image.mode != mode else image
        converted.load()
    except IMAGE_DECODE_ERRORS as e:
        raise DecodeError(f"Could not decode pixel data: {e}") from e

    pixels = np.asarray(converted, dtype=np.uint8)
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    return pixels, names


class ImageAnalyzer(BaseAnalyzer):
    """Run the metadata and LSB sub-analyses over an image buffer."""

    name: str = "image"
    description: str = "EXIF metadata and LSB analysis for still images"

    def __init__(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        super().__init__()
        overrides = overrides or {}
        self.exif_analyzer = ExifAnalyzer(overrides.get("EXIF"))
        self.lsb_analyzer = LsbAnalyzer(overrides.get("LSB"))

    def analyze(self, data: bytes) -> ImageAnalysis:
        """
        Analyze an image file.

        Args:
            data: Raw image bytes

        Returns:
            ImageAnalysis; status is failed when no pixels could be decoded
        """
        try:
            image = Image.open(io.BytesIO(data))
        except IMAGE_DECODE_ERRORS as e:
            self.logger.warning(f"Could not open image: {e}")
            return ImageAnalysis(
                exif_metadata=ExifMetadata(),
                lsb_analysis=None,
                status=AnalysisStatus.FAILED,
                errors=(f"Image decode failed: {e}",),
            )

        # Pixels first: reading PNG metadata loads the image, and a second
        # load of a truncated file silently returns the partial pixels
        with image:
            width, height = image.size
            try:
                pixels, channel_names = decode_pixels(image)
                decode_error = None
            except DecodeError as e:
                decode_error = e
            exif_metadata = self.exif_analyzer.analyze(image)

        if decode_error is not None:
            self.logger.warning(str(decode_error))
            return ImageAnalysis(
                exif_metadata=exif_metadata,
                lsb_analysis=None,
                width=width,
                height=height,
                status=AnalysisStatus.FAILED,
                errors=(str(decode_error),),
            )

        lsb_analysis = self.lsb_analyzer.analyze(pixels, channel_names)
        self.logger.debug(
            f"Analyzed {width}x{height} image, {exif_metadata.fields_found} metadata fields, "
            f"LSB suspicious: {lsb_analysis.is_suspicious}"
        )
        return ImageAnalysis(
            exif_metadata=exif_metadata,
            lsb_analysis=lsb_analysis,
            width=width,
            height=height,
        )
