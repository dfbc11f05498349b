"""
Filtered renditions of an image for visual inspection.

Data hidden in one channel or in the low bit plane is invisible in the
composite image but often shows up as texture when that channel or plane is
viewed on its own.
"""
import io
from pathlib import Path
from typing import List, Tuple, Union

import numpy as np
from PIL import Image, ImageEnhance

from stegascan.analyzers.image_analyzer import IMAGE_DECODE_ERRORS
from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.core.errors import DecodeError

CHANNEL_NAMES = {"R": "red", "G": "green", "B": "blue", "A": "alpha"}
CONTRAST_FACTORS = {"contrast_low": 0.81, "contrast_high": 1.21}


class ImageFilterAnalyzer(BaseAnalyzer):
    """Build per-channel, bit-plane and contrast renditions of an image."""

    name: str = "image_filter"
    description: str = "Channel and LSB plane images for visual inspection"

    def analyze(self, data: bytes) -> List[Tuple[str, Image.Image]]:
        """
        Build the filtered images.

        For every channel this yields the channel as grayscale, the channel
        over white and its least significant bit plane scaled to 0/255. The
        alpha channel is included only when the image has one.

        Args:
            data: Raw image bytes

        Returns:
            List of (filter name, image) pairs, the unmodified image first

        Raises:
            DecodeError: If the image cannot be decoded
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                has_alpha = "A" in image.getbands() or "transparency" in image.info
                rgba = np.asarray(image.convert("RGBA"), dtype=np.uint8)
        except IMAGE_DECODE_ERRORS as e:
            raise DecodeError(f"Could not decode image for filtering: {e}") from e

        composite = Image.fromarray(rgba)
        filters: List[Tuple[str, Image.Image]] = [("original", composite)]
        for index, channel in enumerate("RGBA" if has_alpha else "RGB"):
            name = CHANNEL_NAMES[channel]
            plane = np.ascontiguousarray(rgba[:, :, index])

            on_white = np.full_like(rgba, 255)
            on_white[:, :, index] = plane

            filters.append((name, Image.fromarray(plane)))
            filters.append((f"{name}_on_white", Image.fromarray(on_white)))
            filters.append((f"{name}_lsb", Image.fromarray(((plane & 1) * 255).astype(np.uint8))))

        rgb = composite.convert("RGB")
        for name, factor in CONTRAST_FACTORS.items():
            filters.append((name, ImageEnhance.Contrast(rgb).enhance(factor)))

        self.logger.debug(f"Built {len(filters)} filtered images of {composite.width}x{composite.height}")
        return filters

    def export(self, data: bytes, output_dir: Union[str, Path], stem: str) -> List[Path]:
        """
        Save the filtered images as PNG files.

        Args:
            data: Raw image bytes
            output_dir: Directory to write to, created if missing
            stem: File name prefix, usually the scanned file's name

        Returns:
            Paths of the written files, in filter order
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        paths = []
        for name, image in self.analyze(data):
            path = output_dir / f"{stem}_filter_{name}.png"
            image.save(path)
            paths.append(path)

        self.logger.info(f"Saved {len(paths)} filtered images to {output_dir}")
        return paths
