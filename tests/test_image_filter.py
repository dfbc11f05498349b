"""
Tests for the channel and bit-plane image export.
"""

import numpy as np
import pytest
from PIL import Image

from stegascan.analyzers import ImageFilterAnalyzer
from stegascan.core.errors import DecodeError
from tests.fixtures.media_factory import png_bytes, stego_pixels


def _rgba_png() -> bytes:
    pixels = np.zeros((8, 8, 4), dtype=np.uint8)
    pixels[..., 0] = 201  # odd red, LSB set everywhere
    pixels[..., 1] = 100
    pixels[..., 3] = 255
    return png_bytes(pixels)


def test_rgb_image_filters():
    filters = ImageFilterAnalyzer().analyze(png_bytes(stego_pixels(size=16)))

    names = [name for name, _ in filters]
    assert names == [
        "original",
        "red", "red_on_white", "red_lsb",
        "green", "green_on_white", "green_lsb",
        "blue", "blue_on_white", "blue_lsb",
        "contrast_low", "contrast_high",
    ]
    assert all(image.size == (16, 16) for _, image in filters)


def test_channel_and_lsb_plane_values():
    filters = dict(ImageFilterAnalyzer().analyze(_rgba_png()))

    assert "alpha_lsb" in filters
    assert np.all(np.asarray(filters["red"]) == 201)
    assert np.all(np.asarray(filters["red_lsb"]) == 255)
    assert np.all(np.asarray(filters["green_lsb"]) == 0)
    on_white = np.asarray(filters["green_on_white"])
    assert on_white[0, 0].tolist() == [255, 100, 255, 255]


def test_export_writes_png_files(tmp_path):
    paths = ImageFilterAnalyzer().export(png_bytes(stego_pixels(size=16)), tmp_path / "filters", "cover.png")

    assert len(paths) == 12
    assert paths[0] == tmp_path / "filters" / "cover.png_filter_original.png"
    with Image.open(paths[3]) as image:
        assert image.mode == "L"


def test_undecodable_image_raises_decode_error():
    with pytest.raises(DecodeError):
        ImageFilterAnalyzer().analyze(b"\x89PNG\r\n\x1a\n" + b"\x00" * 20)
