"""
Detection analyzers: type classification, signature scanning and the
per-format statistical analyses.
"""

from stegascan.analyzers.audio_analyzer import AudioAnalyzer
from stegascan.analyzers.exif_analyzer import ExifAnalyzer
from stegascan.analyzers.id3_analyzer import Id3Analyzer
from stegascan.analyzers.image_analyzer import ImageAnalyzer
from stegascan.analyzers.image_filter import ImageFilterAnalyzer
from stegascan.analyzers.lsb_analyzer import LsbAnalyzer, analyze_lsb
from stegascan.analyzers.magic_bytes_analyzer import MagicBytesAnalyzer
from stegascan.analyzers.spectrogram_analyzer import SpectrogramAnalyzer
from stegascan.analyzers.text_analyzer import TextAnalyzer
from stegascan.analyzers.type_classifier import TypeClassifier
from stegascan.analyzers.video_analyzer import VideoAnalyzer

__all__ = [
    "AudioAnalyzer",
    "ExifAnalyzer",
    "Id3Analyzer",
    "ImageAnalyzer",
    "ImageFilterAnalyzer",
    "LsbAnalyzer",
    "MagicBytesAnalyzer",
    "SpectrogramAnalyzer",
    "TextAnalyzer",
    "TypeClassifier",
    "VideoAnalyzer",
    "analyze_lsb",
]
