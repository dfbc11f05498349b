"""
Stegascan: steganography detection engine for images, audio, video and text.
"""

__version__ = "0.1.0"
