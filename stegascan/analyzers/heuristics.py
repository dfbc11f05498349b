"""
Byte-level heuristics shared by the metadata and tag analyzers.
"""
import re
from typing import Union

import numpy as np

_BASE64_CHARS = re.compile(rb"[A-Za-z0-9+/=]")


def to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8", errors="replace")
    return bytes(value)


def byte_entropy(value: Union[str, bytes]) -> float:
    """
    Shannon entropy of a byte string.

    Args:
        value: Text or raw bytes

    Returns:
        Entropy in bits per byte, between 0.0 and 8.0
    """
    data = to_bytes(value)
    if not data:
        return 0.0
    counts = np.bincount(np.frombuffer(data, dtype=np.uint8), minlength=256)
    probabilities = counts[counts > 0] / len(data)
    return float(-np.sum(probabilities * np.log2(probabilities)))


def looks_like_base64(value: Union[str, bytes], min_length: int = 50) -> bool:
    """
    Check if a string looks like Base64-encoded data.

    Args:
        value: Text or raw bytes
        min_length: Shorter values are never considered encoded

    Returns:
        True when more than 90% of the characters are from the Base64 alphabet
    """
    data = to_bytes(value).strip()
    if len(data) < min_length:
        return False
    matches = len(_BASE64_CHARS.findall(data))
    return matches / len(data) > 0.9
