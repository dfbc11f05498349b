"""
Global configuration settings for stegascan.

Numeric thresholds are policy, not code. Every key in the section dicts below
can be overridden through an environment variable named
``STEGASCAN_<SECTION>_<KEY>`` (for example ``STEGASCAN_LSB_ENTROPY_THRESHOLD``),
either exported or placed in a ``.env`` file at the project root.
"""
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv


# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
RESULTS_DIR = PROJECT_ROOT / "results"
LOG_DIR = RESULTS_DIR / "logs"

load_dotenv(PROJECT_ROOT / ".env")


def _env_override(section: str, values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply STEGASCAN_<SECTION>_<KEY> environment overrides to a settings dict.

    Args:
        section: Upper-case section name
        values: Default values for the section

    Returns:
        New dict with overridden values cast to the default's type
    """
    result = dict(values)
    for key, default in values.items():
        raw = os.environ.get(f"STEGASCAN_{section}_{key.upper()}")
        if raw is None:
            continue
        if isinstance(default, bool):
            result[key] = raw.strip().lower() in ("1", "true", "yes", "on")
        elif isinstance(default, int):
            result[key] = int(raw)
        elif isinstance(default, float):
            result[key] = float(raw)
        else:
            result[key] = raw
    return result


# Magic-byte scanner
MAGIC_BYTES = _env_override("MAGIC_BYTES", {
    "min_signature_length": 4,  # shorter signatures are capped at low confidence
    "min_embedded_size": 16,  # fewer remaining bytes than this is trailing garbage
    "dedup_window": 32,  # repeated hits of one signature closer than this collapse
})

# Image LSB analysis
LSB = _env_override("LSB", {
    "chi_square_threshold": 0.95,
    "entropy_threshold": 0.95,
    "min_pair_count": 5,
})

# Image metadata analysis
EXIF = _env_override("EXIF", {
    "max_field_bytes": 1000,
    "min_encoded_length": 50,
    "entropy_threshold": 5.0,  # bits per byte
})

# Audio tag analysis
ID3 = _env_override("ID3", {
    "comment_size_threshold": 500,
    "min_encoded_length": 50,
    "lyrics_size_threshold": 10000,
    "picture_size_threshold": 5_000_000,
    "private_frame_threshold": 1000,
})

# Audio spectral analysis
SPECTROGRAM = _env_override("SPECTROGRAM", {
    "window_size": 2048,
    "hop_size": 512,
    "cutoff_ratio": 0.75,  # fraction of Nyquist where the high band starts
    "energy_threshold": 0.1,  # per-window high-band energy ratio
    "min_persistent_windows": 20,
})

# Video frame sampling
VIDEO = _env_override("VIDEO", {
    "default_sample_rate": 30,
    "max_workers": 4,
})

# Scan service
SERVICE = _env_override("SERVICE", {
    "max_file_size": 100 * 1024 * 1024,  # 100MB
    "max_workers": 4,
    "max_finished_jobs": 10_000,  # completed or failed records kept for polling
})

SECTIONS = {
    "MAGIC_BYTES": MAGIC_BYTES,
    "LSB": LSB,
    "EXIF": EXIF,
    "ID3": ID3,
    "SPECTROGRAM": SPECTROGRAM,
    "VIDEO": VIDEO,
    "SERVICE": SERVICE,
}

# Logging settings
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL = os.environ.get("STEGASCAN_LOG_LEVEL", "INFO")


def section(name: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Get a settings section merged with caller overrides.

    Args:
        name: Section name, e.g. "LSB"
        overrides: Optional values replacing the defaults

    Returns:
        A fresh dict; the module-level defaults are never mutated
    """
    merged = dict(SECTIONS[name])
    if overrides:
        unknown = set(overrides) - set(merged)
        if unknown:
            raise KeyError(f"Unknown {name} settings: {', '.join(sorted(unknown))}")
        merged.update(overrides)
    return merged
