"""
Exception hierarchy for the stegascan engine and its service surfaces.
"""


class StegascanError(Exception):
    """Base class for all stegascan errors."""


class InputError(StegascanError, ValueError):
    """The caller supplied an unusable request (missing file, bad sample rate)."""


class FileTooLargeError(InputError):
    """The supplied file exceeds the configured maximum size."""

    def __init__(self, size_bytes: int, max_size: int) -> None:
        super().__init__(f"File is {size_bytes} bytes, maximum allowed is {max_size} bytes")
        self.size_bytes = size_bytes
        self.max_size = max_size


class DecodeError(StegascanError):
    """A media decoder could not extract pixels, samples or frames."""


class AnalysisError(StegascanError, RuntimeError):
    """The engine could not produce any usable result."""


class JobNotFoundError(StegascanError, KeyError):
    """No job record exists for the requested analysis id."""

    def __str__(self) -> str:
        return f"Unknown analysis id: {self.args[0]}" if self.args else "Unknown analysis id"


class JobStateError(StegascanError):
    """A job record transition was requested that its current state forbids."""
