"""
Error kinds raised by the render pipeline.
Everything except EncodingUnavailableError is fatal and reaches the caller;
the exporter masks EncodingUnavailableError by falling back to WAV.
"""
from typing import Optional


class MokugyoError(Exception):
    """Base class for engine errors."""


class InvalidDurationError(MokugyoError, ValueError):
    """Requested duration is not a positive, finite number, or is too long to serialize."""

    def __init__(self, duration, operation: str = "schedule", reason: str = "must be > 0"):
        self.duration = duration
        self.operation = operation
        super().__init__(f"{operation}: duration {reason}, got {duration!r}")


class BufferAllocationError(MokugyoError, MemoryError):
    """Sample buffer could not be allocated."""

    def __init__(self, num_samples: int, cause: Optional[BaseException] = None):
        self.num_samples = num_samples
        msg = f"allocate: cannot allocate buffer of {num_samples} samples"
        if cause is not None:
            msg += f" ({cause})"
        super().__init__(msg)


class SerializationIOError(MokugyoError, OSError):
    """Writing the waveform container to storage failed."""

    def __init__(self, operation: str, path: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.path = path
        msg = f"{operation}: failed to write {path}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


class EncodingUnavailableError(MokugyoError):
    """External encoder missing or failed. Recovered by the exporter."""
