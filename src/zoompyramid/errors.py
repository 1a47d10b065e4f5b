"""Exception hierarchy shared by the pyramid components."""

from __future__ import annotations


class PyramidError(RuntimeError):
    """Base class for failures raised while building an image pyramid."""


class DimensionProbeError(PyramidError):
    """Raised when the source dimensions cannot be read as two positive integers."""


class OperationError(PyramidError):
    """Raised when a scale, crop or transcode operation fails."""


class UnsupportedBackendError(PyramidError, ValueError):
    """Raised when an unknown image operation backend is requested."""


class SchedulerClosedError(PyramidError):
    """Raised when an image is submitted after the scheduler stopped accepting work."""
