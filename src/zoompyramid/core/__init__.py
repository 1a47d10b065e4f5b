"""Core data models for zoompyramid."""

from .models import (
    BatchResult,
    ImageResult,
    ProcessingConfig,
    PyramidManifest,
    TaskFailure,
)

__all__ = [
    "BatchResult",
    "ImageResult",
    "ProcessingConfig",
    "PyramidManifest",
    "TaskFailure",
]
