"""Pyramid output formats."""

from .base import ImageFormat
from .zoomify import MANIFEST_NAME, ZoomifyFormat

__all__ = ["ImageFormat", "MANIFEST_NAME", "ZoomifyFormat"]
