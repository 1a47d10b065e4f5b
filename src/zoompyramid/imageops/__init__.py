"""Image operation backends and their selection by name."""

from __future__ import annotations

from typing import Optional

from zoompyramid.errors import UnsupportedBackendError

from .base import ImageOperations
from .magick import GraphicsMagickOperations, ImageMagickOperations, MagickOperations
from .pillow import PillowOperations
from .runner import CommandRunner

BACKENDS = ("imagemagick", "graphicsmagick", "pillow")


def create_operations(
    backend: str,
    *,
    scratch_extension: str = ".tif",
    quality: int = 90,
    normalize_original: bool = False,
    executable: Optional[str] = None,
) -> ImageOperations:
    """Return the image operation backend registered under ``backend``."""

    name = backend.strip().lower()
    if name == "imagemagick":
        return ImageMagickOperations(
            scratch_extension=scratch_extension,
            quality=quality,
            normalize_original=normalize_original,
            executable=executable,
        )
    if name == "graphicsmagick":
        return GraphicsMagickOperations(
            scratch_extension=scratch_extension,
            quality=quality,
            normalize_original=normalize_original,
            executable=executable,
        )
    if name == "pillow":
        return PillowOperations(
            scratch_extension=scratch_extension,
            quality=quality,
            normalize_original=normalize_original,
        )
    raise UnsupportedBackendError(
        f"{backend} is not a supported image backend (choose from {', '.join(BACKENDS)})"
    )


__all__ = [
    "BACKENDS",
    "CommandRunner",
    "GraphicsMagickOperations",
    "ImageMagickOperations",
    "ImageOperations",
    "MagickOperations",
    "PillowOperations",
    "create_operations",
]
