"""In-process image operations built on Pillow."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

from PIL import Image

from zoompyramid.errors import DimensionProbeError, OperationError
from zoompyramid.logging import get_logger

LOGGER = get_logger(__name__)

# Pyramid sources are routinely far larger than the decompression bomb limit.
Image.MAX_IMAGE_PIXELS = None

_JPEG_SUFFIXES = {".jpg", ".jpeg"}
_PILLOW_ERRORS = (OSError, ValueError)


class PillowOperations:
    """Pillow implementation of the image operation port.

    Useful where no external tool is installed; everything runs inside the
    worker threads, so memory use grows with the level being scaled.
    """

    def __init__(
        self,
        *,
        scratch_extension: str = ".tif",
        quality: int = 90,
        normalize_original: bool = False,
    ) -> None:
        self.scratch_extension = scratch_extension
        self._quality = quality
        self._normalize_original = normalize_original

    def probe_dimensions(self, path: Path) -> Tuple[int, int]:
        try:
            with Image.open(path) as image:
                width, height = image.size
        except _PILLOW_ERRORS as exc:
            raise DimensionProbeError(f"Image size couldn't be determined for {path}") from exc
        if width < 1 or height < 1:
            raise DimensionProbeError(f"Image {path} reported non-positive size {width}x{height}")
        return width, height

    def scale(self, source: Path, destination: Path, width: int, height: int) -> None:
        try:
            with Image.open(source) as image:
                resized = image.resize((width, height), Image.Resampling.LANCZOS)
            self._save(resized, destination)
        except _PILLOW_ERRORS as exc:
            raise OperationError(f"scaling {source} to {width}x{height} failed: {exc}") from exc

    def crop_row(
        self,
        source: Path,
        destination: Path,
        y_offset: int,
        source_height: int,
        width: int,
        tile_height: int,
    ) -> None:
        if y_offset >= source_height:
            raise OperationError(f"row offset {y_offset} is outside {source} ({source_height}px tall)")
        height = min(tile_height, source_height - y_offset)
        try:
            with Image.open(source) as image:
                strip = image.crop((0, y_offset, min(width, image.width), y_offset + height))
            self._save(strip, destination)
        except _PILLOW_ERRORS as exc:
            raise OperationError(f"cropping row at y={y_offset} from {source} failed: {exc}") from exc

    def crop_tile(
        self,
        source: Path,
        destination: Path,
        tile_edge: int,
        row_height: int,
        x_offset_tiles: int,
    ) -> None:
        left = x_offset_tiles * tile_edge
        try:
            with Image.open(source) as image:
                if left >= image.width:
                    raise OperationError(f"tile column {x_offset_tiles} is outside {source}")
                right = min(left + tile_edge, image.width)
                tile = image.crop((left, 0, right, min(row_height, image.height)))
            self._save(tile, destination)
        except _PILLOW_ERRORS as exc:
            raise OperationError(f"cropping tile {x_offset_tiles} from {source} failed: {exc}") from exc

    def prepare_original(self, source: Path, scratch_dir: Path, desired_name: str) -> Path:
        if not self._normalize_original or source.suffix.lower() == self.scratch_extension.lower():
            return source
        target = scratch_dir / f"{desired_name}{self.scratch_extension}"
        self._convert(source, target)
        return target

    def transcode(self, source: Path, target_extension: str) -> Path:
        target = source.with_suffix(target_extension)
        self._convert(source, target)
        return target

    def _convert(self, source: Path, target: Path) -> None:
        try:
            with Image.open(source) as image:
                image.load()
                self._save(image, target)
        except _PILLOW_ERRORS as exc:
            raise OperationError(f"converting {source} to {target.suffix} failed: {exc}") from exc

    def _save(self, image: Image.Image, destination: Path) -> None:
        if destination.suffix.lower() in _JPEG_SUFFIXES:
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            image.save(destination, quality=self._quality)
        else:
            image.save(destination)
        LOGGER.debug("wrote image", extra={"path": str(destination), "size": image.size})
