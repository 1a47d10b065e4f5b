"""Image operations backed by the ImageMagick and GraphicsMagick command-line tools."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from zoompyramid.errors import DimensionProbeError, OperationError
from zoompyramid.logging import get_logger

from .runner import CommandRunner

LOGGER = get_logger(__name__)

_JPEG_SUFFIXES = {".jpg", ".jpeg"}


class MagickOperations:
    """Shared command construction for the ``convert``-style tools.

    Subclasses only decide how the tool is invoked; geometry arguments are
    identical for ImageMagick and GraphicsMagick.
    """

    default_executable = "magick"

    def __init__(
        self,
        *,
        scratch_extension: str = ".tif",
        quality: int = 90,
        normalize_original: bool = False,
        executable: Optional[str] = None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self.scratch_extension = scratch_extension
        self._quality = quality
        self._normalize_original = normalize_original
        self._executable = executable or self.default_executable
        self._runner = runner or CommandRunner()

    def _convert_prefix(self) -> List[str]:
        raise NotImplementedError

    def _identify_prefix(self) -> List[str]:
        raise NotImplementedError

    def probe_dimensions(self, path: Path) -> Tuple[int, int]:
        command = [*self._identify_prefix(), "-format", "%w %h", f"{path}[0]"]
        try:
            output = self._runner.capture(command, description="probe image dimensions")
        except OperationError as exc:
            raise DimensionProbeError(f"Image size couldn't be determined for {path}") from exc
        return parse_dimensions(output, path)

    def scale(self, source: Path, destination: Path, width: int, height: int) -> None:
        command = [*self._convert_prefix(), str(source), "-resize", f"{width}x{height}!"]
        self._run(command, destination, description="scale pyramid level")

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
        command = [
            *self._convert_prefix(),
            str(source),
            "-crop",
            f"{width}x{height}+0+{y_offset}",
            "+repage",
        ]
        self._run(command, destination, description="crop pyramid row")

    def crop_tile(
        self,
        source: Path,
        destination: Path,
        tile_edge: int,
        row_height: int,
        x_offset_tiles: int,
    ) -> None:
        # The tools clamp the crop box at the right edge of the row.
        command = [
            *self._convert_prefix(),
            str(source),
            "-crop",
            f"{tile_edge}x{row_height}+{x_offset_tiles * tile_edge}+0",
            "+repage",
        ]
        self._run(command, destination, description="crop pyramid tile")

    def prepare_original(self, source: Path, scratch_dir: Path, desired_name: str) -> Path:
        if not self._normalize_original or source.suffix.lower() == self.scratch_extension.lower():
            return source
        target = scratch_dir / f"{desired_name}{self.scratch_extension}"
        self._run([*self._convert_prefix(), str(source)], target, description="normalize original image")
        return target

    def transcode(self, source: Path, target_extension: str) -> Path:
        target = source.with_suffix(target_extension)
        self._run([*self._convert_prefix(), str(source)], target, description="transcode image")
        return target

    def _run(self, command: List[str], destination: Path, *, description: str) -> None:
        if destination.suffix.lower() in _JPEG_SUFFIXES:
            command.extend(["-quality", str(self._quality)])
        command.append(str(destination))
        self._runner.run(command, description=description)


class ImageMagickOperations(MagickOperations):
    """ImageMagick 7 via the ``magick`` entry point."""

    default_executable = "magick"

    def _convert_prefix(self) -> List[str]:
        return [self._executable]

    def _identify_prefix(self) -> List[str]:
        return [self._executable, "identify"]


class GraphicsMagickOperations(MagickOperations):
    """GraphicsMagick via ``gm convert`` and ``gm identify``."""

    default_executable = "gm"

    def _convert_prefix(self) -> List[str]:
        return [self._executable, "convert"]

    def _identify_prefix(self) -> List[str]:
        return [self._executable, "identify"]


def parse_dimensions(output: str, path: Path) -> Tuple[int, int]:
    """Parse ``"<width> <height>"`` (or ``WxH``) into two positive integers."""

    parts = output.replace("x", " ").split()
    if len(parts) != 2:
        raise DimensionProbeError(f"Image size couldn't be determined for {path}: {output!r}")
    try:
        width, height = (int(part) for part in parts)
    except ValueError as exc:
        raise DimensionProbeError(f"Image size couldn't be determined for {path}: {output!r}") from exc
    if width < 1 or height < 1:
        raise DimensionProbeError(f"Image {path} reported non-positive size {width}x{height}")
    LOGGER.debug("probed image", extra={"path": str(path), "width": width, "height": height})
    return width, height
