"""Protocol definitions for image operation backends."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Tuple


class ImageOperations(Protocol):
    """Pixel-level operations the pyramid scheduler delegates to a backend."""

    scratch_extension: str

    def probe_dimensions(self, path: Path) -> Tuple[int, int]:
        """Return ``(width, height)`` or raise ``DimensionProbeError``."""

    def scale(self, source: Path, destination: Path, width: int, height: int) -> None:
        """Write ``source`` resized to exactly ``width`` x ``height``."""

    def crop_row(
        self,
        source: Path,
        destination: Path,
        y_offset: int,
        source_height: int,
        width: int,
        tile_height: int,
    ) -> None:
        """Write the horizontal strip starting at ``y_offset``, clamped to the image."""

    def crop_tile(
        self,
        source: Path,
        destination: Path,
        tile_edge: int,
        row_height: int,
        x_offset_tiles: int,
    ) -> None:
        """Write column ``x_offset_tiles`` of a row strip, clamped to the row."""

    def prepare_original(self, source: Path, scratch_dir: Path, desired_name: str) -> Path:
        """Return the path levels and full-resolution rows should read from."""

    def transcode(self, source: Path, target_extension: str) -> Path:
        """Convert ``source`` to ``target_extension`` beside it and return the new path."""
