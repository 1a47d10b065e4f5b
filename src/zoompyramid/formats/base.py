"""Protocol definitions for pyramid output formats."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Tuple

from zoompyramid.core.models import PyramidManifest


class ImageFormat(Protocol):
    """Geometry and layout rules of a tiled pyramid format."""

    tile_width: int
    tile_height: int
    scale_ratio: int
    shard_capacity: int
    tile_extension: str

    def scale_factor(self, level: int) -> int:
        """Return the downsampling factor ``level`` steps below full resolution."""

    def scale_dimension(self, dim: int, level: int) -> int:
        """Return ``dim`` shrunk by ``scale_factor(level)``."""

    def level_count(self, width: int, height: int) -> int:
        """Return the index of the full-resolution level."""

    def row_count(self, height: int) -> int:
        """Return the number of tile rows covering ``height`` pixels."""

    def column_count(self, width: int) -> int:
        """Return the number of tile columns covering ``width`` pixels."""

    def tile_span(self, extent: int, index: int, tile: int) -> Tuple[int, int]:
        """Return the offset and clamped length of strip ``index`` along an axis."""

    def tile_group(self, base_path: Path, tile_index: int) -> Path:
        """Return (and create) the shard directory for ``tile_index``."""

    def tile_filename(self, level: int, row: int, column: int) -> str:
        """Return the file name of one tile."""

    def manifest_path(self, target_dir: Path) -> Path:
        """Return where the manifest of ``target_dir`` lives."""

    def write_manifest(self, target_dir: Path, width: int, height: int, tile_count: int) -> Path:
        """Persist the pyramid manifest and return its path."""

    def read_manifest(self, target_dir: Path) -> PyramidManifest:
        """Parse a manifest previously written to ``target_dir``."""
