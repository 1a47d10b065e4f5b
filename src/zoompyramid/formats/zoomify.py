"""Zoomify tile layout: fixed 256px tiles, 2x downsampling, sharded tile groups.

Level 0 is the overview that fits in one tile and the highest level is the
untouched source. Tiles are spread over ``TileGroup<N>`` directories holding
at most ``shard_capacity`` files each; ``N`` follows the order in which tiles
are emitted, not their coordinates.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Tuple

from zoompyramid.core.models import PyramidManifest

MANIFEST_NAME = "ImageProperties.xml"
FORMAT_VERSION = "1.8"


class ZoomifyFormat:
    """Format policy for Zoomify-compatible pyramids."""

    def __init__(
        self,
        *,
        tile_size: int = 256,
        scale_ratio: int = 2,
        shard_capacity: int = 256,
        tile_extension: str = ".jpg",
    ) -> None:
        if tile_size < 1:
            raise ValueError("tile_size must be positive")
        if scale_ratio < 2:
            raise ValueError("scale_ratio must be at least 2")
        if shard_capacity < 1:
            raise ValueError("shard_capacity must be positive")
        self.tile_width = tile_size
        self.tile_height = tile_size
        self.scale_ratio = scale_ratio
        self.shard_capacity = shard_capacity
        self.tile_extension = tile_extension

    def scale_factor(self, level: int) -> int:
        return self.scale_ratio**level

    def scale_dimension(self, dim: int, level: int) -> int:
        return dim // self.scale_factor(level)

    def level_count(self, width: int, height: int) -> int:
        """Return ``ceil(log_ratio(max(width, height) / tile))``, never below zero.

        Computed with integer arithmetic so exact powers of the ratio do not
        pick up an extra level from floating point error.
        """

        if width < 1 or height < 1:
            raise ValueError(f"image dimensions must be positive, got {width}x{height}")
        longest = max(width, height)
        tile = max(self.tile_width, self.tile_height)
        levels = 0
        while longest > tile * self.scale_factor(levels):
            levels += 1
        return levels

    def row_count(self, height: int) -> int:
        return -(-height // self.tile_height)

    def column_count(self, width: int) -> int:
        return -(-width // self.tile_width)

    def tile_span(self, extent: int, index: int, tile: int) -> Tuple[int, int]:
        offset = index * tile
        if offset >= extent:
            raise ValueError(f"strip {index} starts outside an extent of {extent}px")
        return offset, min(tile, extent - offset)

    def tile_group(self, base_path: Path, tile_index: int) -> Path:
        if tile_index < 0:
            raise ValueError("tile_index must not be negative")
        directory = Path(base_path) / f"TileGroup{tile_index // self.shard_capacity}"
        # Concurrent tiles may land in a group before its first index is placed.
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def tile_filename(self, level: int, row: int, column: int) -> str:
        return f"{level}-{row}-{column}{self.tile_extension}"

    def manifest_path(self, target_dir: Path) -> Path:
        return Path(target_dir) / MANIFEST_NAME

    def write_manifest(self, target_dir: Path, width: int, height: int, tile_count: int) -> Path:
        root = ET.Element(
            "IMAGE_PROPERTIES",
            {
                "WIDTH": str(width),
                "HEIGHT": str(height),
                "NUMTILES": str(tile_count),
                "NUMIMAGES": "1",
                "VERSION": FORMAT_VERSION,
                "TILESIZE": str(self.shard_capacity),
            },
        )
        path = self.manifest_path(target_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        ET.ElementTree(root).write(path, encoding="utf-8")
        return path

    def read_manifest(self, target_dir: Path) -> PyramidManifest:
        root = ET.parse(self.manifest_path(target_dir)).getroot()
        if root.tag != "IMAGE_PROPERTIES":
            raise ValueError(f"unexpected manifest root element: {root.tag}")
        return PyramidManifest(
            width=int(root.attrib["WIDTH"]),
            height=int(root.attrib["HEIGHT"]),
            tile_count=int(root.attrib["NUMTILES"]),
            shard_capacity=int(root.attrib["TILESIZE"]),
            version=root.attrib.get("VERSION", FORMAT_VERSION),
        )
