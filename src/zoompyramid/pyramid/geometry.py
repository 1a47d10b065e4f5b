"""Per-image pyramid geometry and the tile counter that drives shard placement."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Tuple

from zoompyramid.errors import DimensionProbeError
from zoompyramid.formats.base import ImageFormat
from zoompyramid.imageops.base import ImageOperations
from zoompyramid.logging import get_logger

LOGGER = get_logger(__name__)


class TileCounter:
    """Thread-safe counter handing out unique, strictly increasing tile indices."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def increment(self) -> int:
        """Return the current value and advance the counter by one."""

        with self._lock:
            index = self._value
            self._value += 1
            return index

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class PyramidGeometry:
    """Dimensions, level layout and output locations of one source image.

    The level count is fixed at construction; only the tile counter changes
    afterwards.
    """

    def __init__(
        self,
        source_path: Path,
        *,
        output_dir: Path,
        working_dir: Path,
        operations: ImageOperations,
        image_format: ImageFormat,
    ) -> None:
        self.source_path = Path(source_path)
        self.output_dir = Path(output_dir)
        self.working_dir = Path(working_dir)
        self.image_format = image_format
        width, height = operations.probe_dimensions(self.source_path)
        if not _positive_int(width) or not _positive_int(height):
            raise DimensionProbeError(
                f"Image size couldn't be determined for {self.source_path}: {width!r}x{height!r}"
            )
        self.width = width
        self.height = height
        self.level_count = image_format.level_count(width, height)
        self._counter = TileCounter()
        LOGGER.info(
            "pyramid geometry",
            extra={
                "source": str(self.source_path),
                "width": width,
                "height": height,
                "levels": self.level_count + 1,
            },
        )

    @classmethod
    def from_source(
        cls,
        source_path: Path,
        *,
        output_root: Path,
        temp_root: Path,
        operations: ImageOperations,
        image_format: ImageFormat,
    ) -> "PyramidGeometry":
        """Place the tile tree and scratch area in per-image folders named after the source."""

        stem = Path(source_path).stem
        return cls(
            source_path,
            output_dir=Path(output_root) / stem,
            working_dir=Path(temp_root) / stem,
            operations=operations,
            image_format=image_format,
        )

    @property
    def tile_size(self) -> int:
        return self.image_format.tile_width

    @property
    def scale_ratio(self) -> int:
        return self.image_format.scale_ratio

    def level_dimensions(self, level: int) -> Tuple[int, int]:
        """Return ``(width, height)`` of ``level``; level 0 is the overview."""

        if not 0 <= level <= self.level_count:
            raise ValueError(f"level {level} outside 0..{self.level_count}")
        steps = self.level_count - level
        # Very elongated images would otherwise shrink one axis to zero pixels.
        return (
            max(1, self.image_format.scale_dimension(self.width, steps)),
            max(1, self.image_format.scale_dimension(self.height, steps)),
        )

    def next_tile_index(self) -> int:
        return self._counter.increment()

    @property
    def tile_count(self) -> int:
        return self._counter.value

    def expected_tile_count(self) -> int:
        """Number of tiles a complete run emits for this image."""

        total = 0
        for level in range(self.level_count + 1):
            width, height = self.level_dimensions(level)
            if level == 0 and self.level_count > 0:
                total += 1
                continue
            total += self.image_format.row_count(height) * self.image_format.column_count(width)
        return total

    def prepare_directories(self) -> None:
        self.working_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)


def _positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
