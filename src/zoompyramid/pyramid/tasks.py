"""Task nodes of the pyramid graph.

Each task performs one image operation and returns the tasks that depend on
its output. The scheduler submits those children only after the parent has
finished writing, so dependency order follows from the return value alone:

    PrepareOriginalTask -> LevelTask(0..n-1) -> RowTask -> TileTask
                        -> RowTask (full resolution level n) -> TileTask
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, List, Union

from zoompyramid.core.models import TaskFailure
from zoompyramid.imageops.base import ImageOperations
from zoompyramid.logging import get_logger

from .geometry import PyramidGeometry

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class TaskContext:
    """Collaborators shared by every task of one image."""

    geometry: PyramidGeometry
    operations: ImageOperations


@dataclass(frozen=True)
class PreparedOriginal:
    path: Path


@dataclass(frozen=True)
class LevelImage:
    level: int
    path: Path
    width: int
    height: int


@dataclass(frozen=True)
class RowImage:
    level: int
    row: int
    path: Path
    width: int
    height: int


@dataclass(frozen=True)
class PrepareOriginalTask:
    """Normalize the source, then fan out to every level."""

    kind: ClassVar[str] = "prepare"

    def run(self, ctx: TaskContext) -> List["Task"]:
        geometry = ctx.geometry
        path = ctx.operations.prepare_original(
            geometry.source_path, geometry.working_dir, geometry.source_path.stem
        )
        original = PreparedOriginal(path=Path(path))
        children: List[Task] = [LevelTask(level=level, original=original) for level in range(geometry.level_count)]
        # The full-resolution level reads the original directly; no scaling step.
        full = LevelImage(
            level=geometry.level_count,
            path=original.path,
            width=geometry.width,
            height=geometry.height,
        )
        children.extend(expand_rows(geometry, full))
        return children

    def failure(self, message: str) -> TaskFailure:
        return TaskFailure(kind=self.kind, message=message)


@dataclass(frozen=True)
class LevelTask:
    """Scale the original down to one level; level 0 becomes the overview tile."""

    level: int
    original: PreparedOriginal
    kind: ClassVar[str] = "level"

    def run(self, ctx: TaskContext) -> List["Task"]:
        geometry = ctx.geometry
        width, height = geometry.level_dimensions(self.level)
        if self.level == 0:
            extension = geometry.image_format.tile_extension
        else:
            extension = ctx.operations.scratch_extension
        destination = geometry.working_dir / f"level-{self.level}{extension}"
        ctx.operations.scale(self.original.path, destination, width, height)
        if self.level == 0:
            place_tile(geometry, destination, level=0, row=0, column=0)
            return []
        return list(expand_rows(geometry, LevelImage(self.level, destination, width, height)))

    def failure(self, message: str) -> TaskFailure:
        return TaskFailure(kind=self.kind, message=message, level=self.level)


@dataclass(frozen=True)
class RowTask:
    """Cut one ``tile_height`` strip out of a level image."""

    image: LevelImage
    row: int
    kind: ClassVar[str] = "row"

    def run(self, ctx: TaskContext) -> List["Task"]:
        geometry = ctx.geometry
        fmt = geometry.image_format
        y_offset, height = fmt.tile_span(self.image.height, self.row, fmt.tile_height)
        destination = geometry.working_dir / f"row-{self.image.level}-{self.row}{ctx.operations.scratch_extension}"
        ctx.operations.crop_row(
            self.image.path,
            destination,
            y_offset,
            self.image.height,
            self.image.width,
            fmt.tile_height,
        )
        strip = RowImage(self.image.level, self.row, destination, self.image.width, height)
        return [TileTask(row_image=strip, column=column) for column in range(fmt.column_count(strip.width))]

    def failure(self, message: str) -> TaskFailure:
        return TaskFailure(kind=self.kind, message=message, level=self.image.level, row=self.row)


@dataclass(frozen=True)
class TileTask:
    """Cut one tile out of a row strip and move it into its tile group."""

    row_image: RowImage
    column: int
    kind: ClassVar[str] = "tile"

    def run(self, ctx: TaskContext) -> List["Task"]:
        geometry = ctx.geometry
        fmt = geometry.image_format
        strip = self.row_image
        destination = geometry.working_dir / f"tile-{strip.level}-{strip.row}-{self.column}{fmt.tile_extension}"
        ctx.operations.crop_tile(strip.path, destination, fmt.tile_width, strip.height, self.column)
        place_tile(geometry, destination, level=strip.level, row=strip.row, column=self.column)
        return []

    def failure(self, message: str) -> TaskFailure:
        strip = self.row_image
        return TaskFailure(kind=self.kind, message=message, level=strip.level, row=strip.row, column=self.column)


Task = Union[PrepareOriginalTask, LevelTask, RowTask, TileTask]


def expand_rows(geometry: PyramidGeometry, image: LevelImage) -> List[RowTask]:
    """Return one row task per ``tile_height`` strip of ``image``."""

    rows = geometry.image_format.row_count(image.height)
    return [RowTask(image=image, row=row) for row in range(rows)]


def place_tile(geometry: PyramidGeometry, source: Path, *, level: int, row: int, column: int) -> Path:
    """Move a finished tile into the tile group picked by the emission counter."""

    fmt = geometry.image_format
    index = geometry.next_tile_index()
    target = fmt.tile_group(geometry.output_dir, index) / fmt.tile_filename(level, row, column)
    if target.exists():
        target.unlink()
    shutil.move(str(source), str(target))
    LOGGER.debug(
        "placed tile",
        extra={"tile": target.name, "index": index, "group": target.parent.name},
    )
    return target
