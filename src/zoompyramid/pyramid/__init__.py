"""Pyramid geometry, task graph scheduling and batch processing."""

from .geometry import PyramidGeometry, TileCounter
from .processor import PyramidProcessor, extract_archive
from .scheduler import ImageJob, PyramidScheduler
from .tasks import LevelTask, PrepareOriginalTask, RowTask, TaskContext, TileTask

__all__ = [
    "ImageJob",
    "LevelTask",
    "PrepareOriginalTask",
    "PyramidGeometry",
    "PyramidProcessor",
    "PyramidScheduler",
    "RowTask",
    "TaskContext",
    "TileCounter",
    "TileTask",
    "extract_archive",
]
