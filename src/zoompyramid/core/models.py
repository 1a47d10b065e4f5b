"""Dataclasses describing pyramid runs and their outcomes."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple


@dataclass
class ProcessingConfig:
    """Configuration options that control pyramid generation."""

    backend: str = "imagemagick"
    workers: Optional[int] = None
    timeout_seconds: float = 3600.0
    scratch_extension: str = ".tif"
    tile_quality: int = 90
    normalize_original: bool = False
    executable: Optional[str] = None


@dataclass(frozen=True)
class PyramidManifest:
    """The four numeric fields persisted next to a finished tile tree."""

    width: int
    height: int
    tile_count: int
    shard_capacity: int
    version: str = "1.8"


@dataclass(frozen=True)
class TaskFailure:
    """A single task that did not produce its output."""

    kind: str
    message: str
    level: Optional[int] = None
    row: Optional[int] = None
    column: Optional[int] = None

    @property
    def location(self) -> str:
        parts = [self.kind]
        for name, value in (("level", self.level), ("row", self.row), ("column", self.column)):
            if value is not None:
                parts.append(f"{name}={value}")
        return " ".join(parts)


@dataclass
class ImageResult:
    """Outcome of building the pyramid for one source image."""

    source: Path
    output_dir: Optional[Path] = None
    width: int = 0
    height: int = 0
    level_count: int = 0
    tile_count: int = 0
    failures: Tuple[TaskFailure, ...] = ()
    error: Optional[str] = None
    manifest_path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failures and self.manifest_path is not None

    def summary(self) -> Dict[str, object]:
        """Return a structured description suitable for logs or JSON output."""

        counts = Counter(failure.kind for failure in self.failures)
        return {
            "source": str(self.source),
            "ok": self.ok,
            "width": self.width,
            "height": self.height,
            "levels": self.level_count,
            "tiles": self.tile_count,
            "error": self.error,
            "failure_counts": dict(counts),
            "failures": [f"{failure.location}: {failure.message}" for failure in self.failures],
        }


@dataclass
class BatchResult:
    """Per-image outcomes of a batch run."""

    results: List[ImageResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.results)

    @property
    def failed(self) -> List[ImageResult]:
        return [result for result in self.results if not result.ok]

    def __iter__(self):
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)
