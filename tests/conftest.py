import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from zoompyramid.config import PipelineConfig
from zoompyramid.core.models import ProcessingConfig
from zoompyramid.errors import DimensionProbeError, OperationError


class FakeOperations:
    """File-backed stand-in for an image tool.

    Every "image" is a text file holding ``WxH``. Reading a file that has not
    been written yet raises, so a run without failures proves that no task
    read its input before the producing task finished.
    """

    scratch_extension = ".img"

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str]] = []
        self.fail_when: Optional[Callable[[str, Path], bool]] = None
        self.probe_override: Dict[str, object] = {}
        self._lock = threading.Lock()

    def _record(self, op: str, path: Path) -> None:
        with self._lock:
            self.calls.append((op, Path(path).name))
        if self.fail_when is not None and self.fail_when(op, Path(path)):
            raise OperationError(f"{op} failed for {Path(path).name}")

    def _read(self, path: Path) -> Tuple[int, int]:
        if not Path(path).exists():
            raise OperationError(f"{path} read before it was written")
        width, height = Path(path).read_text().split("x")
        return int(width), int(height)

    @staticmethod
    def _write(path: Path, width: int, height: int) -> None:
        Path(path).write_text(f"{width}x{height}")

    def probe_dimensions(self, path: Path):
        if str(path) in self.probe_override:
            return self.probe_override[str(path)]
        try:
            return self._read(path)
        except (OperationError, ValueError) as exc:
            raise DimensionProbeError(str(exc)) from exc

    def scale(self, source: Path, destination: Path, width: int, height: int) -> None:
        self._record("scale", destination)
        self._read(source)
        self._write(destination, width, height)

    def crop_row(self, source, destination, y_offset, source_height, width, tile_height) -> None:
        self._record("crop_row", destination)
        self._read(source)
        if y_offset >= source_height:
            raise OperationError("row outside image")
        self._write(destination, width, min(tile_height, source_height - y_offset))

    def crop_tile(self, source, destination, tile_edge, row_height, x_offset_tiles) -> None:
        self._record("crop_tile", destination)
        row_width, _ = self._read(source)
        left = x_offset_tiles * tile_edge
        if left >= row_width:
            raise OperationError("tile outside row")
        self._write(destination, min(tile_edge, row_width - left), row_height)

    def prepare_original(self, source: Path, scratch_dir: Path, desired_name: str) -> Path:
        self._record("prepare", source)
        return source

    def transcode(self, source: Path, target_extension: str) -> Path:
        target = Path(source).with_suffix(target_extension)
        self._write(target, *self._read(source))
        return target


@pytest.fixture()
def fake_ops() -> FakeOperations:
    return FakeOperations()


@pytest.fixture()
def make_source(tmp_path: Path):
    source_dir = tmp_path / "sources"
    source_dir.mkdir()

    def _make(name: str, width: int, height: int) -> Path:
        path = source_dir / name
        path.write_text(f"{width}x{height}")
        return path

    return _make


@pytest.fixture()
def pipeline_config(tmp_path: Path) -> PipelineConfig:
    return PipelineConfig(
        temp_dir=tmp_path / "scratch",
        output_dir=tmp_path / "out",
        processing=ProcessingConfig(workers=4, timeout_seconds=60.0),
    )
