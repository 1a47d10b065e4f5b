"""Batch entry points: one image, a list of images, or a zip archive of images."""

from __future__ import annotations

import os
import shutil
import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Union

from zoompyramid.config import PipelineConfig
from zoompyramid.core.models import BatchResult, ImageResult
from zoompyramid.errors import DimensionProbeError
from zoompyramid.formats import ZoomifyFormat
from zoompyramid.formats.base import ImageFormat
from zoompyramid.imageops import create_operations
from zoompyramid.imageops.base import ImageOperations
from zoompyramid.logging import get_logger

from .geometry import PyramidGeometry
from .scheduler import ImageJob, PyramidScheduler

LOGGER = get_logger(__name__)

PathLike = Union[str, Path]


class PyramidProcessor:
    """Turn source images into Zoomify tile pyramids.

    The backend is resolved here, so an unknown backend name fails before any
    worker pool exists. Each batch call gets its own pool, shared by every
    image in that batch.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        *,
        operations: Optional[ImageOperations] = None,
        image_format: Optional[ImageFormat] = None,
    ) -> None:
        self._config = config or PipelineConfig()
        processing = self._config.processing
        self._operations = operations or create_operations(
            processing.backend,
            scratch_extension=processing.scratch_extension,
            quality=processing.tile_quality,
            normalize_original=processing.normalize_original,
            executable=processing.executable,
        )
        self._format = image_format or ZoomifyFormat()

    @property
    def image_format(self) -> ImageFormat:
        return self._format

    def process(self, source: PathLike, output_dir: Optional[PathLike] = None) -> ImageResult:
        """Build the pyramid of a single image."""

        return self.process_many([source], output_dir).results[0]

    def process_many(self, sources: Iterable[PathLike], output_dir: Optional[PathLike] = None) -> BatchResult:
        """Build pyramids for several images on one shared pool.

        Manifests are written once the whole batch has finished.
        """

        output_root = Path(output_dir) if output_dir is not None else self._config.output_dir
        temp_root = self._config.temp_dir
        slots: List[Union[ImageResult, PyramidGeometry]] = []
        seen_names = set()

        for source in sources:
            path = Path(source)
            if not _is_readable(path):
                LOGGER.error("source image missing or unreadable", extra={"source": str(path)})
                slots.append(ImageResult(source=path, error="source image missing or unreadable"))
                continue
            if path.stem in seen_names:
                LOGGER.error("duplicate image name in batch", extra={"source": str(path)})
                slots.append(ImageResult(source=path, error=f"another image in this batch is named {path.stem}"))
                continue
            try:
                geometry = PyramidGeometry.from_source(
                    path,
                    output_root=output_root,
                    temp_root=temp_root,
                    operations=self._operations,
                    image_format=self._format,
                )
            except DimensionProbeError as exc:
                LOGGER.error("cannot read image dimensions", extra={"source": str(path), "error": str(exc)})
                slots.append(ImageResult(source=path, error=str(exc)))
                continue
            seen_names.add(path.stem)
            slots.append(geometry)

        geometries = [slot for slot in slots if isinstance(slot, PyramidGeometry)]
        jobs = {}
        if geometries:
            scheduler = PyramidScheduler(self._operations, workers=self._config.processing.workers)
            for geometry in geometries:
                try:
                    jobs[id(geometry)] = scheduler.submit(geometry)
                except OSError as exc:
                    LOGGER.error("cannot create pyramid directories", extra={"source": str(geometry.source_path), "error": str(exc)})
            if not scheduler.join(self._config.processing.timeout_seconds):
                LOGGER.warning("batch timed out; finished tiles are left on disk")

        results: List[ImageResult] = []
        for slot in slots:
            if isinstance(slot, ImageResult):
                results.append(slot)
            elif id(slot) in jobs:
                results.append(self._finish(jobs[id(slot)]))
            else:
                results.append(ImageResult(source=slot.source_path, error="output directories could not be created"))
        batch = BatchResult(results=results)
        LOGGER.info(
            "batch finished",
            extra={"images": len(batch), "failed": len(batch.failed)},
        )
        return batch

    def process_archive(self, archive: PathLike, output_dir: Optional[PathLike] = None) -> BatchResult:
        """Extract a zip archive into scratch space and process every file in it."""

        archive_path = Path(archive)
        if not _is_readable(archive_path):
            LOGGER.error("archive missing or unreadable", extra={"archive": str(archive_path)})
            return BatchResult(results=[ImageResult(source=archive_path, error="archive missing or unreadable")])
        extract_dir = self._config.temp_dir / f"{archive_path.stem}-archive"
        try:
            images = extract_archive(archive_path, extract_dir)
            if not images:
                return BatchResult(results=[ImageResult(source=archive_path, error="archive contains no files")])
            return self.process_many(images, output_dir)
        except (zipfile.BadZipFile, OSError) as exc:
            LOGGER.error("cannot extract archive", extra={"archive": str(archive_path), "error": str(exc)})
            return BatchResult(results=[ImageResult(source=archive_path, error=f"cannot extract archive: {exc}")])
        finally:
            _remove_tree(extract_dir)

    def _finish(self, job: ImageJob) -> ImageResult:
        geometry = job.geometry
        result = job.result()
        if not job.finished:
            # Abandoned tasks may still be writing into the scratch area.
            return result
        if result.failures:
            LOGGER.error(
                "pyramid incomplete; manifest not written",
                extra=result.summary(),
            )
        else:
            try:
                result.manifest_path = self._format.write_manifest(
                    geometry.output_dir, geometry.width, geometry.height, geometry.tile_count
                )
            except OSError as exc:
                LOGGER.error("cannot write manifest", extra={"source": str(geometry.source_path), "error": str(exc)})
                result.error = f"cannot write manifest: {exc}"
            else:
                LOGGER.info(
                    "pyramid complete",
                    extra={"source": str(geometry.source_path), "tiles": result.tile_count, "tasks": job.completed_tasks},
                )
        _remove_tree(geometry.working_dir)
        return result


def extract_archive(archive: Path, destination: Path) -> List[Path]:
    """Extract regular files from ``archive`` and return their paths in archive order."""

    destination.mkdir(parents=True, exist_ok=True)
    extracted: List[Path] = []
    with zipfile.ZipFile(archive) as bundle:
        for info in bundle.infolist():
            if info.is_dir():
                continue
            name = PurePosixPath(info.filename)
            if name.is_absolute() or ".." in name.parts:
                LOGGER.warning("skipping unsafe archive entry", extra={"entry": info.filename})
                continue
            if name.parts[0] == "__MACOSX" or name.name.startswith("."):
                continue
            target = destination.joinpath(*name.parts)
            target.parent.mkdir(parents=True, exist_ok=True)
            with bundle.open(info) as src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)
            extracted.append(target)
    LOGGER.info("extracted archive", extra={"archive": str(archive), "files": len(extracted)})
    return extracted


def _is_readable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def _remove_tree(path: Path) -> None:
    if not path.exists():
        return
    try:
        shutil.rmtree(path)
    except OSError as exc:
        LOGGER.warning("failed to remove scratch directory", extra={"path": str(path), "error": str(exc)})
