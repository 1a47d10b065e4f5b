"""Bounded worker pool that expands and runs pyramid task graphs.

No task ever waits on another. A task returns its children, and the worker
that ran it submits them before reporting the parent finished, so pool
threads are never held idle and a single worker is enough to finish any
pyramid. Completion of an image is tracked with a pending-task count that
only reaches zero once its whole subtree has run.
"""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from zoompyramid.core.models import ImageResult, TaskFailure
from zoompyramid.errors import PyramidError, SchedulerClosedError
from zoompyramid.imageops.base import ImageOperations
from zoompyramid.logging import get_logger

from .geometry import PyramidGeometry
from .tasks import PrepareOriginalTask, Task, TaskContext

LOGGER = get_logger(__name__)


class ImageJob:
    """Dependency-counting join over every task scheduled for one image."""

    def __init__(self, geometry: PyramidGeometry, operations: ImageOperations) -> None:
        self.geometry = geometry
        self.context = TaskContext(geometry=geometry, operations=operations)
        self._lock = threading.Lock()
        self._pending = 0
        self._completed = 0
        self._failures: List[TaskFailure] = []
        self._done = threading.Event()
        self._abandoned = False

    def _enter(self) -> None:
        with self._lock:
            self._pending += 1

    def _leave(self) -> None:
        with self._lock:
            self._pending -= 1
            self._completed += 1
            if self._pending == 0:
                self._done.set()

    def record_failure(self, failure: TaskFailure) -> None:
        with self._lock:
            self._failures.append(failure)

    def abandon(self, reason: str) -> None:
        """Mark the image as given up; tasks that have not started yet are skipped."""

        with self._lock:
            if self._done.is_set() or self._abandoned:
                return
            self._abandoned = True
            self._failures.append(TaskFailure(kind="timeout", message=reason))

    @property
    def abandoned(self) -> bool:
        with self._lock:
            return self._abandoned

    @property
    def finished(self) -> bool:
        return self._done.is_set()

    @property
    def completed_tasks(self) -> int:
        with self._lock:
            return self._completed

    @property
    def failures(self) -> List[TaskFailure]:
        with self._lock:
            return list(self._failures)

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def result(self) -> ImageResult:
        geometry = self.geometry
        return ImageResult(
            source=geometry.source_path,
            output_dir=geometry.output_dir,
            width=geometry.width,
            height=geometry.height,
            level_count=geometry.level_count,
            tile_count=geometry.tile_count,
            failures=tuple(self.failures),
        )


class PyramidScheduler:
    """Run the level -> row -> tile decomposition of many images on one pool."""

    def __init__(self, operations: ImageOperations, *, workers: Optional[int] = None) -> None:
        self._operations = operations
        self.workers = workers if workers is not None else (os.cpu_count() or 1)
        if self.workers < 1:
            raise ValueError("workers must be at least 1")
        self._executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="pyramid")
        self._jobs: List[ImageJob] = []
        self._accepting = True
        self._lock = threading.Lock()

    def __enter__(self) -> "PyramidScheduler":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
        self._executor.shutdown(wait=exc_type is None, cancel_futures=exc_type is not None)

    @property
    def jobs(self) -> List[ImageJob]:
        with self._lock:
            return list(self._jobs)

    def submit(self, geometry: PyramidGeometry) -> ImageJob:
        """Schedule the whole pyramid of ``geometry`` and return its job handle."""

        with self._lock:
            if not self._accepting:
                raise SchedulerClosedError(f"scheduler no longer accepts images ({geometry.source_path})")
            job = ImageJob(geometry, self._operations)
            self._jobs.append(job)
        geometry.prepare_directories()
        LOGGER.info(
            "scheduling pyramid",
            extra={"source": str(geometry.source_path), "tiles": geometry.expected_tile_count()},
        )
        self._dispatch(job, PrepareOriginalTask())
        return job

    def close(self) -> None:
        """Stop accepting new images; tasks spawned by running images still run."""

        with self._lock:
            self._accepting = False

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for every submitted image, then release the pool.

        Returns ``False`` when the deadline passed first. Unfinished images are
        abandoned, queued tasks are cancelled and tiles already written stay
        on disk.
        """

        self.close()
        deadline = None if timeout is None else time.monotonic() + timeout
        for job in self.jobs:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            if not job.wait(remaining):
                break
        unfinished = [job for job in self.jobs if not job.finished]
        if not unfinished:
            self._executor.shutdown(wait=True)
            return True

        for job in unfinished:
            LOGGER.warning(
                "pyramid did not finish before timeout",
                extra={"source": str(job.geometry.source_path), "timeout_s": timeout},
            )
            job.abandon(f"not finished within {timeout} seconds")
        self._executor.shutdown(wait=False, cancel_futures=True)
        return False

    def _dispatch(self, job: ImageJob, task: Task) -> None:
        job._enter()
        try:
            self._executor.submit(self._execute, job, task)
        except RuntimeError as exc:
            # The pool is already shut down after a timeout.
            if not job.abandoned:
                job.record_failure(task.failure(f"not scheduled: {exc}"))
            job._leave()

    def _execute(self, job: ImageJob, task: Task) -> None:
        try:
            if job.abandoned:
                return
            try:
                children = task.run(job.context)
            except (PyramidError, OSError) as exc:
                failure = task.failure(str(exc))
                LOGGER.error(
                    "pyramid task failed",
                    extra={"source": str(job.geometry.source_path), "task": failure.location, "error": str(exc)},
                )
                job.record_failure(failure)
                return
            except Exception as exc:
                failure = task.failure(f"{type(exc).__name__}: {exc}")
                LOGGER.exception(
                    "unexpected error in pyramid task",
                    extra={"source": str(job.geometry.source_path), "task": failure.location},
                )
                job.record_failure(failure)
                return
            for child in children:
                self._dispatch(job, child)
        finally:
            job._leave()
