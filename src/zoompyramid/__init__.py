"""Zoomify image pyramid generation."""

from __future__ import annotations

import importlib
from typing import Any

__all__ = [
    "BatchResult",
    "ImageResult",
    "ImageOperations",
    "PipelineConfig",
    "ProcessingConfig",
    "PyramidGeometry",
    "PyramidProcessor",
    "PyramidScheduler",
    "ZoomifyFormat",
    "create_operations",
    "load_config",
]

_MODULE_MAP = {
    "BatchResult": ("zoompyramid.core", "BatchResult"),
    "ImageResult": ("zoompyramid.core", "ImageResult"),
    "ImageOperations": ("zoompyramid.imageops", "ImageOperations"),
    "PipelineConfig": ("zoompyramid.config", "PipelineConfig"),
    "ProcessingConfig": ("zoompyramid.core", "ProcessingConfig"),
    "PyramidGeometry": ("zoompyramid.pyramid", "PyramidGeometry"),
    "PyramidProcessor": ("zoompyramid.pyramid", "PyramidProcessor"),
    "PyramidScheduler": ("zoompyramid.pyramid", "PyramidScheduler"),
    "ZoomifyFormat": ("zoompyramid.formats", "ZoomifyFormat"),
    "create_operations": ("zoompyramid.imageops", "create_operations"),
    "load_config": ("zoompyramid.config", "load_config"),
}


def __getattr__(name: str) -> Any:
    if name not in _MODULE_MAP:
        raise AttributeError(f"module 'zoompyramid' has no attribute '{name}'")
    module_name, attr = _MODULE_MAP[name]
    module = importlib.import_module(module_name)
    return getattr(module, attr)
