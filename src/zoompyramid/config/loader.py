"""Configuration management with YAML and JSON support."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from zoompyramid.core.models import ProcessingConfig


@dataclass
class PipelineConfig:
    """Top-level configuration object for a pyramid run."""

    temp_dir: Path = Path("tmp")
    output_dir: Path = Path("output")
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)

    def resolve_relative_paths(self, base_dir: Path) -> None:
        """Resolve relative directories against the provided base directory."""

        if not self.temp_dir.is_absolute():
            self.temp_dir = base_dir / self.temp_dir
        if not self.output_dir.is_absolute():
            self.output_dir = base_dir / self.output_dir


class ConfigLoader:
    """Load pipeline configuration files in YAML or JSON format."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path.cwd()

    def load(self, path: Path | str) -> PipelineConfig:
        """Parse a configuration file and return a populated dataclass."""

        config_path = self._resolve_path(Path(path))
        payload = self._load_payload(config_path)
        config = self._build_config(payload)
        config.resolve_relative_paths(config_path.parent)
        return config

    def _resolve_path(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return (self._base_dir / path).resolve()

    def _load_payload(self, path: Path) -> Dict[str, Any]:
        suffix = path.suffix.lower()
        if suffix in {".yaml", ".yml"}:
            with path.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle) or {}
        elif suffix == ".json":
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle) or {}
        else:
            raise ValueError(f"Unsupported configuration format: {suffix}")
        if not isinstance(payload, dict):
            raise ValueError("configuration root must be a mapping")
        return payload

    def _build_config(self, payload: Dict[str, Any]) -> PipelineConfig:
        temp_dir = Path(payload.get("temp_dir", "tmp"))
        output_dir = Path(payload.get("output_dir", "output"))

        processing_payload = payload.get("processing") or {}
        if not isinstance(processing_payload, dict):
            raise ValueError("processing section must be a mapping")
        known = {item.name for item in fields(ProcessingConfig)}
        unknown = sorted(set(processing_payload) - known)
        if unknown:
            raise ValueError(f"unknown processing options: {', '.join(unknown)}")
        processing_data = dict(processing_payload)
        if processing_data.get("workers") is not None:
            processing_data["workers"] = int(processing_data["workers"])
            if processing_data["workers"] < 1:
                raise ValueError("processing.workers must be at least 1")
        if "timeout_seconds" in processing_data:
            processing_data["timeout_seconds"] = float(processing_data["timeout_seconds"])
        if "tile_quality" in processing_data:
            processing_data["tile_quality"] = int(processing_data["tile_quality"])
        extension = processing_data.get("scratch_extension")
        if extension and not str(extension).startswith("."):
            processing_data["scratch_extension"] = f".{extension}"
        processing = ProcessingConfig(**processing_data)

        return PipelineConfig(
            temp_dir=temp_dir,
            output_dir=output_dir,
            processing=processing,
        )


def load_config(path: Path | str, *, base_dir: Optional[Path] = None) -> PipelineConfig:
    """Convenience wrapper around :class:`ConfigLoader`."""

    loader = ConfigLoader(base_dir=base_dir)
    return loader.load(path)
