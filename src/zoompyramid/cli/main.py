"""CLI entry point for zoompyramid."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from zoompyramid.config import PipelineConfig, load_config
from zoompyramid.core.models import BatchResult
from zoompyramid.errors import UnsupportedBackendError
from zoompyramid.imageops import BACKENDS
from zoompyramid.logging import configure_logging, get_logger
from zoompyramid.pyramid import PyramidProcessor

LOGGER = get_logger(__name__)


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--out", type=Path, default=None, help="Output directory (default: config output_dir)")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to pipeline configuration file (YAML or JSON)",
    )
    parser.add_argument("--backend", choices=BACKENDS, default=None, help="Image operation backend")
    parser.add_argument("--workers", type=int, default=None, help="Worker pool size (default: CPU count)")
    parser.add_argument("--timeout", type=float, default=None, help="Batch timeout in seconds")
    parser.add_argument("--temp-dir", type=Path, default=None, help="Scratch directory for intermediate images")
    parser.add_argument("--summary-json", action="store_true", help="Print per-image results as JSON")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert large images into Zoomify tile pyramids")
    parser.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    subcommands = parser.add_subparsers(dest="command", required=True)

    convert = subcommands.add_parser("convert", help="Build pyramids for one or more images")
    convert.add_argument("inputs", type=Path, nargs="+", help="Source image paths")
    _add_common_options(convert)

    archive = subcommands.add_parser("archive", help="Build pyramids for every image in a zip archive")
    archive.add_argument("archive", type=Path, help="Zip archive with source images")
    _add_common_options(archive)
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    configure_logging(level=args.log_level, json_logs=args.log_json)

    config = _resolve_config(args)
    try:
        processor = PyramidProcessor(config)
    except UnsupportedBackendError as exc:
        LOGGER.error(str(exc))
        return 2

    if args.command == "convert":
        batch = processor.process_many(args.inputs, config.output_dir)
    elif args.command == "archive":
        batch = processor.process_archive(args.archive, config.output_dir)
    else:
        parser.error("Unknown command")
        return 1
    _report(batch, as_json=args.summary_json)
    return 0 if batch.ok else 1


def _resolve_config(args: argparse.Namespace) -> PipelineConfig:
    if args.config is not None:
        resolved = args.config.resolve()
        if not resolved.exists():
            raise SystemExit(f"Configuration file not found: {resolved}")
        config = load_config(resolved)
    else:
        config = PipelineConfig()
    processing = config.processing
    if args.backend is not None:
        processing.backend = args.backend
    if args.workers is not None:
        if args.workers < 1:
            raise SystemExit("--workers must be at least 1")
        processing.workers = args.workers
    if args.timeout is not None:
        processing.timeout_seconds = args.timeout
    if args.temp_dir is not None:
        config.temp_dir = args.temp_dir
    if args.out is not None:
        config.output_dir = args.out
    return config


def _report(batch: BatchResult, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps([result.summary() for result in batch], indent=2))
        return
    for result in batch:
        if result.ok:
            print(f"ok      {result.source} -> {result.output_dir} ({result.tile_count} tiles)")
            continue
        reason = result.error or f"{len(result.failures)} failed task(s)"
        print(f"failed  {result.source}: {reason}")
        for failure in result.failures:
            print(f"        {failure.location}: {failure.message}")
