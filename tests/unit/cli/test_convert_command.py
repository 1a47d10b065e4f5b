import importlib
import json
import zipfile
from pathlib import Path

import pytest

from zoompyramid.core.models import BatchResult, ImageResult, TaskFailure

cli_main = importlib.import_module("zoompyramid.cli.main")


def _stub_processor(called: dict, batch: BatchResult):
    class StubProcessor:
        def __init__(self, config):
            called["config"] = config

        def process_many(self, sources, output_dir):
            called["process_many"] = {"sources": list(sources), "output_dir": output_dir}
            return batch

        def process_archive(self, archive, output_dir):
            called["process_archive"] = {"archive": archive, "output_dir": output_dir}
            return batch

    return StubProcessor


def test_convert_passes_options_to_processor(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys) -> None:
    source = tmp_path / "photo.tif"
    source.touch()
    out_dir = tmp_path / "out"
    called: dict = {}
    batch = BatchResult(
        results=[
            ImageResult(
                source=source,
                output_dir=out_dir / "photo",
                tile_count=21,
                manifest_path=out_dir / "photo" / "ImageProperties.xml",
            )
        ]
    )
    monkeypatch.setattr(cli_main, "PyramidProcessor", _stub_processor(called, batch))

    exit_code = cli_main.main(
        [
            "convert",
            str(source),
            "--out",
            str(out_dir),
            "--backend",
            "graphicsmagick",
            "--workers",
            "2",
            "--timeout",
            "30",
            "--temp-dir",
            str(tmp_path / "scratch"),
        ]
    )

    assert exit_code == 0
    config = called["config"]
    assert config.processing.backend == "graphicsmagick"
    assert config.processing.workers == 2
    assert config.processing.timeout_seconds == 30.0
    assert config.temp_dir == tmp_path / "scratch"
    assert called["process_many"] == {"sources": [source], "output_dir": out_dir}
    assert "21 tiles" in capsys.readouterr().out


def test_archive_command_reports_failures_as_json(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys) -> None:
    archive = tmp_path / "images.zip"
    with zipfile.ZipFile(archive, "w") as bundle:
        bundle.writestr("a.tif", "")
    called: dict = {}
    failure = TaskFailure(kind="row", message="crop failed", level=2, row=1)
    batch = BatchResult(results=[ImageResult(source=tmp_path / "a.tif", failures=(failure,))])
    monkeypatch.setattr(cli_main, "PyramidProcessor", _stub_processor(called, batch))

    exit_code = cli_main.main(["archive", str(archive), "--out", str(tmp_path / "out"), "--summary-json"])

    assert exit_code == 1
    assert called["process_archive"]["archive"] == archive
    summary = json.loads(capsys.readouterr().out)
    assert summary[0]["ok"] is False
    assert summary[0]["failure_counts"] == {"row": 1}
    assert summary[0]["failures"] == ["row level=2 row=1: crop failed"]


def test_unknown_backend_in_config_exits_with_usage_error(tmp_path: Path) -> None:
    config_path = tmp_path / "pipeline.yaml"
    config_path.write_text("processing:\n  backend: vips\n", encoding="utf-8")
    source = tmp_path / "photo.tif"
    source.touch()

    exit_code = cli_main.main(["convert", str(source), "--config", str(config_path)])

    assert exit_code == 2


def test_missing_config_file_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="Configuration file not found"):
        cli_main.main(["convert", str(tmp_path / "a.tif"), "--config", str(tmp_path / "missing.yaml")])


def test_rejects_non_positive_workers(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="at least 1"):
        cli_main.main(["convert", str(tmp_path / "a.tif"), "--workers", "0"])
