from pathlib import Path

import pytest
from PIL import Image

from zoompyramid.errors import DimensionProbeError, OperationError
from zoompyramid.imageops import PillowOperations


@pytest.fixture()
def ops() -> PillowOperations:
    return PillowOperations(scratch_extension=".png", quality=85)


@pytest.fixture()
def source(tmp_path: Path) -> Path:
    path = tmp_path / "source.png"
    Image.new("RGB", (500, 300), (200, 30, 30)).save(path)
    return path


def test_probe_dimensions(ops: PillowOperations, source: Path) -> None:
    assert ops.probe_dimensions(source) == (500, 300)


def test_probe_rejects_non_image(ops: PillowOperations, tmp_path: Path) -> None:
    bogus = tmp_path / "notes.png"
    bogus.write_text("not an image")

    with pytest.raises(DimensionProbeError):
        ops.probe_dimensions(bogus)


def test_scale(ops: PillowOperations, source: Path, tmp_path: Path) -> None:
    target = tmp_path / "level-0.png"

    ops.scale(source, target, 250, 150)

    with Image.open(target) as image:
        assert image.size == (250, 150)


def test_crop_row_clamps_last_row(ops: PillowOperations, source: Path, tmp_path: Path) -> None:
    target = tmp_path / "row-1-1.png"

    ops.crop_row(source, target, 256, 300, 500, 256)

    with Image.open(target) as image:
        assert image.size == (500, 44)


def test_crop_tile_clamps_last_column(ops: PillowOperations, source: Path, tmp_path: Path) -> None:
    row = tmp_path / "row.png"
    ops.crop_row(source, row, 256, 300, 500, 256)
    tile = tmp_path / "tile.jpg"

    ops.crop_tile(row, tile, 256, 44, 1)

    with Image.open(tile) as image:
        assert image.size == (244, 44)
        assert image.format == "JPEG"


def test_crop_tile_outside_row_fails(ops: PillowOperations, source: Path, tmp_path: Path) -> None:
    with pytest.raises(OperationError):
        ops.crop_tile(source, tmp_path / "tile.jpg", 256, 256, 2)


def test_scale_missing_source_fails(ops: PillowOperations, tmp_path: Path) -> None:
    with pytest.raises(OperationError):
        ops.scale(tmp_path / "missing.png", tmp_path / "out.png", 10, 10)


def test_jpeg_output_drops_alpha(ops: PillowOperations, tmp_path: Path) -> None:
    rgba = tmp_path / "alpha.png"
    Image.new("RGBA", (40, 40), (0, 0, 255, 128)).save(rgba)
    target = tmp_path / "alpha.jpg"

    ops.scale(rgba, target, 20, 20)

    with Image.open(target) as image:
        assert image.mode == "RGB"


def test_transcode_and_normalize(source: Path, tmp_path: Path) -> None:
    ops = PillowOperations(scratch_extension=".tif", normalize_original=True)
    scratch = tmp_path / "scratch"
    scratch.mkdir()

    converted = ops.transcode(source, ".bmp")
    prepared = ops.prepare_original(source, scratch, "source")

    assert converted == source.with_suffix(".bmp")
    assert prepared == scratch / "source.tif"
    with Image.open(prepared) as image:
        assert image.size == (500, 300)


def test_probe_accepts_images_above_decompression_limit(ops: PillowOperations, tmp_path: Path) -> None:
    huge = tmp_path / "huge.png"
    Image.new("1", (14000, 14000)).save(huge)

    assert ops.probe_dimensions(huge) == (14000, 14000)
