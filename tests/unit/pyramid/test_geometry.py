import threading
from pathlib import Path

import pytest

from zoompyramid.errors import DimensionProbeError
from zoompyramid.formats import ZoomifyFormat
from zoompyramid.pyramid import PyramidGeometry, TileCounter


def _geometry(source: Path, ops, tmp_path: Path, fmt=None) -> PyramidGeometry:
    return PyramidGeometry.from_source(
        source,
        output_root=tmp_path / "out",
        temp_root=tmp_path / "scratch",
        operations=ops,
        image_format=fmt or ZoomifyFormat(),
    )


def test_geometry_of_1000_by_800(fake_ops, make_source, tmp_path: Path) -> None:
    geometry = _geometry(make_source("photo.tif", 1000, 800), fake_ops, tmp_path)

    assert (geometry.width, geometry.height) == (1000, 800)
    assert geometry.level_count == 2
    assert geometry.level_dimensions(0) == (250, 200)
    assert geometry.level_dimensions(1) == (500, 400)
    assert geometry.level_dimensions(2) == (1000, 800)
    assert geometry.expected_tile_count() == 1 + 4 + 16
    assert geometry.output_dir == tmp_path / "out" / "photo"
    assert geometry.working_dir == tmp_path / "scratch" / "photo"


def test_level_dimensions_never_grow(fake_ops, make_source, tmp_path: Path) -> None:
    geometry = _geometry(make_source("wide.tif", 9000, 3100), fake_ops, tmp_path)

    previous = (0, 0)
    for level in range(geometry.level_count + 1):
        dims = geometry.level_dimensions(level)
        assert dims[0] >= previous[0] and dims[1] >= previous[1]
        previous = dims
    assert max(geometry.level_dimensions(0)) <= 256


def test_elongated_image_keeps_one_pixel(fake_ops, make_source, tmp_path: Path) -> None:
    geometry = _geometry(make_source("strip.tif", 4096, 3), fake_ops, tmp_path)

    assert geometry.level_dimensions(0) == (256, 1)


def test_level_outside_pyramid(fake_ops, make_source, tmp_path: Path) -> None:
    geometry = _geometry(make_source("photo.tif", 1000, 800), fake_ops, tmp_path)

    with pytest.raises(ValueError):
        geometry.level_dimensions(3)


def test_minimal_image_has_single_level(fake_ops, make_source, tmp_path: Path) -> None:
    geometry = _geometry(make_source("tiny.tif", 256, 256), fake_ops, tmp_path)

    assert geometry.level_count == 0
    assert geometry.expected_tile_count() == 1


@pytest.mark.parametrize("probed", [(0, 5), (5, -1), ("10", 10), (True, 4), (1.5, 2)])
def test_probe_must_yield_positive_integers(fake_ops, make_source, tmp_path: Path, probed) -> None:
    source = make_source("odd.tif", 10, 10)
    fake_ops.probe_override[str(source)] = probed

    with pytest.raises(DimensionProbeError):
        _geometry(source, fake_ops, tmp_path)


def test_unreadable_dimensions(fake_ops, tmp_path: Path) -> None:
    source = tmp_path / "garbage.tif"
    source.write_text("garbage")

    with pytest.raises(DimensionProbeError):
        _geometry(source, fake_ops, tmp_path)


def test_construction_does_not_touch_output(fake_ops, make_source, tmp_path: Path) -> None:
    geometry = _geometry(make_source("photo.tif", 1000, 800), fake_ops, tmp_path)

    assert not geometry.output_dir.exists()
    geometry.prepare_directories()
    geometry.prepare_directories()
    assert geometry.output_dir.is_dir()
    assert geometry.working_dir.is_dir()


def test_tile_counter_is_unique_across_threads() -> None:
    counter = TileCounter()
    seen = []
    lock = threading.Lock()

    def worker() -> None:
        local = [counter.increment() for _ in range(500)]
        with lock:
            seen.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(seen) == list(range(4000))
    assert counter.value == 4000


def test_each_geometry_owns_its_counter(fake_ops, make_source, tmp_path: Path) -> None:
    first = _geometry(make_source("a.tif", 1000, 800), fake_ops, tmp_path)
    second = _geometry(make_source("b.tif", 1000, 800), fake_ops, tmp_path)

    assert [first.next_tile_index() for _ in range(3)] == [0, 1, 2]
    assert second.next_tile_index() == 0
    assert first.tile_count == 3
    assert second.tile_count == 1
