from __future__ import annotations

from pathlib import Path

import numpy as np

from common.image_io import DecodeError
from common.pixel_buffer import PixelBuffer
from comparators.baselines import (
    E7002_BASELINE_DECODE_FAILED,
    E7003_SHAPE_MISMATCH,
    UNSCORED,
    enumerate_baselines,
    select_best,
    split_baseline_name,
)
from comparators.config import ToleranceSpec


def _touch(path: Path) -> Path:
    path.write_bytes(b"")
    return path


def _buffer_with_differences(count: int, shape: tuple[int, int] = (4, 4)) -> PixelBuffer:
    data = np.zeros(shape)
    data.flat[:count] = 10.0
    return PixelBuffer.from_array(data)


def test_enumerate_stops_at_first_missing_index(tmp_path: Path) -> None:
    canonical = _touch(tmp_path / "img.png")
    _touch(tmp_path / "img.1.png")
    _touch(tmp_path / "img.2.png")

    assert enumerate_baselines(canonical) == [
        tmp_path / "img.png",
        tmp_path / "img.1.png",
        tmp_path / "img.2.png",
    ]


def test_enumerate_does_not_skip_gaps(tmp_path: Path) -> None:
    canonical = _touch(tmp_path / "img.png")
    _touch(tmp_path / "img.1.png")
    _touch(tmp_path / "img.3.png")

    assert enumerate_baselines(canonical) == [canonical, tmp_path / "img.1.png"]


def test_enumerate_keeps_missing_canonical(tmp_path: Path) -> None:
    assert enumerate_baselines(tmp_path / "absent.png") == [tmp_path / "absent.png"]


def test_split_uses_last_dot_of_file_name(tmp_path: Path) -> None:
    assert split_baseline_name(Path("dir.v2/scan.nii.gz")) == ("scan.nii", ".gz")
    assert split_baseline_name(Path("dir.v2/noext")) == ("noext", "")

    canonical = _touch(tmp_path / "noext")
    _touch(tmp_path / "noext.1")
    assert enumerate_baselines(canonical) == [canonical, tmp_path / "noext.1"]


def test_select_best_prefers_lowest_score_and_stops_at_zero() -> None:
    buffers = {
        Path("img.png"): _buffer_with_differences(5),
        Path("img.1.png"): _buffer_with_differences(0),
        Path("img.2.png"): _buffer_with_differences(3),
    }
    read: list[Path] = []

    def reader(path: Path) -> PixelBuffer:
        read.append(path)
        return buffers[path]

    selection = select_best(list(buffers), _buffer_with_differences(0), ToleranceSpec(), reader=reader)

    assert selection.best_path == Path("img.1.png")
    assert selection.score == 0
    assert selection.passed
    assert read == [Path("img.png"), Path("img.1.png")]
    assert selection.candidates[0].score == 5
    assert not selection.candidates[2].evaluated


def test_select_best_keeps_first_on_ties() -> None:
    buffers = {
        Path("a.png"): _buffer_with_differences(2),
        Path("a.1.png"): _buffer_with_differences(4),
        Path("a.2.png"): _buffer_with_differences(2),
    }
    selection = select_best(list(buffers), _buffer_with_differences(0), ToleranceSpec(), reader=buffers.__getitem__)

    assert selection.best_path == Path("a.png")
    assert selection.score == 2
    assert all(candidate.evaluated for candidate in selection.candidates)
    assert selection.result is not None and selection.result.differing_pixels == 2


def test_passing_within_pixel_tolerance_scores_zero() -> None:
    buffers = {Path("b.png"): _buffer_with_differences(2)}
    selection = select_best(
        list(buffers), _buffer_with_differences(0), ToleranceSpec(pixels=2), reader=buffers.__getitem__
    )
    assert selection.score == 0


def test_unreadable_and_mismatched_candidates_are_excluded() -> None:
    def reader(path: Path) -> PixelBuffer:
        if path.name == "c.png":
            raise DecodeError(path, "file not found")
        if path.name == "c.1.png":
            return _buffer_with_differences(0, shape=(3, 3))
        return _buffer_with_differences(1)

    candidates = [Path("c.png"), Path("c.1.png"), Path("c.2.png")]
    selection = select_best(candidates, _buffer_with_differences(0), ToleranceSpec(), reader=reader)

    assert selection.best_path == Path("c.2.png")
    assert selection.score == 1
    codes = [issue.code for issue in selection.issues]
    assert codes == [E7002_BASELINE_DECODE_FAILED, E7003_SHAPE_MISMATCH]
    assert selection.candidates[0].score is None
    assert selection.candidates[1].issue is not None


def test_all_candidates_excluded_is_unscored() -> None:
    def reader(path: Path) -> PixelBuffer:
        raise DecodeError(path, "broken")

    selection = select_best([Path("d.png")], _buffer_with_differences(0), ToleranceSpec(), reader=reader)

    assert selection.best is None
    assert selection.score == UNSCORED
    assert selection.best_path == Path("d.png")
    assert not selection.passed
