from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from common.image_io import DecodeError, decode_image
from common.pixel_buffer import PixelBuffer
from comparators.config import ToleranceSpec
from comparators.image_compare import ComparisonResult, ShapeMismatchError, compare_buffers
from comparators.report import DriverIssue

# Status of a pair whose baselines could not be scored at all.
UNSCORED = 1000

E7002_BASELINE_DECODE_FAILED = "E7002_BASELINE_DECODE_FAILED"
E7003_SHAPE_MISMATCH = "E7003_SHAPE_MISMATCH"


@dataclass
class BaselineCandidate:
    path: Path
    score: int | None = None
    evaluated: bool = False
    issue: DriverIssue | None = None


@dataclass
class BaselineSelection:
    candidates: list[BaselineCandidate]
    best: BaselineCandidate | None = None
    baseline: PixelBuffer | None = None
    result: ComparisonResult | None = None
    issues: list[DriverIssue] = field(default_factory=list)

    @property
    def score(self) -> int:
        if self.best is None or self.best.score is None:
            return UNSCORED
        return self.best.score

    @property
    def passed(self) -> bool:
        return self.score == 0

    @property
    def best_path(self) -> Path:
        if self.best is not None:
            return self.best.path
        return self.candidates[0].path


def split_baseline_name(path: Path) -> tuple[str, str]:
    name = path.name
    dot = name.rfind(".")
    if dot == -1:
        return name, ""
    return name[:dot], name[dot:]


def enumerate_baselines(canonical_path: Path) -> list[Path]:
    """List ``canonical_path`` followed by its numbered alternates.

    ``img.png`` is followed by ``img.1.png``, ``img.2.png`` and so on. The
    scan stops at the first missing number, so a gap hides later alternates.
    """
    canonical_path = Path(canonical_path)
    stem, suffix = split_baseline_name(canonical_path)
    baselines = [canonical_path]
    index = 1
    while True:
        candidate = canonical_path.with_name(f"{stem}.{index}{suffix}")
        if not candidate.is_file():
            break
        baselines.append(candidate)
        index += 1
    return baselines


def _score(result: ComparisonResult) -> int:
    return 0 if result.passed else result.differing_pixels


def select_best(
    candidates: Sequence[Path],
    test_buffer: PixelBuffer,
    tolerance: ToleranceSpec,
    reader: Callable[[Path], PixelBuffer] = decode_image,
) -> BaselineSelection:
    """Pick the candidate with the fewest reported differences.

    Ties keep the earlier candidate. Evaluation stops at the first candidate
    that passes. Unreadable or differently shaped candidates are skipped and
    recorded in ``issues``.
    """
    selection = BaselineSelection(candidates=[BaselineCandidate(path=Path(path)) for path in candidates])
    for candidate in selection.candidates:
        candidate.evaluated = True
        try:
            baseline = reader(candidate.path)
        except DecodeError as exc:
            candidate.issue = DriverIssue(
                code=E7002_BASELINE_DECODE_FAILED,
                message=f"Exception detected while reading {candidate.path}: {exc.reason}",
                hint="Check that the baseline file is a readable image.",
                context={"path": str(candidate.path)},
            )
            selection.issues.append(candidate.issue)
            continue
        try:
            result = compare_buffers(baseline, test_buffer, tolerance, exact=True)
        except ShapeMismatchError as exc:
            candidate.issue = DriverIssue(
                code=E7003_SHAPE_MISMATCH,
                message=f"{exc} ({candidate.path})",
                hint="Regenerate the baseline or fix the test output size.",
                context={"path": str(candidate.path), "kind": exc.kind},
            )
            selection.issues.append(candidate.issue)
            continue
        candidate.score = _score(result)
        if selection.best is None or candidate.score < selection.score:
            selection.best = candidate
            selection.baseline = baseline
            selection.result = result
        if candidate.score == 0:
            break
    return selection
