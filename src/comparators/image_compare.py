from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from common.pixel_buffer import PixelBuffer
from comparators.config import ToleranceSpec


class DiffError(RuntimeError):
    pass


class ShapeMismatchError(DiffError):
    def __init__(self, kind: str, baseline: tuple[int, ...] | int, test: tuple[int, ...] | int) -> None:
        if kind == "components":
            message = f"Component count mismatch: baseline has {baseline}, test has {test}"
        else:
            message = f"Image size mismatch: baseline {baseline} vs test {test}"
        super().__init__(message)
        self.kind = kind
        self.baseline = baseline
        self.test = test


@dataclass
class ComparisonResult:
    differing_pixels: int
    passed: bool
    exact: bool = True
    per_component: list[int] = field(default_factory=list)
    minimum_difference: float = 0.0
    maximum_difference: float = 0.0
    mean_difference: float = 0.0
    total_difference: float = 0.0
    difference: np.ndarray | None = None

    @property
    def worst_component(self) -> int:
        if not self.per_component:
            return 0
        return int(np.argmax(self.per_component))

    def to_dict(self) -> dict[str, Any]:
        return {
            "differing_pixels": self.differing_pixels,
            "passed": self.passed,
            "exact": self.exact,
            "per_component": list(self.per_component),
            "minimum_difference": self.minimum_difference,
            "maximum_difference": self.maximum_difference,
            "mean_difference": self.mean_difference,
            "total_difference": self.total_difference,
        }


def check_comparable(valid: PixelBuffer, test: PixelBuffer) -> None:
    if valid.shape != test.shape:
        raise ShapeMismatchError("size", valid.shape, test.shape)
    if valid.components != test.components:
        raise ShapeMismatchError("components", valid.components, test.components)


def _absolute_difference(valid: np.ndarray, test: np.ndarray) -> np.ndarray:
    # NaN against NaN and equal infinities count as equal; NaN against a
    # number stays NaN so it can never match.
    with np.errstate(invalid="ignore"):
        difference = np.abs(valid - test)
    difference[(valid == test) | (np.isnan(valid) & np.isnan(test))] = 0.0
    return difference


def _neighbourhood_difference(valid: np.ndarray, test: np.ndarray, radius: int) -> np.ndarray:
    """Smallest |valid - test| over the test neighbourhood of each pixel.

    The neighbourhood is a Chebyshev ball of ``radius`` clipped to the image;
    edge padding repeats in-bounds pixels so clipping needs no special case.
    NaN neighbours are skipped; a pixel with no comparable neighbour stays NaN.
    """
    best = _absolute_difference(valid, test)
    if radius == 0:
        return best
    padded = np.pad(test, radius, mode="edge")
    for offset in itertools.product(range(-radius, radius + 1), repeat=valid.ndim):
        if not any(offset):
            continue
        window = tuple(
            slice(radius + delta, radius + delta + extent)
            for delta, extent in zip(offset, valid.shape)
        )
        np.fmin(best, _absolute_difference(valid, padded[window]), out=best)
    return best


def compare_buffers(
    valid: PixelBuffer,
    test: PixelBuffer,
    tolerance: ToleranceSpec,
    exact: bool = False,
) -> ComparisonResult:
    """Count pixels of ``test`` that differ from ``valid`` beyond ``tolerance``.

    Components are scanned in order. Unless ``exact`` is set, scanning stops
    once the running count exceeds ``tolerance.pixels``; the returned count is
    then a lower bound and ``exact`` is False on the result.

    A pixel whose difference is undefined (NaN against a number, with no
    comparable neighbour) always counts. Such pixels are left out of the
    difference statistics and drawn at full scale in the difference map.
    """
    check_comparable(valid, test)
    difference = np.zeros(valid.pixels.shape, dtype=np.float64)
    per_component: list[int] = []
    status = 0
    total = 0.0
    measured = 0
    minimum: float | None = None
    maximum = 0.0
    for index in range(valid.components):
        if not exact and status > tolerance.pixels:
            break
        nearest = _neighbourhood_difference(valid.component(index), test.component(index), tolerance.radius)
        undefined = ~np.isfinite(nearest)
        mask = undefined | (nearest > tolerance.intensity)
        count = int(np.count_nonzero(mask))
        per_component.append(count)
        status += count
        if not count:
            continue
        finite = nearest[mask & ~undefined]
        layer = difference[..., index]
        layer[mask] = nearest[mask]
        if finite.size:
            total += float(finite.sum())
            measured += int(finite.size)
            low = float(finite.min())
            minimum = low if minimum is None else min(minimum, low)
            maximum = max(maximum, float(finite.max()))
        layer[mask & undefined] = float(finite.max()) if finite.size else 1.0
    return ComparisonResult(
        differing_pixels=status,
        passed=status <= tolerance.pixels,
        exact=len(per_component) == valid.components,
        per_component=per_component,
        minimum_difference=minimum or 0.0,
        maximum_difference=maximum,
        mean_difference=total / measured if measured else 0.0,
        total_difference=total,
        difference=difference,
    )
