from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from comparators.config import ToleranceSpec
from imgdriver.errors import ImageDriverError

E7206_USAGE_INVALID = "E7206_USAGE_INVALID"


@dataclass
class DriverOptions:
    test_name: str | None = None
    test_args: list[str] = field(default_factory=list)
    compare: list[tuple[Path, Path]] = field(default_factory=list)
    tolerance: ToleranceSpec = field(default_factory=ToleranceSpec)
    expect_fail: bool = False
    # Recorded only; the driver runs single-threaded.
    threads: int | None = None


def _usage_error(flag: str, value: str, expected: str) -> ImageDriverError:
    return ImageDriverError(
        code=E7206_USAGE_INVALID,
        message=f"{flag} expects {expected}, got {value!r}",
        hint=f"Pass {flag} followed by {expected}.",
    )


def _parse_count(flag: str, value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise _usage_error(flag, value, "a non-negative integer") from exc
    if parsed < 0:
        raise _usage_error(flag, value, "a non-negative integer")
    return parsed


def _parse_intensity(flag: str, value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise _usage_error(flag, value, "a non-negative number") from exc
    if parsed < 0:
        raise _usage_error(flag, value, "a non-negative number")
    return parsed


def parse_driver_args(argv: Sequence[str], defaults: ToleranceSpec | None = None) -> DriverOptions:
    """Consume driver flags up to the test name.

    The first token that is not a recognised flag (or a flag missing its
    values) becomes the test name; everything after it belongs to the test.
    """
    tokens = list(argv)
    tolerance = defaults or ToleranceSpec()
    intensity = tolerance.intensity
    pixels = tolerance.pixels
    radius = tolerance.radius
    options = DriverOptions()
    while tokens and options.test_name is None:
        flag = tokens[0]
        if flag == "--with-threads" and len(tokens) > 1:
            options.threads = _parse_count(flag, tokens[1])
            del tokens[:2]
        elif flag == "--without-threads":
            options.threads = 1
            del tokens[:1]
        elif flag == "--compare" and len(tokens) > 2:
            options.compare.append((Path(tokens[1]), Path(tokens[2])))
            del tokens[:3]
        elif flag == "--compareNumberOfPixelsTolerance" and len(tokens) > 1:
            pixels = _parse_count(flag, tokens[1])
            del tokens[:2]
        elif flag == "--compareRadiusTolerance" and len(tokens) > 1:
            radius = _parse_count(flag, tokens[1])
            del tokens[:2]
        elif flag == "--compareIntensityTolerance" and len(tokens) > 1:
            intensity = _parse_intensity(flag, tokens[1])
            del tokens[:2]
        elif flag == "--expectFail":
            options.expect_fail = True
            del tokens[:1]
        else:
            options.test_name = flag
            del tokens[:1]
    options.test_args = tokens
    options.tolerance = ToleranceSpec(intensity=intensity, pixels=pixels, radius=radius)
    return options
