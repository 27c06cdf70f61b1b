from __future__ import annotations

from pathlib import Path
from typing import Callable

import numpy as np
import typer

from common.console import echo_issue, echo_measurement, echo_measurement_file
from common.image_io import encode_image
from common.pixel_buffer import PixelBuffer
from comparators.image_compare import ComparisonResult
from comparators.report import DriverIssue

E7101_RENDER_FAILED = "E7101_RENDER_FAILED"
E7102_WRITE_FAILED = "E7102_WRITE_FAILED"

ARTIFACTS = (
    ("DifferenceImage", ".diff.png"),
    ("BaselineImage", ".base.png"),
    ("TestImage", ".test.png"),
)


def artifact_path(test_path: Path, suffix: str) -> Path:
    return Path(f"{test_path}{suffix}")


def rescale_to_uint8(array: np.ndarray) -> np.ndarray:
    low = float(np.min(array))
    high = float(np.max(array))
    if not np.isfinite(low) or not np.isfinite(high):
        raise ValueError("cannot rescale an image with non-finite values")
    if high <= low:
        return np.zeros(array.shape, dtype=np.uint8)
    scaled = (array - low) * (255.0 / (high - low))
    return np.clip(np.rint(scaled), 0, 255).astype(np.uint8)


def representative_slice(array: np.ndarray) -> np.ndarray:
    # Middle index on every axis past the first two; edge slices of volumes
    # are often empty.
    if array.ndim == 1:
        return array[np.newaxis, :]
    index = (slice(None), slice(None)) + tuple(extent // 2 for extent in array.shape[2:])
    return array[index]


def render_artifact(component: np.ndarray) -> np.ndarray:
    return representative_slice(rescale_to_uint8(component))


def _write_artifact(
    path: Path,
    source: np.ndarray,
    writer: Callable[[Path, np.ndarray], None],
) -> DriverIssue | None:
    try:
        rendered = render_artifact(source)
    except Exception as exc:  # noqa: BLE001
        return DriverIssue(
            code=E7101_RENDER_FAILED,
            message=f"Error during rescale of {path}: {exc}",
            hint="Check the image values for NaN or infinity.",
            context={"path": str(path)},
        )
    try:
        writer(path, rendered)
    except Exception as exc:  # noqa: BLE001
        return DriverIssue(
            code=E7102_WRITE_FAILED,
            message=f"Error during write of {path}: {exc}",
            hint="Ensure the test output directory is writable.",
            context={"path": str(path)},
        )
    return None


def report_differences(
    baseline_path: Path,
    test_path: Path,
    test_buffer: PixelBuffer,
    baseline_buffer: PixelBuffer,
    result: ComparisonResult,
    writer: Callable[[Path, np.ndarray], None] = encode_image,
) -> list[DriverIssue]:
    """Write diff, baseline and test pictures next to ``test_path``.

    The component with the most differing pixels is rendered. A failure on
    one artifact is reported and the others are still written.
    """
    echo_measurement("ImageError", result.differing_pixels)
    component = result.worst_component
    if result.difference is None:
        difference = np.abs(baseline_buffer.component(component) - test_buffer.component(component))
    else:
        difference = result.difference[..., component]
    sources = {
        "DifferenceImage": difference,
        "BaselineImage": baseline_buffer.component(component),
        "TestImage": test_buffer.component(component),
    }
    issues: list[DriverIssue] = []
    for name, suffix in ARTIFACTS:
        path = artifact_path(test_path, suffix)
        issue = _write_artifact(path, sources[name], writer)
        if issue is not None:
            issue.context = {**(issue.context or {}), "baseline": str(baseline_path)}
            echo_issue(issue)
            issues.append(issue)
        echo_measurement_file(name, path)
    if issues:
        typer.echo(f"{len(issues)} of {len(ARTIFACTS)} diff artifacts failed for {test_path}", err=True)
    return issues
