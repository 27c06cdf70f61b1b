from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_INTENSITY_TOLERANCE = 0.0001
DEFAULT_PIXELS_TOLERANCE = 0
DEFAULT_RADIUS_TOLERANCE = 0


@dataclass(frozen=True)
class ToleranceSpec:
    intensity: float = DEFAULT_INTENSITY_TOLERANCE
    pixels: int = DEFAULT_PIXELS_TOLERANCE
    radius: int = DEFAULT_RADIUS_TOLERANCE

    def __post_init__(self) -> None:
        if self.intensity < 0:
            raise ValueError(f"intensity tolerance must be >= 0, got {self.intensity}")
        if self.pixels < 0:
            raise ValueError(f"pixel count tolerance must be >= 0, got {self.pixels}")
        if self.radius < 0:
            raise ValueError(f"radius tolerance must be >= 0, got {self.radius}")


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text())
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at top of YAML: {path}")
    return data


def load_tolerance_spec(data: dict[str, Any]) -> ToleranceSpec:
    tolerances = data.get("tolerances", {}) or {}
    if not isinstance(tolerances, dict):
        raise ValueError("tolerances must be a mapping")
    try:
        intensity = float(tolerances.get("intensity", DEFAULT_INTENSITY_TOLERANCE))
        pixels = int(tolerances.get("pixels", DEFAULT_PIXELS_TOLERANCE))
        radius = int(tolerances.get("radius", DEFAULT_RADIUS_TOLERANCE))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid tolerance values: {exc}") from exc
    return ToleranceSpec(intensity=intensity, pixels=pixels, radius=radius)
