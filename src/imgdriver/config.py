from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from comparators.config import ToleranceSpec, _load_yaml, load_tolerance_spec
from imgdriver.errors import ImageDriverError

DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config" / "driver.v1.yaml"
CONFIG_ENV = "IMAGE_DRIVER_CONFIG"

E7301_CONFIG_INVALID = "E7301_CONFIG_INVALID"
E7303_CONFIG_MISSING = "E7303_CONFIG_MISSING"


@dataclass(frozen=True)
class DriverConfig:
    tolerance: ToleranceSpec = field(default_factory=ToleranceSpec)
    tests: dict[str, str] = field(default_factory=dict)
    register: list[str] = field(default_factory=list)


def resolve_config_path(path: Path | None = None) -> Path | None:
    if path is not None:
        resolved = path
    else:
        env_value = os.environ.get(CONFIG_ENV)
        if not env_value:
            return DEFAULT_CONFIG if DEFAULT_CONFIG.exists() else None
        resolved = Path(env_value).expanduser()
    if not resolved.exists():
        raise ImageDriverError(
            code=E7303_CONFIG_MISSING,
            message=f"Driver config not found: {resolved}",
            hint=f"Point {CONFIG_ENV} at an existing driver YAML file.",
        )
    return resolved


def load_driver_config(path: Path | None) -> DriverConfig:
    if path is None:
        return DriverConfig()
    try:
        data = _load_yaml(path)
        tolerance = load_tolerance_spec(data)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ImageDriverError(
            code=E7301_CONFIG_INVALID,
            message=f"Invalid driver config {path}: {exc}",
            hint="Check the tolerances section of the driver YAML.",
        ) from exc
    tests = data.get("tests", {}) or {}
    register = data.get("register", []) or []
    if not isinstance(tests, dict) or not isinstance(register, list):
        raise ImageDriverError(
            code=E7301_CONFIG_INVALID,
            message=f"Invalid driver config {path}: tests must be a mapping and register a list",
            hint="Use `tests: {Name: module:function}` and `register: [module:function]`.",
        )
    return DriverConfig(
        tolerance=tolerance,
        tests={str(name): str(spec) for name, spec in tests.items()},
        register=[str(hook) for hook in register],
    )
