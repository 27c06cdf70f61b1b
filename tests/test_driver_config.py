from __future__ import annotations

from pathlib import Path

import pytest

from comparators.config import ToleranceSpec
from imgdriver.config import (
    CONFIG_ENV,
    DEFAULT_CONFIG,
    E7301_CONFIG_INVALID,
    E7303_CONFIG_MISSING,
    load_driver_config,
    resolve_config_path,
)
from imgdriver.driver import run_driver
from imgdriver.errors import ImageDriverError
from imgdriver.selection import FixedSelection


def test_default_config_registers_samples() -> None:
    config = load_driver_config(DEFAULT_CONFIG)
    assert config.tolerance == ToleranceSpec(intensity=0.0001, pixels=0, radius=0)
    assert config.register == ["imgdriver.sample_tests:register_tests"]


def test_env_var_selects_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "driver.yaml"
    path.write_text("tolerances:\n  pixels: 4\n")
    monkeypatch.setenv(CONFIG_ENV, str(path))
    assert resolve_config_path() == path
    assert load_driver_config(path).tolerance.pixels == 4


def test_missing_env_config_is_an_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(CONFIG_ENV, str(tmp_path / "nope.yaml"))
    with pytest.raises(ImageDriverError) as excinfo:
        resolve_config_path()
    assert excinfo.value.code == E7303_CONFIG_MISSING


@pytest.mark.parametrize(
    "text",
    ["tolerances:\n  radius: -2\n", "tolerances:\n  pixels: lots\n", "- a\n- b\n", "tests: [a]\n"],
)
def test_invalid_config(tmp_path: Path, text: str) -> None:
    path = tmp_path / "driver.yaml"
    path.write_text(text)
    with pytest.raises(ImageDriverError) as excinfo:
        load_driver_config(path)
    assert excinfo.value.code == E7301_CONFIG_INVALID


def test_run_driver_with_named_tests(tmp_path: Path) -> None:
    config = tmp_path / "driver.yaml"
    config.write_text("tests:\n  Flat: imgdriver.sample_tests:constant_image\n")
    output = tmp_path / "flat.png"

    assert run_driver(["Flat", str(output), "9", "4", "3"], config_path=config) == 0
    assert output.exists()
    assert run_driver(["--compare", str(output), str(output), "Flat", str(output), "9", "4", "3"], config_path=config) == 0
    assert run_driver([], config_path=config, selection=FixedSelection(0)) == -1


def test_run_driver_reports_bad_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = tmp_path / "driver.yaml"
    config.write_text("register:\n  - imgdriver.sample_tests:nothing_here\n")
    assert run_driver(["Anything"], config_path=config) == -1
    assert "E7302_ENTRY_POINT_INVALID" in capsys.readouterr().err


def test_shifted_sample_needs_radius(tmp_path: Path) -> None:
    baseline = tmp_path / "gradient.png"
    output = tmp_path / "shifted.png"
    assert run_driver(["GradientImage", str(baseline), "16", "4"], config_path=DEFAULT_CONFIG) == 0

    args = ["--compare", str(baseline), str(output), "ShiftedGradientImage", str(output), "1", "16", "4"]
    assert run_driver(args, config_path=DEFAULT_CONFIG) > 0
    # The last column has no in-bounds neighbour holding its value.
    relaxed = ["--compareRadiusTolerance", "1", "--compareNumberOfPixelsTolerance", "4", *args]
    assert run_driver(relaxed, config_path=DEFAULT_CONFIG) == 0
