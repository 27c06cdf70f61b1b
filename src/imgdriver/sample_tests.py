"""Small image-producing entry points used by the default driver config."""

from __future__ import annotations

from pathlib import Path

import numpy as np

from common.image_io import encode_image
from imgdriver.errors import ImageDriverError
from imgdriver.registry import TestRegistry

E7401_SAMPLE_USAGE = "E7401_SAMPLE_USAGE"


def _usage(name: str, usage: str) -> ImageDriverError:
    return ImageDriverError(
        code=E7401_SAMPLE_USAGE,
        message=f"usage: {name} {usage}",
        hint="Pass the output path after the test name.",
    )


def _int_arg(argv: list[str], index: int, default: int) -> int:
    return int(argv[index]) if len(argv) > index else default


def _gradient(width: int, height: int, shift: int = 0) -> np.ndarray:
    columns = (np.arange(width) - shift) * 255 // max(width - 1, 1)
    row = np.clip(columns, 0, 255).astype(np.uint8)
    return np.tile(row, (height, 1))


def gradient_image(argv: list[str]) -> int:
    """GradientImage <output> [width] [height]"""
    if len(argv) < 2:
        raise _usage(argv[0] if argv else "GradientImage", "<output> [width] [height]")
    encode_image(Path(argv[1]), _gradient(_int_arg(argv, 2, 32), _int_arg(argv, 3, 32)))
    return 0


def shifted_gradient_image(argv: list[str]) -> int:
    """ShiftedGradientImage <output> <shift> [width] [height]"""
    if len(argv) < 3:
        raise _usage(argv[0] if argv else "ShiftedGradientImage", "<output> <shift> [width] [height]")
    image = _gradient(_int_arg(argv, 3, 32), _int_arg(argv, 4, 32), shift=int(argv[2]))
    encode_image(Path(argv[1]), image)
    return 0


def constant_image(argv: list[str]) -> int:
    """ConstantImage <output> <value> [width] [height]"""
    if len(argv) < 3:
        raise _usage(argv[0] if argv else "ConstantImage", "<output> <value> [width] [height]")
    value = int(argv[2])
    image = np.full((_int_arg(argv, 4, 32), _int_arg(argv, 3, 32)), value, dtype=np.uint8)
    encode_image(Path(argv[1]), image)
    return 0


def register_tests(registry: TestRegistry) -> None:
    registry.register("ConstantImage", constant_image)
    registry.register("GradientImage", gradient_image)
    registry.register("ShiftedGradientImage", shifted_gradient_image)
