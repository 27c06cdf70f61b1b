from __future__ import annotations

from dataclasses import dataclass

import numpy as np

MAX_DIMENSION = 6


@dataclass(frozen=True)
class PixelBuffer:
    """N-dimensional image with a trailing component axis.

    ``pixels`` has shape ``spatial_shape + (components,)`` so scalar images
    carry a component axis of length one.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim < 2:
            raise ValueError("PixelBuffer needs at least one spatial axis and a component axis")
        if self.pixels.ndim - 1 > MAX_DIMENSION:
            raise ValueError(
                f"PixelBuffer supports at most {MAX_DIMENSION} spatial axes, got {self.pixels.ndim - 1}"
            )
        if self.pixels.shape[-1] < 1:
            raise ValueError("PixelBuffer needs at least one component")

    @classmethod
    def from_array(cls, array: np.ndarray, components: int | None = None) -> "PixelBuffer":
        data = np.asarray(array, dtype=np.float64)
        if components is None:
            data = data[..., np.newaxis]
        elif data.shape[-1] != components:
            raise ValueError(f"Expected {components} components, array has shape {data.shape}")
        return cls(pixels=data)

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.pixels.shape[:-1])

    @property
    def dimension(self) -> int:
        return self.pixels.ndim - 1

    @property
    def components(self) -> int:
        return int(self.pixels.shape[-1])

    def component(self, index: int) -> np.ndarray:
        return self.pixels[..., index]
