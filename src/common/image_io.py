from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from common.pixel_buffer import MAX_DIMENSION, PixelBuffer
from common.png_utils import has_png_magic, is_png_path

VOLUME_SUFFIXES = {".npy"}


class DecodeError(RuntimeError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class EncodeError(RuntimeError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


def _image_to_array(image: Image.Image) -> np.ndarray:
    if image.mode == "P":
        image = image.convert("RGBA" if "transparency" in image.info else "RGB")
    elif image.mode == "1":
        image = image.convert("L")
    elif image.mode in {"I;16", "I;16B", "I;16L"}:
        image = image.convert("I")
    data = np.asarray(image, dtype=np.float64)
    if data.ndim == 2:
        data = data[:, :, np.newaxis]
    return data


def _load_volume(path: Path) -> np.ndarray:
    try:
        data = np.load(path, allow_pickle=False)
    except (OSError, ValueError) as exc:
        raise DecodeError(path, f"not a readable .npy volume ({exc})") from exc
    if data.ndim < 1 or data.ndim > MAX_DIMENSION:
        raise DecodeError(path, f"volume has {data.ndim} axes, expected 1..{MAX_DIMENSION}")
    if not np.issubdtype(data.dtype, np.number) and data.dtype != np.bool_:
        raise DecodeError(path, f"volume dtype {data.dtype} is not numeric")
    return np.asarray(data, dtype=np.float64)[..., np.newaxis]


def decode_image(path: Path) -> PixelBuffer:
    """Read ``path`` into a float64 :class:`PixelBuffer`.

    Raster formats go through Pillow; ``.npy`` files are read as scalar
    volumes with up to six spatial axes.
    """
    path = Path(path)
    if not path.exists():
        raise DecodeError(path, "file not found")
    if path.suffix.lower() in VOLUME_SUFFIXES:
        return PixelBuffer(pixels=_load_volume(path))
    if is_png_path(path) and not has_png_magic(path):
        raise DecodeError(path, "not a valid PNG (bad magic header)")
    try:
        with Image.open(path) as image:
            image.load()
            data = _image_to_array(image)
    except (OSError, ValueError, UnidentifiedImageError) as exc:
        raise DecodeError(path, f"unreadable image ({exc})") from exc
    return PixelBuffer(pixels=data)


def encode_image(path: Path, pixels: np.ndarray) -> None:
    """Write a 2-D uint8 array (grayscale, or RGB/RGBA with a trailing axis)."""
    path = Path(path)
    if pixels.ndim not in {2, 3}:
        raise EncodeError(path, f"expected a 2-D image, got shape {pixels.shape}")
    try:
        image = Image.fromarray(np.ascontiguousarray(pixels.astype(np.uint8)))
        path.parent.mkdir(parents=True, exist_ok=True)
        image.save(path)
    except (OSError, ValueError, TypeError) as exc:
        raise EncodeError(path, str(exc)) from exc
