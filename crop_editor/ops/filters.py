"""pyvips-backed filter executor.

Implements the operations produced by ``adjustments.build_operations`` plus
``crop`` for previews. Images are ``pyvips.Image`` objects, which are
immutable, so sharing the original between tasks is safe.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import numpy as np

from crop_editor.logger import get_logger

_logger = get_logger("filters")

RGB_CHANNELS = 3

_SEPIA = [
    [0.393, 0.769, 0.189],
    [0.349, 0.686, 0.168],
    [0.272, 0.534, 0.131],
]

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        _pyvips = pyvips
    return _pyvips


def load_image(path: str) -> Any:
    pyvips = _get_pyvips_module()
    image = pyvips.Image.new_from_file(path)
    if image.hasalpha():
        image = image.flatten(background=[0, 0, 0])
    if image.bands < RGB_CHANNELS:
        image = pyvips.Image.bandjoin([image] * RGB_CHANNELS)
    return image.colourspace("srgb")


def to_array(image: Any) -> np.ndarray:
    """Copy a pyvips image into an (h, w, bands) uint8 array."""
    if image.format != "uchar":
        image = image.cast("uchar")
    mem = image.write_to_memory()
    return np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands).copy()


def _rgb_split(image: Any) -> tuple[Any, Any | None]:
    if image.bands > RGB_CHANNELS:
        return image.extract_band(0, n=RGB_CHANNELS), image.extract_band(RGB_CHANNELS, n=image.bands - RGB_CHANNELS)
    return image, None


def _rgb_join(rgb: Any, rest: Any | None) -> Any:
    return rgb if rest is None else rgb.bandjoin(rest)


class VipsFilterExecutor:
    """Apply named operations to pyvips images."""

    def __init__(self, blur_sigma: float = 4.0):
        self.blur_sigma = float(blur_sigma)

    def apply(self, image: Any, name: str, params: Mapping[str, Any]) -> Any:
        handler = getattr(self, f"_op_{name}", None)
        if handler is None:
            raise ValueError(f"unknown filter operation: {name!r}")
        _logger.debug("apply %s %s", name, dict(params))
        return handler(image, params)

    def _op_crop(self, image: Any, params: Mapping[str, Any]) -> Any:
        left = max(0, int(round(float(params["left"]))))
        top = max(0, int(round(float(params["top"]))))
        width = min(int(round(float(params["width"]))), image.width - left)
        height = min(int(round(float(params["height"]))), image.height - top)
        if width <= 0 or height <= 0:
            raise ValueError(f"empty crop {dict(params)} for {image.width}x{image.height}")
        return image.crop(left, top, width, height)

    def _op_brightness(self, image: Any, params: Mapping[str, Any]) -> Any:
        brightness = float(params.get("brightness", 0.0))
        mul = 1.0 + float(params.get("contrast", 0.0))
        rgb, rest = _rgb_split(image)
        # Contrast pivots around mid-grey, brightness is an offset
        out = rgb.linear(mul, 128.0 * (1.0 - mul) + brightness).cast("uchar")
        return _rgb_join(out, rest)

    def _op_fliph(self, image: Any, params: Mapping[str, Any]) -> Any:
        return image.fliphor()

    def _op_flipv(self, image: Any, params: Mapping[str, Any]) -> Any:
        return image.flipver()

    def _op_desaturate(self, image: Any, params: Mapping[str, Any]) -> Any:
        rgb, rest = _rgb_split(image)
        return _rgb_join(rgb.colourspace("b-w").colourspace("srgb"), rest)

    def _op_sepia(self, image: Any, params: Mapping[str, Any]) -> Any:
        pyvips = _get_pyvips_module()
        rgb, rest = _rgb_split(image)
        out = rgb.recomb(pyvips.Image.new_from_array(_SEPIA)).cast("uchar")
        return _rgb_join(out, rest)

    def _op_invert(self, image: Any, params: Mapping[str, Any]) -> Any:
        rgb, rest = _rgb_split(image)
        return _rgb_join(rgb.invert(), rest)

    def _op_rotate(self, image: Any, params: Mapping[str, Any]) -> Any:
        angle = int(float(params.get("angle", 0)))
        # Negative angles turn clockwise
        if angle == -90:
            return image.rot("d90")
        if angle == 90:
            return image.rot("d270")
        if angle == 0:
            return image
        raise ValueError(f"unsupported rotation angle: {angle}")

    def _op_sharpen(self, image: Any, params: Mapping[str, Any]) -> Any:
        amount = max(0.0, float(params.get("amount", 0.0)))
        if amount == 0:
            return image
        return image.sharpen(m2=amount * 3.0).cast("uchar")

    def _op_blurfast(self, image: Any, params: Mapping[str, Any]) -> Any:
        rect = params["rect"]
        region = self._op_crop(image, rect)
        sigma = max(0.1, float(params.get("amount", 1.0)) * self.blur_sigma)
        blurred = region.gaussblur(sigma).cast(image.format)
        return image.insert(blurred, int(round(float(rect["left"]))), int(round(float(rect["top"]))))
