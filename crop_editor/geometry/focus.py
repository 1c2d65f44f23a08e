"""Focus-point cropping: one click recrops every size group around a point."""

from __future__ import annotations

import math
from collections.abc import Mapping

from crop_editor.logger import get_logger

from .errors import InvalidGeometry
from .types import ImageSize, NormalizedCrop, SizeGroup

_logger = get_logger("focus")


def _shift(centered: float, extent: float, focus: float) -> float:
    # Move the centered window toward the focus, keeping it inside 0..1
    pos = centered - (0.5 - focus)
    if pos < 0:
        return 0.0
    if pos + extent > 1:
        return 1.0 - extent
    return pos


def compute_crop(focus_x: float, focus_y: float, original_aspect: float, target_aspect: float) -> NormalizedCrop:
    """Largest crop of ``target_aspect`` positioned as close to centered on the focus as fits.

    Args:
        focus_x, focus_y: focus point as fractions (0..1) of the original image
        original_aspect: width/height of the original image
        target_aspect: width/height of the output size

    Returns:
        Normalized crop. Only one axis is ever cropped.
    """
    for name, v in (("focus_x", focus_x), ("focus_y", focus_y)):
        if not math.isfinite(v) or not 0.0 <= v <= 1.0:
            raise InvalidGeometry(f"{name} must be within 0..1: {v}")
    for name, v in (("original_aspect", original_aspect), ("target_aspect", target_aspect)):
        if not math.isfinite(v) or v <= 0:
            raise InvalidGeometry(f"{name} must be positive: {v}")

    if original_aspect > target_aspect:
        # Original is wider: trim width
        excess = 1.0 - target_aspect / original_aspect
        width = 1.0 - excess
        return NormalizedCrop(x=_shift(excess / 2, width, focus_x), y=0.0, width=width, height=1.0)

    if original_aspect < target_aspect:
        excess = 1.0 - original_aspect / target_aspect
        height = 1.0 - excess
        return NormalizedCrop(x=0.0, y=_shift(excess / 2, height, focus_y), width=1.0, height=height)

    return NormalizedCrop(0.0, 0.0, 1.0, 1.0)


def plan_focus_crops(
    groups: Mapping[str, SizeGroup], focus_x: float, focus_y: float, image: ImageSize
) -> dict[str, NormalizedCrop]:
    """Crop for every group, each against its own target aspect ratio."""
    crops = {
        key: compute_crop(focus_x, focus_y, image.aspect_ratio, group.aspect_ratio) for key, group in groups.items()
    }
    _logger.debug("focus (%.3f, %.3f) planned %d crops", focus_x, focus_y, len(crops))
    return crops
