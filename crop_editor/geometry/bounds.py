"""Convert stored normalized crops to pixel bounds and back."""

from __future__ import annotations

import math

from .errors import ConstraintViolation, InvalidGeometry, RoundTripDrift
from .types import Bounds, ImageSize, NormalizedCrop, SizeGroup, SizeSpec

ROUND_TRIP_TOLERANCE = 1e-9


def auto_bounds(aspect_ratio: float, image: ImageSize) -> Bounds:
    """Largest box of ``aspect_ratio`` that fits the image, top-aligned and centered horizontally."""
    if not math.isfinite(aspect_ratio) or aspect_ratio <= 0:
        raise InvalidGeometry(f"aspect ratio must be positive: {aspect_ratio}")
    width = image.height * aspect_ratio
    height = image.width / aspect_ratio
    if width > image.width:
        width = height * aspect_ratio
    else:
        height = width / aspect_ratio
    return Bounds(left=(image.width - width) / 2, top=0.0, width=width, height=height)


def crop_to_pixels(crop: NormalizedCrop, image: ImageSize) -> Bounds:
    return Bounds(
        left=crop.x * image.width,
        top=crop.y * image.height,
        width=crop.width * image.width,
        height=crop.height * image.height,
    )


def to_pixels(spec: SizeSpec, image: ImageSize) -> Bounds:
    """Pixel bounds for a size against a rendered image; unset crops are auto-centered."""
    if spec.crop.is_unset:
        return auto_bounds(spec.aspect_ratio, image)
    return crop_to_pixels(spec.crop, image)


def to_normalized(bounds: Bounds, image: ImageSize, aspect_ratio: float | None = None) -> NormalizedCrop:
    """Inverse of :func:`crop_to_pixels`.

    With ``aspect_ratio`` the height is derived from the width so the stored
    crop keeps the exact ratio of its group.
    """
    bounds.validated()
    height = bounds.height
    if aspect_ratio is not None:
        height = bounds.width / aspect_ratio
    return NormalizedCrop(
        x=bounds.left / image.width,
        y=bounds.top / image.height,
        width=bounds.width / image.width,
        height=height / image.height,
    )


def group_bounds(group: SizeGroup, image: ImageSize) -> Bounds:
    return to_pixels(group.first, image)


def set_group_crop(group: SizeGroup, crop: NormalizedCrop) -> None:
    """Write the same crop to every member of the group."""
    for spec in group.sizes:
        spec.crop = crop


def validate_bounds(container: ImageSize, bounds: Bounds, min_size: float = 0.0, strict: bool = False) -> bool:
    """Return True when ``bounds`` lies inside ``container`` and meets ``min_size``.

    With ``strict`` a failing check raises :class:`ConstraintViolation` instead.
    """
    eps = 1e-9
    ok = (
        bounds.is_finite()
        and bounds.left >= -eps
        and bounds.top >= -eps
        and bounds.width >= min_size - eps
        and bounds.height >= min_size - eps
        and bounds.right <= container.width + eps
        and bounds.bottom <= container.height + eps
    )
    if not ok and strict:
        raise ConstraintViolation(f"bounds {bounds} violate container {container} (min {min_size})")
    return ok


def check_round_trip(crop: NormalizedCrop, image: ImageSize, tolerance: float = ROUND_TRIP_TOLERANCE) -> None:
    back = to_normalized(crop_to_pixels(crop, image), image)
    for name in ("x", "y", "width", "height"):
        a = getattr(crop, name)
        b = getattr(back, name)
        if abs(a - b) > tolerance:
            raise RoundTripDrift(f"{name} drifted {a!r} -> {b!r} at {image.width}x{image.height}")
