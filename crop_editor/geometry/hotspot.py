"""Map hotspot rects between canonical storage space and display space.

Canonical space is the natural image before rotation, flipping and scaling.
Display space is the rendered image after all three. The forward mapping is

1. rotate (90 / -90 / none),
2. flip horizontally / vertically against the rotated extent,
3. multiply by the effective display scale,

and :meth:`HotspotTransform.to_canonical` undoes the steps in reverse order,
so ``to_canonical(to_display(h)) == h`` for every rotation/flip/scale.

The rotation step uses the extent of the *rotated* image along the new x
axis (90) or y axis (-90), taken from the displayed size divided by scale.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidGeometry
from .types import Bounds, Hotspot, ImageAdjustment, ImageSize

CANVAS_REFERENCE_SIZE = 1000.0

Rect = tuple[float, float, float, float]


def effective_scale(
    scale: float, rotation: int, canvas: ImageSize | None = None, reference: float = CANVAS_REFERENCE_SIZE
) -> float:
    """Display scale, widened by the canvas size when the image is shrunk to fit."""
    if scale < 1 and canvas is not None:
        side = canvas.width if rotation == 0 else canvas.height
        return side / reference * scale
    return scale


def rotate_rect(rect: Rect, rotation: int, extent: float) -> Rect:
    x, y, w, h = rect
    if rotation == 90:
        return extent - y - w, x, h, w
    if rotation == -90:
        return y, extent - x - h, h, w
    if rotation == 0:
        return rect
    raise InvalidGeometry(f"unsupported rotation: {rotation!r}")


def unrotate_rect(rect: Rect, rotation: int, extent: float) -> Rect:
    x, y, w, h = rect
    if rotation == 90:
        return y, extent - x - h, h, w
    if rotation == -90:
        return extent - y - w, x, h, w
    if rotation == 0:
        return rect
    raise InvalidGeometry(f"unsupported rotation: {rotation!r}")


def flip_rect(rect: Rect, flip_h: bool, flip_v: bool, extent_w: float, extent_h: float) -> Rect:
    # Self-inverse, so it serves both directions
    x, y, w, h = rect
    if flip_h:
        x = extent_w - x - w
    if flip_v:
        y = extent_h - y - h
    return x, y, w, h


@dataclass(frozen=True, slots=True)
class HotspotTransform:
    """Transform bound to one adjustment state and displayed image size."""

    adjustment: ImageAdjustment
    displayed: ImageSize
    canvas: ImageSize | None = None
    reference: float = CANVAS_REFERENCE_SIZE

    @property
    def scale(self) -> float:
        a = self.adjustment
        return effective_scale(a.scale, a.rotation, self.canvas, self.reference)

    @property
    def _extent(self) -> tuple[float, float]:
        s = self.scale
        return self.displayed.width / s, self.displayed.height / s

    def _rotation_extent(self) -> float:
        ew, eh = self._extent
        return ew if self.adjustment.rotation == 90 else eh

    def to_display(self, hotspot: Hotspot) -> Bounds:
        """Display rect for a canonical hotspot. Points come back with zero size."""
        a = self.adjustment
        w, h = (0.0, 0.0) if hotspot.is_point else (hotspot.width, hotspot.height)
        rect = rotate_rect((hotspot.x, hotspot.y, w, h), a.rotation, self._rotation_extent())
        rect = flip_rect(rect, a.flip_h, a.flip_v, *self._extent)
        s = self.scale
        x, y, w, h = (v * s for v in rect)
        return Bounds(x, y, w, h)

    def to_canonical(self, bounds: Bounds, point: bool = False) -> Hotspot:
        """Inverse of :meth:`to_display`. ``point`` ignores the displayed size."""
        bounds.validated()
        a = self.adjustment
        inv = 1.0 / self.scale
        w, h = (0.0, 0.0) if point else (bounds.width, bounds.height)
        rect = (bounds.left * inv, bounds.top * inv, w * inv, h * inv)
        rect = flip_rect(rect, a.flip_h, a.flip_v, *self._extent)
        x, y, w, h = unrotate_rect(rect, a.rotation, self._rotation_extent())
        if point:
            return Hotspot(x=x, y=y)
        return Hotspot(x=x, y=y, width=w, height=h)


def canonical_to_display(
    hotspot: Hotspot, adjustment: ImageAdjustment, displayed: ImageSize, canvas: ImageSize | None = None
) -> Bounds:
    return HotspotTransform(adjustment, displayed, canvas).to_display(hotspot)


def display_to_canonical(
    bounds: Bounds,
    adjustment: ImageAdjustment,
    displayed: ImageSize,
    canvas: ImageSize | None = None,
    point: bool = False,
) -> Hotspot:
    return HotspotTransform(adjustment, displayed, canvas).to_canonical(bounds, point)
