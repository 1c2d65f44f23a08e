"""Constrained drag-move/resize shared by crop boxes, text overlays and hotspots.

A drag is described by a *mode function* ``f(event, original, delta)`` that
returns only the fields it changes (a :class:`BoundsPatch`). The result is
merged over the original bounds and clamped against a container rect:

- moving: size is preserved, position is shifted back inside the container.
- resizing with an aspect ratio (corner handles): the ratio holds even at the
  minimum footprint and when the container clips the box.
- resizing without a ratio (edge handles): width/height are clipped
  independently.

Edges the handle does not touch stay anchored, so a top-left resize keeps
the bottom-right corner where it was.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from crop_editor.logger import get_logger

from .errors import InvalidGeometry
from .types import Bounds, ImageSize

_logger = get_logger("drag")

MIN_BOX_SIZE = 10.0

_EPS = 1e-9


@dataclass(frozen=True, slots=True)
class DragDelta:
    """Pointer delta plus the aspect-locked variant used by corner handles."""

    x: float
    y: float
    constrained_x: float
    constrained_y: float

    @classmethod
    def from_pointer(cls, dx: float, dy: float, aspect_ratio: float | None = None) -> DragDelta:
        if not (math.isfinite(dx) and math.isfinite(dy)):
            raise InvalidGeometry(f"non-finite drag delta: ({dx}, {dy})")
        if not aspect_ratio or not math.isfinite(aspect_ratio) or aspect_ratio <= 0:
            return cls(dx, dy, dx, dy)
        # Whichever axis moved further wins, scaled by the ratio
        return cls(dx, dy, max(dx, dy * aspect_ratio), max(dy, dx / aspect_ratio))


@dataclass(frozen=True, slots=True)
class BoundsPatch:
    left: float | None = None
    top: float | None = None
    width: float | None = None
    height: float | None = None
    moving: bool = False

    def apply(self, original: Bounds) -> Bounds:
        return Bounds(
            left=original.left if self.left is None else self.left,
            top=original.top if self.top is None else self.top,
            width=original.width if self.width is None else self.width,
            height=original.height if self.height is None else self.height,
        )


ModeFunction = Callable[[Any, Bounds, DragDelta], BoundsPatch]


def move(event: Any, original: Bounds, delta: DragDelta) -> BoundsPatch:
    return BoundsPatch(moving=True, left=original.left + delta.x, top=original.top + delta.y)


def resize_top_left(event: Any, original: Bounds, delta: DragDelta) -> BoundsPatch:
    return BoundsPatch(
        left=original.left + delta.constrained_x,
        top=original.top + delta.constrained_y,
        width=original.width - delta.constrained_x,
        height=original.height - delta.constrained_y,
    )


def resize_bottom_right(event: Any, original: Bounds, delta: DragDelta) -> BoundsPatch:
    return BoundsPatch(
        width=original.width + delta.constrained_x,
        height=original.height + delta.constrained_y,
    )


def resize_left(event: Any, original: Bounds, delta: DragDelta) -> BoundsPatch:
    return BoundsPatch(left=original.left + delta.x, width=original.width - delta.x)


def resize_right(event: Any, original: Bounds, delta: DragDelta) -> BoundsPatch:
    return BoundsPatch(width=original.width + delta.x)


MODES: dict[str, ModeFunction] = {
    "move": move,
    "tl": resize_top_left,
    "br": resize_bottom_right,
    "l": resize_left,
    "r": resize_right,
}

# Handles whose resize keeps the aspect ratio when one is given
CORNER_HANDLES = frozenset({"tl", "br"})


def mode_for(handle: str) -> ModeFunction:
    try:
        return MODES[handle]
    except KeyError:
        raise InvalidGeometry(f"unknown drag handle: {handle!r}") from None


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def clamp_move(bounds: Bounds, container: ImageSize) -> Bounds:
    """Shift a moving box back inside the container without resizing it."""
    left = _clamp(bounds.left, 0.0, max(0.0, container.width - bounds.width))
    top = _clamp(bounds.top, 0.0, max(0.0, container.height - bounds.height))
    return bounds.moved(left, top)


def _footprint(aspect_ratio: float, min_size: float) -> tuple[float, float]:
    # The shorter side sits on the floor, the other follows the ratio
    if aspect_ratio > 1.0:
        return aspect_ratio * min_size, min_size
    return min_size, min_size / aspect_ratio


def clamp_locked_resize(
    bounds: Bounds,
    container: ImageSize,
    aspect_ratio: float,
    min_size: float = MIN_BOX_SIZE,
    fixed_right: float | None = None,
    fixed_bottom: float | None = None,
) -> Bounds:
    """Clamp an aspect-locked resize.

    ``fixed_right``/``fixed_bottom`` are the anchored far edges when the
    handle moves the left/top edge.
    """
    ar = float(aspect_ratio)
    left, top, width = bounds.left, bounds.top, bounds.width
    height = width / ar

    def anchor() -> None:
        nonlocal left, top
        if fixed_right is not None:
            left = fixed_right - width
        if fixed_bottom is not None:
            top = fixed_bottom - height

    if width < min_size or height < min_size:
        width, height = _footprint(ar, min_size)
        anchor()

    if left < 0:
        width += left
        height = width / ar
        left = 0.0
        if fixed_bottom is not None:
            top = fixed_bottom - height

    if top < 0:
        height += top
        width = height * ar
        top = 0.0
        if fixed_right is not None:
            left = fixed_right - width

    overflow = left + width - container.width
    if overflow > 0:
        width -= overflow
        height = width / ar
        if fixed_bottom is not None:
            top = fixed_bottom - height

    overflow = top + height - container.height
    if overflow > 0:
        height -= overflow
        width = height * ar
        if fixed_right is not None:
            left = fixed_right - width

    if width < min_size - _EPS or height < min_size - _EPS:
        # Squeezed against the container: restore the floor and slide inside
        width, height = _footprint(ar, min_size)
        if width > container.width:
            width = container.width
            height = width / ar
        if height > container.height:
            height = container.height
            width = height * ar
        anchor()
        left = _clamp(left, 0.0, container.width - width)
        top = _clamp(top, 0.0, container.height - height)
        _logger.debug("resize squeezed to footprint %.1fx%.1f at (%.1f, %.1f)", width, height, left, top)

    return Bounds(left, top, width, height)


def clamp_free_resize(
    bounds: Bounds,
    container: ImageSize,
    min_size: float = MIN_BOX_SIZE,
    fixed_right: float | None = None,
    fixed_bottom: float | None = None,
    resize_height: bool = False,
) -> Bounds:
    """Clamp a resize that does not keep an aspect ratio (edge handles).

    Only the dimensions the handle changed are clamped: edge handles leave
    ``top`` and ``height`` exactly as they were.
    """
    left, top, width, height = bounds.left, bounds.top, bounds.width, bounds.height

    if left < 0:
        if fixed_right is not None:
            width += left
        left = 0.0
    if left + width > container.width:
        width = container.width - left

    if width < min_size:
        width = min(min_size, container.width)
        if fixed_right is not None:
            left = fixed_right - width
        left = _clamp(left, 0.0, container.width - width)

    if resize_height:
        if top < 0:
            if fixed_bottom is not None:
                height += top
            top = 0.0
        if top + height > container.height:
            height = container.height - top
        if height < min_size:
            height = min(min_size, container.height)
            if fixed_bottom is not None:
                top = fixed_bottom - height
            top = _clamp(top, 0.0, container.height - height)
    return Bounds(left, top, width, height)


def constrain(
    patch: BoundsPatch,
    original: Bounds,
    container: ImageSize,
    aspect_ratio: float | None = None,
    min_size: float = MIN_BOX_SIZE,
) -> Bounds:
    """Merge ``patch`` over ``original`` and clamp the result to ``container``."""
    bounds = patch.apply(original)
    if not bounds.is_finite():
        raise InvalidGeometry(f"drag produced non-finite bounds: {bounds}")
    if patch.moving:
        return clamp_move(bounds, container)

    fixed_right = original.right if patch.left is not None and patch.width is not None else None
    fixed_bottom = original.bottom if patch.top is not None and patch.height is not None else None
    if aspect_ratio:
        return clamp_locked_resize(bounds, container, aspect_ratio, min_size, fixed_right, fixed_bottom)
    return clamp_free_resize(bounds, container, min_size, fixed_right, fixed_bottom, patch.height is not None)


def drag_bounds(
    handle: str,
    original: Bounds,
    dx: float,
    dy: float,
    container: ImageSize,
    aspect_ratio: float | None = None,
    min_size: float = MIN_BOX_SIZE,
    event: Any = None,
) -> Bounds:
    """One-shot helper: bounds after dragging ``handle`` by (dx, dy)."""
    session = DragSession(
        original=original,
        container=container,
        handle=handle,
        aspect_ratio=aspect_ratio,
        min_size=min_size,
    )
    return session.update_delta(dx, dy, event)


@dataclass(slots=True)
class DragSession:
    """State of one pointer drag. ``original`` is restored on cancel.

    ``aspect_ratio`` feeds the constrained deltas; the lock is applied only
    for corner handles. ``point`` sessions (point hotspots) can only move.
    """

    original: Bounds
    container: ImageSize
    handle: str = "move"
    aspect_ratio: float | None = None
    min_size: float = MIN_BOX_SIZE
    start_x: float = 0.0
    start_y: float = 0.0
    point: bool = False
    target: Any = None
    current: Bounds = field(init=False)
    mode: ModeFunction = field(init=False)

    def __post_init__(self) -> None:
        self.original.validated()
        if self.point and self.handle != "move":
            raise InvalidGeometry("point markers can only be moved")
        self.mode = mode_for(self.handle)
        self.current = self.original

    @property
    def moving(self) -> bool:
        return self.handle == "move"

    @property
    def locked(self) -> bool:
        return bool(self.aspect_ratio) and self.handle in CORNER_HANDLES

    def update(self, x: float, y: float, event: Any = None) -> Bounds:
        """Recompute bounds for the pointer at (x, y)."""
        return self.update_delta(x - self.start_x, y - self.start_y, event)

    def update_delta(self, dx: float, dy: float, event: Any = None) -> Bounds:
        delta = DragDelta.from_pointer(dx, dy, self.aspect_ratio)
        patch = self.mode(event, self.original, delta)
        lock = self.aspect_ratio if self.locked else None
        self.current = constrain(patch, self.original, self.container, lock, self.min_size)
        return self.current

    def cancel(self) -> Bounds:
        self.current = self.original
        return self.original
