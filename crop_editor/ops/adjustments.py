"""Image adjustment operations and the sequential filter chain.

Form values (``brightness``, ``rotate``, ``flipH`` ...) become named filter
operations. Operations run one after another on a single worker thread, each
on the output of the previous one, always starting from the unfiltered
original. An operation set identical to the last run is skipped.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Protocol

from PySide6.QtCore import QObject, Signal

from crop_editor.geometry.errors import InvalidGeometry
from crop_editor.geometry.types import Bounds, ImageAdjustment
from crop_editor.logger import get_logger

_logger = get_logger("adjustments")

Operations = dict[str, dict[str, Any]]


class FilterExecutor(Protocol):
    def apply(self, image: Any, name: str, params: Mapping[str, Any]) -> Any: ...


def _short_name(name: str) -> str:
    # "image.brightness" -> "brightness"
    return name.rsplit(".", 1)[-1]


def parse_blur_region(value: str) -> Bounds:
    """Parse a ``LxTxWxH`` blur region."""
    parts = str(value).split("x")
    if len(parts) != 4:
        raise InvalidGeometry(f"blur region must be LxTxWxH: {value!r}")
    try:
        left, top, width, height = (float(p) for p in parts)
    except ValueError:
        raise InvalidGeometry(f"blur region must be numeric: {value!r}") from None
    return Bounds(left, top, width, height).validated()


def _op_brightness(ops: Operations, value: float) -> None:
    op = ops.setdefault("brightness", {})
    op["brightness"] = value * 150
    op["legacy"] = True


def _op_contrast(ops: Operations, value: float) -> None:
    ops.setdefault("brightness", {})["contrast"] = value if value < 0 else value * 3


def _op_flip_h(ops: Operations, value: Any) -> None:
    ops.setdefault("fliph", {})


def _op_flip_v(ops: Operations, value: Any) -> None:
    ops.setdefault("flipv", {})


def _op_grayscale(ops: Operations, value: Any) -> None:
    ops.setdefault("desaturate", {})


def _op_sepia(ops: Operations, value: Any) -> None:
    ops.setdefault("sepia", {})


def _op_invert(ops: Operations, value: Any) -> None:
    ops.setdefault("invert", {})


def _op_rotate(ops: Operations, value: float) -> None:
    ops.setdefault("rotate", {})["angle"] = -value


def _op_sharpen(ops: Operations, value: float) -> None:
    ops.setdefault("sharpen", {})["amount"] = value


def _op_blur(ops: Operations, value: Any) -> None:
    regions = value if isinstance(value, (list, tuple)) else [value]
    op = ops.setdefault("blurfast", {"count": 0, "data": []})
    for region in regions:
        rect = parse_blur_region(region)
        op["data"].append(
            {
                "amount": 1.0,
                "rect": {"left": rect.left, "top": rect.top, "width": rect.width, "height": rect.height},
            }
        )
        op["count"] += 1


_BUILDERS = {
    "brightness": _op_brightness,
    "contrast": _op_contrast,
    "flipH": _op_flip_h,
    "flipV": _op_flip_v,
    "grayscale": _op_grayscale,
    "sepia": _op_sepia,
    "invert": _op_invert,
    "rotate": _op_rotate,
    "sharpen": _op_sharpen,
    "blur": _op_blur,
}

# Value kinds: checkboxes are booleans, blur regions are strings
_FLAGS = {"flipH", "flipV", "grayscale", "sepia", "invert"}


def build_operations(values: Mapping[str, Any]) -> Operations:
    """Operations for a set of adjustment form values.

    Unchecked flags and unparsable numbers are skipped. Unknown names are ignored.
    """
    ops: Operations = {}
    for raw_name, raw in values.items():
        name = _short_name(raw_name)
        builder = _BUILDERS.get(name)
        if builder is None:
            continue
        if name in _FLAGS:
            if _as_bool(raw):
                builder(ops, True)
            continue
        if name == "blur":
            if raw:
                builder(ops, raw)
            continue
        try:
            value = float(raw)
        except (TypeError, ValueError):
            continue
        if math.isnan(value):
            continue
        builder(ops, value)
    return ops


def _as_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "on", "yes")
    return bool(raw)


def read_adjustment(values: Mapping[str, Any], scale: float = 1.0) -> ImageAdjustment:
    """Rotation/flip state from the same form values."""
    by_name = {_short_name(k): v for k, v in values.items()}
    try:
        rotation = int(float(by_name.get("rotate") or 0))
    except (TypeError, ValueError):
        raise InvalidGeometry(f"rotation is not a number: {by_name.get('rotate')!r}") from None
    return ImageAdjustment(
        rotation=rotation,
        flip_h=_as_bool(by_name.get("flipH", False)),
        flip_v=_as_bool(by_name.get("flipV", False)),
        scale=scale,
    )


def operations_key(ops: Operations) -> str:
    return json.dumps(ops, sort_keys=True)


def expand_operations(ops: Operations) -> list[tuple[str, dict[str, Any]]]:
    """Flatten to (name, params) steps; multi-region operations yield one step per region."""
    steps: list[tuple[str, dict[str, Any]]] = []
    for name, params in ops.items():
        data = params.get("data")
        if data is not None:
            steps.extend((name, dict(item)) for item in data)
        else:
            steps.append((name, dict(params)))
    return steps


class FilterChain(QObject):
    """Single-flight adjustment runner for one image.

    ``processed`` fires with the new image after a run completes, ``failed``
    with the error text when any step raises (the previous image is kept).
    """

    processed = Signal(object)
    failed = Signal(str)

    def __init__(self, executor: FilterExecutor, original: Any, parent: QObject | None = None):
        super().__init__(parent)
        self._executor = executor
        self._original = original
        self._current = original
        self._previous_key: str | None = None
        self._last_future: Future | None = None
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="filter-chain")

    @property
    def current(self) -> Any:
        return self._current

    def process(self, values: Mapping[str, Any]) -> Future:
        """Apply the adjustments in ``values``; returns a Future of the processed image."""
        ops = build_operations(values)
        key = operations_key(ops)
        if key == self._previous_key and self._last_future is not None:
            # Same operations as the last run, which may still be in flight
            return self._last_future
        self._previous_key = key
        steps = expand_operations(ops)
        _logger.debug("running %d filter steps: %s", len(steps), [s[0] for s in steps])
        future = self._pool.submit(self._run, key, steps)
        self._last_future = future
        future.add_done_callback(self._on_done)
        return future

    def _run(self, key: str, steps: list[tuple[str, dict[str, Any]]]) -> Any:
        image = self._original
        try:
            for name, params in steps:
                image = self._executor.apply(image, name, params)
        except Exception:
            # Allow the same operations to be retried
            if self._previous_key == key:
                self._previous_key = None
            raise
        self._current = image
        return image

    def _on_done(self, future: Future) -> None:
        try:
            image = future.result()
        except Exception as e:
            _logger.error("filter chain failed: %s", e, exc_info=True)
            self.failed.emit(str(e))
            return
        self.processed.emit(image)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
