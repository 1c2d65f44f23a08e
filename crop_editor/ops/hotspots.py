"""Hotspot records stored as form fields.

Each record lives under a prefix (e.g. ``hotspots.0``) with fields ``x``,
``y``, ``width``, ``height`` and a removal flag ``toBeRemoved``. A record
with no ``width`` field is a single point.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from crop_editor.geometry.types import Hotspot, ImageSize
from crop_editor.logger import get_logger

from .fields import FieldStore, field_name, format_number, parse_number

_logger = get_logger("hotspots")

HOTSPOT_FIELDS = ("x", "y", "width", "height")
REMOVE_FIELD = "toBeRemoved"


@dataclass(slots=True)
class HotspotRecord:
    store: FieldStore
    prefix: str

    def _get(self, name: str) -> str | None:
        return self.store.get(field_name(self.prefix, name))

    def _set(self, name: str, value: str) -> None:
        self.store.set(field_name(self.prefix, name), value)

    @property
    def is_removed(self) -> bool:
        return (self._get(REMOVE_FIELD) or "").strip().lower() == "true"

    @property
    def is_point(self) -> bool:
        return self._get("width") is None

    def read(self) -> Hotspot:
        x = parse_number(self._get("x"))
        y = parse_number(self._get("y"))
        if self.is_point:
            return Hotspot(x=x, y=y, to_be_removed=self.is_removed)
        return Hotspot(
            x=x,
            y=y,
            width=parse_number(self._get("width")),
            height=parse_number(self._get("height")),
            to_be_removed=self.is_removed,
        )

    def write(self, hotspot: Hotspot) -> None:
        self._set("x", format_number(hotspot.x))
        self._set("y", format_number(hotspot.y))
        if not hotspot.is_point:
            self._set("width", format_number(hotspot.width))
            self._set("height", format_number(hotspot.height))

    def mark_to_be_removed(self) -> None:
        self._set(REMOVE_FIELD, "true")
        _logger.debug("hotspot %s marked to be removed", self.prefix)

    def apply_defaults(self, natural: ImageSize) -> bool:
        """Fill blank fields with a box centered on the image. Returns True if anything changed."""
        defaults = {
            "x": int(natural.width / 2),
            "y": int(natural.height / 2),
            "width": int(natural.width / 2),
            "height": int(natural.height / 2),
        }
        changed = False
        for name, value in defaults.items():
            # Absent fields stay absent (points have no width/height)
            if self._get(name) == "":
                self._set(name, str(value))
                changed = True
        return changed


def discover_records(store: FieldStore, prefix: str, count: int) -> list[HotspotRecord]:
    return [HotspotRecord(store, f"{prefix}.{i}") for i in range(count)]


def same_rect(a: Hotspot, b: Hotspot, tol: float = 1e-6) -> bool:
    def eq(u: float, v: float) -> bool:
        return (math.isnan(u) and math.isnan(v)) or abs(u - v) <= tol

    return eq(a.x, b.x) and eq(a.y, b.y) and eq(a.width, b.width) and eq(a.height, b.height)
