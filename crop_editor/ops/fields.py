"""Key/value access to the persisted form fields.

Field names follow ``<size name>.<field>``, e.g. ``thumb_109x73.width``.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, MutableMapping
from typing import Protocol

from crop_editor.geometry.types import UNSET, NormalizedCrop, SizeSpec
from crop_editor.logger import get_logger

_logger = get_logger("fields")

CROP_FIELDS = ("x", "y", "width", "height")


class FieldStore(Protocol):
    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str) -> None: ...


class DictFieldStore:
    """FieldStore backed by a plain dict (tests, CLI documents)."""

    def __init__(self, data: MutableMapping[str, str] | None = None):
        self.data: MutableMapping[str, str] = {} if data is None else data

    def get(self, name: str) -> str | None:
        return self.data.get(name)

    def set(self, name: str, value: str) -> None:
        self.data[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self.data


def field_name(prefix: str, name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


def format_number(value: float) -> str:
    """Render a float for a text field: integers without a trailing ``.0``."""
    if math.isnan(value):
        return ""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def parse_number(raw: str | None, default: float = 0.0) -> float:
    if raw is None:
        return default
    text = str(raw).strip()
    if not text:
        return default
    try:
        value = float(text)
    except ValueError:
        _logger.warning("not a number: %r", raw)
        return default
    if not math.isfinite(value):
        _logger.warning("non-finite field value: %r", raw)
        return default
    return value


def read_crop(store: FieldStore, size_name: str) -> NormalizedCrop:
    """Stored crop for a size; blank or invalid values read as 0 (unset)."""
    x, y, w, h = (parse_number(store.get(field_name(size_name, f))) for f in CROP_FIELDS)
    crop = NormalizedCrop(x, y, w, h)
    return UNSET if crop.is_unset else crop


def write_crop(store: FieldStore, size_name: str, crop: NormalizedCrop) -> None:
    for f, value in zip(CROP_FIELDS, (crop.x, crop.y, crop.width, crop.height), strict=True):
        store.set(field_name(size_name, f), format_number(value))


def load_crops(store: FieldStore, sizes: Iterable[SizeSpec]) -> None:
    """Fill each size's crop from the store."""
    for spec in sizes:
        spec.crop = read_crop(store, spec.name)
