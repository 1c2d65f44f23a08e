"""Text overlay persistence and sizing.

All sizes in a group share the same overlays, so every write goes to each
member. Two encodings are supported:

- ``json``: a list of ``{"text", "x", "y", "width", "size"}`` records
  in the ``texts`` field (the other text fields are cleared).
- ``delimited``: five parallel fields, each value prefixed by the delimiter.

Reading detects the encoding from the ``texts`` field.
"""

from __future__ import annotations

import itertools
import json
from collections.abc import Mapping

from crop_editor.geometry.types import Bounds, SizeGroup, TextOverlay
from crop_editor.logger import get_logger
from crop_editor.settings_manager import LEGACY_TEXT_DELIMITER

from .fields import FieldStore, field_name, parse_number

_logger = get_logger("text_overlays")

# Field name -> TextOverlay attribute
TEXT_FIELDS: dict[str, str] = {
    "texts": "text",
    "textXs": "x",
    "textYs": "y",
    "textWidths": "width",
    "textSizes": "size",
}


class KeyGenerator:
    """Monotonic overlay keys, one generator per editor."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def __call__(self) -> int:
        return next(self._counter)


def encode_json(overlays: Mapping[int, TextOverlay]) -> str:
    records = [
        {"text": o.text, "x": o.x, "y": o.y, "width": o.width, "size": o.size}
        for o in overlays.values()
    ]
    return json.dumps(records, ensure_ascii=False) if records else ""


def decode_json(raw: str, keys: KeyGenerator) -> dict[int, TextOverlay]:
    try:
        records = json.loads(raw)
    except json.JSONDecodeError as e:
        _logger.warning("text overlays are not valid JSON: %s", e)
        return {}
    if not isinstance(records, list):
        _logger.warning("text overlays JSON is not a list")
        return {}
    out: dict[int, TextOverlay] = {}
    for rec in records:
        if not isinstance(rec, dict):
            continue
        key = keys()
        out[key] = TextOverlay(
            key=key,
            text=str(rec.get("text", "")),
            x=parse_number(str(rec.get("x", ""))),
            y=parse_number(str(rec.get("y", ""))),
            width=parse_number(str(rec.get("width", ""))),
            size=parse_number(str(rec.get("size", ""))),
        )
    return out


def encode_delimited(overlays: Mapping[int, TextOverlay], delimiter: str = LEGACY_TEXT_DELIMITER) -> dict[str, str]:
    out: dict[str, str] = {}
    for fname, attr in TEXT_FIELDS.items():
        out[fname] = "".join(delimiter + _text_value(getattr(o, attr)) for o in overlays.values())
    return out


def _text_value(value: object) -> str:
    if isinstance(value, float):
        return repr(value) if not value.is_integer() else str(int(value))
    return str(value)


def decode_delimited(
    values: Mapping[str, str | None], keys: KeyGenerator, delimiter: str = LEGACY_TEXT_DELIMITER
) -> dict[int, TextOverlay]:
    columns = {fname: (values.get(fname) or "").split(delimiter) for fname in TEXT_FIELDS}
    texts = columns["texts"]
    out: dict[int, TextOverlay] = {}
    # The first item is empty because every value starts with the delimiter
    for i in range(1, len(texts)):

        def col(fname: str, i: int = i) -> str:
            c = columns[fname]
            return c[i] if i < len(c) else ""

        key = keys()
        out[key] = TextOverlay(
            key=key,
            text=texts[i],
            x=parse_number(col("textXs")),
            y=parse_number(col("textYs")),
            width=parse_number(col("textWidths")),
            size=parse_number(col("textSizes")),
        )
    return out


def read_texts(
    store: FieldStore, size_name: str, keys: KeyGenerator, delimiter: str = LEGACY_TEXT_DELIMITER
) -> dict[int, TextOverlay]:
    raw = store.get(field_name(size_name, "texts")) or ""
    if not raw:
        return {}
    if raw.lstrip().startswith("["):
        return decode_json(raw, keys)
    values = {fname: store.get(field_name(size_name, fname)) for fname in TEXT_FIELDS}
    return decode_delimited(values, keys, delimiter)


def write_texts(
    store: FieldStore, group: SizeGroup, encoding: str = "json", delimiter: str = LEGACY_TEXT_DELIMITER
) -> None:
    """Write the group's overlays to every size in the group."""
    if encoding == "delimited":
        values = encode_delimited(group.texts, delimiter)
    else:
        values = dict.fromkeys(TEXT_FIELDS, "")
        values["texts"] = encode_json(group.texts)
    for spec in group.sizes:
        for fname, value in values.items():
            store.set(field_name(spec.name, fname), value)
    _logger.debug("wrote %d text overlays to group %s (%s)", len(group.texts), group.key, encoding)


def relative_font_size(font_px: float, size_height: float) -> float:
    """Font size as a fraction of the output size height."""
    return font_px / size_height


def display_font_size(box_height: float, size: float) -> float:
    return box_height * size


def overlay_bounds(overlay: TextOverlay, box: Bounds, height: float) -> Bounds:
    """Overlay rect relative to the crop box origin, straight from the stored fractions.

    Defaults are applied once when an overlay is created, so a stored 0 is an edge position.
    """
    return Bounds(
        left=overlay.x * box.width,
        top=overlay.y * box.height,
        width=overlay.width * box.width,
        height=height,
    )


def store_overlay_bounds(overlay: TextOverlay, bounds: Bounds, box: Bounds) -> None:
    overlay.x = bounds.left / box.width
    overlay.y = bounds.top / box.height
    overlay.width = bounds.width / box.width
