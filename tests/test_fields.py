from __future__ import annotations

import math

from crop_editor.geometry.types import UNSET, NormalizedCrop, SizeSpec
from crop_editor.ops.fields import DictFieldStore, format_number, load_crops, parse_number, read_crop, write_crop


def test_format_number() -> None:
    assert format_number(3.0) == "3"
    assert format_number(0.25) == "0.25"
    assert format_number(math.nan) == ""


def test_parse_number_falls_back_on_garbage() -> None:
    assert parse_number(None) == 0.0
    assert parse_number("  ") == 0.0
    assert parse_number("abc", default=1.5) == 1.5
    assert parse_number("inf") == 0.0
    assert parse_number(" 0.5 ") == 0.5


def test_crop_fields_round_trip() -> None:
    store = DictFieldStore()
    crop = NormalizedCrop(0.1, 0.2, 0.5, 0.25)

    write_crop(store, "thumb", crop)

    assert store.data["thumb.width"] == "0.5"
    assert read_crop(store, "thumb") == crop


def test_blank_crop_reads_as_unset() -> None:
    store = DictFieldStore({"thumb.x": "", "thumb.y": "", "thumb.width": "", "thumb.height": ""})

    assert read_crop(store, "thumb") is UNSET


def test_load_crops_fills_sizes() -> None:
    store = DictFieldStore({"a.x": "0.1", "a.y": "0", "a.width": "0.5", "a.height": "1"})
    sizes = [SizeSpec("a", 10, 10), SizeSpec("b", 10, 10)]

    load_crops(store, sizes)

    assert sizes[0].crop == NormalizedCrop(0.1, 0.0, 0.5, 1.0)
    assert sizes[1].crop.is_unset
