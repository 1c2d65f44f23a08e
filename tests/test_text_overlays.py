from __future__ import annotations

import json

import pytest

from crop_editor.geometry.grouping import group_sizes
from crop_editor.geometry.types import Bounds, SizeSpec, TextOverlay
from crop_editor.ops.fields import DictFieldStore
from crop_editor.ops.text_overlays import (
    KeyGenerator,
    decode_delimited,
    display_font_size,
    encode_delimited,
    overlay_bounds,
    read_texts,
    relative_font_size,
    store_overlay_bounds,
    write_texts,
)

DELIM = "|~|"


def _group():
    return group_sizes([SizeSpec("a", 200, 100), SizeSpec("b", 400, 200)])["2"]


def test_json_written_to_every_member_and_read_back() -> None:
    store = DictFieldStore()
    group = _group()
    group.texts = {1: TextOverlay(1, "Hello, \"world\"", 0.1, 0.2, 0.6, 0.05)}

    write_texts(store, group, "json")

    assert store.data["a.texts"] == store.data["b.texts"]
    assert store.data["a.textXs"] == ""
    assert json.loads(store.data["a.texts"])[0]["text"] == 'Hello, "world"'

    texts = read_texts(store, "b", KeyGenerator(10))
    assert list(texts) == [10]
    assert texts[10].text == 'Hello, "world"'
    assert (texts[10].x, texts[10].y, texts[10].width, texts[10].size) == (0.1, 0.2, 0.6, 0.05)


def test_delimited_encoding_keeps_order() -> None:
    overlays = {
        1: TextOverlay(1, "first", 0.1, 0.1, 0.5, 0.1),
        2: TextOverlay(2, "second", 0.3, 0.4, 0.2, 0.05),
    }

    values = encode_delimited(overlays, DELIM)
    assert values["texts"] == f"{DELIM}first{DELIM}second"

    decoded = decode_delimited(values, KeyGenerator(), DELIM)
    assert [o.text for o in decoded.values()] == ["first", "second"]
    assert list(decoded.values())[1].y == 0.4


def test_read_detects_delimited_fields() -> None:
    store = DictFieldStore()
    group = _group()
    group.texts = {5: TextOverlay(5, "x", 0.5, 0.5, 0.25, 0.1)}
    write_texts(store, group, "delimited", DELIM)

    texts = read_texts(store, "a", KeyGenerator(), DELIM)

    assert [o.text for o in texts.values()] == ["x"]


def test_short_columns_read_as_zero() -> None:
    values = {"texts": f"{DELIM}a{DELIM}b", "textXs": f"{DELIM}0.5"}

    decoded = list(decode_delimited(values, KeyGenerator(), DELIM).values())

    assert decoded[0].x == 0.5
    assert decoded[1].x == 0.0


def test_invalid_json_reads_as_empty() -> None:
    store = DictFieldStore({"a.texts": "[not json"})

    assert read_texts(store, "a", KeyGenerator()) == {}


def test_keys_are_unique_per_generator() -> None:
    keys = KeyGenerator()

    assert [keys(), keys(), keys()] == [1, 2, 3]


def test_font_sizes() -> None:
    size = relative_font_size(20, 200)

    assert size == pytest.approx(0.1)
    assert display_font_size(150, size) == pytest.approx(15)


def test_overlay_bounds_and_store() -> None:
    box = Bounds(100, 50, 400, 200)
    overlay = TextOverlay(1, x=0.25, y=0.25, width=0.5)

    b = overlay_bounds(overlay, box, 30)
    assert (b.left, b.top, b.width, b.height) == (100, 50, 200, 30)

    store_overlay_bounds(overlay, Bounds(40, 20, 100, 30), box)
    assert (overlay.x, overlay.y, overlay.width) == pytest.approx((0.1, 0.1, 0.25))


def test_zero_position_is_an_edge_not_unset() -> None:
    box = Bounds(0, 0, 400, 200)
    overlay = TextOverlay(1, x=0.25, y=0.25, width=0.5)

    store_overlay_bounds(overlay, Bounds(0, 0, 200, 30), box)
    b = overlay_bounds(overlay, box, 30)

    assert (b.left, b.top, b.width) == (0, 0, 200)
