from __future__ import annotations

import pytest

from crop_editor.geometry.errors import InvalidGeometry
from crop_editor.geometry.grouping import aspect_bucket, bucket_key, group_sizes
from crop_editor.geometry.types import SizeSpec


def _size(name: str, w: float, h: float, **kw) -> SizeSpec:
    return SizeSpec(name=name, width=w, height=h, **kw)


def test_bucket_truncates_instead_of_rounding() -> None:
    assert aspect_bucket(1.339) == pytest.approx(1.33)
    assert aspect_bucket(16 / 9) == pytest.approx(1.77)
    assert bucket_key(150) == "1.5"
    assert bucket_key(100) == "1"


def test_near_ratios_share_a_group_in_input_order() -> None:
    groups = group_sizes(
        [
            _size("hd", 1920, 1080),  # 1.777
            _size("wide", 1280, 719),  # 1.780 -> bucket 1.78, neighbour of 1.77
            _size("square", 400, 400),
        ]
    )

    assert list(groups) == ["1.77", "1"]
    assert groups["1.77"].names == ["hd", "wide"]
    assert groups["1"].names == ["square"]


def test_claims_are_relative_to_first_member() -> None:
    # 1.00 claims 0.98..1.02; 1.03 is outside and starts its own group
    groups = group_sizes([_size("a", 100, 100), _size("b", 102, 100), _size("c", 103, 100)])

    assert groups["1"].names == ["a", "b"]
    assert groups["1.03"].names == ["c"]


def test_first_bucket_keeps_its_claims() -> None:
    # 1.02 claims 1.00..1.04, so a later 1.00 joins it and does not reclaim
    groups = group_sizes([_size("a", 102, 100), _size("b", 100, 100), _size("c", 104, 100)])

    assert list(groups) == ["1.02"]
    assert groups["1.02"].names == ["a", "b", "c"]


def test_independent_sizes_get_their_own_group() -> None:
    groups = group_sizes([_size("a", 100, 100), _size("solo", 100, 100, independent=True)])

    assert groups["1"].names == ["a"]
    assert groups["solo"].names == ["solo"]


def test_group_aspect_ratio_comes_from_first_member() -> None:
    groups = group_sizes([_size("a", 300, 200), _size("b", 301, 200)])

    assert groups["1.5"].aspect_ratio == pytest.approx(1.5)


def test_duplicate_names_are_rejected() -> None:
    with pytest.raises(InvalidGeometry):
        group_sizes([_size("a", 10, 10), _size("a", 20, 10)])


@pytest.mark.parametrize("w,h", [(0, 10), (10, 0), (-1, 10)])
def test_degenerate_sizes_are_rejected(w: float, h: float) -> None:
    with pytest.raises(InvalidGeometry):
        _size("bad", w, h)
