from __future__ import annotations

import pytest

from crop_editor.geometry.errors import InvalidGeometry
from crop_editor.geometry.focus import compute_crop, plan_focus_crops
from crop_editor.geometry.grouping import group_sizes
from crop_editor.geometry.types import ImageSize, SizeSpec


def test_centered_focus_on_wider_original() -> None:
    crop = compute_crop(0.5, 0.5, 1.5, 1.0)

    assert crop.x == pytest.approx(1 / 6, abs=1e-4)
    assert crop.y == 0
    assert crop.width == pytest.approx(2 / 3, abs=1e-4)
    assert crop.height == 1


def test_focus_near_edge_is_clamped() -> None:
    left = compute_crop(0.0, 0.5, 1.5, 1.0)
    right = compute_crop(1.0, 0.5, 1.5, 1.0)

    assert left.x == 0
    assert right.x + right.width == pytest.approx(1.0)


def test_taller_original_trims_height() -> None:
    crop = compute_crop(0.5, 0.9, 0.5, 1.0)

    assert crop.x == 0
    assert crop.width == 1
    assert crop.height == pytest.approx(0.5)
    assert crop.y == pytest.approx(0.5)


def test_equal_aspect_is_identity() -> None:
    crop = compute_crop(0.2, 0.8, 1.25, 1.25)

    assert (crop.x, crop.y, crop.width, crop.height) == (0, 0, 1, 1)


@pytest.mark.parametrize("fx,fy", [(-0.1, 0.5), (0.5, 1.1), (float("nan"), 0.5)])
def test_focus_outside_image_is_rejected(fx: float, fy: float) -> None:
    with pytest.raises(InvalidGeometry):
        compute_crop(fx, fy, 1.5, 1.0)


def test_plan_covers_every_group() -> None:
    groups = group_sizes([SizeSpec("sq", 100, 100), SizeSpec("wide", 300, 100)])

    crops = plan_focus_crops(groups, 0.5, 0.5, ImageSize(1500, 1000))

    assert set(crops) == {"1", "3"}
    assert crops["3"].width == 1
    assert crops["3"].height == pytest.approx(0.5)
