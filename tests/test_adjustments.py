from __future__ import annotations

import threading

import pytest
from PySide6.QtCore import QCoreApplication

from crop_editor.geometry.errors import InvalidGeometry
from crop_editor.ops.adjustments import (
    FilterChain,
    build_operations,
    expand_operations,
    operations_key,
    parse_blur_region,
    read_adjustment,
)


class RecordingExecutor:
    """Appends the operation name to a list standing in for the image."""

    def __init__(self, fail_on: str | None = None):
        self.calls: list[tuple[str, dict]] = []
        self.fail_on = fail_on
        self.lock = threading.Lock()

    def apply(self, image, name, params):
        with self.lock:
            self.calls.append((name, dict(params)))
        if name == self.fail_on:
            raise RuntimeError(f"{name} exploded")
        return [*image, name]


def test_build_operations_scales_values() -> None:
    ops = build_operations({"image.brightness": "0.2", "image.contrast": "0.5", "image.rotate": "90"})

    assert ops["brightness"] == {"brightness": pytest.approx(30), "legacy": True, "contrast": 1.5}
    assert ops["rotate"] == {"angle": -90}


def test_negative_contrast_is_not_scaled() -> None:
    assert build_operations({"contrast": -0.4})["brightness"]["contrast"] == -0.4


def test_flags_and_garbage() -> None:
    ops = build_operations({"flipH": "true", "flipV": False, "grayscale": 1, "sharpen": "abc", "unknown": 5})

    assert set(ops) == {"fliph", "desaturate"}


def test_blur_regions_expand_to_one_step_each() -> None:
    ops = build_operations({"blur": ["0x0x10x10", "20x30x5x6"]})

    assert ops["blurfast"]["count"] == 2
    steps = expand_operations(ops)
    assert [s[0] for s in steps] == ["blurfast", "blurfast"]
    assert steps[1][1]["rect"] == {"left": 20, "top": 30, "width": 5, "height": 6}


@pytest.mark.parametrize("raw", ["1x2x3", "ax1x1x1", "0x0x-1x5"])
def test_bad_blur_region(raw: str) -> None:
    with pytest.raises(InvalidGeometry):
        parse_blur_region(raw)


def test_operations_key_ignores_insertion_order() -> None:
    a = build_operations({"sepia": True, "sharpen": 1})
    b = build_operations({"sharpen": 1, "sepia": True})

    assert operations_key(a) == operations_key(b)


def test_read_adjustment() -> None:
    adj = read_adjustment({"image.rotate": "-90", "image.flipV": "on"}, scale=0.5)

    assert (adj.rotation, adj.flip_h, adj.flip_v, adj.scale) == (-90, False, True, 0.5)
    with pytest.raises(InvalidGeometry):
        read_adjustment({"rotate": "45"})


def test_chain_runs_from_original_and_skips_duplicates() -> None:
    executor = RecordingExecutor()
    chain = FilterChain(executor, ["original"])
    processed: list = []
    chain.processed.connect(processed.append)

    first = chain.process({"flipH": True, "invert": True}).result(timeout=5)
    again = chain.process({"invert": True, "flipH": True}).result(timeout=5)
    second = chain.process({"sepia": True}).result(timeout=5)
    chain.shutdown()
    QCoreApplication.processEvents()

    assert first == ["original", "fliph", "invert"]
    assert again == first
    assert second == ["original", "sepia"]
    assert [c[0] for c in executor.calls] == ["fliph", "invert", "sepia"]
    assert chain.current == second
    assert processed == [first, second]


def test_chain_failure_keeps_previous_image() -> None:
    executor = RecordingExecutor(fail_on="sepia")
    chain = FilterChain(executor, ["original"])
    failed: list = []
    chain.failed.connect(failed.append)

    future = chain.process({"sepia": True})
    with pytest.raises(RuntimeError):
        future.result(timeout=5)
    chain.shutdown()
    QCoreApplication.processEvents()

    assert failed == ["sepia exploded"]
    assert chain.current == ["original"]


class GatedExecutor(RecordingExecutor):
    def __init__(self):
        super().__init__()
        self.gate = threading.Event()

    def apply(self, image, name, params):
        self.gate.wait(timeout=5)
        return super().apply(image, name, params)


def test_repeat_while_running_shares_the_pending_result() -> None:
    executor = GatedExecutor()
    chain = FilterChain(executor, ["original"])

    first = chain.process({"invert": True})
    again = chain.process({"invert": True})
    assert again is first
    assert not again.done()

    executor.gate.set()
    assert again.result(timeout=5) == ["original", "invert"]
    chain.shutdown()
    QCoreApplication.processEvents()

    assert [c[0] for c in executor.calls] == ["invert"]


def test_failed_run_can_be_retried() -> None:
    executor = RecordingExecutor(fail_on="sepia")
    chain = FilterChain(executor, ["original"])

    first = chain.process({"sepia": True})
    with pytest.raises(RuntimeError):
        first.result(timeout=5)
    retry = chain.process({"sepia": True})
    with pytest.raises(RuntimeError):
        retry.result(timeout=5)
    chain.shutdown()
    QCoreApplication.processEvents()

    assert retry is not first
    assert [c[0] for c in executor.calls] == ["sepia", "sepia"]
