from __future__ import annotations

import threading

from PySide6.QtCore import QCoreApplication

from crop_editor.geometry.types import Bounds
from crop_editor.ops.previews import PreviewRenderer, renderer_from_settings
from crop_editor.settings_manager import SettingsManager


class GatedExecutor:
    """Crops are described as tuples; each call waits for the gate to open."""

    def __init__(self):
        self.gate = threading.Event()

    def apply(self, image, name, params):
        self.gate.wait(timeout=5)
        if params["width"] <= 0:
            raise ValueError("empty crop")
        return (image, name, params["left"], params["width"])


def test_stale_previews_are_dropped() -> None:
    executor = GatedExecutor()
    renderer = PreviewRenderer(executor, "img", max_workers=1)
    ready: list = []
    renderer.previewReady.connect(lambda key, preview: ready.append((key, preview)))

    renderer.request("1", Bounds(0, 0, 10, 10))
    renderer.request("1", Bounds(5, 0, 20, 10))
    renderer.request("2", Bounds(0, 0, 30, 10))
    executor.gate.set()
    renderer.shutdown()
    QCoreApplication.processEvents()

    assert ready == [("1", ("img", "crop", 5, 20)), ("2", ("img", "crop", 0, 30))]


def test_failed_preview_is_reported() -> None:
    executor = GatedExecutor()
    executor.gate.set()
    renderer = renderer_from_settings(executor, "img", SettingsManager(None), convert=lambda p: p)
    failed: list = []
    renderer.previewFailed.connect(lambda key, err: failed.append((key, err)))

    renderer.request("g", Bounds(0, 0, 0, 10))
    renderer.shutdown()
    QCoreApplication.processEvents()

    assert failed == [("g", "empty crop")]
