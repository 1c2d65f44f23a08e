"""Per-group crop previews.

Each request crops the unfiltered original independently, so groups can be
rendered in parallel.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from PySide6.QtCore import QObject, Signal

from crop_editor.geometry.types import Bounds
from crop_editor.logger import get_logger

from .adjustments import FilterExecutor

_logger = get_logger("previews")


class PreviewRenderer(QObject):
    previewReady = Signal(str, object)  # group key, preview (converted image)
    previewFailed = Signal(str, str)  # group key, error

    def __init__(
        self,
        executor: FilterExecutor,
        original: Any,
        convert: Callable[[Any], Any] | None = None,
        max_workers: int = 4,
        parent: QObject | None = None,
    ):
        super().__init__(parent)
        self._executor = executor
        self._original = original
        self._convert = convert
        self._pool = ThreadPoolExecutor(max_workers=max(1, int(max_workers)), thread_name_prefix="preview")
        self._latest: dict[str, int] = {}
        self._next_id = 1

    def request(self, group_key: str, bounds: Bounds) -> Future:
        """Crop ``bounds`` (natural image pixels) from the original for ``group_key``."""
        req_id = self._next_id
        self._next_id += 1
        self._latest[group_key] = req_id
        params = {"left": bounds.left, "top": bounds.top, "width": bounds.width, "height": bounds.height}
        future = self._pool.submit(self._render, params)
        future.add_done_callback(lambda f: self._on_done(group_key, req_id, f))
        return future

    def _render(self, params: dict[str, float]) -> Any:
        image = self._executor.apply(self._original, "crop", params)
        return self._convert(image) if self._convert is not None else image

    def _on_done(self, group_key: str, req_id: int, future: Future) -> None:
        try:
            preview = future.result()
        except Exception as e:
            _logger.warning("preview for %s failed: %s", group_key, e)
            self.previewFailed.emit(group_key, str(e))
            return
        if self._latest.get(group_key) != req_id:
            _logger.debug("dropping stale preview for %s (id=%s)", group_key, req_id)
            return
        self.previewReady.emit(group_key, preview)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)


def renderer_from_settings(executor: FilterExecutor, original: Any, settings: Any, convert=None) -> PreviewRenderer:
    return PreviewRenderer(executor, original, convert=convert, max_workers=settings.preview_workers)
