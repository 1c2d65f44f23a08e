from __future__ import annotations

from typing import Any

from PySide6.QtCore import QObject, Signal

from crop_editor.geometry.drag import DragSession
from crop_editor.geometry.errors import InvalidGeometry
from crop_editor.geometry.types import Bounds
from crop_editor.logger import get_logger

_logger = get_logger("drag_controller")


class DragController(QObject):
    """Runs one drag session at a time.

    Design:
    - A new ``begin`` finalizes any session still open (single pointer).
    - Pointer handlers never raise: invalid geometry is logged and the last
      good bounds are kept.
    - ``cancel`` restores the session's original bounds without committing.
    """

    dragStarted = Signal(object)  # target
    boundsChanged = Signal(object, object)  # target, Bounds
    dragFinished = Signal(object, object)  # target, Bounds
    dragCancelled = Signal(object, object)  # target, original Bounds

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._session: DragSession | None = None

    @property
    def session(self) -> DragSession | None:
        return self._session

    @property
    def active(self) -> bool:
        return self._session is not None

    def begin(self, session: DragSession) -> None:
        if self._session is not None:
            _logger.debug("begin: finalizing previous drag on %s", self._session.target)
            self.end()
        self._session = session
        _logger.debug("drag start: target=%s handle=%s original=%s", session.target, session.handle, session.original)
        self.dragStarted.emit(session.target)

    def move(self, x: float, y: float, event: Any = None) -> Bounds | None:
        session = self._session
        if session is None:
            return None
        try:
            bounds = session.update(x, y, event)
        except InvalidGeometry as e:
            _logger.warning("drag move ignored: %s", e)
            return session.current
        self.boundsChanged.emit(session.target, bounds)
        return bounds

    def end(self) -> Bounds | None:
        session = self._session
        if session is None:
            return None
        self._session = None
        _logger.debug("drag end: target=%s bounds=%s", session.target, session.current)
        self.dragFinished.emit(session.target, session.current)
        return session.current

    def cancel(self) -> Bounds | None:
        session = self._session
        if session is None:
            return None
        self._session = None
        original = session.cancel()
        _logger.debug("drag cancelled: target=%s", session.target)
        self.dragCancelled.emit(session.target, original)
        return original
