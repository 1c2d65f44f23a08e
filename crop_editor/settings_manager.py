from __future__ import annotations

import json
import os
from typing import Any

from .logger import get_logger

_logger = get_logger("settings")

LEGACY_TEXT_DELIMITER = "aaaf7c5a9e604daaa126f11e23e321d8"


class SettingsManager:
    """Editor settings persisted as a JSON object.

    A ``None`` path keeps everything in memory (nothing is written).
    """

    def __init__(self, settings_path: str | None = None):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    DEFAULTS: dict[str, Any] = {
        "min_box_size": 10.0,
        "point_marker_width": 10.0,
        "canvas_reference_size": 1000.0,
        "text_encoding": "json",
        "text_delimiter": LEGACY_TEXT_DELIMITER,
        "text_default_x": 0.25,
        "text_default_y": 0.25,
        "text_default_width": 0.5,
        "preview_workers": 4,
        "blur_sigma": 4.0,
    }

    def load(self) -> None:
        if not self.settings_path:
            self._settings = {}
            return
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = data
                        _logger.debug("settings loaded: %s", self.settings_path)
                        return
                    _logger.warning("settings file is not an object: %s", self.settings_path)
        except Exception as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = {}

    def save(self) -> None:
        if not self.settings_path:
            return
        try:
            parent = os.path.dirname(self.settings_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except Exception as e:
            _logger.error("settings save failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    def set(self, key: str, value: Any) -> None:
        self._settings[key] = value
        self.save()

    @property
    def data(self) -> dict[str, Any]:
        return self._settings

    def _positive_float(self, key: str) -> float:
        try:
            value = float(self.get(key))
            if value > 0:
                return value
            _logger.warning("setting %s must be positive: %r", key, value)
        except (TypeError, ValueError) as e:
            _logger.warning("failed to parse %s: %s", key, e)
        return float(self.DEFAULTS[key])

    @property
    def min_box_size(self) -> float:
        return self._positive_float("min_box_size")

    @property
    def point_marker_width(self) -> float:
        return self._positive_float("point_marker_width")

    @property
    def canvas_reference_size(self) -> float:
        return self._positive_float("canvas_reference_size")

    @property
    def blur_sigma(self) -> float:
        return self._positive_float("blur_sigma")

    @property
    def text_encoding(self) -> str:
        val = str(self.get("text_encoding") or "").lower()
        if val in ("json", "delimited"):
            return val
        _logger.warning("unknown text_encoding %r, using json", val)
        return "json"

    @property
    def text_delimiter(self) -> str:
        val = self.get("text_delimiter")
        return val if isinstance(val, str) and val else LEGACY_TEXT_DELIMITER

    @property
    def text_defaults(self) -> tuple[float, float, float]:
        return (
            float(self.get("text_default_x")),
            float(self.get("text_default_y")),
            float(self.get("text_default_width")),
        )

    @property
    def preview_workers(self) -> int:
        try:
            return max(1, int(self.get("preview_workers")))
        except (TypeError, ValueError):
            return int(self.DEFAULTS["preview_workers"])
