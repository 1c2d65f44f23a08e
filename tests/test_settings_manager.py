from __future__ import annotations

import json
from pathlib import Path

from crop_editor.settings_manager import LEGACY_TEXT_DELIMITER, SettingsManager


def test_defaults_without_file() -> None:
    sm = SettingsManager(None)

    assert sm.min_box_size == 10.0
    assert sm.text_encoding == "json"
    assert sm.text_delimiter == LEGACY_TEXT_DELIMITER
    assert sm.text_defaults == (0.25, 0.25, 0.5)
    assert sm.preview_workers == 4


def test_values_persist_between_instances(tmp_path: Path) -> None:
    settings_path = tmp_path / "nested" / "settings.json"
    sm = SettingsManager(str(settings_path))

    sm.set("min_box_size", 24)
    sm.set("text_encoding", "delimited")

    again = SettingsManager(str(settings_path))
    assert again.min_box_size == 24.0
    assert again.text_encoding == "delimited"
    assert json.loads(settings_path.read_text(encoding="utf-8"))["min_box_size"] == 24


def test_invalid_values_fall_back(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    settings_path.write_text(
        json.dumps({"min_box_size": -3, "blur_sigma": "soft", "text_encoding": "xml", "preview_workers": "x"}),
        encoding="utf-8",
    )

    sm = SettingsManager(str(settings_path))

    assert sm.min_box_size == 10.0
    assert sm.blur_sigma == 4.0
    assert sm.text_encoding == "json"
    assert sm.preview_workers == 4


def test_non_object_file_is_ignored(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    settings_path.write_text("[1, 2]", encoding="utf-8")

    assert SettingsManager(str(settings_path)).data == {}
