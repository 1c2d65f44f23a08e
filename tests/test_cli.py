from __future__ import annotations

import json
from pathlib import Path

import pytest

from crop_editor.cli import load_document, main


def _write_doc(tmp_path: Path, **extra) -> Path:
    doc = {
        "image": {"width": 1000, "height": 500},
        "sizes": [
            {"name": "square", "width": 400, "height": 400, "description": "Square"},
            {"name": "square_big", "width": 800, "height": 801},
            {"name": "banner", "width": 300, "height": 100, "crop": {"x": 0, "y": 0.1, "width": 1, "height": 0.6}},
        ],
        **extra,
    }
    path = tmp_path / "sizes.json"
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


def test_load_document(tmp_path: Path) -> None:
    image, sizes, adjustments = load_document(_write_doc(tmp_path, adjustments={"sepia": True}))

    assert (image.width, image.height) == (1000, 500)
    assert [s.name for s in sizes] == ["square", "square_big", "banner"]
    assert sizes[2].crop.y == 0.1
    assert sizes[0].crop.is_unset
    assert adjustments == {"sepia": True}


def test_groups_command(tmp_path: Path, capsys) -> None:
    assert main(["groups", str(_write_doc(tmp_path))]) == 0

    rows = json.loads(capsys.readouterr().out)
    assert [r["key"] for r in rows] == ["1", "3"]
    assert rows[0]["sizes"] == ["square", "square_big"]
    assert rows[0]["label"] == "Square\nsquare_big"
    assert rows[0]["bounds"] == {"left": 250, "top": 0, "width": 500, "height": 500}


def test_focus_command(tmp_path: Path, capsys, monkeypatch) -> None:
    monkeypatch.setenv("CROP_EDITOR_LOG_LEVEL", "")
    assert main(["--log-level", "error", "focus", str(_write_doc(tmp_path)), "0.5", "0.5"]) == 0

    crops = json.loads(capsys.readouterr().out)
    assert crops["1"] == {"x": 0.25, "y": 0.0, "width": 0.5, "height": 1.0}


def test_bad_document_returns_error(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text('{"sizes": [{"name": "x", "width": 0, "height": 1}]}', encoding="utf-8")

    assert main(["groups", str(path)]) == 1
    assert main(["groups", str(tmp_path / "missing.json")]) == 1


def test_render_command(tmp_path: Path) -> None:
    pyvips = pytest.importorskip("pyvips")
    src = tmp_path / "src.png"
    (pyvips.Image.black(100, 50, bands=3) + 30).cast("uchar").write_to_file(str(src))
    out = tmp_path / "out"

    assert main(["render", str(_write_doc(tmp_path)), str(src), "-o", str(out)]) == 0

    square = pyvips.Image.new_from_file(str(out / "square.png"))
    banner = pyvips.Image.new_from_file(str(out / "banner.png"))
    assert (square.width, square.height) == (50, 50)
    assert (banner.width, banner.height) == (100, 30)
