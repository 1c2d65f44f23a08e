"""Command line entry point: ``crop-editor``.

Works on a JSON size document::

    {
      "image": {"width": 1000, "height": 500},
      "sizes": [
        {"name": "square", "width": 400, "height": 400,
         "crop": {"x": 0.25, "y": 0, "width": 0.5, "height": 1}}
      ],
      "adjustments": {"brightness": 0.1, "grayscale": true}
    }

``crop`` and ``adjustments`` are optional; ``description`` and
``independent`` may be given per size.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from crop_editor.geometry.bounds import group_bounds, to_pixels
from crop_editor.geometry.errors import InvalidGeometry
from crop_editor.geometry.focus import plan_focus_crops
from crop_editor.geometry.grouping import group_sizes
from crop_editor.geometry.types import UNSET, ImageSize, NormalizedCrop, SizeGroup, SizeSpec
from crop_editor.logger import get_logger, setup_logger
from crop_editor.settings_manager import SettingsManager

logger = get_logger("cli")


def load_document(path: str | Path) -> tuple[ImageSize | None, list[SizeSpec], dict[str, Any]]:
    with open(path, encoding="utf-8") as f:
        doc = json.load(f)
    image = None
    if isinstance(doc.get("image"), dict):
        image = ImageSize(float(doc["image"]["width"]), float(doc["image"]["height"]))
    sizes = []
    for entry in doc.get("sizes", []):
        crop = entry.get("crop")
        sizes.append(
            SizeSpec(
                name=str(entry["name"]),
                width=float(entry["width"]),
                height=float(entry["height"]),
                description=str(entry.get("description", "")),
                independent=bool(entry.get("independent", False)),
                crop=NormalizedCrop(**{k: float(v) for k, v in crop.items()}) if crop else UNSET,
            )
        )
    return image, sizes, dict(doc.get("adjustments") or {})


def _group_rows(groups: dict[str, SizeGroup], image: ImageSize | None) -> list[dict[str, Any]]:
    rows = []
    for key, group in groups.items():
        row: dict[str, Any] = {"key": key, "label": group.label, "sizes": group.names}
        if image is not None:
            b = group_bounds(group, image)
            row["bounds"] = {"left": b.left, "top": b.top, "width": b.width, "height": b.height}
        rows.append(row)
    return rows


def cmd_groups(args: argparse.Namespace, settings: SettingsManager) -> int:
    image, sizes, _ = load_document(args.document)
    groups = group_sizes(sizes)
    json.dump(_group_rows(groups, image), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def cmd_focus(args: argparse.Namespace, settings: SettingsManager) -> int:
    image, sizes, _ = load_document(args.document)
    if image is None:
        logger.error("focus needs the image size in %s", args.document)
        return 2
    groups = group_sizes(sizes)
    crops = plan_focus_crops(groups, args.x, args.y, image)
    json.dump({key: crop.as_dict() for key, crop in crops.items()}, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def cmd_render(args: argparse.Namespace, settings: SettingsManager) -> int:
    from crop_editor.ops.adjustments import build_operations, expand_operations
    from crop_editor.ops.filters import VipsFilterExecutor, load_image

    _, sizes, adjustments = load_document(args.document)
    groups = group_sizes(sizes)
    executor = VipsFilterExecutor(blur_sigma=settings.blur_sigma)
    image = load_image(args.image)
    for name, params in expand_operations(build_operations(adjustments)):
        image = executor.apply(image, name, params)
    natural = ImageSize(image.width, image.height)

    out_dir = Path(args.output)
    out_dir.mkdir(parents=True, exist_ok=True)
    for key, group in groups.items():
        b = to_pixels(group.first, natural)
        cropped = executor.apply(image, "crop", {"left": b.left, "top": b.top, "width": b.width, "height": b.height})
        target = out_dir / f"{group.first.name}.{args.format}"
        cropped.write_to_file(str(target))
        logger.info("wrote %s (%s) %dx%d", target, key, cropped.width, cropped.height)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crop-editor", description="Crop groups for multi-size images")
    parser.add_argument("--log-level", help="Set log level (debug, info, warning, error)")
    parser.add_argument("--log-cats", help="Comma separated log categories to show")
    parser.add_argument("--settings", help="Path to a settings JSON file")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("groups", help="List the size groups of a document")
    p.add_argument("document")
    p.set_defaults(func=cmd_groups)

    p = sub.add_parser("focus", help="Crop every group around a focus point")
    p.add_argument("document")
    p.add_argument("x", type=float, help="Focus x as a fraction of the image width")
    p.add_argument("y", type=float, help="Focus y as a fraction of the image height")
    p.set_defaults(func=cmd_focus)

    p = sub.add_parser("render", help="Write one cropped file per group")
    p.add_argument("document")
    p.add_argument("image")
    p.add_argument("-o", "--output", default=".")
    p.add_argument("--format", default="png")
    p.set_defaults(func=cmd_render)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        os.environ["CROP_EDITOR_LOG_LEVEL"] = args.log_level
    if args.log_cats:
        os.environ["CROP_EDITOR_LOG_CATS"] = args.log_cats
    # Env overrides are re-read on every setup call
    setup_logger()
    settings = SettingsManager(args.settings)
    try:
        return args.func(args, settings)
    except (InvalidGeometry, KeyError, OSError, json.JSONDecodeError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
