"""Per-image editor state.

One ``ImageEditor`` is created for each edited image; nothing is shared
between instances. The editor owns:

- the size groups built once from the declared sizes,
- the selected group,
- text overlays per group and their font sizing,
- hotspot overlays derived from the hotspot records,
- the single active drag (crop box, text overlay or hotspot).

Stored values are always normalized (crops, text overlays) or canonical
(hotspots); pixel bounds are recomputed from them on every read so repeated
edits do not accumulate rounding.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any

from PySide6.QtCore import QObject, Signal

from crop_editor.geometry.bounds import set_group_crop, to_normalized, to_pixels
from crop_editor.geometry.drag import DragSession
from crop_editor.geometry.errors import InvalidGeometry
from crop_editor.geometry.focus import plan_focus_crops
from crop_editor.geometry.grouping import group_sizes
from crop_editor.geometry.hotspot import HotspotTransform
from crop_editor.geometry.types import (
    Bounds,
    ImageAdjustment,
    ImageSize,
    NormalizedCrop,
    SizeGroup,
    SizeSpec,
    TextOverlay,
)
from crop_editor.logger import get_logger
from crop_editor.ops.adjustments import read_adjustment
from crop_editor.ops.fields import DictFieldStore, FieldStore, read_crop, write_crop
from crop_editor.ops.hotspots import HotspotRecord, same_rect
from crop_editor.ops.previews import PreviewRenderer
from crop_editor.ops.text_overlays import (
    KeyGenerator,
    display_font_size,
    overlay_bounds,
    read_texts,
    relative_font_size,
    store_overlay_bounds,
    write_texts,
)
from crop_editor.settings_manager import SettingsManager

from .drag_controller import DragController

_logger = get_logger("editor")

_BOX_HANDLES = ("move", "tl", "br")
_TEXT_HANDLES = ("move", "l", "r")
_HOTSPOT_HANDLES = ("move", "l", "r", "br")


@dataclass(frozen=True, slots=True)
class DragTarget:
    kind: str  # "box" | "text" | "hotspot"
    group: str = ""
    index: int = -1


class ImageEditor(QObject):
    selectionChanged = Signal(str)  # group key, "" when nothing selected
    boxBoundsChanged = Signal(str, object)  # group key, Bounds (live while dragging)
    boxResized = Signal(str)  # group key
    groupCropChanged = Signal(str, object)  # group key, NormalizedCrop
    textsChanged = Signal(str)  # group key
    textFontChanged = Signal(str, int, float)  # group key, text key, display font px
    hotspotsChanged = Signal()

    def __init__(
        self,
        sizes: Iterable[SizeSpec],
        image: ImageSize,
        *,
        natural: ImageSize | None = None,
        store: FieldStore | None = None,
        settings: SettingsManager | None = None,
        keys: KeyGenerator | None = None,
        previews: PreviewRenderer | None = None,
        hotspots: Iterable[HotspotRecord] = (),
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.settings = settings if settings is not None else SettingsManager(None)
        self.store: FieldStore = store if store is not None else DictFieldStore()
        self.image = image
        self.natural = natural if natural is not None else image
        self.keys = keys if keys is not None else KeyGenerator()
        self._previews = previews

        sizes = list(sizes)
        for spec in sizes:
            stored = read_crop(self.store, spec.name)
            if not stored.is_unset:
                spec.crop = stored
        self.groups: dict[str, SizeGroup] = group_sizes(sizes)
        for group in self.groups.values():
            group.texts = read_texts(self.store, group.first.name, self.keys, self.settings.text_delimiter)

        self.drag = DragController(self)
        self.drag.boundsChanged.connect(self._on_drag_bounds)
        self.drag.dragFinished.connect(self._on_drag_finished)
        self.drag.dragCancelled.connect(self._on_drag_cancelled)

        self._selected = ""
        self._text_font_px: dict[tuple[str, int], float] = {}
        self._text_snapshot: TextOverlay | None = None

        self._hotspot_records: list[HotspotRecord] = list(hotspots)
        self._hotspot_overlays: dict[int, Bounds] = {}
        self._transform = HotspotTransform(
            ImageAdjustment(), self.image, None, self.settings.canvas_reference_size
        )

        self.select_single()
        if self._hotspot_records:
            self.reset_hotspots()

    # ---- groups & selection ----
    def group(self, key: str) -> SizeGroup:
        try:
            return self.groups[key]
        except KeyError:
            raise KeyError(f"unknown size group: {key!r}") from None

    @property
    def selected(self) -> str:
        return self._selected

    def select(self, key: str) -> None:
        self.group(key)
        if key == self._selected:
            return
        self._selected = key
        self.selectionChanged.emit(key)
        self.refresh_text_fonts(key)

    def unselect(self) -> None:
        if not self._selected:
            return
        self._selected = ""
        self.selectionChanged.emit("")

    def toggle(self, key: str) -> None:
        if key == self._selected:
            self.unselect()
        else:
            self.select(key)

    def select_single(self) -> None:
        """Select the only group when there is exactly one."""
        if len(self.groups) == 1:
            self.select(next(iter(self.groups)))

    # ---- crop boxes ----
    def box_bounds(self, key: str) -> Bounds:
        return to_pixels(self.group(key).first, self.image)

    def set_group_crop(self, key: str, crop: NormalizedCrop) -> None:
        group = self.group(key)
        set_group_crop(group, crop)
        for spec in group.sizes:
            write_crop(self.store, spec.name, crop)
        self.groupCropChanged.emit(key, crop)
        self._request_preview(key)

    def begin_box_drag(self, key: str, handle: str, x: float, y: float) -> bool:
        if handle not in _BOX_HANDLES:
            _logger.warning("crop boxes have no %r handle", handle)
            return False
        group = self.group(key)
        try:
            session = DragSession(
                original=self.box_bounds(key),
                container=self.image,
                handle=handle,
                aspect_ratio=group.aspect_ratio,
                min_size=self.settings.min_box_size,
                start_x=x,
                start_y=y,
                target=DragTarget("box", key),
            )
        except InvalidGeometry as e:
            _logger.warning("cannot drag box %s: %s", key, e)
            return False
        self.drag.begin(session)
        return True

    # ---- pointer events ----
    def pointer_move(self, x: float, y: float) -> Bounds | None:
        return self.drag.move(x, y)

    def pointer_up(self) -> Bounds | None:
        return self.drag.end()

    def cancel_drag(self) -> Bounds | None:
        """Escape/blur: restore the bounds from before the drag."""
        return self.drag.cancel()

    def _on_drag_bounds(self, target: DragTarget, bounds: Bounds) -> None:
        session = self.drag.session
        moving = session is not None and session.moving
        if target.kind == "box":
            self.boxBoundsChanged.emit(target.group, bounds)
            if not moving:
                self.boxResized.emit(target.group)
                self.refresh_text_fonts(target.group, box=bounds, save=False)
        elif target.kind == "text":
            overlay = self.group(target.group).texts.get(target.index)
            if overlay is not None:
                store_overlay_bounds(overlay, bounds, self.box_bounds(target.group))
        elif target.kind == "hotspot":
            self._hotspot_overlays[target.index] = bounds

    def _on_drag_finished(self, target: DragTarget, bounds: Bounds) -> None:
        try:
            if target.kind == "box":
                group = self.group(target.group)
                crop = to_normalized(bounds, self.image, aspect_ratio=group.aspect_ratio)
                self.set_group_crop(target.group, crop)
                self.boxResized.emit(target.group)
                self.refresh_text_fonts(target.group)
            elif target.kind == "text":
                overlay = self.group(target.group).texts.get(target.index)
                if overlay is not None:
                    store_overlay_bounds(overlay, bounds, self.box_bounds(target.group))
                self.save_texts(target.group)
                self.textsChanged.emit(target.group)
            elif target.kind == "hotspot":
                self._save_hotspot(target.index, bounds)
        except InvalidGeometry as e:
            _logger.warning("drag result for %s discarded: %s", target, e)
        finally:
            self._text_snapshot = None

    def _on_drag_cancelled(self, target: DragTarget, original: Bounds) -> None:
        if target.kind == "box":
            self.boxBoundsChanged.emit(target.group, original)
            self.refresh_text_fonts(target.group, box=original, save=False)
        elif target.kind == "text" and self._text_snapshot is not None:
            self.group(target.group).texts[target.index] = self._text_snapshot
            self.textsChanged.emit(target.group)
        elif target.kind == "hotspot":
            self._hotspot_overlays[target.index] = original
            self.hotspotsChanged.emit()
        self._text_snapshot = None

    # ---- focus ----
    def apply_focus(self, focus_x: float, focus_y: float) -> dict[str, NormalizedCrop]:
        """Recrop every group around a focus point given as fractions of the image."""
        try:
            crops = plan_focus_crops(self.groups, focus_x, focus_y, self.image)
        except InvalidGeometry as e:
            _logger.warning("focus ignored: %s", e)
            return {}
        for key, crop in crops.items():
            self.set_group_crop(key, crop)
        if self._selected:
            self.boxResized.emit(self._selected)
            self.refresh_text_fonts(self._selected)
        return crops

    def apply_focus_at(self, x: float, y: float) -> dict[str, NormalizedCrop]:
        """Same as :meth:`apply_focus` for a click in rendered image pixels."""
        return self.apply_focus(x / self.image.width, y / self.image.height)

    # ---- text overlays ----
    def add_text(self, key: str) -> TextOverlay:
        group = self.group(key)
        x, y, width = self.settings.text_defaults
        overlay = TextOverlay(key=self.keys(), x=x, y=y, width=width)
        group.texts[overlay.key] = overlay
        self.save_texts(key)
        self.textsChanged.emit(key)
        return overlay

    def remove_text(self, key: str, text_key: int) -> bool:
        group = self.group(key)
        if group.texts.pop(text_key, None) is None:
            return False
        self._text_font_px.pop((key, text_key), None)
        self.save_texts(key)
        self.textsChanged.emit(key)
        return True

    def text_bounds(self, key: str, text_key: int, height: float = 0.0) -> Bounds:
        """Overlay rect relative to the group's crop box."""
        overlay = self.group(key).texts[text_key]
        return overlay_bounds(overlay, self.box_bounds(key), height)

    def begin_text_drag(self, key: str, text_key: int, handle: str, x: float, y: float, height: float = 0.0) -> bool:
        if handle not in _TEXT_HANDLES:
            _logger.warning("text overlays have no %r handle", handle)
            return False
        group = self.group(key)
        if text_key not in group.texts:
            _logger.warning("unknown text overlay %s in group %s", text_key, key)
            return False
        box = self.box_bounds(key)
        try:
            session = DragSession(
                original=self.text_bounds(key, text_key, height),
                container=ImageSize(box.width, box.height),
                handle=handle,
                min_size=self.settings.min_box_size,
                start_x=x,
                start_y=y,
                target=DragTarget("text", key, text_key),
            )
        except InvalidGeometry as e:
            _logger.warning("cannot drag text %s/%s: %s", key, text_key, e)
            return False
        self.drag.begin(session)
        self._text_snapshot = copy.copy(group.texts[text_key])
        return True

    def attach_text_editor(self, key: str, text_key: int, ready: Future) -> None:
        """Size the overlay font once the text editor reports its base font px."""
        ready.add_done_callback(lambda f: self._on_text_editor_ready(key, text_key, f))

    def _on_text_editor_ready(self, key: str, text_key: int, future: Future) -> None:
        try:
            font_px = float(future.result())
        except Exception as e:
            _logger.warning("text editor for %s/%s never became ready: %s", key, text_key, e)
            return
        if font_px <= 0:
            return
        self._text_font_px[(key, text_key)] = font_px
        self.refresh_text_fonts(key, text_key)

    def refresh_text_fonts(
        self, key: str, text_key: int | None = None, box: Bounds | None = None, save: bool = True
    ) -> dict[int, float]:
        """Recompute overlay font sizes for the selected group.

        Returns text key -> display font px for the overlays that were resized.
        """
        if key != self._selected:
            return {}
        group = self.group(key)
        box = box if box is not None else self.box_bounds(key)
        out: dict[int, float] = {}
        for tkey, overlay in group.texts.items():
            if text_key is not None and tkey != text_key:
                continue
            font_px = self._text_font_px.get((key, tkey))
            if not font_px:
                continue
            overlay.size = relative_font_size(font_px, group.first.height)
            out[tkey] = display_font_size(box.height, overlay.size)
            self.textFontChanged.emit(key, tkey, out[tkey])
        if save and out:
            self.save_texts(key)
        return out

    def save_texts(self, key: str) -> None:
        write_texts(self.store, self.group(key), self.settings.text_encoding, self.settings.text_delimiter)

    def save_all_texts(self) -> None:
        for key in self.groups:
            self.save_texts(key)

    # ---- hotspots ----
    @property
    def hotspot_records(self) -> list[HotspotRecord]:
        return list(self._hotspot_records)

    @property
    def hotspot_overlays(self) -> dict[int, Bounds]:
        return dict(self._hotspot_overlays)

    def set_adjustment(self, adjustment: ImageAdjustment, displayed: ImageSize, canvas: ImageSize | None = None) -> None:
        """Rotation/flip/scale changed: rebuild every hotspot overlay."""
        self._transform = HotspotTransform(adjustment, displayed, canvas, self.settings.canvas_reference_size)
        self.reset_hotspots()

    def set_adjustment_values(
        self, values: Mapping[str, Any], displayed: ImageSize, canvas: ImageSize | None = None, scale: float = 1.0
    ) -> ImageAdjustment | None:
        """Same as :meth:`set_adjustment` for raw adjustment form values."""
        try:
            adjustment = read_adjustment(values, scale)
        except InvalidGeometry as e:
            _logger.warning("adjustment ignored: %s", e)
            return None
        self.set_adjustment(adjustment, displayed, canvas)
        return adjustment

    def add_hotspot_records(self, records: Iterable[HotspotRecord]) -> None:
        """New entries were created: fill their blank fields and redisplay."""
        self._hotspot_records.extend(records)
        for record in self._hotspot_records:
            record.apply_defaults(self.natural)
        self.reset_hotspots()

    def reset_hotspots(self) -> dict[int, Bounds]:
        self._hotspot_overlays.clear()
        marker = self.settings.point_marker_width
        for index, record in enumerate(self._hotspot_records):
            if record.is_removed:
                continue
            try:
                hotspot = record.read()
                bounds = self._transform.to_display(hotspot)
            except InvalidGeometry as e:
                _logger.warning("hotspot %s not shown: %s", record.prefix, e)
                continue
            if hotspot.is_point:
                bounds = Bounds(bounds.left, bounds.top, marker, 0.0)
            self._hotspot_overlays[index] = bounds
        self.hotspotsChanged.emit()
        return dict(self._hotspot_overlays)

    def begin_hotspot_drag(self, index: int, handle: str, x: float, y: float) -> bool:
        original = self._hotspot_overlays.get(index)
        if original is None:
            _logger.warning("no hotspot overlay at %s", index)
            return False
        if handle not in _HOTSPOT_HANDLES:
            _logger.warning("hotspots have no %r handle", handle)
            return False
        point = self._hotspot_records[index].is_point
        aspect = None if point or original.height <= 0 else original.width / original.height
        try:
            session = DragSession(
                original=original,
                container=self._transform.displayed,
                handle=handle,
                aspect_ratio=aspect,
                min_size=self.settings.min_box_size,
                start_x=x,
                start_y=y,
                point=point,
                target=DragTarget("hotspot", index=index),
            )
        except InvalidGeometry as e:
            _logger.warning("cannot drag hotspot %s: %s", index, e)
            return False
        self.drag.begin(session)
        return True

    def _save_hotspot(self, index: int, bounds: Bounds) -> None:
        record = self._hotspot_records[index]
        hotspot = self._transform.to_canonical(bounds, point=record.is_point)
        record.write(hotspot)
        self._hotspot_overlays[index] = bounds
        self.hotspotsChanged.emit()

    def remove_hotspot(self, index: int) -> list[int]:
        """Soft-delete a hotspot and any other overlay stacked exactly on it."""
        if index not in self._hotspot_overlays:
            return []
        # Overlays are a bijection of canonical rects
        target = self._hotspot_records[index].read()
        removed = [
            i
            for i in self._hotspot_overlays
            if i == index or same_rect(self._hotspot_records[i].read(), target)
        ]
        for i in removed:
            self._hotspot_records[i].mark_to_be_removed()
        self.reset_hotspots()
        return removed

    # ---- previews ----
    def _request_preview(self, key: str) -> None:
        if self._previews is None:
            return
        bounds = to_pixels(self.group(key).first, self.natural)
        self._previews.request(key, bounds)

    def request_all_previews(self) -> None:
        for key in self.groups:
            self._request_preview(key)

