"""Editor facade and Qt state objects.

- ``ImageEditor``: one instance per edited image; owns groups, selection,
  text overlays, hotspot overlays and the active drag.
- ``DragController``: exclusive drag sessions with Qt signals.

Geometry is delegated to ``crop_editor.geometry``; nothing here draws.
"""
