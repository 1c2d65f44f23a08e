"""Use-case layer.

Reads and writes the persisted form fields (crops, text overlays, hotspots)
and drives the image adjustment chain. Geometry lives in
``crop_editor.geometry``; Qt objects live in ``crop_editor.app``.

Keep this package importable without pyvips: ``filters`` loads it lazily.
"""
