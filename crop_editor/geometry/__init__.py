"""Crop/overlay geometry.

Pure functions and value types with no Qt or pyvips dependency:
- ``grouping``: sizes -> aspect ratio groups
- ``bounds``: normalized crop <-> pixel bounds
- ``drag``: constrained move/resize
- ``focus``: focus-point crops
- ``hotspot``: canonical <-> display hotspot rects
"""

from .bounds import auto_bounds, crop_to_pixels, set_group_crop, to_normalized, to_pixels, validate_bounds
from .drag import DragSession, drag_bounds
from .errors import ConstraintViolation, InvalidGeometry, RoundTripDrift
from .focus import compute_crop, plan_focus_crops
from .grouping import aspect_bucket, group_sizes
from .hotspot import HotspotTransform, canonical_to_display, display_to_canonical
from .types import (
    UNSET,
    Bounds,
    Hotspot,
    ImageAdjustment,
    ImageSize,
    NormalizedCrop,
    SizeGroup,
    SizeSpec,
    TextOverlay,
)

__all__ = [
    "UNSET",
    "Bounds",
    "ConstraintViolation",
    "DragSession",
    "Hotspot",
    "HotspotTransform",
    "ImageAdjustment",
    "ImageSize",
    "InvalidGeometry",
    "NormalizedCrop",
    "RoundTripDrift",
    "SizeGroup",
    "SizeSpec",
    "TextOverlay",
    "aspect_bucket",
    "auto_bounds",
    "canonical_to_display",
    "compute_crop",
    "crop_to_pixels",
    "display_to_canonical",
    "drag_bounds",
    "group_sizes",
    "plan_focus_crops",
    "set_group_crop",
    "to_normalized",
    "to_pixels",
    "validate_bounds",
]
