"""Value types shared by the geometry modules.

Coordinates come in three flavours:
- normalized: fractions (0..1) of the original image (``NormalizedCrop``)
- pixel: absolute pixels of some rendered image (``Bounds``)
- canonical: natural-image pixels before rotation/flip/scale (``Hotspot``)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace

from .errors import InvalidGeometry

ROTATIONS = (-90, 0, 90)


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


@dataclass(frozen=True, slots=True)
class ImageSize:
    width: float
    height: float

    def __post_init__(self) -> None:
        if not _finite(self.width, self.height) or self.width <= 0 or self.height <= 0:
            raise InvalidGeometry(f"image size must be positive: {self.width}x{self.height}")

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


@dataclass(frozen=True, slots=True)
class NormalizedCrop:
    """Crop rect as fractions of the original image. All zeros means unset."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def __post_init__(self) -> None:
        if not _finite(self.x, self.y, self.width, self.height):
            raise InvalidGeometry(f"non-finite crop: {self}")

    @property
    def is_unset(self) -> bool:
        return self.width == 0 or self.height == 0

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


UNSET = NormalizedCrop()


@dataclass(frozen=True, slots=True)
class Bounds:
    """Pixel rect in (left, top, width, height) form."""

    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else math.inf

    def is_finite(self) -> bool:
        return _finite(self.left, self.top, self.width, self.height)

    def validated(self) -> Bounds:
        if not self.is_finite():
            raise InvalidGeometry(f"non-finite bounds: {self}")
        if self.width < 0 or self.height < 0:
            raise InvalidGeometry(f"negative bounds size: {self}")
        return self

    def moved(self, left: float, top: float) -> Bounds:
        return replace(self, left=left, top=top)


@dataclass(slots=True)
class SizeSpec:
    """One declared output size and its stored crop."""

    name: str
    width: float
    height: float
    description: str = ""
    independent: bool = False
    crop: NormalizedCrop = UNSET

    def __post_init__(self) -> None:
        if not _finite(self.width, self.height) or self.width <= 0 or self.height <= 0:
            raise InvalidGeometry(f"size {self.name!r} must have positive dimensions: {self.width}x{self.height}")

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


@dataclass(slots=True)
class TextOverlay:
    """Text placed inside a group's crop box. x/y/width are fractions of the box."""

    key: int
    text: str = ""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    size: float = 0.0


@dataclass(slots=True)
class SizeGroup:
    """Sizes cropped in unison. The first member decides the aspect ratio."""

    key: str
    sizes: list[SizeSpec] = field(default_factory=list)
    texts: dict[int, TextOverlay] = field(default_factory=dict)

    @property
    def first(self) -> SizeSpec:
        return self.sizes[0]

    @property
    def aspect_ratio(self) -> float:
        return self.first.aspect_ratio

    @property
    def names(self) -> list[str]:
        return [s.name for s in self.sizes]

    @property
    def label(self) -> str:
        return "\n".join(s.description or s.name for s in self.sizes)


@dataclass(slots=True)
class Hotspot:
    """Hotspot in canonical pixels. A NaN width marks a single point."""

    x: float
    y: float
    width: float = math.nan
    height: float = math.nan
    to_be_removed: bool = False

    @property
    def is_point(self) -> bool:
        return math.isnan(self.width)


@dataclass(frozen=True, slots=True)
class ImageAdjustment:
    """Rotation/flip/scale state read from the adjustment inputs."""

    rotation: int = 0
    flip_h: bool = False
    flip_v: bool = False
    scale: float = 1.0

    def __post_init__(self) -> None:
        if self.rotation not in ROTATIONS:
            raise InvalidGeometry(f"rotation must be one of {ROTATIONS}: {self.rotation!r}")
        if not _finite(self.scale) or self.scale <= 0:
            raise InvalidGeometry(f"scale must be positive: {self.scale}")
