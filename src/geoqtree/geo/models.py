"""Data models shared by the mosaic stages."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import numpy as np

from geoqtree.errors import ConfigError

Bounds = Tuple[int, int, int, int]

MIN_RESOLUTION = 1024


class PyramidProfile(str, Enum):
    """Output metadata profile for the tile pyramid."""

    NONE = "none"
    KML = "kml"
    TMS = "tms"
    UNIVIEW = "uniview"
    GMAP = "gmap"
    CELESTIA = "celestia"
    GIGAPAN = "gigapan"
    GIGAPAN_NOPROJ = "gigapan-noproj"

    @classmethod
    def parse(cls, value: str | PyramidProfile) -> PyramidProfile:
        """Return the profile for a name like ``kml`` or ``gigapan_noproj``."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", "-")
        try:
            return cls(key)
        except ValueError as exc:
            choices = ", ".join(profile.value for profile in cls)
            raise ConfigError(f"Unknown profile: {value} (expected one of {choices})") from exc

    @property
    def is_georeferenced(self) -> bool:
        return self not in (PyramidProfile.NONE, PyramidProfile.GIGAPAN_NOPROJ)

    @property
    def is_kml_like(self) -> bool:
        return self in (PyramidProfile.KML, PyramidProfile.GIGAPAN)


@dataclass(frozen=True)
class PixelBBox:
    """Half-open integer rectangle in pixel space."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @classmethod
    def empty(cls) -> PixelBBox:
        return cls(0, 0, 0, 0)

    @classmethod
    def from_size(cls, x: int, y: int, width: int, height: int) -> PixelBBox:
        return cls(x, y, x + width, y + height)

    @classmethod
    def from_float_bounds(
        cls,
        min_x: float,
        min_y: float,
        max_x: float,
        max_y: float,
        *,
        eps: float = 1e-6,
    ) -> PixelBBox:
        """Round float bounds outward, ignoring floating point noise."""
        return cls(
            math.floor(min_x + eps),
            math.floor(min_y + eps),
            math.ceil(max_x - eps),
            math.ceil(max_y - eps),
        )

    @property
    def width(self) -> int:
        return max(0, self.max_x - self.min_x)

    @property
    def height(self) -> int:
        return max(0, self.max_y - self.min_y)

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def contains(self, other: PixelBBox) -> bool:
        """Return True when other lies entirely inside this box."""
        if other.is_empty:
            return True
        return (
            self.min_x <= other.min_x
            and self.min_y <= other.min_y
            and other.max_x <= self.max_x
            and other.max_y <= self.max_y
        )

    def crop(self, other: PixelBBox) -> PixelBBox:
        """Return the intersection of two boxes (empty when disjoint)."""
        min_x = max(self.min_x, other.min_x)
        min_y = max(self.min_y, other.min_y)
        max_x = min(self.max_x, other.max_x)
        max_y = min(self.max_y, other.max_y)
        if max_x <= min_x or max_y <= min_y:
            return PixelBBox.empty()
        return PixelBBox(min_x, min_y, max_x, max_y)

    def union(self, other: PixelBBox) -> PixelBBox:
        """Return the smallest box containing both boxes."""
        if self.is_empty:
            return other
        if other.is_empty:
            return self
        return PixelBBox(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def shifted(self, dx: int, dy: int = 0) -> PixelBBox:
        return PixelBBox(self.min_x + dx, self.min_y + dy, self.max_x + dx, self.max_y + dy)

    def as_tuple(self) -> Bounds:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def as_dict(self) -> dict[str, int]:
        return {
            "x": self.min_x,
            "y": self.min_y,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class LonLatBBox:
    """Geographic rectangle in degrees."""

    west: float
    south: float
    east: float
    north: float

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)

    def as_dict(self) -> dict[str, float]:
        return {
            "west": self.west,
            "south": self.south,
            "east": self.east,
            "north": self.north,
        }


@dataclass(frozen=True)
class Resolution:
    """Pyramid resolution derived from a single total resolution."""

    total: int
    aspect_ratio: int = 1

    @property
    def xresolution(self) -> int:
        return self.total // self.aspect_ratio

    @property
    def yresolution(self) -> int:
        return self.total

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "aspect_ratio": self.aspect_ratio,
            "xresolution": self.xresolution,
            "yresolution": self.yresolution,
        }


@dataclass(frozen=True)
class PixelRange:
    """Observed channel range used to normalize sources."""

    lo: float
    hi: float

    @property
    def span(self) -> float:
        return self.hi - self.lo

    def merge(self, other: PixelRange) -> PixelRange:
        return PixelRange(min(self.lo, other.lo), max(self.hi, other.hi))

    def normalize(self, values: np.ndarray) -> np.ndarray:
        """Map [lo, hi] linearly onto [0, 1], clipping values outside it."""
        if self.span <= 0:
            return np.zeros_like(values, dtype=np.float64)
        scaled = (np.asarray(values, dtype=np.float64) - self.lo) / self.span
        return np.clip(scaled, 0.0, 1.0)
