"""Pyramid-aligned bounding boxes for the composite."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from geoqtree.errors import GeoreferenceError
from geoqtree.geo.georef import Georeference
from geoqtree.geo.models import LonLatBBox, PixelBBox, PyramidProfile, Resolution

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PyramidBounds:
    """Total (pyramid aligned), data (rendered) and geographic boxes."""

    total_bbox: PixelBBox
    data_bbox: PixelBBox
    lonlat_bbox: LonLatBBox

    def as_dict(self) -> dict[str, dict[str, float]]:
        return {
            "total_bbox": self.total_bbox.as_dict(),
            "data_bbox": self.data_bbox.as_dict(),
            "lonlat_bbox": self.lonlat_bbox.as_dict(),
        }


def next_power_of_two(value: int) -> int:
    """Return the smallest power of two that is >= value."""
    if value <= 1:
        return 1
    return 1 << (int(value) - 1).bit_length()


def _clamp_latitude(value: float) -> float:
    return float(np.clip(value, -90.0, 90.0))


def align_kml_bbox(bbox: PixelBBox, resolution: Resolution) -> PixelBBox:
    """Snap bbox to a power-of-two square on the global pyramid grid."""
    xres, yres = resolution.xresolution, resolution.yresolution
    dim = min(next_power_of_two(max(bbox.width, bbox.height)), resolution.total)
    total = PixelBBox.from_size((bbox.min_x // dim) * dim, (bbox.min_y // dim) * dim, dim, dim)
    if total.contains(bbox):
        return total
    min_x, min_y, max_x, max_y = total.as_tuple()
    if max_x == xres:
        min_x -= dim
    else:
        max_x += dim
    if max_y == yres:
        min_y -= dim
    else:
        max_y += dim
    return PixelBBox(min_x, min_y, max_x, max_y)


def linear_lonlat_bbox(bbox: PixelBBox, resolution: Resolution) -> LonLatBBox:
    """Interpolate the corners of bbox against the square-degree KML grid."""
    xres, yres = resolution.xresolution, resolution.yresolution
    return LonLatBBox(
        west=-180.0 + 360.0 * bbox.min_x / xres,
        south=_clamp_latitude(90.0 - 360.0 * bbox.max_y / yres),
        east=-180.0 + 360.0 * bbox.max_x / xres,
        north=_clamp_latitude(90.0 - 360.0 * bbox.min_y / yres),
    )


def projected_lonlat_bbox(bbox: PixelBBox, output: Georeference) -> LonLatBBox:
    """Inverse project the corners of bbox through the output georeference."""
    west, north = output.pixel_to_lonlat(float(bbox.min_x), float(bbox.min_y))
    east, south = output.pixel_to_lonlat(float(bbox.max_x), float(bbox.max_y))
    return LonLatBBox(
        west=float(west),
        south=_clamp_latitude(south),
        east=float(east),
        north=_clamp_latitude(north),
    )


def tile_aligned(bbox: PixelBBox, tile_size: int) -> PixelBBox:
    """Round bbox outward to whole tiles."""
    return PixelBBox(
        (bbox.min_x // tile_size) * tile_size,
        (bbox.min_y // tile_size) * tile_size,
        -(-bbox.max_x // tile_size) * tile_size,
        -(-bbox.max_y // tile_size) * tile_size,
    )


def align_bounds(
    profile: PyramidProfile,
    raw_bbox: PixelBBox,
    resolution: Resolution,
    output: Georeference,
    tile_size: int,
) -> PyramidBounds:
    """Compute the total, data and lon/lat boxes for a georeferenced profile."""
    if profile.is_kml_like:
        clipped = raw_bbox.crop(PixelBBox(0, 0, resolution.xresolution, resolution.yresolution))
        if clipped.is_empty:
            raise GeoreferenceError("Composite has no pixels inside the output extent.")
        total_bbox = align_kml_bbox(clipped, resolution)
        data_bbox = raw_bbox.crop(total_bbox)
        lonlat_bbox = linear_lonlat_bbox(total_bbox, resolution)
    else:
        total_bbox = PixelBBox(0, 0, resolution.total, resolution.total)
        data_bbox = tile_aligned(raw_bbox, tile_size).crop(total_bbox)
        if data_bbox.is_empty:
            raise GeoreferenceError("Composite has no pixels inside the output extent.")
        lonlat_bbox = projected_lonlat_bbox(total_bbox, output)
    LOGGER.info(
        "Total bbox %s, data bbox %s, lon/lat bbox %s",
        total_bbox.as_tuple(),
        data_bbox.as_tuple(),
        lonlat_bbox.as_tuple(),
    )
    return PyramidBounds(total_bbox=total_bbox, data_bbox=data_bbox, lonlat_bbox=lonlat_bbox)
