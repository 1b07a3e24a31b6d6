"""Georeferencing, resolution, compositing and alignment stages."""

from geoqtree.geo.bounds import PyramidBounds, align_bounds
from geoqtree.geo.compose import CompositionResult, PixelOptions, compose_mosaic, is_global
from geoqtree.geo.composite import CompositeCanvas
from geoqtree.geo.crs import Datum, DatumOverride, ProjectionKind, ProjectionSpec
from geoqtree.geo.georef import (
    GLOBAL_BOUNDS,
    Georeference,
    GeoreferenceOptions,
    GeoTransform,
    ManualBounds,
    ResolvedGeoreferences,
    resolve_georeferences,
)
from geoqtree.geo.models import LonLatBBox, PixelBBox, PixelRange, PyramidProfile, Resolution
from geoqtree.geo.resolution import estimate_resolution, geodetic_resolution
from geoqtree.geo.source import RasterSource, observe_pixel_range, open_raster_source

__all__ = [
    "CompositeCanvas",
    "CompositionResult",
    "Datum",
    "DatumOverride",
    "GLOBAL_BOUNDS",
    "GeoTransform",
    "Georeference",
    "GeoreferenceOptions",
    "LonLatBBox",
    "ManualBounds",
    "PixelBBox",
    "PixelOptions",
    "PixelRange",
    "ProjectionKind",
    "ProjectionSpec",
    "PyramidBounds",
    "PyramidProfile",
    "RasterSource",
    "Resolution",
    "ResolvedGeoreferences",
    "align_bounds",
    "compose_mosaic",
    "estimate_resolution",
    "geodetic_resolution",
    "is_global",
    "observe_pixel_range",
    "open_raster_source",
    "resolve_georeferences",
]
