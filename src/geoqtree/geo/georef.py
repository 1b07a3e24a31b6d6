"""Georeference model and the resolver that builds one per source."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import cached_property
from typing import TYPE_CHECKING, Any, Sequence

import numpy as np
from pyproj import CRS, Transformer
from rasterio.transform import Affine

from geoqtree.errors import ConfigError, GeoreferenceError
from geoqtree.geo.crs import (
    WGS84,
    Datum,
    DatumOverride,
    ProjectionSpec,
    build_crs,
    override_datum,
    replace_datum,
    replace_projection,
    transformer,
)
from geoqtree.geo.models import PixelBBox

if TYPE_CHECKING:
    from geoqtree.geo.source import RasterSource

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Georeference:
    """Affine pixel transform into a pyproj CRS.

    Pixel coordinates follow the rasterio convention: integer coordinates
    are pixel corners, so pixel (0, 0) spans [0, 1) x [0, 1).
    Methods accept floats or numpy arrays.
    """

    crs: CRS
    transform: Affine

    @classmethod
    def geographic(cls, datum: Datum, transform: Affine | None = None) -> Georeference:
        """Return a plate carree georeference; the identity transform maps pixels to lon/lat."""
        return cls(
            crs=build_crs({"proj": "longlat"}, datum),
            transform=transform if transform is not None else Affine.identity(),
        )

    @property
    def datum(self) -> Datum:
        return Datum.from_crs(self.crs)

    @property
    def is_geographic(self) -> bool:
        return bool(self.crs.is_geographic)

    @cached_property
    def _to_lonlat(self) -> Transformer:
        return transformer(self.crs, self.crs.geodetic_crs)

    @cached_property
    def _from_lonlat(self) -> Transformer:
        return transformer(self.crs.geodetic_crs, self.crs)

    def pixel_to_point(self, x: Any, y: Any) -> tuple[Any, Any]:
        """Map pixel coordinates to coordinates in the georeference CRS."""
        a, b, c, d, e, f = self.transform[:6]
        return a * x + b * y + c, d * x + e * y + f

    def point_to_pixel(self, px: Any, py: Any) -> tuple[Any, Any]:
        """Map CRS coordinates back to pixel coordinates."""
        a, b, c, d, e, f = (~self.transform)[:6]
        return a * px + b * py + c, d * px + e * py + f

    def pixel_to_lonlat(self, x: Any, y: Any) -> tuple[Any, Any]:
        px, py = self.pixel_to_point(x, y)
        return self._to_lonlat.transform(px, py)

    def lonlat_to_pixel(self, lon: Any, lat: Any) -> tuple[Any, Any]:
        px, py = self._from_lonlat.transform(lon, lat)
        return self.point_to_pixel(px, py)

    def with_transform(self, transform: Affine) -> Georeference:
        return replace(self, transform=transform)

    def with_datum(self, datum: Datum) -> Georeference:
        return replace(self, crs=replace_datum(self.crs, datum))

    def with_projection(self, projection: ProjectionSpec) -> Georeference:
        return replace(self, crs=replace_projection(self.crs, projection))

    def nudged(self, dx: float, dy: float) -> Georeference:
        """Offset the translation terms of the transform, in CRS units."""
        t = self.transform
        return replace(self, transform=Affine(t.a, t.b, t.c + dx, t.d, t.e, t.f + dy))

    def describe(self) -> dict[str, Any]:
        return {
            "crs": self.crs.to_string(),
            "datum": self.datum.name,
            "transform": list(self.transform)[:6],
        }


@dataclass(frozen=True)
class GeoTransform:
    """Map pixels of a source georeference into pixels of a destination."""

    source: Georeference
    destination: Georeference

    @cached_property
    def _forward(self) -> Transformer:
        return transformer(self.source.crs, self.destination.crs)

    @cached_property
    def _reverse(self) -> Transformer:
        return transformer(self.destination.crs, self.source.crs)

    def forward(self, x: Any, y: Any) -> tuple[Any, Any]:
        px, py = self.source.pixel_to_point(x, y)
        qx, qy = self._forward.transform(px, py)
        return self.destination.point_to_pixel(qx, qy)

    def reverse(self, x: Any, y: Any) -> tuple[Any, Any]:
        px, py = self.destination.pixel_to_point(x, y)
        qx, qy = self._reverse.transform(px, py)
        return self.source.point_to_pixel(qx, qy)

    def forward_bbox(self, bbox: PixelBBox, *, samples: int = 33) -> PixelBBox:
        """Return the destination pixel box covering a source pixel box.

        A grid including the edges is sampled so that interior extrema, such
        as a pole inside a polar projection, are not missed. Points that fail
        to project are ignored.
        """
        if bbox.is_empty:
            return PixelBBox.empty()
        xs = np.linspace(bbox.min_x, bbox.max_x, samples)
        ys = np.linspace(bbox.min_y, bbox.max_y, samples)
        grid_x, grid_y = np.meshgrid(xs, ys)
        out_x, out_y = self.forward(grid_x.ravel(), grid_y.ravel())
        out_x = np.asarray(out_x, dtype=np.float64)
        out_y = np.asarray(out_y, dtype=np.float64)
        finite = np.isfinite(out_x) & np.isfinite(out_y)
        if not finite.any():
            return PixelBBox.empty()
        return PixelBBox.from_float_bounds(
            float(out_x[finite].min()),
            float(out_y[finite].min()),
            float(out_x[finite].max()),
            float(out_y[finite].max()),
        )


@dataclass(frozen=True)
class ManualBounds:
    """User supplied extent, in projection units, spanning a whole image."""

    north: float
    south: float
    east: float
    west: float

    def transform_for(self, cols: int, rows: int) -> Affine:
        return Affine(
            (self.east - self.west) / cols,
            0.0,
            self.west,
            0.0,
            (self.south - self.north) / rows,
            self.north,
        )

    def as_dict(self) -> dict[str, float]:
        return {"north": self.north, "south": self.south, "east": self.east, "west": self.west}


GLOBAL_BOUNDS = ManualBounds(north=90.0, south=-90.0, east=180.0, west=-180.0)


@dataclass(frozen=True)
class GeoreferenceOptions:
    """Overrides applied while resolving source georeferences."""

    datum: DatumOverride = DatumOverride.NONE
    sphere_radius: float | None = None
    projection: ProjectionSpec | None = None
    manual_bounds: ManualBounds | None = None
    nudge_x: float = 0.0
    nudge_y: float = 0.0


@dataclass(frozen=True)
class ResolvedGeoreferences:
    """Per-source georeferences plus the datum shared by the run."""

    georefs: tuple[Georeference, ...]
    datum: Datum


def _resolve_one(
    source: RasterSource,
    options: GeoreferenceOptions,
    datum: Datum | None,
) -> Georeference:
    georef = source.read_georeference()
    if georef is None and options.manual_bounds is None:
        raise GeoreferenceError(
            f"Missing georeference for {source.path}; provide north, south, east and west."
        )
    if georef is None:
        georef = Georeference.geographic(WGS84)
    if datum is not None:
        georef = georef.with_datum(datum)
    if options.manual_bounds is not None:
        georef = georef.with_transform(options.manual_bounds.transform_for(source.cols, source.rows))
    if options.projection is not None:
        georef = georef.with_projection(options.projection)
    if options.nudge_x or options.nudge_y:
        georef = georef.nudged(options.nudge_x, options.nudge_y)
    LOGGER.debug(
        "Resolved georeference: %s",
        georef.crs.to_string(),
        extra={"source": source.path.name},
    )
    return georef


def resolve_georeferences(
    sources: Sequence[RasterSource],
    options: GeoreferenceOptions | None = None,
) -> ResolvedGeoreferences:
    """Resolve one georeference per source and the datum of the run."""
    options = options or GeoreferenceOptions()
    if not sources:
        raise ConfigError("At least one source is required.")
    if options.manual_bounds is not None and len(sources) != 1:
        raise ConfigError("Cannot override georeference information on multiple images.")
    datum = override_datum(options.datum, options.sphere_radius)
    georefs = tuple(_resolve_one(source, options, datum) for source in sources)
    return ResolvedGeoreferences(georefs=georefs, datum=georefs[0].datum)
