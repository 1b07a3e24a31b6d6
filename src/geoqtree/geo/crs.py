"""Datum and projection selection on top of pyproj."""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError

from geoqtree.errors import ConfigError, ProjectionError

# proj4 keys that describe the datum rather than the projection.
DATUM_KEYS = frozenset({"datum", "ellps", "a", "b", "R", "rf", "f", "towgs84", "nadgrids", "pm"})

LUNAR_RADIUS = 1737400.0
MARS_RADIUS = 3396190.0


def normalize_crs(value: str | CRS) -> CRS:
    """Normalize CRS input into a pyproj CRS object."""
    return CRS.from_user_input(value)


def transformer(src: str | CRS, dst: str | CRS) -> Transformer:
    """Return a transformer that respects lon/lat axis order."""
    return Transformer.from_crs(normalize_crs(src), normalize_crs(dst), always_xy=True)


def proj_params(crs: CRS) -> dict[str, Any]:
    """Return the proj4 parameters of a CRS."""
    with warnings.catch_warnings():
        # to_dict warns that WKT details may be lost; only proj parameters are needed here.
        warnings.simplefilter("ignore", UserWarning)
        params = crs.to_dict()
    params.pop("type", None)
    return params


def _crs_from_params(params: Mapping[str, Any]) -> CRS:
    try:
        return CRS.from_dict(dict(params))
    except CRSError as exc:
        raise ProjectionError(f"Invalid projection parameters: {dict(params)}") from exc


@dataclass(frozen=True)
class Datum:
    """Reference ellipsoid for a run, expressed as proj parameters."""

    name: str
    params: tuple[tuple[str, Any], ...]
    semi_major: float
    semi_minor: float

    def proj_params(self) -> dict[str, Any]:
        return dict(self.params)

    @classmethod
    def sphere(cls, radius: float, name: str = "USER SUPPLIED DATUM") -> Datum:
        """Return a spherical datum with the given radius in meters."""
        return cls(name=name, params=(("a", radius), ("b", radius)), semi_major=radius, semi_minor=radius)

    @classmethod
    def from_crs(cls, value: str | CRS) -> Datum:
        """Extract the datum of a geographic or projected CRS."""
        crs = normalize_crs(value)
        geodetic = crs.geodetic_crs or crs
        params = {key: item for key, item in proj_params(geodetic).items() if key in DATUM_KEYS}
        if not params:
            params = {"ellps": "WGS84"}
        ellipsoid = crs.ellipsoid
        semi_major = ellipsoid.semi_major_metre if ellipsoid else WGS84.semi_major
        semi_minor = ellipsoid.semi_minor_metre if ellipsoid else WGS84.semi_minor
        name = crs.datum.name if crs.datum else "unknown"
        return cls(
            name=name,
            params=tuple(sorted(params.items(), key=lambda item: item[0])),
            semi_major=semi_major,
            semi_minor=semi_minor,
        )


WGS84 = Datum(
    name="WGS84",
    params=(("datum", "WGS84"),),
    semi_major=6378137.0,
    semi_minor=6356752.314245179,
)


class DatumOverride(str, Enum):
    """Datum that replaces whatever the sources declare."""

    NONE = "none"
    WGS84 = "wgs84"
    LUNAR = "lunar"
    MARS = "mars"
    SPHERE = "sphere"

    @classmethod
    def parse(cls, value: str | DatumOverride | None) -> DatumOverride:
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ConfigError(f"Unknown datum override: {value}") from exc


def override_datum(kind: DatumOverride, radius: float | None = None) -> Datum | None:
    """Return the datum for an override, or None when sources keep theirs."""
    if kind is DatumOverride.NONE:
        return None
    if kind is DatumOverride.WGS84:
        return WGS84
    if kind is DatumOverride.LUNAR:
        return Datum.sphere(LUNAR_RADIUS, name="D_MOON")
    if kind is DatumOverride.MARS:
        return Datum.sphere(MARS_RADIUS, name="D_MARS")
    if radius is None or radius <= 0:
        raise ConfigError("Sphere datum override requires a positive radius.")
    return Datum.sphere(float(radius))


class ProjectionKind(str, Enum):
    """Projections that can be applied uniformly to every source."""

    SINUSOIDAL = "sinusoidal"
    MERCATOR = "mercator"
    TRANSVERSE_MERCATOR = "transverse-mercator"
    ORTHOGRAPHIC = "orthographic"
    STEREOGRAPHIC = "stereographic"
    LAMBERT_AZIMUTHAL = "lambert-azimuthal"
    LAMBERT_CONFORMAL_CONIC = "lambert-conformal-conic"
    UTM = "utm"
    PLATE_CARREE = "plate-carree"

    @classmethod
    def parse(cls, value: str | ProjectionKind) -> ProjectionKind:
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", "-")
        try:
            return cls(key)
        except ValueError as exc:
            raise ConfigError(f"Unknown projection: {value}") from exc


@dataclass(frozen=True)
class ProjectionSpec:
    """Projection type plus the parameters it needs.

    ``utm_zone`` is signed: positive zones are north, negative zones south.
    """

    kind: ProjectionKind = ProjectionKind.PLATE_CARREE
    lat: float | None = None
    lon: float | None = None
    scale: float = 1.0
    p1: float | None = None
    p2: float | None = None
    utm_zone: int | None = None

    def require(self, name: str) -> float:
        value = getattr(self, name)
        if value is None:
            raise ProjectionError(f"Projection {self.kind.value} requires '{name}'.")
        return value

    def proj_params(self) -> dict[str, Any]:
        """Return proj4 parameters for the projection, without a datum."""
        return _PROJECTION_BUILDERS[self.kind](self)

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "lat": self.lat,
            "lon": self.lon,
            "scale": self.scale,
            "p1": self.p1,
            "p2": self.p2,
            "utm_zone": self.utm_zone,
        }


def _utm_params(spec: ProjectionSpec) -> dict[str, Any]:
    zone = spec.utm_zone
    if zone is None or zone == 0 or abs(zone) > 60:
        raise ProjectionError("Projection utm requires a zone in [-60, -1] or [1, 60].")
    params: dict[str, Any] = {"proj": "utm", "zone": abs(zone), "units": "m"}
    if zone < 0:
        params["south"] = True
    return params


_PROJECTION_BUILDERS: dict[ProjectionKind, Callable[[ProjectionSpec], dict[str, Any]]] = {
    ProjectionKind.PLATE_CARREE: lambda spec: {"proj": "longlat"},
    ProjectionKind.SINUSOIDAL: lambda spec: {
        "proj": "sinu",
        "lon_0": spec.require("lon"),
        "units": "m",
    },
    ProjectionKind.MERCATOR: lambda spec: {
        "proj": "merc",
        "lat_ts": spec.require("lat"),
        "lon_0": spec.require("lon"),
        "k_0": spec.scale,
        "units": "m",
    },
    ProjectionKind.TRANSVERSE_MERCATOR: lambda spec: {
        "proj": "tmerc",
        "lat_0": spec.require("lat"),
        "lon_0": spec.require("lon"),
        "k_0": spec.scale,
        "units": "m",
    },
    ProjectionKind.ORTHOGRAPHIC: lambda spec: {
        "proj": "ortho",
        "lat_0": spec.require("lat"),
        "lon_0": spec.require("lon"),
        "units": "m",
    },
    ProjectionKind.STEREOGRAPHIC: lambda spec: {
        "proj": "stere",
        "lat_0": spec.require("lat"),
        "lon_0": spec.require("lon"),
        "k_0": spec.scale,
        "units": "m",
    },
    ProjectionKind.LAMBERT_AZIMUTHAL: lambda spec: {
        "proj": "laea",
        "lat_0": spec.require("lat"),
        "lon_0": spec.require("lon"),
        "units": "m",
    },
    ProjectionKind.LAMBERT_CONFORMAL_CONIC: lambda spec: {
        "proj": "lcc",
        "lat_1": spec.require("p1"),
        "lat_2": spec.require("p2"),
        "lat_0": spec.require("lat"),
        "lon_0": spec.require("lon"),
        "units": "m",
    },
    ProjectionKind.UTM: _utm_params,
}


def build_crs(projection: Mapping[str, Any], datum: Datum) -> CRS:
    """Combine projection parameters with a datum into a CRS."""
    params = {key: value for key, value in projection.items() if key not in DATUM_KEYS}
    params.update(datum.proj_params())
    params["no_defs"] = True
    return _crs_from_params(params)


def replace_datum(crs: CRS, datum: Datum) -> CRS:
    """Return crs with its projection kept and its datum replaced."""
    return build_crs(proj_params(crs), datum)


def replace_projection(crs: CRS, projection: ProjectionSpec) -> CRS:
    """Return a CRS using the projection on the datum of crs."""
    return build_crs(projection.proj_params(), Datum.from_crs(crs))
