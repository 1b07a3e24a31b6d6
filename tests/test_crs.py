from __future__ import annotations

import pytest
from pyproj import CRS

from geoqtree.errors import ConfigError, ProjectionError
from geoqtree.geo.crs import (
    LUNAR_RADIUS,
    MARS_RADIUS,
    WGS84,
    Datum,
    DatumOverride,
    ProjectionKind,
    ProjectionSpec,
    build_crs,
    override_datum,
    replace_datum,
    replace_projection,
    transformer,
)


def test_transformer_uses_lon_lat_order() -> None:
    tx = transformer("EPSG:4326", "EPSG:3857")
    x, y = tx.transform(0.0, 0.0)
    assert x == pytest.approx(0.0)
    assert y == pytest.approx(0.0)
    x, _ = tx.transform(180.0, 0.0)
    assert x == pytest.approx(20037508.342789244)


def test_datum_overrides() -> None:
    assert override_datum(DatumOverride.NONE) is None
    assert override_datum(DatumOverride.WGS84) is WGS84
    assert override_datum(DatumOverride.LUNAR).semi_major == LUNAR_RADIUS
    assert override_datum(DatumOverride.MARS).semi_minor == MARS_RADIUS
    assert override_datum(DatumOverride.SPHERE, 1000.0).semi_major == 1000.0


def test_sphere_override_requires_radius() -> None:
    with pytest.raises(ConfigError, match="radius"):
        override_datum(DatumOverride.SPHERE)


def test_datum_override_parse() -> None:
    assert DatumOverride.parse(None) is DatumOverride.NONE
    assert DatumOverride.parse("Lunar") is DatumOverride.LUNAR
    with pytest.raises(ConfigError):
        DatumOverride.parse("venus")


def test_datum_from_crs() -> None:
    datum = Datum.from_crs("EPSG:4326")
    assert datum.semi_major == pytest.approx(6378137.0)
    assert datum.semi_minor == pytest.approx(6356752.314245179)


def test_replace_datum_keeps_projection() -> None:
    lunar = Datum.sphere(LUNAR_RADIUS, name="D_MOON")
    crs = replace_datum(CRS.from_epsg(4326), lunar)
    assert crs.is_geographic
    assert crs.ellipsoid.semi_major_metre == pytest.approx(LUNAR_RADIUS)
    assert crs.ellipsoid.semi_minor_metre == pytest.approx(LUNAR_RADIUS)


def test_replace_projection_keeps_datum() -> None:
    spec = ProjectionSpec(kind=ProjectionKind.SINUSOIDAL, lon=0.0)
    crs = replace_projection(CRS.from_epsg(4326), spec)
    assert crs.is_projected
    assert crs.to_dict()["proj"] == "sinu"
    assert crs.ellipsoid.semi_major_metre == pytest.approx(6378137.0)


@pytest.mark.parametrize(
    ("spec", "missing"),
    [
        (ProjectionSpec(kind=ProjectionKind.SINUSOIDAL), "lon"),
        (ProjectionSpec(kind=ProjectionKind.MERCATOR, lon=0.0), "lat"),
        (ProjectionSpec(kind=ProjectionKind.ORTHOGRAPHIC, lat=45.0), "lon"),
        (ProjectionSpec(kind=ProjectionKind.LAMBERT_CONFORMAL_CONIC, lat=0.0, lon=0.0, p1=30.0), "p2"),
    ],
)
def test_projection_requires_parameters(spec: ProjectionSpec, missing: str) -> None:
    with pytest.raises(ProjectionError, match=missing):
        spec.proj_params()


def test_utm_zone_sign_selects_hemisphere() -> None:
    north = ProjectionSpec(kind=ProjectionKind.UTM, utm_zone=33).proj_params()
    south = ProjectionSpec(kind=ProjectionKind.UTM, utm_zone=-33).proj_params()
    assert north == {"proj": "utm", "zone": 33, "units": "m"}
    assert south["zone"] == 33
    assert south["south"] is True
    with pytest.raises(ProjectionError):
        ProjectionSpec(kind=ProjectionKind.UTM, utm_zone=0).proj_params()
    with pytest.raises(ProjectionError):
        ProjectionSpec(kind=ProjectionKind.UTM, utm_zone=61).proj_params()


def test_projection_kind_parse() -> None:
    assert ProjectionKind.parse("transverse_mercator") is ProjectionKind.TRANSVERSE_MERCATOR
    with pytest.raises(ConfigError):
        ProjectionKind.parse("polyconic")


def test_build_crs_strips_source_datum_keys() -> None:
    crs = build_crs({"proj": "longlat", "ellps": "GRS80"}, Datum.sphere(1000.0))
    assert crs.ellipsoid.semi_major_metre == pytest.approx(1000.0)
