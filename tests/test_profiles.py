from __future__ import annotations

import math

import pytest

from geoqtree.errors import ConfigError
from geoqtree.geo.crs import LUNAR_RADIUS, WGS84, Datum
from geoqtree.geo.models import LonLatBBox, PixelBBox, PyramidProfile, Resolution
from geoqtree.profiles import (
    CelestiaConfig,
    GigapanConfig,
    KmlConfig,
    PlainConfig,
    ProfileSettings,
    UniviewConfig,
    configure_profile,
    output_georeference,
    tile_job,
)

WORLD = LonLatBBox(west=-180.0, south=-90.0, east=180.0, north=90.0)


def test_kml_output_georeference_uses_square_degrees() -> None:
    resolution = Resolution(2048)
    georef = output_georeference(PyramidProfile.KML, WGS84, resolution)
    assert georef.is_geographic
    assert georef.pixel_to_point(0, 0) == pytest.approx((-180.0, 90.0))
    assert georef.pixel_to_point(2048, 1024) == pytest.approx((180.0, -90.0))


def test_tms_output_georeference_centres_globe() -> None:
    georef = output_georeference(PyramidProfile.TMS, WGS84, Resolution(1024))
    assert georef.pixel_to_point(0, 256) == pytest.approx((-180.0, 90.0))
    assert georef.pixel_to_point(1024, 768) == pytest.approx((180.0, -90.0))


def test_plate_carree_output_georeference() -> None:
    for profile in (PyramidProfile.UNIVIEW, PyramidProfile.CELESTIA):
        georef = output_georeference(profile, WGS84, Resolution(1024))
        assert georef.pixel_to_point(1024, 1024) == pytest.approx((180.0, -90.0))


def test_gmap_output_georeference_is_spherical_mercator() -> None:
    lunar = Datum.sphere(LUNAR_RADIUS, name="D_MOON")
    georef = output_georeference(PyramidProfile.GMAP, lunar, Resolution(1024))
    half = math.pi * LUNAR_RADIUS
    assert georef.crs.to_dict()["proj"] == "merc"
    assert georef.crs.ellipsoid.semi_major_metre == pytest.approx(LUNAR_RADIUS)
    assert georef.pixel_to_point(0, 0) == pytest.approx((-half, half))
    lon, lat = georef.pixel_to_lonlat(512.0, 512.0)
    assert (lon, lat) == pytest.approx((0.0, 0.0), abs=1e-9)
    _, north = georef.pixel_to_lonlat(512.0, 0.0)
    assert north == pytest.approx(85.0511287798, abs=1e-6)


def test_plain_profiles_have_no_output_georeference() -> None:
    with pytest.raises(ConfigError):
        output_georeference(PyramidProfile.NONE, WGS84, Resolution(1024))


def test_configure_kml() -> None:
    config = configure_profile(
        PyramidProfile.KML,
        ProfileSettings(max_lod_pixels=512, draw_order_offset=3),
        WORLD,
    )
    assert isinstance(config, KmlConfig)
    assert config.profile is PyramidProfile.KML
    assert config.parameters() == {
        "longlat_bbox": WORLD.as_dict(),
        "max_lod_pixels": 512,
        "draw_order_offset": 3,
    }


def test_configure_gigapan_keeps_only_bbox() -> None:
    config = configure_profile(PyramidProfile.GIGAPAN, ProfileSettings(max_lod_pixels=64), WORLD)
    assert config == GigapanConfig(longlat_bbox=WORLD)
    assert config.parameters() == {"longlat_bbox": WORLD.as_dict()}


def test_configure_kml_requires_bbox() -> None:
    with pytest.raises(ConfigError, match="bounding box"):
        configure_profile(PyramidProfile.KML)


def test_module_name_required() -> None:
    with pytest.raises(ConfigError, match="module name"):
        configure_profile(PyramidProfile.UNIVIEW, ProfileSettings(terrain=True))
    with pytest.raises(ConfigError, match="module name"):
        configure_profile(PyramidProfile.CELESTIA)
    uniview = configure_profile(PyramidProfile.UNIVIEW, ProfileSettings(terrain=True, module_name="Mars"))
    assert uniview == UniviewConfig(module_name="Mars", terrain=True)
    celestia = configure_profile(PyramidProfile.CELESTIA, ProfileSettings(module_name="Mars"))
    assert celestia == CelestiaConfig(module_name="Mars")


def test_plain_profiles() -> None:
    config = configure_profile(PyramidProfile.GIGAPAN_NOPROJ)
    assert config == PlainConfig(PyramidProfile.GIGAPAN_NOPROJ)
    assert config.parameters() == {}


def test_tile_job_binds_crop_region() -> None:
    config = configure_profile(PyramidProfile.TMS)
    job = tile_job(
        config,
        output_name="out/world",
        extent=PixelBBox(0, 0, 1024, 1024),
        crop_bbox=PixelBBox(0, 512, 512, 768),
        tile_size=256,
        file_type="jpg",
    )
    assert job.profile is PyramidProfile.TMS
    assert job.crop_bbox == PixelBBox(0, 512, 512, 768)
    assert job.file_type == "jpg"
    assert job.parameters == {}
