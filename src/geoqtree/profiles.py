"""Output profiles: georeference, typed settings and tile jobs."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Union

from rasterio.transform import Affine

from geoqtree.errors import ConfigError
from geoqtree.geo.crs import Datum, build_crs
from geoqtree.geo.georef import Georeference
from geoqtree.geo.models import LonLatBBox, PixelBBox, PyramidProfile, Resolution
from geoqtree.writers.base import TileJob


def _geographic(datum: Datum, resolution: Resolution, *, north: float, lat_span: float) -> Georeference:
    transform = Affine(
        360.0 / resolution.xresolution,
        0.0,
        -180.0,
        0.0,
        -lat_span / resolution.yresolution,
        north,
    )
    return Georeference.geographic(datum, transform)


def _kml_georeference(datum: Datum, resolution: Resolution) -> Georeference:
    # Square-degree pixels; the lower half of the grid lies below -90.
    return _geographic(datum, resolution, north=90.0, lat_span=360.0)


def _tms_georeference(datum: Datum, resolution: Resolution) -> Georeference:
    # Square-degree pixels with the globe centred vertically.
    return _geographic(datum, resolution, north=180.0, lat_span=360.0)


def _plate_carree_georeference(datum: Datum, resolution: Resolution) -> Georeference:
    return _geographic(datum, resolution, north=90.0, lat_span=180.0)


def _gmap_georeference(datum: Datum, resolution: Resolution) -> Georeference:
    radius = datum.semi_major
    sphere = Datum.sphere(radius, name=f"{datum.name} sphere")
    half = math.pi * radius
    transform = Affine(
        2 * half / resolution.xresolution,
        0.0,
        -half,
        0.0,
        -2 * half / resolution.yresolution,
        half,
    )
    crs = build_crs({"proj": "merc", "lat_ts": 0.0, "lon_0": 0.0, "units": "m"}, sphere)
    return Georeference(crs=crs, transform=transform)


_OUTPUT_GEOREFERENCES: dict[PyramidProfile, Callable[[Datum, Resolution], Georeference]] = {
    PyramidProfile.KML: _kml_georeference,
    PyramidProfile.GIGAPAN: _kml_georeference,
    PyramidProfile.TMS: _tms_georeference,
    PyramidProfile.UNIVIEW: _plate_carree_georeference,
    PyramidProfile.CELESTIA: _plate_carree_georeference,
    PyramidProfile.GMAP: _gmap_georeference,
}


def output_georeference(profile: PyramidProfile, datum: Datum, resolution: Resolution) -> Georeference:
    """Return the georeference of the pyramid's output pixel space."""
    try:
        builder = _OUTPUT_GEOREFERENCES[profile]
    except KeyError as exc:
        raise ConfigError(f"Profile {profile.value} has no output georeference.") from exc
    return builder(datum, resolution)


@dataclass(frozen=True)
class ProfileSettings:
    """Profile knobs collected from the mosaic options."""

    max_lod_pixels: int = 1024
    draw_order_offset: int = 0
    terrain: bool = False
    module_name: str | None = None


@dataclass(frozen=True)
class KmlConfig:
    profile: ClassVar[PyramidProfile] = PyramidProfile.KML

    longlat_bbox: LonLatBBox
    max_lod_pixels: int = 1024
    draw_order_offset: int = 0

    def parameters(self) -> dict[str, Any]:
        return {
            "longlat_bbox": self.longlat_bbox.as_dict(),
            "max_lod_pixels": self.max_lod_pixels,
            "draw_order_offset": self.draw_order_offset,
        }


@dataclass(frozen=True)
class TmsConfig:
    profile: ClassVar[PyramidProfile] = PyramidProfile.TMS

    def parameters(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class UniviewConfig:
    profile: ClassVar[PyramidProfile] = PyramidProfile.UNIVIEW

    module_name: str
    terrain: bool = False

    def parameters(self) -> dict[str, Any]:
        return {"module_name": self.module_name, "terrain": self.terrain}


@dataclass(frozen=True)
class GmapConfig:
    profile: ClassVar[PyramidProfile] = PyramidProfile.GMAP

    def parameters(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class CelestiaConfig:
    profile: ClassVar[PyramidProfile] = PyramidProfile.CELESTIA

    module_name: str

    def parameters(self) -> dict[str, Any]:
        return {"module_name": self.module_name}


@dataclass(frozen=True)
class GigapanConfig:
    profile: ClassVar[PyramidProfile] = PyramidProfile.GIGAPAN

    longlat_bbox: LonLatBBox

    def parameters(self) -> dict[str, Any]:
        return {"longlat_bbox": self.longlat_bbox.as_dict()}


@dataclass(frozen=True)
class PlainConfig:
    """Settings for profiles that write a non-georeferenced pyramid."""

    profile: PyramidProfile = PyramidProfile.NONE

    def parameters(self) -> dict[str, Any]:
        return {}


ProfileConfig = Union[
    KmlConfig,
    TmsConfig,
    UniviewConfig,
    GmapConfig,
    CelestiaConfig,
    GigapanConfig,
    PlainConfig,
]


def _module_name(profile: PyramidProfile, settings: ProfileSettings) -> str:
    if not settings.module_name:
        raise ConfigError(f"Profile {profile.value} requires a module name.")
    return settings.module_name


def _require_bbox(profile: PyramidProfile, bbox: LonLatBBox | None) -> LonLatBBox:
    if bbox is None:
        raise ConfigError(f"Profile {profile.value} requires a lon/lat bounding box.")
    return bbox


_PROFILE_FACTORIES: dict[
    PyramidProfile, Callable[[ProfileSettings, LonLatBBox | None], ProfileConfig]
] = {
    PyramidProfile.KML: lambda settings, bbox: KmlConfig(
        longlat_bbox=_require_bbox(PyramidProfile.KML, bbox),
        max_lod_pixels=settings.max_lod_pixels,
        draw_order_offset=settings.draw_order_offset,
    ),
    PyramidProfile.TMS: lambda settings, bbox: TmsConfig(),
    PyramidProfile.UNIVIEW: lambda settings, bbox: UniviewConfig(
        module_name=_module_name(PyramidProfile.UNIVIEW, settings),
        terrain=settings.terrain,
    ),
    PyramidProfile.GMAP: lambda settings, bbox: GmapConfig(),
    PyramidProfile.CELESTIA: lambda settings, bbox: CelestiaConfig(
        module_name=_module_name(PyramidProfile.CELESTIA, settings),
    ),
    PyramidProfile.GIGAPAN: lambda settings, bbox: GigapanConfig(
        longlat_bbox=_require_bbox(PyramidProfile.GIGAPAN, bbox),
    ),
    PyramidProfile.NONE: lambda settings, bbox: PlainConfig(PyramidProfile.NONE),
    PyramidProfile.GIGAPAN_NOPROJ: lambda settings, bbox: PlainConfig(PyramidProfile.GIGAPAN_NOPROJ),
}


def configure_profile(
    profile: PyramidProfile,
    settings: ProfileSettings | None = None,
    lonlat_bbox: LonLatBBox | None = None,
) -> ProfileConfig:
    """Bind the fixed parameters of one profile."""
    return _PROFILE_FACTORIES[profile](settings or ProfileSettings(), lonlat_bbox)


def tile_job(
    config: ProfileConfig,
    *,
    output_name: str,
    extent: PixelBBox,
    crop_bbox: PixelBBox,
    tile_size: int,
    file_type: str,
) -> TileJob:
    """Describe the pyramid the tile writer should generate."""
    return TileJob(
        output_name=output_name,
        profile=config.profile,
        extent=extent,
        crop_bbox=crop_bbox,
        tile_size=tile_size,
        file_type=file_type,
        parameters=config.parameters(),
    )
