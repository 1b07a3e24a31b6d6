"""Mosaic option loading, normalization and validation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import jsonschema

from geoqtree.contracts import validate_mosaic_config
from geoqtree.errors import ConfigError
from geoqtree.geo.compose import PixelOptions
from geoqtree.geo.crs import DatumOverride, ProjectionKind, ProjectionSpec, override_datum
from geoqtree.geo.georef import GLOBAL_BOUNDS, GeoreferenceOptions, ManualBounds
from geoqtree.geo.models import PyramidProfile
from geoqtree.profiles import ProfileSettings

CHANNEL_TYPES = ("uint8", "uint16", "int16", "float32")
BOUND_KEYS = ("north", "south", "east", "west")
NESTED_KEYS = ("georeference", "pixels")


def _is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


@dataclass(frozen=True)
class MosaicOptions:
    """Normalized options for one mosaic run."""

    inputs: tuple[Path, ...]
    output_name: str | None = None
    profile: PyramidProfile = PyramidProfile.KML
    georef: GeoreferenceOptions = field(default_factory=GeoreferenceOptions)
    pixels: PixelOptions = field(default_factory=PixelOptions)
    aspect_ratio: int = 1
    global_resolution: int | None = None
    tile_size: int = 256
    file_type: str = "png"
    channel_type: str | None = None
    multiband: bool = False
    max_lod_pixels: int = 1024
    draw_order_offset: int = 0
    terrain: bool = False
    module_name: str | None = None
    writer: str = "plan"

    @property
    def resolved_output_name(self) -> str:
        """Return the output name, defaulting to the first input without its suffix."""
        if self.output_name:
            return self.output_name
        return str(self.inputs[0].with_suffix(""))

    @property
    def profile_settings(self) -> ProfileSettings:
        return ProfileSettings(
            max_lod_pixels=self.max_lod_pixels,
            draw_order_offset=self.draw_order_offset,
            terrain=self.terrain,
            module_name=self.module_name,
        )

    def validate(self) -> None:
        """Raise ConfigError when options cannot describe a run."""
        if not self.inputs:
            raise ConfigError("Need at least one input image.")
        if self.georef.manual_bounds is not None and len(self.inputs) != 1:
            raise ConfigError("Cannot override georeference information on multiple images.")
        if not self.profile.is_georeferenced and len(self.inputs) != 1:
            raise ConfigError("Non-georeferenced images cannot be composed.")
        if self.profile in (PyramidProfile.UNIVIEW, PyramidProfile.CELESTIA) and not self.module_name:
            raise ConfigError("Uniview and Celestia require a module name.")
        if not _is_power_of_two(self.aspect_ratio):
            raise ConfigError(f"Aspect ratio must be a positive power of two, got {self.aspect_ratio}.")
        if not _is_power_of_two(self.tile_size):
            raise ConfigError(f"Tile size must be a positive power of two, got {self.tile_size}.")
        if self.global_resolution is not None and self.global_resolution <= 0:
            raise ConfigError("Global resolution must be positive.")
        if self.channel_type is not None and self.channel_type not in CHANNEL_TYPES:
            raise ConfigError(
                f"Unsupported channel type: {self.channel_type} (expected one of {', '.join(CHANNEL_TYPES)})"
            )
        override_datum(self.georef.datum, self.georef.sphere_radius)

    def as_dict(self) -> dict[str, Any]:
        georef: dict[str, Any] = {
            "datum": self.georef.datum.value,
            "nudge_x": self.georef.nudge_x,
            "nudge_y": self.georef.nudge_y,
        }
        if self.georef.sphere_radius is not None:
            georef["sphere_radius"] = self.georef.sphere_radius
        if self.georef.projection is not None:
            georef["projection"] = {
                key: value
                for key, value in self.georef.projection.as_dict().items()
                if value is not None
            }
        if self.georef.manual_bounds is not None:
            georef["bounds"] = self.georef.manual_bounds.as_dict()
        payload: dict[str, Any] = {
            "inputs": [str(path) for path in self.inputs],
            "output_name": self.resolved_output_name if self.inputs else self.output_name,
            "profile": self.profile.value,
            "georeference": georef,
            "pixels": {key: value for key, value in self.pixels.as_dict().items() if value is not None},
            "aspect_ratio": self.aspect_ratio,
            "tile_size": self.tile_size,
            "file_type": self.file_type,
            "multiband": self.multiband,
            "max_lod_pixels": self.max_lod_pixels,
            "draw_order_offset": self.draw_order_offset,
            "terrain": self.terrain,
            "writer": self.writer,
        }
        if self.global_resolution is not None:
            payload["global_resolution"] = self.global_resolution
        if self.channel_type is not None:
            payload["channel_type"] = self.channel_type
        if self.module_name is not None:
            payload["module_name"] = self.module_name
        return payload


def manual_bounds_from_mapping(
    values: Mapping[str, Any] | None,
    *,
    use_global: bool = False,
) -> ManualBounds | None:
    """Return manual bounds when all four edges (or the global flag) are given."""
    if use_global:
        return GLOBAL_BOUNDS
    if not values:
        return None
    present = {key: values.get(key) for key in BOUND_KEYS}
    if all(value is None for value in present.values()):
        return None
    missing = [key for key, value in present.items() if value is None]
    if missing:
        raise ConfigError(
            "If you provide one, you must provide all of: north, south, east, west "
            f"(missing {', '.join(missing)})."
        )
    return ManualBounds(**{key: float(value) for key, value in present.items()})


def projection_from_mapping(values: Mapping[str, Any] | None) -> ProjectionSpec | None:
    if not values or values.get("type") in (None, "none"):
        return None
    zone = values.get("utm_zone")
    return ProjectionSpec(
        kind=ProjectionKind.parse(values["type"]),
        lat=values.get("lat"),
        lon=values.get("lon"),
        scale=float(values.get("scale", 1.0)),
        p1=values.get("p1"),
        p2=values.get("p2"),
        utm_zone=int(zone) if zone is not None else None,
    )


def georeference_from_mapping(values: Mapping[str, Any] | None) -> GeoreferenceOptions:
    values = values or {}
    radius = values.get("sphere_radius")
    return GeoreferenceOptions(
        datum=DatumOverride.parse(values.get("datum")),
        sphere_radius=float(radius) if radius is not None else None,
        projection=projection_from_mapping(values.get("projection")),
        manual_bounds=manual_bounds_from_mapping(
            values.get("bounds"),
            use_global=bool(values.get("global", False)),
        ),
        nudge_x=float(values.get("nudge_x", 0.0)),
        nudge_y=float(values.get("nudge_y", 0.0)),
    )


def pixels_from_mapping(values: Mapping[str, Any] | None) -> PixelOptions:
    values = values or {}
    nodata = values.get("nodata")
    return PixelOptions(
        nodata=float(nodata) if nodata is not None else None,
        pixel_scale=float(values.get("pixel_scale", 1.0)),
        pixel_offset=float(values.get("pixel_offset", 0.0)),
        normalize=bool(values.get("normalize", False)),
    )


def options_from_mapping(payload: Mapping[str, Any]) -> MosaicOptions:
    """Normalize a raw mosaic config payload into MosaicOptions."""
    inputs = payload.get("inputs") or []
    if isinstance(inputs, str):
        inputs = [inputs]
    resolution = payload.get("global_resolution")
    options = MosaicOptions(
        inputs=tuple(Path(item) for item in inputs),
        output_name=payload.get("output_name"),
        profile=PyramidProfile.parse(payload.get("profile", PyramidProfile.KML.value)),
        georef=georeference_from_mapping(payload.get("georeference")),
        pixels=pixels_from_mapping(payload.get("pixels")),
        aspect_ratio=int(payload.get("aspect_ratio", 1)),
        global_resolution=int(resolution) if resolution is not None else None,
        tile_size=int(payload.get("tile_size", 256)),
        file_type=str(payload.get("file_type", "png")),
        channel_type=payload.get("channel_type"),
        multiband=bool(payload.get("multiband", False)),
        max_lod_pixels=int(payload.get("max_lod_pixels", 1024)),
        draw_order_offset=int(payload.get("draw_order_offset", 0)),
        terrain=bool(payload.get("terrain", False)),
        module_name=payload.get("module_name"),
        writer=str(payload.get("writer", "plan")),
    )
    options.validate()
    return options


def merge_mosaic_payloads(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay overrides on base, merging the nested option groups key by key."""
    merged = dict(base)
    for key, value in overrides.items():
        if key in NESTED_KEYS and isinstance(merged.get(key), Mapping):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def read_mosaic_config(path: Path) -> dict[str, Any]:
    """Read a mosaic config file and validate it against the schema."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, Mapping):
        raise ConfigError("Mosaic config must be a JSON object.")
    try:
        validate_mosaic_config(payload)
    except jsonschema.ValidationError as exc:
        raise ConfigError(f"Invalid mosaic config {path}: {exc.message}") from exc
    return dict(payload)


def load_mosaic_config(path: Path) -> MosaicOptions:
    """Load, validate and normalize a mosaic config file from disk."""
    return options_from_mapping(read_mosaic_config(path))
