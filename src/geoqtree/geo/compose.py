"""Warp sources into output pixel space and composite them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from rasterio.transform import Affine
from rasterio.warp import Resampling, reproject

from geoqtree.errors import ConfigError
from geoqtree.geo.composite import CompositeCanvas
from geoqtree.geo.georef import Georeference, GeoTransform
from geoqtree.geo.models import PixelBBox, PixelRange, Resolution
from geoqtree.geo.source import RasterSource, cast_channels, channel_max, nodata_mask

LOGGER = logging.getLogger(__name__)

# Columns of wrapped pixels added on each side of a global source.
WRAP_PADDING = 2


@dataclass(frozen=True)
class PixelOptions:
    """Per-pixel adjustments applied before warping."""

    nodata: float | None = None
    pixel_scale: float = 1.0
    pixel_offset: float = 0.0
    normalize: bool = False

    @property
    def rescale(self) -> bool:
        return self.pixel_scale != 1.0 or self.pixel_offset != 0.0

    def as_dict(self) -> dict[str, object]:
        return {
            "nodata": self.nodata,
            "pixel_scale": self.pixel_scale,
            "pixel_offset": self.pixel_offset,
            "normalize": self.normalize,
        }


@dataclass(frozen=True)
class Insertion:
    label: str
    bbox: PixelBBox
    wrapped: bool = False


@dataclass(frozen=True)
class CompositionResult:
    canvas: CompositeCanvas
    insertions: tuple[Insertion, ...]
    warnings: tuple[str, ...]


def is_global(georef: Georeference, cols: int, rows: int) -> bool:
    """Return True when a geographic source spans the whole globe.

    The four extreme points must land within one pixel of the matching
    image edges.
    """
    if not georef.is_geographic:
        return False
    left, _ = georef.lonlat_to_pixel(-180.0, 0.0)
    right, _ = georef.lonlat_to_pixel(180.0, 0.0)
    _, top = georef.lonlat_to_pixel(0.0, 90.0)
    _, bottom = georef.lonlat_to_pixel(0.0, -90.0)
    return (
        abs(left) < 1
        and abs(right - cols) < 1
        and abs(top) < 1
        and abs(bottom - rows) < 1
    )


def _match_bands(color: np.ndarray, bands: int) -> np.ndarray:
    if color.shape[0] == bands:
        return color
    if bands == 1:
        return color.mean(axis=0, keepdims=True)
    return np.repeat(color[:1], bands, axis=0)


def adjust_pixels(
    data: np.ndarray,
    source: RasterSource,
    options: PixelOptions,
    *,
    channel_type: str,
    color_bands: int,
    pixel_range: PixelRange | None = None,
) -> np.ndarray:
    """Return source pixels as color bands plus alpha in the output channel type.

    Nodata pixels become transparent before any value adjustment runs.
    """
    full = channel_max(channel_type)
    color = data[: source.color_bands].astype(np.float64)
    if source.has_alpha:
        alpha = data[-1].astype(np.float64) / channel_max(source.channel_type) * full
    else:
        alpha = np.full(color.shape[1:], full, dtype=np.float64)
    nodata = options.nodata if options.nodata is not None else source.nodata
    mask = nodata_mask(color, nodata)
    alpha[mask] = 0

    if options.normalize:
        if pixel_range is None:
            raise ConfigError("Normalization requires an observed pixel range.")
        color = pixel_range.normalize(color) * full
    elif options.rescale:
        color = color * options.pixel_scale + options.pixel_offset

    color = _match_bands(color, color_bands)
    color[:, mask] = 0
    return cast_channels(np.concatenate([color, alpha[np.newaxis]]), channel_type)


def warp_source(
    pixels: np.ndarray,
    georef: Georeference,
    output: Georeference,
    bbox: PixelBBox,
    *,
    wrap: bool = False,
) -> np.ndarray:
    """Reproject adjusted pixels into the output pixel window bbox."""
    src_transform = georef.transform
    if wrap:
        pixels = np.pad(
            pixels,
            ((0, 0), (0, 0), (WRAP_PADDING, WRAP_PADDING)),
            mode="wrap",
        )
        src_transform = src_transform @ Affine.translation(-WRAP_PADDING, 0)
    destination = np.zeros((pixels.shape[0], bbox.height, bbox.width), dtype=pixels.dtype)
    reproject(
        source=pixels,
        destination=destination,
        src_transform=src_transform,
        src_crs=georef.crs.to_wkt(),
        dst_transform=output.transform @ Affine.translation(bbox.min_x, bbox.min_y),
        dst_crs=output.crs.to_wkt(),
        resampling=Resampling.bilinear,
    )
    return destination


def insertion_origins(bbox: PixelBBox, resolution: Resolution) -> tuple[tuple[int, bool], ...]:
    """Return the x origins a warped view is inserted at.

    Views whose right edge passes xresolution are also inserted shifted left
    by the total resolution; views lying wholly past it only go on that side.
    """
    origins: list[tuple[int, bool]] = []
    if bbox.max_x > resolution.xresolution:
        origins.append((bbox.min_x - resolution.total, True))
    if bbox.min_x < resolution.xresolution:
        origins.append((bbox.min_x, False))
    return tuple(origins)


def compose_mosaic(
    sources: Sequence[RasterSource],
    georefs: Sequence[Georeference],
    output: Georeference,
    resolution: Resolution,
    *,
    pixels: PixelOptions | None = None,
    pixel_range: PixelRange | None = None,
    channel_type: str | None = None,
    color_bands: int | None = None,
) -> CompositionResult:
    """Warp every source into output pixel space and insert it into a canvas."""
    pixels = pixels or PixelOptions()
    warnings: list[str] = []
    if pixels.normalize and pixel_range is None:
        raise ConfigError("Normalization requires an observed pixel range.")
    if pixels.normalize and pixels.rescale:
        message = "Both normalization and pixel rescaling requested; ignoring the rescale."
        LOGGER.warning(message)
        warnings.append(message)
    channel_type = channel_type or sources[0].channel_type
    if color_bands is None:
        color_bands = max(source.color_bands for source in sources)

    canvas = CompositeCanvas(color_bands + 1, channel_type)
    extent = PixelBBox(
        -resolution.total, 0, resolution.xresolution + resolution.total, resolution.yresolution
    )
    insertions: list[Insertion] = []
    for source, georef in zip(sources, georefs):
        label = source.path.name
        geotx = GeoTransform(georef, output)
        wrap = is_global(georef, source.cols, source.rows)
        if wrap:
            LOGGER.info("Source wraps the full globe", extra={"source": label})
        bbox = geotx.forward_bbox(source.bbox).crop(extent)
        if bbox.is_empty:
            message = f"Source {source.path} does not overlap the output extent; skipping."
            LOGGER.warning(message, extra={"source": label})
            warnings.append(message)
            continue
        LOGGER.info("Converting %s to %s", source.path, bbox.as_tuple(), extra={"source": label})
        adjusted = adjust_pixels(
            source.read(),
            source,
            pixels,
            channel_type=channel_type,
            color_bands=color_bands,
            pixel_range=pixel_range,
        )
        warped = warp_source(adjusted, georef, output, bbox, wrap=wrap)
        for origin, wrapped in insertion_origins(bbox, resolution):
            view = canvas.insert(warped, origin, bbox.min_y, label=label)
            insertions.append(Insertion(label=label, bbox=view.bbox, wrapped=wrapped))
    return CompositionResult(canvas=canvas, insertions=tuple(insertions), warnings=tuple(warnings))
