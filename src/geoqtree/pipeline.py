"""Drive the mosaic stages from options to a written tile tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from geoqtree.config import MosaicOptions
from geoqtree.geo.bounds import PyramidBounds, align_bounds
from geoqtree.geo.compose import compose_mosaic
from geoqtree.geo.crs import Datum
from geoqtree.geo.georef import Georeference, resolve_georeferences
from geoqtree.geo.models import PixelBBox, Resolution
from geoqtree.geo.resolution import ResolutionFunction, estimate_resolution, geodetic_resolution
from geoqtree.geo.source import RasterSource, observe_pixel_range, open_raster_source
from geoqtree.profiles import ProfileConfig, configure_profile, output_georeference, tile_job
from geoqtree.sidecars import emit_sidecars
from geoqtree.writers.base import TileJob, TileTreeResult, TileWriter, WriterSpec
from geoqtree.writers.registry import get_writer

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class MosaicResult:
    """Everything a run produced, for reporting."""

    options: MosaicOptions
    sources: tuple[RasterSource, ...]
    writer: WriterSpec
    config: ProfileConfig
    job: TileJob
    tile_tree: TileTreeResult
    sidecars: dict[str, Path]
    warnings: tuple[str, ...] = ()
    datum: Datum | None = None
    resolution: Resolution | None = None
    output_georef: Georeference | None = None
    composite_bbox: PixelBBox | None = None
    bounds: PyramidBounds | None = None


def run_mosaic(
    options: MosaicOptions,
    *,
    writer: TileWriter | None = None,
    resolution_for: ResolutionFunction = geodetic_resolution,
) -> MosaicResult:
    """Run every stage in order and write the pyramid through a tile writer."""
    options.validate()
    writer = writer or get_writer(options.writer)
    sources = tuple(open_raster_source(path) for path in options.inputs)
    for source in sources:
        LOGGER.info("Adding file %s", source.path, extra={"source": source.path.name})
    output_name = options.resolved_output_name
    profile = options.profile

    if not profile.is_georeferenced:
        source = sources[0]
        config = configure_profile(profile, options.profile_settings)
        job = tile_job(
            config,
            output_name=output_name,
            extent=source.bbox,
            crop_bbox=source.bbox,
            tile_size=options.tile_size,
            file_type=options.file_type,
        )
        LOGGER.info("Generating %s overlay...", profile.value)
        tile_tree = writer.generate(job, source)
        return MosaicResult(
            options=options,
            sources=sources,
            writer=writer.spec(),
            config=config,
            job=job,
            tile_tree=tile_tree,
            sidecars={},
        )

    resolved = resolve_georeferences(sources, options.georef)
    resolution = estimate_resolution(
        profile,
        sources,
        resolved.georefs,
        aspect_ratio=options.aspect_ratio,
        override=options.global_resolution,
        resolution_for=resolution_for,
    )
    output = output_georeference(profile, resolved.datum, resolution)
    LOGGER.debug("Output georeference: %s", output.describe())

    pixel_range = None
    if options.pixels.normalize:
        pixel_range = observe_pixel_range(sources, options.pixels.nodata)
    composition = compose_mosaic(
        sources,
        resolved.georefs,
        output,
        resolution,
        pixels=options.pixels,
        pixel_range=pixel_range,
        channel_type=options.channel_type,
    )
    canvas = composition.canvas
    bounds = align_bounds(profile, canvas.bbox, resolution, output, options.tile_size)
    canvas.prepare(bounds.total_bbox, draft=not options.multiband)

    config = configure_profile(profile, options.profile_settings, bounds.lonlat_bbox)
    job = tile_job(
        config,
        output_name=output_name,
        extent=bounds.total_bbox,
        crop_bbox=bounds.data_bbox,
        tile_size=options.tile_size,
        file_type=options.file_type,
    )
    LOGGER.info("Generating %s overlay...", profile.value)
    tile_tree = writer.generate(job, canvas)
    sidecars = emit_sidecars(config, job, tile_tree)
    return MosaicResult(
        options=options,
        sources=sources,
        writer=writer.spec(),
        config=config,
        job=job,
        tile_tree=tile_tree,
        sidecars=sidecars,
        warnings=composition.warnings,
        datum=resolved.datum,
        resolution=resolution,
        output_georef=output,
        composite_bbox=canvas.bbox,
        bounds=bounds,
    )
