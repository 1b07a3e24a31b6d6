"""Pyramid resolution estimation."""

from __future__ import annotations

import logging
import math
from typing import Callable, Sequence, Tuple

from geoqtree.errors import ConfigError
from geoqtree.geo.georef import Georeference, GeoTransform
from geoqtree.geo.models import MIN_RESOLUTION, PyramidProfile, Resolution
from geoqtree.geo.source import RasterSource

LOGGER = logging.getLogger(__name__)

MAX_EXPONENT = 30

ResolutionFunction = Callable[[PyramidProfile, GeoTransform, Tuple[float, float]], int]


def geodetic_resolution(
    profile: PyramidProfile,
    geotx: GeoTransform,
    pixel: tuple[float, float],
) -> int:
    """Return the power-of-two pixels per 360 degrees that preserves detail at pixel.

    geotx must map source pixels to longitude/latitude.
    """
    if not profile.is_georeferenced:
        raise ConfigError(f"Profile {profile.value} has no pyramid resolution.")
    x, y = pixel
    lon, lat = geotx.forward(x, y)
    lon_x, lat_x = geotx.forward(x + 1, y)
    lon_y, lat_y = geotx.forward(x, y + 1)
    degrees = min(math.hypot(lon_x - lon, lat_x - lat), math.hypot(lon_y - lon, lat_y - lat))
    if not math.isfinite(degrees):
        return 0
    if degrees <= 0:
        return 1 << MAX_EXPONENT
    exponent = math.ceil(math.log2(360.0 / degrees) - 1e-9)
    return 1 << max(0, min(exponent, MAX_EXPONENT))


def sample_pixels(cols: int, rows: int) -> tuple[tuple[int, int], ...]:
    """Return the centre pixel and four points a quarter image away from it.

    Several samples keep a singularity at the exact centre (a pole-centred
    raster, say) from dominating the estimate.
    """
    cx, cy = cols // 2, rows // 2
    return (
        (cx, cy),
        (cx + cols // 4, cy),
        (cx - cols // 4, cy),
        (cx, cy + rows // 4),
        (cx, cy - rows // 4),
    )


def estimate_resolution(
    profile: PyramidProfile,
    sources: Sequence[RasterSource],
    georefs: Sequence[Georeference],
    *,
    aspect_ratio: int = 1,
    override: int | None = None,
    resolution_for: ResolutionFunction = geodetic_resolution,
) -> Resolution:
    """Pick one total resolution covering every source at full detail."""
    total = MIN_RESOLUTION
    for source, georef in zip(sources, georefs):
        geotx = GeoTransform(georef, Georeference.geographic(georef.datum))
        for pixel in sample_pixels(source.cols, source.rows):
            total = max(total, resolution_for(profile, geotx, pixel))
        LOGGER.debug("Running total resolution %s", total, extra={"source": source.path.name})
    if override is not None:
        LOGGER.debug("Overriding calculated resolution %s with %s", total, override)
        total = override
    return Resolution(total=total, aspect_ratio=aspect_ratio)
