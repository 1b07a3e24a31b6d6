"""Raster source handles backed by rasterio."""

from __future__ import annotations

import logging
import math
import warnings
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Sequence

import numpy as np
import rasterio
from pyproj import CRS
from pyproj.exceptions import CRSError
from rasterio.errors import NotGeoreferencedWarning, RasterioIOError
from rasterio.transform import Affine
from rasterio.windows import Window

from geoqtree.errors import ConfigError, RasterIOError
from geoqtree.geo.georef import Georeference
from geoqtree.geo.models import PixelBBox, PixelRange

LOGGER = logging.getLogger(__name__)

PIXEL_FORMATS = {1: "gray", 2: "graya", 3: "rgb"}


def channel_max(dtype: str | np.dtype) -> float:
    """Return the value that means full intensity for a channel type."""
    kind = np.dtype(dtype)
    if np.issubdtype(kind, np.integer):
        return float(np.iinfo(kind).max)
    return 1.0


def channel_limits(dtype: str | np.dtype) -> tuple[float, float]:
    kind = np.dtype(dtype)
    if np.issubdtype(kind, np.integer):
        info = np.iinfo(kind)
        return float(info.min), float(info.max)
    return -math.inf, math.inf


def cast_channels(data: np.ndarray, dtype: str | np.dtype) -> np.ndarray:
    """Clip and round float pixels into a channel type."""
    kind = np.dtype(dtype)
    if np.issubdtype(kind, np.integer):
        lo, hi = channel_limits(kind)
        return np.clip(np.rint(data), lo, hi).astype(kind)
    return data.astype(kind)


def nodata_mask(color: np.ndarray, nodata: float | None) -> np.ndarray:
    """Return a (rows, cols) mask of pixels whose every channel is nodata."""
    if nodata is None:
        return np.zeros(color.shape[1:], dtype=bool)
    if np.isnan(nodata):
        return np.all(np.isnan(color), axis=0)
    return np.all(color == nodata, axis=0)


@contextmanager
def _open_dataset(path: Path) -> Iterator[Any]:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NotGeoreferencedWarning)
        try:
            dataset = rasterio.open(path)
        except RasterioIOError as exc:
            raise RasterIOError(f"Unable to read raster source: {path}") from exc
        with dataset:
            yield dataset


def _read_crs(dataset: Any, path: Path) -> CRS | None:
    if dataset.crs is None:
        return None
    try:
        return CRS.from_user_input(dataset.crs.to_wkt())
    except (CRSError, ValueError) as exc:
        LOGGER.warning(
            "Input %s has malformed georeferencing information: %s",
            path,
            exc,
            extra={"source": path.name},
        )
        return None


@dataclass(frozen=True)
class RasterSource:
    """Immutable handle to a raster on disk."""

    path: Path
    pixel_format: str
    channel_type: str
    cols: int
    rows: int
    band_count: int
    nodata: float | None
    crs: CRS | None
    transform: Affine

    @property
    def has_alpha(self) -> bool:
        return self.pixel_format in ("graya", "rgba")

    @property
    def color_bands(self) -> int:
        return 1 if self.pixel_format.startswith("gray") else 3

    @property
    def bbox(self) -> PixelBBox:
        return PixelBBox(0, 0, self.cols, self.rows)

    def read_georeference(self) -> Georeference | None:
        """Return the embedded georeference, or None when the file has none."""
        if self.crs is None or self.transform == Affine.identity():
            return None
        return Georeference(crs=self.crs, transform=self.transform)

    def read(self, window: PixelBBox | None = None) -> np.ndarray:
        """Read the used bands as a (bands, rows, cols) array."""
        indexes = list(range(1, self.color_bands + (2 if self.has_alpha else 1)))
        with _open_dataset(self.path) as dataset:
            if window is None:
                return dataset.read(indexes)
            return dataset.read(
                indexes,
                window=Window(window.min_x, window.min_y, window.width, window.height),
                boundless=True,
                fill_value=0,
            )

    def describe(self) -> dict[str, Any]:
        georef = self.read_georeference()
        return {
            "path": str(self.path),
            "pixel_format": self.pixel_format,
            "channel_type": self.channel_type,
            "cols": self.cols,
            "rows": self.rows,
            "nodata": self.nodata,
            "georeference": georef.describe() if georef else None,
        }


def open_raster_source(path: Path) -> RasterSource:
    """Collect metadata about a raster on disk."""
    path = Path(path)
    with _open_dataset(path) as dataset:
        count = dataset.count
        return RasterSource(
            path=path,
            pixel_format=PIXEL_FORMATS.get(count, "rgba"),
            channel_type=dataset.dtypes[0],
            cols=dataset.width,
            rows=dataset.height,
            band_count=count,
            nodata=dataset.nodata,
            crs=_read_crs(dataset, path),
            transform=dataset.transform,
        )


def observe_pixel_range(
    sources: Sequence[RasterSource],
    nodata: float | None = None,
) -> PixelRange:
    """Scan every source and return the channel range they share.

    Pixels equal to nodata (the configured value, else the file's own) are
    excluded. This is the first pass of normalization; the result is
    consumed unchanged by compositing.
    """
    observed: PixelRange | None = None
    for source in sources:
        color = source.read()[: source.color_bands].astype(np.float64)
        mask = nodata_mask(color, nodata if nodata is not None else source.nodata)
        valid = color[:, ~mask]
        if valid.size == 0:
            LOGGER.warning("No valid pixels in %s", source.path, extra={"source": source.path.name})
            continue
        current = PixelRange(float(valid.min()), float(valid.max()))
        observed = current if observed is None else observed.merge(current)
        LOGGER.info(
            "Pixel range for %s: [%s %s]    Output dynamic range: [%s %s]",
            source.path,
            current.lo,
            current.hi,
            observed.lo,
            observed.hi,
            extra={"source": source.path.name},
        )
    if observed is None:
        raise ConfigError("Normalization found no valid pixels in any source.")
    return observed
