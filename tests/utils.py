from __future__ import annotations

from pathlib import Path
from typing import Tuple

import numpy as np
import rasterio
from rasterio.transform import from_bounds


def write_raster(
    path: Path,
    data: np.ndarray,
    *,
    bounds: Tuple[float, float, float, float] | None = (-180.0, -90.0, 180.0, 90.0),
    crs: str | None = "EPSG:4326",
    nodata: float | None = None,
) -> Path:
    """Write a GeoTIFF; 2-D data is one band, 3-D data is (bands, rows, cols)."""
    if data.ndim == 2:
        data = data[np.newaxis]
    count, height, width = data.shape
    profile = {
        "driver": "GTiff",
        "height": height,
        "width": width,
        "count": count,
        "dtype": data.dtype,
        "nodata": nodata,
    }
    if crs is not None:
        profile["crs"] = crs
    if bounds is not None:
        profile["transform"] = from_bounds(*bounds, width=width, height=height)
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(path, "w", **profile) as dataset:
        dataset.write(data)
    return path


def hemispheres(tmp_path: Path, size: int = 1024) -> tuple[Path, Path]:
    """Write west and east hemisphere rasters filled with 10 and 200."""
    west = write_raster(
        tmp_path / "west.tif",
        np.full((size, size), 10, dtype=np.uint8),
        bounds=(-180.0, -90.0, 0.0, 90.0),
    )
    east = write_raster(
        tmp_path / "east.tif",
        np.full((size, size), 200, dtype=np.uint8),
        bounds=(0.0, -90.0, 180.0, 90.0),
    )
    return west, east
