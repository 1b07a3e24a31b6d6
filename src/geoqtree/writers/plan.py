"""Tile writer that records the quad-tree layout instead of encoding tiles."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Iterable

import numpy as np

from geoqtree.geo.models import PixelBBox
from geoqtree.writers.base import TileJob, TileSource, TileTreeResult, WriterSpec

LOGGER = logging.getLogger(__name__)


def tree_levels(extent: PixelBBox, tile_size: int) -> int:
    """Return the number of levels needed for extent to reach one root tile."""
    span = max(extent.width, extent.height)
    if span <= tile_size:
        return 1
    return 1 + math.ceil(math.log2(span / tile_size))


def tile_name(col: int, row: int, level: int) -> str:
    """Return the quad-tree name of a tile: ``r`` then one child digit per level.

    Children are numbered 0 (upper left), 1 (upper right), 2 (lower left)
    and 3 (lower right).
    """
    digits = [
        str(((col >> shift) & 1) + 2 * ((row >> shift) & 1))
        for shift in range(level - 1, -1, -1)
    ]
    return "r" + "".join(digits)


def _has_data(pixels: np.ndarray, has_alpha: bool) -> bool:
    if not has_alpha:
        return pixels.size > 0
    return bool((pixels[-1] > 0).any())


def leaf_tiles(job: TileJob, source: TileSource, *, has_alpha: bool) -> set[tuple[int, int]]:
    """Return the (col, row) leaf tiles of the crop region holding data."""
    size = job.tile_size
    crop = job.crop_bbox.crop(job.extent)
    if crop.is_empty:
        return set()
    first_col = (crop.min_x - job.extent.min_x) // size
    first_row = (crop.min_y - job.extent.min_y) // size
    last_col = -(-(crop.max_x - job.extent.min_x) // size)
    last_row = -(-(crop.max_y - job.extent.min_y) // size)
    occupied: set[tuple[int, int]] = set()
    for row in range(first_row, last_row):
        for col in range(first_col, last_col):
            window = PixelBBox.from_size(
                job.extent.min_x + col * size,
                job.extent.min_y + row * size,
                size,
                size,
            ).crop(crop)
            if window.is_empty:
                continue
            if _has_data(source.read(window), has_alpha):
                occupied.add((col, row))
    return occupied


def _level_payload(level: int, tiles: Iterable[tuple[int, int]]) -> dict[str, Any]:
    ordered = sorted(tiles, key=lambda tile: (tile[1], tile[0]))
    return {
        "level": level,
        "tile_count": len(ordered),
        "tiles": [
            {"col": col, "row": row, "name": tile_name(col, row, level)}
            for col, row in ordered
        ],
    }


class PlanWriter:
    """Plan the tile tree and write it as ``<output>.tiles.json``."""

    def spec(self) -> WriterSpec:
        return WriterSpec(
            name="plan",
            version="1",
            description="Record the quad-tree tile index as JSON.",
        )

    def generate(self, job: TileJob, source: TileSource) -> TileTreeResult:
        levels = tree_levels(job.extent, job.tile_size)
        has_alpha = bool(getattr(source, "has_alpha", True))
        tiles = leaf_tiles(job, source, has_alpha=has_alpha)
        payload_levels = []
        for level in range(levels - 1, -1, -1):
            payload_levels.append(_level_payload(level, tiles))
            tiles = {(col // 2, row // 2) for col, row in tiles}
        payload_levels.reverse()
        tile_count = sum(level["tile_count"] for level in payload_levels)

        path = Path(f"{job.output_name}.tiles.json")
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "output_name": job.output_name,
            "profile": job.profile.value,
            "tile_size": job.tile_size,
            "file_type": job.file_type,
            "extent": job.extent.as_dict(),
            "crop_bbox": job.crop_bbox.as_dict(),
            "parameters": dict(job.parameters),
            "tree_levels": levels,
            "tile_count": tile_count,
            "levels": payload_levels,
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        LOGGER.info("Planned %s tiles over %s levels in %s", tile_count, levels, path)
        return TileTreeResult(
            tree_levels=levels,
            file_type=job.file_type,
            tile_count=tile_count,
            artifacts={"tile_plan": path},
        )
