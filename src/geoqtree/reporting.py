"""Mosaic report construction helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from geoqtree.contracts import SCHEMA_VERSION
from geoqtree.pipeline import MosaicResult


def _utc_now() -> str:
    """Return the current UTC timestamp as ISO8601."""
    return datetime.now(timezone.utc).isoformat()


def mosaic_report(result: MosaicResult) -> dict[str, Any]:
    """Create a mosaic report dictionary."""
    tile_tree = result.tile_tree.as_dict()
    tile_tree["writer"] = result.writer.name
    return {
        "schema_version": SCHEMA_VERSION,
        "created_at": _utc_now(),
        "inputs": [
            {"path": str(source.path), "cols": source.cols, "rows": source.rows}
            for source in result.sources
        ],
        "profile": result.config.profile.value,
        "parameters": result.config.parameters(),
        "datum": result.datum.name if result.datum else None,
        "resolution": result.resolution.as_dict() if result.resolution else None,
        "composite_bbox": result.composite_bbox.as_dict() if result.composite_bbox else None,
        "bounds": result.bounds.as_dict() if result.bounds else None,
        "tile_tree": tile_tree,
        "sidecars": {name: str(path) for name, path in result.sidecars.items()},
        "warnings": list(result.warnings),
    }
