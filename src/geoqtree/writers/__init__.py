"""Tile writer package exports."""

from geoqtree.writers.base import TileJob, TileSource, TileTreeResult, TileWriter, WriterSpec
from geoqtree.writers.registry import get_writer, list_writers, writer_names

__all__ = [
    "TileJob",
    "TileSource",
    "TileTreeResult",
    "TileWriter",
    "WriterSpec",
    "get_writer",
    "list_writers",
    "writer_names",
]
