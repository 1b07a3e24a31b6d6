"""Shared tile writer types and protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Protocol

import numpy as np

from geoqtree.geo.models import PixelBBox, PyramidProfile


@dataclass(frozen=True)
class WriterSpec:
    """Describe a tile writer."""

    name: str
    version: str
    description: str = ""


@dataclass(frozen=True)
class TileJob:
    """Inputs required to write one tile pyramid.

    ``extent`` is the pyramid-aligned region; only tiles intersecting
    ``crop_bbox`` carry data.
    """

    output_name: str
    profile: PyramidProfile
    extent: PixelBBox
    crop_bbox: PixelBBox
    tile_size: int
    file_type: str
    parameters: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TileTreeResult:
    """Summary returned by a tile writer."""

    tree_levels: int
    file_type: str
    tile_count: int
    artifacts: Mapping[str, Path] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "tree_levels": self.tree_levels,
            "file_type": self.file_type,
            "tile_count": self.tile_count,
            "artifacts": {name: str(path) for name, path in self.artifacts.items()},
        }


class TileSource(Protocol):
    """Pixels a writer can read, in pyramid pixel space."""

    @property
    def bbox(self) -> PixelBBox:
        ...

    def read(self, window: PixelBBox) -> np.ndarray:
        ...


class TileWriter(Protocol):
    """Protocol implemented by tile writers."""

    def spec(self) -> WriterSpec:
        ...

    def generate(self, job: TileJob, source: TileSource) -> TileTreeResult:
        ...
