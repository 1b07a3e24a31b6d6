"""Composite canvas that accumulates warped sources in output pixel space."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from geoqtree.geo.models import PixelBBox
from geoqtree.geo.source import cast_channels, channel_max

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CanvasView:
    """Warped pixels placed at an origin in output pixel space.

    The last band of ``data`` is alpha.
    """

    data: np.ndarray
    bbox: PixelBBox
    label: str = ""


class CompositeCanvas:
    """Accumulate views in insertion order and composite them on read.

    ``bbox`` is always the union of every inserted view. The canvas is
    prepared exactly once, after which no more views may be inserted.
    Draft mode lets later opaque pixels replace earlier ones; blended mode
    averages overlapping colors weighted by alpha.
    """

    def __init__(self, band_count: int, dtype: str | np.dtype) -> None:
        self.band_count = band_count
        self.dtype = np.dtype(dtype)
        self._views: list[CanvasView] = []
        self._bbox = PixelBBox.empty()
        self._extent: PixelBBox | None = None
        self._draft = True

    @property
    def bbox(self) -> PixelBBox:
        return self._bbox

    @property
    def views(self) -> tuple[CanvasView, ...]:
        return tuple(self._views)

    @property
    def has_alpha(self) -> bool:
        return True

    @property
    def extent(self) -> PixelBBox | None:
        """Prepared extent, or None before prepare()."""
        return self._extent

    @property
    def draft(self) -> bool:
        return self._draft

    def insert(self, data: np.ndarray, x: int, y: int, *, label: str = "") -> CanvasView:
        """Place a (bands, rows, cols) array with its top-left corner at (x, y)."""
        if self._extent is not None:
            raise RuntimeError("Cannot insert into a prepared composite.")
        if data.ndim != 3 or data.shape[0] != self.band_count:
            raise ValueError(
                f"Expected a ({self.band_count}, rows, cols) array, got shape {data.shape}."
            )
        view = CanvasView(
            data=data,
            bbox=PixelBBox.from_size(x, y, data.shape[2], data.shape[1]),
            label=label,
        )
        self._views.append(view)
        self._bbox = self._bbox.union(view.bbox)
        return view

    def prepare(self, extent: PixelBBox, *, draft: bool = True) -> None:
        """Fix the extent later reads are drawn from."""
        if self._extent is not None:
            raise RuntimeError("Composite has already been prepared.")
        self._extent = extent
        self._draft = draft
        LOGGER.info(
            "Prepared %s composite of %s views over %sx%s pixels",
            "draft" if draft else "blended",
            len(self._views),
            extent.width,
            extent.height,
        )

    def read(self, window: PixelBBox) -> np.ndarray:
        """Composite every view overlapping window into a new array."""
        if self._extent is None:
            raise RuntimeError("Composite must be prepared before reading.")
        out = np.zeros((self.band_count, window.height, window.width), dtype=np.float64)
        weights = np.zeros((window.height, window.width), dtype=np.float64)
        alpha_max = channel_max(self.dtype)
        for view in self._views:
            overlap = view.bbox.crop(window)
            if overlap.is_empty:
                continue
            src = view.data[
                :,
                overlap.min_y - view.bbox.min_y : overlap.max_y - view.bbox.min_y,
                overlap.min_x - view.bbox.min_x : overlap.max_x - view.bbox.min_x,
            ].astype(np.float64)
            rows = slice(overlap.min_y - window.min_y, overlap.max_y - window.min_y)
            cols = slice(overlap.min_x - window.min_x, overlap.max_x - window.min_x)
            region = out[:, rows, cols]
            if self._draft:
                covered = src[-1] > 0
                region[:, covered] = src[:, covered]
            else:
                alpha = src[-1] / alpha_max
                region[:-1] += src[:-1] * alpha
                region[-1] = np.maximum(region[-1], src[-1])
                weights[rows, cols] += alpha
        if not self._draft:
            out[:-1] = np.divide(
                out[:-1],
                weights,
                out=np.zeros_like(out[:-1]),
                where=weights > 0,
            )
        return cast_channels(out, self.dtype)
