from __future__ import annotations

import numpy as np
import pytest

from geoqtree.geo.composite import CompositeCanvas
from geoqtree.geo.models import PixelBBox


def _view(value: int, alpha: int = 255, shape=(4, 4)) -> np.ndarray:
    return np.stack(
        [np.full(shape, value, dtype=np.uint8), np.full(shape, alpha, dtype=np.uint8)]
    )


def test_bbox_is_union_of_insertions() -> None:
    canvas = CompositeCanvas(2, "uint8")
    assert canvas.bbox.is_empty
    canvas.insert(_view(1), 0, 0)
    canvas.insert(_view(2), 10, 2)
    canvas.insert(_view(3), -6, 1)
    assert canvas.bbox == PixelBBox(-6, 0, 14, 6)
    assert len(canvas.views) == 3


def test_prepare_exactly_once() -> None:
    canvas = CompositeCanvas(2, "uint8")
    canvas.insert(_view(1), 0, 0)
    with pytest.raises(RuntimeError, match="prepared before reading"):
        canvas.read(PixelBBox(0, 0, 4, 4))
    canvas.prepare(PixelBBox(0, 0, 8, 8))
    with pytest.raises(RuntimeError, match="already been prepared"):
        canvas.prepare(PixelBBox(0, 0, 8, 8))
    with pytest.raises(RuntimeError, match="prepared composite"):
        canvas.insert(_view(2), 0, 0)


def test_insert_checks_band_count() -> None:
    canvas = CompositeCanvas(4, "uint8")
    with pytest.raises(ValueError):
        canvas.insert(_view(1), 0, 0)


def test_draft_mode_later_views_win() -> None:
    canvas = CompositeCanvas(2, "uint8")
    canvas.insert(_view(100), 0, 0)
    canvas.insert(_view(200), 2, 0)
    canvas.insert(_view(50, alpha=0), 0, 0)
    canvas.prepare(PixelBBox(0, 0, 8, 8), draft=True)
    out = canvas.read(PixelBBox(0, 0, 8, 4))
    assert out.dtype == np.uint8
    assert out[0, 0].tolist() == [100, 100, 200, 200, 200, 200, 0, 0]
    assert out[1, 0].tolist() == [255, 255, 255, 255, 255, 255, 0, 0]


def test_blended_mode_averages_by_alpha() -> None:
    canvas = CompositeCanvas(2, "uint8")
    canvas.insert(_view(100), 0, 0)
    canvas.insert(_view(200), 2, 0)
    canvas.prepare(PixelBBox(0, 0, 8, 8), draft=False)
    out = canvas.read(PixelBBox(0, 0, 6, 1))
    assert out[0, 0].tolist() == [100, 100, 150, 150, 200, 200]
    assert out[1, 0].tolist() == [255] * 6


def test_read_outside_views_is_transparent() -> None:
    canvas = CompositeCanvas(2, "uint8")
    canvas.insert(_view(9), 0, 0)
    canvas.prepare(PixelBBox(0, 0, 8, 8))
    out = canvas.read(PixelBBox(100, 100, 102, 102))
    assert not out.any()
