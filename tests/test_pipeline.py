from __future__ import annotations

import json

import numpy as np
import pytest

from geoqtree.config import MosaicOptions, options_from_mapping
from geoqtree.errors import ConfigError
from geoqtree.geo.models import PixelBBox, PyramidProfile
from geoqtree.pipeline import run_mosaic
from geoqtree.writers.base import TileTreeResult, WriterSpec
from tests.utils import hemispheres, write_raster


class RecordingWriter:
    def __init__(self) -> None:
        self.jobs = []
        self.sources = []

    def spec(self) -> WriterSpec:
        return WriterSpec(name="recording", version="0")

    def generate(self, job, source) -> TileTreeResult:
        self.jobs.append(job)
        self.sources.append(source)
        return TileTreeResult(tree_levels=1, file_type=job.file_type, tile_count=0)


def test_kml_mosaic_of_two_hemispheres(tmp_path) -> None:
    west, east = hemispheres(tmp_path)
    options = options_from_mapping(
        {
            "inputs": [str(west), str(east)],
            "output_name": str(tmp_path / "out" / "world"),
            "profile": "kml",
            "tile_size": 256,
        }
    )
    result = run_mosaic(options)

    assert result.resolution.total == 2048
    assert result.composite_bbox == PixelBBox(0, 0, 2048, 1024)
    assert result.bounds.total_bbox == PixelBBox(0, 0, 2048, 2048)
    assert result.bounds.data_bbox == PixelBBox(0, 0, 2048, 1024)
    assert result.bounds.lonlat_bbox.as_tuple() == pytest.approx((-180.0, -90.0, 180.0, 90.0))
    assert result.tile_tree.tree_levels == 4
    assert result.tile_tree.tile_count == 43
    assert result.sidecars == {}
    assert result.warnings == ()

    plan_path = tmp_path / "out" / "world.tiles.json"
    assert result.tile_tree.artifacts["tile_plan"] == plan_path
    plan = json.loads(plan_path.read_text(encoding="utf-8"))
    assert [level["tile_count"] for level in plan["levels"]] == [1, 2, 8, 32]
    assert plan["parameters"]["max_lod_pixels"] == 1024


def test_plain_profile_passes_the_source_through(tmp_path) -> None:
    path = write_raster(
        tmp_path / "scan.tif",
        np.full((200, 300), 7, dtype=np.uint8),
        bounds=None,
        crs=None,
    )
    writer = RecordingWriter()
    result = run_mosaic(options_from_mapping({"inputs": [str(path)], "profile": "none"}), writer=writer)

    job = writer.jobs[0]
    assert job.profile is PyramidProfile.NONE
    assert job.extent == PixelBBox(0, 0, 300, 200)
    assert job.crop_bbox == job.extent
    assert writer.sources[0].path == path
    assert result.bounds is None
    assert result.writer.name == "recording"
    assert result.job.output_name == str(tmp_path / "scan")


def test_plain_profile_plans_tiles(tmp_path) -> None:
    path = write_raster(
        tmp_path / "scan.tif",
        np.full((200, 300), 7, dtype=np.uint8),
        bounds=None,
        crs=None,
    )
    result = run_mosaic(options_from_mapping({"inputs": [str(path)], "profile": "gigapan-noproj"}))
    assert result.tile_tree.tree_levels == 2
    assert result.tile_tree.tile_count == 3


def test_plain_profile_rejects_multiple_inputs(tmp_path) -> None:
    west, east = hemispheres(tmp_path, size=16)
    options = MosaicOptions(inputs=(west, east), profile=PyramidProfile.NONE)
    with pytest.raises(ConfigError, match="cannot be composed"):
        run_mosaic(options)


def test_unknown_writer_is_a_config_error(tmp_path) -> None:
    west, _ = hemispheres(tmp_path, size=16)
    options = options_from_mapping({"inputs": [str(west)], "profile": "kml", "writer": "tiff"})
    with pytest.raises(ConfigError, match="Unknown tile writer"):
        run_mosaic(options)


def test_uniview_writes_conf_sidecar(tmp_path) -> None:
    west, east = hemispheres(tmp_path, size=64)
    options = options_from_mapping(
        {
            "inputs": [str(west), str(east)],
            "output_name": str(tmp_path / "moon"),
            "profile": "uniview",
            "module_name": "Moon",
            "tile_size": 256,
        }
    )
    result = run_mosaic(options)

    conf = result.sidecars["uniview_conf"]
    assert conf == tmp_path / "moon.conf"
    text = conf.read_text(encoding="utf-8")
    assert "TextureCacheLocation=modules/Moon/Offlinedatasets/moon/Texture/" in text
    assert result.bounds.total_bbox == PixelBBox(0, 0, 1024, 1024)
    assert result.config.parameters() == {"module_name": "Moon", "terrain": False}


def test_resolution_function_is_injectable(tmp_path) -> None:
    west, east = hemispheres(tmp_path, size=32)
    calls = []

    def tiny(profile, geotx, pixel):
        calls.append((profile, pixel))
        return 1

    writer = RecordingWriter()
    options = options_from_mapping(
        {"inputs": [str(west), str(east)], "profile": "kml", "output_name": str(tmp_path / "w")}
    )
    result = run_mosaic(options, writer=writer, resolution_for=tiny)

    assert len(calls) == 10
    assert all(profile is PyramidProfile.KML for profile, _ in calls)
    assert result.resolution.total == 1024
    assert writer.jobs[0].extent == PixelBBox(0, 0, 1024, 1024)
    assert writer.sources[0].bbox == PixelBBox(0, 0, 1024, 512)


def test_normalized_mosaic_stretches_pixels(tmp_path) -> None:
    data = np.tile(np.linspace(50, 100, 64).astype(np.uint8), (64, 1))
    path = write_raster(tmp_path / "ramp.tif", data, bounds=(-180.0, -90.0, 180.0, 90.0))
    writer = RecordingWriter()
    options = options_from_mapping(
        {"inputs": [str(path)], "profile": "kml", "pixels": {"normalize": True}}
    )
    result = run_mosaic(options, writer=writer)

    canvas = writer.sources[0]
    pixels = canvas.read(PixelBBox(64, 64, 960, 448))
    assert pixels[0].min() < 40
    assert pixels[0].max() > 215
    assert (pixels[1] == 255).all()
    assert result.warnings == ()
