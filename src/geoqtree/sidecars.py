"""Viewer sidecar files written next to a generated pyramid."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, cast

from geoqtree.geo.models import PyramidProfile
from geoqtree.profiles import CelestiaConfig, ProfileConfig, UniviewConfig
from geoqtree.writers.base import TileJob, TileTreeResult

LOGGER = logging.getLogger(__name__)

CALLSTRING = "Generated by geoqtree."


def uniview_conf(config: UniviewConfig, job: TileJob, result: TileTreeResult) -> str:
    """Return the Uniview offline dataset configuration text."""
    title = Path(job.output_name).name
    location = f"modules/{config.module_name}/Offlinedatasets/{title}"
    levels = result.tree_levels - 1
    if config.terrain:
        return (
            "// Terrain\n"
            f"HeightmapCacheLocation={location}/Terrain/\n"
            f"HeightmapCallstring={CALLSTRING}\n"
            f"HeightmapFormat={result.file_type}\n"
            f"NrHeightmapLevels={levels}\n"
            "NrLevelsPerHeightmap=1\n"
        )
    return (
        "[Offlinedataset]\n"
        "NrRows=1\n"
        "NrColumns=2\n"
        "Bbox= -180 -90 180 90\n"
        f"DatasetTitle={title}\n"
        "Tessellation=19\n"
        "\n"
        "// Texture\n"
        f"TextureCacheLocation={location}/Texture/\n"
        f"TextureCallstring={CALLSTRING}\n"
        f"TextureFormat={result.file_type}\n"
        f"TextureLevels= {levels}\n"
        f"TextureSize= {job.tile_size}\n"
        "\n"
    )


def celestia_ctx(job: TileJob) -> str:
    """Return the Celestia virtual texture descriptor."""
    title = Path(job.output_name).name
    return (
        "VirtualTexture\n"
        "{\n"
        f'        ImageDirectory "{title}"\n'
        "        BaseSplit 0\n"
        f"        TileSize {job.tile_size >> 1}\n"
        f'        TileType "{job.file_type}"\n'
        "}\n"
    )


def celestia_ssc(config: CelestiaConfig, job: TileJob) -> str:
    """Return the Celestia alternate surface definition."""
    title = Path(job.output_name).name
    return (
        f'AltSurface "{title}" "{config.module_name}"\n'
        "{\n"
        f'    Texture "{title}.ctx"\n'
        "}\n"
    )


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    LOGGER.info("Wrote %s", path)
    return path


def _uniview_sidecars(config: ProfileConfig, job: TileJob, result: TileTreeResult) -> dict[str, Path]:
    conf = _write(Path(f"{job.output_name}.conf"), uniview_conf(cast(UniviewConfig, config), job, result))
    LOGGER.info(
        "Merge the texture and terrain config files into one file, terrain below texture."
    )
    return {"uniview_conf": conf}


def _celestia_sidecars(config: ProfileConfig, job: TileJob, result: TileTreeResult) -> dict[str, Path]:
    ctx = _write(Path(f"{job.output_name}.ctx"), celestia_ctx(job))
    ssc = _write(Path(f"{job.output_name}.ssc"), celestia_ssc(cast(CelestiaConfig, config), job))
    LOGGER.info("Place %s in Celestia's extras dir", ssc.name)
    return {"celestia_ctx": ctx, "celestia_ssc": ssc}


_SIDECAR_WRITERS: dict[
    PyramidProfile, Callable[[ProfileConfig, TileJob, TileTreeResult], dict[str, Path]]
] = {
    PyramidProfile.UNIVIEW: _uniview_sidecars,
    PyramidProfile.CELESTIA: _celestia_sidecars,
}


def emit_sidecars(config: ProfileConfig, job: TileJob, result: TileTreeResult) -> dict[str, Path]:
    """Write the sidecar files of a profile and return their paths by kind."""
    writer = _SIDECAR_WRITERS.get(config.profile)
    if writer is None:
        return {}
    return writer(config, job, result)
