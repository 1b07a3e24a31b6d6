"""Command-line interface for geoqtree."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

import jsonschema

from geoqtree import __version__
from geoqtree.config import (
    MosaicOptions,
    merge_mosaic_payloads,
    options_from_mapping,
    read_mosaic_config,
)
from geoqtree.contracts import validate_mosaic_report
from geoqtree.errors import GeoQtreeError
from geoqtree.geo.compose import is_global
from geoqtree.geo.crs import DatumOverride, ProjectionKind
from geoqtree.geo.models import PyramidProfile
from geoqtree.geo.source import open_raster_source
from geoqtree.logging_utils import LogOptions, configure_logging
from geoqtree.pipeline import run_mosaic
from geoqtree.reporting import mosaic_report
from geoqtree.writers.registry import list_writers

LOGGER = logging.getLogger("geoqtree.cli")

# CLI flag destination -> (payload group or None, payload key)
_PAYLOAD_FIELDS: dict[str, tuple[str | None, str]] = {
    "output_name": (None, "output_name"),
    "mode": (None, "profile"),
    "aspect_ratio": (None, "aspect_ratio"),
    "global_resolution": (None, "global_resolution"),
    "tile_size": (None, "tile_size"),
    "file_type": (None, "file_type"),
    "channel_type": (None, "channel_type"),
    "max_lod_pixels": (None, "max_lod_pixels"),
    "draw_order_offset": (None, "draw_order_offset"),
    "module_name": (None, "module_name"),
    "writer": (None, "writer"),
    "datum": ("georeference", "datum"),
    "sphere_radius": ("georeference", "sphere_radius"),
    "nudge_x": ("georeference", "nudge_x"),
    "nudge_y": ("georeference", "nudge_y"),
    "nodata": ("pixels", "nodata"),
    "pixel_scale": ("pixels", "pixel_scale"),
    "pixel_offset": ("pixels", "pixel_offset"),
}

_PROJECTION_FIELDS = {
    "proj_lat": "lat",
    "proj_lon": "lon",
    "proj_scale": "scale",
    "std_parallel1": "p1",
    "std_parallel2": "p2",
    "utm_zone": "utm_zone",
}


def _payload_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Return the config payload keys set explicitly on the command line."""
    payload: dict[str, Any] = {}
    if args.inputs:
        payload["inputs"] = list(args.inputs)
    for dest, (group, key) in _PAYLOAD_FIELDS.items():
        value = getattr(args, dest, None)
        if value is None:
            continue
        if group is None:
            payload[key] = value
        else:
            payload.setdefault(group, {})[key] = value
    georef = payload.setdefault("georeference", {})
    if args.projection:
        projection: dict[str, Any] = {"type": args.projection}
        for dest, key in _PROJECTION_FIELDS.items():
            value = getattr(args, dest, None)
            if value is not None:
                projection[key] = value
        georef["projection"] = projection
    bounds = {key: getattr(args, key) for key in ("north", "south", "east", "west")}
    if any(value is not None for value in bounds.values()):
        georef["bounds"] = {key: value for key, value in bounds.items() if value is not None}
    if args.global_bounds:
        georef["global"] = True
    if not georef:
        payload.pop("georeference")
    if args.normalize:
        payload.setdefault("pixels", {})["normalize"] = True
    for flag in ("multiband", "terrain"):
        if getattr(args, flag):
            payload[flag] = True
    return payload


def _mosaic_options_from_args(args: argparse.Namespace) -> MosaicOptions:
    """Merge a config file (if any) with command-line overrides."""
    base: dict[str, Any] = read_mosaic_config(Path(args.config)) if args.config else {}
    return options_from_mapping(merge_mosaic_payloads(base, _payload_from_args(args)))


def _add_mosaic_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the mosaic subcommand."""
    mosaic = subparsers.add_parser(
        "mosaic",
        help="Composite georeferenced images into a quad-tree tile pyramid.",
    )
    mosaic.add_argument("inputs", nargs="*", help="Input images.")
    mosaic.add_argument("--config", help="JSON mosaic config; command-line flags override it.")
    mosaic.add_argument("-o", "--output-name", help="Output name (default: first input without suffix).")
    mosaic.add_argument(
        "-m",
        "--mode",
        choices=[profile.value for profile in PyramidProfile],
        help="Output metadata profile (default: kml).",
    )
    mosaic.add_argument("--file-type", help="Tile file type (default: png).")
    mosaic.add_argument(
        "--channel-type",
        choices=["uint8", "uint16", "int16", "float32"],
        help="Output channel type (default: the first input's).",
    )
    mosaic.add_argument("--tile-size", type=int, help="Tile size in pixels (default: 256).")
    mosaic.add_argument("--aspect-ratio", type=int, help="Pixel aspect ratio, a power of two.")
    mosaic.add_argument(
        "--global-resolution",
        type=int,
        help="Override the computed total resolution.",
    )
    mosaic.add_argument("--writer", help="Tile writer name (default: plan).")
    mosaic.add_argument("--report", help="Report path (default: <output>.report.json).")

    georef = mosaic.add_argument_group("georeferencing")
    georef.add_argument(
        "--datum",
        choices=[datum.value for datum in DatumOverride],
        help="Override the datum of every input.",
    )
    georef.add_argument("--sphere-radius", type=float, help="Radius for the sphere datum, in meters.")
    georef.add_argument(
        "--projection",
        choices=["none", *[kind.value for kind in ProjectionKind]],
        help="Reproject every input before compositing.",
    )
    georef.add_argument("--proj-lat", type=float, help="Projection center latitude.")
    georef.add_argument("--proj-lon", type=float, help="Projection center longitude.")
    georef.add_argument("--proj-scale", type=float, help="Projection scale factor.")
    georef.add_argument("--std-parallel1", type=float, help="First standard parallel (LCC).")
    georef.add_argument("--std-parallel2", type=float, help="Second standard parallel (LCC).")
    georef.add_argument("--utm-zone", type=int, help="UTM zone; negative for the south.")
    georef.add_argument("--north", type=float, help="Manual northern edge.")
    georef.add_argument("--south", type=float, help="Manual southern edge.")
    georef.add_argument("--east", type=float, help="Manual eastern edge.")
    georef.add_argument("--west", type=float, help="Manual western edge.")
    georef.add_argument(
        "--global",
        dest="global_bounds",
        action="store_true",
        help="Treat the input as a whole-globe image.",
    )
    georef.add_argument("--nudge-x", type=float, help="Shift the input east, in CRS units.")
    georef.add_argument("--nudge-y", type=float, help="Shift the input north, in CRS units.")

    pixels = mosaic.add_argument_group("pixels")
    pixels.add_argument("--nodata", type=float, help="Treat this value as transparent.")
    pixels.add_argument("--pixel-scale", type=float, help="Multiply pixel values by this.")
    pixels.add_argument("--pixel-offset", type=float, help="Add this to pixel values after scaling.")
    pixels.add_argument(
        "--normalize",
        action="store_true",
        help="Stretch the shared input range to the channel range.",
    )
    pixels.add_argument(
        "--multiband",
        action="store_true",
        help="Blend overlapping inputs instead of drawing later inputs on top.",
    )

    profile = mosaic.add_argument_group("profiles")
    profile.add_argument("--max-lod-pixels", type=int, help="KML max LOD pixels (default: 1024).")
    profile.add_argument("--draw-order-offset", type=int, help="KML draw order offset.")
    profile.add_argument("--terrain", action="store_true", help="Uniview terrain output.")
    profile.add_argument("--module-name", help="Uniview or Celestia module name.")


def _add_inspect_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the inspect subcommand."""
    inspect = subparsers.add_parser("inspect", help="Print input metadata as JSON.")
    inspect.add_argument("inputs", nargs="+", help="Input images.")


def _add_writers_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the writers subcommand."""
    subparsers.add_parser("writers", help="List registered tile writers.")


def _add_version_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the version subcommand."""
    subparsers.add_parser("version", help="Print the current version.")


def _run_mosaic_command(args: argparse.Namespace) -> int:
    options = _mosaic_options_from_args(args)
    result = run_mosaic(options)
    report = mosaic_report(result)
    validate_mosaic_report(report)
    report_path = Path(args.report or f"{options.resolved_output_name}.report.json")
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    for warning in result.warnings:
        LOGGER.warning("Mosaic warning: %s", warning)
    LOGGER.info("Mosaic report written to %s", report_path)
    return 0


def _run_inspect_command(args: argparse.Namespace) -> int:
    payload = []
    for path in args.inputs:
        source = open_raster_source(Path(path))
        entry = source.describe()
        georef = source.read_georeference()
        entry["global"] = bool(georef and is_global(georef, source.cols, source.rows))
        payload.append(entry)
    print(json.dumps(payload, indent=2))
    return 0


def _run_writers_command() -> int:
    for name, writer in sorted(list_writers().items()):
        spec = writer.spec()
        print(f"{name}\t{spec.version}\t{spec.description}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint and return an exit code."""
    parser = argparse.ArgumentParser(
        prog="geoqtree",
        description="Georeferenced multi-image quad-tree mosaic generator",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce log output to warnings and errors.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON on stderr.",
    )
    parser.add_argument(
        "--log-file",
        help="Optional path for JSON log output.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_mosaic_parser(subparsers)
    _add_inspect_parser(subparsers)
    _add_writers_parser(subparsers)
    _add_version_parser(subparsers)

    args = parser.parse_args(argv)
    log_file_value = getattr(args, "log_file", None)
    log_options = LogOptions(
        verbose=getattr(args, "verbose", 0) or 0,
        quiet=bool(getattr(args, "quiet", False)),
        log_file=Path(log_file_value) if log_file_value else None,
        json_console=bool(getattr(args, "log_json", False)),
    )
    configure_logging(log_options)

    if args.command == "version":
        print(__version__)
        return 0
    if args.command == "writers":
        return _run_writers_command()
    try:
        if args.command == "inspect":
            return _run_inspect_command(args)
        if args.command == "mosaic":
            return _run_mosaic_command(args)
    except GeoQtreeError as exc:
        LOGGER.error("%s", exc)
        return 1
    except jsonschema.ValidationError as exc:
        LOGGER.error("Report failed validation: %s", exc.message)
        return 1
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.error("Failed to read or write files: %s", exc)
        return 1

    parser.error("Unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
