"""Schema validation helpers for mosaic configs and reports."""

from __future__ import annotations

import json
from importlib import resources
from typing import Any, Mapping

import jsonschema

SCHEMA_VERSION = "1.0"


def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema bundled in the package."""
    with resources.files("geoqtree.schemas").joinpath(name).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def validate_mosaic_config(config: Mapping[str, Any]) -> None:
    """Validate a mosaic config payload against the schema."""
    schema = _load_schema("mosaic_config.schema.json")
    jsonschema.validate(config, schema)


def validate_mosaic_report(report: Mapping[str, Any]) -> None:
    """Validate a mosaic report against the schema."""
    schema = _load_schema("mosaic_report.schema.json")
    jsonschema.validate(report, schema)
