"""Error types raised by the mosaic pipeline."""

from __future__ import annotations


class GeoQtreeError(Exception):
    """Base class for errors that abort a mosaic run."""


class ConfigError(GeoQtreeError, ValueError):
    """Raised when options are missing, invalid, or mutually exclusive."""


class GeoreferenceError(GeoQtreeError):
    """Raised when a source has no usable georeference."""


class ProjectionError(GeoQtreeError, ValueError):
    """Raised when a projection is missing a required parameter."""


class RasterIOError(GeoQtreeError, OSError):
    """Raised when a raster source cannot be opened or read."""
