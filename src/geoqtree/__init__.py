"""Georeferenced multi-image quad-tree mosaic generator."""

__version__ = "0.1.0"
