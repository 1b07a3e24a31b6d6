"""Lookup of tile writers by name.

The ``plan`` writer ships with geoqtree. Packages that encode real tiles
register a zero-argument factory under the ``geoqtree.tile_writers``
entry-point group, for example::

    [project.entry-points."geoqtree.tile_writers"]
    png = "mytiles.writer:PngTileWriter"

A factory must return an object with ``spec()`` and ``generate(job, source)``.
Built-in names cannot be overridden.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from importlib import metadata
from typing import Any, Callable, Iterator

from geoqtree.errors import ConfigError
from geoqtree.writers.base import TileWriter
from geoqtree.writers.plan import PlanWriter

WRITER_ENTRYPOINT_GROUP = "geoqtree.tile_writers"

LOGGER = logging.getLogger(__name__)

WriterFactory = Callable[[], Any]

_BUILTIN_WRITERS: dict[str, WriterFactory] = {"plan": PlanWriter}


def _plugin_factories() -> Iterator[tuple[str, WriterFactory]]:
    for entry_point in metadata.entry_points(group=WRITER_ENTRYPOINT_GROUP):
        if entry_point.name in _BUILTIN_WRITERS:
            LOGGER.warning(
                "Ignoring plugin writer %s: the name is reserved for a built-in writer.",
                entry_point.value,
            )
            continue
        try:
            factory = entry_point.load()
        except (ImportError, AttributeError) as exc:
            LOGGER.warning("Cannot import tile writer %s (%s): %s", entry_point.name, entry_point.value, exc)
            continue
        yield entry_point.name, factory


@lru_cache(maxsize=1)
def _factories() -> dict[str, WriterFactory]:
    factories = dict(_BUILTIN_WRITERS)
    factories.update(_plugin_factories())
    LOGGER.debug("Tile writers available: %s", ", ".join(sorted(factories)))
    return factories


def refresh_writers() -> None:
    """Forget discovered plugins so the next lookup scans entry points again."""
    _factories.cache_clear()


def writer_names() -> list[str]:
    return sorted(_factories())


def _build(name: str, factory: WriterFactory) -> TileWriter:
    if not callable(factory):
        raise ConfigError(f"Tile writer {name} is registered with a non-callable {factory!r}.")
    writer = factory()
    missing = [attr for attr in ("spec", "generate") if not callable(getattr(writer, attr, None))]
    if missing:
        raise ConfigError(f"Tile writer {name} does not implement {', '.join(missing)}().")
    spec_name = writer.spec().name
    if spec_name != name:
        LOGGER.debug("Tile writer registered as %s reports its name as %s", name, spec_name)
    return writer


def get_writer(name: str) -> TileWriter:
    """Return a fresh instance of the named tile writer.

    Raises ConfigError for unknown names and for factories that do not
    produce a tile writer.
    """
    factories = _factories()
    if name not in factories:
        raise ConfigError(f"Unknown tile writer: {name} (available: {', '.join(sorted(factories))})")
    return _build(name, factories[name])


def list_writers() -> dict[str, TileWriter]:
    """Return every usable writer by name; broken plugins are logged and left out."""
    writers: dict[str, TileWriter] = {}
    for name, factory in _factories().items():
        try:
            writers[name] = _build(name, factory)
        except ConfigError as exc:
            LOGGER.warning("Skipping tile writer: %s", exc)
    return writers
