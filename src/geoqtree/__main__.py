"""Module entrypoint for `python -m geoqtree`."""

from __future__ import annotations

from geoqtree.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
