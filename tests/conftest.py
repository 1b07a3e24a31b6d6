from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest  # noqa: E402

from geoqtree.writers.registry import refresh_writers  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_logging():
    """Restore root logging after tests that run configure_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def _fresh_writer_registry():
    """Drop cached tile writer factories between tests."""
    refresh_writers()
    yield
    refresh_writers()
