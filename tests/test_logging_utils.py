from __future__ import annotations

import json
import logging
from pathlib import Path

from geoqtree.logging_utils import HumanFormatter, JsonFormatter, LogOptions, configure_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("geoqtree.test", logging.INFO, __file__, 1, "Adding file %s", ("a.tif",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_configure_logging_writes_json(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "geoqtree.jsonl"
    configure_logging(LogOptions(log_file=log_path))
    logger = logging.getLogger("geoqtree.test")
    logger.info("hello", extra={"source": "west.tif"})
    logging.shutdown()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert lines
    payload = json.loads(lines[-1])
    assert payload["message"] == "hello"
    assert payload["level"] == "info"
    assert payload["extra"]["source"] == "west.tif"


def test_json_formatter_serializes_paths() -> None:
    payload = json.loads(JsonFormatter().format(_record(source=Path("maps/west.tif"))))
    assert payload["message"] == "Adding file a.tif"
    assert payload["extra"] == {"source": str(Path("maps/west.tif"))}


def test_human_formatter_prefixes_source() -> None:
    formatter = HumanFormatter("%(levelname)s: %(message)s")
    assert formatter.format(_record(source="west.tif")) == "[west.tif] INFO: Adding file a.tif"
    assert formatter.format(_record()) == "INFO: Adding file a.tif"


def test_quiet_and_noisy_levels() -> None:
    root = configure_logging(LogOptions(quiet=True))
    assert root.handlers[0].level == logging.WARNING
    assert logging.getLogger("rasterio").level == logging.WARNING
    configure_logging(LogOptions(verbose=2))
    assert logging.getLogger("rasterio").level == logging.DEBUG
    logging.getLogger("rasterio").setLevel(logging.NOTSET)
