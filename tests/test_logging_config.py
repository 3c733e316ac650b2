"""
Catalog Feed Sync - Logging Tests
"""

import json
import logging
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from feedsync.logging_config import ColoredFormatter, JSONFormatter, setup_logging


def make_record(msg="Parsed 3 products from XML", **extra):
    record = logging.LogRecord("feedsync.parser", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "feedsync.parser"
        assert data["message"] == "Parsed 3 products from XML"
        assert data["timestamp"].endswith("Z")

    def test_extra_fields(self):
        data = json.loads(JSONFormatter().format(make_record(stage="parse", products_count=3)))
        assert data["stage"] == "parse"
        assert data["products_count"] == 3
        assert "feed_url" not in data

    def test_non_ascii_kept(self):
        data = JSONFormatter().format(make_record("Καρέκλα"))
        assert "Καρέκλα" in data


class TestColoredFormatter:

    def test_does_not_mutate_record(self):
        record = make_record()
        ColoredFormatter(fmt="%(levelname)s %(message)s").format(record)
        assert record.levelname == "INFO"


class TestSetupLogging:

    def test_file_handler_writes_json(self, tmp_path):
        log_file = tmp_path / "sync.log"
        previous = logging.getLogger().handlers[:]
        root = setup_logging(level="DEBUG", log_file=str(log_file))
        try:
            logging.getLogger("feedsync.test").info("hello", extra={"stage": "fetch"})
            for handler in root.handlers:
                handler.flush()

            line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
            assert json.loads(line)["stage"] == "fetch"
            assert root.level == logging.DEBUG
        finally:
            for handler in root.handlers[:]:
                handler.close()
                root.removeHandler(handler)
            for handler in previous:
                root.addHandler(handler)
