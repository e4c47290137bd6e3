"""Tests for structured log formatting."""

import json
import logging
import sys

from config import Config
from utils.logger import JSONFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord("standings.loader", logging.WARNING, __file__, 1, "Session loaded", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    payload = json.loads(JSONFormatter().format(_record(team_id=101, gameweek=3)))
    assert payload["message"] == "Session loaded"
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "standings.loader"
    assert payload["team_id"] == 101
    assert payload["gameweek"] == 3
    assert payload["timestamp"].endswith("Z")


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()
    payload = json.loads(JSONFormatter().format(record))
    assert "RuntimeError: boom" in payload["exception"]


def test_setup_logging_text_format(tmp_path):
    config = Config(log_format="text", log_level="DEBUG")
    log_file = tmp_path / "logs" / "standings.log"
    try:
        setup_logging(config, log_file=log_file)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
        logging.getLogger("standings").info("hello")
        for handler in root.handlers:
            handler.flush()
        assert "hello" in log_file.read_text()
    finally:
        for handler in logging.getLogger().handlers:
            handler.close()
        logging.getLogger().handlers.clear()
        logging.getLogger().setLevel(logging.WARNING)
