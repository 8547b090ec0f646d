"""Tests for structured logging helpers."""

import json
import logging

from chat_core.logging_config import JSONFormatter, get_logger, with_context


class TestJSONFormatter:
    """Tests for JSONFormatter and with_context()."""

    def test_context_ids_are_top_level(self):
        """Test ids attached with with_context() appear as JSON keys."""
        records = []

        class Capture(logging.Handler):
            def emit(self, record):
                records.append(record)

        logger = get_logger("tests.logging.context")
        logger.addHandler(Capture())
        logger.setLevel(logging.INFO)
        logger.propagate = False

        with_context(logger, room_id="room1").warning("fetch failed: %s", "timeout")

        data = json.loads(JSONFormatter().format(records[0]))
        assert data["room_id"] == "room1"
        assert data["message"] == "fetch failed: timeout"
        assert data["level"] == "WARNING"

    def test_plain_record(self):
        """Test records without context still format."""
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "hello"
        assert "exception" not in data
