"""Tests for the observability module."""

import json
import logging
import sys
import pytest
from datetime import datetime
from io import StringIO

from context_memory.observability import (
    LogLevel,
    StructuredFormatter,
    configure_logging,
)


def make_record(message="hello", level=logging.INFO, attributes=None, exc_info=None, created=None):
    record = logging.LogRecord(
        name="context_memory.test",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=exc_info,
    )
    if attributes is not None:
        record.attributes = attributes
    if created is not None:
        record.created = created.timestamp()
    return record


class TestLogLevel:
    """Tests for LogLevel."""

    @pytest.mark.parametrize("level,expected", [
        (LogLevel.DEBUG, logging.DEBUG),
        (LogLevel.INFO, logging.INFO),
        (LogLevel.WARNING, logging.WARNING),
        (LogLevel.ERROR, logging.ERROR),
        (LogLevel.CRITICAL, logging.CRITICAL),
    ])
    def test_to_python_level(self, level, expected):
        """Test conversion to Python logging levels."""
        assert level.to_python_level() == expected


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_json_output(self):
        """Test JSON formatting carries the attributes extra."""
        formatter = StructuredFormatter(json_output=True)

        data = json.loads(formatter.format(make_record(attributes={"key": "context-memory"})))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["logger"] == "context_memory.test"
        assert data["attributes"] == {"key": "context-memory"}
        assert "exception" not in data

    def test_json_output_without_attributes(self):
        """Test records without the extra omit the attributes key."""
        formatter = StructuredFormatter(json_output=True)

        data = json.loads(formatter.format(make_record(level=logging.WARNING)))

        assert data["level"] == "WARNING"
        assert "attributes" not in data

    def test_text_output(self):
        """Test text formatting."""
        formatter = StructuredFormatter(json_output=False)

        text = formatter.format(make_record(
            message="Saved",
            attributes={"entries": 3},
            created=datetime(2024, 5, 1, 12, 0, 0),
        ))

        assert text == "2024-05-01 12:00:00.000 [INFO] context_memory.test - Saved [entries=3]"

    def test_text_output_level(self):
        """Test the level name appears in text output."""
        formatter = StructuredFormatter(json_output=False)

        text = formatter.format(make_record(level=logging.ERROR))

        assert "[ERROR] context_memory.test - hello" in text

    def test_exception(self):
        """Test exceptions are included."""
        formatter = StructuredFormatter(json_output=True)
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record(exc_info=sys.exc_info())

        data = json.loads(formatter.format(record))

        assert "ValueError: boom" in data["exception"]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_writes_to_stream(self):
        """Test records from package modules reach the configured stream."""
        stream = StringIO()
        configure_logging(level="debug", json_output=True, output=stream)

        logging.getLogger("context_memory.memory.manager").info(
            "Stored", extra={"attributes": {"id": "mem_1"}}
        )

        data = json.loads(stream.getvalue().strip())
        assert data["message"] == "Stored"
        assert data["attributes"] == {"id": "mem_1"}

    def test_level_filters(self):
        """Test records below the level are dropped."""
        stream = StringIO()
        configure_logging(level=LogLevel.WARNING, json_output=False, output=stream)

        logger = logging.getLogger("context_memory.memory.storage")
        logger.info("quiet")
        logger.warning("loud")

        output = stream.getvalue()
        assert "quiet" not in output
        assert "loud" in output

    def test_reconfigure_replaces_handler(self):
        """Test calling twice leaves a single package handler."""
        first = StringIO()
        second = StringIO()
        configure_logging(output=first)
        logger = configure_logging(output=second)

        logger.info("once")

        handlers = [h for h in logger.handlers if getattr(h, "_context_memory_handler", False)]
        assert len(handlers) == 1
        assert first.getvalue() == ""
        assert "once" in second.getvalue()

    def test_invalid_level(self):
        """Test unknown level names raise."""
        with pytest.raises(ValueError):
            configure_logging(level="chatty")
