"""
Tests for the structured logging configuration.

Validates:
- JSONFormatter produces valid JSON with required fields
- DevFormatter produces human-readable colored text
- ContextFilter injects the tool call_id from the context variable
- configure_logging() switches mode based on MEDIASCOPE_ENV
- Both modes write to stderr, never stdout
- Text output is colored only on a terminal
"""

from __future__ import annotations

import io
import json
import logging
import os
import sys
from unittest.mock import patch

import pytest

from mediascope.observability.logging_config import (
    ContextFilter,
    DevFormatter,
    JSONFormatter,
    clear_call_id,
    configure_logging,
    get_call_id,
    set_call_id,
)


# ─── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _cleanup_call_id():
    """Clear call_id before and after each test."""
    clear_call_id()
    yield
    clear_call_id()


@pytest.fixture
def json_formatter():
    return JSONFormatter()


@pytest.fixture
def dev_formatter():
    return DevFormatter()


def _make_record(
    msg: str = "test message",
    level: int = logging.INFO,
    name: str = "test.logger",
    extra: dict | None = None,
) -> logging.LogRecord:
    """Create a LogRecord with optional extra fields."""
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in (extra or {}).items():
        setattr(record, key, value)
    return record


# ─── JSONFormatter Tests ──────────────────────────────────────────────


class TestJSONFormatter:
    """Tests for the production JSON log formatter."""

    def test_includes_required_fields(self, json_formatter):
        """JSON output includes timestamp, level, logger, message."""
        record = _make_record("navigate_started", level=logging.WARNING, name="mediascope.mcp")
        parsed = json.loads(json_formatter.format(record))

        assert "T" in parsed["timestamp"]
        assert parsed["level"] == "WARNING"
        assert parsed["logger"] == "mediascope.mcp"
        assert parsed["message"] == "navigate_started"

    def test_includes_extra_fields(self, json_formatter):
        """Extra fields passed via extra={} appear in JSON."""
        record = _make_record(
            "frame_switched",
            extra={"frame_index": 2, "url": "https://cdn.example/embed"},
        )
        parsed = json.loads(json_formatter.format(record))

        assert parsed["frame_index"] == 2
        assert parsed["url"] == "https://cdn.example/embed"

    def test_includes_call_id(self, json_formatter):
        """call_id injected by ContextFilter is included."""
        record = _make_record("test", extra={"call_id": "abc123"})
        parsed = json.loads(json_formatter.format(record))
        assert parsed["call_id"] == "abc123"

    def test_handles_exception_info(self, json_formatter):
        """Exception info is included in the JSON output."""
        try:
            raise ValueError("test error")
        except ValueError:
            record = _make_record("error occurred")
            record.exc_info = sys.exc_info()

        parsed = json.loads(json_formatter.format(record))
        assert "ValueError" in parsed["exception"]

    def test_non_serializable_extra_becomes_string(self, json_formatter):
        """Non-JSON-serializable extra values are converted to strings."""
        record = _make_record("test", extra={"page": object()})
        parsed = json.loads(json_formatter.format(record))
        assert isinstance(parsed["page"], str)


# ─── DevFormatter Tests ───────────────────────────────────────────────


class TestDevFormatter:
    """Tests for the local development colored formatter."""

    def test_includes_message_and_level(self, dev_formatter):
        """DevFormatter includes the message and the level."""
        output = dev_formatter.format(_make_record("hello dev", level=logging.WARNING))
        assert "hello dev" in output
        assert "WARNING" in output

    def test_includes_known_extra_fields_inline(self, dev_formatter):
        """Known extra fields are shown inline as key=value."""
        record = _make_record(
            "test",
            extra={"tool_name": "navigate", "selector": "#player", "call_id": "c1"},
        )
        output = dev_formatter.format(record)
        assert "tool_name=navigate" in output
        assert "selector=#player" in output
        assert "call_id=c1" in output

    def test_unknown_extra_fields_omitted(self, dev_formatter):
        """Fields outside the known list stay out of the text line."""
        output = dev_formatter.format(_make_record("test", extra={"secret": "x"}))
        assert "secret" not in output

    def test_color_codes_present_for_error(self, dev_formatter):
        """Error records carry the red ANSI code."""
        output = dev_formatter.format(_make_record("boom", level=logging.ERROR))
        assert "\033[31m" in output

    def test_plain_output_without_color(self):
        output = DevFormatter(use_color=False).format(_make_record("boom", level=logging.ERROR))
        assert "\033" not in output
        assert "ERROR" in output


# ─── ContextFilter Tests ──────────────────────────────────────────────


class TestContextFilter:
    """Tests for call_id injection."""

    def test_injects_call_id_when_set(self):
        """The current call_id is copied onto the record."""
        set_call_id("call-42")
        record = _make_record()
        assert ContextFilter().filter(record) is True
        assert record.call_id == "call-42"

    def test_no_call_id_when_unset(self):
        """Outside a tool call the record gets no call_id."""
        record = _make_record()
        ContextFilter().filter(record)
        assert not hasattr(record, "call_id")

    def test_clear_call_id(self):
        """clear_call_id resets the context variable."""
        set_call_id("x")
        clear_call_id()
        assert get_call_id() is None


# ─── configure_logging Tests ──────────────────────────────────────────


class TestConfigureLogging:
    """Tests for environment-based configuration."""

    def teardown_method(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)

    def test_production_uses_json(self):
        """production mode installs JSONFormatter."""
        configure_logging(env="production")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, JSONFormatter)

    def test_development_uses_dev_formatter(self):
        """Any other env installs DevFormatter."""
        configure_logging(env="development")
        assert isinstance(logging.getLogger().handlers[0].formatter, DevFormatter)

    def test_reads_env_variable(self):
        """MEDIASCOPE_ENV picks the mode when env is not passed."""
        with patch.dict(os.environ, {"MEDIASCOPE_ENV": "production"}):
            configure_logging()
        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_writes_to_stderr(self):
        """The handler targets stderr; stdout carries the MCP protocol."""
        configure_logging(env="production")
        assert logging.getLogger().handlers[0].stream is sys.stderr

    def test_silences_noisy_libraries(self):
        """playwright and mcp loggers are raised to WARNING."""
        configure_logging(env="development")
        assert logging.getLogger("playwright").level == logging.WARNING
        assert logging.getLogger("mcp").level == logging.WARNING

    def test_no_color_when_not_a_terminal(self):
        """Captured stderr (a client's log file) gets plain text."""
        configure_logging(env="development", stream=io.StringIO())
        assert logging.getLogger().handlers[0].formatter.use_color is False

    def test_color_on_a_terminal(self):
        class _Terminal(io.StringIO):
            def isatty(self):
                return True

        configure_logging(env="development", stream=_Terminal())
        assert logging.getLogger().handlers[0].formatter.use_color is True
