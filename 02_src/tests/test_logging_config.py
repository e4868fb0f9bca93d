"""Tests for logging configuration."""

import json
import logging
import sys

import pytest

from rum_core.config import DEFAULT_LOG_PATH, PROJECT_ROOT, resolve_log_path
from rum_core.logging_config import JSONFormatter, apply_agent_log_level, setup_logging


@pytest.fixture
def restore_logging():
    """Put root and package loggers back after a test reconfigures them."""
    root = logging.getLogger()
    package = logging.getLogger("rum_core")
    level, package_level = root.level, package.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, JSONFormatter):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    package.setLevel(package_level)


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_format(self):
        """Test that records render as JSON objects."""
        record = logging.LogRecord("rum_core.app", logging.INFO, __file__, 10, "started %s", ("shop",), None)
        record.transaction_id = "tr-1"
        record.context = {"page": "/checkout"}

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "rum_core.app"
        assert data["message"] == "started shop"
        assert data["transaction_id"] == "tr-1"
        assert data["context"] == {"page": "/checkout"}
        assert "trace_id" not in data

    def test_exception(self):
        """Test that exception info is included."""
        try:
            raise ValueError("bad timing")
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord("rum_core", logging.ERROR, __file__, 1, "failed", (), exc_info)

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad timing" in data["exception"]


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_writes_json_file(self, tmp_path, restore_logging):
        """Test that log records land in the file as JSON lines."""
        log_file = tmp_path / "logs" / "agent.log"
        setup_logging("INFO", str(log_file))
        logging.getLogger("rum_core").setLevel(logging.INFO)

        logging.getLogger("rum_core.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = log_file.read_text().strip().splitlines()
        assert json.loads(lines[-1])["message"] == "hello"

    def test_resolve_log_path(self):
        """Test default and relative log paths."""
        assert resolve_log_path(None) == DEFAULT_LOG_PATH
        assert resolve_log_path("logs/x.log") == PROJECT_ROOT / "logs/x.log"


class TestAgentLogLevel:
    """Tests for apply_agent_log_level()."""

    @pytest.mark.parametrize(
        "name,level",
        [
            ("trace", logging.DEBUG),
            ("debug", logging.DEBUG),
            ("info", logging.INFO),
            ("WARN", logging.WARNING),
            ("error", logging.ERROR),
        ],
    )
    def test_levels(self, name, level, restore_logging):
        """Test mapping of agent levels."""
        apply_agent_log_level({"logLevel": name})

        assert logging.getLogger("rum_core").level == level

    def test_unknown_level(self, restore_logging):
        """Test that unknown levels leave the logger alone."""
        logging.getLogger("rum_core").setLevel(logging.INFO)

        apply_agent_log_level({"logLevel": "loud"})

        assert logging.getLogger("rum_core").level == logging.INFO
