"""Tests for logging configuration."""

import io
import json
import logging
import sys
from unittest.mock import patch

from digital_twin.config import Environment, Settings
from digital_twin.logging_config import (
    DevFormatter,
    JSONFormatter,
    get_logger,
    setup_logging,
)


def _record(msg: str = "Test message", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="/app/module.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_format_basic_message(self) -> None:
        """Basic log message is formatted as JSON."""
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert "extra" not in data

    def test_format_includes_file_info(self) -> None:
        """Log includes file and line information."""
        data = json.loads(JSONFormatter().format(_record(level=logging.ERROR)))
        assert data["file"] == "/app/module.py:42"

    def test_format_includes_extra_fields(self) -> None:
        """Fields passed through `extra` are emitted."""
        record = _record()
        record.error_code = "RAG-4004"
        record.duration_ms = 12

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"] == {"error_code": "RAG-4004", "duration_ms": 12}

    def test_format_with_exception(self) -> None:
        """Exception info is included in output."""
        try:
            raise ValueError("test error")
        except ValueError:
            exc_info = sys.exc_info()

        record = _record("Error", logging.ERROR)
        record.exc_info = exc_info

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError" in data["exception"]


class TestDevFormatter:
    """Tests for development formatter."""

    def test_format_includes_level(self) -> None:
        """Development format includes level."""
        output = DevFormatter().format(_record("Warning message", logging.WARNING))

        assert "WARNING" in output
        assert "test" in output
        assert "Warning message" in output


class TestSetupLogging:
    """Tests for logging setup."""

    def test_returns_root_logger(self) -> None:
        """setup_logging returns root logger."""
        logger = setup_logging(level="INFO", json_output=False)
        assert logger is logging.getLogger()

    def test_uses_json_in_production(self) -> None:
        """JSON output is used in production environment."""
        mock_settings = Settings(environment=Environment.PRODUCTION)

        with patch("digital_twin.logging_config.get_settings", return_value=mock_settings):
            setup_logging()

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_uses_dev_formatter_in_development(self) -> None:
        """Dev formatter is used in development environment."""
        mock_settings = Settings(environment=Environment.DEVELOPMENT)

        with patch("digital_twin.logging_config.get_settings", return_value=mock_settings):
            setup_logging()

        root = logging.getLogger()
        assert isinstance(root.handlers[0].formatter, DevFormatter)

    def test_level_override(self) -> None:
        """Log level can be overridden."""
        setup_logging(level="DEBUG", json_output=False)
        assert logging.getLogger().level == logging.DEBUG

    def test_custom_stream(self) -> None:
        """Output goes to the given stream instead of stdout."""
        stream = io.StringIO()
        setup_logging(level="INFO", json_output=True, stream=stream)

        get_logger("digital_twin.test").info("to stderr", extra={"tool": "health-check"})

        data = json.loads(stream.getvalue().strip())
        assert data["message"] == "to stderr"
        assert data["extra"] == {"tool": "health-check"}


class TestGetLogger:
    """Tests for named loggers."""

    def test_named_logger(self) -> None:
        """get_logger returns the named logger."""
        assert get_logger("digital_twin.rag").name == "digital_twin.rag"
