"""Tests for logging setup."""

import json
import logging
import sys
from pathlib import Path

from appgate.observability import JSONFormatter, setup_logging


class TestJSONFormatter:
    """Test structured log lines."""

    def test_fields_and_extra(self) -> None:
        """Test the JSON line carries level, logger, message and extras."""
        record = logging.LogRecord(
            "appgate.test", logging.WARNING, __file__, 1, "tool %s failed", ("echo",), None
        )
        record.session_id = "s1"

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "appgate.test"
        assert data["message"] == "tool echo failed"
        assert data["session_id"] == "s1"
        assert "timestamp" in data

    def test_exception_included(self) -> None:
        """Test exception tracebacks are serialized."""
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "appgate", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        data = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in data["exception"]


class TestSetupLogging:
    """Test logger configuration."""

    def test_file_handler_and_level(self, tmp_path: Path) -> None:
        """Test records reach the log file as JSON at the configured level."""
        log_file = tmp_path / "appgate.log"

        logger = setup_logging("warning", structured=True, log_file=str(log_file))
        logging.getLogger("appgate.framework").info("hidden")
        logging.getLogger("appgate.framework").warning("shown")
        for handler in logger.handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["message"] for line in lines] == ["shown"]
        assert logger.propagate is False

    def test_repeated_setup_replaces_handlers(self) -> None:
        """Test calling setup_logging twice does not duplicate handlers."""
        setup_logging()
        logger = setup_logging()

        assert len(logger.handlers) == 1
