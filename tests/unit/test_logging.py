"""Tests for logging utilities."""

import json
import os
from typing import Any
from unittest.mock import patch

from src.utils.logging import StructuredLogger, get_correlation_id, get_logger


class TestStructuredLogger:
    """Tests for StructuredLogger class."""

    def test_logger_initialization(self) -> None:
        """Test logger initializes with correlation ID."""
        logger = StructuredLogger("test", "test-id-123")

        assert logger.correlation_id == "test-id-123"

    def test_logger_generates_correlation_id(self) -> None:
        """Test logger generates correlation ID if not provided."""
        logger = StructuredLogger("test")

        assert logger.correlation_id is not None
        assert len(logger.correlation_id) > 0

    def test_info_logs_json_to_stderr(self, capsys: Any) -> None:
        """Test info logging outputs JSON on stderr and nothing on stdout."""
        logger = StructuredLogger("test", "test-id")

        logger.info("Test message", nodeId="UserDataTable")

        captured = capsys.readouterr()
        log_entry = json.loads(captured.err.strip())

        assert captured.out == ""
        assert log_entry["level"] == "INFO"
        assert log_entry["logger"] == "test"
        assert log_entry["message"] == "Test message"
        assert log_entry["correlationId"] == "test-id"
        assert log_entry["nodeId"] == "UserDataTable"
        assert "timestamp" in log_entry

    def test_warning_logs_json(self, capsys: Any) -> None:
        """Test warning logging outputs JSON."""
        logger = StructuredLogger("test", "test-id")

        logger.warning("Warning message", errorCount=2)

        log_entry = json.loads(capsys.readouterr().err.strip())
        assert log_entry["level"] == "WARNING"
        assert log_entry["errorCount"] == 2

    def test_error_logs_json(self, capsys: Any) -> None:
        """Test error logging outputs JSON."""
        logger = StructuredLogger("test", "test-id")

        logger.error("Error message", error={"errorKind": "DependencyCycle"})

        log_entry = json.loads(capsys.readouterr().err.strip())
        assert log_entry["level"] == "ERROR"
        assert log_entry["error"] == {"errorKind": "DependencyCycle"}

    def test_none_values_are_dropped(self, capsys: Any) -> None:
        """Keys whose value is None are left out of the entry."""
        logger = StructuredLogger("test", "test-id")

        logger.info("Message", present="yes", missing=None)

        log_entry = json.loads(capsys.readouterr().err.strip())
        assert log_entry["present"] == "yes"
        assert "missing" not in log_entry

    def test_debug_suppressed_at_info_level(self, capsys: Any) -> None:
        """Debug lines are filtered when LOG_LEVEL is INFO."""
        with patch.dict(os.environ, {"LOG_LEVEL": "INFO"}):
            logger = StructuredLogger("test.debug.info", "test-id")

        logger.debug("Hidden")

        assert capsys.readouterr().err == ""

    def test_debug_emitted_at_debug_level(self, capsys: Any) -> None:
        """Debug lines are emitted when LOG_LEVEL is DEBUG."""
        with patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}):
            logger = StructuredLogger("test.debug.debug", "test-id")

        logger.debug("Shown")

        log_entry = json.loads(capsys.readouterr().err.strip())
        assert log_entry["level"] == "DEBUG"

    def test_bind_sets_new_correlation_id(self) -> None:
        """bind() returns a logger with the same name and the new id."""
        logger = get_logger("test.bind", "first")

        bound = logger.bind("second")

        assert bound.correlation_id == "second"
        assert bound.logger.name == "test.bind"
        assert logger.correlation_id == "first"


class TestGetCorrelationId:
    """Tests for get_correlation_id function."""

    def test_from_context(self) -> None:
        """Test extracting correlation ID from context."""
        assert get_correlation_id({"correlationId": "ctx-123"}) == "ctx-123"

    def test_from_environment(self) -> None:
        """Test falling back to TOPOLOGY_CORRELATION_ID."""
        with patch.dict(os.environ, {"TOPOLOGY_CORRELATION_ID": "ci-run-7"}):
            assert get_correlation_id() == "ci-run-7"

    def test_generates_new_id(self) -> None:
        """Test generating a new correlation ID when none is available."""
        with patch.dict(os.environ, {}, clear=True):
            first = get_correlation_id({})
            second = get_correlation_id()

        assert first != second
        assert len(first) == 36
