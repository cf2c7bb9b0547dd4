"""
Tests for structured JSON logging configuration.

This module tests:
- JSONFormatter (JSON log output)
- setup_logging() (logging configuration)
- get_logger() (logger factory)
- log_with_context() (repository context fields)

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

import io
import json
import logging

import pytest

from orm_repositories.core.logging_config import (
    JSONFormatter,
    get_logger,
    log_with_context,
    setup_logging,
)


def _json_logger(name: str, level: int = logging.DEBUG) -> tuple[logging.Logger, io.StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False

    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    return logger, stream


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_json_formatter_basic_message(self):
        """
        Test JSONFormatter outputs valid JSON.

        Arrange: Create logger with JSONFormatter
        Act: Log a message
        Assert: Output is valid JSON with required fields
        """
        # Arrange
        logger, stream = _json_logger("test_logger")

        # Act
        logger.info("Test message")

        # Assert
        log_data = json.loads(stream.getvalue().strip())

        assert log_data["level"] == "INFO"
        assert log_data["message"] == "Test message"
        assert "timestamp" in log_data
        assert log_data["logger"] == "test_logger"

    def test_json_formatter_repository_fields(self):
        """
        Test JSONFormatter includes repository context fields.

        Arrange: Create logger with JSONFormatter
        Act: Log message with repository extra fields
        Assert: Fields included in JSON output
        """
        # Arrange
        logger, stream = _json_logger("test_logger_repo")

        # Act
        logger.debug(
            "Repository operation completed",
            extra={
                "repository": "UserRepository",
                "model": "User",
                "operation": "find",
                "duration_ms": 0.8,
                "relations": ["token"],
            }
        )

        # Assert
        log_data = json.loads(stream.getvalue().strip())

        assert log_data["repository"] == "UserRepository"
        assert log_data["model"] == "User"
        assert log_data["operation"] == "find"
        assert log_data["duration_ms"] == 0.8
        assert log_data["relations"] == ["token"]

    def test_json_formatter_with_exception(self):
        """
        Test JSONFormatter includes exception details.
        """
        # Arrange
        logger, stream = _json_logger("test_logger_exc", logging.ERROR)

        # Act
        try:
            raise ValueError("Test exception")
        except ValueError:
            logger.error("Error occurred", exc_info=True)

        # Assert
        log_data = json.loads(stream.getvalue().strip())

        assert log_data["level"] == "ERROR"
        assert "exception" in log_data
        assert "ValueError: Test exception" in log_data["exception"]

    def test_json_formatter_serializes_unknown_types(self):
        logger, stream = _json_logger("test_logger_types")

        logger.info("Odd value", extra={"payload": object()})

        log_data = json.loads(stream.getvalue().strip())
        assert log_data["payload"].startswith("<object object")


class TestSetupLogging:
    """Tests for logging setup function."""

    def test_setup_logging_configures_root_logger(self, restore_root_logger):
        # Arrange & Act
        setup_logging(level="INFO", json_format=True)

        # Assert
        assert restore_root_logger.level == logging.INFO
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_setup_logging_with_debug_level(self, restore_root_logger):
        setup_logging(level="debug", json_format=True)

        assert restore_root_logger.level == logging.DEBUG

    def test_setup_logging_with_simple_format(self, restore_root_logger):
        setup_logging(level="INFO", json_format=False)

        handler = restore_root_logger.handlers[0]
        assert not isinstance(handler.formatter, JSONFormatter)
        assert isinstance(handler.formatter, logging.Formatter)

    def test_setup_logging_quiets_sql_echo(self, restore_root_logger):
        setup_logging(level="DEBUG")

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


class TestGetLogger:
    """Tests for get_logger factory function."""

    def test_get_logger_returns_logger(self):
        logger = get_logger("test_module")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "test_module"


class TestLogWithContext:
    """Tests for log_with_context helper function."""

    def test_log_with_context_includes_all_fields(self):
        """
        Test log_with_context includes all context fields.

        Arrange: Create logger with JSONFormatter
        Act: Call log_with_context with all fields
        Assert: All fields included in log output
        """
        # Arrange
        logger, stream = _json_logger("test_context")

        # Act
        log_with_context(
            logger,
            "info",
            "Test message",
            repository="UserRepository",
            model="User",
            operation="paginate",
            duration_ms=3.2,
            relations=["token", "other_token"],
        )

        # Assert
        log_data = json.loads(stream.getvalue().strip())

        assert log_data["message"] == "Test message"
        assert log_data["repository"] == "UserRepository"
        assert log_data["model"] == "User"
        assert log_data["operation"] == "paginate"
        assert log_data["duration_ms"] == 3.2
        assert log_data["relations"] == ["token", "other_token"]

    def test_log_with_context_omits_empty_relations(self):
        logger, stream = _json_logger("test_context_empty")

        log_with_context(logger, "info", "No relations", operation="count", relations=[])

        log_data = json.loads(stream.getvalue().strip())
        assert "relations" not in log_data

    def test_log_with_context_extra_fields(self):
        logger, stream = _json_logger("test_context_extra")

        log_with_context(
            logger,
            "info",
            "Test message",
            custom_field="custom_value",
            another_field=42,
        )

        log_data = json.loads(stream.getvalue().strip())
        assert log_data["custom_field"] == "custom_value"
        assert log_data["another_field"] == 42

    def test_log_with_context_supports_all_levels(self):
        logger, stream = _json_logger("test_context_levels")

        for level in ["debug", "info", "warning", "error", "critical"]:
            stream.truncate(0)
            stream.seek(0)

            log_with_context(logger, level, f"Test {level} message")

            log_data = json.loads(stream.getvalue().strip())
            assert log_data["level"] == level.upper()
            assert log_data["message"] == f"Test {level} message"
