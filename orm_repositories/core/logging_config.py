"""
Structured JSON logging configuration.

This module sets up JSON logging for the repository layer with:
- Consistent field names across all logs
- Repository and model tracking
- Operation name and duration for every terminal query
- Timestamp, level, message, logger name

Logs are output to stdout in JSON format for easy parsing by
log aggregation systems.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName",
})


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Outputs log records as single-line JSON objects with consistent fields:
    - timestamp: ISO 8601 format with microseconds (UTC)
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - message: Log message
    - logger: Logger name (module path)
    - repository: Repository class name (if available)
    - model: Model class name (if available)
    - operation: Repository operation (if available)
    - duration_ms: Operation duration in milliseconds (if available)
    - relations: Relations eager loaded by the operation (if available)
    - exception: Exception details (if exception occurred)
    - extra: Any additional fields from log record

    Example output:
        {"timestamp": "2025-11-24T10:30:00.123456+00:00", "level": "DEBUG",
         "message": "Repository operation completed", "repository": "UserRepository",
         "model": "User", "operation": "find", "duration_ms": 0.8}
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON string.

        Args:
            record: LogRecord to format

        Returns:
            JSON string representation of log record
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        known_fields = ("repository", "model", "operation", "duration_ms", "relations")

        for field in known_fields:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        # Any other custom fields passed via extra={...}
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True
) -> None:
    """
    Configure application logging.

    Sets up:
    - Root logger with specified level
    - JSON formatter (if json_format=True)
    - StreamHandler to stdout
    - Removes default handlers

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatter (True) or simple formatter (False)

    Note:
        Call this once at application startup, before any logging occurs.
        The library itself never calls it.
    """
    root_logger = logging.getLogger()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # SQL echo is controlled by Settings.database_echo, not by the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance with given name.

    Args:
        name: Logger name (usually __name__ of the module)

    Returns:
        Logger instance

    Example:
        logger = get_logger(__name__)
        logger.debug("Repository constructed", extra={"repository": "UserRepository"})
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    repository: Optional[str] = None,
    model: Optional[str] = None,
    operation: Optional[str] = None,
    duration_ms: Optional[float] = None,
    relations: Optional[list[str]] = None,
    exc_info: bool = False,
    **extra_fields: Any
) -> None:
    """
    Log message with structured repository context fields.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        repository: Repository class name
        model: Model class name
        operation: Operation name (find, paginate, ...)
        duration_ms: Operation duration in milliseconds
        relations: Relations eager loaded by the operation
        exc_info: Attach the current exception to the record
        **extra_fields: Additional fields to include

    Example:
        log_with_context(
            logger,
            "debug",
            "Repository operation completed",
            repository="UserRepository",
            operation="find",
            duration_ms=0.8
        )
    """
    extra: Dict[str, Any] = {}

    if repository is not None:
        extra["repository"] = repository
    if model is not None:
        extra["model"] = model
    if operation is not None:
        extra["operation"] = operation
    if duration_ms is not None:
        extra["duration_ms"] = duration_ms
    if relations:
        extra["relations"] = relations

    extra.update(extra_fields)

    log_method = getattr(logger, level.lower())
    log_method(message, extra=extra, exc_info=exc_info)
