"""
Structured Logging

Logging setup for the query runner: a correlation ID stamped on every record
of a run, and either console formatted or JSON formatted output.

Log lines go to stderr so the human-readable report on stdout stays clean.
"""

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import TextIO

# LogRecord attributes that are never copied into the JSON payload as extras
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "taskName",
        "correlation_id",
    }
)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation ID to all log records."""

    def __init__(self, correlation_id: str | None = None):
        """Initialize filter with correlation ID.

        Args:
            correlation_id: Correlation ID to use (generates new one if None)
        """
        super().__init__()
        self.correlation_id = correlation_id or self.generate_correlation_id()

    @staticmethod
    def generate_correlation_id() -> str:
        """Generate a new correlation ID."""
        return str(uuid.uuid4())

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record.

        Returns:
            Always True to include all records
        """
        if not hasattr(record, "correlation_id"):
            record.correlation_id = self.correlation_id
        return True


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_extra: bool = True):
        """Initialize JSON formatter.

        Args:
            include_extra: Include fields passed through ``extra=`` in the output
        """
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON line."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            for key, value in record.__dict__.items():
                if key not in _RESERVED_ATTRS and key not in log_data:
                    log_data[key] = value

        return json.dumps(log_data, default=str, separators=(",", ":"))


class ConsoleFormatter(logging.Formatter):
    """Console formatter: ``LEVEL | time | logger | CID:xxxxxxxx | [context] message``."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        parts = [record.levelname, timestamp, record.name]

        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            parts.append(f"CID:{correlation_id[:8]}")

        context_parts = []
        if hasattr(record, "operation"):
            context_parts.append(f"op:{record.operation}")
        if hasattr(record, "collection_name"):
            context_parts.append(f"collection:{record.collection_name}")
        if hasattr(record, "duration_ms"):
            context_parts.append(f"took:{record.duration_ms}ms")

        if context_parts:
            parts.append(f"[{', '.join(context_parts)}]")

        parts.append(record.getMessage())

        message = " | ".join(parts)
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def configure_logging(
    level: str = "INFO",
    structured: bool = False,
    correlation_id: str | None = None,
    stream: TextIO | None = None,
) -> CorrelationIdFilter:
    """Configure the root logger for one process.

    Existing root handlers are replaced so repeated calls do not duplicate output.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        structured: Use JSON structured logging
        correlation_id: Correlation ID for this run (generated if None)
        stream: Output stream, stderr by default

    Returns:
        The correlation filter installed on the handler
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(numeric_level)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if structured else ConsoleFormatter())
    handler.setLevel(numeric_level)

    correlation_filter = CorrelationIdFilter(correlation_id)
    handler.addFilter(correlation_filter)
    root_logger.addHandler(handler)

    # The driver logs every heartbeat at DEBUG
    logging.getLogger("pymongo").setLevel(max(numeric_level, logging.INFO))

    return correlation_filter
