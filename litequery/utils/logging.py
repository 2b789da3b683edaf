"""Logging helpers for litequery.

Loggers are namespaced under ``litequery``. Statement, transaction and connection
events attach their context (SQL text, cursor state, slot and row counts) as
``extra_fields`` built with :func:`log_fields`; both formatters render those
fields, as JSON keys or as ``key=value`` pairs.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = (
    "ROOT_LOGGER_NAME",
    "StructuredFormatter",
    "TextFormatter",
    "configure_logging",
    "get_logger",
    "log_fields",
)

ROOT_LOGGER_NAME = "litequery"

DEFAULT_MAX_SQL_LENGTH = 500


def log_fields(**fields: Any) -> dict[str, Any]:
    """Build the ``extra`` mapping for a statement or transaction event.

    ``None`` values are dropped and enum members are reduced to their value, so
    ``logger.debug("...", extra=log_fields(sql=sql, state=state))`` renders cleanly.
    """
    cleaned = {key: getattr(value, "value", value) for key, value in fields.items() if value is not None}
    return {"extra_fields": cleaned}


def _record_fields(record: LogRecord, max_sql_length: int) -> dict[str, Any]:
    fields: dict[str, Any] = dict(getattr(record, "extra_fields", None) or {})
    sql = fields.get("sql")
    if isinstance(sql, str) and len(sql) > max_sql_length:
        fields["sql"] = f"{sql[:max_sql_length]}..."
    return fields


def _exception_fields(record: LogRecord) -> dict[str, Any]:
    if not record.exc_info or record.exc_info[1] is None:
        return {}
    error = record.exc_info[1]
    fields: dict[str, Any] = {"error": type(error).__name__}
    code = getattr(error, "code", None)
    if isinstance(code, int):
        fields["error_code"] = code
    return fields


class StructuredFormatter(logging.Formatter):
    """JSON formatter that lifts statement fields to top-level keys."""

    def __init__(self, max_sql_length: int = DEFAULT_MAX_SQL_LENGTH, datefmt: str | None = None) -> None:
        super().__init__(datefmt=datefmt)
        self.max_sql_length = max_sql_length

    def format(self, record: LogRecord) -> str:
        """Format log record as structured JSON.

        Args:
            record: The log record to format

        Returns:
            JSON formatted log entry
        """
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(_record_fields(record, self.max_sql_length))
        log_entry.update(_exception_fields(record))
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """Plain text formatter appending statement fields as ``key=value`` pairs."""

    def __init__(self, max_sql_length: int = DEFAULT_MAX_SQL_LENGTH) -> None:
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        self.max_sql_length = max_sql_length

    def format(self, record: LogRecord) -> str:
        line = super().format(record)
        fields = _record_fields(record, self.max_sql_length)
        if not fields:
            return line
        rendered = " ".join(f"{key}={value!r}" if key == "sql" else f"{key}={value}" for key, value in fields.items())
        head, sep, tail = line.partition("\n")
        return f"{head} [{rendered}]{sep}{tail}"


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance under the litequery namespace.

    Args:
        name: Logger name. If not provided, returns the root litequery logger.

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    max_sql_length: int = DEFAULT_MAX_SQL_LENGTH,
    extra_handlers: list[logging.Handler] | None = None,
) -> None:
    """Install a console handler on the ``litequery`` logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_style: ``"structured"`` for JSON, ``"text"`` for plain lines
        max_sql_length: SQL text longer than this is truncated in log output
        extra_handlers: Additional handlers to add
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    formatter: logging.Formatter
    if format_style == "structured":
        formatter = StructuredFormatter(max_sql_length)
    else:
        formatter = TextFormatter(max_sql_length)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for handler in extra_handlers or ():
        root_logger.addHandler(handler)

    root_logger.propagate = False
    root_logger.debug("litequery logging configured", extra=log_fields(level=level, format_style=format_style))
