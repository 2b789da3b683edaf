"""Unit tests for logging helpers."""

import json
import logging
import sys

import pytest

from litequery import Database, Statement
from litequery.core.statement import CursorState
from litequery.exceptions import EngineError
from litequery.utils.logging import StructuredFormatter, TextFormatter, get_logger, log_fields


def _record(message: str = "Executing SQL", **fields: object) -> logging.LogRecord:
    record = logging.LogRecord("litequery.core.statement", logging.DEBUG, __file__, 10, message, (), None)
    record.__dict__.update(log_fields(**fields))
    return record


def test_get_logger_namespaces_names() -> None:
    assert get_logger().name == "litequery"
    assert get_logger("core.statement").name == "litequery.core.statement"
    assert get_logger("litequery.database").name == "litequery.database"


def test_log_fields_drops_none_and_unwraps_enums() -> None:
    assert log_fields(sql="SELECT 1", state=CursorState.STEPPING, rows=None) == {
        "extra_fields": {"sql": "SELECT 1", "state": "stepping"}
    }


def test_structured_formatter_lifts_statement_fields() -> None:
    payload = json.loads(StructuredFormatter().format(_record(sql="SELECT ?1", slots=1, state=CursorState.IDLE)))
    assert payload["message"] == "Executing SQL"
    assert payload["sql"] == "SELECT ?1"
    assert payload["slots"] == 1
    assert payload["state"] == "idle"
    assert payload["level"] == "DEBUG"


def test_structured_formatter_truncates_long_sql() -> None:
    payload = json.loads(StructuredFormatter(max_sql_length=10).format(_record(sql="SELECT " + "x, " * 50)))
    assert payload["sql"] == "SELECT x, ..."


def test_structured_formatter_reports_engine_error_code() -> None:
    try:
        raise EngineError("database is locked", code=5, name="SQLITE_BUSY")
    except EngineError:
        record = logging.LogRecord("litequery", logging.WARNING, __file__, 1, "failed", (), sys.exc_info())
    payload = json.loads(StructuredFormatter().format(record))
    assert payload["error"] == "EngineError"
    assert payload["error_code"] == 5
    assert "database is locked" in payload["exception"]


def test_text_formatter_appends_fields() -> None:
    line = TextFormatter().format(_record(sql="SELECT 1", rows=3))
    assert line.endswith("Executing SQL [sql='SELECT 1' rows=3]")


def test_text_formatter_without_fields_is_plain() -> None:
    assert TextFormatter().format(_record()).endswith("Executing SQL")


def test_statement_store_logs_row_count(caplog: pytest.LogCaptureFixture) -> None:
    with Database(":memory:") as db, caplog.at_level(logging.DEBUG, logger="litequery"):
        Statement(db).store("SELECT 1 AS a UNION ALL SELECT ?1")
    stored = [r for r in caplog.records if r.getMessage() == "Stored 2 rows"]
    assert stored
    assert stored[0].extra_fields == {"sql": "SELECT 1 AS a UNION ALL SELECT ?1", "rows": 2}  # type: ignore[attr-defined]
