"""Integration tests for the use()/use_next()/use_abort() protocol and Cursor handles."""

import logging
from collections.abc import Callable

import pytest

from litequery import CursorState, Database, Row, Statement
from litequery.exceptions import InvalidStateError

pytestmark = pytest.mark.integration


@pytest.fixture
def populated(statement: Statement) -> Statement:
    for n in (10, 20, 30):
        statement.append("INSERT INTO test (num) VALUES (").append_literal(n).append(")").exec()
    return statement


def test_use_steps_through_rows_to_sentinel(populated: Statement) -> None:
    row = populated.use("SELECT num FROM test ORDER BY num")
    assert populated.state is CursorState.STEPPING
    seen = []
    while row:
        seen.append(row["num"].as_integer())
        row = populated.use_next()
    assert seen == [10, 20, 30]
    assert populated.state is CursorState.EXHAUSTED


def test_repeated_use_next_after_sentinel_returns_sentinel(populated: Statement) -> None:
    populated.use("SELECT num FROM test WHERE num = 10")
    assert populated.use_next().is_empty()
    assert populated.use_next().is_empty()
    assert populated.use_next() == Row.empty()
    assert populated.state is CursorState.EXHAUSTED


def test_use_on_empty_result_returns_sentinel(statement: Statement) -> None:
    row = statement.use("SELECT * FROM test")
    assert row.is_empty()
    assert statement.state is CursorState.EXHAUSTED
    assert statement.use_next().is_empty()


def test_use_abort_returns_to_idle(populated: Statement) -> None:
    first = populated.use("SELECT num FROM test ORDER BY num")
    assert first["num"].as_integer() == 10
    populated.use_abort()
    assert populated.state is CursorState.IDLE
    assert populated.sql == ""
    populated.exec("DELETE FROM test WHERE num = 10")
    assert populated.affected_rows == 1


def test_use_abort_while_idle_is_a_no_op(statement: Statement) -> None:
    statement.use_abort()
    assert statement.state is CursorState.IDLE


def test_use_abort_after_exhaustion(populated: Statement) -> None:
    populated.use("SELECT num FROM test WHERE num = 10")
    populated.use_next()
    populated.use_abort()
    assert populated.state is CursorState.IDLE


def test_use_next_without_use_fails(statement: Statement) -> None:
    with pytest.raises(InvalidStateError):
        statement.use_next()


@pytest.mark.parametrize(
    "operation",
    [
        pytest.param(lambda s: s.exec("SELECT 1"), id="exec"),
        pytest.param(lambda s: s.store("SELECT 1"), id="store"),
        pytest.param(lambda s: s.use("SELECT 1"), id="use"),
        pytest.param(lambda s: s.append("SELECT 1"), id="append"),
        pytest.param(lambda s: s.bind(1, 1), id="bind"),
    ],
)
def test_operations_while_stepping_fail(populated: Statement, operation: "Callable[[Statement], object]") -> None:
    populated.use("SELECT num FROM test")
    with pytest.raises(InvalidStateError):
        operation(populated)
    assert populated.state is CursorState.STEPPING
    populated.use_abort()


def test_new_text_after_exhaustion_starts_fresh(populated: Statement) -> None:
    populated.use("SELECT num FROM test WHERE num = 10")
    populated.use_next()
    populated << "SELECT COUNT(*) FROM test"
    assert populated.state is CursorState.IDLE
    assert populated.sql == "SELECT COUNT(*) FROM test"
    assert populated.store()[0][0].as_integer() == 3


def test_cursor_iterates_all_rows(populated: Statement) -> None:
    with populated.cursor("SELECT num FROM test ORDER BY num") as rows:
        assert [row["num"].as_integer() for row in rows] == [10, 20, 30]
    assert rows.closed
    assert populated.state is CursorState.IDLE


def test_cursor_early_break_releases_statement(populated: Statement) -> None:
    with populated.cursor("SELECT num FROM test ORDER BY num") as rows:
        for row in rows:
            if row["num"].as_integer() == 20:
                break
    assert populated.state is CursorState.IDLE
    populated.exec("DELETE FROM test")
    assert populated.affected_rows == 3


def test_cursor_released_on_exception(populated: Statement) -> None:
    with pytest.raises(RuntimeError), populated.cursor("SELECT num FROM test") as rows:
        next(rows)
        raise RuntimeError("boom")
    assert populated.state is CursorState.IDLE


def test_dropped_cursor_releases_statement(populated: Statement) -> None:
    for _ in populated.cursor("SELECT num FROM test"):
        break
    assert populated.state is CursorState.IDLE


def test_fetchone_after_close_returns_sentinel(populated: Statement) -> None:
    rows = populated.cursor("SELECT num FROM test")
    rows.close()
    assert rows.fetchone().is_empty()
    assert populated.state is CursorState.IDLE


def test_stale_cursor_does_not_abort_newer_sequence(populated: Statement) -> None:
    old = populated.cursor("SELECT num FROM test")
    populated.use_abort()
    populated.use("SELECT num FROM test")
    old.close()
    assert populated.state is CursorState.STEPPING
    populated.use_abort()


def test_close_while_stepping_is_a_programmer_error(populated: Statement) -> None:
    populated.use("SELECT num FROM test")
    with pytest.raises(InvalidStateError):
        populated.close()
    assert populated.state is CursorState.IDLE


def test_context_exit_while_stepping_raises(populated: Statement) -> None:
    with pytest.raises(InvalidStateError), Statement(populated.database) as stmt:
        stmt.use("SELECT num FROM test")


def test_context_exit_after_exhaustion_is_clean(populated: Statement) -> None:
    with Statement(populated.database) as stmt:
        stmt.use("SELECT num FROM test WHERE num = 10")
        stmt.use_next()
    assert stmt.state is CursorState.IDLE


def test_statement_dropped_while_stepping_logs_warning(test_table: Database, caplog: pytest.LogCaptureFixture) -> None:
    test_table.execute_sql("INSERT INTO test (num) VALUES (1)")
    stmt = Statement(test_table)
    stmt.use("SELECT num FROM test")
    with caplog.at_level(logging.WARNING, logger="litequery"):
        del stmt
    assert any("dropped while stepping" in record.getMessage() for record in caplog.records)


def test_aborted_cursor_does_not_block_writes(test_table: Database) -> None:
    reader = Statement(test_table)
    writer = Statement(test_table)
    writer.exec("INSERT INTO test (num) VALUES (1)")
    reader.use("SELECT num FROM test")
    reader.use_abort()
    writer.exec("DROP TABLE test")
    assert writer.store("SELECT name FROM sqlite_master WHERE type = 'table'").num_rows() == 0
