"""Integration tests for Transaction framing."""

import logging

import pytest

from litequery import Database, Statement, Transaction, TransactionMode
from litequery.core.transaction import TransactionState
from litequery.exceptions import InvalidStateError

pytestmark = pytest.mark.integration


def _count(database: Database) -> int:
    return Statement(database).store("SELECT COUNT(*) FROM test")[0][0].as_integer()


def test_dropped_transaction_rolls_back(test_table: Database) -> None:
    tx = Transaction(test_table)
    test_table.execute_sql("INSERT INTO test (num) VALUES (1)")
    assert test_table.in_transaction
    del tx
    assert not test_table.in_transaction
    assert _count(test_table) == 0


def test_commit_keeps_changes(test_table: Database) -> None:
    with test_table.transaction() as tx:
        Statement(test_table).exec("INSERT INTO test (num) VALUES (1)")
        tx.commit()
        assert tx.state is TransactionState.SETTLED
    assert _count(test_table) == 1


def test_scope_exit_without_commit_rolls_back(test_table: Database) -> None:
    with test_table.transaction():
        Statement(test_table).exec("INSERT INTO test (num) VALUES (1)")
    assert _count(test_table) == 0


def test_exception_in_scope_rolls_back(test_table: Database) -> None:
    with pytest.raises(RuntimeError), test_table.transaction():
        Statement(test_table).exec("INSERT INTO test (num) VALUES (1)")
        raise RuntimeError("boom")
    assert not test_table.in_transaction
    assert _count(test_table) == 0


def test_guard_frames_several_transactions(test_table: Database) -> None:
    tx = test_table.transaction()
    test_table.execute_sql("INSERT INTO test (num) VALUES (1)")
    tx.rollback()
    assert not tx.is_active
    tx.begin()
    assert tx.is_active
    test_table.execute_sql("INSERT INTO test (num) VALUES (2)")
    tx.commit()
    result = Statement(test_table).store("SELECT num FROM test")
    assert [row["num"].as_integer() for row in result] == [2]


def test_begin_while_active_is_idempotent(test_table: Database) -> None:
    with test_table.transaction() as tx:
        tx.begin()
        assert tx.is_active


@pytest.mark.parametrize("operation", ["commit", "rollback"])
def test_settle_without_active_transaction_fails(test_table: Database, operation: str) -> None:
    tx = test_table.transaction()
    tx.commit()
    with pytest.raises(InvalidStateError):
        getattr(tx, operation)()


@pytest.mark.parametrize("mode", list(TransactionMode))
def test_modes(test_table: Database, mode: TransactionMode) -> None:
    with test_table.transaction(mode) as tx:
        assert tx.mode is mode
        assert test_table.in_transaction
        test_table.execute_sql("INSERT INTO test (num) VALUES (1)")
        tx.commit()
    assert _count(test_table) == 1


def test_mode_accepts_string(test_table: Database) -> None:
    with Transaction(test_table, "IMMEDIATE") as tx:  # type: ignore[arg-type]
        assert tx.mode is TransactionMode.IMMEDIATE


def test_failed_automatic_rollback_is_logged_not_raised(
    test_table: Database, caplog: pytest.LogCaptureFixture
) -> None:
    tx = test_table.transaction()
    test_table.close()
    with caplog.at_level(logging.WARNING, logger="litequery"):
        tx.__exit__(None, None, None)
    assert tx.state is TransactionState.SETTLED
    assert any("Automatic rollback failed" in record.getMessage() for record in caplog.records)


def test_rollback_after_external_commit_settles(test_table: Database, caplog: pytest.LogCaptureFixture) -> None:
    tx = test_table.transaction()
    test_table.execute_sql("INSERT INTO test (num) VALUES (1)")
    test_table.execute_sql("COMMIT")
    with caplog.at_level(logging.WARNING, logger="litequery"):
        del tx
    assert _count(test_table) == 1
    assert any("Automatic rollback failed" in record.getMessage() for record in caplog.records)
