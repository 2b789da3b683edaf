from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from litequery import Database, Statement

here = Path(__file__).parent
root_path = here.parent

TEST_TABLE_DDL = (
    "CREATE TABLE test (id INTEGER PRIMARY KEY NOT NULL, num INTEGER, name VARCHAR(20), "
    "flo FLOAT, data BLOB, comment TEXT)"
)


@pytest.fixture
def database() -> Generator[Database, None, None]:
    """In-memory database, one per test."""
    with Database(":memory:") as db:
        yield db


@pytest.fixture
def test_table(database: Database) -> Database:
    """Database with the ``test`` table created."""
    database.execute_sql(TEST_TABLE_DDL)
    return database


@pytest.fixture
def statement(test_table: Database) -> Generator[Statement, None, None]:
    stmt = Statement(test_table)
    yield stmt
    stmt.use_abort()
