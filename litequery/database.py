"""Connection wrapper around the SQLite engine."""

import sqlite3
from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import Self, Unpack

from litequery.config import DEFAULT_FLAGS, MEMORY_DATABASE, DatabaseConfig, OpenFlags, connect
from litequery.core.statement import Statement
from litequery.core.transaction import Transaction, TransactionMode
from litequery.engine import handle_engine_errors
from litequery.exceptions import InvalidStateError
from litequery.utils.logging import get_logger, log_fields

if TYPE_CHECKING:
    from types import TracebackType

__all__ = ("Database",)

logger = get_logger("database")


class Database:
    """One SQLite connection.

    Every :class:`~litequery.core.statement.Statement` and
    :class:`~litequery.core.transaction.Transaction` is bound to a ``Database``
    passed to it explicitly. The connection runs in autocommit mode; use a
    Transaction to group statements atomically.

    Args:
        database: Path, ``:memory:`` or ``file:`` URI. When omitted the object starts closed.
        flags: Open flags.
        **config: Further connection parameters, see :class:`~litequery.config.DatabaseConfig`.
    """

    __slots__ = ("_config", "_connection")

    def __init__(
        self, database: Optional[str] = None, flags: OpenFlags = DEFAULT_FLAGS, **config: Unpack[DatabaseConfig]
    ) -> None:
        self._connection: Optional[sqlite3.Connection] = None
        self._config: DatabaseConfig = config
        if database is not None:
            self.open(database, flags)

    def open(self, database: str = MEMORY_DATABASE, flags: OpenFlags = DEFAULT_FLAGS) -> None:
        """Open the database, closing any connection this object already holds."""
        if self._connection is not None:
            self.close()
        params: dict[str, Any] = {**self._config, "database": database, "flags": flags}
        with handle_engine_errors():
            self._connection = connect(params)
        logger.debug("Opened SQLite database", extra=log_fields(database=database, flags=flags))

    def close(self) -> None:
        if self._connection is None:
            return
        with handle_engine_errors():
            self._connection.close()
        self._connection = None
        logger.debug("Closed SQLite database")

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @property
    def connection(self) -> sqlite3.Connection:
        """The underlying ``sqlite3`` connection.

        Raises:
            InvalidStateError: If the database is not open.
        """
        if self._connection is None:
            msg = "Database is not open"
            raise InvalidStateError(msg)
        return self._connection

    @property
    def in_transaction(self) -> bool:
        return self.connection.in_transaction

    @staticmethod
    def version() -> str:
        """Version string of the linked SQLite library."""
        return sqlite3.sqlite_version

    def vacuum(self) -> None:
        """Defragment the database file. Fails inside an open transaction."""
        self.execute_sql("VACUUM")

    def execute_sql(self, sql: str) -> None:
        """Run one fixed SQL command to completion, discarding any rows."""
        connection = self.connection
        logger.debug("Executing SQL: %s", sql, extra=log_fields(in_transaction=connection.in_transaction))
        with handle_engine_errors():
            cursor = connection.execute(sql)
            try:
                for _ in cursor:
                    pass
            finally:
                cursor.close()

    def _scalar(self, sql: str) -> int:
        with handle_engine_errors():
            row = self.connection.execute(sql).fetchone()
        return int(row[0])

    def last_insert_rowid(self) -> int:
        return self._scalar("SELECT last_insert_rowid()")

    def changes(self) -> int:
        """Rows modified by the most recently completed INSERT, UPDATE or DELETE."""
        return self._scalar("SELECT changes()")

    def statement(self, sql: str = "") -> Statement:
        return Statement(self, sql)

    def transaction(self, mode: TransactionMode = TransactionMode.DEFERRED) -> Transaction:
        """Begin a transaction on this connection."""
        return Transaction(self, mode)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"<Database {state}>"
