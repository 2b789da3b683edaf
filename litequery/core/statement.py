"""Statement: incremental SQL text, parameter staging and execution.

A Statement owns a SQL text buffer and a :class:`~litequery.core.parameters.Binder`.
Executing it resolves the staged values against the placeholders of the current
text, runs it through the engine and either discards the rows (``exec``),
materializes them (``store``) or hands them out one at a time (``use`` /
``use_next``).

Cursor protocol::

    IDLE --use()--> STEPPING --use_next() returns sentinel--> EXHAUSTED
      ^                 |                                         |
      +--- use_abort() -+-----------------------------------------+

While STEPPING the engine holds a live cursor for the statement. It must be
released with ``use_abort()`` (or by closing the :class:`Cursor` handle from
``cursor()``) before the statement can execute or change its text again.
"""

import sqlite3
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

from mypy_extensions import mypyc_attr
from typing_extensions import Self

from litequery.core.cursor import Cursor
from litequery.core.parameters import Binder, ParameterTable, extract_parameters, get_parameter_table
from litequery.core.result import ResultSet, Row
from litequery.core.value import Value
from litequery.engine import handle_engine_errors
from litequery.exceptions import InvalidStateError, UnknownParameterError
from litequery.utils.logging import get_logger, log_fields

if TYPE_CHECKING:
    from types import TracebackType

    from litequery.core.parameters import ParameterKey
    from litequery.database import Database

__all__ = ("CursorState", "Statement")

logger = get_logger("core.statement")


class CursorState(str, Enum):
    """Row-streaming state of a Statement."""

    IDLE = "idle"
    STEPPING = "stepping"
    EXHAUSTED = "exhausted"


@mypyc_attr(allow_interpreted_subclasses=True)
class Statement:
    """A SQL statement bound to one :class:`~litequery.database.Database`.

    Args:
        database: Connection the statement executes on.
        sql: Optional initial SQL text.

    Example::

        stmt = Statement(db)
        stmt.append("INSERT INTO test (num, data) VALUES (").append_literal(1000)
        stmt.append(", ").append_parameter(b"\\x00\\x01").append(")")
        stmt.exec()
    """

    __slots__ = (
        "__weakref__",
        "_affected_rows",
        "_binder",
        "_column_names",
        "_cursor",
        "_database",
        "_insert_id",
        "_sequence",
        "_sql_parts",
        "_state",
    )

    def __init__(self, database: "Database", sql: str = "") -> None:
        self._database = database
        self._binder = Binder()
        self._sql_parts: list[str] = [sql] if sql else []
        self._cursor: Optional[sqlite3.Cursor] = None
        self._column_names: tuple[str, ...] = ()
        self._state = CursorState.IDLE
        self._insert_id = 0
        self._affected_rows = 0
        self._sequence = 0

    # -- Properties --
    @property
    def database(self) -> "Database":
        return self._database

    @property
    def sql(self) -> str:
        """The current SQL text buffer."""
        return "".join(self._sql_parts)

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def sequence(self) -> int:
        """Counter of use() sequences started on this statement."""
        return self._sequence

    @property
    def insert_id(self) -> int:
        """Row id of the last row inserted on the connection, captured after execution."""
        return self._insert_id

    @property
    def affected_rows(self) -> int:
        """Rows changed by the last executed INSERT, UPDATE or DELETE."""
        return self._affected_rows

    # -- Text building --
    def append(self, sql: str) -> Self:
        """Append raw SQL text."""
        if not isinstance(sql, str):
            msg = f"SQL text must be str, got {type(sql).__name__}; use append_literal() or append_parameter()"
            raise TypeError(msg)
        self._prepare_for_new_text()
        self._sql_parts.append(sql)
        return self

    def __lshift__(self, sql: str) -> Self:
        return self.append(sql)

    def append_literal(self, number: Union[int, float]) -> Self:
        """Render a number directly into the SQL text.

        No parameter slot is created. Strings and bytes are rejected: they must go
        through :meth:`append_parameter`.
        """
        if not isinstance(number, (int, float)):
            msg = f"append_literal() takes int or float, got {type(number).__name__}; use append_parameter()"
            raise TypeError(msg)
        literal = Value.from_python(number).to_sql_literal()
        self._prepare_for_new_text()
        # "--" would open a comment
        if literal.startswith("-") and self.sql.endswith("-"):
            literal = f" {literal}"
        return self.append(literal)

    def append_parameter(self, value: Any) -> Self:
        """Append a ``?`` placeholder and stage ``value`` against its slot."""
        staged = Value.from_python(value)
        self.append("?")
        sql = self.sql
        try:
            parameters = extract_parameters(sql)
        except UnknownParameterError:
            self._sql_parts.pop()
            raise
        if not parameters or parameters[-1].position != len(sql) - 1:
            self._sql_parts.pop()
            msg = "Placeholder appended inside a string literal or comment"
            raise UnknownParameterError(msg, sql)
        self._binder.bind(parameters[-1].index, staged)
        return self

    def bind(self, key: "ParameterKey", value: Any) -> Self:
        """Stage a value for a slot index (1-based) or parameter name.

        The key is checked against the SQL text only when the statement executes.
        """
        self._prepare_for_new_text()
        self._binder.bind(key, value)
        return self

    def clear_bindings(self) -> Self:
        self._prepare_for_new_text()
        self._binder.clear()
        return self

    # -- Execution --
    def exec(self, sql: Optional[str] = None) -> Self:
        """Execute to completion, discarding any result rows.

        Args:
            sql: Replaces the SQL text buffer when given.

        Raises:
            EngineError: On any engine failure. Changes already applied are not rolled back.
        """
        cursor, table = self._start(sql)
        try:
            with handle_engine_errors():
                for _ in cursor:
                    pass
            self._capture_counters()
        finally:
            self._finish()
        logger.debug(
            "Executed statement",
            extra=log_fields(sql=table.compiled_sql, affected_rows=self._affected_rows, insert_id=self._insert_id),
        )
        return self

    def store(self, sql: Optional[str] = None) -> ResultSet:
        """Execute and materialize every result row."""
        cursor, table = self._start(sql)
        try:
            with handle_engine_errors():
                raw_rows = cursor.fetchall()
            columns = self._column_names
            result = ResultSet([Row.from_engine(columns, raw) for raw in raw_rows], columns)
            self._capture_counters()
        finally:
            self._finish()
        logger.debug(
            "Stored %d rows", result.num_rows(), extra=log_fields(sql=table.compiled_sql, rows=result.num_rows())
        )
        return result

    def use(self, sql: Optional[str] = None) -> Row:
        """Execute and step once.

        Returns:
            The first row, or the empty sentinel row when there are none.
        """
        self._start(sql)
        self._sequence += 1
        self._state = CursorState.STEPPING
        return self._step()

    def use_next(self) -> Row:
        """Step to the next row.

        Once the sentinel has been returned, further calls keep returning it.

        Raises:
            InvalidStateError: If no ``use()`` sequence is in progress.
        """
        if self._state is CursorState.IDLE:
            msg = "use_next() called without a preceding use()"
            raise InvalidStateError(msg)
        if self._state is CursorState.EXHAUSTED:
            return Row.empty()
        return self._step()

    def use_abort(self) -> Self:
        """Release the engine cursor of a ``use()`` sequence and return to IDLE.

        Must be called whenever a ``use()``/``use_next()`` sequence is left before
        the sentinel. Calling it while IDLE does nothing.
        """
        if self._state is CursorState.IDLE:
            return self
        try:
            self._release()
        finally:
            self._reset_text()
        return self

    def cursor(self, sql: Optional[str] = None) -> Cursor:
        """Start a ``use()`` sequence wrapped in a handle that always releases it.

        Example::

            with stmt.cursor("SELECT * FROM test") as rows:
                for row in rows:
                    if row["num"].as_integer() > 10:
                        break
        """
        first = self.use(sql)
        return Cursor(self, first)

    # -- Lifecycle --
    def close(self) -> None:
        """Release the statement.

        Raises:
            InvalidStateError: If a ``use()`` sequence was left open. The engine cursor
                is released before raising.
        """
        leaked = self._state is CursorState.STEPPING
        self.use_abort()
        self._binder.clear()
        if leaked:
            msg = "Statement closed while stepping; call use_abort() after leaving a use() sequence early"
            raise InvalidStateError(msg)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        if exc_type is not None:
            self.use_abort()
            return
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_state", CursorState.IDLE) is CursorState.STEPPING:
            logger.warning(
                "Statement dropped while stepping, releasing cursor", extra=log_fields(sql=self.sql, state=self._state)
            )
            self._release()

    def __repr__(self) -> str:
        return f"Statement(sql={self.sql!r}, state={self._state.value!r})"

    # -- Internals --
    def _ensure_not_stepping(self, operation: str) -> None:
        if self._state is CursorState.STEPPING:
            msg = f"{operation} not allowed while a use() sequence is open; call use_abort() first"
            raise InvalidStateError(msg)

    def _prepare_for_new_text(self) -> None:
        self._ensure_not_stepping("Changing SQL text")
        if self._state is CursorState.EXHAUSTED:
            self.use_abort()

    def _start(self, sql: Optional[str]) -> "tuple[sqlite3.Cursor, ParameterTable]":
        self._prepare_for_new_text()
        if sql is not None:
            self._sql_parts = [sql]
        text = self.sql
        if not text.strip():
            self._reset_text()
            msg = "No SQL text to execute"
            raise InvalidStateError(msg)

        try:
            table = get_parameter_table(text)
            parameters = self._binder.resolve(table)
            connection = self._database.connection
            logger.debug(
                "Executing SQL: %s", table.compiled_sql, extra=log_fields(slots=table.slot_count, state=self._state)
            )
            with handle_engine_errors():
                cursor = connection.cursor()
                try:
                    cursor.execute(table.compiled_sql, parameters)
                except BaseException:
                    cursor.close()
                    raise
        except BaseException:
            self._reset_text()
            raise

        self._cursor = cursor
        self._column_names = tuple(col[0] for col in cursor.description or ())
        return cursor, table

    def _step(self) -> Row:
        cursor = self._cursor
        if cursor is None:
            self._state = CursorState.EXHAUSTED
            return Row.empty()
        try:
            with handle_engine_errors():
                raw = cursor.fetchone()
        except BaseException:
            self.use_abort()
            raise
        if raw is None:
            self._capture_counters()
            self._release()
            self._state = CursorState.EXHAUSTED
            return Row.empty()
        return Row.from_engine(self._column_names, raw)

    def _capture_counters(self) -> None:
        self._insert_id = self._database.last_insert_rowid()
        self._affected_rows = self._database.changes()

    def _release(self) -> None:
        cursor, self._cursor = self._cursor, None
        self._column_names = ()
        self._state = CursorState.IDLE
        if cursor is not None:
            with handle_engine_errors():
                cursor.close()

    def _reset_text(self) -> None:
        self._sql_parts = []
        self._binder.clear()

    def _finish(self) -> None:
        try:
            self._release()
        finally:
            self._reset_text()
