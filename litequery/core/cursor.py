"""Scoped handle over a Statement's ``use()`` sequence."""

from typing import TYPE_CHECKING, Optional

from mypy_extensions import mypyc_attr
from typing_extensions import Self

from litequery.core.result import Row

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from litequery.core.statement import Statement

__all__ = ("Cursor",)


@mypyc_attr(allow_interpreted_subclasses=False)
class Cursor:
    """Iterator over the rows of a running ``use()`` sequence.

    Closing the handle performs ``use_abort()`` on the statement. That happens
    automatically when iteration reaches the end, when a ``with`` block exits
    (including through ``break`` or an exception) and when the handle is
    garbage collected, so a partially consumed sequence never stays open.

    Args:
        statement: The statement, already STEPPING.
        first: The row returned by ``use()``.
    """

    __slots__ = ("_closed", "_pending", "_sequence", "_statement")

    def __init__(self, statement: "Statement", first: Row) -> None:
        self._statement = statement
        self._pending: Optional[Row] = first
        self._sequence = statement.sequence
        self._closed = False

    @property
    def statement(self) -> "Statement":
        return self._statement

    @property
    def closed(self) -> bool:
        return self._closed

    def fetchone(self) -> Row:
        """Next row, or the empty sentinel once the sequence is done."""
        if self._closed:
            return Row.empty()
        if self._pending is not None:
            row, self._pending = self._pending, None
        else:
            row = self._statement.use_next()
        if not row:
            self.close()
        return row

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pending = None
        if self._statement.sequence == self._sequence:
            self._statement.use_abort()

    def __iter__(self) -> "Iterator[Row]":
        return self

    def __next__(self) -> Row:
        row = self.fetchone()
        if not row:
            raise StopIteration
        return row

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()

    def __del__(self) -> None:
        if not getattr(self, "_closed", True):
            self.close()

    def __repr__(self) -> str:
        return f"<Cursor {'closed' if self._closed else 'open'} sql={self._statement.sql!r}>"
