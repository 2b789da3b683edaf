"""Scoped transaction guard."""

from enum import Enum
from typing import TYPE_CHECKING, Optional

from mypy_extensions import mypyc_attr
from typing_extensions import Self

from litequery.exceptions import EngineError, InvalidStateError
from litequery.utils.logging import get_logger, log_fields

if TYPE_CHECKING:
    from types import TracebackType

    from litequery.database import Database

__all__ = ("Transaction", "TransactionMode", "TransactionState")

logger = get_logger("core.transaction")


class TransactionMode(str, Enum):
    """Locking behaviour requested by ``BEGIN``."""

    DEFERRED = "DEFERRED"
    IMMEDIATE = "IMMEDIATE"
    EXCLUSIVE = "EXCLUSIVE"


class TransactionState(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    SETTLED = "settled"


@mypyc_attr(allow_interpreted_subclasses=False)
class Transaction:
    """Begin/commit/rollback framing with rollback on scope exit.

    Constructing the guard issues ``BEGIN``. If it is still active when the
    ``with`` block exits or the object is dropped, it issues ``ROLLBACK``, so
    nothing is committed by falling out of scope. That cleanup is best effort:
    a failing rollback is logged and not raised.

    One guard can frame several transactions in a row via :meth:`begin`.

    Args:
        database: Connection to frame.
        mode: ``BEGIN`` mode, deferred by default.
    """

    __slots__ = ("_database", "_mode", "_state")

    def __init__(self, database: "Database", mode: TransactionMode = TransactionMode.DEFERRED) -> None:
        self._database = database
        self._mode = TransactionMode(mode)
        self._state = TransactionState.NOT_STARTED
        self.begin()

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is TransactionState.ACTIVE

    @property
    def mode(self) -> TransactionMode:
        return self._mode

    def begin(self) -> Self:
        """Issue ``BEGIN`` unless a transaction of this guard is already active."""
        if self._state is TransactionState.ACTIVE:
            return self
        self._database.execute_sql(f"BEGIN {self._mode.value}")
        self._state = TransactionState.ACTIVE
        logger.debug("Transaction started", extra=log_fields(mode=self._mode))
        return self

    def commit(self) -> None:
        """Issue ``COMMIT``.

        Raises:
            InvalidStateError: If no transaction of this guard is active.
            EngineError: If the engine refuses the commit, e.g. while the database is busy.
        """
        self._ensure_active("commit()")
        self._database.execute_sql("COMMIT")
        self._state = TransactionState.SETTLED

    def rollback(self) -> None:
        """Issue ``ROLLBACK``.

        Raises:
            InvalidStateError: If no transaction of this guard is active.
        """
        self._ensure_active("rollback()")
        try:
            self._database.execute_sql("ROLLBACK")
        finally:
            self._state = TransactionState.SETTLED

    def _ensure_active(self, operation: str) -> None:
        if self._state is not TransactionState.ACTIVE:
            msg = f"{operation} requires an active transaction (state: {self._state.value})"
            raise InvalidStateError(msg)

    def _rollback_quietly(self) -> None:
        if self._state is not TransactionState.ACTIVE:
            return
        try:
            self.rollback()
        except (EngineError, InvalidStateError):
            logger.warning("Automatic rollback failed", exc_info=True, extra=log_fields(mode=self._mode))

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self._rollback_quietly()

    def __del__(self) -> None:
        if getattr(self, "_state", None) is TransactionState.ACTIVE:
            self._rollback_quietly()

    def __repr__(self) -> str:
        return f"<Transaction {self._mode.value} {self._state.value}>"
