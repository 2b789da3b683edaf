"""SQLite engine helpers: result codes and exception mapping."""

import sqlite3
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import TypeGuard

from litequery.exceptions import EngineError

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = (
    "SQLITE_ERROR_CODE",
    "SQLITE_MISUSE_CODE",
    "create_engine_error",
    "handle_engine_errors",
    "has_sqlite_error",
)

SQLITE_ERROR_CODE = 1
SQLITE_BUSY_CODE = 5
SQLITE_LOCKED_CODE = 6
SQLITE_READONLY_CODE = 8
SQLITE_CONSTRAINT_CODE = 19
SQLITE_MISUSE_CODE = 21
SQLITE_RANGE_CODE = 25

_CODE_NAMES = {
    SQLITE_ERROR_CODE: "SQLITE_ERROR",
    SQLITE_BUSY_CODE: "SQLITE_BUSY",
    SQLITE_LOCKED_CODE: "SQLITE_LOCKED",
    SQLITE_READONLY_CODE: "SQLITE_READONLY",
    SQLITE_CONSTRAINT_CODE: "SQLITE_CONSTRAINT",
    SQLITE_MISUSE_CODE: "SQLITE_MISUSE",
    SQLITE_RANGE_CODE: "SQLITE_RANGE",
}


def has_sqlite_error(obj: Any) -> "TypeGuard[sqlite3.Error]":
    """Check if an exception carries SQLite result code attributes."""
    return isinstance(obj, sqlite3.Error) and getattr(obj, "sqlite_errorcode", None) is not None


def create_engine_error(error: BaseException) -> EngineError:
    """Wrap a ``sqlite3`` exception, keeping the engine's raw result code.

    This is a factory rather than a raiser so it can be used from ``__exit__``
    handlers and ``raise ... from`` clauses alike.

    Args:
        error: The exception raised by the engine.

    Returns:
        EngineError with the original as its cause.
    """
    code: int
    name: Optional[str]
    if has_sqlite_error(error):
        code = error.sqlite_errorcode  # type: ignore[attr-defined]
        name = error.sqlite_errorname  # type: ignore[attr-defined]
    elif isinstance(error, (sqlite3.ProgrammingError, sqlite3.InterfaceError, sqlite3.Warning)):
        code = SQLITE_MISUSE_CODE
        name = None
    else:
        code = SQLITE_ERROR_CODE
        name = None
    if name is None:
        name = _CODE_NAMES.get(code & 0xFF)
    exc = EngineError(str(error), code=code, name=name)
    exc.__cause__ = error
    return exc


@contextmanager
def handle_engine_errors() -> "Generator[None, None, None]":
    """Re-raise any ``sqlite3`` error raised in the block as :class:`EngineError`.

    ``sqlite3.Warning`` is included: older interpreters use it to report misuse such
    as several statements in one ``execute`` call.
    """
    try:
        yield
    except (sqlite3.Error, sqlite3.Warning) as e:
        raise create_engine_error(e) from e
