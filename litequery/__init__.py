"""litequery: a typed statement, cursor and transaction layer over SQLite."""

from litequery import core, exceptions, utils
from litequery.__metadata__ import __version__
from litequery.config import DatabaseConfig, OpenFlags
from litequery.core import (
    Cursor,
    CursorState,
    EngineType,
    Field,
    ResultSet,
    Row,
    Statement,
    Transaction,
    TransactionMode,
    Value,
)
from litequery.database import Database
from litequery.exceptions import (
    EngineError,
    InvalidStateError,
    LiteQueryError,
    OutOfRangeError,
    TypeMismatchError,
    UnknownColumnError,
    UnknownParameterError,
)

__all__ = (
    "Cursor",
    "CursorState",
    "Database",
    "DatabaseConfig",
    "EngineError",
    "EngineType",
    "Field",
    "InvalidStateError",
    "LiteQueryError",
    "OpenFlags",
    "OutOfRangeError",
    "ResultSet",
    "Row",
    "Statement",
    "Transaction",
    "TransactionMode",
    "TypeMismatchError",
    "UnknownColumnError",
    "UnknownParameterError",
    "Value",
    "__version__",
    "core",
    "exceptions",
    "utils",
)
