from typing import Any, Optional

__all__ = (
    "EngineError",
    "ImproperConfigurationError",
    "InvalidStateError",
    "LiteQueryError",
    "LookupFailure",
    "OutOfRangeError",
    "TypeMismatchError",
    "UnknownColumnError",
    "UnknownParameterError",
)


class LiteQueryError(Exception):
    """Base exception class from which all litequery exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``LiteQueryError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(LiteQueryError):
    """Improper Configuration error.

    Raised when connection parameters or open flags cannot be combined.
    """


# -- Engine Errors --
class EngineError(LiteQueryError):
    """Non-success status returned by the SQLite engine.

    The raw extended result code is kept in ``code`` so callers can compare it
    against the engine's own enumeration.
    """

    code: int
    name: Optional[str]

    def __init__(self, message: str, code: int = 1, name: Optional[str] = None) -> None:
        """Initialize with the engine status.

        Args:
            message: Engine error message.
            code: SQLite extended result code.
            name: Symbolic name of the result code, when the engine reports one.
        """
        self.code = code
        self.name = name
        label = name or f"code {code}"
        super().__init__(detail=f"SQLite error [{label}]: {message}")


# -- Value Errors --
class TypeMismatchError(LiteQueryError, TypeError):
    """A field accessor requested a conversion the stored value does not allow."""

    requested: str
    stored: str

    def __init__(self, requested: str, stored: str, reason: Optional[str] = None) -> None:
        self.requested = requested
        self.stored = stored
        detail = f"Cannot read {stored} value as {requested}"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail=detail)


# -- Lookup Errors --
class LookupFailure(LiteQueryError):
    """Base class for binder and row lookup errors."""


class UnknownParameterError(LookupFailure):
    """Raised when a bound index or name does not exist in the prepared SQL."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        """Initialize with optional SQL context."""
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class UnknownColumnError(LookupFailure, KeyError):
    """Raised when a row is indexed by a column name it does not carry."""


class OutOfRangeError(LookupFailure, IndexError):
    """Raised when a row or result set is indexed past its end."""


# -- Protocol Errors --
class InvalidStateError(LiteQueryError):
    """Cursor or transaction protocol violation.

    These are programmer errors: a call was made in a state that does not allow it.
    """
