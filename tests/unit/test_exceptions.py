from litequery.exceptions import (
    EngineError,
    InvalidStateError,
    LiteQueryError,
    LookupFailure,
    OutOfRangeError,
    TypeMismatchError,
    UnknownColumnError,
    UnknownParameterError,
)


def test_exception_hierarchy() -> None:
    """Lookup errors share a base and also behave like their builtin counterparts."""
    assert issubclass(UnknownParameterError, LookupFailure)
    assert issubclass(UnknownColumnError, LookupFailure)
    assert issubclass(OutOfRangeError, LookupFailure)
    assert issubclass(UnknownColumnError, KeyError)
    assert issubclass(OutOfRangeError, IndexError)
    assert issubclass(TypeMismatchError, TypeError)

    for exc_type in (EngineError, InvalidStateError, LookupFailure, TypeMismatchError):
        assert issubclass(exc_type, LiteQueryError)


def test_exception_instantiation() -> None:
    exc = InvalidStateError("commit() requires an active transaction")
    assert str(exc) == "commit() requires an active transaction"
    assert repr(exc) == "InvalidStateError - commit() requires an active transaction"


def test_engine_error_keeps_status_code() -> None:
    exc = EngineError("no such table: nope", code=1, name="SQLITE_ERROR")
    assert exc.code == 1
    assert exc.name == "SQLITE_ERROR"
    assert "no such table: nope" in str(exc)
    assert "SQLITE_ERROR" in str(exc)


def test_unknown_parameter_includes_sql() -> None:
    exc = UnknownParameterError("No parameter named '@x'", sql="SELECT :y")
    assert exc.sql == "SELECT :y"
    assert "SQL: SELECT :y" in str(exc)


def test_type_mismatch_message() -> None:
    exc = TypeMismatchError("INTEGER", "FLOAT")
    assert str(exc) == "Cannot read FLOAT value as INTEGER"
    exc = TypeMismatchError("INTEGER", "TEXT", "'99' is outside the 64-bit range")
    assert str(exc) == "Cannot read TEXT value as INTEGER: '99' is outside the 64-bit range"


def test_exception_chaining() -> None:
    try:
        try:
            raise ValueError("Original error")
        except ValueError as e:
            raise EngineError("Mapped error") from e
    except EngineError as exc:
        assert exc.__cause__ is not None
        assert isinstance(exc.__cause__, ValueError)
