"""Tagged value type exchanged with the SQLite engine.

A :class:`Value` holds exactly one of Null, Integer, Real, Text or Blob. Conversion
between variants follows a fixed table: lossless widening (Integer to Real) and
formatting to text are allowed, anything that would silently drop information
raises :class:`~litequery.exceptions.TypeMismatchError`.
"""

import math
import re
from enum import IntEnum
from typing import Any, Final, Union

from mypy_extensions import mypyc_attr

from litequery.exceptions import TypeMismatchError

__all__ = ("EngineType", "NativeValue", "Value")

NativeValue = Union[None, int, float, str, bytes]

INT64_MIN: Final = -(2**63)
INT64_MAX: Final = 2**63 - 1
UINT64_MAX: Final = 2**64 - 1

_INTEGER_NUMERAL: Final = re.compile(r"^\s*[+-]?[0-9]+\s*$", re.ASCII)
_REAL_NUMERAL: Final = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*$", re.ASCII)


class EngineType(IntEnum):
    """SQLite fundamental storage classes, numbered as the engine numbers them."""

    INTEGER = 1
    FLOAT = 2
    TEXT = 3
    BLOB = 4
    NULL = 5

    def __str__(self) -> str:
        return self.name


def _to_signed64(value: int) -> int:
    if value < INT64_MIN or value > UINT64_MAX:
        msg = f"Integer {value} does not fit in 64 bits"
        raise OverflowError(msg)
    if value > INT64_MAX:
        return value - 2**64
    return value


@mypyc_attr(allow_interpreted_subclasses=False)
class Value:
    """Immutable tagged union of the five SQLite storage classes.

    Use the ``null``/``integer``/``real``/``text``/``blob`` constructors or
    :meth:`from_python`. Text and Blob payloads are always owned copies.
    """

    __slots__ = ("_payload", "_type")

    _type: EngineType
    _payload: NativeValue

    def __init__(self, engine_type: EngineType, payload: NativeValue = None) -> None:
        object.__setattr__(self, "_type", engine_type)
        object.__setattr__(self, "_payload", payload)

    def __setattr__(self, name: str, value: Any) -> None:
        msg = "Value is immutable"
        raise AttributeError(msg)

    @classmethod
    def null(cls) -> "Value":
        return _NULL

    @classmethod
    def integer(cls, value: int) -> "Value":
        """Integer value; unsigned 64-bit inputs keep their bit pattern."""
        return cls(EngineType.INTEGER, _to_signed64(int(value)))

    @classmethod
    def real(cls, value: float) -> "Value":
        return cls(EngineType.FLOAT, float(value))

    @classmethod
    def text(cls, value: str) -> "Value":
        if not isinstance(value, str):
            msg = f"Text value must be str, got {type(value).__name__}"
            raise TypeError(msg)
        return cls(EngineType.TEXT, value)

    @classmethod
    def blob(cls, value: "Union[bytes, bytearray, memoryview]") -> "Value":
        return cls(EngineType.BLOB, bytes(value))

    @classmethod
    def from_python(cls, obj: Any) -> "Value":
        """Convert a native Python object into a Value.

        Args:
            obj: ``None``, ``bool``, ``int``, ``float``, ``str``, a bytes-like object or a ``Value``.

        Raises:
            TypeError: If the object has no engine representation.

        Returns:
            The corresponding Value.
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return _NULL
        if isinstance(obj, (bool, int)):
            return cls.integer(obj)
        if isinstance(obj, float):
            return cls.real(obj)
        if isinstance(obj, str):
            return cls.text(obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls.blob(obj)
        msg = f"Unsupported parameter type: {type(obj).__name__}"
        raise TypeError(msg)

    @property
    def type(self) -> EngineType:
        return self._type

    @property
    def native(self) -> NativeValue:
        """The payload as the plain Python object handed to the engine."""
        return self._payload

    def is_null(self) -> bool:
        return self._type is EngineType.NULL

    def as_integer(self) -> int:
        stored = self._type
        if stored is EngineType.NULL:
            return 0
        if stored is EngineType.INTEGER:
            return self._payload  # type: ignore[return-value]
        if stored is EngineType.TEXT and _INTEGER_NUMERAL.match(self._payload):  # type: ignore[arg-type]
            parsed = int(self._payload)  # type: ignore[arg-type]
            if INT64_MIN <= parsed <= INT64_MAX:
                return parsed
            raise TypeMismatchError("INTEGER", str(stored), f"{self._payload!r} is outside the 64-bit range")
        raise TypeMismatchError("INTEGER", str(stored))

    def as_real(self) -> float:
        stored = self._type
        if stored is EngineType.NULL:
            return 0.0
        if stored is EngineType.INTEGER:
            return float(self._payload)  # type: ignore[arg-type]
        if stored is EngineType.FLOAT:
            return self._payload  # type: ignore[return-value]
        if stored is EngineType.TEXT and _REAL_NUMERAL.match(self._payload):  # type: ignore[arg-type]
            return float(self._payload)  # type: ignore[arg-type]
        raise TypeMismatchError("FLOAT", str(stored))

    def as_text(self) -> str:
        stored = self._type
        if stored is EngineType.NULL:
            return ""
        if stored in {EngineType.INTEGER, EngineType.FLOAT, EngineType.TEXT}:
            return str(self._payload)
        raise TypeMismatchError("TEXT", str(stored))

    def as_blob(self) -> bytes:
        stored = self._type
        if stored is EngineType.NULL:
            return b""
        if stored is EngineType.BLOB:
            return self._payload  # type: ignore[return-value]
        raise TypeMismatchError("BLOB", str(stored))

    def to_sql_literal(self) -> str:
        """Render a numeric value as SQL text.

        Only Integer and Real render; Text and Blob must go through a parameter slot.
        """
        if self._type is EngineType.INTEGER:
            return str(self._payload)
        if self._type is EngineType.FLOAT:
            if not math.isfinite(self._payload):  # type: ignore[arg-type]
                msg = f"Cannot render non-finite float {self._payload!r} as SQL"
                raise ValueError(msg)
            return repr(self._payload)
        raise TypeMismatchError("SQL literal", str(self._type))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self._type is other._type and self._payload == other._payload

    def __hash__(self) -> int:
        return hash((self._type, self._payload))

    def __repr__(self) -> str:
        if self._type is EngineType.NULL:
            return "Value.null()"
        return f"Value({self._type.name}, {self._payload!r})"

    @classmethod
    def from_engine(cls, raw: Any) -> "Value":
        """Wrap a column value read back from ``sqlite3``.

        The engine only ever hands back ``None``, ``int``, ``float``, ``str`` or ``bytes``,
        so the storage class follows from the Python type.
        """
        if raw is None:
            return _NULL
        return cls.from_python(raw)


_NULL: Final = Value(EngineType.NULL)
