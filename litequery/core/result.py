"""Materialized result classes.

- Field: one column value with its name and storage class
- Row: ordered, fixed-length sequence of fields, indexable by position or name
- ResultSet: ordered sequence of rows produced by ``Statement.store()``

A Row with zero fields is the end-of-results sentinel used by the cursor protocol.
"""

from typing import TYPE_CHECKING, Any, Union, overload

from mypy_extensions import mypyc_attr

from litequery.core.value import EngineType, NativeValue, Value
from litequery.exceptions import OutOfRangeError, UnknownColumnError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

__all__ = ("Field", "ResultSet", "Row")


@mypyc_attr(allow_interpreted_subclasses=False)
class Field:
    """A single column value of a row.

    Args:
        name: Column name as reported by the engine.
        value: The tagged value.
    """

    __slots__ = ("_name", "_value")

    _name: str
    _value: Value

    def __init__(self, name: str, value: Value) -> None:
        object.__setattr__(self, "_name", name)
        object.__setattr__(self, "_value", value)

    def __setattr__(self, name: str, value: Any) -> None:
        msg = "Field is immutable"
        raise AttributeError(msg)

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> Value:
        return self._value

    @property
    def engine_type(self) -> EngineType:
        return self.value.type

    def is_null(self) -> bool:
        return self.value.is_null()

    def as_integer(self) -> int:
        return self.value.as_integer()

    def as_real(self) -> float:
        return self.value.as_real()

    def as_text(self) -> str:
        return self.value.as_text()

    def as_blob(self) -> bytes:
        return self.value.as_blob()

    def __int__(self) -> int:
        return self.as_integer()

    def __float__(self) -> float:
        return self.as_real()

    def __str__(self) -> str:
        return self.as_text()

    def __bytes__(self) -> bytes:
        return self.as_blob()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return NotImplemented
        return self.name == other.name and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.name, self.value))

    def __repr__(self) -> str:
        return f"Field({self.name!r}, {self.value!r})"


@mypyc_attr(allow_interpreted_subclasses=False)
class Row:
    """Ordered fields of one result row.

    Positional access is O(1). Access by column name scans the fields linearly,
    so prefer positions in tight loops.
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: "Sequence[Field]" = ()) -> None:
        self._fields: tuple[Field, ...] = tuple(fields)

    @classmethod
    def empty(cls) -> "Row":
        """The end-of-results sentinel."""
        return _SENTINEL

    @classmethod
    def from_engine(cls, column_names: "Sequence[str]", raw_row: "Sequence[Any]") -> "Row":
        return cls([Field(name, Value.from_engine(raw)) for name, raw in zip(column_names, raw_row)])

    def num_fields(self) -> int:
        return len(self._fields)

    def is_empty(self) -> bool:
        return not self._fields

    def keys(self) -> "list[str]":
        return [f.name for f in self._fields]

    def to_dict(self) -> "dict[str, NativeValue]":
        """Column name to native Python value."""
        return {f.name: f.value.native for f in self._fields}

    def field(self, key: Union[int, str]) -> Field:
        if isinstance(key, int):
            if key < 0 or key >= len(self._fields):
                msg = f"Field index {key} out of range for row with {len(self._fields)} fields"
                raise OutOfRangeError(msg)
            return self._fields[key]
        for f in self._fields:
            if f.name == key:
                return f
        msg = f"Unknown column {key!r}"
        raise UnknownColumnError(msg)

    def __getitem__(self, key: Union[int, str]) -> Field:
        return self.field(key)

    def __len__(self) -> int:
        return len(self._fields)

    def __bool__(self) -> bool:
        return bool(self._fields)

    def __iter__(self) -> "Iterator[Field]":
        return iter(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self._fields == other._fields

    def __hash__(self) -> int:
        return hash(self._fields)

    def __repr__(self) -> str:
        return f"Row({list(self._fields)!r})"


_SENTINEL = Row()


@mypyc_attr(allow_interpreted_subclasses=False)
class ResultSet:
    """Fully materialized query result.

    Created in one piece by ``Statement.store()`` and immutable afterwards.

    Args:
        rows: Rows in engine order.
        column_names: Names of the result columns, kept even when no row matched.
    """

    __slots__ = ("_rows", "column_names")

    def __init__(self, rows: "Sequence[Row]" = (), column_names: "Sequence[str]" = ()) -> None:
        self._rows: tuple[Row, ...] = tuple(rows)
        self.column_names: tuple[str, ...] = tuple(column_names)

    def num_rows(self) -> int:
        return len(self._rows)

    def to_dicts(self) -> "list[dict[str, NativeValue]]":
        return [row.to_dict() for row in self._rows]

    @overload
    def __getitem__(self, index: int) -> Row: ...

    @overload
    def __getitem__(self, index: slice) -> "tuple[Row, ...]": ...

    def __getitem__(self, index: Union[int, slice]) -> "Union[Row, tuple[Row, ...]]":
        if isinstance(index, slice):
            return self._rows[index]
        if index < 0 or index >= len(self._rows):
            msg = f"Row index {index} out of range for result with {len(self._rows)} rows"
            raise OutOfRangeError(msg)
        return self._rows[index]

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> "Iterator[Row]":
        return iter(self._rows)

    def __repr__(self) -> str:
        return f"ResultSet(num_rows={len(self._rows)}, columns={list(self.column_names)!r})"
