"""Placeholder resolution and parameter staging.

Components:
- ParameterStyle enum: the placeholder spellings SQLite understands
- ParameterInfo: one placeholder occurrence in SQL text
- ParameterTable: slot layout of one SQL text, with the text rewritten to ``?N`` form
- ParameterValidator: extracts placeholders, skipping literals and comments
- Binder: stages values by index or name and resolves them against a table

Slot numbering follows the engine: ``?N`` takes slot N, while ``?`` and the
first occurrence of a name take one more than the largest slot assigned so far.
Repeats of a name reuse its slot.
"""

import re
from collections import OrderedDict
from enum import Enum
from typing import TYPE_CHECKING, Any, Final, Optional, Union

from mypy_extensions import mypyc_attr

from litequery.core.value import NativeValue, Value
from litequery.exceptions import UnknownParameterError

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = (
    "MAX_VARIABLE_NUMBER",
    "Binder",
    "ParameterInfo",
    "ParameterStyle",
    "ParameterTable",
    "ParameterValidator",
    "extract_parameters",
    "get_parameter_table",
)

MAX_VARIABLE_NUMBER: Final = 32766
NAME_PREFIXES: Final = (":", "@", "$")

_PARAMETER_REGEX = re.compile(
    r"""
    (?P<dquote>"(?:[^"]|"")*") |
    (?P<squote>'(?:[^']|'')*') |
    (?P<backtick>`(?:[^`]|``)*`) |
    (?P<bracket>\[[^\]]*\]) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*[\s\S]*?(?:\*/|\Z)) |
    (?P<numbered>\?(?P<number>\d+)) |
    (?P<qmark>\?) |
    (?P<named>[:@$](?P<name>\w+))
    """,
    re.VERBOSE | re.MULTILINE,
)

_SKIP_GROUPS: Final = ("dquote", "squote", "backtick", "bracket", "line_comment", "block_comment")


class ParameterStyle(str, Enum):
    """Placeholder spellings.

    - QMARK: ``?`` anonymous positional
    - NUMERIC: ``?N`` explicit positional
    - NAMED_COLON: ``:name``
    - NAMED_AT: ``@name``
    - NAMED_DOLLAR: ``$name``
    """

    QMARK = "qmark"
    NUMERIC = "numeric"
    NAMED_COLON = "named_colon"
    NAMED_AT = "named_at"
    NAMED_DOLLAR = "named_dollar"


_NAMED_STYLES: Final = {":": ParameterStyle.NAMED_COLON, "@": ParameterStyle.NAMED_AT, "$": ParameterStyle.NAMED_DOLLAR}


@mypyc_attr(allow_interpreted_subclasses=False)
class ParameterInfo:
    """One placeholder occurrence.

    Attributes:
        name: Full spelled name including its prefix, or None for positional forms
        style: Placeholder spelling
        index: Slot the placeholder binds to
        position: Offset of the placeholder in the SQL text
        placeholder_text: The placeholder as written
    """

    __slots__ = ("index", "name", "placeholder_text", "position", "style")

    def __init__(
        self, name: Optional[str], style: ParameterStyle, index: int, position: int, placeholder_text: str
    ) -> None:
        self.name = name
        self.style = style
        self.index = index
        self.position = position
        self.placeholder_text = placeholder_text

    def __repr__(self) -> str:
        return (
            f"ParameterInfo(name={self.name!r}, style={self.style!r}, index={self.index}, "
            f"position={self.position}, placeholder_text={self.placeholder_text!r})"
        )


@mypyc_attr(allow_interpreted_subclasses=False)
class ParameterTable:
    """Slot layout of one SQL text.

    Attributes:
        sql: The original SQL text
        compiled_sql: The SQL with every placeholder rewritten to its ``?N`` form
        parameters: Placeholder occurrences in text order
        slot_count: Largest slot index used
        names: Spelled name to slot index
    """

    __slots__ = ("compiled_sql", "names", "parameters", "slot_count", "sql")

    def __init__(self, sql: str, parameters: "list[ParameterInfo]") -> None:
        self.sql = sql
        self.parameters = parameters
        self.slot_count = max((p.index for p in parameters), default=0)
        self.names: dict[str, int] = {p.name: p.index for p in parameters if p.name is not None}
        self.compiled_sql = self._compile()

    def _compile(self) -> str:
        if not self.parameters:
            return self.sql
        pieces: list[str] = []
        cursor = 0
        for param in self.parameters:
            pieces.append(self.sql[cursor : param.position])
            pieces.append(f"?{param.index}")
            cursor = param.position + len(param.placeholder_text)
        pieces.append(self.sql[cursor:])
        return "".join(pieces)

    def lookup_name(self, name: str) -> Optional[int]:
        """Resolve a spelled or bare parameter name to its slot.

        A bare name (no prefix) matches only when exactly one spelled name carries it.
        """
        if name in self.names:
            return self.names[name]
        if name.startswith(NAME_PREFIXES):
            return None
        matches = {index for spelled, index in self.names.items() if spelled[1:] == name}
        if len(matches) == 1:
            return matches.pop()
        return None

    def __repr__(self) -> str:
        return f"ParameterTable(slot_count={self.slot_count}, names={self.names!r})"


@mypyc_attr(allow_interpreted_subclasses=False)
class ParameterValidator:
    """Extracts placeholders from SQL text.

    Results are cached per SQL string in a small LRU since the same text is
    commonly executed many times.
    """

    __slots__ = ("_cache_max_size", "_parameter_cache")

    def __init__(self, cache_max_size: int = 1000) -> None:
        self._parameter_cache: OrderedDict[str, ParameterTable] = OrderedDict()
        self._cache_max_size = cache_max_size

    def extract_parameters(self, sql: str) -> "list[ParameterInfo]":
        """Extract all placeholders from SQL.

        Args:
            sql: SQL string to analyze

        Raises:
            UnknownParameterError: If a ``?N`` index is outside the engine's range.

        Returns:
            List of ParameterInfo objects in text order
        """
        if not any(c in sql for c in ("?", ":", "@", "$")):
            return []

        parameters: list[ParameterInfo] = []
        names: dict[str, int] = {}
        largest = 0

        for match in _PARAMETER_REGEX.finditer(sql):
            if any(match.group(g) for g in _SKIP_GROUPS):
                continue

            text = match.group(0)
            if match.group("numbered"):
                index = int(match.group("number"))
                if index < 1 or index > MAX_VARIABLE_NUMBER:
                    msg = f"Parameter index {text} out of range 1..{MAX_VARIABLE_NUMBER}"
                    raise UnknownParameterError(msg, sql)
                parameters.append(ParameterInfo(None, ParameterStyle.NUMERIC, index, match.start(), text))
            elif match.group("qmark"):
                index = largest + 1
                parameters.append(ParameterInfo(None, ParameterStyle.QMARK, index, match.start(), text))
            else:
                index = names.get(text, largest + 1)
                names[text] = index
                parameters.append(ParameterInfo(text, _NAMED_STYLES[text[0]], index, match.start(), text))
            largest = max(largest, index)

        if largest > MAX_VARIABLE_NUMBER:
            msg = f"Too many parameters: {largest} exceeds {MAX_VARIABLE_NUMBER}"
            raise UnknownParameterError(msg, sql)
        return parameters

    def get_table(self, sql: str) -> ParameterTable:
        cached = self._parameter_cache.get(sql)
        if cached is not None:
            self._parameter_cache.move_to_end(sql)
            return cached

        table = ParameterTable(sql, self.extract_parameters(sql))
        if len(self._parameter_cache) >= self._cache_max_size:
            self._parameter_cache.popitem(last=False)
        self._parameter_cache[sql] = table
        return table

    def clear_cache(self) -> None:
        self._parameter_cache.clear()

    def __len__(self) -> int:
        return len(self._parameter_cache)


_validator = ParameterValidator()


def get_parameter_table(sql: str) -> ParameterTable:
    """Return the (cached) parameter table for a SQL string."""
    return _validator.get_table(sql)


def extract_parameters(sql: str) -> "list[ParameterInfo]":
    """Tokenize ``sql`` without touching the table cache.

    Meant for text that is still being assembled and will not be executed as is.
    """
    return _validator.extract_parameters(sql)


ParameterKey = Union[int, str]


@mypyc_attr(allow_interpreted_subclasses=False)
class Binder:
    """Stages parameter values against slots.

    Every staged Text or Blob is stored as an owned copy, so the caller's buffer
    may change or go away as soon as :meth:`bind` returns. Resolution against the
    current SQL happens only at execution time; keys that do not exist there raise
    :class:`~litequery.exceptions.UnknownParameterError`.
    """

    __slots__ = ("_staged",)

    def __init__(self) -> None:
        self._staged: OrderedDict[ParameterKey, Value] = OrderedDict()

    def bind(self, key: ParameterKey, value: Any) -> None:
        """Stage a value by slot index or parameter name.

        Args:
            key: 1-based slot index or parameter name (``@x``, ``:x``, ``$x`` or bare ``x``).
            value: Native Python value or :class:`Value`.
        """
        if isinstance(key, bool) or not isinstance(key, (int, str)):
            msg = f"Parameter key must be int or str, got {type(key).__name__}"
            raise TypeError(msg)
        staged = Value.from_python(value)
        # Later binds win when two keys land on the same slot.
        self._staged.pop(key, None)
        self._staged[key] = staged

    def bind_many(self, parameters: "Mapping[ParameterKey, Any]") -> None:
        for key, value in parameters.items():
            self.bind(key, value)

    def clear(self) -> None:
        self._staged.clear()

    @property
    def staged(self) -> "dict[ParameterKey, Value]":
        return dict(self._staged)

    def __len__(self) -> int:
        return len(self._staged)

    def resolve(self, table: ParameterTable) -> "tuple[NativeValue, ...]":
        """Lay staged values out in slot order for the given table.

        Unbound slots are NULL.

        Raises:
            UnknownParameterError: If a staged index or name is not part of the table.

        Returns:
            One native value per slot, slot 1 first.
        """
        slots: list[NativeValue] = [None] * table.slot_count
        for key, value in self._staged.items():
            if isinstance(key, int):
                if key < 1 or key > table.slot_count:
                    msg = f"No parameter with index {key}"
                    raise UnknownParameterError(msg, table.sql)
                index = key
            else:
                found = table.lookup_name(key)
                if found is None:
                    msg = f"No parameter named {key!r}"
                    raise UnknownParameterError(msg, table.sql)
                index = found
            slots[index - 1] = value.native
        return tuple(slots)
