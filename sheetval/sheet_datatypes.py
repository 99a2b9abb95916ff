"""
Defines the value model produced by the sheet parser.

Every parsed cell becomes exactly one of five classes: String, Number,
Array, Struct or FunctionRef. The set is closed; consumers are expected to
`match` on it. All values are read-only once the parser has built them.
"""

from abc import ABC
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
import collections.abc


class SheetValue(ABC):
    """Abstract base class for all parsed cell values."""
    __slots__ = ()


class String(SheetValue):
    """Plain text, already unquoted and unescaped."""
    __slots__ = ("_text",)
    __match_args__ = ("text",)

    def __init__(self, text: str):
        self._text = str(text)

    @property
    def text(self) -> str:
        return self._text

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"String({self._text!r})"

    def __eq__(self, other):
        if not isinstance(other, String):
            return NotImplemented
        return self._text == other._text

    def __hash__(self):
        return hash(("string", self._text))


class Number(SheetValue):
    """A numeric cell. Integers and floats share one float representation."""
    __slots__ = ("_value",)
    __match_args__ = ("value",)

    def __init__(self, value: Union[int, float]):
        self._value = float(value)

    @property
    def value(self) -> float:
        return self._value

    def is_integral(self) -> bool:
        return self._value.is_integer()

    def __float__(self) -> float:
        return self._value

    def __int__(self) -> int:
        return int(self._value)

    def __repr__(self) -> str:
        return f"Number({self._value!r})"

    def __eq__(self, other):
        if not isinstance(other, Number):
            return NotImplemented
        return self._value == other._value

    def __hash__(self):
        return hash(("number", self._value))


class Array(SheetValue, collections.abc.Sequence):
    """An ordered, heterogeneous sequence of values (`[...]`)."""
    __slots__ = ("_items",)
    __match_args__ = ("items",)

    def __init__(self, items: Iterable[SheetValue] = ()):
        self._items: Tuple[SheetValue, ...] = tuple(items)

    @property
    def items(self) -> Tuple[SheetValue, ...]:
        return self._items

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Array({list(self._items)!r})"

    def __eq__(self, other):
        if not isinstance(other, Array):
            return NotImplemented
        return self._items == other._items

    def __hash__(self):
        return hash(("array", self._items))


class Struct(SheetValue, collections.abc.Mapping):
    """A keyed record of values (`{key: value, ...}`).

    Keys are unique. Insertion order is kept for stable output but is not
    part of equality.
    """
    __slots__ = ("_entries",)
    __match_args__ = ("entries",)

    def __init__(self, entries: Union[Mapping[str, SheetValue], Iterable[Tuple[str, SheetValue]]] = ()):
        data: Dict[str, SheetValue] = dict(entries)
        self._entries = MappingProxyType(data)

    @property
    def entries(self) -> Mapping[str, SheetValue]:
        return self._entries

    def __getitem__(self, key: str) -> SheetValue:
        return self._entries[key]

    def __iter__(self):
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Struct({dict(self._entries)!r})"

    def __eq__(self, other):
        if not isinstance(other, Struct):
            return NotImplemented
        return dict(self._entries) == dict(other._entries)

    def __hash__(self):
        return hash(("struct", frozenset(self._entries.items())))


class FunctionRef(SheetValue):
    """An unevaluated call expression such as `on_collect("banana", 12)`.

    The parser never calls anything. `original_text` always holds the
    literal as it was first parsed, even for refs derived via `with_params`.
    """
    __slots__ = ("_name", "_params", "_original_text")
    __match_args__ = ("name", "params", "original_text")

    def __init__(self, name: str, params: Iterable[SheetValue] = (), original_text: Optional[str] = None):
        if not name:
            raise ValueError("FunctionRef must have a name.")
        self._name = name
        self._params: Tuple[SheetValue, ...] = tuple(params)
        self._original_text = original_text if original_text is not None else f"{name}()"

    @property
    def name(self) -> str:
        return self._name

    @property
    def params(self) -> Tuple[SheetValue, ...]:
        return self._params

    @property
    def original_text(self) -> str:
        return self._original_text

    def with_params(self, params: Iterable[Any]) -> 'FunctionRef':
        """Returns a new ref bound to `params`; this ref is left untouched."""
        ref = FunctionRef(self._name, (), self._original_text)
        ref._params = tuple(params)
        return ref

    def __repr__(self) -> str:
        return f"FunctionRef(name={self._name!r}, params={list(self._params)!r}, original_text={self._original_text!r})"

    def __eq__(self, other):
        if not isinstance(other, FunctionRef):
            return NotImplemented
        return (
            self._name == other._name and
            self._params == other._params and
            self._original_text == other._original_text
        )

    def __hash__(self):
        return hash(("function", self._name, self._params, self._original_text))


class Record(collections.abc.Mapping):
    """One parsed data row: column name -> value.

    Header names are not de-duplicated. `fields` keeps every (name, value)
    pair in column order; lookup by name returns the last occurrence.
    """

    def __init__(self, fields: Iterable[Tuple[str, SheetValue]] = (), row: Optional[int] = None):
        self._fields: Tuple[Tuple[str, SheetValue], ...] = tuple(fields)
        self._index: Dict[str, SheetValue] = {}
        for name, value in self._fields:
            self._index[name] = value
        self.row = row

    @property
    def fields(self) -> Tuple[Tuple[str, SheetValue], ...]:
        return self._fields

    def __getitem__(self, key: str) -> SheetValue:
        return self._index[key]

    def __iter__(self):
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k!r}: {v!r}" for k, v in self._fields)
        return f"Record(row={self.row!r}, {{{inner}}})"

    def function_refs(self) -> List[Tuple[str, FunctionRef]]:
        """Returns every (column, FunctionRef) at the top level of this row."""
        return [(k, v) for k, v in self._index.items() if isinstance(v, FunctionRef)]
