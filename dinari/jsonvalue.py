"""Minimal JSON values and objects as used by the RPC layer."""

from __future__ import annotations

import math
from enum import Enum
from typing import Iterator, Union


class JSONType(Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _escape(text: str) -> str:
    return "".join(_ESCAPES.get(char, char) for char in text)


def _format_double(value: float) -> str:
    # Six significant digits, matching default stream formatting.
    return "%g" % value


class JSONValue:
    """A scalar JSON value: null, boolean, number or string.

    Numbers keep both an integer and a floating-point reading; a float is
    truncated toward zero for its integer reading.
    """

    __slots__ = ("_type", "_bool", "_int", "_float", "_str")

    def __init__(self, value: None | bool | int | float | str = None) -> None:
        self._bool = False
        self._int = 0
        self._float = 0.0
        self._str = ""
        if value is None:
            self._type = JSONType.NULL
        elif isinstance(value, bool):
            self._type = JSONType.BOOL
            self._bool = value
        elif isinstance(value, int):
            self._type = JSONType.NUMBER
            self._int = value
            self._float = float(value)
        elif isinstance(value, float):
            self._type = JSONType.NUMBER
            self._float = value
            self._int = int(value) if math.isfinite(value) else 0
        elif isinstance(value, str):
            self._type = JSONType.STRING
            self._str = value
        else:
            raise TypeError(f"unsupported JSON value type: {type(value).__name__}")

    @property
    def type(self) -> JSONType:
        return self._type

    def is_null(self) -> bool:
        return self._type is JSONType.NULL

    def is_bool(self) -> bool:
        return self._type is JSONType.BOOL

    def is_number(self) -> bool:
        return self._type is JSONType.NUMBER

    def is_string(self) -> bool:
        return self._type is JSONType.STRING

    def as_bool(self) -> bool:
        return self._bool

    def as_int(self) -> int:
        return self._int

    def as_float(self) -> float:
        return self._float

    def as_str(self) -> str:
        return self._str

    def serialize(self) -> str:
        """Return the JSON text of this value."""
        if self._type is JSONType.BOOL:
            return "true" if self._bool else "false"
        if self._type is JSONType.NUMBER:
            if math.isfinite(self._float) and self._float == float(self._int):
                return str(self._int)
            return _format_double(self._float)
        if self._type is JSONType.STRING:
            return f'"{_escape(self._str)}"'
        return "null"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JSONValue):
            return NotImplemented
        return (self._type, self._bool, self._int, self._float, self._str) == (
            other._type,
            other._bool,
            other._int,
            other._float,
            other._str,
        )

    def __hash__(self) -> int:
        return hash((self._type, self._bool, self._int, self._float, self._str))

    def __repr__(self) -> str:
        return f"JSONValue({self.serialize()})"


Member = Union[JSONValue, "JSONObject"]


class JSONObject:
    """A JSON object whose members are serialized in sorted key order."""

    def __init__(self) -> None:
        self._data: dict[str, Member] = {}

    def set(self, key: str, value: Member | None | bool | int | float | str) -> None:
        """Store ``value`` under ``key``; plain Python scalars are wrapped."""
        if not isinstance(value, (JSONValue, JSONObject)):
            value = JSONValue(value)
        self._data[key] = value

    def set_null(self, key: str) -> None:
        self._data[key] = JSONValue()

    def set_bool(self, key: str, value: bool) -> None:
        self._data[key] = JSONValue(bool(value))

    def set_int(self, key: str, value: int) -> None:
        self._data[key] = JSONValue(int(value))

    def set_double(self, key: str, value: float) -> None:
        self._data[key] = JSONValue(float(value))

    def set_string(self, key: str, value: str) -> None:
        self._data[key] = JSONValue(str(value))

    def set_object(self, key: str, value: JSONObject) -> None:
        if not isinstance(value, JSONObject):
            raise TypeError("set_object expects a JSONObject")
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str) -> Member:
        """Return the member under ``key``, or a null value if absent."""
        return self._data.get(key, JSONValue())

    def items(self) -> list[tuple[str, Member]]:
        """Return members as (key, value) pairs in sorted key order."""
        return sorted(self._data.items())

    def serialize(self) -> str:
        body = ",".join(f'"{key}":{value.serialize()}' for key, value in self.items())
        return "{" + body + "}"

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._data))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JSONObject):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"JSONObject({self.serialize()})"