"""Typed value model for the Strata store.

A ``Value`` is one of seven variants. Each variant is a frozen dataclass so
values compare structurally and can be taken apart with ``match``:

    match value:
        case Int(n):
            ...
        case Object(entries):
            ...

``Int`` holds a signed 64-bit integer and ``Float`` a 64-bit float; the codec
in ``strata_mcp.convert`` enforces those ranges when decoding JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

I64_MIN = -(2**63)
I64_MAX = 2**63 - 1


@dataclass(frozen=True)
class Null:
    pass


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class Int:
    value: int


@dataclass(frozen=True)
class Float:
    value: float


@dataclass(frozen=True)
class String:
    value: str


@dataclass(frozen=True)
class Array:
    items: list[Value] = field(default_factory=list)


@dataclass(frozen=True)
class Object:
    entries: dict[str, Value] = field(default_factory=dict)


Value = Union[Null, Bool, Int, Float, String, Array, Object]


@dataclass(frozen=True)
class VersionedValue:
    """A value together with its per-key version and write time (microseconds)."""

    value: Value
    version: int
    timestamp: int


def value_text(value: Value) -> str:
    """Flatten a value into the plain text used for keyword indexing."""
    match value:
        case Null():
            return ""
        case Bool(b):
            return "true" if b else "false"
        case Int(n):
            return str(n)
        case Float(f):
            return repr(f)
        case String(s):
            return s
        case Array(items):
            return " ".join(t for t in (value_text(v) for v in items) if t)
        case Object(entries):
            parts = []
            for key, item in entries.items():
                parts.append(key)
                text = value_text(item)
                if text:
                    parts.append(text)
            return " ".join(parts)
    raise TypeError(f"not a Value: {value!r}")
