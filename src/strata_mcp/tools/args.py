"""Typed argument extraction for tool handlers.

Every helper fails fast:
- a required argument that is absent (or JSON null, except for values)
  raises MissingArgError
- an argument of the wrong type raises InvalidArgError naming the field

JSON booleans are never accepted where an integer or number is expected.
"""

from __future__ import annotations

import math
from typing import Any

from ..convert import json_to_value
from ..errors import InvalidArgError, MissingArgError
from ..store.values import Value

_JSON = dict[str, Any]


def _present(args: _JSON, name: str) -> bool:
    return args.get(name) is not None


def _require(args: _JSON, name: str) -> Any:
    value = args.get(name)
    if value is None:
        raise MissingArgError(name)
    return value


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# =============================================================================
# Scalars
# =============================================================================


def _as_string(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidArgError(name, "Expected a string")
    return value


def _as_uint(name: str, value: Any) -> int:
    if not _is_int(value) or value < 0:
        raise InvalidArgError(name, "Expected a non-negative integer")
    return value


def _as_number(name: str, value: Any) -> float:
    if not _is_number(value) or not math.isfinite(value):
        raise InvalidArgError(name, "Expected a finite number")
    return float(value)


def _as_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidArgError(name, "Expected a boolean")
    return value


def get_string(args: _JSON, name: str) -> str:
    return _as_string(name, _require(args, name))


def get_optional_string(args: _JSON, name: str) -> str | None:
    return _as_string(name, args[name]) if _present(args, name) else None


def get_uint(args: _JSON, name: str) -> int:
    return _as_uint(name, _require(args, name))


def get_optional_uint(args: _JSON, name: str) -> int | None:
    return _as_uint(name, args[name]) if _present(args, name) else None


def get_optional_number(args: _JSON, name: str) -> float | None:
    return _as_number(name, args[name]) if _present(args, name) else None


def get_bool(args: _JSON, name: str) -> bool:
    return _as_bool(name, _require(args, name))


def get_optional_bool(args: _JSON, name: str) -> bool | None:
    return _as_bool(name, args[name]) if _present(args, name) else None


# =============================================================================
# Values
# =============================================================================


def get_value(args: _JSON, name: str) -> Value:
    """Decode a required JSON argument into a ``Value``.

    Only an absent key is missing; an explicit JSON null decodes to ``Null``.
    """
    if name not in args:
        raise MissingArgError(name)
    return json_to_value(args[name])


def get_optional_value(args: _JSON, name: str) -> Value | None:
    return json_to_value(args[name]) if _present(args, name) else None


# =============================================================================
# Arrays
# =============================================================================


def _as_list(name: str, value: Any) -> list[Any]:
    if not isinstance(value, list):
        raise InvalidArgError(name, "Expected an array")
    return value


def get_string_list(args: _JSON, name: str) -> list[str]:
    items = _as_list(name, _require(args, name))
    if not all(isinstance(item, str) for item in items):
        raise InvalidArgError(name, "Expected array of strings")
    return list(items)


def get_optional_string_list(args: _JSON, name: str) -> list[str] | None:
    return get_string_list(args, name) if _present(args, name) else None


def get_vector(args: _JSON, name: str) -> list[float]:
    items = _as_list(name, _require(args, name))
    if not all(_is_number(item) and math.isfinite(item) for item in items):
        raise InvalidArgError(name, "Expected array of finite numbers")
    return [float(item) for item in items]


def get_uint_list(args: _JSON, name: str) -> list[int]:
    items = _as_list(name, _require(args, name))
    if not all(_is_int(item) and item >= 0 for item in items):
        raise InvalidArgError(name, "Expected array of integers")
    return list(items)


def get_optional_uint_list(args: _JSON, name: str) -> list[int] | None:
    return get_uint_list(args, name) if _present(args, name) else None


def get_object_list(args: _JSON, name: str) -> list[_JSON]:
    items = _as_list(name, _require(args, name))
    if not all(isinstance(item, dict) for item in items):
        raise InvalidArgError(name, "Expected array of objects")
    return list(items)
