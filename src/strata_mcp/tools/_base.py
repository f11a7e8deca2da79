"""Building blocks shared by every tool module."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..convert import output_to_json
from ..errors import UnknownToolError
from ..store import outputs as out

if TYPE_CHECKING:
    from ..session import Session

_JSON = dict[str, Any]

Handler = Callable[["Session", _JSON], Any]

_TYPE_SCHEMAS: dict[str, _JSON] = {
    "string": {"type": "string"},
    "number": {"type": "number"},
    "integer": {"type": "integer"},
    "boolean": {"type": "boolean"},
    "any": {},
    "array_string": {"type": "array", "items": {"type": "string"}},
    "array_number": {"type": "array", "items": {"type": "number"}},
    "array_object": {"type": "array", "items": {"type": "object"}},
}


@dataclass(frozen=True)
class ToolDef:
    name: str
    description: str
    input_schema: _JSON

    def to_dict(self) -> _JSON:
        """Render for ``tools/list``."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def schema(
    *,
    required: Mapping[str, str] | None = None,
    optional: Mapping[str, str] | None = None,
) -> _JSON:
    """Build an object schema from ``{name: type_tag}`` maps.

    Type tags: string, number, integer, boolean, any, array_string,
    array_number, array_object.

    Example:
        schema(required={"key": "string", "value": "any"}, optional={"path": "string"})
    """
    required = required or {}
    optional = optional or {}
    properties: _JSON = {}
    for name, tag in (*required.items(), *optional.items()):
        if tag not in _TYPE_SCHEMAS:
            raise ValueError(f"Unknown schema type tag: {tag}")
        properties[name] = dict(_TYPE_SCHEMAS[tag])
    return {"type": "object", "properties": properties, "required": list(required)}


@dataclass(frozen=True)
class ToolModule:
    """Tool definitions for one capability, with an exact-match handler table."""

    capability: str
    tools: tuple[ToolDef, ...]
    handlers: Mapping[str, Handler]

    def dispatch(self, session: Session, name: str, args: _JSON) -> Any:
        handler = self.handlers.get(name)
        if handler is None:
            raise UnknownToolError(name)
        return handler(session, args)


def version_or_json(output: out.Output) -> Any:
    """Wrap a bare ``Version`` as ``{version: v}``; encode anything else generically."""
    if isinstance(output, out.Version):
        return {"version": output.version}
    return output_to_json(output)
