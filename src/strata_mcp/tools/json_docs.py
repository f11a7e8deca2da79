"""JSON document tools.

Tools: strata_json_set, strata_json_get, strata_json_delete,
strata_json_history, strata_json_list

Paths use the JSONPath subset understood by the store: ``$`` for the root,
``.field`` and ``[index]`` segments below it.
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from . import args as a
from ._base import ToolDef, ToolModule, schema, version_or_json

_JSON = dict[str, Any]


def _path(args: _JSON) -> str:
    return a.get_optional_string(args, "path") or "$"


def _set(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")
    path = _path(args)
    value = a.get_value(args, "value")
    output = session.execute(
        cmd.JsonSet(branch=session.branch_id(), space=session.space_id(), key=key, path=path, value=value)
    )
    return version_or_json(output)


def _get(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")
    path = _path(args)
    as_of = a.get_optional_uint(args, "as_of")
    output = session.execute(
        cmd.JsonGet(branch=session.branch_id(), space=session.space_id(), key=key, path=path, as_of=as_of)
    )
    return output_to_json(output)


def _delete(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")
    path = _path(args)
    output = session.execute(
        cmd.JsonDelete(branch=session.branch_id(), space=session.space_id(), key=key, path=path)
    )
    return output_to_json(output)


def _history(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")
    as_of = a.get_optional_uint(args, "as_of")
    output = session.execute(
        cmd.JsonGetv(branch=session.branch_id(), space=session.space_id(), key=key, as_of=as_of)
    )
    return output_to_json(output)


def _list(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.JsonList(
            branch=session.branch_id(),
            space=session.space_id(),
            prefix=a.get_optional_string(args, "prefix"),
            cursor=a.get_optional_string(args, "cursor"),
            limit=a.get_optional_uint(args, "limit"),
        )
    )
    return output_to_json(output)


MODULE = ToolModule(
    capability="json",
    tools=(
        ToolDef(
            "strata_json_set",
            "Set a JSON document, or a nested field of it when 'path' is given "
            "(e.g. '$.settings.theme'). Returns { version }.",
            schema(required={"key": "string", "value": "any"}, optional={"path": "string"}),
        ),
        ToolDef(
            "strata_json_get",
            "Read a JSON document or the value at 'path'. Returns { value, version, timestamp } "
            "or null.",
            schema(required={"key": "string"}, optional={"path": "string", "as_of": "integer"}),
        ),
        ToolDef(
            "strata_json_delete",
            "Delete a JSON document, or only the field at 'path'. Returns the number of "
            "elements removed (0 or 1).",
            schema(required={"key": "string"}, optional={"path": "string"}),
        ),
        ToolDef(
            "strata_json_history",
            "Get every surviving version of a JSON document, newest first.",
            schema(required={"key": "string"}, optional={"as_of": "integer"}),
        ),
        ToolDef(
            "strata_json_list",
            "List JSON document keys. Pass the returned 'cursor' back to fetch the next page.",
            schema(optional={"prefix": "string", "cursor": "string", "limit": "integer"}),
        ),
    ),
    handlers={
        "strata_json_set": _set,
        "strata_json_get": _get,
        "strata_json_delete": _delete,
        "strata_json_history": _history,
        "strata_json_list": _list,
    },
)
