"""Key-value tools.

Tools: strata_kv_put, strata_kv_get, strata_kv_delete, strata_kv_list,
strata_kv_history, strata_kv_batch_put
"""

from __future__ import annotations

from typing import Any

from ..convert import json_to_value, output_to_json
from ..errors import InvalidArgError
from ..session import Session
from ..store import commands as cmd
from . import args as a
from ._base import ToolDef, ToolModule, schema, version_or_json

_JSON = dict[str, Any]


def _put(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")
    value = a.get_value(args, "value")
    output = session.execute(
        cmd.KvPut(branch=session.branch_id(), space=session.space_id(), key=key, value=value)
    )
    return version_or_json(output)


def _get(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")
    as_of = a.get_optional_uint(args, "as_of")
    output = session.execute(
        cmd.KvGet(branch=session.branch_id(), space=session.space_id(), key=key, as_of=as_of)
    )
    return output_to_json(output)


def _delete(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")
    output = session.execute(cmd.KvDelete(branch=session.branch_id(), space=session.space_id(), key=key))
    return output_to_json(output)


def _list(session: Session, args: _JSON) -> Any:
    prefix = a.get_optional_string(args, "prefix")
    output = session.execute(cmd.KvList(branch=session.branch_id(), space=session.space_id(), prefix=prefix))
    return output_to_json(output)


def _history(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")
    as_of = a.get_optional_uint(args, "as_of")
    output = session.execute(
        cmd.KvGetv(branch=session.branch_id(), space=session.space_id(), key=key, as_of=as_of)
    )
    return output_to_json(output)


def _batch_put(session: Session, args: _JSON) -> Any:
    entries = []
    for item in a.get_object_list(args, "entries"):
        key = item.get("key")
        if not isinstance(key, str) or "value" not in item:
            raise InvalidArgError("entries", "Each entry needs a string 'key' and a 'value'")
        entries.append((key, json_to_value(item["value"])))

    output = session.execute(
        cmd.KvBatchPut(branch=session.branch_id(), space=session.space_id(), entries=entries)
    )
    return output_to_json(output)


MODULE = ToolModule(
    capability="kv",
    tools=(
        ToolDef(
            "strata_kv_put",
            "Store a value under a key. Returns { version }.",
            schema(required={"key": "string", "value": "any"}),
        ),
        ToolDef(
            "strata_kv_get",
            "Get the value of a key, optionally as of a microsecond timestamp. "
            "Returns { value, version, timestamp } or null.",
            schema(required={"key": "string"}, optional={"as_of": "integer"}),
        ),
        ToolDef(
            "strata_kv_delete",
            "Delete a key. Returns true if the key existed.",
            schema(required={"key": "string"}),
        ),
        ToolDef(
            "strata_kv_list",
            "List keys, optionally filtered by prefix.",
            schema(optional={"prefix": "string"}),
        ),
        ToolDef(
            "strata_kv_history",
            "Get every surviving version of a key, newest first. Returns null for a key that "
            "was never written.",
            schema(required={"key": "string"}, optional={"as_of": "integer"}),
        ),
        ToolDef(
            "strata_kv_batch_put",
            "Store several values at once. 'entries' is an array of { key, value }. "
            "Returns one { version, error } per entry.",
            schema(required={"entries": "array_object"}),
        ),
    ),
    handlers={
        "strata_kv_put": _put,
        "strata_kv_get": _get,
        "strata_kv_delete": _delete,
        "strata_kv_list": _list,
        "strata_kv_history": _history,
        "strata_kv_batch_put": _batch_put,
    },
)
