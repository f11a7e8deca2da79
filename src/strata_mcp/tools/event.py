"""Event log tools.

Tools: strata_event_append, strata_event_get, strata_event_list, strata_event_len

Events are append-only. Sequence numbers start at 0 within each space.
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from . import args as a
from ._base import ToolDef, ToolModule, schema, version_or_json

_JSON = dict[str, Any]


def _append(session: Session, args: _JSON) -> Any:
    event_type = a.get_string(args, "event_type")
    payload = a.get_value(args, "payload")
    output = session.execute(
        cmd.EventAppend(
            branch=session.branch_id(),
            space=session.space_id(),
            event_type=event_type,
            payload=payload,
        )
    )
    return version_or_json(output)


def _get(session: Session, args: _JSON) -> Any:
    sequence = a.get_uint(args, "sequence")
    as_of = a.get_optional_uint(args, "as_of")
    output = session.execute(
        cmd.EventGet(branch=session.branch_id(), space=session.space_id(), sequence=sequence, as_of=as_of)
    )
    return output_to_json(output)


def _list(session: Session, args: _JSON) -> Any:
    event_type = a.get_string(args, "event_type")
    limit = a.get_optional_uint(args, "limit")
    after = a.get_optional_uint(args, "after_sequence")
    output = session.execute(
        cmd.EventGetByType(
            branch=session.branch_id(),
            space=session.space_id(),
            event_type=event_type,
            limit=limit,
            after_sequence=after,
        )
    )
    return output_to_json(output)


def _len(session: Session, args: _JSON) -> Any:
    output = session.execute(cmd.EventLen(branch=session.branch_id(), space=session.space_id()))
    return output_to_json(output)


MODULE = ToolModule(
    capability="event",
    tools=(
        ToolDef(
            "strata_event_append",
            "Append an event with a type tag and any JSON payload. Returns { version } holding "
            "the event's sequence number.",
            schema(required={"event_type": "string", "payload": "any"}),
        ),
        ToolDef(
            "strata_event_get",
            "Get one event by sequence number. Returns { value, version, timestamp } or null.",
            schema(required={"sequence": "integer"}, optional={"as_of": "integer"}),
        ),
        ToolDef(
            "strata_event_list",
            "List events of one type in sequence order. Use 'after_sequence' and 'limit' to page.",
            schema(
                required={"event_type": "string"},
                optional={"limit": "integer", "after_sequence": "integer"},
            ),
        ),
        ToolDef("strata_event_len", "Count the events in the current space.", schema()),
    ),
    handlers={
        "strata_event_append": _append,
        "strata_event_get": _get,
        "strata_event_list": _list,
        "strata_event_len": _len,
    },
)
