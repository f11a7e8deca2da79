"""Cross-primitive search tool (developer surface).

Tools: strata_search

Unlike the agent tool of the same name, this one exposes the full query:
primitive filter, time range, and an explicit ranking mode.
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..errors import InvalidArgError
from ..session import Session
from ..store import commands as cmd
from ..store.records import SearchQuery
from . import args as a
from ._base import ToolDef, ToolModule, schema

_JSON = dict[str, Any]


def _time_range(args: _JSON) -> tuple[int, int] | None:
    start = a.get_optional_uint(args, "time_start")
    end = a.get_optional_uint(args, "time_end")
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise InvalidArgError("time_start", "'time_start' and 'time_end' must be given together")
    if start > end:
        raise InvalidArgError("time_start", "'time_start' must not be after 'time_end'")
    return (start, end)


def _search(session: Session, args: _JSON) -> Any:
    query = SearchQuery(
        query=a.get_string(args, "query"),
        k=a.get_optional_uint(args, "k"),
        primitives=a.get_optional_string_list(args, "primitives"),
        time_range=_time_range(args),
        mode=a.get_optional_string(args, "mode"),
        expand=a.get_optional_bool(args, "expand"),
        rerank=a.get_optional_bool(args, "rerank"),
    )
    output = session.execute(cmd.Search(branch=session.branch_id(), space=session.space_id(), search=query))
    return output_to_json(output)


MODULE = ToolModule(
    capability="search",
    tools=(
        ToolDef(
            "strata_search",
            "Search across kv, state, json and event data. 'primitives' restricts the search "
            "(e.g. [\"json\", \"event\"]); 'time_start'/'time_end' bound it in microseconds; "
            "'mode' is 'keyword', 'semantic' or 'hybrid' (semantic modes need auto-embed). "
            "Returns ranked { entity, primitive, score, rank, snippet } hits.",
            schema(
                required={"query": "string"},
                optional={
                    "k": "integer",
                    "primitives": "array_string",
                    "time_start": "integer",
                    "time_end": "integer",
                    "mode": "string",
                    "expand": "boolean",
                    "rerank": "boolean",
                },
            ),
        ),
    ),
    handlers={"strata_search": _search},
)
