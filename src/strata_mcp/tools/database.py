"""Database tools.

Tools: strata_db_ping, strata_db_info, strata_db_flush, strata_db_compact,
strata_db_time_range
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from ._base import ToolDef, ToolModule, schema

_JSON = dict[str, Any]


def _ping(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.Ping()))


def _info(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.Info()))


def _flush(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.Flush()))


def _compact(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.Compact()))


def _time_range(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.TimeRange(branch=session.branch_id())))


MODULE = ToolModule(
    capability="database",
    tools=(
        ToolDef(
            "strata_db_ping",
            "Check the database is alive. Returns { pong: true, version }.",
            schema(),
        ),
        ToolDef(
            "strata_db_info",
            "Get database information: version, uptime_secs, branch_count and total_keys.",
            schema(),
        ),
        ToolDef("strata_db_flush", "Flush pending writes to durable storage. Returns null.", schema()),
        ToolDef("strata_db_compact", "Compact storage. Returns null.", schema()),
        ToolDef(
            "strata_db_time_range",
            "Get the oldest and latest write timestamps on the current branch. "
            "Returns { oldest_ts, latest_ts }; both are null for an empty branch.",
            schema(),
        ),
    ),
    handlers={
        "strata_db_ping": _ping,
        "strata_db_info": _info,
        "strata_db_flush": _flush,
        "strata_db_compact": _compact,
        "strata_db_time_range": _time_range,
    },
)
