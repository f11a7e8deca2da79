"""Durability tools.

Tools: strata_durability_counters
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from ._base import ToolDef, ToolModule, schema


def _counters(session: Session, args: dict[str, Any]) -> Any:
    return output_to_json(session.execute(cmd.DurabilityCounters()))


MODULE = ToolModule(
    capability="durability",
    tools=(
        ToolDef(
            "strata_durability_counters",
            "Report write-ahead log counters: wal_appends, sync_calls, bytes_written and "
            "sync_nanos.",
            schema(),
        ),
    ),
    handlers={"strata_durability_counters": _counters},
)
