"""Retention tools.

Tools: strata_retention_apply
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from ._base import ToolDef, ToolModule, schema


def _apply(session: Session, args: dict[str, Any]) -> Any:
    return output_to_json(session.execute(cmd.RetentionApply(branch=session.branch_id())))


MODULE = ToolModule(
    capability="retention",
    tools=(
        ToolDef(
            "strata_retention_apply",
            "Apply retention to the current branch: keep only the latest version of every key "
            "and forget deleted keys. Time-travel reads before now stop working.",
            schema(),
        ),
    ),
    handlers={"strata_retention_apply": _apply},
)
