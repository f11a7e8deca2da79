"""Branch tools.

Tools: strata_branch_create, strata_branch_get, strata_branch_list,
strata_branch_exists, strata_branch_delete, strata_branch_switch,
strata_branch_fork, strata_branch_diff, strata_branch_merge
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..errors import InvalidArgError
from ..session import Session
from ..store import commands as cmd
from ..store import outputs as out
from ..store.records import BranchStatus, MergeStrategy
from . import args as a
from ._base import ToolDef, ToolModule, schema

_JSON = dict[str, Any]


def _parse_status(raw: str | None) -> BranchStatus | None:
    if raw is None:
        return None
    try:
        return BranchStatus(raw.lower())
    except ValueError:
        raise InvalidArgError("state", "Expected 'active' or 'archived'") from None


def _parse_strategy(raw: str | None) -> MergeStrategy:
    if raw is None:
        return MergeStrategy.LAST_WRITER_WINS
    try:
        return MergeStrategy(raw.lower())
    except ValueError:
        raise InvalidArgError("strategy", "Expected 'last_writer_wins' or 'strict'") from None


def _create(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.BranchCreate(
            branch_id=a.get_optional_string(args, "branch_id"),
            metadata=a.get_optional_value(args, "metadata"),
        )
    )
    return output_to_json(output)


def _get(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.BranchGet(branch=a.get_string(args, "branch"))))


def _list(session: Session, args: _JSON) -> Any:
    output = session.execute(
        cmd.BranchList(
            state=_parse_status(a.get_optional_string(args, "state")),
            limit=a.get_optional_uint(args, "limit"),
            offset=a.get_optional_uint(args, "offset"),
        )
    )
    return output_to_json(output)


def _exists(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.BranchExists(branch=a.get_string(args, "branch"))))


def _delete(session: Session, args: _JSON) -> Any:
    return output_to_json(session.delete_branch(a.get_string(args, "branch")))


def _switch(session: Session, args: _JSON) -> Any:
    branch = a.get_string(args, "branch")
    session.switch_branch(branch)
    return {"switched": True, "branch": branch}


def _fork(session: Session, args: _JSON) -> Any:
    destination = a.get_string(args, "destination")
    return output_to_json(out.BranchForked(session.fork_branch(destination)))


def _diff(session: Session, args: _JSON) -> Any:
    branch_a = a.get_optional_string(args, "branch_a") or session.branch
    branch_b = a.get_string(args, "branch_b")
    return output_to_json(out.BranchDiff(session.diff_branches(branch_a, branch_b)))


def _merge(session: Session, args: _JSON) -> Any:
    source = a.get_string(args, "source")
    strategy = _parse_strategy(a.get_optional_string(args, "strategy"))
    return output_to_json(out.BranchMerged(session.merge_branch(source, strategy)))


MODULE = ToolModule(
    capability="branch",
    tools=(
        ToolDef(
            "strata_branch_create",
            "Create an empty branch. Omit 'branch_id' to get a generated one. "
            "Returns the branch info with its version.",
            schema(optional={"branch_id": "string", "metadata": "any"}),
        ),
        ToolDef(
            "strata_branch_get",
            "Get a branch's info, or null if it does not exist.",
            schema(required={"branch": "string"}),
        ),
        ToolDef(
            "strata_branch_list",
            "List branches, optionally filtered by state ('active' or 'archived') and paged "
            "with 'limit' and 'offset'.",
            schema(optional={"state": "string", "limit": "integer", "offset": "integer"}),
        ),
        ToolDef(
            "strata_branch_exists",
            "Check whether a branch exists.",
            schema(required={"branch": "string"}),
        ),
        ToolDef(
            "strata_branch_delete",
            "Delete a branch and all of its data. The default branch cannot be deleted.",
            schema(required={"branch": "string"}),
        ),
        ToolDef(
            "strata_branch_switch",
            "Make a branch current for this session.",
            schema(required={"branch": "string"}),
        ),
        ToolDef(
            "strata_branch_fork",
            "Copy the current branch, with all of its data, into a new branch.",
            schema(required={"destination": "string"}),
        ),
        ToolDef(
            "strata_branch_diff",
            "Compare two branches. 'branch_a' defaults to the current branch. "
            "Returns added, removed and modified key counts.",
            schema(required={"branch_b": "string"}, optional={"branch_a": "string"}),
        ),
        ToolDef(
            "strata_branch_merge",
            "Merge 'source' into the current branch. 'strategy' is 'last_writer_wins' "
            "(default; conflicts are reported) or 'strict' (any conflict aborts).",
            schema(required={"source": "string"}, optional={"strategy": "string"}),
        ),
    ),
    handlers={
        "strata_branch_create": _create,
        "strata_branch_get": _get,
        "strata_branch_list": _list,
        "strata_branch_exists": _exists,
        "strata_branch_delete": _delete,
        "strata_branch_switch": _switch,
        "strata_branch_fork": _fork,
        "strata_branch_diff": _diff,
        "strata_branch_merge": _merge,
    },
)
