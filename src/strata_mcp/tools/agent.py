"""Agent-facing tools.

Eight intent-level tools that collapse the granular store operations into a
small surface for AI agents:

- strata_store   - store a JSON document (optionally at a JSONPath)
- strata_recall  - read a document, optionally at a path or point in time
- strata_search  - natural-language search across documents and events
- strata_forget  - delete a document
- strata_log     - append an immutable event
- strata_branch  - create, switch, list, fork, merge, diff and delete branches
- strata_history - version history of a key, or the branch's time range
- strata_status  - database orientation

All data tools are backed by the JSON document store.
"""

from __future__ import annotations

import logging
from typing import Any

from ..convert import output_to_json
from ..errors import InvalidArgError, StrataMcpError
from ..session import Session
from ..store import commands as cmd
from ..store import outputs as out
from ..store.records import MergeStrategy, SearchQuery
from . import args as a
from ._base import ToolDef, ToolModule, schema

logger = logging.getLogger(__name__)

_JSON = dict[str, Any]

BRANCH_ACTIONS = ("create", "switch", "list", "fork", "merge", "diff", "delete")


# =============================================================================
# Data tools
# =============================================================================


def _store(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")
    value = a.get_value(args, "value")
    path = a.get_optional_string(args, "path") or "$"

    output = session.execute(
        cmd.JsonSet(branch=session.branch_id(), space=session.space_id(), key=key, path=path, value=value)
    )
    match output:
        case out.Version(version):
            return {"key": key, "version": version, "stored": True}
        case _:
            return output_to_json(output)


def _recall(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")
    path = a.get_optional_string(args, "path") or "$"
    as_of = a.get_optional_uint(args, "as_of")

    output = session.execute(
        cmd.JsonGet(branch=session.branch_id(), space=session.space_id(), key=key, path=path, as_of=as_of)
    )
    return output_to_json(output)


def _search(session: Session, args: _JSON) -> Any:
    query = a.get_string(args, "query")
    k = a.get_optional_uint(args, "k")

    # All primitives; the engine picks the mode (hybrid when auto-embed is on).
    output = session.execute(
        cmd.Search(
            branch=session.branch_id(),
            space=session.space_id(),
            search=SearchQuery(query=query, k=k),
        )
    )
    match output:
        case out.SearchResults(results):
            return [{"key": r.entity, "score": r.score, "snippet": r.snippet} for r in results]
        case _:
            return output_to_json(output)


def _forget(session: Session, args: _JSON) -> Any:
    key = a.get_string(args, "key")

    output = session.execute(
        cmd.JsonDelete(branch=session.branch_id(), space=session.space_id(), key=key, path="$")
    )
    match output:
        case out.Uint(n):
            return {"deleted": n > 0}
        case _:
            return output_to_json(output)


def _log(session: Session, args: _JSON) -> Any:
    event = a.get_string(args, "event")
    data = a.get_value(args, "data")

    output = session.execute(
        cmd.EventAppend(branch=session.branch_id(), space=session.space_id(), event_type=event, payload=data)
    )
    match output:
        case out.Version(sequence):
            return {"sequence": sequence, "logged": True}
        case _:
            return output_to_json(output)


# =============================================================================
# Power tools
# =============================================================================


def _branch(session: Session, args: _JSON) -> Any:
    action = a.get_string(args, "action")

    match action:
        case "create":
            name = a.get_optional_string(args, "name")
            return output_to_json(session.execute(cmd.BranchCreate(branch_id=name)))

        case "switch":
            name = a.get_string(args, "name")
            session.switch_branch(name)
            return {"switched": True, "branch": name}

        case "list":
            return output_to_json(session.execute(cmd.BranchList()))

        case "fork":
            name = a.get_string(args, "name")
            fork = session.fork_branch(name)
            return {
                "forked": True,
                "source": fork.source,
                "destination": fork.destination,
                "keys_copied": fork.keys_copied,
            }

        case "merge":
            source = a.get_string(args, "source")
            merge = session.merge_branch(source, MergeStrategy.LAST_WRITER_WINS)
            return {
                "merged": True,
                "keys_applied": merge.keys_applied,
                "spaces_merged": merge.spaces_merged,
                "conflicts": [{"key": c.key, "space": c.space} for c in merge.conflicts],
            }

        case "diff":
            compare = a.get_string(args, "compare")
            diff = session.diff_branches(session.branch, compare)
            return {
                "current_branch": diff.branch_a,
                "compare_branch": diff.branch_b,
                "added": diff.summary.total_added,
                "removed": diff.summary.total_removed,
                "modified": diff.summary.total_modified,
            }

        case "delete":
            name = a.get_string(args, "name")
            return output_to_json(session.delete_branch(name))

        case _:
            raise InvalidArgError(
                "action",
                f"Unknown action '{action}'. Use: create, switch, list, fork, merge, diff, or delete.",
            )


def _history(session: Session, args: _JSON) -> Any:
    key = a.get_optional_string(args, "key")
    as_of = a.get_optional_uint(args, "as_of")

    if key is not None:
        output = session.execute(
            cmd.JsonGetv(branch=session.branch_id(), space=session.space_id(), key=key, as_of=as_of)
        )
        return output_to_json(output)

    output = session.execute(cmd.TimeRange(branch=session.branch_id()))
    match output:
        case out.TimeRange(oldest_ts, latest_ts):
            return {"branch": session.branch, "oldest": oldest_ts, "latest": latest_ts}
        case _:
            return output_to_json(output)


def _status(session: Session, args: _JSON) -> Any:
    result: _JSON
    match session.execute(cmd.Info()):
        case out.DatabaseInfo(info):
            result = {
                "version": info.version,
                "branch": session.branch,
                "namespace": session.space,
                "branches": info.branch_count,
                "keys": info.total_keys,
                "uptime_secs": info.uptime_secs,
            }
        case _:
            result = {"branch": session.branch, "namespace": session.space}

    # Embed status is optional: a failure only drops the field.
    try:
        embed = session.execute(cmd.EmbedStatus())
    except StrataMcpError as e:
        logger.debug("Embed status unavailable: %s", e)
    else:
        if isinstance(embed, out.EmbedStatus):
            result["auto_embed"] = embed.info.auto_embed
    return result


# =============================================================================
# Definitions
# =============================================================================

TOOLS = (
    ToolDef(
        name="strata_store",
        description=(
            "Store a JSON document by key. Use this whenever you need to persist structured "
            "data: configuration, user profiles, conversation state, analysis results, or "
            "anything you will need later. The value can be any JSON type. Use the optional "
            "'path' parameter with JSONPath syntax (e.g. '$.settings.theme') to update a nested "
            "field without overwriting the whole document; omit it to store the entire value. "
            "Every write is versioned, so nothing is ever lost. When auto-embed is enabled, text "
            "content is indexed for semantic search via strata_search. "
            "Returns { key, version, stored: true }."
        ),
        input_schema=schema(required={"key": "string", "value": "any"}, optional={"path": "string"}),
    ),
    ToolDef(
        name="strata_recall",
        description=(
            "Retrieve a document by key. Returns the stored value with version metadata, or null "
            "if the key doesn't exist. Use 'path' with JSONPath syntax to read a nested field. "
            "Pass 'as_of' (microsecond timestamp) to read what the key contained at any past "
            "point in time. Returns { value, version, timestamp } or null."
        ),
        input_schema=schema(required={"key": "string"}, optional={"path": "string", "as_of": "integer"}),
    ),
    ToolDef(
        name="strata_search",
        description=(
            "Find relevant data across everything stored using natural language. Use this when "
            "you don't know the exact key. Searches all documents and events. Uses keyword "
            "matching (BM25) by default and adds semantic similarity when auto-embed is enabled. "
            "Returns an array of { key, score, snippet } ranked by relevance. Use 'k' to control "
            "how many results to return (default 10)."
        ),
        input_schema=schema(required={"query": "string"}, optional={"k": "integer"}),
    ),
    ToolDef(
        name="strata_forget",
        description=(
            "Delete a document by key. Returns { deleted: true } if the key existed, "
            "{ deleted: false } otherwise. The deletion is versioned: strata_history still shows "
            "the document's history and strata_recall with 'as_of' still returns past values."
        ),
        input_schema=schema(required={"key": "string"}),
    ),
    ToolDef(
        name="strata_log",
        description=(
            "Append an immutable event to the log. Use this for actions, decisions, observations, "
            "errors, or any sequential record that must never change. 'event' is the type tag "
            "(e.g. \"user_action\", \"decision\") and 'data' is any JSON payload. "
            "Returns { sequence, logged: true }."
        ),
        input_schema=schema(required={"event": "string", "data": "any"}),
    ),
    ToolDef(
        name="strata_branch",
        description=(
            "Manage branches for isolated, parallel workstreams. Branches are copy-on-write "
            "snapshots of all data. Actions: 'create' (empty branch), 'switch' (change active "
            "branch), 'list' (all branches), 'fork' (copy current branch with all data), 'merge' "
            "(apply source branch into current), 'diff' (compare current vs another), 'delete' "
            "(remove branch). Recommended workflow: fork, experiment, then merge if good or "
            "delete if bad. Params: 'name' for create/switch/fork/delete, 'source' for merge, "
            "'compare' for diff."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": list(BRANCH_ACTIONS),
                    "description": "The branch operation to perform",
                },
                "name": {
                    "type": "string",
                    "description": "Branch name, used by create, switch, fork, delete",
                },
                "source": {
                    "type": "string",
                    "description": "Source branch to merge from, used by merge",
                },
                "compare": {
                    "type": "string",
                    "description": "Branch to compare against current, used by diff",
                },
            },
            "required": ["action"],
        },
    ),
    ToolDef(
        name="strata_history",
        description=(
            "View the version history of a key, or discover the time range available for "
            "time-travel. With 'key': every historical version with values, version numbers and "
            "timestamps. Without 'key': the oldest and latest timestamps on the current branch, "
            "i.e. the range usable for 'as_of' in strata_recall."
        ),
        input_schema=schema(optional={"key": "string", "as_of": "integer"}),
    ),
    ToolDef(
        name="strata_status",
        description=(
            "Get database status: current branch, namespace, version, branch count, key count, "
            "uptime, and whether auto-embed is active. Use this to orient yourself at the start "
            "of a session."
        ),
        input_schema=schema(),
    ),
)

MODULE = ToolModule(
    capability="agent",
    tools=TOOLS,
    handlers={
        "strata_store": _store,
        "strata_recall": _recall,
        "strata_search": _search,
        "strata_forget": _forget,
        "strata_log": _log,
        "strata_branch": _branch,
        "strata_history": _history,
        "strata_status": _status,
    },
)
