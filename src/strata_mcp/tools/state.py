"""State cell tools.

Tools: strata_state_set, strata_state_get, strata_state_init, strata_state_cas,
strata_state_delete, strata_state_list, strata_state_history

State cells are versioned registers with compare-and-swap: ``cas`` writes only
when the cell's current version equals ``expected_counter`` (or, with no
counter, only when the cell does not exist yet).
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from . import args as a
from ._base import ToolDef, ToolModule, schema, version_or_json

_JSON = dict[str, Any]


def _set(session: Session, args: _JSON) -> Any:
    cell = a.get_string(args, "cell")
    value = a.get_value(args, "value")
    output = session.execute(
        cmd.StateSet(branch=session.branch_id(), space=session.space_id(), cell=cell, value=value)
    )
    return version_or_json(output)


def _get(session: Session, args: _JSON) -> Any:
    cell = a.get_string(args, "cell")
    as_of = a.get_optional_uint(args, "as_of")
    output = session.execute(
        cmd.StateGet(branch=session.branch_id(), space=session.space_id(), cell=cell, as_of=as_of)
    )
    return output_to_json(output)


def _init(session: Session, args: _JSON) -> Any:
    cell = a.get_string(args, "cell")
    value = a.get_value(args, "value")
    output = session.execute(
        cmd.StateInit(branch=session.branch_id(), space=session.space_id(), cell=cell, value=value)
    )
    return version_or_json(output)


def _cas(session: Session, args: _JSON) -> Any:
    cell = a.get_string(args, "cell")
    expected = a.get_optional_uint(args, "expected_counter")
    value = a.get_value(args, "value")
    output = session.execute(
        cmd.StateCas(
            branch=session.branch_id(),
            space=session.space_id(),
            cell=cell,
            expected_counter=expected,
            value=value,
        )
    )
    return output_to_json(output)


def _delete(session: Session, args: _JSON) -> Any:
    cell = a.get_string(args, "cell")
    output = session.execute(cmd.StateDelete(branch=session.branch_id(), space=session.space_id(), cell=cell))
    return output_to_json(output)


def _list(session: Session, args: _JSON) -> Any:
    prefix = a.get_optional_string(args, "prefix")
    output = session.execute(
        cmd.StateList(branch=session.branch_id(), space=session.space_id(), prefix=prefix)
    )
    return output_to_json(output)


def _history(session: Session, args: _JSON) -> Any:
    cell = a.get_string(args, "cell")
    as_of = a.get_optional_uint(args, "as_of")
    output = session.execute(
        cmd.StateGetv(branch=session.branch_id(), space=session.space_id(), cell=cell, as_of=as_of)
    )
    return output_to_json(output)


MODULE = ToolModule(
    capability="state",
    tools=(
        ToolDef(
            "strata_state_set",
            "Set a state cell unconditionally. Returns { version }.",
            schema(required={"cell": "string", "value": "any"}),
        ),
        ToolDef(
            "strata_state_get",
            "Read a state cell. Returns { value, version, timestamp } or null.",
            schema(required={"cell": "string"}, optional={"as_of": "integer"}),
        ),
        ToolDef(
            "strata_state_init",
            "Initialize a state cell if it does not exist. Returns { version } of the cell.",
            schema(required={"cell": "string", "value": "any"}),
        ),
        ToolDef(
            "strata_state_cas",
            "Compare-and-swap a state cell. Writes only if the cell's version equals "
            "'expected_counter' (omit it to require that the cell does not exist). "
            "Returns the new version, or null if the swap did not happen.",
            schema(required={"cell": "string", "value": "any"}, optional={"expected_counter": "integer"}),
        ),
        ToolDef(
            "strata_state_delete",
            "Delete a state cell. Returns true if it existed.",
            schema(required={"cell": "string"}),
        ),
        ToolDef(
            "strata_state_list",
            "List state cells, optionally filtered by prefix.",
            schema(optional={"prefix": "string"}),
        ),
        ToolDef(
            "strata_state_history",
            "Get every surviving version of a state cell, newest first.",
            schema(required={"cell": "string"}, optional={"as_of": "integer"}),
        ),
    ),
    handlers={
        "strata_state_set": _set,
        "strata_state_get": _get,
        "strata_state_init": _init,
        "strata_state_cas": _cas,
        "strata_state_delete": _delete,
        "strata_state_list": _list,
        "strata_state_history": _history,
    },
)
