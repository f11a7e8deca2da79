"""Space tools.

Tools: strata_space_list, strata_space_create, strata_space_delete,
strata_space_exists, strata_space_switch
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from . import args as a
from ._base import ToolDef, ToolModule, schema

_JSON = dict[str, Any]


def _list(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.SpaceList(branch=session.branch_id())))


def _create(session: Session, args: _JSON) -> Any:
    space = a.get_string(args, "space")
    return output_to_json(session.execute(cmd.SpaceCreate(branch=session.branch_id(), space=space)))


def _delete(session: Session, args: _JSON) -> Any:
    space = a.get_string(args, "space")
    force = a.get_optional_bool(args, "force") or False
    output = session.execute(cmd.SpaceDelete(branch=session.branch_id(), space=space, force=force))
    return output_to_json(output)


def _exists(session: Session, args: _JSON) -> Any:
    space = a.get_string(args, "space")
    return output_to_json(session.execute(cmd.SpaceExists(branch=session.branch_id(), space=space)))


def _switch(session: Session, args: _JSON) -> Any:
    space = a.get_string(args, "space")
    session.switch_space(space)
    return {"switched": True, "space": space}


MODULE = ToolModule(
    capability="space",
    tools=(
        ToolDef("strata_space_list", "List the spaces on the current branch.", schema()),
        ToolDef(
            "strata_space_create",
            "Create a space on the current branch. Returns null.",
            schema(required={"space": "string"}),
        ),
        ToolDef(
            "strata_space_delete",
            "Delete a space. A space that still holds data is only deleted with 'force'. "
            "The default space cannot be deleted.",
            schema(required={"space": "string"}, optional={"force": "boolean"}),
        ),
        ToolDef(
            "strata_space_exists",
            "Check whether a space exists on the current branch.",
            schema(required={"space": "string"}),
        ),
        ToolDef(
            "strata_space_switch",
            "Make a space current for this session. Spaces are created on first write.",
            schema(required={"space": "string"}),
        ),
    ),
    handlers={
        "strata_space_list": _list,
        "strata_space_create": _create,
        "strata_space_delete": _delete,
        "strata_space_exists": _exists,
        "strata_space_switch": _switch,
    },
)
