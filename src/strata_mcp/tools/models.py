"""Model catalog tools.

Tools: strata_models_list, strata_models_pull, strata_models_local
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
    return output_to_json(session.execute(cmd.ModelsList()))


def _pull(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.ModelsPull(name=a.get_string(args, "name"))))


def _local(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.ModelsLocal()))


MODULE = ToolModule(
    capability="models",
    tools=(
        ToolDef(
            "strata_models_list",
            "List every model in the catalog, with whether it is available locally.",
            schema(),
        ),
        ToolDef(
            "strata_models_pull",
            "Make a catalog model available locally. Returns { name, path }.",
            schema(required={"name": "string"}),
        ),
        ToolDef("strata_models_local", "List only the models available locally.", schema()),
    ),
    handlers={
        "strata_models_list": _list,
        "strata_models_pull": _pull,
        "strata_models_local": _local,
    },
)
