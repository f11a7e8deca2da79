"""Branch bundle tools.

Tools: strata_bundle_export, strata_bundle_import, strata_bundle_validate

A bundle is a gzip-compressed snapshot of one branch with its full revision
history, portable between databases.
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from . import args as a
from ._base import ToolDef, ToolModule, schema

_JSON = dict[str, Any]


def _export(session: Session, args: _JSON) -> Any:
    branch = a.get_optional_string(args, "branch") or session.branch
    path = a.get_string(args, "path")
    return output_to_json(session.execute(cmd.BranchExport(branch_id=branch, path=path)))


def _import(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.BranchImport(path=a.get_string(args, "path"))))


def _validate(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.BranchBundleValidate(path=a.get_string(args, "path"))))


MODULE = ToolModule(
    capability="bundle",
    tools=(
        ToolDef(
            "strata_bundle_export",
            "Export a branch (default: the current one) to a bundle file.",
            schema(required={"path": "string"}, optional={"branch": "string"}),
        ),
        ToolDef(
            "strata_bundle_import",
            "Import a bundle file as a new branch. Fails if the branch already exists.",
            schema(required={"path": "string"}),
        ),
        ToolDef(
            "strata_bundle_validate",
            "Check a bundle file without importing it. Returns its branch, format version, "
            "entry count and whether the checksum matches.",
            schema(required={"path": "string"}),
        ),
    ),
    handlers={
        "strata_bundle_export": _export,
        "strata_bundle_import": _import,
        "strata_bundle_validate": _validate,
    },
)
