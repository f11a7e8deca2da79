"""Transaction tools.

Tools: strata_txn_begin, strata_txn_commit, strata_txn_rollback,
strata_txn_info, strata_txn_is_active
"""

from __future__ import annotations

from typing import Any

from ..convert import output_to_json
from ..session import Session
from ..store import commands as cmd
from ._base import ToolDef, ToolModule, schema

_JSON = dict[str, Any]


def _begin(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.TxnBegin(branch=session.branch_id())))


def _commit(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.TxnCommit()))


def _rollback(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.TxnRollback()))


def _info(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.TxnInfo()))


def _is_active(session: Session, args: _JSON) -> Any:
    return output_to_json(session.execute(cmd.TxnIsActive()))


MODULE = ToolModule(
    capability="txn",
    tools=(
        ToolDef(
            "strata_txn_begin",
            "Begin a transaction on the current branch. Writes stay provisional until commit.",
            schema(),
        ),
        ToolDef(
            "strata_txn_commit",
            "Commit the open transaction. Returns { status: 'committed', version }.",
            schema(),
        ),
        ToolDef(
            "strata_txn_rollback",
            "Roll back the open transaction, discarding its writes.",
            schema(),
        ),
        ToolDef("strata_txn_info", "Describe the open transaction, or null.", schema()),
        ToolDef("strata_txn_is_active", "Check whether a transaction is open.", schema()),
    ),
    handlers={
        "strata_txn_begin": _begin,
        "strata_txn_commit": _commit,
        "strata_txn_rollback": _rollback,
        "strata_txn_info": _info,
        "strata_txn_is_active": _is_active,
    },
)
