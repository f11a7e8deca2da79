"""MCP session: branch/space context over a store executor.

A ``Session`` owns one store handle and one command executor. It tracks:
- the current branch and space, stamped into every scoped command
- whether a transaction is open, driven purely by executed outputs
- read-only enforcement, applied before a write ever reaches the store

A failed command inside a transaction leaves the transaction open; the caller
decides whether to commit or roll back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import AccessDeniedError, BranchNotFoundError, InternalError, StoreError
from .store import commands as cmd
from .store import outputs as out
from .store.base import Executor, Store
from .store.records import AccessMode, BranchDiffResult, ForkInfo, MergeInfo, MergeStrategy

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "default"
DEFAULT_SPACE = "default"


@dataclass
class SessionContext:
    """Mutable per-connection context."""

    branch: str = DEFAULT_BRANCH
    space: str = DEFAULT_SPACE
    in_transaction: bool = False


class Session:
    """Executes commands against a store on behalf of one client connection."""

    def __init__(
        self,
        store: Store,
        *,
        branch: str = DEFAULT_BRANCH,
        space: str = DEFAULT_SPACE,
    ) -> None:
        self._store = store
        self._executor: Executor = store.session()
        self._context = SessionContext(branch=branch, space=space)

    # -------------------------------------------------------------------------
    # Context
    # -------------------------------------------------------------------------

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def branch(self) -> str:
        return self._context.branch

    @property
    def space(self) -> str:
        return self._context.space

    @property
    def in_transaction(self) -> bool:
        return self._context.in_transaction

    @property
    def store(self) -> Store:
        return self._store

    def is_read_only(self) -> bool:
        return self._store.access_mode() is AccessMode.READ_ONLY

    def branch_id(self) -> str:
        """Branch to stamp into scoped commands."""
        return self._context.branch

    def space_id(self) -> str:
        """Space to stamp into scoped commands."""
        return self._context.space

    def switch_branch(self, name: str) -> None:
        """Make ``name`` the current branch.

        The branch is checked first; the context changes only if it exists.

        Raises:
            BranchNotFoundError: If the branch does not exist.
            InternalError: If the store answers the existence check oddly.
        """
        match self._executor.execute(cmd.BranchExists(branch=name)):
            case out.Bool(True):
                pass
            case out.Bool(False):
                raise BranchNotFoundError(name)
            case _:
                raise InternalError("Unexpected output for BranchExists")
        logger.debug("Switched branch %s -> %s", self._context.branch, name)
        self._context.branch = name

    def switch_space(self, name: str) -> None:
        """Make ``name`` the current space. Spaces are created on first write."""
        logger.debug("Switched space %s -> %s", self._context.space, name)
        self._context.space = name

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _check_write_access(self, operation: str) -> None:
        if self.is_read_only():
            logger.info("Rejected %s on read-only database", operation)
            raise AccessDeniedError(operation)

    def execute(self, command: cmd.Command) -> out.Output:
        """Run ``command``, rejecting writes on a read-only database.

        Raises:
            AccessDeniedError: If the command writes and the database is read-only.
            StoreError: If the store rejects the command.
        """
        if command.is_write():
            self._check_write_access(command.command_name())

        output = self._executor.execute(command)

        match output:
            case out.TxnBegun():
                self._context.in_transaction = True
            case out.TxnCommitted() | out.TxnAborted():
                self._context.in_transaction = False
        return output

    # -------------------------------------------------------------------------
    # Branch power operations
    # -------------------------------------------------------------------------

    def fork_branch(self, destination: str) -> ForkInfo:
        """Fork the current branch into ``destination``."""
        self._check_write_access("BranchFork")
        return self._store.branches().fork(self._context.branch, destination)

    def delete_branch(self, name: str) -> out.Output:
        """Delete branch ``name``, which must not be the current branch.

        Raises:
            AccessDeniedError: If the database is read-only.
            StoreError: CONSTRAINT_VIOLATION for the current branch, or
                whatever the store reports for the delete itself.
        """
        self._check_write_access("BranchDelete")
        if name == self._context.branch:
            raise StoreError(
                "CONSTRAINT_VIOLATION",
                f"Cannot delete the current branch '{name}'; switch to another branch first",
            )
        return self.execute(cmd.BranchDelete(branch=name))

    def diff_branches(self, branch_a: str, branch_b: str) -> BranchDiffResult:
        return self._store.branches().diff(branch_a, branch_b)

    def merge_branch(self, source: str, strategy: MergeStrategy) -> MergeInfo:
        """Merge ``source`` into the current branch."""
        self._check_write_access("BranchMerge")
        return self._store.branches().merge(source, self._context.branch, strategy)
