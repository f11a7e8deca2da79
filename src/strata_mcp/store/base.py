"""Store contract consumed by the MCP session.

The session only ever talks to a store through these protocols, so any
engine that satisfies them (the in-memory engine in ``store.memory``, a
test double, a remote client) can sit behind the adapter.
"""

from __future__ import annotations

from typing import Protocol

from .commands import Command
from .outputs import Output
from .records import AccessMode, BranchDiffResult, ForkInfo, MergeInfo, MergeStrategy


class Executor(Protocol):
    """Command-execution handle. Owns transaction state for one session."""

    def execute(self, command: Command) -> Output:
        """Run one command.

        Raises:
            StoreError: If the store rejects the command.
        """
        ...


class BranchOps(Protocol):
    """Branch power operations that sit outside the command algebra."""

    def fork(self, source: str, destination: str) -> ForkInfo: ...

    def diff(self, branch_a: str, branch_b: str) -> BranchDiffResult: ...

    def merge(self, source: str, target: str, strategy: MergeStrategy) -> MergeInfo: ...


class Store(Protocol):
    """Database handle."""

    def access_mode(self) -> AccessMode: ...

    def branches(self) -> BranchOps: ...

    def session(self) -> Executor: ...
