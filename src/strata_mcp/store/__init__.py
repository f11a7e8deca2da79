"""Store layer: the typed value model, the command/output algebra, the store
contract, and the in-memory engine that implements it.

Usage:
    from strata_mcp.store import MemoryStore, commands, outputs

    executor = MemoryStore().session()
    result = executor.execute(commands.Ping())
    assert isinstance(result, outputs.Pong)
"""

from __future__ import annotations

from strata_mcp.store import commands, outputs, values
from strata_mcp.store.base import BranchOps, Executor, Store
from strata_mcp.store.memory import DEFAULT_BRANCH, DEFAULT_SPACE, MemoryStore
from strata_mcp.store.records import AccessMode, MergeStrategy, ModelConfig, VectorMetric

__all__ = [
    # Algebra
    "commands",
    "outputs",
    "values",
    # Contract
    "BranchOps",
    "Executor",
    "Store",
    # Engine
    "MemoryStore",
    "DEFAULT_BRANCH",
    "DEFAULT_SPACE",
    # Records
    "AccessMode",
    "MergeStrategy",
    "ModelConfig",
    "VectorMetric",
]
