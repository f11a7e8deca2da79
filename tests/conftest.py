from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from strata_mcp.session import Session
from strata_mcp.store import AccessMode, MemoryStore
from strata_mcp.tools import ToolRegistry

CallTool = Callable[..., Any]


@pytest.fixture
def store() -> MemoryStore:
    """Fresh read-write in-memory database."""
    return MemoryStore()


@pytest.fixture
def session(store: MemoryStore) -> Session:
    return Session(store)


@pytest.fixture
def read_only_session(store: MemoryStore) -> Session:
    """Session over a read-only store that shares ``store``'s data."""
    ro_store = MemoryStore(access_mode=AccessMode.READ_ONLY)
    ro_store._branches = store._branches
    return Session(ro_store)


@pytest.fixture
def embed_session() -> Session:
    """Session over a store with auto-embed turned on."""
    return Session(MemoryStore(auto_embed=True))


@pytest.fixture
def agent_registry() -> ToolRegistry:
    return ToolRegistry.agent()


@pytest.fixture
def developer_registry() -> ToolRegistry:
    return ToolRegistry.developer()


@pytest.fixture
def call(session: Session, agent_registry: ToolRegistry) -> CallTool:
    """Call an agent tool on the shared session: ``call("strata_store", key=..., value=...)``."""

    def _call(name: str, /, **args: Any) -> Any:
        return agent_registry.dispatch(session, name, args)

    return _call


@pytest.fixture
def dev(session: Session, developer_registry: ToolRegistry) -> CallTool:
    """Call a developer tool on the shared session."""

    def _call(name: str, /, **args: Any) -> Any:
        return developer_registry.dispatch(session, name, args)

    return _call


def rpc(method: str, params: dict[str, Any] | None = None, req_id: int | None = 1) -> str:
    """Build one JSON-RPC request line."""
    req: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        req["params"] = params
    if req_id is not None:
        req["id"] = req_id
    return json.dumps(req)
