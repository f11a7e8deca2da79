"""Strata MCP - Model Context Protocol server for the Strata versioned store.

Exposes store operations as MCP tools over JSON-RPC 2.0 on stdin/stdout.

Usage:
    from strata_mcp.session import Session
    from strata_mcp.store.memory import MemoryStore
    from strata_mcp.tools import ToolRegistry

    session = Session(MemoryStore())
    registry = ToolRegistry.agent()
    registry.dispatch(session, "strata_store", {"key": "a", "value": {"x": 1}})
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
