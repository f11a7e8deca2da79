"""Tool registry: tool definitions and name-based dispatch.

Two tool sets exist:
- ``ToolRegistry.agent()`` - eight intent-level tools, the set the CLI serves
- ``ToolRegistry.developer()`` - the granular per-capability tools

Routing is settled when a registry is built. Each developer tool's capability
is derived from its name by ``CAPABILITY_PREFIXES``, checked against the module
registering it, and recorded in a name -> module table. Dispatch is then a
dict lookup followed by the module's own exact-match handler table.

Usage:
    from strata_mcp.tools import ToolRegistry

    registry = ToolRegistry.agent()
    result = registry.dispatch(session, "strata_store", {"key": "a", "value": 1})
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from strata_mcp.errors import UnknownToolError
from strata_mcp.tools import (
    agent,
    branch,
    bundle,
    config,
    database,
    durability,
    embed,
    event,
    inference,
    json_docs,
    kv,
    models,
    retention,
    search,
    space,
    state,
    txn,
    vector,
)
from strata_mcp.tools._base import ToolDef, ToolModule, schema

if TYPE_CHECKING:
    from strata_mcp.session import Session

logger = logging.getLogger(__name__)

# First match wins; exact names are listed before any prefix they share.
CAPABILITY_PREFIXES: tuple[tuple[str, str], ...] = (
    ("strata_db_", "database"),
    ("strata_kv_", "kv"),
    ("strata_state_", "state"),
    ("strata_event_", "event"),
    ("strata_json_", "json"),
    ("strata_space_", "space"),
    ("strata_branch_", "branch"),
    ("strata_vector_", "vector"),
    ("strata_txn_", "txn"),
    ("strata_search", "search"),
    ("strata_configure_", "config"),
    ("strata_bundle_", "bundle"),
    ("strata_retention_", "retention"),
    ("strata_embed", "embed"),
    ("strata_generate", "inference"),
    ("strata_tokenize", "inference"),
    ("strata_detokenize", "inference"),
    ("strata_models_", "models"),
    ("strata_durability_", "durability"),
)

DEVELOPER_MODULES: tuple[ToolModule, ...] = (
    database.MODULE,
    kv.MODULE,
    state.MODULE,
    event.MODULE,
    json_docs.MODULE,
    space.MODULE,
    branch.MODULE,
    vector.MODULE,
    txn.MODULE,
    search.MODULE,
    config.MODULE,
    bundle.MODULE,
    retention.MODULE,
    embed.MODULE,
    inference.MODULE,
    models.MODULE,
    durability.MODULE,
)


def capability_of(name: str) -> str | None:
    """Capability a developer tool name belongs to, or None if no rule matches."""
    for prefix, capability in CAPABILITY_PREFIXES:
        if name.startswith(prefix):
            return capability
    return None


class ToolRegistry:
    """Tool definitions plus a name -> module routing table."""

    def __init__(self, modules: Iterable[ToolModule], *, check_capabilities: bool = True) -> None:
        self._tools: list[ToolDef] = []
        self._routes: dict[str, ToolModule] = {}

        for module in modules:
            for tool in module.tools:
                if tool.name in self._routes:
                    raise ValueError(f"Tool registered twice: {tool.name}")
                if tool.name not in module.handlers:
                    raise ValueError(f"Tool {tool.name} has no handler in module {module.capability}")
                if check_capabilities:
                    capability = capability_of(tool.name)
                    if capability != module.capability:
                        raise ValueError(
                            f"Tool {tool.name} routes to capability {capability!r}, "
                            f"but is registered by {module.capability!r}"
                        )
                self._tools.append(tool)
                self._routes[tool.name] = module

        logger.debug("Registered %d tools", len(self._tools))

    @classmethod
    def agent(cls) -> ToolRegistry:
        """The eight agent-facing tools."""
        return cls([agent.MODULE], check_capabilities=False)

    @classmethod
    def developer(cls) -> ToolRegistry:
        """Every granular tool, one module per capability."""
        return cls(DEVELOPER_MODULES)

    def tools(self) -> list[ToolDef]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._routes

    def __len__(self) -> int:
        return len(self._tools)

    def dispatch(self, session: Session, name: str, args: dict[str, Any]) -> Any:
        """Run tool ``name`` with ``args`` and return its JSON result.

        Raises:
            UnknownToolError: If no tool is registered under ``name``.
            StrataMcpError: Whatever the handler or the store raises.
        """
        module = self._routes.get(name)
        if module is None:
            raise UnknownToolError(name)
        return module.dispatch(session, name, args)


__all__ = [
    "CAPABILITY_PREFIXES",
    "DEVELOPER_MODULES",
    "ToolDef",
    "ToolModule",
    "ToolRegistry",
    "capability_of",
    "schema",
]
