"""Strata MCP error hierarchy.

Every failure a tool call can produce is one of these:
- MissingArgError: a required argument is absent
- InvalidArgError: an argument is present but unusable
- UnknownToolError: no tool is registered under the name
- BranchNotFoundError: a branch switch targeted a branch that does not exist
- AccessDeniedError: a write was attempted on a read-only database
- StoreError: passed through verbatim from the backing store
- InternalError: an invariant was violated (e.g. unexpected output shape)

Each error carries a ``kind`` tag and renders itself with ``to_dict()`` so the
protocol layer can put it in the ``data`` field of a JSON-RPC error.

Usage:
    from strata_mcp.errors import MissingArgError

    if "key" not in args:
        raise MissingArgError("key")
"""

from __future__ import annotations

from typing import Any

from .rpc.types import (
    ACCESS_DENIED_ERROR,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    NOT_FOUND_ERROR,
    STORE_ERROR,
)


class StrataMcpError(Exception):
    """Base exception for all adapter errors.

    Attributes:
        message: Human-readable error description
        context: Extra structured fields for RPC error data
    """

    kind = "internal"

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to structured dictionary for RPC responses."""
        return {
            "kind": self.kind,
            "message": self.message,
            **{k: v for k, v in self.context.items() if v is not None},
        }


# =============================================================================
# Argument Errors
# =============================================================================


class MissingArgError(StrataMcpError):
    """A required tool argument was not supplied."""

    kind = "missing_arg"

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing required argument: {name}", context={"name": name})
        self.name = name


class InvalidArgError(StrataMcpError):
    """A tool argument was supplied but has the wrong type or value."""

    kind = "invalid_arg"

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(
            f"Invalid argument '{name}': {reason}",
            context={"name": name, "reason": reason},
        )
        self.name = name
        self.reason = reason


# =============================================================================
# Dispatch / Session Errors
# =============================================================================


class UnknownToolError(StrataMcpError):
    kind = "unknown_tool"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}", context={"name": name})
        self.name = name


class BranchNotFoundError(StrataMcpError):
    kind = "branch_not_found"

    def __init__(self, branch: str) -> None:
        super().__init__(f"Branch not found: {branch}", context={"branch": branch})
        self.branch = branch


class InternalError(StrataMcpError):
    """Invariant violation inside the adapter."""

    kind = "internal"


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(StrataMcpError):
    """Error reported by the backing store.

    ``code`` is the store's machine-readable error code (e.g.
    ``BRANCH_EXISTS``); the message is passed through unchanged.
    """

    kind = "store"

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message, context={"code": code})
        self.code = code


class AccessDeniedError(StoreError):
    """A write command was rejected because the database is read-only."""

    kind = "access_denied"

    def __init__(self, operation: str) -> None:
        super().__init__(
            "ACCESS_DENIED",
            f"access denied: {operation} rejected - database is read-only",
        )
        self.operation = operation
        self.context["operation"] = operation


# =============================================================================
# Error Code Mapping
# =============================================================================

_ERROR_CODES: dict[str, int] = {
    MissingArgError.kind: INVALID_PARAMS,
    InvalidArgError.kind: INVALID_PARAMS,
    UnknownToolError.kind: METHOD_NOT_FOUND,
    BranchNotFoundError.kind: NOT_FOUND_ERROR,
    AccessDeniedError.kind: ACCESS_DENIED_ERROR,
    StoreError.kind: STORE_ERROR,
    InternalError.kind: INTERNAL_ERROR,
}


def get_error_code(error: StrataMcpError) -> int:
    """Map an adapter error to its JSON-RPC error code."""
    return _ERROR_CODES.get(error.kind, INTERNAL_ERROR)
