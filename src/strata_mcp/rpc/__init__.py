"""JSON-RPC framing used by the stdio server."""

from __future__ import annotations

from strata_mcp.rpc.types import (
    ACCESS_DENIED_ERROR,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSON,
    METHOD_NOT_FOUND,
    NOT_FOUND_ERROR,
    PARSE_ERROR,
    STORE_ERROR,
    RequestId,
    RpcError,
    decode_frame,
    jsonrpc_error,
    jsonrpc_result,
    readline,
    write,
)

__all__ = [
    "JSON",
    "RequestId",
    "RpcError",
    # Error codes
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "STORE_ERROR",
    "ACCESS_DENIED_ERROR",
    "NOT_FOUND_ERROR",
    # Framing
    "decode_frame",
    "jsonrpc_error",
    "jsonrpc_result",
    "readline",
    "write",
]
