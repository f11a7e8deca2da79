"""JSON-RPC 2.0 framing for the MCP stdio transport.

Frames are single lines of JSON. Requests arrive on stdin, responses leave on
stdout, and nothing else may be written to stdout.
"""

from __future__ import annotations

import json
import sys
from typing import Any

JSON = dict[str, Any]

RequestId = str | int | None

# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Server-defined codes for tool failures
STORE_ERROR = -32000
ACCESS_DENIED_ERROR = -32002
NOT_FOUND_ERROR = -32003


class RpcError(Exception):
    """An error that becomes the ``error`` member of a response."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> JSON:
        error: JSON = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


def jsonrpc_error(request_id: RequestId, error: RpcError) -> JSON:
    return {"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()}


def jsonrpc_result(request_id: RequestId, result: Any) -> JSON:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def decode_frame(line: str) -> Any:
    """Decode one request line.

    Raises:
        RpcError: PARSE_ERROR if the line is not valid JSON.
    """
    try:
        return json.loads(line)
    except json.JSONDecodeError as e:
        raise RpcError(PARSE_ERROR, "Parse error", {"error": str(e)}) from e


def readline() -> str | None:
    """Next stdin line without surrounding whitespace, or None at EOF."""
    line = sys.stdin.readline()
    return line.strip() if line else None


def write(response: JSON) -> None:
    """Write one response frame and flush; a closed pipe ends the process."""
    frame = json.dumps(response, ensure_ascii=False, separators=(",", ":"))
    try:
        sys.stdout.write(frame + "\n")
        sys.stdout.flush()
    except BrokenPipeError:
        raise SystemExit(0) from None
