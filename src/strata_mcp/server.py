"""MCP server over stdio.

One JSON-RPC 2.0 request per line on stdin, one response per line on stdout.
Supported methods: initialize, ping, tools/list, tools/call. Requests without
an ``id`` are notifications and never get a response.

Usage:
    server = McpServer(Session(store), ToolRegistry.agent())
    server.run_stdio()
"""

from __future__ import annotations

import json
import logging
from typing import Any

from . import __version__
from .errors import StrataMcpError, get_error_code
from .rpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSON,
    METHOD_NOT_FOUND,
    RpcError,
    decode_frame,
    jsonrpc_error,
    jsonrpc_result,
    readline,
    write,
)
from .session import Session
from .tools import ToolRegistry

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "strata-mcp"


class McpServer:
    """Routes MCP requests to a tool registry on behalf of one session."""

    def __init__(self, session: Session, registry: ToolRegistry) -> None:
        self._session = session
        self._registry = registry

    @property
    def session(self) -> Session:
        return self._session

    # -------------------------------------------------------------------------
    # Methods
    # -------------------------------------------------------------------------

    def _initialize(self, params: JSON) -> JSON:
        client = params.get("clientInfo") or {}
        logger.info("Client connected: %s", client.get("name", "unknown"))
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "capabilities": {"tools": {}},
        }

    def _tools_list(self) -> JSON:
        return {"tools": [tool.to_dict() for tool in self._registry.tools()]}

    def _tools_call(self, params: JSON) -> JSON:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise RpcError(code=INVALID_PARAMS, message="name is required")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise RpcError(code=INVALID_PARAMS, message="arguments must be an object")

        try:
            result = self._registry.dispatch(self._session, name, arguments)
        except StrataMcpError as e:
            logger.debug("Tool %s failed: %s", name, e.message)
            raise RpcError(code=get_error_code(e), message=e.message, data=e.to_dict()) from e

        text = json.dumps(result, ensure_ascii=False)
        return {"content": [{"type": "text", "text": text}]}

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def handle_request(self, req: Any) -> JSON | None:
        """Handle one decoded request; return the response, or None for notifications."""
        if not isinstance(req, dict):
            return jsonrpc_error(None, RpcError(code=INVALID_REQUEST, message="Request must be an object"))

        # An explicit "id": null is still a request; only an absent id marks a notification.
        is_notification = "id" not in req
        req_id = req.get("id")
        method = req.get("method")
        if not isinstance(method, str):
            if is_notification:
                return None
            return jsonrpc_error(req_id, RpcError(code=INVALID_REQUEST, message="method is required"))

        if is_notification:
            logger.debug("Notification %s", method)
            return None

        params = req.get("params")
        if params is None:
            params = {}

        try:
            if not isinstance(params, dict):
                raise RpcError(code=INVALID_PARAMS, message="params must be an object")

            match method:
                case "initialize":
                    result = self._initialize(params)
                case "ping":
                    result = {}
                case "tools/list":
                    result = self._tools_list()
                case "tools/call":
                    result = self._tools_call(params)
                case _:
                    raise RpcError(code=METHOD_NOT_FOUND, message=f"Method not found: {method}")
            return jsonrpc_result(req_id, result)

        except RpcError as e:
            return jsonrpc_error(req_id, e)
        except Exception as e:
            logger.exception("Unhandled error in %s", method)
            return jsonrpc_error(
                req_id,
                RpcError(code=INTERNAL_ERROR, message="Internal error", data={"error": str(e)}),
            )

    def handle_line(self, line: str) -> JSON | None:
        """Decode and handle one stdin line."""
        line = line.strip()
        if not line:
            return None
        try:
            req = decode_frame(line)
        except RpcError as e:
            logger.warning("Unparseable request: %s", e.data)
            return jsonrpc_error(None, e)
        return self.handle_request(req)

    def run_stdio(self) -> None:
        """Serve requests from stdin until EOF."""
        logger.info("Serving %d tools over stdio", len(self._registry))
        while True:
            line = readline()
            if line is None:
                logger.info("stdin closed; shutting down")
                return
            response = self.handle_line(line)
            if response is not None:
                write(response)
