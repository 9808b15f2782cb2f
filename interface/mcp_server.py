"""MCP (Model Context Protocol) stdio server for Webvizio.

Newline-delimited JSON-RPC 2.0 on stdin/stdout. Tool calls are delegated to
``application.tools.ToolDispatcher``; this module only owns the protocol
lifecycle (initialize, tools/list, tools/call, ping).
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, TextIO

from application.tools import ToolDispatcher, get_tool_definitions
from core import ToolValidationError


MCP_VERSION = "2024-11-05"
SERVER_NAME = "webvizio-mcp"
SERVER_VERSION = "1.0.0"
SERVER_INSTRUCTIONS = (
    "Use this server to manage user tasks and projects in Webvizio. It provides comprehensive information "
    "about user tasks to help you complete them efficiently."
)


@dataclass
class JsonRpcRequest:
    """JSON-RPC 2.0 request."""

    jsonrpc: str
    method: str
    id: Optional[int | str] = None
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JsonRpcRequest":
        return cls(
            jsonrpc=str(data.get("jsonrpc", "2.0") or "2.0"),
            method=str(data["method"]),
            id=data.get("id"),
            params=data.get("params", {}) if isinstance(data.get("params", {}), dict) else {},
        )

    @property
    def is_notification(self) -> bool:
        return self.id is None


def json_rpc_response(id: Optional[int | str], result: Any) -> Dict[str, Any]:
    """Create JSON-RPC success response."""
    return {"jsonrpc": "2.0", "id": id, "result": result}


def json_rpc_error(id: Optional[int | str], code: int, message: str, data: Any = None) -> Dict[str, Any]:
    """Create JSON-RPC error response."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": id, "error": error}


class MCPServer:

    def __init__(self, dispatcher: ToolDispatcher, logger: Optional[logging.Logger] = None):
        self.dispatcher = dispatcher
        self.logger = logger or logging.getLogger("webvizio_mcp.server")
        self._initialized = False
        self._shutdown_requested = False

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def request_shutdown(self) -> None:
        self._shutdown_requested = True

    def handle_request(self, request: JsonRpcRequest) -> Optional[Dict[str, Any]]:
        method = request.method
        params = request.params

        if method == "initialize":
            client_version = params.get("protocolVersion")
            return json_rpc_response(
                request.id,
                {
                    "protocolVersion": client_version if isinstance(client_version, str) else MCP_VERSION,
                    "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
                    "capabilities": {"tools": {}},
                    "instructions": SERVER_INSTRUCTIONS,
                },
            )

        if method == "notifications/initialized":
            self._initialized = True
            return None

        if request.is_notification:
            # notifications/cancelled and friends: nothing to answer
            return None

        if not self._initialized:
            return json_rpc_error(request.id, -32002, "Server not initialized")

        if method == "tools/list":
            return json_rpc_response(request.id, {"tools": get_tool_definitions()})

        if method == "tools/call":
            return self._handle_tools_call(request.id, params)

        if method == "ping":
            return json_rpc_response(request.id, {})

        return json_rpc_error(request.id, -32601, f"Method not found: {method}")

    def _handle_tools_call(self, id: Optional[int | str], params: Dict[str, Any]) -> Dict[str, Any]:
        tool_name = params.get("name")
        if not self.dispatcher.has_tool(tool_name):
            return json_rpc_error(id, -32602, f"Unknown tool: {tool_name}")
        try:
            arguments = self.dispatcher.validate_arguments(tool_name, params.get("arguments"))
        except ToolValidationError as exc:
            self.logger.warning("Rejected %s call: %s", tool_name, exc)
            return json_rpc_error(id, -32602, str(exc))
        result = self.dispatcher.call_tool(tool_name, arguments)
        return json_rpc_response(id, result.to_dict())

    def handle_line(self, line: str) -> Optional[Dict[str, Any]]:
        raw = line.strip()
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            return json_rpc_error(None, -32700, f"Parse error: {exc}")
        if not isinstance(data, dict) or "method" not in data:
            return json_rpc_error(data.get("id") if isinstance(data, dict) else None, -32600, "Invalid Request")
        return self.handle_request(JsonRpcRequest.from_dict(data))


def run_stdio(server: MCPServer, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    """Run MCP server over stdio (newline-delimited JSON-RPC)."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    server.logger.info("Webvizio MCP server is ready")
    for line in stdin:
        out = server.handle_line(line)
        if out is not None:
            stdout.write(json.dumps(out, ensure_ascii=False) + "\n")
            stdout.flush()
        if server.shutdown_requested:
            break
    server.logger.info("Webvizio MCP server stopped")
    return 0
