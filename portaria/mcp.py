"""MCP JSON-RPC 2.0 message handling for the consent tools."""

from __future__ import annotations

import json
import logging
from typing import Any

from portaria.config import APP_VERSION
from portaria.errors import PortariaError
from portaria.tools import ToolContext, call_tool, list_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "whatsapp-consent-server"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26")

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def result(request_id: Any, payload: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": payload}


def error(request_id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        body["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": body}


def negotiate_version(requested: str | None) -> str:
    if requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return DEFAULT_PROTOCOL_VERSION


def initialize(params: dict[str, Any]) -> dict[str, Any]:
    version = negotiate_version(params.get("protocolVersion"))
    tools: dict[str, Any] = {}
    if version == "2025-03-26":
        tools["listChanged"] = True
    return {
        "protocolVersion": version,
        "capabilities": {"tools": tools},
        "serverInfo": {"name": SERVER_NAME, "version": APP_VERSION},
    }


def tools_call(params: dict[str, Any], context: ToolContext) -> dict[str, Any]:
    name = params.get("name")
    if not isinstance(name, str) or not name:
        raise _InvalidParams("tools/call requires a tool name")
    payload = call_tool(name, params.get("arguments"), context)
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}


class _InvalidParams(Exception):
    pass


def handle_message(message: Any, context: ToolContext) -> dict[str, Any] | None:
    """Answer one JSON-RPC message. Notifications get ``None``."""
    if not isinstance(message, dict) or message.get("jsonrpc") != "2.0":
        return error(None, INVALID_REQUEST, "Invalid Request")

    method = message.get("method")
    request_id = message.get("id")
    if not isinstance(method, str):
        return error(request_id, INVALID_REQUEST, "Invalid Request")

    if "id" not in message:
        logger.info("[MCP] notification %s", method)
        return None

    params = message.get("params") or {}
    if not isinstance(params, dict):
        return error(request_id, INVALID_PARAMS, "params must be an object")

    try:
        if method == "initialize":
            return result(request_id, initialize(params))
        if method == "ping":
            return result(request_id, {})
        if method == "tools/list":
            return result(request_id, {"tools": list_tools()})
        if method == "tools/call":
            return result(request_id, tools_call(params, context))
    except _InvalidParams as exc:
        return error(request_id, INVALID_PARAMS, str(exc))
    except PortariaError as exc:
        logger.info("[MCP] %s failed: %s", method, exc.message)
        data: dict[str, Any] = {"type": exc.kind}
        if method == "tools/call":
            data["tool"] = params.get("name")
        errors = getattr(exc, "errors", None)
        if errors:
            data["errors"] = errors
        return error(request_id, exc.code, exc.message, data)
    except Exception:
        logger.exception("[MCP] %s crashed", method)
        return error(request_id, INTERNAL_ERROR, "Internal error", {"type": "internal"})

    return error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")
