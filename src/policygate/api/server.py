"""
policygate API Server

FastAPI front for the gateway. Upstream MCP clients talk JSON-RPC 2.0 to
POST /mcp (stateless: every request stands alone, no session ids);
the REST routes are for humans and health checks.

Usage:
    uvicorn policygate.api.server:app
    POLICYGATE_CONFIG=/etc/policygate.json policygate serve
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, ValidationError

from policygate import __version__
from policygate.exceptions import DownstreamError, PolicyGateError, ToolNotAllowedError
from policygate.gateway.config import load_config
from policygate.gateway.service import PolicyGateway
from policygate.logging import configure_logging, get_logger
from policygate.policy.models import InvocationRequest
from policygate.policy.store import summarize_validation_errors

logger = get_logger("policygate.api.server")

PROTOCOL_VERSION = "2025-03-26"

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
DOWNSTREAM_ERROR = -32000


# ─── Request/Response Models ────────────────────────────────

class ToolCallBody(BaseModel):
    arguments: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str = "ok"
    started: bool
    tools: int
    policies: int
    version: str = __version__


class _RpcError(Exception):
    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


# ─── App Factory ────────────────────────────────────────────

def create_app(gateway: PolicyGateway | None = None, config_path: str | None = None) -> FastAPI:
    """Build the API app.

    With no gateway, the config is loaded when the app starts (lifespan),
    so importing this module never touches the filesystem.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        gw: PolicyGateway | None = app.state.gateway
        if gw is None:
            config = load_config(config_path)
            configure_logging(level=config.log_level, json_output=config.log_json)
            gw = PolicyGateway.from_config(config)
            app.state.gateway = gw
        await gw.start()
        try:
            yield
        finally:
            await gw.stop()

    app = FastAPI(title="policygate", version=__version__, lifespan=lifespan)
    app.state.gateway = gateway

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        gw = _gateway(request)
        return HealthResponse(
            started=gw.started,
            tools=len(gw.list_tools()) if gw.started else 0,
            policies=len(gw.engine.store),
        )

    @app.get("/tools")
    async def list_tools(request: Request) -> dict[str, Any]:
        gw = _gateway(request)
        try:
            tools = gw.list_tools()
        except DownstreamError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
        return {"tools": [t.to_wire() for t in tools]}

    @app.post("/tools/{tool_name}/call")
    async def call_tool(tool_name: str, body: ToolCallBody, request: Request) -> dict[str, Any]:
        gw = _gateway(request)
        try:
            return await gw.call_tool(tool_name, body.arguments)
        except ToolNotAllowedError as e:
            raise HTTPException(status_code=403, detail=str(e)) from e
        except DownstreamError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e

    @app.post("/mcp")
    async def mcp_endpoint(request: Request) -> Response:
        gw = _gateway(request)
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(_error_message(None, PARSE_ERROR, "Parse error"))

        if isinstance(payload, list):
            if not payload:
                return JSONResponse(_error_message(None, INVALID_REQUEST, "Invalid Request"))
            replies = [reply for message in payload if (reply := await _dispatch(gw, message)) is not None]
            return JSONResponse(replies) if replies else Response(status_code=202)

        reply = await _dispatch(gw, payload)
        return JSONResponse(reply) if reply is not None else Response(status_code=202)

    return app


def _gateway(request: Request) -> PolicyGateway:
    gw = request.app.state.gateway
    if gw is None:
        raise HTTPException(status_code=503, detail="gateway is not configured")
    return gw


# ─── JSON-RPC dispatch ──────────────────────────────────────

async def _dispatch(gw: PolicyGateway, message: Any) -> dict[str, Any] | None:
    """Handle one JSON-RPC message. Returns None for notifications."""
    if not isinstance(message, dict):
        return _error_message(None, INVALID_REQUEST, "Invalid Request")

    msg_id = message.get("id")
    method = message.get("method")
    if message.get("jsonrpc") != "2.0" or not isinstance(method, str):
        return _error_message(msg_id, INVALID_REQUEST, "Invalid Request")

    is_notification = "id" not in message
    params = message.get("params") or {}

    try:
        if not isinstance(params, dict):
            raise _RpcError(INVALID_PARAMS, "params must be an object")
        result = await _handle(gw, method, params)
    except _RpcError as e:
        if is_notification:
            return None
        return _error_message(msg_id, e.code, e.message, e.data)
    except Exception:
        logger.exception("Error handling MCP request", extra={"method": method})
        if is_notification:
            return None
        return _error_message(msg_id, INTERNAL_ERROR, "Internal server error")

    if is_notification:
        return None
    return {"jsonrpc": "2.0", "id": msg_id, "result": result}


async def _handle(gw: PolicyGateway, method: str, params: dict[str, Any]) -> dict[str, Any]:
    if method == "initialize":
        return {
            "protocolVersion": params.get("protocolVersion") or PROTOCOL_VERSION,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": "policygate", "version": __version__},
        }
    if method == "ping" or method.startswith("notifications/"):
        return {}
    if method == "tools/list":
        return {"tools": [t.to_wire() for t in gw.list_tools()]}
    if method == "tools/call":
        return await _call_tool(gw, params)
    raise _RpcError(METHOD_NOT_FOUND, f"Method not found: {method}")


async def _call_tool(gw: PolicyGateway, params: dict[str, Any]) -> dict[str, Any]:
    try:
        call = InvocationRequest.model_validate(params)
    except ValidationError as e:
        raise _RpcError(INVALID_PARAMS, f"Invalid tools/call params: {summarize_validation_errors(e)}") from e

    try:
        return await gw.call_tool(call.tool_name, call.arguments)
    except ToolNotAllowedError as e:
        raise _RpcError(INVALID_PARAMS, str(e), e.details) from e
    except DownstreamError as e:
        raise _RpcError(DOWNSTREAM_ERROR, str(e), e.details) from e
    except PolicyGateError as e:
        raise _RpcError(INTERNAL_ERROR, str(e), e.details) from e


def _error_message(msg_id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": msg_id, "error": error}


app = create_app()
