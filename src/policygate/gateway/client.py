"""
policygate Downstream Tool Clients

A ToolClient lists and executes the tools of one downstream server.
McpStdioClient launches the server as a subprocess and talks MCP to it
over stdio using the official SDK.

Results are handed back as plain dicts in MCP wire shape, e.g.

    {"content": [{"type": "text", "text": "..."}], "isError": false}

so policy paths address what the server actually sent.
Failures are raised as DownstreamError and never retried.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import AsyncExitStack
from typing import Any, Protocol, runtime_checkable

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from policygate.exceptions import DownstreamError
from policygate.gateway.config import ServerConfig
from policygate.gateway.models import ToolDescriptor
from policygate.logging import get_logger

logger = get_logger("policygate.gateway.client")


@runtime_checkable
class ToolClient(Protocol):
    """What the gateway needs from a downstream tool server."""

    name: str

    async def connect(self) -> None: ...

    async def list_tools(self) -> list[ToolDescriptor]: ...

    async def execute(self, tool_name: str, arguments: Mapping[str, Any]) -> dict[str, Any]: ...

    async def close(self) -> None: ...


class McpStdioClient:
    """MCP client for a server launched as a stdio subprocess."""

    def __init__(self, name: str, config: ServerConfig):
        self.name = name
        self._config = config
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None

    @property
    def connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        """Start the server process and run the MCP initialize handshake."""
        if self.connected:
            return

        params = StdioServerParameters(
            command=self._config.command,
            args=list(self._config.args),
            env=self._config.env,
            cwd=self._config.cwd,
        )
        stack = AsyncExitStack()
        try:
            read_stream, write_stream = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
            await session.initialize()
        except Exception as e:
            await stack.aclose()
            raise DownstreamError(
                self.name,
                "",
                f"cannot start '{_command_line(self._config)}': {type(e).__name__}: {e}",
            ) from e

        self._stack = stack
        self._session = session
        logger.info(f"Connected to {_command_line(self._config)}", extra={"server": self.name})

    async def list_tools(self) -> list[ToolDescriptor]:
        session = self._require_session("")
        try:
            listing = await session.list_tools()
        except Exception as e:
            raise DownstreamError(self.name, "", f"tools/list failed: {type(e).__name__}: {e}") from e

        return [
            ToolDescriptor(
                name=tool.name,
                description=tool.description or "",
                input_schema=dict(tool.inputSchema or {}),
                server=self.name,
            )
            for tool in listing.tools
        ]

    async def execute(self, tool_name: str, arguments: Mapping[str, Any]) -> dict[str, Any]:
        session = self._require_session(tool_name)
        try:
            result = await session.call_tool(tool_name, dict(arguments))
        except Exception as e:
            raise DownstreamError(self.name, tool_name, f"{type(e).__name__}: {e}") from e
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)

    async def close(self) -> None:
        stack, self._stack, self._session = self._stack, None, None
        if stack is not None:
            await stack.aclose()
            logger.info("Disconnected", extra={"server": self.name})

    def _require_session(self, tool_name: str) -> ClientSession:
        if self._session is None:
            raise DownstreamError(self.name, tool_name, "not connected")
        return self._session


def _command_line(config: ServerConfig) -> str:
    return " ".join([config.command, *config.args])
