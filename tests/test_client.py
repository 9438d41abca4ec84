"""Tests for the MCP stdio client that need no server process."""

import pytest

from policygate.exceptions import DownstreamError
from policygate.gateway.client import McpStdioClient, ToolClient
from policygate.gateway.config import ServerConfig


def _make_client() -> McpStdioClient:
    return McpStdioClient("search-server", ServerConfig(command="search-mcp", args=["--stdio"]))


class TestMcpStdioClient:
    def test_satisfies_tool_client(self):
        assert isinstance(_make_client(), ToolClient)

    def test_starts_disconnected(self):
        assert not _make_client().connected

    async def test_list_tools_requires_connection(self):
        with pytest.raises(DownstreamError, match="not connected"):
            await _make_client().list_tools()

    async def test_execute_requires_connection(self):
        with pytest.raises(DownstreamError) as exc_info:
            await _make_client().execute("search", {})
        assert exc_info.value.tool_name == "search"
        assert exc_info.value.server == "search-server"

    async def test_close_without_connect(self):
        client = _make_client()
        await client.close()
        assert not client.connected

    async def test_connect_is_skipped_when_connected(self):
        client = _make_client()
        client._session = object()
        await client.connect()
        assert client._stack is None
