"""Shared test fixtures for the policygate test suite."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from policygate.exceptions import DownstreamError
from policygate.gateway.models import ToolDescriptor
from policygate.gateway.service import PolicyGateway
from policygate.policy.engine import PolicyEngine
from policygate.policy.store import PolicyStore


class FakeToolClient:
    """In-memory ToolClient: canned tools and results, records every call."""

    def __init__(
        self,
        name: str,
        tools: list[str],
        results: dict[str, Any] | None = None,
        fail_on_connect: bool = False,
    ):
        self.name = name
        self._tools = tools
        self.results = results or {}
        self.fail_on_connect = fail_on_connect
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        if self.fail_on_connect:
            raise DownstreamError(self.name, "", "cannot start")
        self.connected = True

    async def list_tools(self) -> list[ToolDescriptor]:
        return [
            ToolDescriptor(
                name=tool,
                description=f"Test tool: {tool}",
                input_schema={"type": "object", "properties": {"query": {"type": "string"}}},
                server=self.name,
            )
            for tool in self._tools
        ]

    async def execute(self, tool_name: str, arguments: Mapping[str, Any]) -> dict[str, Any]:
        self.calls.append((tool_name, dict(arguments)))
        result = self.results[tool_name]
        if isinstance(result, Exception):
            raise result
        return result

    async def close(self) -> None:
        self.closed = True
        self.connected = False


@pytest.fixture
def search_policy() -> dict[str, Any]:
    return {
        "toolName": "search",
        "paramsFilter": {"visibility": "public"},
        "responseFilter": {
            "path": "$.items[*].title",
            "contains": ["urgent"],
            "convertResults": "none",
        },
    }


@pytest.fixture
def search_result() -> dict[str, Any]:
    return {"items": [{"title": "Urgent: renew"}, {"title": "Newsletter"}]}


@pytest.fixture
def store(search_policy) -> PolicyStore:
    return PolicyStore.from_records([search_policy])


@pytest.fixture
def engine(store) -> PolicyEngine:
    return PolicyEngine(store)


@pytest.fixture
def search_client(search_result) -> FakeToolClient:
    return FakeToolClient(
        "search-server",
        ["search", "echo"],
        results={
            "search": search_result,
            "echo": {"content": [{"type": "text", "text": "raw"}], "isError": False},
        },
    )


@pytest.fixture
async def gateway(engine, search_client):
    gw = PolicyGateway(engine, [search_client])
    await gw.start()
    yield gw
    await gw.stop()
