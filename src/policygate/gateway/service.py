"""
policygate Gateway Service

Routes one upstream tool call through the policy pipeline:

    catalog gate → apply_input_policy → downstream execute → apply_response_policy

Per-call policy failures (bad path expression, non-text extraction)
become an MCP error result for that call only. Downstream failures
propagate unchanged as DownstreamError; nothing is retried.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from policygate.exceptions import DownstreamError, ExtractionTypeError, PolicyError, ToolNotAllowedError
from policygate.gateway.catalog import ToolCatalog
from policygate.gateway.client import McpStdioClient, ToolClient
from policygate.gateway.config import GatewayConfig, ServerConfig
from policygate.gateway.models import ToolDescriptor
from policygate.logging import get_logger
from policygate.observability.metrics import measure_call_duration, record_tool_call
from policygate.policy.engine import PolicyEngine

logger = get_logger("policygate.gateway.service")


def failure_response(message: str) -> dict[str, Any]:
    """MCP tool result reporting a failed call."""
    return {"content": [{"type": "text", "text": message}], "isError": True}


class PolicyGateway:
    """Policy-mediating front for a set of downstream tool servers."""

    def __init__(
        self,
        engine: PolicyEngine,
        clients: Sequence[ToolClient],
        allowed_tools: Iterable[str] | None = None,
    ):
        self._engine = engine
        self._clients = list(clients)
        self._allowed_tools = None if allowed_tools is None else list(allowed_tools)
        self._catalog: ToolCatalog | None = None

    @classmethod
    def from_config(
        cls,
        config: GatewayConfig,
        client_factory: Callable[[str, ServerConfig], ToolClient] = McpStdioClient,
    ) -> PolicyGateway:
        engine = PolicyEngine(config.build_store(), remove_tags=config.remove_tags)
        clients = [client_factory(name, server) for name, server in config.servers.items()]
        return cls(engine, clients, allowed_tools=config.allowed_tools)

    @property
    def engine(self) -> PolicyEngine:
        return self._engine

    @property
    def started(self) -> bool:
        return self._catalog is not None

    async def start(self) -> None:
        """Connect every client and build the catalog.

        Any failure here is fatal: already connected clients are closed and
        the error is raised.
        """
        if self._catalog is not None:
            return

        connected: list[ToolClient] = []
        try:
            for client in self._clients:
                await client.connect()
                connected.append(client)
            self._catalog = await ToolCatalog.discover(connected, self._allowed_tools)
        except BaseException:
            await _close_all(connected)
            raise

        logger.info(
            f"Gateway ready with {len(self._catalog)} tools from {len(connected)} servers",
        )

    async def stop(self) -> None:
        self._catalog = None
        await _close_all(self._clients)

    def list_tools(self) -> list[ToolDescriptor]:
        """Tools advertised upstream (already filtered by the allow-list)."""
        return self._require_catalog().tools()

    async def call_tool(self, tool_name: str, arguments: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Execute a tool call under its policy.

        Returns the downstream result unchanged when the tool has no policy,
        otherwise {"content": [...]} built from the policy's output.

        Raises:
            ToolNotAllowedError: the tool is not advertised.
            DownstreamError: the downstream server failed.
        """
        catalog = self._require_catalog()
        client = catalog.owner(tool_name)
        if client is None:
            record_tool_call(tool_name=tool_name, outcome="not_allowed", policy=False)
            raise ToolNotAllowedError(tool_name)

        has_policy = self._engine.has_policy(tool_name)
        forwarded = self._engine.apply_input_policy(tool_name, arguments or {})
        logger.info(
            f"tool: {tool_name} called with arguments {sorted(forwarded)}",
            extra={"tool_name": tool_name, "server": client.name},
        )

        try:
            with measure_call_duration(tool_name):
                result = await client.execute(tool_name, forwarded)
        except DownstreamError:
            record_tool_call(tool_name=tool_name, outcome="downstream_error", policy=has_policy)
            logger.error("Downstream call failed", extra={"tool_name": tool_name, "server": client.name})
            raise

        if not has_policy:
            record_tool_call(tool_name=tool_name, outcome="ok", policy=False)
            return result

        try:
            items = self._engine.apply_response_policy(tool_name, result)
        except (PolicyError, ExtractionTypeError) as e:
            record_tool_call(tool_name=tool_name, outcome="policy_error", policy=True)
            logger.warning(
                str(e),
                extra={"tool_name": tool_name, "error_type": type(e).__name__},
            )
            return failure_response(str(e))

        record_tool_call(tool_name=tool_name, outcome="ok", policy=True)
        response: dict[str, Any] = {"content": [item.to_wire() for item in items]}
        if isinstance(result, Mapping) and result.get("isError") is True:
            response["isError"] = True
        return response

    def _require_catalog(self) -> ToolCatalog:
        if self._catalog is None:
            raise DownstreamError("gateway", "", "gateway has not been started")
        return self._catalog


async def _close_all(clients: Iterable[ToolClient]) -> None:
    # Close in reverse connection order; every client gets a chance to close.
    for client in reversed(list(clients)):
        try:
            await client.close()
        except Exception as e:  # noqa: BLE001
            logger.warning(
                f"Error closing client: {type(e).__name__}: {e}",
                extra={"server": client.name},
            )
