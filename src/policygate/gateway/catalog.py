"""
policygate Tool Catalog

Collects the tools of every connected downstream server and keeps the
ones the gateway is allowed to advertise. Also records which client owns
each tool so calls can be routed back to it.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from policygate.gateway.client import ToolClient
from policygate.gateway.models import ToolDescriptor
from policygate.logging import get_logger

logger = get_logger("policygate.gateway.catalog")

_JSON_TYPES = {"string", "number", "integer", "boolean", "array", "object", "null"}


class ToolCatalog:
    """Allow-list gated view of the downstream tools.

    allowed_tools=None advertises everything; any list (even an empty one)
    advertises only the names it contains.
    """

    def __init__(self, allowed_tools: Iterable[str] | None = None):
        self._allowed = None if allowed_tools is None else frozenset(allowed_tools)
        self._tools: dict[str, ToolDescriptor] = {}
        self._owners: dict[str, ToolClient] = {}

    @classmethod
    async def discover(
        cls,
        clients: Iterable[ToolClient],
        allowed_tools: Iterable[str] | None = None,
    ) -> ToolCatalog:
        """List tools from every client and build the catalog."""
        catalog = cls(allowed_tools)
        for client in clients:
            catalog.add(client, await client.list_tools())
        catalog.warn_missing()
        return catalog

    def add(self, client: ToolClient, tools: Iterable[ToolDescriptor]) -> None:
        for tool in tools:
            if not self.is_allowed(tool.name):
                logger.debug("Tool hidden by allow-list", extra={"tool_name": tool.name, "server": client.name})
                continue
            if tool.name in self._tools:
                logger.warning(
                    f"Tool already provided by '{self._owners[tool.name].name}', ignoring duplicate",
                    extra={"tool_name": tool.name, "server": client.name},
                )
                continue
            self._tools[tool.name] = tool.model_copy(
                update={"input_schema": normalize_input_schema(tool.input_schema)}
            )
            self._owners[tool.name] = client

    def warn_missing(self) -> None:
        """Log allow-listed names that no server provides."""
        if self._allowed is None:
            return
        for name in sorted(self._allowed - self._tools.keys()):
            logger.warning("Allow-listed tool not offered by any server", extra={"tool_name": name})

    def is_allowed(self, tool_name: str) -> bool:
        return self._allowed is None or tool_name in self._allowed

    def get(self, tool_name: str) -> ToolDescriptor | None:
        return self._tools.get(tool_name)

    def owner(self, tool_name: str) -> ToolClient | None:
        return self._owners.get(tool_name)

    def tools(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._tools


def normalize_input_schema(schema: Any) -> dict[str, Any]:
    """Reduce a tool's input schema to a plain object schema.

    Some servers send schemas whose property types are not JSON Schema
    types (e.g. "datetime") or wrap the schema in annotations. Only
    properties, required and definitions survive; known property types are kept,
    "datetime" becomes a date-time string, and anything else is left
    untyped.
    """
    normalized: dict[str, Any] = {"type": "object", "properties": {}}
    if not isinstance(schema, dict):
        return normalized

    properties = schema.get("properties")
    if schema.get("type", "object") == "object" and isinstance(properties, dict):
        for key, prop in properties.items():
            normalized["properties"][key] = _normalize_property(prop)

    required = schema.get("required")
    if isinstance(required, list):
        names = [r for r in required if isinstance(r, str) and r in normalized["properties"]]
        if names:
            normalized["required"] = names

    # Property schemas may $ref into these.
    for key in ("$defs", "definitions", "additionalProperties"):
        if key in schema:
            normalized[key] = schema[key]
    return normalized


def _normalize_property(prop: Any) -> dict[str, Any]:
    if not isinstance(prop, dict):
        return {}
    out = {k: v for k, v in prop.items() if k != "type"}
    kind = prop.get("type")
    if kind == "datetime":
        out["type"] = "string"
        out["format"] = "date-time"
    elif isinstance(kind, str) and kind in _JSON_TYPES:
        out["type"] = kind
    elif isinstance(kind, list) and all(k in _JSON_TYPES for k in kind):
        out["type"] = kind
    return out
