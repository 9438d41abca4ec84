"""
policygate Gateway Models

Shapes exchanged between the gateway and its downstream tool servers.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ToolDescriptor(BaseModel):
    """A tool offered by a downstream server.

    Serializes with MCP's camelCase inputSchema key.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        validation_alias=AliasChoices("input_schema", "inputSchema"),
        serialization_alias="inputSchema",
    )
    server: str = Field(default="", exclude=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
