"""
policygate Policy Models

Pydantic models for per-tool policies and the normalized content the
gateway hands back upstream. Policies are loaded once at startup and
are frozen afterwards.

Config files use camelCase keys (toolName, paramsFilter, responseFilter,
jsonPath, convertResults); the snake_case field names are accepted too.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator


class ConvertMode(str, Enum):
    """How surviving response items are rewritten before being returned."""
    NONE = "none"
    HTML_TO_TEXT = "htmlToText"


# Names older config files use for the same conversion.
_CONVERT_ALIASES = {
    "htmlToMarkdown": ConvertMode.HTML_TO_TEXT,
    "html_to_text": ConvertMode.HTML_TO_TEXT,
    "html_to_markdown": ConvertMode.HTML_TO_TEXT,
}


class ResponseFilter(BaseModel):
    """Extraction, content test and conversion applied to a tool result."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    path: str = Field(
        min_length=1,
        validation_alias=AliasChoices("path", "jsonPath", "json_path"),
        serialization_alias="jsonPath",
    )
    contains: tuple[str, ...] = ()
    convert_results: ConvertMode = Field(
        default=ConvertMode.NONE,
        validation_alias=AliasChoices("convert_results", "convertResults"),
        serialization_alias="convertResults",
    )

    @field_validator("convert_results", mode="before")
    @classmethod
    def _accept_legacy_names(cls, value: Any) -> Any:
        if value is None:
            return ConvertMode.NONE
        if isinstance(value, str):
            return _CONVERT_ALIASES.get(value, value)
        return value

    @field_validator("contains", mode="before")
    @classmethod
    def _reject_bare_string(cls, value: Any) -> Any:
        # A bare string would otherwise be split into characters.
        if isinstance(value, str):
            raise ValueError("contains must be a list of strings")
        return value


class PolicyRecord(BaseModel):
    """The policy for a single tool.

    params_filter values are forced onto the call arguments; response_filter
    decides which parts of the result reach the caller. The overrides are
    stored deep-frozen, so a record cannot change after validation.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    tool_name: str = Field(
        min_length=1,
        validation_alias=AliasChoices("tool_name", "toolName"),
        serialization_alias="toolName",
    )
    params_filter: Mapping[str, Any] = Field(
        default_factory=lambda: MappingProxyType({}),
        validation_alias=AliasChoices("params_filter", "paramsFilter"),
        serialization_alias="paramsFilter",
    )
    response_filter: ResponseFilter = Field(
        validation_alias=AliasChoices("response_filter", "responseFilter"),
        serialization_alias="responseFilter",
    )

    @field_validator("params_filter", mode="after")
    @classmethod
    def _freeze_overrides(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze(value)

    @field_serializer("params_filter")
    def _dump_overrides(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return thaw(value)


class ContentItem(BaseModel):
    """A unit of content returned upstream. Serializes as {"type": "text", "text": ...}."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["text"] = Field(
        default="text",
        validation_alias=AliasChoices("kind", "type"),
        serialization_alias="type",
    )
    text: str

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class InvocationRequest(BaseModel):
    """An inbound tool call, e.g. the params of a JSON-RPC tools/call."""
    tool_name: str = Field(
        min_length=1,
        validation_alias=AliasChoices("tool_name", "toolName", "name"),
    )
    arguments: dict[str, Any] = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def _null_means_empty(cls, value: Any) -> Any:
        return {} if value is None else value


def freeze(value: Any) -> Any:
    """Read-only deep copy of a JSON-like value: mappings become
    MappingProxyType, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Fresh mutable copy of a frozen value, as plain dicts and lists."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value
