"""
policygate Policy Store

Holds one PolicyRecord per tool name. Built once at startup from config
data and never mutated afterwards, so request handlers can share it
without locking.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from policygate.exceptions import ConfigError
from policygate.policy.models import PolicyRecord


class PolicyStore:
    """Read-only lookup table of policies keyed by tool name."""

    def __init__(self, records: Iterable[PolicyRecord] = ()) -> None:
        table: dict[str, PolicyRecord] = {}
        for record in records:
            if record.tool_name in table:
                raise ConfigError(f"duplicate policy for tool '{record.tool_name}'")
            table[record.tool_name] = record
        self._policies: Mapping[str, PolicyRecord] = MappingProxyType(table)

    @classmethod
    def from_records(
        cls,
        records: Any,
        *,
        require_contains: bool = False,
        source: str | None = None,
    ) -> PolicyStore:
        """Validate raw policy data and build a store.

        Accepts a sequence of dicts (config shape) or PolicyRecord instances.
        Raises ConfigError for anything else, for records that fail
        validation, and for duplicate tool names. With require_contains,
        records with an empty contains list are rejected too.
        """
        if records is None:
            return cls()
        if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
            raise ConfigError(
                f"policies must be a list of policy records, got {type(records).__name__}",
                source=source,
            )

        parsed: list[PolicyRecord] = []
        for index, raw in enumerate(records):
            if isinstance(raw, PolicyRecord):
                record = raw
            elif isinstance(raw, Mapping):
                try:
                    record = PolicyRecord.model_validate(raw)
                except ValidationError as e:
                    raise ConfigError(
                        f"policy #{index} is malformed: {summarize_validation_errors(e)}",
                        source=source,
                        details={"index": index},
                    ) from e
            else:
                raise ConfigError(
                    f"policy #{index} must be an object, got {type(raw).__name__}",
                    source=source,
                    details={"index": index},
                )

            if require_contains and not record.response_filter.contains:
                raise ConfigError(
                    f"policy for tool '{record.tool_name}' has an empty contains list",
                    source=source,
                    details={"index": index},
                )
            if any(p.tool_name == record.tool_name for p in parsed):
                raise ConfigError(
                    f"duplicate policy for tool '{record.tool_name}'",
                    source=source,
                    details={"index": index},
                )
            parsed.append(record)

        return cls(parsed)

    def find_by_tool(self, tool_name: str) -> PolicyRecord | None:
        """Look up the policy for a tool, or None if the tool has none."""
        return self._policies.get(tool_name)

    def has_policy(self, tool_name: str) -> bool:
        return tool_name in self._policies

    @property
    def tool_names(self) -> list[str]:
        return list(self._policies.keys())

    def __len__(self) -> int:
        return len(self._policies)

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._policies

    def __iter__(self) -> Iterator[PolicyRecord]:
        return iter(self._policies.values())


def summarize_validation_errors(error: ValidationError) -> str:
    """Render pydantic errors as 'loc: msg' pairs on one line."""
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)
