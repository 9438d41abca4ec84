"""
policygate Policy Engine

Applies per-tool policies around a downstream tool call:

1. apply_input_policy: forces the policy's literal argument overrides
2. (the caller executes the tool)
3. apply_response_policy: extracts items with the policy's path, keeps
   those containing one of the configured substrings, optionally converts
   them from HTML, and wraps them as text content items

Tools without a policy pass through untouched in both directions. The
engine holds no per-call state, so one instance serves concurrent calls.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from policygate.logging import get_logger
from policygate.observability.metrics import record_policy_items
from policygate.policy.convert import HtmlConverter
from policygate.policy.filter import as_text, keep
from policygate.policy.models import ContentItem, ConvertMode, PolicyRecord, thaw
from policygate.policy.path import compile_path
from policygate.policy.store import PolicyStore

logger = get_logger("policygate.policy.engine")


class PolicyEngine:
    """Rewrites tool arguments and results according to a PolicyStore."""

    def __init__(
        self,
        store: PolicyStore | Iterable[PolicyRecord | Mapping[str, Any]],
        remove_tags: Iterable[str] = ("style",),
    ):
        self._store = store if isinstance(store, PolicyStore) else PolicyStore.from_records(store)
        self._converter = HtmlConverter(remove=remove_tags)

    @property
    def store(self) -> PolicyStore:
        return self._store

    def has_policy(self, tool_name: str) -> bool:
        """Checks if a policy exists for a given tool."""
        return self._store.has_policy(tool_name)

    def apply_input_policy(self, tool_name: str, arguments: Mapping[str, Any]) -> Mapping[str, Any]:
        """Return the arguments to forward for tool_name.

        Without a policy the caller's mapping is returned as-is. With one, a
        new dict is built where every params_filter key carries the policy's
        literal value, whatever the caller sent for it.
        """
        policy = self._store.find_by_tool(tool_name)
        if policy is None:
            return arguments

        # Fresh copies per call; the policy's own literals are never handed out.
        overrides = thaw(policy.params_filter)
        filtered = dict(arguments)
        overridden = [k for k in overrides if k in arguments and arguments[k] != overrides[k]]
        filtered.update(overrides)
        if overridden:
            logger.info(
                f"Overrode arguments {', '.join(overridden)}",
                extra={"tool_name": tool_name},
            )
        return filtered

    def apply_response_policy(self, tool_name: str, result: Any) -> Any:
        """Return what the caller should see for result.

        Without a policy the raw result object is returned unchanged.
        With one, returns a list of ContentItem (possibly empty).

        Raises:
            PolicyError: the policy's path expression is invalid.
            ExtractionTypeError: the path selected non-text values.
        """
        policy = self._store.find_by_tool(tool_name)
        if policy is None:
            return result
        return self.render(policy, result)

    def render(self, policy: PolicyRecord, result: Any) -> list[ContentItem]:
        """Run the extract / filter / convert / wrap pipeline for one policy."""
        rf = policy.response_filter
        tool_name = policy.tool_name

        extracted = compile_path(rf.path, tool_name).find(result)
        logger.info(
            f"Found {len(extracted)} responses",
            extra={"tool_name": tool_name, "path": rf.path, "extracted": len(extracted)},
        )

        kept = keep(extracted, rf.contains, tool_name)
        logger.info(
            f"After filtering, {len(kept)} results remain",
            extra={"tool_name": tool_name, "kept": len(kept)},
        )
        record_policy_items(tool_name=tool_name, extracted=len(extracted), kept=len(kept))

        texts = [as_text(item, tool_name) for item in kept]
        if rf.convert_results == ConvertMode.HTML_TO_TEXT:
            texts = [self._converter.convert(text) for text in texts]

        return [ContentItem(text=text) for text in texts]
