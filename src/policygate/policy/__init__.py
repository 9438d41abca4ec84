"""
policygate Policy Layer

Per-tool policies mediate every call routed through the gateway:

    Upstream call → PolicyEngine.apply_input_policy → downstream tool
                  → PolicyEngine.apply_response_policy → upstream

Components:
- PolicyRecord / PolicyStore: one immutable policy per tool name
- path: JSONPath-style extraction over untyped result trees
- filter: case-insensitive substring test on extracted items
- convert: HTML to Markdown-style text
- PolicyEngine: composes the above
"""

from policygate.policy.convert import HtmlConverter, to_plain_text
from policygate.policy.engine import PolicyEngine
from policygate.policy.filter import as_text, keep
from policygate.policy.models import (
    ContentItem,
    ConvertMode,
    InvocationRequest,
    PolicyRecord,
    ResponseFilter,
)
from policygate.policy.path import CompiledPath, compile_path, extract
from policygate.policy.store import PolicyStore

__all__ = [
    "CompiledPath",
    "ContentItem",
    "ConvertMode",
    "HtmlConverter",
    "InvocationRequest",
    "PolicyEngine",
    "PolicyRecord",
    "PolicyStore",
    "ResponseFilter",
    "as_text",
    "compile_path",
    "extract",
    "keep",
    "to_plain_text",
]
