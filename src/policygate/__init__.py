"""
policygate: Policy-Mediating Gateway for MCP Tools

Usage:
    from policygate import PolicyEngine, PolicyStore

    engine = PolicyEngine(PolicyStore.from_records([
        {
            "toolName": "search",
            "paramsFilter": {"visibility": "public"},
            "responseFilter": {"jsonPath": "$.items[*].title", "contains": ["urgent"]},
        }
    ]))
    arguments = engine.apply_input_policy("search", {"query": "x", "visibility": "private"})
    content = engine.apply_response_policy("search", result)

    # As a gateway in front of stdio MCP servers:
    #   policygate serve --config config.json
"""

__version__ = "0.3.0"

from policygate.exceptions import (  # noqa: E402
    ConfigError,
    DownstreamError,
    ExtractionTypeError,
    PolicyError,
    PolicyGateError,
    ToolNotAllowedError,
)
from policygate.policy import (  # noqa: E402
    ContentItem,
    ConvertMode,
    PolicyEngine,
    PolicyRecord,
    PolicyStore,
    ResponseFilter,
    extract,
    keep,
    to_plain_text,
)

__all__ = [
    "__version__",
    # Policy
    "ContentItem",
    "ConvertMode",
    "PolicyEngine",
    "PolicyRecord",
    "PolicyStore",
    "ResponseFilter",
    "extract",
    "keep",
    "to_plain_text",
    # Errors
    "ConfigError",
    "DownstreamError",
    "ExtractionTypeError",
    "PolicyError",
    "PolicyGateError",
    "ToolNotAllowedError",
]
