"""
policygate Custom Exceptions

Structured exception hierarchy for the gateway.
All policygate-specific exceptions inherit from PolicyGateError.

Exception hierarchy:
    PolicyGateError
    +-- ConfigError            (malformed policy / allow-list / server data, fatal at startup)
    +-- PolicyError            (invalid path expression inside a policy, per call)
    +-- ExtractionTypeError    (non-text value reached the content filter, also a TypeError)
    +-- DownstreamError        (tool server transport or protocol failure, passed through)
    +-- ToolNotAllowedError    (tool is not in the advertised catalog)
"""

from __future__ import annotations


class PolicyGateError(Exception):
    """Base exception for all policygate errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ConfigError(PolicyGateError):
    """Raised when configuration data cannot be loaded or is malformed.

    Always raised before any request is served; the process must not start.
    """

    def __init__(self, message: str, source: str | None = None, details: dict | None = None):
        prefix = f"{source}: " if source else ""
        super().__init__(
            f"Invalid configuration: {prefix}{message}",
            details={"source": source, **(details or {})},
        )
        self.source = source


class PolicyError(PolicyGateError):
    """Raised when a policy's path expression cannot be parsed.

    Only the call that evaluated the expression fails.
    """

    def __init__(self, tool_name: str, expression: str, message: str, details: dict | None = None):
        label = f"policy '{tool_name}'" if tool_name else "path"
        super().__init__(
            f"Invalid path expression in {label}: {expression!r}: {message}",
            details={"tool_name": tool_name, "expression": expression, **(details or {})},
        )
        self.tool_name = tool_name
        self.expression = expression


class ExtractionTypeError(PolicyGateError, TypeError):
    """Raised when an extracted value is not text.

    Points at the policy's path selecting the wrong node (objects, arrays,
    booleans, nulls) rather than at the filter itself.
    """

    def __init__(self, tool_name: str, value_type: str, message: str = "", details: dict | None = None):
        super().__init__(
            f"Path for tool '{tool_name}' selected a {value_type} value; "
            f"only strings and numbers can be filtered{': ' + message if message else ''}",
            details={"tool_name": tool_name, "value_type": value_type, **(details or {})},
        )
        self.tool_name = tool_name
        self.value_type = value_type


class DownstreamError(PolicyGateError):
    """Raised when a downstream tool server fails to execute a call.

    Never retried by the gateway.
    """

    def __init__(self, server: str, tool_name: str, message: str, details: dict | None = None):
        target = f"tool '{tool_name}' on " if tool_name else ""
        super().__init__(
            f"Downstream {target}server '{server}' failed: {message}",
            details={"server": server, "tool_name": tool_name, **(details or {})},
        )
        self.server = server
        self.tool_name = tool_name


class ToolNotAllowedError(PolicyGateError):
    """Raised when a call names a tool that is not advertised upstream."""

    def __init__(self, tool_name: str, details: dict | None = None):
        super().__init__(
            f"Tool '{tool_name}' is not available",
            details={"tool_name": tool_name, **(details or {})},
        )
        self.tool_name = tool_name
