"""policygate Observability: OpenTelemetry metrics.

Without an installed and configured opentelemetry SDK all calls are no-ops.
"""

from policygate.observability.metrics import (
    measure_call_duration,
    record_call_duration,
    record_policy_items,
    record_tool_call,
)

__all__ = [
    "measure_call_duration",
    "record_call_duration",
    "record_policy_items",
    "record_tool_call",
]
