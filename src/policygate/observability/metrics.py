"""OpenTelemetry metrics for policygate.

Counters and histograms for tool call and policy observability.
All functions are no-ops if opentelemetry is not installed or not configured.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_meter = None
_tool_calls_total = None
_policy_items_total = None
_call_duration = None
_initialized = False


def _ensure_meter() -> bool:
    """Lazily initialize the meter and instruments."""
    global _meter, _tool_calls_total, _policy_items_total, _call_duration, _initialized

    if _initialized:
        return _meter is not None

    _initialized = True

    try:
        from opentelemetry import metrics

        _meter = metrics.get_meter("policygate", "0.3.0")

        _tool_calls_total = _meter.create_counter(
            "policygate.tool_calls.total",
            description="Total tool calls routed through the gateway",
            unit="1",
        )
        _policy_items_total = _meter.create_counter(
            "policygate.policy.items.total",
            description="Items extracted and kept by response policies",
            unit="1",
        )
        _call_duration = _meter.create_histogram(
            "policygate.tool_call.duration_seconds",
            description="Downstream tool call duration in seconds",
            unit="s",
        )
        return True
    except ImportError:
        return False


def record_tool_call(*, tool_name: str, outcome: str, policy: bool) -> None:
    """Record a routed tool call. outcome is ok, policy_error or downstream_error."""
    if not _ensure_meter() or _tool_calls_total is None:
        return
    _tool_calls_total.add(
        1,
        {"policygate.tool_name": tool_name, "policygate.outcome": outcome, "policygate.policy": str(policy)},
    )


def record_policy_items(*, tool_name: str, extracted: int, kept: int) -> None:
    """Record how many items a response policy extracted and kept."""
    if not _ensure_meter() or _policy_items_total is None:
        return
    _policy_items_total.add(extracted, {"policygate.tool_name": tool_name, "policygate.stage": "extracted"})
    _policy_items_total.add(kept, {"policygate.tool_name": tool_name, "policygate.stage": "kept"})


def record_call_duration(*, tool_name: str, duration_seconds: float) -> None:
    """Record downstream call duration."""
    if not _ensure_meter() or _call_duration is None:
        return
    _call_duration.record(duration_seconds, {"policygate.tool_name": tool_name})


@contextmanager
def measure_call_duration(tool_name: str) -> Generator[None, None, None]:
    """Context manager to measure and record downstream call duration."""
    start = time.monotonic()
    try:
        yield
    finally:
        record_call_duration(tool_name=tool_name, duration_seconds=time.monotonic() - start)
