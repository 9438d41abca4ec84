"""
policygate Structured Logging

stdlib logging with a formatter that understands the gateway's context
fields (tool, server, item counts, timings).

Usage:
    from policygate.logging import get_logger

    logger = get_logger("policygate.policy.engine")
    logger.info("Found 3 responses", extra={"tool_name": "search", "extracted": 3})

Switch to one JSON object per line for log shippers:
    from policygate.logging import configure_logging
    configure_logging(level="DEBUG", json_output=True)

Logs always go to stderr. Downstream tool servers speak over stdio and
upstream clients may too, so stdout stays reserved for protocol traffic.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

LOGGER_NAME = "policygate"

# Context attributes picked up from `extra=`, in output order.
CONTEXT_FIELDS = (
    "tool_name", "server", "method", "path", "extracted", "kept",
    "converted", "duration_ms", "error_type",
)


class PolicyGateFormatter(logging.Formatter):
    """Renders records as `[ts] LEVEL name: message | key=value ...` or as JSON."""

    def __init__(self, json_output: bool = False):
        super().__init__()
        self._json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        context = self._context(record)
        error = self.formatException(record.exc_info) if record.exc_info else None
        timestamp = datetime.now(timezone.utc).isoformat()

        if self._json_output:
            payload: dict[str, Any] = {
                "timestamp": timestamp,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                **context,
            }
            if error:
                payload["exception"] = error
            return json.dumps(payload, default=str)

        line = f"[{timestamp}] {record.levelname:8s} {record.name}: {record.getMessage()}"
        if context:
            line += " | " + " ".join(f"{key}={value}" for key, value in context.items())
        if error:
            line += "\n" + error
        return line

    @staticmethod
    def _context(record: logging.LogRecord) -> dict[str, Any]:
        context = {}
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                context[key] = value
        return context


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """(Re)install the single stderr handler on the policygate logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL; anything else means INFO.
        json_output: Emit JSON lines instead of the human-readable format.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(PolicyGateFormatter(json_output=json_output))
    logger.handlers[:] = [handler]
    logger.propagate = False


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Logger for a policygate module, e.g. "policygate.gateway.service"."""
    return logging.getLogger(name)


configure_logging()
