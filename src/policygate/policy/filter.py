"""
policygate Content Filter

Keeps extracted items whose text contains at least one of the policy's
substrings, compared case-insensitively. Relative order is preserved.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from policygate.exceptions import ExtractionTypeError


def as_text(value: Any, tool_name: str = "") -> str:
    """Return the text form of an extracted value.

    Strings pass through, ints and floats are rendered with str().
    Anything else means the policy's path selected the wrong node.
    """
    if isinstance(value, str):
        return value
    # bool is an int subclass but "True" is never meaningful content here.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ExtractionTypeError(tool_name or "<unknown>", _type_label(value))


def keep(items: Sequence[Any], substrings: Iterable[str], tool_name: str = "") -> list[Any]:
    """Return the items containing any of substrings, in their original order.

    Every item is type-checked even when substrings is empty, in which
    case all items are kept.
    """
    texts = [as_text(item, tool_name) for item in items]
    needles = [s.lower() for s in substrings]
    if not needles:
        return list(items)

    return [
        item
        for item, text in zip(items, texts)
        if any(needle in text.lower() for needle in needles)
    ]


def _type_label(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__
