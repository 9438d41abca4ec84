"""
policygate Path Extractor

Evaluates JSONPath-style expressions over untyped result trees (dicts,
lists and scalars as decoded from JSON).

Supported syntax:

    $                   root (optional: "items[*].title" means "$.items[*].title")
    .name  ['name']     member access ("name" may also be double-quoted)
    .*  [*]             every member value of an object / every element of an array
    [2]  [-1]           array index, negative counts from the end
    [0,2]  ['a','b']    union of indices or names
    [1:5]  [::2]        array slice
    ..name  ..*  ..[0]  recursive descent: the selector applied at every depth

Filter ([?(...)]) and script ([(...)]) expressions are not supported and
are reported as invalid. A path that matches nothing yields an empty list.
Matched values are returned as-is, in document order; the tree is never
copied or modified.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from policygate.exceptions import PolicyError

_NAME_STOP = set(".[]()'\"*?,: \t\r\n")


class _PathSyntaxError(Exception):
    def __init__(self, message: str, position: int):
        super().__init__(message)
        self.position = position


# ─── Selectors ──────────────────────────────────────────────


@dataclass(frozen=True)
class NameSelector:
    name: str

    def select(self, node: Any) -> Iterator[Any]:
        if isinstance(node, Mapping) and self.name in node:
            yield node[self.name]


@dataclass(frozen=True)
class WildcardSelector:
    def select(self, node: Any) -> Iterator[Any]:
        if isinstance(node, Mapping):
            yield from node.values()
        elif _is_array(node):
            yield from node


@dataclass(frozen=True)
class IndexSelector:
    index: int

    def select(self, node: Any) -> Iterator[Any]:
        if not _is_array(node):
            return
        i = self.index + len(node) if self.index < 0 else self.index
        if 0 <= i < len(node):
            yield node[i]


@dataclass(frozen=True)
class SliceSelector:
    start: int | None
    end: int | None
    step: int | None

    def select(self, node: Any) -> Iterator[Any]:
        if _is_array(node):
            yield from node[self.start:self.end:self.step]


Selector = NameSelector | WildcardSelector | IndexSelector | SliceSelector


@dataclass(frozen=True)
class Segment:
    """One step of a path: selectors applied to a node, or to it and all its descendants."""
    selectors: tuple[Selector, ...]
    descendant: bool = False

    def apply(self, node: Any) -> Iterator[Any]:
        targets = _walk(node) if self.descendant else (node,)
        for target in targets:
            for selector in self.selectors:
                yield from selector.select(target)


@dataclass(frozen=True)
class CompiledPath:
    """A parsed path expression, reusable across calls."""
    expression: str
    segments: tuple[Segment, ...]

    def find(self, tree: Any) -> list[Any]:
        nodes: list[Any] = [tree]
        for segment in self.segments:
            nodes = [match for node in nodes for match in segment.apply(node)]
            if not nodes:
                break
        return nodes


# ─── Public API ─────────────────────────────────────────────


def compile_path(expression: str, tool_name: str = "") -> CompiledPath:
    """Parse a path expression.

    Raises PolicyError naming the expression (and the policy's tool, when
    given) if the expression is not valid.
    """
    if not isinstance(expression, str):
        raise PolicyError(tool_name, repr(expression), "path expression must be a string")
    try:
        segments = _parse(expression)
    except _PathSyntaxError as e:
        raise PolicyError(
            tool_name,
            expression,
            f"{e} at position {e.position}",
            details={"position": e.position},
        ) from None
    return CompiledPath(expression=expression, segments=segments)


def extract(tree: Any, expression: str, tool_name: str = "") -> list[Any]:
    """Return the ordered list of values in tree selected by expression."""
    return compile_path(expression, tool_name).find(tree)


# ─── Evaluation helpers ─────────────────────────────────────


def _is_array(node: Any) -> bool:
    return isinstance(node, Sequence) and not isinstance(node, (str, bytes, bytearray))


def _walk(node: Any) -> Iterator[Any]:
    """Yield node and every descendant, depth-first in document order."""
    yield node
    if isinstance(node, Mapping):
        children = node.values()
    elif _is_array(node):
        children = node
    else:
        return
    for child in children:
        yield from _walk(child)


# ─── Parser ─────────────────────────────────────────────────


@lru_cache(maxsize=256)
def _parse(expression: str) -> tuple[Segment, ...]:
    return _Parser(expression).parse()


class _Parser:
    """Recursive-descent parser producing a tuple of Segments."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def parse(self) -> tuple[Segment, ...]:
        text = self.text.strip()
        if not text:
            raise _PathSyntaxError("empty path expression", 0)
        self.text = text

        segments: list[Segment] = []
        if self._peek() == "$":
            self.pos += 1
        elif self._peek() not in (".", "["):
            # Bare leading member: "items[*]" reads as "$.items[*]".
            segments.append(Segment((NameSelector(self._name()),)))

        while self.pos < len(self.text):
            segments.append(self._segment())
        return tuple(segments)

    def _segment(self) -> Segment:
        char = self._peek()
        if char == "[":
            return Segment(self._bracket())
        if char != ".":
            raise _PathSyntaxError(f"unexpected character {char!r}", self.pos)

        self.pos += 1
        descendant = False
        if self._peek() == ".":
            self.pos += 1
            descendant = True
            if self._peek() == "[":
                return Segment(self._bracket(), descendant=True)

        if self._peek() == "*":
            self.pos += 1
            return Segment((WildcardSelector(),), descendant=descendant)
        return Segment((NameSelector(self._name()),), descendant=descendant)

    def _name(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in _NAME_STOP:
            self.pos += 1
        if self.pos == start:
            found = self._peek() or "end of expression"
            raise _PathSyntaxError(f"expected member name, found {found!r}", start)
        return self.text[start:self.pos]

    def _bracket(self) -> tuple[Selector, ...]:
        opening = self.pos
        self.pos += 1
        self._skip_ws()

        char = self._peek()
        if char == "*":
            self.pos += 1
            self._expect_close(opening)
            return (WildcardSelector(),)
        if char in ("?", "("):
            raise _PathSyntaxError("filter and script expressions are not supported", self.pos)

        selectors: list[Selector] = []
        while True:
            self._skip_ws()
            selectors.append(self._bracket_item())
            self._skip_ws()
            if self._peek() == ",":
                self.pos += 1
                continue
            self._expect_close(opening)
            return tuple(selectors)

    def _bracket_item(self) -> Selector:
        char = self._peek()
        if char in ("'", '"'):
            return NameSelector(self._quoted())
        if char == ":" or char == "-" or char.isdigit():
            return self._index_or_slice()
        found = char or "end of expression"
        raise _PathSyntaxError(f"expected index, slice or quoted name, found {found!r}", self.pos)

    def _index_or_slice(self) -> Selector:
        parts: list[int | None] = [self._int_or_none()]
        while self._peek() == ":" and len(parts) < 3:
            self.pos += 1
            self._skip_ws()
            parts.append(self._int_or_none())
            self._skip_ws()

        if len(parts) == 1:
            if parts[0] is None:
                raise _PathSyntaxError("expected array index", self.pos)
            return IndexSelector(parts[0])

        while len(parts) < 3:
            parts.append(None)
        start, end, step = parts
        if step == 0:
            raise _PathSyntaxError("slice step cannot be zero", self.pos)
        return SliceSelector(start, end, step)

    def _int_or_none(self) -> int | None:
        start = self.pos
        if self._peek() == "-":
            self.pos += 1
        while self._peek().isdigit():
            self.pos += 1
        literal = self.text[start:self.pos]
        if not literal:
            return None
        if literal == "-":
            raise _PathSyntaxError("expected digits after '-'", self.pos)
        return int(literal)

    def _quoted(self) -> str:
        quote = self.text[self.pos]
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == "\\" and self.pos + 1 < len(self.text):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            if char == quote:
                self.pos += 1
                return "".join(chars)
            chars.append(char)
            self.pos += 1
        raise _PathSyntaxError("unterminated quoted name", start)

    def _expect_close(self, opening: int) -> None:
        self._skip_ws()
        if self._peek() != "]":
            if self.pos >= len(self.text):
                raise _PathSyntaxError("unclosed '['", opening)
            raise _PathSyntaxError(f"expected ']', found {self._peek()!r}", self.pos)
        self.pos += 1

    def _skip_ws(self) -> None:
        while self._peek() in (" ", "\t"):
            self.pos += 1

    def _peek(self) -> str:
        if self.pos < len(self.text):
            return self.text[self.pos]
        return ""
