"""
policygate Format Converter

Turns HTML fragments returned by tools into Markdown-flavoured plain text.
Designated non-content elements (style blocks by default) are dropped
before rendering.

Text without any markup is returned untouched, and rendered output never
contains tag-like sequences, so converting twice gives the same result as
converting once.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

# Sentinels protecting whitespace that the tidy pass must not touch.
_INDENT = "\x00"
_TAB = "\x01"
_NEWLINE = "\x02"
_SENTINELS = re.compile("[\x00\x01\x02]")

_WS = re.compile(r"\s+")
_TAG_LIKE = re.compile(r"<(?=[A-Za-z/!?])")
_EDGE_SPACES = re.compile(r"[ \t]*\n[ \t]*")
_BLANK_RUNS = re.compile(r"\n{3,}")

_BLOCK_TAGS = {
    "address", "article", "aside", "body", "center", "dd", "details", "dialog",
    "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form",
    "header", "html", "main", "nav", "p", "section", "summary",
}
_SKIPPED_NODES = (Comment, Declaration, Doctype, ProcessingInstruction)


class HtmlConverter:
    """Renders markup as Markdown-style text.

    Args:
        remove: Tag names whose whole subtree is discarded before rendering.
    """

    def __init__(self, remove: Iterable[str] = ("style",)):
        self.remove = tuple(remove)

    def convert(self, markup: str) -> str:
        if not isinstance(markup, str):
            raise TypeError(f"expected markup as str, got {type(markup).__name__}")

        soup = BeautifulSoup(markup, "html.parser")
        if soup.find() is None:
            return markup

        if self.remove:
            for tag in soup.find_all(list(self.remove)):
                tag.decompose()

        rendered = self._children(soup)
        rendered = _EDGE_SPACES.sub("\n", rendered)
        rendered = _BLANK_RUNS.sub("\n\n", rendered).strip()
        return rendered.replace(_INDENT, " ").replace(_TAB, "\t").replace(_NEWLINE, "\n")

    # ─── Rendering ──────────────────────────────────────────

    def _children(self, node: Tag) -> str:
        return "".join(self._node(child) for child in node.children)

    def _node(self, node: object) -> str:
        if isinstance(node, _SKIPPED_NODES):
            return ""
        if isinstance(node, NavigableString):
            return _escape(_WS.sub(" ", _SENTINELS.sub("", str(node))))
        if not isinstance(node, Tag):
            return ""

        name = node.name.lower()
        if name in ("h1", "h2", "h3", "h4", "h5", "h6"):
            title = self._inline(node)
            return f"\n\n{'#' * int(name[1])} {title}\n\n" if title else ""
        if name in _BLOCK_TAGS:
            return f"\n\n{self._children(node)}\n\n"
        if name == "br":
            return "\n"
        if name == "hr":
            return "\n\n---\n\n"
        if name in ("strong", "b"):
            return self._wrap(node, "**")
        if name in ("em", "i"):
            return self._wrap(node, "_")
        if name == "code":
            return self._wrap(node, "`")
        if name == "pre":
            return self._pre(node)
        if name == "a":
            return self._link(node)
        if name == "img":
            return self._image(node)
        if name in ("ul", "ol"):
            return self._list(node)
        if name == "li":
            # Stray list item outside ul/ol.
            return f"\n- {self._inline(node)}\n"
        if name == "blockquote":
            return self._blockquote(node)
        if name == "table":
            return self._table(node)
        return self._children(node)

    def _inline(self, node: Tag) -> str:
        return _WS.sub(" ", self._children(node)).strip()

    def _wrap(self, node: Tag, marker: str) -> str:
        inner = self._children(node)
        text = inner.strip()
        if not text:
            return inner
        lead = " " if inner[:1].isspace() else ""
        trail = " " if inner[-1:].isspace() else ""
        return f"{lead}{marker}{text}{marker}{trail}"

    def _pre(self, node: Tag) -> str:
        code = _escape(_SENTINELS.sub("", node.get_text())).strip("\n")
        code = code.replace(" ", _INDENT).replace("\t", _TAB).replace("\n", _NEWLINE)
        return f"\n\n```{_NEWLINE}{code}{_NEWLINE}```\n\n"

    def _link(self, node: Tag) -> str:
        text = self._inline(node)
        href = (node.get("href") or "").strip()
        if not href or not text:
            return text
        return f"[{text}]({_escape(href)})"

    def _image(self, node: Tag) -> str:
        src = (node.get("src") or "").strip()
        if not src:
            return ""
        alt = _WS.sub(" ", node.get("alt") or "").strip()
        return f"![{_escape(alt)}]({_escape(src)})"

    def _list(self, node: Tag) -> str:
        ordered = node.name.lower() == "ol"
        start = _int_attr(node, "start", 1)
        lines: list[str] = []
        number = start
        for item in node.find_all("li", recursive=False):
            marker = f"{number}. " if ordered else "- "
            number += 1
            body = _tidy(self._children(item))
            body_lines = [line for line in body.split("\n") if line.strip()] or [""]
            lines.append(marker + body_lines[0])
            lines.extend(_INDENT * 4 + line for line in body_lines[1:])
        if not lines:
            return ""
        return "\n\n" + "\n".join(lines) + "\n\n"

    def _blockquote(self, node: Tag) -> str:
        body = _BLANK_RUNS.sub("\n\n", _tidy(self._children(node))).strip()
        if not body:
            return ""
        quoted = "\n".join(f"> {line}" if line else ">" for line in body.split("\n"))
        return f"\n\n{quoted}\n\n"

    def _table(self, node: Tag) -> str:
        rows: list[str] = []
        header_done = False
        for row in node.find_all("tr"):
            cells = row.find_all(["th", "td"], recursive=False)
            if not cells:
                continue
            rows.append("| " + " | ".join(self._inline(c).replace("|", "\\|") for c in cells) + " |")
            if not header_done:
                header_done = True
                if all(c.name == "th" for c in cells):
                    rows.append("| " + " | ".join("---" for _ in cells) + " |")
        if not rows:
            return ""
        return "\n\n" + "\n".join(rows) + "\n\n"


_default_converter = HtmlConverter()


def to_plain_text(markup: str, remove: Iterable[str] | None = None) -> str:
    """Convert an HTML fragment to Markdown-style text.

    Style blocks are removed unless remove names a different set of tags.
    """
    converter = _default_converter if remove is None else HtmlConverter(remove)
    return converter.convert(markup)


def _tidy(text: str) -> str:
    return _EDGE_SPACES.sub("\n", text).strip()


def _escape(text: str) -> str:
    return _TAG_LIKE.sub("&lt;", text)


def _int_attr(node: Tag, name: str, default: int) -> int:
    try:
        return int(node.get(name, default))
    except (TypeError, ValueError):
        return default
