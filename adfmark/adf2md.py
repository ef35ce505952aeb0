"""Rendering of ADF trees as Markdown."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Union

from .adf import ADFDocument, ADFMark, ADFNode, NodeType, get_adf_node_type

logger = logging.getLogger(__name__)

Element = Union[ADFNode, ADFMark]
Hook = Callable[[Element], str]
EmailResolver = Callable[[str], str]

_VALID_ATTRS = ("language", "level", "text")


class TagTranslator(Protocol):
    """Produces the opening and closing markup of nodes and marks."""

    def open(self, node: Element, depth: int) -> str: ...

    def close(self, node: Element) -> str: ...


def _string_attr(attrs: dict[str, Any] | None, key: str) -> str:
    value = (attrs or {}).get(key)
    return value if isinstance(value, str) else ""


def _fmt(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def _sanitize(text: str) -> str:
    return text.rstrip("\n").replace("<", "\u276c").replace(">", "\u276d")


class Translator:
    """Walks an ADF tree and renders it with a tag translator."""

    def __init__(self, tags: TagTranslator) -> None:
        self._tags = tags
        self._parts: list[str] = []
        self._media: dict[str, ADFNode] = {}
        self._cards: dict[str, ADFNode] = {}

    @property
    def media_mapping(self) -> dict[str, ADFNode]:
        """Media ids seen so far, mapped to their media container nodes."""
        return self._media

    @property
    def inline_card_mapping(self) -> dict[str, ADFNode]:
        """Inline card URLs seen so far, mapped to their nodes."""
        return self._cards

    def translate(self, doc: ADFNode | ADFDocument) -> str:
        """Render the top-level content of ``doc``."""
        self._parts = []
        for node in doc.content:
            self._visit(node, 0)
        return "".join(self._parts)

    def check_support(self, node: ADFNode | None) -> set[NodeType]:
        """Return the unsupported node types found in the tree below ``node``."""
        forbidden: set[NodeType] = set()
        if node is None:
            return forbidden
        if node.type == NodeType.BLOCKQUOTE:
            forbidden.add(NodeType.BLOCKQUOTE)
        for child in node.content:
            forbidden |= self.check_support(child)
        return forbidden

    def _record_mappings(self, node: ADFNode) -> None:
        if node.type in (NodeType.MEDIA_GROUP, NodeType.MEDIA_SINGLE):
            if not node.content:
                raise ValueError("media container node is supposed to have children")
            media_id = _string_attr(node.content[0].attrs, "id")
            if media_id:
                self._media[media_id] = node
        if node.type == NodeType.INLINE_CARD:
            url = _string_attr(node.attrs, "url")
            if url:
                self._cards[url] = node

    def _visit(self, node: ADFNode, depth: int) -> None:
        self._record_mappings(node)
        self._parts.append(self._tags.open(node, depth))

        for child in node.content:
            self._visit(child, depth + 1)

        if get_adf_node_type(node.type) == NodeType.CHILD:
            marks = node.marks if node.type == NodeType.TEXT else []
            openers = [self._tags.open(mark, depth) for mark in marks]
            closers = [self._tags.close(mark) for mark in reversed(marks)]
            pieces = (*openers, _sanitize(node.text), *closers)

            tags = self._tags
            if isinstance(tags, MarkdownTranslator) and tags.in_table_cell:
                for piece in pieces:
                    tags.add_cell_content(piece)
                return
            self._parts.extend(pieces)

        self._parts.append(self._tags.close(node))


@dataclass
class _TableState:
    rows: int = 0
    cols: int = 0
    ccol: int = 0
    sep: bool = False
    content: list[list[str]] = field(default_factory=list)
    widths: list[int] = field(default_factory=list)
    in_table: bool = False
    in_cell: bool = False


@dataclass
class _ListState:
    ordered: dict[int, bool] = field(default_factory=dict)
    unordered: dict[int, bool] = field(default_factory=dict)
    depth_ordered: int = 0
    depth_unordered: int = 0
    counter: defaultdict[int, int] = field(default_factory=lambda: defaultdict(int))


class MarkdownTranslator:
    """Markdown markup for ADF nodes and marks."""

    def __init__(
        self,
        *,
        open_hooks: dict[NodeType | str, Hook] | None = None,
        close_hooks: dict[NodeType | str, Hook] | None = None,
        email_resolver: EmailResolver | None = None,
    ) -> None:
        self._open_hooks = {str(k): v for k, v in (open_hooks or {}).items()}
        self._close_hooks = {str(k): v for k, v in (close_hooks or {}).items()}
        self._email_resolver = email_resolver
        self._table = _TableState()
        self._list = _ListState()

    @property
    def in_table_cell(self) -> bool:
        """Whether rendering is currently inside a table cell or header."""
        return self._table.in_cell

    def add_cell_content(self, content: str) -> None:
        """Append ``content`` to the table cell currently being filled."""
        table = self._table
        if table.rows == 0 or len(table.content) < table.rows:
            return
        row = table.content[table.rows - 1]
        column = table.ccol - 1 if table.ccol > 0 else table.cols - 1
        if column < 0:
            raise IndexError("no table column is open")
        while len(row) <= column:
            row.append("")
        row[column] += content

    def _column_widths(self) -> list[int]:
        rows = self._table.content
        widths = [0] * max(len(row) for row in rows)
        for row in rows:
            for column, cell in enumerate(row):
                widths[column] = max(widths[column], len(cell.encode("utf-8")))
        return [max(width, 5) for width in widths]

    def _render_table(self) -> str:
        rows = self._table.content
        if not rows:
            return ""
        widths = self._column_widths()
        self._table.widths = widths
        lines: list[str] = []
        for index, row in enumerate(rows):
            cells = "".join(f" {cell.ljust(width)} |" for cell, width in zip(row, widths))
            lines.append(f"|{cells}\n")
            if index == 0:
                separator = "".join("-" * (width + 2) + "|" for width in widths[: len(row)])
                lines.append(f"|{separator}\n")
        return "".join(lines)

    def open(self, node: Element, depth: int = 0) -> str:
        nt = node.type
        attrs = node.attrs or {}
        parts: list[str] = []

        hook = self._open_hooks.get(str(nt))
        if hook is not None:
            parts.append(hook(node))
        else:
            lists = self._list
            table = self._table
            match nt:
                case NodeType.BLOCKQUOTE:
                    parts.append("> ")
                case NodeType.CODE_BLOCK:
                    parts.append("```")
                    if "language" not in attrs:
                        parts.append("\n")
                case NodeType.PANEL:
                    parts.append("---\n")
                case NodeType.TABLE:
                    parts.append("\n")
                    table.in_table = True
                case NodeType.MEDIA:
                    media_id = _string_attr(attrs, "id")
                    parts.append(f"\n{{attachment:{media_id}}}" if media_id else "\n[attachment]")
                case NodeType.BULLET_LIST:
                    lists.depth_unordered += 1
                    lists.unordered[lists.depth_unordered] = True
                case NodeType.ORDERED_LIST:
                    lists.depth_ordered += 1
                    lists.ordered[lists.depth_ordered] = True
                case NodeType.LIST_ITEM:
                    if lists.ordered.get(lists.depth_ordered, False):
                        parts.append("    " * max(lists.depth_ordered - 1, 0))
                        lists.counter[lists.depth_ordered] += 1
                        parts.append(f"{lists.counter[lists.depth_ordered]}. ")
                    else:
                        parts.append("    " * max(lists.depth_unordered - 1, 0))
                        parts.append("- ")
                case NodeType.TABLE_HEADER:
                    table.cols += 1
                    table.in_cell = True
                case NodeType.TABLE_CELL:
                    table.ccol += 1
                    table.in_cell = True
                case NodeType.TABLE_ROW:
                    table.rows += 1
                    if table.rows == 1 and not table.sep:
                        table.sep = True
                    if len(table.content) < table.rows:
                        table.content.append([])
                    table.ccol = 0
                case NodeType.HARD_BREAK:
                    parts.append("\n\n")
                case NodeType.MENTION:
                    return " @" + self._mention_text(attrs)
                case NodeType.INLINE_CARD:
                    url = _string_attr(attrs, "url")
                    parts.append(f"[link]({url})" if url else " \U0001f4cd ")
                case NodeType.UNDERLINE:
                    parts.append("<u>")
                case NodeType.STRONG:
                    parts.append("**")
                case NodeType.EM:
                    parts.append("_")
                case NodeType.CODE:
                    parts.append("`")
                case NodeType.STRIKE:
                    parts.append("-")
                case NodeType.LINK:
                    parts.append("[")

        parts.append(self._open_attributes(attrs))
        return "".join(parts)

    def close(self, node: Element) -> str:
        nt = node.type
        parts: list[str] = []

        hook = self._close_hooks.get(str(nt))
        if hook is not None:
            parts.append(hook(node))
        else:
            lists = self._list
            match nt:
                case NodeType.BLOCKQUOTE:
                    parts.append("\n")
                case NodeType.CODE_BLOCK:
                    parts.append("\n```\n")
                case NodeType.PANEL:
                    parts.append("---\n")
                case NodeType.HEADING:
                    parts.append("\n")
                case NodeType.BULLET_LIST:
                    lists.unordered[lists.depth_unordered] = False
                    lists.depth_unordered -= 1
                case NodeType.ORDERED_LIST:
                    lists.ordered[lists.depth_ordered] = False
                    lists.depth_ordered -= 1
                case NodeType.PARAGRAPH:
                    if lists.unordered.get(lists.depth_unordered, False) or lists.ordered.get(
                        lists.depth_ordered, False
                    ):
                        parts.append("\n")
                    elif self._table.rows == 0:
                        parts.append("\n\n")
                case NodeType.TABLE:
                    parts.append(self._render_table())
                    self._table = _TableState()
                case NodeType.TABLE_HEADER | NodeType.TABLE_CELL:
                    self._table.in_cell = False
                case NodeType.MENTION | NodeType.EMOJI:
                    parts.append(" ")
                case NodeType.UNDERLINE:
                    parts.append("</u>")
                case NodeType.STRONG:
                    parts.append("**")
                case NodeType.EM:
                    parts.append("_")
                case NodeType.CODE:
                    parts.append("`")
                case NodeType.STRIKE:
                    parts.append("-")
                case NodeType.LINK:
                    parts.append("]")

        href = (node.attrs or {}).get("href")
        if href is not None:
            parts.append(f"({_fmt(href)}) ")
        return "".join(parts)

    @staticmethod
    def _open_attributes(attrs: dict[str, Any]) -> str:
        parts: list[str] = []
        newline = False
        for key, value in attrs.items():
            if key in _VALID_ATTRS:
                if key == "language":
                    parts.append(_fmt(value))
                    newline = True
                elif key == "level":
                    parts.append("#" * int(value) + " ")
                elif key == "text":
                    parts.append(_fmt(value))
                    newline = False
            if newline:
                parts.append("\n")
        return "".join(parts)

    def _mention_text(self, attrs: dict[str, Any]) -> str:
        user_id = attrs.get("id")
        if isinstance(user_id, str) and self._email_resolver is not None:
            email = self._email_resolver(user_id)
            if email:
                return email

        if "text" in attrs:
            text = _fmt(attrs["text"])
            if self._email_resolver is not None:
                logger.debug("Using fallback text: %s", text)
            return text[1:] if text.startswith("@") else text
        return ""


def _panel_open_hook(node: Element) -> str:
    attrs = node.attrs or {}
    parts = ["\n{panel"]
    if attrs:
        parts.append(":")
    for key, value in attrs.items():
        if key == "panelType":
            parts.append(f"type={_fmt(value)}")
        else:
            parts.append(f"|{key}={_fmt(value)}")
    parts.append("}\n")
    return "".join(parts)


def _panel_close_hook(node: Element) -> str:
    return "{/panel}\n"


class JiraMarkdownTranslator(MarkdownTranslator):
    """Markdown markup with Jira-style panels."""

    def __init__(
        self,
        *,
        open_hooks: dict[NodeType | str, Hook] | None = None,
        close_hooks: dict[NodeType | str, Hook] | None = None,
        email_resolver: EmailResolver | None = None,
    ) -> None:
        super().__init__(
            open_hooks=open_hooks if open_hooks is not None else {NodeType.PANEL: _panel_open_hook},
            close_hooks=close_hooks if close_hooks is not None else {NodeType.PANEL: _panel_close_hook},
            email_resolver=email_resolver,
        )

    def open(self, node: Element, depth: int = 0) -> str:
        return super().open(node, depth)

    def close(self, node: Element) -> str:
        return super().close(node)