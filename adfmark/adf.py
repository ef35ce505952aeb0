"""Atlassian Document Format (ADF) data model and node factories."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeType(str, Enum):
    """Known ADF node and mark types."""

    PARENT = "parent"
    CHILD = "child"
    UNKNOWN = "unknown"

    BLOCKQUOTE = "blockquote"
    BULLET_LIST = "bulletList"
    CODE_BLOCK = "codeBlock"
    HEADING = "heading"
    ORDERED_LIST = "orderedList"
    PANEL = "panel"
    PARAGRAPH = "paragraph"
    TABLE = "table"
    MEDIA = "media"
    MEDIA_GROUP = "mediaGroup"
    MEDIA_SINGLE = "mediaSingle"

    TEXT = "text"
    LIST_ITEM = "listItem"
    TABLE_ROW = "tableRow"
    TABLE_HEADER = "tableHeader"
    TABLE_CELL = "tableCell"

    INLINE_CARD = "inlineCard"
    EMOJI = "emoji"
    MENTION = "mention"
    HARD_BREAK = "hardBreak"

    EM = "em"
    LINK = "link"
    CODE = "code"
    STRIKE = "strike"
    STRONG = "strong"
    UNDERLINE = "underline"

    def __str__(self) -> str:
        return self.value


_PARENT_NODES = (
    NodeType.BLOCKQUOTE,
    NodeType.BULLET_LIST,
    NodeType.CODE_BLOCK,
    NodeType.HEADING,
    NodeType.ORDERED_LIST,
    NodeType.PANEL,
    NodeType.PARAGRAPH,
    NodeType.TABLE,
    NodeType.MEDIA,
)

_CHILD_NODES = (
    NodeType.TEXT,
    NodeType.LIST_ITEM,
    NodeType.TABLE_ROW,
    NodeType.TABLE_HEADER,
    NodeType.TABLE_CELL,
)


def _coerce_type(value: Any) -> NodeType | str:
    """Return the matching NodeType, or the raw string for unknown types."""
    try:
        return NodeType(value)
    except ValueError:
        return str(value)


def _type_str(value: NodeType | str) -> str:
    return value.value if isinstance(value, NodeType) else str(value)


def _sorted_value(value: Any) -> Any:
    """Sort mapping keys recursively, the way map keys are serialised."""
    if isinstance(value, dict):
        return {str(k): _sorted_value(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [_sorted_value(v) for v in value]
    if isinstance(value, NodeType):
        return value.value
    return value


@dataclass
class ADFMark:
    """A formatting mark applied to a text node."""

    type: NodeType | str
    attrs: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": _type_str(self.type)}
        if self.attrs:
            data["attrs"] = _sorted_value(self.attrs)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ADFMark:
        attrs = data.get("attrs")
        return cls(type=_coerce_type(data.get("type", "")), attrs=dict(attrs) if attrs is not None else None)


@dataclass
class ADFNode:
    """A node of an ADF tree."""

    type: NodeType | str
    content: list[ADFNode] = field(default_factory=list)
    text: str = ""
    marks: list[ADFMark] = field(default_factory=list)
    attrs: dict[str, Any] | None = None

    def replace_all(self, old: str, new: str) -> None:
        """Replace every occurrence of ``old`` in the text nodes below this node."""
        for child in self.content:
            child._replace(old, new)

    def _replace(self, old: str, new: str) -> None:
        for child in self.content:
            child._replace(old, new)
        if self.type == NodeType.TEXT:
            self.text = self.text.replace(old, new)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": _type_str(self.type)}
        if self.content:
            data["content"] = [child.to_dict() for child in self.content]
        if self.text:
            data["text"] = self.text
        if self.marks:
            data["marks"] = [mark.to_dict() for mark in self.marks]
        if self.attrs:
            data["attrs"] = _sorted_value(self.attrs)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ADFNode:
        attrs = data.get("attrs")
        return cls(
            type=_coerce_type(data.get("type", "")),
            content=[cls.from_dict(child) for child in data.get("content") or []],
            text=data.get("text") or "",
            marks=[ADFMark.from_dict(mark) for mark in data.get("marks") or []],
            attrs=dict(attrs) if attrs is not None else None,
        )


@dataclass
class ADFDocument:
    """The root of an ADF document."""

    version: int = 1
    type: str = "doc"
    content: list[ADFNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "type": self.type,
            "content": [node.to_dict() for node in self.content],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ADFDocument:
        return cls(
            version=int(data.get("version", 0)),
            type=data.get("type", ""),
            content=[ADFNode.from_dict(node) for node in data.get("content") or []],
        )

    def to_json(self) -> str:
        """Serialise the document as indented JSON with HTML-safe escaping."""
        text = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        return (
            text.replace("<", "\\u003c")
            .replace(">", "\\u003e")
            .replace("&", "\\u0026")
            .replace("\u2028", "\\u2028")
            .replace("\u2029", "\\u2029")
        )


def parent_nodes() -> list[NodeType]:
    """Return the supported ADF parent node types."""
    return list(_PARENT_NODES)


def child_nodes() -> list[NodeType]:
    """Return the supported ADF child node types."""
    return list(_CHILD_NODES)


def is_parent_node(identifier: NodeType | str) -> bool:
    return identifier in _PARENT_NODES


def is_child_node(identifier: NodeType | str) -> bool:
    return identifier in _CHILD_NODES


def get_adf_node_type(identifier: NodeType | str) -> NodeType:
    """Classify a node type as parent, child or unknown."""
    if is_parent_node(identifier):
        return NodeType.PARENT
    if is_child_node(identifier):
        return NodeType.CHILD
    return NodeType.UNKNOWN


def paragraph_node() -> ADFNode:
    return ADFNode(type=NodeType.PARAGRAPH)


def text_node(text: str, marks: list[ADFMark] | None = None) -> ADFNode:
    return ADFNode(type=NodeType.TEXT, text=text, marks=list(marks or []))


def heading_node(level: int) -> ADFNode:
    return ADFNode(type=NodeType.HEADING, attrs={"level": level})


def link_mark(href: str) -> ADFMark:
    return ADFMark(type=NodeType.LINK, attrs={"href": href})


def people_mention_mark(email: str) -> ADFMark:
    return ADFMark(type=NodeType.MENTION, attrs={"id": email, "text": email})


def code_mark() -> ADFMark:
    return ADFMark(type=NodeType.CODE)


def strong_mark() -> ADFMark:
    return ADFMark(type=NodeType.STRONG)


def underline_mark() -> ADFMark:
    return ADFMark(type=NodeType.UNDERLINE)


def strikethrough_mark() -> ADFMark:
    return ADFMark(type=NodeType.STRIKE)


def emphasis_mark() -> ADFMark:
    return ADFMark(type=NodeType.EM)


def mention_node(user_id: str, display_text: str) -> ADFNode:
    return ADFNode(type=NodeType.MENTION, attrs={"id": user_id, "text": display_text})


def code_block_node(language: str = "") -> ADFNode:
    attrs: dict[str, Any] = {"language": language} if language else {}
    return ADFNode(type=NodeType.CODE_BLOCK, attrs=attrs)


def bullet_list_node() -> ADFNode:
    return ADFNode(type=NodeType.BULLET_LIST)


def ordered_list_node(order: int = 1) -> ADFNode:
    attrs: dict[str, Any] = {"order": order} if order > 1 else {}
    return ADFNode(type=NodeType.ORDERED_LIST, attrs=attrs)


def list_item_node() -> ADFNode:
    return ADFNode(type=NodeType.LIST_ITEM)


def panel_node(panel_type: str) -> ADFNode:
    return ADFNode(type=NodeType.PANEL, attrs={"panelType": panel_type})


def table_node() -> ADFNode:
    return ADFNode(
        type=NodeType.TABLE,
        attrs={"isNumberColumnEnabled": False, "layout": "align-start"},
    )


def table_row_node() -> ADFNode:
    return ADFNode(type=NodeType.TABLE_ROW)


def table_header_node() -> ADFNode:
    return ADFNode(type=NodeType.TABLE_HEADER, attrs={})


def table_cell_node() -> ADFNode:
    return ADFNode(type=NodeType.TABLE_CELL, attrs={})