"""Conversion of Markdown documents into ADF documents."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from . import adf
from .adf import ADFDocument, ADFMark, ADFNode, NodeType
from .adf2md import JiraMarkdownTranslator
from .adf2md import Translator as ReverseTranslator
from .syntax import SyntaxNode, parse, parse_inline

_UNSAFE_TYPES = frozenset(
    str(node_type)
    for node_type in (
        NodeType.PANEL,
        NodeType.MEDIA,
        NodeType.MEDIA_GROUP,
        NodeType.MEDIA_SINGLE,
        NodeType.INLINE_CARD,
        NodeType.EMOJI,
        NodeType.MENTION,
        NodeType.HARD_BREAK,
        NodeType.UNDERLINE,
    )
)

_MARK_FACTORIES = {
    "strong_emphasis": adf.strong_mark,
    "underline": adf.underline_mark,
    "strikethrough": adf.strikethrough_mark,
    "emphasis": adf.emphasis_mark,
}

_HEADING_LEVELS = {f"atx_h{level}_marker": level for level in range(1, 7)}
_PANEL_BLOCKS = frozenset({"paragraph", "atx_heading", "fenced_code_block", "list"})
_UNORDERED_MARKERS = frozenset({"list_marker_minus", "list_marker_plus", "list_marker_star"})


class UnsafeContentError(ValueError):
    """Raised when a document holds node types that are unsafe for V2 processing."""

    def __init__(self, types: Iterable[NodeType | str]) -> None:
        self.types = [str(node_type) for node_type in types]
        super().__init__(f"unsafe node types found: [{' '.join(self.types)}]")


def _walk_types(node: ADFNode) -> Iterator[str]:
    yield str(node.type)
    for mark in node.marks:
        yield str(mark.type)
    for child in node.content:
        yield from _walk_types(child)


class Translator:
    """Translates Markdown into ADF documents."""

    def __init__(
        self,
        *,
        user_mapping: Mapping[str, str] | None = None,
        reverse_translator: ReverseTranslator | None = None,
    ) -> None:
        self._user_mapping = dict(user_mapping or {})
        # Without a translator that has seen the original document, nothing is
        # known about its attachments and inline cards.
        self._reverse = (
            reverse_translator
            if reverse_translator is not None
            else ReverseTranslator(JiraMarkdownTranslator())
        )

    def translate_to_adf(self, content: str | bytes) -> ADFDocument:
        """Parse Markdown ``content`` into an ADF document."""
        source = content.decode("utf-8") if isinstance(content, bytes) else content
        doc = ADFDocument()
        self._process_node(parse(source), source, doc.content)
        return doc

    def check_safe_for_v2(self, body: str) -> None:
        """Raise UnsafeContentError if ``body`` yields node types unsafe for V2."""
        doc = self.translate_to_adf(body)
        found = dict.fromkeys(
            node_type
            for node in doc.content
            for node_type in _walk_types(node)
            if node_type in _UNSAFE_TYPES
        )
        if found:
            raise UnsafeContentError(found)

    # Block level

    def _process_node(self, node: SyntaxNode, source: str, out: list[ADFNode]) -> None:
        kind = node.kind
        if kind in ("document", "section"):
            self._process_children(node, source, out)
        elif kind == "atx_heading":
            out.append(self._heading(node, source))
        elif kind == "attachment":
            media = self._reverse.media_mapping
            for child in node.children:
                if child.kind == "attachment_path":
                    media_node = media.get(child.text(source))
                    if media_node is not None:
                        out.append(media_node)
        elif kind == "paragraph":
            out.append(self._paragraph(node, source))
        elif kind == "fenced_code_block":
            out.append(self._code_block(node, source))
        elif kind == "list":
            out.append(self._list(node, source))
        elif kind == "panel":
            out.append(self._panel(node, source))
        elif kind == "pipe_table":
            out.append(self._table(node, source))

    def _process_children(self, node: SyntaxNode, source: str, out: list[ADFNode]) -> None:
        for child in node.children:
            self._process_node(child, source, out)

    def _heading(self, node: SyntaxNode, source: str) -> ADFNode:
        level = 1
        inline: SyntaxNode | None = None
        for child in node.children:
            if child.kind in _HEADING_LEVELS:
                level = _HEADING_LEVELS[child.kind]
            elif child.kind == "inline":
                inline = child
        heading = adf.heading_node(level)
        if inline is not None:
            self._process_inline(inline, source, heading)
        return heading

    def _paragraph(self, node: SyntaxNode, source: str) -> ADFNode:
        paragraph = adf.paragraph_node()
        for child in node.children:
            if child.kind == "inline":
                self._process_inline(child, source, paragraph)
        return paragraph

    def _code_block(self, node: SyntaxNode, source: str) -> ADFNode:
        language = ""
        code = ""
        for child in node.children:
            if child.kind == "info_string":
                language = child.text(source).strip()
            elif child.kind == "code_fence_content":
                raw = child.text(source)
                if raw.endswith("\n```"):
                    code = raw[: -len("\n```")]
                elif raw.endswith("```"):
                    code = raw[: -len("```")]
                else:
                    code = raw
        block = adf.code_block_node(language)
        if code:
            block.content.append(adf.text_node(code))
        return block

    def _list(self, node: SyntaxNode, source: str) -> ADFNode:
        items = [child for child in node.children if child.kind == "list_item"]
        ordered = False
        order = 1
        for item in items:
            marker_type = self._marker_type(item)
            if marker_type == "ordered":
                ordered = True
                order = self._list_order(item, source)
                break
            if marker_type == "unordered":
                break

        list_node = adf.ordered_list_node(order) if ordered else adf.bullet_list_node()
        list_node.content.extend(self._list_item(item, source) for item in items)
        return list_node

    def _list_item(self, node: SyntaxNode, source: str) -> ADFNode:
        item = adf.list_item_node()
        for child in node.children:
            if child.kind == "paragraph":
                item.content.append(self._paragraph(child, source))
            elif child.kind == "list":
                item.content.append(self._list(child, source))
        return item

    @staticmethod
    def _marker_type(item: SyntaxNode) -> str:
        for child in item.children:
            if child.kind == "list_marker_dot":
                return "ordered"
            if child.kind in _UNORDERED_MARKERS:
                return "unordered"
        return "unknown"

    @staticmethod
    def _list_order(item: SyntaxNode, source: str) -> int:
        for child in item.children:
            if child.kind == "list_marker_dot":
                number = child.text(source).strip().removesuffix(".")
                try:
                    return int(number)
                except ValueError:
                    pass
        return 1

    def _panel(self, node: SyntaxNode, source: str) -> ADFNode:
        panel = adf.panel_node("info")
        for child in node.children:
            if child.kind == "panel_start":
                assert panel.attrs is not None
                panel.attrs["panelType"] = self._panel_type(child, source)
            elif child.kind == "section":
                self._process_children(child, source, panel.content)
            elif child.kind in _PANEL_BLOCKS:
                self._process_node(child, source, panel.content)
        return panel

    @staticmethod
    def _panel_type(start: SyntaxNode, source: str) -> str:
        for child in start.children:
            if child.kind != "panel_type":
                continue
            type_node = child.find("type")
            if type_node is not None:
                return type_node.text(source).removeprefix("#")
        return "info"

    def _table(self, node: SyntaxNode, source: str) -> ADFNode:
        table = adf.table_node()
        for child in node.children:
            if child.kind == "pipe_table_header":
                table.content.append(self._table_row(child, source, header=True))
            elif child.kind == "pipe_table_row":
                table.content.append(self._table_row(child, source, header=False))
        return table

    def _table_row(self, node: SyntaxNode, source: str, *, header: bool) -> ADFNode:
        row = adf.table_row_node()
        for child in node.children:
            if child.kind != "pipe_table_cell":
                continue
            cell = adf.table_header_node() if header else adf.table_cell_node()
            paragraph = adf.paragraph_node()
            cell_text = child.text(source).strip()
            if cell_text:
                paragraph.content.append(self._cell_text(cell_text, header))
            cell.content.append(paragraph)
            row.content.append(cell)
        return row

    @staticmethod
    def _cell_text(cell_text: str, header: bool) -> ADFNode:
        if cell_text.startswith("**") and cell_text.endswith("**") and len(cell_text) > 4:
            return adf.text_node(cell_text[2:-2], [adf.strong_mark()])
        # Header cells are bold by convention.
        return adf.text_node(cell_text, [adf.strong_mark()] if header else None)

    # Inline level

    def _process_inline(self, inline: SyntaxNode, source: str, parent: ADFNode) -> None:
        text = inline.text(source)
        root = parse_inline(text)
        pos = 0
        for child in root.children:
            if child.start > pos:
                parent.content.append(adf.text_node(text[pos : child.start]))
            self._inline_child(child, text, parent)
            pos = child.end
        rest = text[pos:]
        if rest.strip():
            parent.content.append(adf.text_node(rest))

    def _inline_child(self, child: SyntaxNode, text: str, parent: ADFNode) -> None:
        kind = child.kind
        if kind == "people_mention":
            email = child.text(text).strip()
            user_id = self._user_mapping.get(email, email)
            display = email.removeprefix("@").split("@", 1)[0]
            parent.content.append(adf.mention_node(user_id, display))
        elif kind == "code_span":
            self._code_span(child, text, parent)
        elif kind == "inline_link":
            self._link(child, text, parent)
        elif kind in _MARK_FACTORIES:
            content, marks = self._marked_text(child, text)
            if content.strip():
                parent.content.append(adf.text_node(content, marks))
        else:
            content = child.text(text)
            if content.strip():
                parent.content.append(adf.text_node(content))

    @staticmethod
    def _code_span(node: SyntaxNode, text: str, parent: ADFNode) -> None:
        text_child = node.find("text")
        code = text_child.text(text) if text_child is not None else ""
        if not code:
            code = node.text(text).strip("`")
        if code:
            parent.content.append(adf.text_node(code, [adf.code_mark()]))

    def _link(self, node: SyntaxNode, text: str, parent: ADFNode) -> None:
        link_text = ""
        url = ""
        for child in node.children:
            if child.kind == "link_text":
                link_text = child.text(text)
                if link_text.startswith("[") and link_text.endswith("]"):
                    link_text = link_text[1:-1]
            elif child.kind == "link_destination":
                url = child.text(text)
                if url.startswith("(") and url.endswith(")"):
                    url = url[1:-1]

        card = self._reverse.inline_card_mapping.get(url)
        if card is not None:
            parent.content.append(card)
            return
        if link_text and url:
            parent.content.append(adf.text_node(link_text, [adf.link_mark(url)]))

    def _marked_text(self, node: SyntaxNode, text: str) -> tuple[str, list[ADFMark]]:
        """Return the text of a formatting node with the marks it carries."""
        kind = node.kind
        factory = _MARK_FACTORIES.get(kind)
        marks: list[ADFMark] = [factory()] if factory is not None else []
        delimiters = [child for child in node.children if child.kind == "emphasis_delimiter"]

        if kind == "strong_emphasis":
            if len(delimiters) >= 4:
                inner_start, inner_end = delimiters[1].end, delimiters[2].start
                if inner_end > inner_start:
                    for child in node.children:
                        if child.kind in ("underline", "strikethrough", "emphasis"):
                            nested_text, nested_marks = self._marked_text(child, text)
                            return nested_text, marks + nested_marks
                    return text[inner_start:inner_end], marks
        elif kind in ("strikethrough", "emphasis"):
            if len(delimiters) >= 2:
                inner_start, inner_end = delimiters[0].end, delimiters[1].start
                if inner_end > inner_start:
                    for child in node.children:
                        if child.kind in _MARK_FACTORIES and child.kind != kind:
                            nested_text, nested_marks = self._marked_text(child, text)
                            return nested_text, marks + nested_marks
                    return text[inner_start:inner_end], marks
        elif kind == "underline":
            content = node.find("underline_content")
            if content is not None:
                return content.text(text), marks

        parts: list[str] = []
        for child in node.children:
            child_kind = child.kind
            if child_kind == "underline_content":
                parts.append(child.text(text))
            elif child_kind in _MARK_FACTORIES:
                nested_text, nested_marks = self._marked_text(child, text)
                marks.extend(nested_marks)
                parts.append(nested_text)
            elif child_kind in ("emphasis_delimiter", "underline_open", "underline_close"):
                continue
            elif not any(part in child_kind for part in ("delimiter", "_open", "_close")):
                parts.append(child.text(text))
        return "".join(parts), marks