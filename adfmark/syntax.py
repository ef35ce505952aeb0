"""A small Markdown parser producing a concrete syntax tree of named nodes.

Block structure is produced by :func:`parse`; inline structure of the text
held by ``inline`` nodes is produced by :func:`parse_inline`.  Node offsets
are character offsets into the text that was parsed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_HEADING = re.compile(r"(#{1,6})(?:[ \t]+|$)")
_HEADING_CLOSE = re.compile(r"[ \t]+#+$")
_FENCE = re.compile(r"(`{3,}|~{3,})(.*)$")
_PANEL_START = re.compile(r"\{panel(?::([^}]*))?\}\s*$")
_PANEL_END = "{/panel}"
_ATTACHMENT = re.compile(r"\{attachment:([^}]+)\}\s*$")
_LIST_MARKER = re.compile(r"([-+*]|\d{1,9}\.)(?:[ \t]+|$)")
_TABLE_DELIMITER = re.compile(r"\s*\|?\s*:?-+:?\s*(?:\|\s*:?-+:?\s*)*\|?\s*$")
_MENTION = re.compile(r"@[\w+-]+(?:\.[\w+-]+)*(?:@[\w-]+(?:\.[\w-]+)+)?")
_PUNCTUATION = frozenset(".,!?;:")

_MARKER_KINDS = {
    "-": "list_marker_minus",
    "+": "list_marker_plus",
    "*": "list_marker_star",
}


@dataclass
class SyntaxNode:
    """A named span of the parsed text with its child nodes."""

    kind: str
    start: int
    end: int
    children: list[SyntaxNode] = field(default_factory=list)

    def text(self, source: str | bytes) -> str:
        """Return the part of ``source`` this node covers."""
        if isinstance(source, bytes):
            source = source.decode("utf-8")
        return source[self.start : self.end]

    def find(self, kind: str) -> SyntaxNode | None:
        """Return the first direct child of the given kind, if any."""
        return next((child for child in self.children if child.kind == kind), None)


def _width(line: str) -> int:
    width = 0
    for char in line:
        if char == " ":
            width += 1
        elif char == "\t":
            width += 4
        else:
            break
    return width


def _lead(line: str) -> int:
    return len(line) - len(line.lstrip())


class _BlockParser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.lines: list[tuple[int, int]] = []
        pos = 0
        for raw in source.split("\n"):
            end = pos + len(raw)
            stop = end - 1 if raw.endswith("\r") else end
            self.lines.append((pos, stop))
            pos = end + 1

    def line(self, index: int) -> str:
        start, end = self.lines[index]
        return self.source[start:end]

    def blank(self, index: int) -> bool:
        return not self.line(index).strip()

    def parse(self) -> SyntaxNode:
        children = self.blocks(0, len(self.lines))
        return SyntaxNode("document", 0, len(self.source), children)

    def blocks(self, lo: int, hi: int) -> list[SyntaxNode]:
        nodes: list[SyntaxNode] = []
        index = lo
        while index < hi:
            if self.blank(index):
                index += 1
                continue
            node, index = self.block(index, hi)
            nodes.append(node)
        return nodes

    def block(self, index: int, hi: int) -> tuple[SyntaxNode, int]:
        body = self.line(index).lstrip()
        if _FENCE.match(body):
            return self.fenced_code(index, hi)
        if _HEADING.match(body):
            return self.heading(index), index + 1
        if _PANEL_START.match(body):
            return self.panel(index, hi)
        if _ATTACHMENT.match(body):
            return self.attachment(index), index + 1
        if _LIST_MARKER.match(body):
            return self.list_block(index, hi)
        if self.table_starts(index, hi):
            return self.table(index, hi)
        return self.paragraph(index, hi)

    def starts_block(self, index: int, hi: int) -> bool:
        body = self.line(index).lstrip()
        return bool(
            _FENCE.match(body)
            or _HEADING.match(body)
            or _PANEL_START.match(body)
            or body.rstrip() == _PANEL_END
            or _ATTACHMENT.match(body)
            or _LIST_MARKER.match(body)
            or self.table_starts(index, hi)
        )

    def table_starts(self, index: int, hi: int) -> bool:
        return (
            self.line(index).lstrip().startswith("|")
            and index + 1 < hi
            and "-" in self.line(index + 1)
            and _TABLE_DELIMITER.match(self.line(index + 1)) is not None
        )

    def paragraph_node(self, start: int, last: int) -> SyntaxNode:
        line_start, _ = self.lines[last]
        end = max(start, line_start + len(self.line(last).rstrip()))
        children = [SyntaxNode("inline", start, end)] if start < end else []
        return SyntaxNode("paragraph", start, end, children)

    def paragraph(self, index: int, hi: int) -> tuple[SyntaxNode, int]:
        last = index
        following = index + 1
        while following < hi and not self.blank(following) and not self.starts_block(following, hi):
            last = following
            following += 1
        start = self.lines[index][0] + _lead(self.line(index))
        return self.paragraph_node(start, last), last + 1

    def heading(self, index: int) -> SyntaxNode:
        line_start, line_end = self.lines[index]
        line = self.line(index)
        base = line_start + _lead(line)
        body = line.lstrip()
        match = _HEADING.match(body)
        assert match is not None
        level = len(match.group(1))
        children = [SyntaxNode(f"atx_h{level}_marker", base, base + level)]
        rest = body[match.end() :].rstrip()
        closing = _HEADING_CLOSE.search(rest)
        if closing:
            rest = rest[: closing.start()]
        elif set(rest) == {"#"}:
            rest = ""
        if rest:
            start = base + match.end()
            children.append(SyntaxNode("inline", start, start + len(rest)))
        return SyntaxNode("atx_heading", line_start, line_end, children)

    def fenced_code(self, index: int, hi: int) -> tuple[SyntaxNode, int]:
        line_start, line_end = self.lines[index]
        line = self.line(index)
        base = line_start + _lead(line)
        body = line.lstrip()
        match = _FENCE.match(body)
        assert match is not None
        fence = match.group(1)
        fence_char = fence[0]
        children = [SyntaxNode("fenced_code_block_delimiter", base, base + len(fence))]
        info = match.group(2)
        if info.strip():
            info_start = base + len(fence) + _lead(info)
            children.append(SyntaxNode("info_string", info_start, info_start + len(info.strip())))

        closing = next(
            (
                j
                for j in range(index + 1, hi)
                if (stripped := self.line(j).strip()).startswith(fence)
                and set(stripped) == {fence_char}
            ),
            None,
        )
        last_content = (closing if closing is not None else hi) - 1
        content_start = self.lines[index + 1][0] if index + 1 < hi else line_end
        content_end = self.lines[last_content][1] if last_content > index else content_start
        children.append(SyntaxNode("code_fence_content", content_start, content_end))

        if closing is None:
            return SyntaxNode("fenced_code_block", line_start, self.lines[hi - 1][1], children), hi
        close_start, close_end = self.lines[closing]
        close_base = close_start + _lead(self.line(closing))
        close_len = len(self.line(closing).strip())
        children.append(SyntaxNode("fenced_code_block_delimiter", close_base, close_base + close_len))
        return SyntaxNode("fenced_code_block", line_start, close_end, children), closing + 1

    def panel(self, index: int, hi: int) -> tuple[SyntaxNode, int]:
        line_start, _ = self.lines[index]
        line = self.line(index)
        base = line_start + _lead(line)
        body = line.lstrip()
        match = _PANEL_START.match(body)
        assert match is not None
        start_children: list[SyntaxNode] = []
        if match.group(1) is not None:
            attrs_start = base + match.start(1)
            attrs = match.group(1)
            type_nodes: list[SyntaxNode] = []
            offset = 0
            for segment in attrs.split("|"):
                key, sep, value = segment.partition("=")
                if sep and key.strip() == "type" and value.strip():
                    value_start = attrs_start + offset + len(key) + 1 + _lead(value)
                    type_nodes.append(SyntaxNode("type", value_start, value_start + len(value.strip())))
                    break
                offset += len(segment) + 1
            start_children.append(
                SyntaxNode("panel_type", attrs_start, attrs_start + len(attrs), type_nodes)
            )
        children = [SyntaxNode("panel_start", base, base + len(body.rstrip()), start_children)]

        closing = next((j for j in range(index + 1, hi) if self.line(j).strip() == _PANEL_END), None)
        inner_end = closing if closing is not None else hi
        children.extend(self.blocks(index + 1, inner_end))
        if closing is None:
            return SyntaxNode("panel", line_start, self.lines[hi - 1][1], children), hi
        close_start, close_end = self.lines[closing]
        close_base = close_start + _lead(self.line(closing))
        children.append(SyntaxNode("panel_end_mark", close_base, close_base + len(_PANEL_END)))
        return SyntaxNode("panel", line_start, close_end, children), closing + 1

    def attachment(self, index: int) -> SyntaxNode:
        line_start, line_end = self.lines[index]
        line = self.line(index)
        base = line_start + _lead(line)
        match = _ATTACHMENT.match(line.lstrip())
        assert match is not None
        path = SyntaxNode("attachment_path", base + match.start(1), base + match.end(1))
        return SyntaxNode("attachment", line_start, line_end, [path])

    @staticmethod
    def marker_kind(marker: str) -> str:
        return _MARKER_KINDS.get(marker, "list_marker_dot")

    def list_block(self, index: int, hi: int) -> tuple[SyntaxNode, int]:
        first = self.line(index)
        indent = _width(first)
        first_match = _LIST_MARKER.match(first.lstrip())
        assert first_match is not None
        kind = self.marker_kind(first_match.group(1))
        items: list[SyntaxNode] = []
        current = index
        while current < hi and not self.blank(current):
            line = self.line(current)
            match = _LIST_MARKER.match(line.lstrip())
            if match is None or _width(line) != indent or self.marker_kind(match.group(1)) != kind:
                break
            item, current = self.list_item(current, hi, indent)
            items.append(item)
        end = self.lines[current - 1][1]
        return SyntaxNode("list", self.lines[index][0], end, items), current

    def list_item(self, index: int, hi: int, indent: int) -> tuple[SyntaxNode, int]:
        line_start, _ = self.lines[index]
        line = self.line(index)
        base = line_start + _lead(line)
        match = _LIST_MARKER.match(line.lstrip())
        assert match is not None
        children = [SyntaxNode(self.marker_kind(match.group(1)), base, base + match.end())]

        last = index
        following = index + 1
        while following < hi and not self.blank(following) and not self.starts_block(following, hi):
            last = following
            following += 1
        paragraph = self.paragraph_node(base + match.end(), last)
        if paragraph.children:
            children.append(paragraph)

        nested_end = following
        while nested_end < hi and not self.blank(nested_end) and _width(self.line(nested_end)) > indent:
            nested_end += 1
        children.extend(self.blocks(following, nested_end))
        end = self.lines[nested_end - 1][1]
        return SyntaxNode("list_item", line_start, end, children), nested_end

    def table(self, index: int, hi: int) -> tuple[SyntaxNode, int]:
        rows = [self.table_row("pipe_table_header", index)]
        delim_start, delim_end = self.lines[index + 1]
        rows.append(SyntaxNode("pipe_table_delimiter_row", delim_start, delim_end))
        current = index + 2
        while current < hi and not self.blank(current) and self.line(current).lstrip().startswith("|"):
            rows.append(self.table_row("pipe_table_row", current))
            current += 1
        return SyntaxNode("pipe_table", self.lines[index][0], self.lines[current - 1][1], rows), current

    def table_row(self, kind: str, index: int) -> SyntaxNode:
        line_start, line_end = self.lines[index]
        line = self.line(index)
        body_end = len(line.rstrip())
        pos = _lead(line)
        if pos < body_end and line[pos] == "|":
            pos += 1
        segments: list[tuple[int, int]] = []
        seg_start = pos
        while pos < body_end:
            if line[pos] == "\\":
                pos += 2
                continue
            if line[pos] == "|":
                segments.append((seg_start, pos))
                seg_start = pos + 1
            pos += 1
        if seg_start < body_end:
            segments.append((seg_start, body_end))
        cells = []
        for seg_a, seg_b in segments:
            segment = line[seg_a:seg_b]
            cell_a = seg_a + _lead(segment)
            cell_b = seg_a + len(segment.rstrip())
            if cell_a >= cell_b:
                cell_a = cell_b = seg_a
            cells.append(SyntaxNode("pipe_table_cell", line_start + cell_a, line_start + cell_b))
        return SyntaxNode(kind, line_start, line_end, cells)


class _InlineParser:
    def __init__(self, text: str) -> None:
        self.text = text

    def run_length(self, pos: int, char: str, hi: int) -> int:
        end = pos
        while end < hi and self.text[end] == char:
            end += 1
        return end - pos

    def parse(self, lo: int, hi: int) -> list[SyntaxNode]:
        text = self.text
        nodes: list[SyntaxNode] = []
        pos = lo
        while pos < hi:
            char = text[pos]
            node: SyntaxNode | None = None
            if char == "`":
                node = self.code_span(pos, hi)
            elif text.startswith("<u>", pos):
                node = self.underline(pos, hi)
            elif char == "[":
                node = self.link(pos, hi)
            elif char in "*_":
                node = self.emphasis(pos, hi)
            elif char == "~":
                node = self.strikethrough(pos, hi)
            elif char == "@":
                node = self.mention(pos, hi)
            if node is not None:
                nodes.append(node)
                pos = node.end
            elif char == "`":
                pos += self.run_length(pos, "`", hi)
            elif char in _PUNCTUATION:
                nodes.append(SyntaxNode("punctuation", pos, pos + 1))
                pos += 1
            else:
                pos += 1
        return nodes

    def code_span(self, pos: int, hi: int) -> SyntaxNode | None:
        size = self.run_length(pos, "`", hi)
        fence = "`" * size
        search = pos + size
        while (found := self.text.find(fence, search, hi)) != -1:
            found_size = self.run_length(found, "`", hi)
            if found_size == size:
                children = [
                    SyntaxNode("code_span_delimiter", pos, pos + size),
                    SyntaxNode("text", pos + size, found),
                    SyntaxNode("code_span_delimiter", found, found + size),
                ]
                return SyntaxNode("code_span", pos, found + size, children)
            search = found + found_size
        return None

    def underline(self, pos: int, hi: int) -> SyntaxNode | None:
        close = self.text.find("</u>", pos + 3, hi)
        if close == -1:
            return None
        children = [SyntaxNode("underline_open", pos, pos + 3)]
        if close > pos + 3:
            children.append(SyntaxNode("underline_content", pos + 3, close))
        children.append(SyntaxNode("underline_close", close, close + 4))
        return SyntaxNode("underline", pos, close + 4, children)

    def link(self, pos: int, hi: int) -> SyntaxNode | None:
        text = self.text
        depth = 0
        bracket = -1
        for index in range(pos, hi):
            if text[index] == "[":
                depth += 1
            elif text[index] == "]":
                depth -= 1
                if depth == 0:
                    bracket = index
                    break
        if bracket == -1 or bracket + 1 >= hi or text[bracket + 1] != "(":
            return None
        depth = 0
        paren = -1
        for index in range(bracket + 1, hi):
            if text[index] == "(":
                depth += 1
            elif text[index] == ")":
                depth -= 1
                if depth == 0:
                    paren = index
                    break
        if paren == -1:
            return None
        children = [
            SyntaxNode("link_text", pos, bracket + 1),
            SyntaxNode("link_destination", bracket + 1, paren + 1),
        ]
        return SyntaxNode("inline_link", pos, paren + 1, children)

    def closing(self, marker: str, start: int, hi: int) -> int:
        text = self.text
        search = start
        while (found := text.find(marker, search, hi)) != -1:
            if not text[found - 1].isspace():
                return found
            search = found + 1
        return -1

    def emphasis(self, pos: int, hi: int) -> SyntaxNode | None:
        text = self.text
        char = text[pos]
        if pos + 1 >= hi or text[pos + 1].isspace():
            return None
        if char == "_" and pos > 0 and text[pos - 1].isalnum():
            return None
        if text[pos + 1] == char:
            if pos + 2 < hi and not text[pos + 2].isspace():
                close = self.closing(char * 2, pos + 3, hi)
                if close != -1:
                    children = [
                        SyntaxNode("emphasis_delimiter", pos, pos + 1),
                        SyntaxNode("emphasis_delimiter", pos + 1, pos + 2),
                        *self.parse(pos + 2, close),
                        SyntaxNode("emphasis_delimiter", close, close + 1),
                        SyntaxNode("emphasis_delimiter", close + 1, close + 2),
                    ]
                    return SyntaxNode("strong_emphasis", pos, close + 2, children)
            return None
        search = pos + 2
        while (close := self.closing(char, search, hi)) != -1:
            after = text[close + 1] if close + 1 < hi else ""
            if after != char and not (char == "_" and after.isalnum()):
                children = [
                    SyntaxNode("emphasis_delimiter", pos, pos + 1),
                    *self.parse(pos + 1, close),
                    SyntaxNode("emphasis_delimiter", close, close + 1),
                ]
                return SyntaxNode("emphasis", pos, close + 1, children)
            search = close + 1 + len(after)
        return None

    def strikethrough(self, pos: int, hi: int) -> SyntaxNode | None:
        size = self.run_length(pos, "~", hi)
        if size > 2 or pos + size >= hi or self.text[pos + size].isspace():
            return None
        marker = "~" * size
        search = pos + size + 1
        while (close := self.closing(marker, search, hi)) != -1:
            if self.run_length(close, "~", hi) == size:
                children = [
                    SyntaxNode("emphasis_delimiter", pos, pos + size),
                    *self.parse(pos + size, close),
                    SyntaxNode("emphasis_delimiter", close, close + size),
                ]
                return SyntaxNode("strikethrough", pos, close + size, children)
            search = close + self.run_length(close, "~", hi)
        return None

    def mention(self, pos: int, hi: int) -> SyntaxNode | None:
        if pos > 0 and (self.text[pos - 1].isalnum() or self.text[pos - 1] in "@_"):
            return None
        match = _MENTION.match(self.text, pos, hi)
        if match is None:
            return None
        return SyntaxNode("people_mention", pos, match.end())


def parse(source: str | bytes) -> SyntaxNode:
    """Parse the block structure of a Markdown document."""
    if isinstance(source, bytes):
        source = source.decode("utf-8")
    return _BlockParser(source).parse()


def parse_inline(text: str | bytes) -> SyntaxNode:
    """Parse the inline structure of ``text`` into an ``inline`` root node."""
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    return SyntaxNode("inline", 0, len(text), _InlineParser(text).parse(0, len(text)))