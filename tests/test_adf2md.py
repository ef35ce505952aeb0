import json

import pytest

from adfmark.adf import ADFNode, NodeType, table_header_node
from adfmark.adf2md import JiraMarkdownTranslator, MarkdownTranslator, Translator


def text(value, *marks):
    node = {"type": "text", "text": value}
    if marks:
        node["marks"] = [m if isinstance(m, dict) else {"type": m} for m in marks]
    return node


def para(*children):
    return {"type": "paragraph", "content": list(children)}


def item(*children):
    return {"type": "listItem", "content": list(children)}


def bullets(*items):
    return {"type": "bulletList", "content": list(items)}


def ordered(*items):
    return {"type": "orderedList", "content": list(items)}


def heading(level, value):
    return {"type": "heading", "attrs": {"level": level}, "content": [text(value)]}


def doc(*nodes):
    return ADFNode.from_dict({"type": "doc", "content": list(nodes)})


def render(*nodes, tags=None):
    return Translator(tags or MarkdownTranslator()).translate(doc(*nodes))


def test_headings():
    assert render(heading(1, "H1"), heading(2, "H2")) == "# H1\n## H2\n"


@pytest.mark.parametrize(
    ("mark", "value", "expected"),
    [
        ("strong", "Bold Text", "**Bold Text**\n\n"),
        ("em", "Italic Text", "_Italic Text_\n\n"),
        ("underline", "Prefix: Underlined Text", "<u>Prefix: Underlined Text</u>\n\n"),
        ("code", "Prefix: Inline Code Block", "`Prefix: Inline Code Block`\n\n"),
        ("strike", "Prefix: Strikethrough text", "-Prefix: Strikethrough text-\n\n"),
    ],
)
def test_marks(mark, value, expected):
    assert render(para(text(value, mark))) == expected


def test_link_mark():
    link = {"type": "link", "attrs": {"href": "https://example.com"}}
    assert render(para(text("Link", link))) == "[Link](https://example.com) \n\n"


def test_strong_and_plain_paragraphs():
    result = render(
        para(text("Strong", "strong"), text(" Paragraph 1")),
        para(text("Paragraph 2")),
    )
    assert result == "**Strong** Paragraph 1\n\nParagraph 2\n\n"


def test_nested_bullet_list():
    tree = bullets(
        item(
            para(text("Prefix: Unordered list item 1")),
            bullets(item(para(text("Next")), bullets(item(para(text("Another")))))),
        ),
        item(para(text("Unordered list item 2"))),
    )
    assert render(tree) == (
        "- Prefix: Unordered list item 1\n"
        "    - Next\n"
        "        - Another\n"
        "- Unordered list item 2\n"
    )


def test_nested_ordered_list():
    tree = ordered(
        item(para(text("Ordered list item 1"))),
        item(para(text("Ordered list item 2"))),
        item(para(text("Ordered list item 3")), ordered(item(para(text("nested"))))),
    )
    assert render(tree) == (
        "1. Ordered list item 1\n"
        "2. Ordered list item 2\n"
        "3. Ordered list item 3\n"
        "    1. nested\n"
    )


def _table(header, *rows):
    def cell(kind, value):
        return {"type": kind, "attrs": {}, "content": [para(value)]}

    content = [{"type": "tableRow", "content": [cell("tableHeader", v) for v in header]}]
    for row in rows:
        content.append({"type": "tableRow", "content": [cell("tableCell", v) for v in row]})
    return {"type": "table", "attrs": {"layout": "align-start"}, "content": content}


def test_table_rendering():
    table = _table(
        [text("Name", "strong"), text("Age", "strong")],
        [text("Alice"), text("25")],
    )
    assert render(table) == (
        "\n"
        "| **Name** | **Age** |\n"
        "|----------|---------|\n"
        "| Alice    | 25      |\n"
    )


def test_table_minimum_column_width():
    table = _table([text("x")], [text("yz")])
    assert render(table) == "\n| x     |\n|-------|\n| yz    |\n"


def test_table_state_resets_after_table():
    translator = Translator(MarkdownTranslator())
    tree = doc(_table([text("x")], [text("yz")]), para(text("after")))
    assert translator.translate(tree) == "\n| x     |\n|-------|\n| yz    |\nafter\n\n"


def test_code_block_with_language():
    block = {"type": "codeBlock", "attrs": {"language": "go"}, "content": [text("package main\n")]}
    assert render(block) == "```go\npackage main\n```\n"


@pytest.mark.parametrize("attrs", [{}, None])
def test_code_block_without_language(attrs):
    block = {"type": "codeBlock", "content": [text("x = 1")]}
    if attrs is not None:
        block["attrs"] = attrs
    assert render(block) == "```\nx = 1\n```\n"


def test_panel_plain_markdown():
    panel = {"type": "panel", "attrs": {"panelType": "info"}, "content": [para(text("Panel paragraph"))]}
    assert render(panel) == "---\nPanel paragraph\n\n---\n"


def test_panel_jira_markdown():
    panel = {"type": "panel", "attrs": {"panelType": "info"}, "content": [para(text("Panel paragraph"))]}
    assert render(panel, tags=JiraMarkdownTranslator()) == "\n{panel:type=info}\nPanel paragraph\n\n{/panel}\n"


def test_panel_jira_extra_attributes():
    panel = {"type": "panel", "attrs": {"panelType": "note", "title": "T"}, "content": [para(text("x"))]}
    assert render(panel, tags=JiraMarkdownTranslator()) == "\n{panel:type=note|title=T}\nx\n\n{/panel}\n"


MENTION = {"type": "mention", "attrs": {"id": "user-1", "text": "@Person A"}}


def test_mention_uses_display_text():
    assert render(para(MENTION)) == " @Person A \n\n"


def test_mention_uses_resolved_email():
    tags = MarkdownTranslator(email_resolver=lambda uid: "person@example.com" if uid == "user-1" else "")
    assert render(para(MENTION), tags=tags) == " @person@example.com \n\n"


def test_mention_falls_back_when_resolver_has_no_email():
    tags = JiraMarkdownTranslator(email_resolver=lambda uid: "")
    assert render(para(MENTION), tags=tags) == " @Person A \n\n"


def test_inline_card_and_mapping():
    card = {"type": "inlineCard", "attrs": {"url": "https://example.com/page"}}
    translator = Translator(MarkdownTranslator())
    tree = doc(para(text("Inline Node "), card))
    assert translator.translate(tree) == "Inline Node [link](https://example.com/page)\n\n"
    assert translator.inline_card_mapping["https://example.com/page"] is tree.content[0].content[1]


def test_inline_card_without_url():
    card = {"type": "inlineCard", "attrs": {"data": "x"}}
    assert render(para(card)) == " \U0001f4cd \n\n"


def test_blockquote():
    quote = {"type": "blockquote", "content": [para(text("Blockquote text"))]}
    assert render(quote) == "> Blockquote text\n\n\n"


def test_media_mapping():
    media = {"type": "media", "attrs": {"id": "file-1", "type": "file", "collection": "c"}}
    translator = Translator(MarkdownTranslator())
    tree = doc({"type": "mediaSingle", "content": [media]})
    assert translator.translate(tree) == "\n{attachment:file-1}"
    assert translator.media_mapping == {"file-1": tree.content[0]}


def test_media_without_id():
    media = {"type": "media", "attrs": {"type": "file"}}
    translator = Translator(MarkdownTranslator())
    assert translator.translate(doc({"type": "mediaGroup", "content": [media]})) == "\n[attachment]"
    assert translator.media_mapping == {}


def test_media_group_without_children_raises():
    with pytest.raises(ValueError):
        render({"type": "mediaGroup", "content": []})


def test_text_is_sanitized():
    assert render(para(text("a<b>\n"))) == "a\u276cb\u276d\n\n"


def test_hard_break_and_emoji():
    emoji = {"type": "emoji", "attrs": {"shortName": ":smile:", "text": "\U0001f600"}}
    assert render(para(text("a"), {"type": "hardBreak"}, text("b"))) == "a\n\nb\n\n"
    assert render(para(emoji)) == "\U0001f600 \n\n"


def test_custom_open_hook():
    tags = MarkdownTranslator(open_hooks={NodeType.HEADING: lambda node: "=="})
    assert render(heading(1, "Title"), tags=tags) == "==# Title\n"


def test_in_table_cell_tracks_open_and_close():
    tags = MarkdownTranslator()
    header = table_header_node()
    assert tags.in_table_cell is False
    tags.open(header, 0)
    assert tags.in_table_cell is True
    tags.close(header)
    assert tags.in_table_cell is False


def test_check_support():
    translator = Translator(MarkdownTranslator())
    quoted = doc(para(text("a")), {"type": "blockquote", "content": [para(text("q"))]})
    plain = doc(para(text("a")))
    assert translator.check_support(quoted) == {NodeType.BLOCKQUOTE}
    assert translator.check_support(plain) == set()
    assert translator.check_support(None) == set()


def test_composite_document():
    result = render(
        heading(1, "H1"),
        heading(2, "H2"),
        para(text("Bold Text", "strong")),
        bullets(item(para(text("one")))),
        ordered(item(para(text("first")))),
    )
    assert result == "# H1\n## H2\n**Bold Text**\n\n- one\n1. first\n"


def test_replace_all():
    tree = doc(
        para(text("Prefix: Underlined Text", "underline")),
        bullets(item(para(text("Prefix: Unordered list item 1")))),
    )
    tree.replace_all("Prefix:", "Replaced:")
    dump = json.dumps(tree.to_dict())
    assert "Prefix:" not in dump
    assert "Replaced:" in dump