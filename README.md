# adfmark

Convert between Jira-flavoured Markdown and the Atlassian Document Format
(ADF), the JSON document model used by Jira and Confluence.

- **Markdown → ADF** (`adfmark.md2adf`): ATX headings, paragraphs,
  `**bold**`, `_italic_` / `*italic*`, `~strikethrough~`, `<u>underline</u>`,
  inline code, fenced code blocks with a language, `[text](url)` links,
  ordered and bullet lists (nested, with a starting number), `{panel}` /
  `{panel:type=...}` blocks, pipe tables and `@user@example.com` mentions.
- **ADF → Markdown** (`adfmark.adf2md`): renders an ADF tree back to
  Markdown, with aligned tables, nested lists, panels, mentions, media and
  inline cards.
- **ADF model** (`adfmark.adf`): dataclasses `ADFDocument`, `ADFNode` and
  `ADFMark` with `to_dict` / `from_dict`, `ADFDocument.to_json`, and factory
  functions such as `paragraph_node`, `text_node` and `table_node`.
- **Markdown syntax tree** (`adfmark.syntax`): `parse` and `parse_inline`
  return `SyntaxNode` trees of named spans.

## Installation

```
pip install .
```

No third-party dependencies are needed; tests use `pytest`
(`pip install .[test]`).

## Command line

```
adfmark notes.md > notes.json
cat notes.md | adfmark
```

The command reads Markdown from the file given, or from standard input, and
prints the ADF document as indented JSON (with `<`, `>` and `&` written as
`\u003c`, `\u003e` and `\u0026`). Errors are reported on standard error with
exit status 1. The command has no options: its user mapping is fixed, so
mentions keep their written address as the user id.

## Library use

```python
from adfmark.md2adf import Translator

translator = Translator(user_mapping={"@alice@example.com": "user-id-1"})
document = translator.translate_to_adf("# Title\n\nHello **world**, @alice@example.com")
print(document.to_json())
```

A mention becomes a `mention` node whose `id` comes from `user_mapping`
(falling back to the written address) and whose `text` is the part before the
domain, here `alice`.

Checking whether Markdown uses only node types that a plain editor can keep
(panels, media, inline cards, emoji, mentions, hard breaks and underline are
not):

```python
from adfmark.md2adf import Translator, UnsafeContentError

try:
    Translator().check_safe_for_v2("Text with <u>underline</u>")
except UnsafeContentError as error:
    print(error.types)  # ['underline']
```

Rendering ADF back to Markdown:

```python
import json
from adfmark.adf import ADFNode
from adfmark.adf2md import Translator, MarkdownTranslator

with open("issue.json") as handle:
    root = ADFNode.from_dict(json.load(handle))

markdown = Translator(MarkdownTranslator()).translate(root)
```

Use `JiraMarkdownTranslator` instead of `MarkdownTranslator` to render panels
as `{panel:type=...}` blocks. `MarkdownTranslator` also takes `open_hooks`,
`close_hooks` and an `email_resolver` that turns mention ids into addresses.

After a translation, `media_mapping` and `inline_card_mapping` on the
`adf2md.Translator` hold the media and inline-card nodes it found. Passing
that translator as `reverse_translator` to `md2adf.Translator` restores them:
a `{attachment:ID}` line becomes the stored media node, and a link whose URL
matches a stored inline card becomes that card.

## What it does not do

- It does not talk to Jira or Confluence; it only converts documents.
- Markdown blockquotes, images, emoji and hard breaks are not parsed into
  ADF; such text ends up as plain paragraph text.
- Inside table cells only a cell that is wholly `**bold**` keeps formatting;
  other cell text is taken as plain text (header cells are marked bold).
- The ADF → Markdown direction has no command; it is available as a library
  only.