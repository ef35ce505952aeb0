"""Command line entry point: read Markdown, print the ADF document as JSON."""

from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path

from .md2adf import Translator

_USER_MAPPING = {
    "@[email]": "6acd447c-fd28-4da8-b7cb-5b95d4405540",
}


def main(argv: Sequence[str] | None = None) -> int:
    """Translate the named file, or standard input, and print the result."""
    args = list(sys.argv[1:] if argv is None else argv)
    data: str | bytes
    if args:
        filename = args[0]
        try:
            data = Path(filename).read_bytes()
        except OSError as exc:
            print(f"Error reading file {filename}: {exc}", file=sys.stderr)
            return 1
    else:
        try:
            data = sys.stdin.read()
        except (OSError, ValueError) as exc:
            print(f"Error reading from stdin: {exc}", file=sys.stderr)
            return 1

    translator = Translator(user_mapping=_USER_MAPPING)
    try:
        doc = translator.translate_to_adf(data)
    except ValueError as exc:
        print(f"Error parsing markdown: {exc}", file=sys.stderr)
        return 1

    print(doc.to_json())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())