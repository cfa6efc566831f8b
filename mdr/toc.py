"""Heading list extraction for the table of contents sidebar."""

from markdown_it import MarkdownIt

from .model import TocEntry

_md = MarkdownIt("commonmark").enable("table").enable("strikethrough")


def slugify(text: str) -> str:
    """Anchor for a heading: lower-case, alphanumerics, '-' and '_' kept, spaces to '-'."""
    out = []
    for ch in text.lower():
        if ch.isalnum() or ch in "-_":
            out.append(ch)
        elif ch == " ":
            out.append("-")
    return "".join(out)


def _inline_text(token) -> str:
    parts = []
    for child in token.children or []:
        if child.type in ("text", "code_inline"):
            parts.append(child.content)
        elif child.type == "image":
            parts.append(child.content)
    return "".join(parts)


def extract_toc(text: str) -> list[TocEntry]:
    """Return every heading in document order."""
    tokens = _md.parse(text)
    entries = []
    for i, token in enumerate(tokens):
        if token.type != "heading_open" or i + 1 >= len(tokens):
            continue
        level = int(token.tag[1:])
        heading = _inline_text(tokens[i + 1])
        entries.append(TocEntry(level=level, text=heading, anchor=slugify(heading)))
    return entries
