"""Block classifier: turns a document into parsed lines, one physical line at a time."""

import re
from typing import Optional

from .constants import ViewerConstants
from .inline import format_inline
from .model import ParsedLine, StyledLine, StyledRun, TextAttributes

HEADING_STYLES = {
    1: TextAttributes(bold=True, underline=True, color_class="heading1"),
    2: TextAttributes(bold=True, color_class="heading2"),
    3: TextAttributes(bold=True, color_class="heading3"),
    4: TextAttributes(bold=True, color_class="heading4"),
}
DIM = TextAttributes(color_class="dim")
FENCE = TextAttributes(color_class="fence")
CODE_ROW = TextAttributes(color_class="code")
QUOTE = TextAttributes(italic=True, color_class="quote")
BULLET = TextAttributes(color_class="bullet")
CHECKED = TextAttributes(color_class="checked")
UNCHECKED = TextAttributes(color_class="unchecked")

# A line that is nothing but ![alt](url), optionally with a "title". The url is
# either <bracketed> (spaces allowed) or bare with balanced parentheses.
_IMAGE_LINE = re.compile(
    r'!\[(?P<alt>[^\]]*)\]\(\s*'
    r'(?:<(?P<bracketed>[^<>\n]*)>|(?P<url>(?:[^()\s]|\([^()\s]*\))*))'
    r'(?:\s+"[^"]*")?\s*\)'
)


def fence_header(lang: str) -> str:
    if not lang:
        return ViewerConstants.FENCE_PLAIN_HEADER
    return f"┌─ {lang} " + "─" * max(0, ViewerConstants.FENCE_HEADER_FILL - len(lang))


def overlay(line: StyledLine, style: TextAttributes) -> list[StyledRun]:
    """Apply a block style under each run's own attributes."""
    return [StyledRun(run.text, run.attributes.merged(style)) for run in line.runs]


def _indent_runs(indent: int) -> list[StyledRun]:
    return [StyledRun(" " * indent)] if indent else []


def parse_ordered_item(line: str) -> Optional[tuple[str, str]]:
    """Split '12. text' into ('12. ', 'text'); None when the prefix is not all digits."""
    trimmed = line.lstrip()
    dot = trimmed.find(". ")
    if dot <= 0:
        return None
    number = trimmed[:dot]
    if not all('0' <= ch <= '9' for ch in number):
        return None
    return f"{number}. ", trimmed[dot + 2:]


def parse_image_line(line: str) -> Optional[tuple[str, str]]:
    """Return (alt, url) when the trimmed line is a standalone image."""
    trimmed = line.strip()
    if not trimmed.startswith("!["):
        return None
    m = _IMAGE_LINE.fullmatch(trimmed)
    if not m:
        return None
    url = m.group('bracketed')
    if url is None:
        url = m.group('url')
    return m.group('alt'), url


class BlockClassifier:
    """Line-oriented classifier carrying fence and table state across lines."""

    def __init__(self):
        self.items: list[ParsedLine] = []
        self.in_code = False
        self.code_lang = ""
        self.in_table = False
        self._diagram_lines: Optional[list[str]] = None

    def _emit(self, *runs: StyledRun) -> None:
        self.items.append(ParsedLine.styled(StyledLine(tuple(runs))))

    def _blank(self) -> None:
        self.items.append(ParsedLine.styled(StyledLine()))

    def feed(self, line: str) -> None:
        if line.startswith("```"):
            self._toggle_fence(line)
            return

        if self.in_code:
            if self._diagram_lines is not None:
                self._diagram_lines.append(line)
            else:
                self._emit(StyledRun(f"│ {line}", CODE_ROW))
            return

        if self._heading(line):
            return

        if line.startswith(("---", "***", "___")):
            self._emit(StyledRun("─" * ViewerConstants.HORIZONTAL_RULE_WIDTH, DIM))
            return

        if '|' in line and line.strip().startswith('|'):
            self._table_row(line)
            return
        self.in_table = False

        if line.startswith("> "):
            self._emit(StyledRun("▎ ", DIM), *overlay(format_inline(line[2:]), QUOTE))
            return

        trimmed = line.lstrip()
        indent = len(line) - len(trimmed)
        if trimmed.startswith("- [x] "):
            self._emit(*_indent_runs(indent), StyledRun("☑ ", CHECKED),
                       *overlay(format_inline(trimmed[6:]), DIM))
            return
        if trimmed.startswith("- [ ] "):
            self._emit(*_indent_runs(indent), StyledRun("☐ ", UNCHECKED),
                       *format_inline(trimmed[6:]).runs)
            return
        if trimmed.startswith(("- ", "* ")):
            self._emit(*_indent_runs(indent), StyledRun("• ", BULLET),
                       *format_inline(trimmed[2:]).runs)
            return

        ordered = parse_ordered_item(line)
        if ordered:
            prefix, text = ordered
            self._emit(*_indent_runs(indent), StyledRun(prefix, BULLET),
                       *format_inline(text).runs)
            return

        image = parse_image_line(line)
        if image:
            self.items.append(ParsedLine.image_ref(*image))
            return

        self.items.append(ParsedLine.styled(format_inline(line)))

    def _toggle_fence(self, line: str) -> None:
        if self.in_code:
            self.in_code = False
            if self._diagram_lines is not None:
                self._close_diagram()
            else:
                self._emit(StyledRun(ViewerConstants.FENCE_FOOTER, FENCE))
                self._blank()
            return
        self.in_code = True
        self.code_lang = line.lstrip('`').strip()
        if self.code_lang == "mermaid":
            self._diagram_lines = []
        else:
            self._emit(StyledRun(fence_header(self.code_lang), FENCE))

    def _close_diagram(self) -> None:
        source = '\n'.join(self._diagram_lines or [])
        self._diagram_lines = None
        self.items.append(ParsedLine.diagram_ref(source))

    def _heading(self, line: str) -> bool:
        # '#' runs without a space ('#!', '#tag', '#####') are not headings
        for level, style in HEADING_STYLES.items():
            prefix = "#" * level + " "
            if not line.startswith(prefix):
                continue
            heading = StyledLine(tuple(overlay(format_inline(line[len(prefix):]), style)))
            width = len(heading.plain_text())
            if level == 4:
                self.items.append(ParsedLine.styled(heading))
                return True
            self._blank()
            self.items.append(ParsedLine.styled(heading))
            if level == 1:
                self._emit(StyledRun("═" * min(width, ViewerConstants.HEADING1_RULE_MAX),
                                     TextAttributes(color_class="heading1")))
            elif level == 2:
                self._emit(StyledRun("─" * min(width, ViewerConstants.HEADING2_RULE_MAX),
                                     TextAttributes(color_class="heading2")))
            self._blank()
            return True
        return False

    def _table_row(self, line: str) -> None:
        if "---" in line and not self.in_table:
            self.in_table = True
            self._emit(StyledRun(line, DIM))
            return
        self.in_table = True
        cells = [cell.strip() for cell in line.strip().split('|')]
        if cells and not cells[0]:
            cells = cells[1:]
        if cells and not cells[-1]:
            cells = cells[:-1]
        runs: list[StyledRun] = []
        for i, cell in enumerate(cells):
            if i > 0:
                runs.append(StyledRun(" │ ", DIM))
            if cell:
                runs.append(StyledRun(cell))
        self._emit(*runs)

    def finish(self) -> list[ParsedLine]:
        # An unterminated mermaid fence is closed by the end of the document
        if self.in_code and self._diagram_lines is not None:
            self.in_code = False
            self._close_diagram()
        return self.items


def physical_lines(document: str) -> list[str]:
    """Split on newlines only; a trailing CR is dropped and a final newline ends the last line.

    Form feeds, separators and other characters str.splitlines() breaks on
    stay inside their line.
    """
    lines = document.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def classify(document: str) -> list[ParsedLine]:
    """Classify a whole document into parsed lines in document order."""
    classifier = BlockClassifier()
    for line in physical_lines(document):
        classifier.feed(line)
    return classifier.finish()
