"""Data model shared by the classifier, builder, scroll controller and search."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class TextAttributes:
    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    color_class: Optional[str] = None

    def merged(self, other: "TextAttributes") -> "TextAttributes":
        """Combine two attribute sets; flags are OR-ed, our colour wins."""
        return TextAttributes(
            bold=self.bold or other.bold,
            italic=self.italic or other.italic,
            strikethrough=self.strikethrough or other.strikethrough,
            underline=self.underline or other.underline,
            color_class=self.color_class or other.color_class,
        )


PLAIN = TextAttributes()


@dataclass(frozen=True)
class StyledRun:
    text: str
    attributes: TextAttributes = PLAIN


@dataclass(frozen=True)
class StyledLine:
    """One display row made of styled runs."""
    runs: tuple[StyledRun, ...] = ()

    @classmethod
    def of(cls, *runs: StyledRun) -> "StyledLine":
        return cls(tuple(runs))

    @classmethod
    def plain(cls, text: str, attributes: TextAttributes = PLAIN) -> "StyledLine":
        if not text:
            return cls()
        return cls((StyledRun(text, attributes),))

    def plain_text(self) -> str:
        return ''.join(run.text for run in self.runs)

    def __len__(self) -> int:
        return len(self.runs)


class ElementKind(Enum):
    TEXT = "text"
    BLOCK = "block"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True, eq=False)
class ContentElement:
    """One unit of the rendered row sequence.

    A closed variant tagged by ``kind``: TEXT and PLACEHOLDER carry a
    StyledLine and are one row tall; BLOCK carries an opaque visual handle
    (a decoded image) and its own row height.
    """
    kind: ElementKind
    line: StyledLine = field(default_factory=StyledLine)
    visual: Any = None
    height: int = 1

    @classmethod
    def text(cls, line: StyledLine) -> "ContentElement":
        return cls(ElementKind.TEXT, line=line)

    @classmethod
    def placeholder(cls, line: StyledLine) -> "ContentElement":
        return cls(ElementKind.PLACEHOLDER, line=line)

    @classmethod
    def block(cls, visual: Any, row_height: int) -> "ContentElement":
        return cls(ElementKind.BLOCK, visual=visual, height=max(1, row_height))

    @property
    def row_height(self) -> int:
        if self.kind == ElementKind.BLOCK:
            return self.height
        return 1

    @property
    def is_textual(self) -> bool:
        return self.kind in (ElementKind.TEXT, ElementKind.PLACEHOLDER)

    def flattened_text(self) -> str:
        """Run texts concatenated with styling stripped; empty for blocks."""
        if self.kind == ElementKind.BLOCK:
            return ""
        return self.line.plain_text()


class ParsedKind(Enum):
    STYLED = "styled"
    IMAGE_REF = "image_ref"
    DIAGRAM_REF = "diagram_ref"


@dataclass(frozen=True)
class ParsedLine:
    """Classifier output: styled text or a visual reference to resolve."""
    kind: ParsedKind
    line: StyledLine = field(default_factory=StyledLine)
    alt: str = ""
    url: str = ""
    source: str = ""

    @classmethod
    def styled(cls, line: StyledLine) -> "ParsedLine":
        return cls(ParsedKind.STYLED, line=line)

    @classmethod
    def image_ref(cls, alt: str, url: str) -> "ParsedLine":
        return cls(ParsedKind.IMAGE_REF, alt=alt, url=url)

    @classmethod
    def diagram_ref(cls, source: str) -> "ParsedLine":
        return cls(ParsedKind.DIAGRAM_REF, source=source)


@dataclass(frozen=True)
class TocEntry:
    level: int
    text: str
    anchor: str


@dataclass
class ScrollState:
    offset: int = 0
    focus_toc: bool = False
    selected_toc_index: int = 0


@dataclass
class SearchState:
    query: str = ""
    matches: list[int] = field(default_factory=list)
    current_index: int = 0


@dataclass(frozen=True)
class Resolution:
    """Outcome of a collaborator call: a value, or an error message."""
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> "Resolution":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "Resolution":
        return cls(error=error or "unknown error")


def image_label(alt: str) -> str:
    """Placeholder label used wherever an image cannot be shown."""
    return f"[Image: {alt or 'image'}]"
