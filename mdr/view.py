"""Scroll controller: the visible window over the element row sequence."""

from dataclasses import dataclass, field
from typing import Optional, Union

from .constants import ViewerConstants
from .model import ContentElement, ScrollState, TocEntry
from .row_index import RowIndex, as_row_index


@dataclass(frozen=True)
class VisibleSlice:
    """One element placed in the viewport.

    ``y`` is the viewport row the element starts on, ``row`` its absolute
    start row, ``rows`` how many rows are painted and ``cropped`` how many
    of its rows fall below the viewport. A block is never entered part way
    (blocks straddling the top edge are hidden), so painting always starts
    at the element's first row.
    """
    element: ContentElement
    rows: int
    cropped: int
    y: int
    row: int


@dataclass
class Frame:
    """Everything the painter needs for one repaint of the content pane."""
    slices: list[VisibleSlice]
    offset: int
    total_rows: int
    highlights: dict[int, str] = field(default_factory=dict)
    focus_toc: bool = False
    selected_toc_index: int = 0

    @property
    def position_label(self) -> str:
        return f"{self.offset + 1}/{max(self.total_rows, 1)}"


def clamp_offset(requested: int, total_rows: int, viewport_height: int) -> int:
    return min(max(0, requested), max(0, total_rows - viewport_height))


def compute_visible(elements: Union[RowIndex, list[ContentElement]], offset: int,
                    viewport_height: int) -> list[VisibleSlice]:
    """Place the elements intersecting [offset, offset + viewport_height).

    A block whose first row is above the viewport is hidden entirely; a block
    running past the bottom edge is cut to the remaining rows.
    """
    index = as_row_index(elements)
    offset = clamp_offset(offset, index.total_rows, viewport_height)
    found = index.element_at(offset)
    if found is None:
        return []
    slices: list[VisibleSlice] = []
    y_offset = 0
    for i in range(found[0], len(index)):
        if y_offset >= viewport_height:
            break
        element = index.elements[i]
        start = index.start_of(i)
        if element.is_textual:
            slices.append(VisibleSlice(element, 1, 0, y_offset, start))
            y_offset += 1
            continue
        if start < offset:
            continue
        height = element.row_height
        rows = min(height, viewport_height - y_offset)
        slices.append(VisibleSlice(element, rows, height - rows, y_offset, start))
        y_offset += rows
    return slices


class DocumentView:
    """Scroll state, viewport and TOC selection over one element sequence."""

    def __init__(self, viewport_height: int = 1):
        self.state = ScrollState()
        self.viewport_height = max(1, viewport_height)
        self.index = RowIndex([])
        self.toc: list[TocEntry] = []

    @property
    def elements(self) -> list[ContentElement]:
        return self.index.elements

    @property
    def total_rows(self) -> int:
        return self.index.total_rows

    @property
    def offset(self) -> int:
        return self.state.offset

    def max_offset(self) -> int:
        return max(0, self.total_rows - self.viewport_height)

    def _clamp(self) -> None:
        self.state.offset = clamp_offset(self.state.offset, self.total_rows, self.viewport_height)

    def set_elements(self, elements: list[ContentElement]) -> None:
        """Replace the content wholesale, keeping the offset where it still fits."""
        self.index = RowIndex(elements)
        self._clamp()

    def set_toc(self, entries: list[TocEntry]) -> None:
        self.toc = entries
        self.state.selected_toc_index = max(0, min(self.state.selected_toc_index, len(entries) - 1))

    def resize(self, viewport_height: int) -> None:
        self.viewport_height = max(1, viewport_height)
        self._clamp()

    def scroll_to(self, row: int) -> None:
        self.state.offset = row
        self._clamp()

    def scroll_by(self, delta: int) -> None:
        self.scroll_to(self.state.offset + delta)

    def line_down(self) -> None:
        self.scroll_by(1)

    def line_up(self) -> None:
        self.scroll_by(-1)

    def page_size(self) -> int:
        return max(1, self.viewport_height - ViewerConstants.PAGE_CONTEXT_LINES)

    def page_down(self) -> None:
        self.scroll_by(self.page_size())

    def page_up(self) -> None:
        self.scroll_by(-self.page_size())

    def home(self) -> None:
        self.state.offset = 0

    def end(self) -> None:
        self.state.offset = self.max_offset()

    # TOC focus and selection

    def toggle_focus(self) -> None:
        self.state.focus_toc = not self.state.focus_toc

    def select_next(self) -> None:
        if self.state.selected_toc_index + 1 < len(self.toc):
            self.state.selected_toc_index += 1

    def select_prev(self) -> None:
        if self.state.selected_toc_index > 0:
            self.state.selected_toc_index -= 1

    def selected_entry(self) -> Optional[TocEntry]:
        if 0 <= self.state.selected_toc_index < len(self.toc):
            return self.toc[self.state.selected_toc_index]
        return None

    def visible(self) -> list[VisibleSlice]:
        return compute_visible(self.index, self.state.offset, self.viewport_height)

    def frame(self, highlights: Optional[dict[int, str]] = None) -> Frame:
        return Frame(
            slices=self.visible(),
            offset=self.state.offset,
            total_rows=self.total_rows,
            highlights=dict(highlights or {}),
            focus_toc=self.state.focus_toc,
            selected_toc_index=self.state.selected_toc_index,
        )
