"""Incremental search and heading navigation in absolute row coordinates."""

from typing import Optional, Union

from .model import ContentElement, SearchState, TocEntry
from .row_index import RowIndex, as_row_index

Elements = Union[RowIndex, list[ContentElement]]


def _textual_rows(elements: Elements):
    index = as_row_index(elements)
    for element, row in zip(index.elements, index.starts):
        if element.is_textual:
            yield row, element.flattened_text()


def find_matches(elements: Elements, query: str) -> list[int]:
    """Rows of text and placeholder elements containing query, ignoring case."""
    if not query:
        return []
    needle = query.lower()
    return [row for row, text in _textual_rows(elements) if needle in text.lower()]


def locate_heading(elements: Elements, heading_text: str) -> Optional[int]:
    """First row whose text contains heading_text (case-sensitive)."""
    for row, text in _textual_rows(elements):
        if heading_text in text:
            return row
    return None


def locate_toc_entry(elements: Elements, toc: list[TocEntry], index: int) -> Optional[int]:
    if index < 0 or index >= len(toc):
        return None
    return locate_heading(elements, toc[index].text)


class SearchEngine:
    """Owns the match list and the cyclic current-match cursor."""

    def __init__(self):
        self.state = SearchState()

    @property
    def query(self) -> str:
        return self.state.query

    @property
    def matches(self) -> list[int]:
        return self.state.matches

    def search(self, elements: Elements, query: str) -> Optional[int]:
        """Rebuild matches for query; return the first match row or None."""
        self.state = SearchState(query=query, matches=find_matches(elements, query), current_index=0)
        return self.current()

    def current(self) -> Optional[int]:
        if not self.state.matches:
            return None
        return self.state.matches[self.state.current_index]

    def next(self) -> Optional[int]:
        if not self.state.matches:
            return None
        self.state.current_index = (self.state.current_index + 1) % len(self.state.matches)
        return self.current()

    def prev(self) -> Optional[int]:
        if not self.state.matches:
            return None
        self.state.current_index = (self.state.current_index - 1) % len(self.state.matches)
        return self.current()

    def clear(self) -> None:
        self.state = SearchState()

    def highlights(self) -> dict[int, str]:
        """Map match rows to 'current' or 'match' for the painter."""
        marks = {row: "match" for row in self.state.matches}
        current = self.current()
        if current is not None:
            marks[current] = "current"
        return marks

    def status(self) -> str:
        if not self.state.query:
            return ""
        if not self.state.matches:
            return f"No matches for '{self.state.query}'"
        return f"Match {self.state.current_index + 1}/{len(self.state.matches)}"
