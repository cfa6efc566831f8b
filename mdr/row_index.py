"""Absolute row coordinates over a content element sequence."""

from bisect import bisect_right
from typing import Optional, Union

from .model import ContentElement


class RowIndex:
    """Prefix sums of element row heights.

    ``starts[i]`` is the absolute row where element ``i`` begins; the final
    entry is the total row count.
    """

    def __init__(self, elements: list[ContentElement]):
        self.elements = elements
        self.starts = [0]
        for element in elements:
            self.starts.append(self.starts[-1] + element.row_height)

    @property
    def total_rows(self) -> int:
        return self.starts[-1]

    def __len__(self) -> int:
        return len(self.elements)

    def start_of(self, index: int) -> int:
        return self.starts[index]

    def element_at(self, row: int) -> Optional[tuple[int, int]]:
        """Return (element_index, start_row) of the element covering row."""
        if row < 0 or row >= self.total_rows:
            return None
        index = bisect_right(self.starts, row) - 1
        return index, self.starts[index]


def as_row_index(elements: Union[RowIndex, list[ContentElement]]) -> RowIndex:
    """Accept either an element list or an index already built over one."""
    if isinstance(elements, RowIndex):
        return elements
    return RowIndex(elements)
