"""mdr - A terminal markdown viewer with live reload."""

from .blocks import classify
from .builder import Resolvers, build_elements
from .inline import format_inline
from .row_index import RowIndex
from .search import SearchEngine, find_matches, locate_heading
from .view import DocumentView, VisibleSlice, compute_visible

__all__ = [
    'classify',
    'build_elements',
    'Resolvers',
    'format_inline',
    'RowIndex',
    'SearchEngine',
    'find_matches',
    'locate_heading',
    'DocumentView',
    'VisibleSlice',
    'compute_visible',
]
