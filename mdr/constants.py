"""Constants and configuration for the mdr viewer."""

class ViewerConstants:
    """Central configuration constants for the viewer."""

    # Main loop
    POLL_INTERVAL = 0.1  # Seconds to wait for input before polling the file watcher
    WATCH_DEBOUNCE = 0.3  # Seconds of quiet before a file change triggers a reload

    # Layout
    TOC_WIDTH = 30  # Columns reserved for the table of contents sidebar
    TOC_INDENT = "  "  # Indent per heading level below 1
    PAGE_CONTEXT_LINES = 2  # Rows of overlap kept when paging
    MIN_TERMINAL_WIDTH = 40  # Minimum terminal width required for display
    MIN_TERMINAL_HEIGHT = 5

    # Block elements
    IMAGE_COLUMNS = 60  # Assumed column budget for images and diagrams
    CELL_ASPECT = 2  # Terminal cells are about twice as tall as they are wide
    MIN_BLOCK_ROWS = 2
    MAX_BLOCK_ROWS = 20

    # Block classifier decoration
    HEADING1_RULE_MAX = 60
    HEADING2_RULE_MAX = 50
    HORIZONTAL_RULE_WIDTH = 60
    FENCE_HEADER_FILL = 38
    FENCE_PLAIN_HEADER = "┌─ code ──────────────────────────────────┐"
    FENCE_FOOTER = "└─────────────────────────────────────────┘"
    TAB_WIDTH = 4  # Columns per tab stop when painting document text

    # Collaborators
    FETCH_TIMEOUT = 10.0  # Seconds for remote image fetches
    DIAGRAM_TIMEOUT = 20  # Seconds for one mermaid-cli run
    DIAGRAM_CACHE_MAX_ENTRIES = 256
    MAX_RASTER_SIZE = 8192  # Largest rasterized side in pixels
    RASTER_CACHE_MAX_ENTRIES = 64

    # Resize handling
    RESIZE_PIPE_MARKER = b'R'  # Byte written to pipe to signal resize

    # Status messages
    HELP_TEXT = " q: quit | Tab: TOC | j/k: scroll | /: search | n/N: next/prev | Enter: go to heading "
    TERMINAL_TOO_SMALL_MESSAGE = "Terminal too small! Need at least {} columns."
    CURRENT_WIDTH_MESSAGE = "Current width: {} columns."
    RELOADED_MESSAGE = "Reloaded"
