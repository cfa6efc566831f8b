"""Terminal interface using Blessed for display and Curtsies for input."""

import blessed
from typing import Optional
import sys
import select

from .graphics import (
    KITTY_CLEAR,
    block_columns,
    crop_rows,
    encode_blocks,
    encode_iterm2,
    encode_kitty,
)
from .constants import ViewerConstants
from .model import StyledLine, TextAttributes

# Symbolic colour classes to blessed formatting names
COLOR_CLASSES = {
    "code": "yellow",
    "link": "bright_blue",
    "heading1": "bright_cyan",
    "heading2": "bright_green",
    "heading3": "bright_yellow",
    "heading4": "bright_magenta",
    "dim": "bright_black",
    "quote": "white",
    "bullet": "cyan",
    "checked": "green",
    "unchecked": "yellow",
    "rule": "bright_black",
    "fence": "bright_black",
    "diagram": "magenta",
    "image": "magenta",
}

# C0 controls, DEL and C1 controls are painted as U+FFFD
_CONTROL_CHARS = dict.fromkeys([*range(0x20), 0x7f, *range(0x80, 0xa0)], "\ufffd")


def printable(text: str, column: int = 0) -> str:
    """Expand tabs relative to ``column`` and replace control characters."""
    if "\t" in text:
        text = (" " * column + text).expandtabs(ViewerConstants.TAB_WIDTH)[column:]
    return text.translate(_CONTROL_CHARS)


class TerminalInterface:
    """Handles terminal I/O using Blessed.

    Drawing calls append to a frame buffer; ``flush`` writes it in one go.
    """

    def __init__(self, terminal: Optional[blessed.Terminal] = None):
        """Initialize with a terminal instance (or create one)."""
        self.term = terminal or blessed.Terminal()
        self.is_fullscreen = False
        self._curtsies_input: Optional[object] = None
        self._curtsies_active: bool = False
        self._buffer: list[str] = []

    def setup(self):
        """Enter fullscreen mode and prepare terminal."""
        print(self.term.enter_fullscreen, end='')
        print(self.term.hide_cursor, end='')
        print(self.term.clear, end='', flush=True)
        self.is_fullscreen = True
        if self._curtsies_input is None:
            try:
                from curtsies import Input  # type: ignore
                self._curtsies_input = Input(keynames='curtsies')  # type: ignore
                self._curtsies_input.__enter__()
                self._curtsies_active = True
            except Exception:
                # Justification: curtsies may fail to initialize without a
                # real tty (CI, pipes). The viewer then runs with no input.
                self._curtsies_input = None
                self._curtsies_active = False

    def cleanup(self):
        """Exit fullscreen mode and restore terminal."""
        if self.is_fullscreen:
            print(self.term.normal + self.term.exit_fullscreen, end='')
            print(self.term.normal_cursor, end='', flush=True)
            self.is_fullscreen = False
        if self._curtsies_input is not None:
            try:
                if self._curtsies_active:
                    self._curtsies_input.__exit__(None, None, None)  # type: ignore
            except Exception:
                # Justification: teardown should never crash the app. Any
                # failure to exit raw mode is non-fatal at this point.
                pass
            finally:
                self._curtsies_input = None
                self._curtsies_active = False

    # Frame buffer

    def begin_frame(self, capability: Optional[str] = None):
        """Start a full repaint; kitty images from the last frame are deleted."""
        self._buffer = []
        if capability == "kitty":
            self._buffer.append(KITTY_CLEAR)
        self._buffer.append(self.term.home + self.term.normal + self.term.clear)

    def write(self, text: str):
        self._buffer.append(text)

    def flush(self):
        print(''.join(self._buffer), end='', flush=True)
        self._buffer = []

    # Styling

    def style(self, attributes: TextAttributes) -> str:
        """Escape sequence selecting the given attributes."""
        parts = []
        if attributes.color_class:
            name = COLOR_CLASSES.get(attributes.color_class)
            if name:
                parts.append(getattr(self.term, name))
        if attributes.bold:
            parts.append(self.term.bold)
        if attributes.italic:
            parts.append(self.term.italic)
        if attributes.underline:
            parts.append(self.term.underline)
        if attributes.strikethrough:
            # No capability name in terminfo for strikethrough; SGR 9 is widely supported
            parts.append("\x1b[9m")
        return ''.join(str(p) for p in parts)

    def compose_line(self, line: StyledLine, width: int, highlight: Optional[str] = None) -> str:
        """Render runs clipped and padded to width, with an optional search highlight."""
        mark = ""
        if highlight == "current":
            mark = str(self.term.black_on_yellow)
        elif highlight == "match":
            mark = str(self.term.reverse)
        out = []
        used = 0
        for run in line.runs:
            if used >= width:
                break
            text = printable(run.text, used)[:width - used]
            used += len(text)
            out.append(self.term.normal + mark + self.style(run.attributes) + text)
        out.append(self.term.normal + mark + " " * (width - used) + self.term.normal)
        return ''.join(out)

    # Drawing

    def draw_text(self, y: int, x: int, text: str):
        self._buffer.append(self.term.move(y, x) + text)

    def draw_line(self, y: int, x: int, line: StyledLine, width: int, highlight: Optional[str] = None):
        self._buffer.append(self.term.move(y, x) + self.compose_line(line, width, highlight))

    def draw_box(self, y: int, x: int, width: int, height: int, title: str = "",
                 focused: bool = False, footer: str = ""):
        """Single-line border; title top-left, footer bottom-right."""
        if width < 2 or height < 2:
            return
        color = str(self.term.cyan if focused else self.term.bright_black)
        inner = width - 2
        title = printable(title)[:inner]
        footer = printable(footer)[:inner]
        top = "┌" + title + "─" * (inner - len(title)) + "┐"
        bottom = "└" + "─" * (inner - len(footer)) + footer + "┘"
        normal = str(self.term.normal)
        self._buffer.append(self.term.move(y, x) + color + top + normal)
        for row in range(1, height - 1):
            self._buffer.append(self.term.move(y + row, x) + color + "│" + normal)
            self._buffer.append(self.term.move(y + row, x + width - 1) + color + "│" + normal)
        self._buffer.append(self.term.move(y + height - 1, x) + color + bottom + normal)

    def draw_image(self, y: int, x: int, image, rows: int, total_rows: int,
                   max_columns: int, capability: Optional[str]):
        """Paint the top ``rows`` of a visual block that is ``total_rows`` tall."""
        if capability is None or rows <= 0:
            return
        columns = block_columns(image, total_rows, max_columns)
        visible = crop_rows(image, rows, total_rows)
        if capability == "kitty":
            self._buffer.append(self.term.move(y, x) + encode_kitty(visible, columns, rows))
        elif capability == "iterm2":
            self._buffer.append(self.term.move(y, x) + encode_iterm2(visible, columns, rows))
        elif capability == "blocks":
            for i, text in enumerate(encode_blocks(visible, columns, rows, self.term)):
                self._buffer.append(self.term.move(y + i, x) + text)

    def draw_status(self, text: str, right: str = ""):
        width = self.term.width
        text, right = printable(text), printable(right)
        if right and len(text) + len(right) < width:
            line = text + " " * (width - len(text) - len(right)) + right
        else:
            line = text[:width].ljust(width)
        self._buffer.append(self.term.move(self.term.height - 1, 0) + self.term.reverse
                            + line + self.term.normal)

    def draw_error_message(self, *messages: str):
        """Replace the screen with a centred double-line box around the messages."""
        messages = tuple(m for m in messages if m)
        inner = max((len(m) for m in messages), default=0)
        left = max(0, (self.term.width - inner - 4) // 2)
        top = max(0, self.term.height // 2 - len(messages) // 2 - 1)
        rows = ["╔" + "═" * (inner + 2) + "╗"]
        rows += [f"║ {m.center(inner)} ║" for m in messages]
        rows.append("╚" + "═" * (inner + 2) + "╝")

        self._buffer = [self.term.home + self.term.normal + self.term.clear]
        for i, row in enumerate(rows):
            self._buffer.append(self.term.move(top + i, left) + row)
        hint = "q to quit | Resize terminal to continue"
        self._buffer.append(self.term.move(self.term.height - 1, max(0, (self.term.width - len(hint)) // 2)) + hint)
        self.flush()

    def get_key(self, timeout=None):
        """Get a single keypress from the user.

        Args:
            timeout: Timeout in seconds (None for blocking, 0 for non-blocking)

        Returns:
            The curtsies key token as a string, or None.
        """
        if self._curtsies_input is not None:
            if timeout is None:
                evt = next(self._curtsies_input)  # blocks
                return str(evt)
            t = 0.0 if timeout == 0 else float(timeout)
            r, _, _ = select.select([sys.stdin], [], [], t)
            if not r:
                return None
            evt = next(self._curtsies_input)
            return str(evt)
        return None

    @property
    def width(self):
        """Terminal width in columns."""
        return self.term.width

    @property
    def height(self):
        """Terminal height in rows (excluding status line)."""
        return self.term.height - 1  # Reserve one line for status
