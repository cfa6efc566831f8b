"""Main viewer controller: layout, input dispatch, search prompt and live reload."""

import logging
import os
import select
import signal
from pathlib import Path
from typing import Optional

from .blocks import classify
from .builder import Resolvers, build_elements
from .commands import CommandRegistry, QuitCommand
from .constants import ViewerConstants
from .graphics import probe_capability
from .images import ImageLoader
from .keyboard import KeyboardHandler, KeyEvent, KeyType
from .mermaid import MermaidCliRenderer
from .model import StyledLine, TextAttributes
from .rasterize import CairoRasterizer, RasterContext
from .search import SearchEngine, locate_toc_entry
from .settings_persistence import SettingsPersistence, get_persistence
from .terminal import TerminalInterface
from .toc import extract_toc
from .view import DocumentView
from .watcher import FileChangeNotifier

logger = logging.getLogger(__name__)

TOC_ENTRY = TextAttributes()
TOC_SELECTED = TextAttributes(bold=True)


def read_document(path: Path) -> str:
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        return f.read()


class Viewer:
    """Terminal markdown viewer application controller."""

    def __init__(self, path, image_mode: str = "auto", watch: bool = True,
                 terminal: Optional[TerminalInterface] = None,
                 persistence: Optional[SettingsPersistence] = None,
                 resolvers: Optional[Resolvers] = None):
        self.path = Path(path)
        self.image_mode = image_mode
        self.watch = watch
        self.terminal = terminal or TerminalInterface()
        self.keyboard = KeyboardHandler(self.terminal)
        self.view = DocumentView()
        self.search = SearchEngine()
        self.command_registry = CommandRegistry()
        self.persistence = persistence or get_persistence()
        self.resolvers = resolvers
        self.notifier: Optional[FileChangeNotifier] = None
        self.running = False
        self.error_mode = False  # True when the terminal is too small
        self.toc_visible = True
        self.status_message: Optional[str] = None
        self.prompt_mode: Optional[str] = None  # None or 'search'
        self.prompt_input = ""
        self.last_query = ""
        self._search_origin = 0
        self._resize_pipe_r: Optional[int] = None
        self._resize_pipe_w: Optional[int] = None

    def _make_resolvers(self) -> Resolvers:
        capability = probe_capability(self.image_mode, os.environ, self.terminal.term)
        logger.debug(f"Graphics capability: {capability}")
        context = RasterContext()
        rasterizer = CairoRasterizer(context)
        return Resolvers(
            image_resolver=ImageLoader(self.path.resolve().parent, rasterizer),
            diagram_renderer=MermaidCliRenderer(),
            rasterizer=rasterizer,
            capability=capability,
        )

    # Document lifecycle

    def load(self):
        """Read the document, build it and restore per-document settings."""
        if self.resolvers is None:
            self.resolvers = self._make_resolvers()
        text = read_document(self.path)
        settings = self.persistence.load_settings(str(self.path))
        if settings.get('toc_visible') is not None:
            self.toc_visible = settings['toc_visible']
        self.last_query = settings.get('last_query') or ""
        self._layout()
        self.rebuild(text)
        if settings.get('scroll_offset') is not None:
            self.view.scroll_to(settings['scroll_offset'])

    def rebuild(self, text: str):
        """Replace TOC and elements wholesale; scroll state is re-clamped, search kept."""
        elements = build_elements(classify(text), self.resolvers)
        self.view.set_elements(elements)
        self.view.set_toc(extract_toc(text))
        logger.debug(f"Built {len(elements)} elements, {self.view.total_rows} rows")

    def reload(self) -> bool:
        try:
            text = read_document(self.path)
        except OSError as e:
            logger.warning(f"Could not reload {self.path}: {e}")
            self.status_message = f"Cannot read {self.path}: {e.strerror or e}"
            return False
        self.rebuild(text)
        self.status_message = ViewerConstants.RELOADED_MESSAGE
        return True

    def save_settings(self):
        self.persistence.save_settings(str(self.path), {
            'scroll_offset': self.view.offset,
            'toc_visible': self.toc_visible,
            'last_query': self.last_query,
        })

    # Navigation helpers used by commands

    def jump_to_selected_heading(self):
        row = locate_toc_entry(self.view.index, self.view.toc, self.view.state.selected_toc_index)
        if row is None:
            self.status_message = "Heading not found"
            return
        self.view.scroll_to(row)
        self.view.state.focus_toc = False

    def goto_match(self, row: Optional[int]):
        if row is not None:
            self.view.scroll_to(row)
        self.status_message = self.search.status() or None

    def begin_search(self):
        self.prompt_mode = 'search'
        self.prompt_input = self.search.query or self.last_query
        self._search_origin = self.view.offset
        if self.prompt_input:
            self._update_search()

    def _update_search(self):
        row = self.search.search(self.view.index, self.prompt_input)
        if row is not None:
            self.view.scroll_to(row)
        else:
            self.view.scroll_to(self._search_origin)

    def _handle_search_prompt(self, key_event: KeyEvent):
        if key_event.key_type == KeyType.SPECIAL and key_event.value == 'escape':
            self.prompt_mode = None
            self.prompt_input = ""
            self.search.clear()
            self.view.scroll_to(self._search_origin)
        elif key_event.key_type == KeyType.SPECIAL and key_event.value == 'enter':
            self.prompt_mode = None
            if self.prompt_input:
                self.last_query = self.prompt_input
            self.status_message = self.search.status() or None
        elif key_event.key_type == KeyType.SPECIAL and key_event.value == 'backspace':
            if self.prompt_input:
                self.prompt_input = self.prompt_input[:-1]
                self._update_search()
        elif key_event.key_type == KeyType.REGULAR:
            char = key_event.value
            if len(char) == 1 and ord(char) >= 32:
                self.prompt_input += char
                self._update_search()

    def _handle_key_event(self, key_event: KeyEvent):
        # Clear status message on any keypress (except in prompt mode)
        if self.status_message and not self.prompt_mode:
            self.status_message = None

        if self.prompt_mode == 'search':
            self._handle_search_prompt(key_event)
            return

        # Only quitting works while the terminal is too small
        if self.error_mode:
            command = self.command_registry.get_command(key_event.key_type, key_event.value)
            if isinstance(command, QuitCommand):
                self.running = False
            return

        self.command_registry.execute(self, key_event)

    # Drawing

    def _content_origin(self) -> int:
        return ViewerConstants.TOC_WIDTH if self.toc_visible else 0

    def _layout(self):
        self.view.resize(max(1, self.terminal.height - 2))

    def _too_small(self) -> bool:
        return (self.terminal.width < ViewerConstants.MIN_TERMINAL_WIDTH
                or self.terminal.height < ViewerConstants.MIN_TERMINAL_HEIGHT)

    def _status_text(self) -> str:
        if self.prompt_mode == 'search':
            return f"/{self.prompt_input}"
        if self.status_message:
            return f" {self.status_message}"
        return ViewerConstants.HELP_TEXT

    def _draw_toc(self, height: int):
        term = self.terminal
        state = self.view.state
        term.draw_box(0, 0, ViewerConstants.TOC_WIDTH, height, " TOC ", focused=state.focus_toc)
        rows = height - 2
        inner = ViewerConstants.TOC_WIDTH - 2
        first = max(0, state.selected_toc_index - rows + 1) if state.focus_toc else 0
        for i, entry in enumerate(self.view.toc[first:first + rows]):
            index = first + i
            selected = state.focus_toc and index == state.selected_toc_index
            marker = "▶ " if selected else "  "
            indent = ViewerConstants.TOC_INDENT * (max(1, entry.level) - 1)
            line = StyledLine.plain(marker + indent + entry.text, TOC_SELECTED if selected else TOC_ENTRY)
            term.draw_line(1 + i, 1, line, inner, "match" if selected else None)

    def _draw(self):
        term = self.terminal
        capability = self.resolvers.capability if self.resolvers else None
        height = term.height
        self._layout()
        term.begin_frame(capability)
        if self.toc_visible:
            self._draw_toc(height)

        x = self._content_origin()
        width = term.width - x
        frame = self.view.frame(self.search.highlights())
        term.draw_box(0, x, width, height, f" {self.path} ", focused=not frame.focus_toc,
                      footer=f" {frame.position_label} ")
        inner = width - 2
        for piece in frame.slices:
            y = 1 + piece.y
            element = piece.element
            if element.is_textual:
                term.draw_line(y, x + 1, element.line, inner, frame.highlights.get(piece.row))
            else:
                term.draw_image(y, x + 1, element.visual, piece.rows, element.row_height,
                                min(ViewerConstants.IMAGE_COLUMNS, inner), capability)
        term.draw_status(self._status_text())
        term.flush()

    def _draw_error(self):
        self.terminal.draw_error_message(
            ViewerConstants.TERMINAL_TOO_SMALL_MESSAGE.format(ViewerConstants.MIN_TERMINAL_WIDTH),
            ViewerConstants.CURRENT_WIDTH_MESSAGE.format(self.terminal.width)
        )

    def draw(self):
        if self._too_small():
            self.error_mode = True
            self._draw_error()
            return
        self.error_mode = False
        self._draw()

    # Main loop

    def _handle_resize(self, signum, frame):
        """Handle terminal resize signal."""
        del signum, frame  # Unused
        os.write(self._resize_pipe_w, ViewerConstants.RESIZE_PIPE_MARKER)

    def _poll_file_changes(self) -> bool:
        if self.notifier is None or not self.notifier.poll():
            return False
        return self.reload()

    def run(self):
        """Run the main viewer loop."""
        self.terminal.setup()
        self.running = True
        self._resize_pipe_r, self._resize_pipe_w = os.pipe()
        original_winch_handler = signal.signal(signal.SIGWINCH, self._handle_resize)

        if self.watch:
            self.notifier = FileChangeNotifier(self.path)
            try:
                self.notifier.start()
            except OSError as e:
                logger.warning(f"File watching disabled: {e}")
                self.notifier = None

        try:
            with self.terminal.term.cbreak():
                need_draw = True
                while self.running:
                    if need_draw:
                        self.draw()
                        need_draw = False

                    if self._poll_file_changes():
                        need_draw = True
                        continue

                    ready, _, _ = select.select([0, self._resize_pipe_r], [], [],
                                                ViewerConstants.POLL_INTERVAL)
                    if self._resize_pipe_r in ready:
                        os.read(self._resize_pipe_r, 1024)
                        need_draw = True
                    elif 0 in ready:
                        key_event = self.keyboard.get_key_event(timeout=0)
                        if key_event:
                            self._handle_key_event(key_event)
                            need_draw = True
        except KeyboardInterrupt:
            # Ctrl-C quits
            pass
        finally:
            signal.signal(signal.SIGWINCH, original_winch_handler)
            os.close(self._resize_pipe_r)
            os.close(self._resize_pipe_w)
            if self.notifier is not None:
                self.notifier.stop()
            self.save_settings()
            self.terminal.cleanup()
