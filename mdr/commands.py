"""Command pattern implementation for viewer actions."""

from abc import ABC, abstractmethod
from typing import Dict, Tuple, Optional, TYPE_CHECKING
from .keyboard import KeyType

if TYPE_CHECKING:
    from .viewer import Viewer
    from .keyboard import KeyEvent


class ViewerCommand(ABC):
    """Base class for viewer commands."""

    @abstractmethod
    def execute(self, viewer: 'Viewer', key_event: 'KeyEvent') -> bool:
        """Execute the command.

        Returns:
            True if the screen needs a repaint
        """
        pass


class ScrollCommand(ViewerCommand):
    """Moves the content, or the TOC selection when the TOC has focus."""

    def execute(self, viewer: 'Viewer', key_event: 'KeyEvent') -> bool:
        if viewer.view.state.focus_toc and viewer.toc_visible:
            self._move_selection(viewer)
        else:
            self._scroll(viewer)
        return True

    @abstractmethod
    def _scroll(self, viewer: 'Viewer'):
        pass

    def _move_selection(self, viewer: 'Viewer'):
        self._scroll(viewer)


class LineDownCommand(ScrollCommand):
    def _scroll(self, viewer):
        viewer.view.line_down()

    def _move_selection(self, viewer):
        viewer.view.select_next()


class LineUpCommand(ScrollCommand):
    def _scroll(self, viewer):
        viewer.view.line_up()

    def _move_selection(self, viewer):
        viewer.view.select_prev()


class PageDownCommand(ScrollCommand):
    def _scroll(self, viewer):
        viewer.view.page_down()


class PageUpCommand(ScrollCommand):
    def _scroll(self, viewer):
        viewer.view.page_up()


class HomeCommand(ScrollCommand):
    def _scroll(self, viewer):
        viewer.view.home()


class EndCommand(ScrollCommand):
    def _scroll(self, viewer):
        viewer.view.end()


class QuitCommand(ViewerCommand):
    def execute(self, viewer, key_event):
        viewer.running = False
        return False


class ToggleFocusCommand(ViewerCommand):
    def execute(self, viewer, key_event):
        if not viewer.toc_visible:
            viewer.toc_visible = True
            viewer.view.state.focus_toc = True
            return True
        viewer.view.toggle_focus()
        return True


class ToggleTocCommand(ViewerCommand):
    def execute(self, viewer, key_event):
        viewer.toc_visible = not viewer.toc_visible
        if not viewer.toc_visible:
            viewer.view.state.focus_toc = False
        return True


class JumpToHeadingCommand(ViewerCommand):
    def execute(self, viewer, key_event):
        if not (viewer.view.state.focus_toc and viewer.toc_visible):
            return False
        viewer.jump_to_selected_heading()
        return True


class StartSearchCommand(ViewerCommand):
    def execute(self, viewer, key_event):
        viewer.begin_search()
        return True


class NextMatchCommand(ViewerCommand):
    def execute(self, viewer, key_event):
        viewer.goto_match(viewer.search.next())
        return True


class PrevMatchCommand(ViewerCommand):
    def execute(self, viewer, key_event):
        viewer.goto_match(viewer.search.prev())
        return True


class ReloadCommand(ViewerCommand):
    def execute(self, viewer, key_event):
        viewer.reload()
        return True


class CommandRegistry:
    """Registry for mapping key combinations to commands."""

    def __init__(self):
        self._commands: Dict[Tuple[KeyType, str], ViewerCommand] = {}
        self._setup_default_commands()

    def _setup_default_commands(self):
        """Set up the default command mappings."""
        # Quit
        self.register((KeyType.REGULAR, 'q'), QuitCommand())
        self.register((KeyType.SPECIAL, 'escape'), QuitCommand())
        self.register((KeyType.CTRL, 'c'), QuitCommand())

        # Scrolling
        self.register((KeyType.REGULAR, 'j'), LineDownCommand())
        self.register((KeyType.SPECIAL, 'down'), LineDownCommand())
        self.register((KeyType.REGULAR, 'k'), LineUpCommand())
        self.register((KeyType.SPECIAL, 'up'), LineUpCommand())
        self.register((KeyType.REGULAR, ' '), PageDownCommand())
        self.register((KeyType.SPECIAL, 'page_down'), PageDownCommand())
        self.register((KeyType.SPECIAL, 'page_up'), PageUpCommand())
        self.register((KeyType.REGULAR, 'g'), HomeCommand())
        self.register((KeyType.SPECIAL, 'home'), HomeCommand())
        self.register((KeyType.REGULAR, 'G'), EndCommand())
        self.register((KeyType.SPECIAL, 'end'), EndCommand())

        # Table of contents
        self.register((KeyType.SPECIAL, 'tab'), ToggleFocusCommand())
        self.register((KeyType.SPECIAL, 'enter'), JumpToHeadingCommand())
        self.register((KeyType.REGULAR, 't'), ToggleTocCommand())

        # Search
        self.register((KeyType.REGULAR, '/'), StartSearchCommand())
        self.register((KeyType.REGULAR, 'n'), NextMatchCommand())
        self.register((KeyType.REGULAR, 'N'), PrevMatchCommand())

        self.register((KeyType.REGULAR, 'r'), ReloadCommand())

    def register(self, key: Tuple[KeyType, str], command: ViewerCommand):
        """Register a command for a key combination."""
        self._commands[key] = command

    def get_command(self, key_type: KeyType, value: str) -> Optional[ViewerCommand]:
        """Get the command for a key combination."""
        return self._commands.get((key_type, value))

    def execute(self, viewer: 'Viewer', key_event: 'KeyEvent') -> bool:
        """Execute the command for the given key event.

        Returns:
            True if the screen needs a repaint
        """
        command = self.get_command(key_event.key_type, key_event.value)
        if command:
            return command.execute(viewer, key_event)
        return False
