"""Keyboard input handling using curtsies-style tokens."""

from typing import Optional
from dataclasses import dataclass
from enum import Enum


class KeyType(Enum):
    """Types of key events."""
    REGULAR = "regular"
    ALT = "alt"
    CTRL = "ctrl"
    SPECIAL = "special"


@dataclass
class KeyEvent:
    """Represents a parsed keyboard event."""
    key_type: KeyType
    value: str  # The base key (e.g., 'j', 'down', 'page_down')
    raw: str  # The raw token from curtsies
    is_alt: bool = False
    is_ctrl: bool = False


# Curtsies names to the viewer's key names
_SPECIAL_ALIASES = {
    'pageup': 'page_up',
    'page_up': 'page_up',
    'pagedown': 'page_down',
    'page_down': 'page_down',
    'esc': 'escape',
    'escape': 'escape',
    'return': 'enter',
    'del': 'delete',
}

_SPECIALS = {
    'left', 'right', 'up', 'down', 'home', 'end', 'enter', 'backspace',
    'delete', 'page_up', 'page_down', 'insert', 'tab', 'escape',
}

# Single characters that are keys rather than text
_SINGLE_CHAR_SPECIALS = {
    '\t': 'tab',
    '\n': 'enter',
    '\r': 'enter',
    '\x7f': 'backspace',
    '\x08': 'backspace',
    '\x1b': 'escape',
}


class KeyboardHandler:
    """Turns curtsies key tokens into KeyEvents."""

    def __init__(self, terminal_interface):
        self.terminal = terminal_interface

    def get_key_event(self, timeout: Optional[float] = None) -> Optional[KeyEvent]:
        """Get next key event and map curtsies-style names to KeyEvent."""
        key = self.terminal.get_key(timeout)
        if not key:
            return None
        return self.parse_key(key)

    def parse_key(self, key) -> KeyEvent:
        """Parse a curtsies token such as '<PAGEDOWN>', '<Ctrl-c>' or 'j'."""
        key_str = str(key)

        if key_str.startswith('<') and key_str.endswith('>') and len(key_str) > 2:
            name = key_str[1:-1].lower().replace('+', '-')
            parts = name.split('-') if '-' in name else [name]
            base = parts[-1]
            mods = set(parts[:-1])
            if 'meta' in mods or 'esc' in mods:
                mods.add('alt')
            base = _SPECIAL_ALIASES.get(base, base)

            if base in ('space', 'spacebar', 'spc') and not mods:
                return KeyEvent(key_type=KeyType.REGULAR, value=' ', raw=key_str)
            if 'ctrl' in mods and len(base) == 1:
                # Ctrl-J / Ctrl-M arrive for the Enter key
                if base in ('j', 'm'):
                    return KeyEvent(key_type=KeyType.SPECIAL, value='enter', raw=key_str)
                if base == 'i':
                    return KeyEvent(key_type=KeyType.SPECIAL, value='tab', raw=key_str)
                return KeyEvent(key_type=KeyType.CTRL, value=base, raw=key_str, is_ctrl=True)
            if 'alt' in mods and (base in _SPECIALS or len(base) == 1):
                return KeyEvent(key_type=KeyType.ALT, value=base, raw=key_str, is_alt=True)
            return KeyEvent(key_type=KeyType.SPECIAL, value=base, raw=key_str)

        if key_str in _SINGLE_CHAR_SPECIALS:
            return KeyEvent(key_type=KeyType.SPECIAL, value=_SINGLE_CHAR_SPECIALS[key_str], raw=key_str)

        # Single-byte ASCII control chars (Ctrl-<letter>)
        if len(key_str) == 1 and 1 <= ord(key_str) <= 26:
            ch = chr(ord('a') + ord(key_str) - 1)
            return KeyEvent(key_type=KeyType.CTRL, value=ch, raw=key_str, is_ctrl=True)

        return KeyEvent(key_type=KeyType.REGULAR, value=key_str, raw=key_str)
