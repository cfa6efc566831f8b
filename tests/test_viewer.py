"""Tests for viewer key handling, search prompt, TOC navigation and reload."""

import pytest
from unittest.mock import MagicMock

from mdr.builder import Resolvers
from mdr.constants import ViewerConstants
from mdr.keyboard import KeyboardHandler, KeyEvent, KeyType
from mdr.search import find_matches
from mdr.settings_persistence import SettingsPersistence
from mdr.viewer import Viewer

DOC = "\n".join(
    ["# Intro", "first paragraph"]
    + [f"filler {i}" for i in range(60)]
    + ["## Details", "needle in the details", "### Deep", "another Needle"]
    + [f"tail {i}" for i in range(40)]
)


def key(value, key_type=KeyType.REGULAR):
    return KeyEvent(key_type=key_type, value=value, raw=value)


def special(value):
    return key(value, KeyType.SPECIAL)


@pytest.fixture
def terminal():
    term = MagicMock()
    term.width = 100
    term.height = 23  # rows above the status line; 21 content rows inside the box
    return term


@pytest.fixture
def viewer(tmp_path, terminal):
    path = tmp_path / "doc.md"
    path.write_text(DOC, encoding="utf-8")
    v = Viewer(path, watch=False, terminal=terminal,
               persistence=SettingsPersistence(tmp_path / "config"),
               resolvers=Resolvers())
    v.load()
    return v


def press(viewer, *events):
    for event in events:
        viewer._handle_key_event(event)


def test_viewport_follows_terminal_height(viewer):
    assert viewer.view.viewport_height == 21


def test_keyboard_reads_from_viewer_terminal(viewer, terminal):
    assert isinstance(viewer.keyboard, KeyboardHandler)
    terminal.get_key.return_value = "j"
    assert viewer.keyboard.get_key_event(timeout=0).value == "j"


def test_scroll_keys(viewer):
    press(viewer, key("j"), key("j"), special("down"))
    assert viewer.view.offset == 3
    press(viewer, key("k"))
    assert viewer.view.offset == 2
    press(viewer, key(" "))
    assert viewer.view.offset == 2 + 21 - ViewerConstants.PAGE_CONTEXT_LINES
    press(viewer, key("G"))
    assert viewer.view.offset == viewer.view.max_offset()
    press(viewer, key("g"))
    assert viewer.view.offset == 0


def test_quit_keys(viewer):
    for event in (key("q"), special("escape"), key("c", KeyType.CTRL)):
        viewer.running = True
        press(viewer, event)
        assert viewer.running is False


def test_tab_moves_focus_and_keys_move_selection(viewer):
    press(viewer, special("tab"))
    assert viewer.view.state.focus_toc
    press(viewer, key("j"))
    assert viewer.view.state.selected_toc_index == 1
    assert viewer.view.offset == 0


def test_enter_jumps_to_heading_and_returns_focus(viewer):
    press(viewer, special("tab"), key("j"), special("enter"))
    row = viewer.view.offset
    assert viewer.view.elements[row].flattened_text() == "Details"
    assert not viewer.view.state.focus_toc


def test_enter_without_toc_focus_does_nothing(viewer):
    press(viewer, special("enter"))
    assert viewer.view.offset == 0


def test_toggle_toc_hides_sidebar(viewer):
    press(viewer, key("t"))
    assert viewer.toc_visible is False
    press(viewer, special("tab"))
    assert viewer.toc_visible and viewer.view.state.focus_toc


def test_incremental_search_scrolls_to_first_match(viewer):
    press(viewer, key("/"))
    assert viewer.prompt_mode == "search"
    for ch in "needle":
        press(viewer, key(ch))
    first = viewer.search.current()
    assert viewer.view.elements[first].flattened_text() == "needle in the details"
    assert viewer.view.offset == min(first, viewer.view.max_offset())
    press(viewer, special("enter"))
    assert viewer.prompt_mode is None
    assert viewer.last_query == "needle"
    assert viewer.status_message == "Match 1/2"


def test_next_and_previous_match(viewer):
    press(viewer, key("/"), *[key(c) for c in "needle"], special("enter"))
    matches = viewer.search.matches
    press(viewer, key("n"))
    assert viewer.search.current() == matches[1]
    press(viewer, key("n"))
    assert viewer.search.current() == matches[0]
    press(viewer, key("N"))
    assert viewer.search.current() == matches[1]


def test_escape_in_search_restores_offset(viewer):
    press(viewer, key("j"), key("j"))
    press(viewer, key("/"), *[key(c) for c in "needle"])
    assert viewer.view.offset != 2
    press(viewer, special("escape"))
    assert viewer.prompt_mode is None
    assert viewer.view.offset == 2
    assert viewer.search.matches == []


def test_backspace_edits_query(viewer):
    press(viewer, key("/"), key("x"), key("y"), special("backspace"))
    assert viewer.prompt_input == "x"


def test_search_prompt_is_prefilled_with_last_query(viewer):
    press(viewer, key("/"), *[key(c) for c in "tail"], special("enter"))
    press(viewer, key("/"))
    assert viewer.prompt_input == "tail"


def test_reload_rebuilds_and_keeps_search(viewer):
    press(viewer, key("/"), *[key(c) for c in "needle"], special("enter"))
    matches_before = list(viewer.search.matches)
    viewer.path.write_text("# Short\nonly a needle here\n", encoding="utf-8")
    press(viewer, key("r"))
    assert viewer.status_message == ViewerConstants.RELOADED_MESSAGE
    assert [e.text for e in viewer.view.toc] == ["Short"]
    assert viewer.view.offset == 0
    assert viewer.search.matches == matches_before


def test_repeating_query_after_reload_searches_new_content(viewer):
    press(viewer, key("/"), *[key(c) for c in "needle"], special("enter"))
    stale = list(viewer.search.matches)
    viewer.path.write_text("# Short\nneedle one\nfiller\nNEEDLE two\n", encoding="utf-8")
    press(viewer, key("r"))
    press(viewer, key("/"))
    assert viewer.prompt_input == "needle"
    press(viewer, special("enter"))
    fresh = find_matches(viewer.view.elements, "needle")
    assert fresh and fresh != stale
    assert viewer.search.matches == fresh
    assert viewer.search.state.current_index == 0
    assert viewer.status_message == f"Match 1/{len(fresh)}"


def test_reload_of_unreadable_file_keeps_content(viewer):
    total = viewer.view.total_rows
    viewer.path.unlink()
    assert viewer.reload() is False
    assert viewer.view.total_rows == total
    assert viewer.status_message.startswith("Cannot read")


def test_settings_round_trip(tmp_path, terminal, viewer):
    press(viewer, key("j"), key("j"), key("j"), key("t"))
    viewer.last_query = "needle"
    viewer.save_settings()

    again = Viewer(viewer.path, watch=False, terminal=terminal,
                   persistence=SettingsPersistence(tmp_path / "config"),
                   resolvers=Resolvers())
    again.load()
    assert again.view.offset == 3
    assert again.toc_visible is False
    assert again.last_query == "needle"


def test_error_mode_only_allows_quit(viewer):
    viewer.error_mode = True
    viewer.running = True
    press(viewer, key("j"))
    assert viewer.view.offset == 0
    press(viewer, key("q"))
    assert viewer.running is False


def test_draw_paints_toc_and_content(viewer, terminal):
    viewer.draw()
    painted = [c.args[2].plain_text() for c in terminal.draw_line.call_args_list]
    assert "  Intro" in painted
    assert "    Details" in painted
    assert "first paragraph" in painted
    terminal.draw_status.assert_called_once_with(ViewerConstants.HELP_TEXT)
    terminal.flush.assert_called_once()


def test_draw_marks_selected_toc_entry(viewer, terminal):
    press(viewer, special("tab"))
    viewer.draw()
    painted = [c.args[2].plain_text() for c in terminal.draw_line.call_args_list]
    assert "▶ Intro" in painted


def test_draw_shows_search_prompt(viewer, terminal):
    press(viewer, key("/"), key("t"))
    viewer.draw()
    terminal.draw_status.assert_called_once_with("/t")


def test_small_terminal_shows_error(viewer, terminal):
    terminal.width = 20
    viewer.draw()
    assert viewer.error_mode
    terminal.draw_error_message.assert_called_once()
    terminal.flush.assert_not_called()
