"""Tests for debounced file change notification."""

import time

from watchdog.events import FileModifiedEvent, FileMovedEvent, DirModifiedEvent

from mdr.watcher import FileChangeNotifier, _DocumentEventHandler


def wait_for(notifier, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if notifier.poll():
            return True
        time.sleep(0.01)
    return False


def test_burst_of_changes_gives_one_signal(tmp_path):
    doc = tmp_path / "doc.md"
    doc.write_text("x")
    notifier = FileChangeNotifier(doc, debounce=0.05)
    for _ in range(5):
        notifier.notify_change()
    assert wait_for(notifier)
    time.sleep(0.15)
    assert notifier.poll() is False


def test_poll_without_changes(tmp_path):
    notifier = FileChangeNotifier(tmp_path / "doc.md")
    assert notifier.poll() is False


def test_handler_filters_other_files(tmp_path):
    doc = tmp_path / "doc.md"
    doc.write_text("x")
    notifier = FileChangeNotifier(doc, debounce=0.01)
    handler = _DocumentEventHandler(notifier)
    handler.on_any_event(FileModifiedEvent(str(tmp_path / "other.md")))
    handler.on_any_event(DirModifiedEvent(str(tmp_path)))
    time.sleep(0.1)
    assert notifier.poll() is False

    handler.on_any_event(FileModifiedEvent(str(doc)))
    assert wait_for(notifier)


def test_handler_sees_file_moved_into_place(tmp_path):
    doc = tmp_path / "doc.md"
    doc.write_text("x")
    notifier = FileChangeNotifier(doc, debounce=0.01)
    handler = _DocumentEventHandler(notifier)
    handler.on_any_event(FileMovedEvent(str(tmp_path / ".doc.md.swp"), str(doc)))
    assert wait_for(notifier)


def test_observer_reports_real_writes(tmp_path):
    doc = tmp_path / "doc.md"
    doc.write_text("first")
    notifier = FileChangeNotifier(doc, debounce=0.05)
    notifier.start()
    try:
        time.sleep(0.1)
        doc.write_text("second")
        assert wait_for(notifier, timeout=5.0)
    finally:
        notifier.stop()


def test_finishing_timer_keeps_newer_pending_timer(tmp_path):
    notifier = FileChangeNotifier(tmp_path / "doc.md", debounce=5.0)
    notifier.notify_change()
    pending = notifier._timer
    # An older timer completing on another thread must not drop the newer one
    notifier._fire()
    assert notifier._timer is pending
    notifier.stop()
    pending.join(timeout=1.0)
    assert not pending.is_alive()
    assert notifier._timer is None
    assert notifier.poll() is True
    assert notifier.poll() is False


def test_timer_clears_itself_when_it_fires(tmp_path):
    notifier = FileChangeNotifier(tmp_path / "doc.md", debounce=0.01)
    notifier.notify_change()
    timer = notifier._timer
    assert wait_for(notifier)
    timer.join(timeout=1.0)
    assert notifier._timer is None
