"""Debounced change notification for the displayed file."""

import logging
import os
import queue
import threading
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .constants import ViewerConstants

logger = logging.getLogger(__name__)

_RELEVANT_EVENTS = ("modified", "created", "moved")


class _DocumentEventHandler(FileSystemEventHandler):
    def __init__(self, notifier: "FileChangeNotifier"):
        super().__init__()
        self.notifier = notifier

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _RELEVANT_EVENTS:
            return
        # Editors often save by writing a temp file and moving it into place
        paths = [event.src_path, getattr(event, "dest_path", "")]
        if any(p and self.notifier.matches(p) for p in paths):
            self.notifier.notify_change()


class FileChangeNotifier:
    """Watches one file and queues a signal after changes settle.

    The observer watches the parent directory so replaced files are still
    seen. Each change restarts the debounce timer; the main loop drains the
    queue with ``poll()``.
    """

    def __init__(self, path, debounce: float = ViewerConstants.WATCH_DEBOUNCE):
        self.path = Path(path).resolve()
        self.debounce = debounce
        self.signals: "queue.Queue[None]" = queue.Queue()
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._observer = None

    def matches(self, event_path) -> bool:
        try:
            return Path(os.fsdecode(event_path)).resolve() == self.path
        except OSError:
            return False

    def notify_change(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            # A newer timer may already be pending; leave it for stop() to cancel
            if self._timer is threading.current_thread():
                self._timer = None
        self.signals.put(None)

    def poll(self) -> bool:
        """Drain every queued signal; True if at least one arrived."""
        changed = False
        while True:
            try:
                self.signals.get_nowait()
            except queue.Empty:
                return changed
            changed = True

    def start(self) -> None:
        observer = Observer()
        observer.schedule(_DocumentEventHandler(self), str(self.path.parent), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.debug(f"Watching {self.path} for changes")

    def stop(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=1.0)
            self._observer = None
