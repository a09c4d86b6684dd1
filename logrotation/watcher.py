"""SizeWatcher: watchdog event handler requesting rotation past a size threshold."""

import logging
import os
import threading

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class SizeWatcher(FileSystemEventHandler):
    """Watches the live file through its parent directory.

    Watching the directory rather than the file keeps notifications flowing
    after the file is renamed away or replaced; the watcher re-attaches to
    whatever file currently sits at the live path.
    """

    def __init__(self, file_path: str, max_size: int, on_threshold, observer_factory=None):
        super().__init__()
        self._path = os.path.abspath(file_path)
        self._max_size = max_size
        self._on_threshold = on_threshold
        self._observer_factory = observer_factory or Observer
        self._observer = None
        self._inode: int | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def inode(self) -> int | None:
        return self._inode

    def start(self):
        self._rewatch()
        observer = self._observer_factory()
        observer.schedule(self, os.path.dirname(self._path), recursive=False)
        observer.start()
        self._observer = observer
        logger.info("Watching %s for size >= %d bytes", self._path, self._max_size)

    def stop(self):
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if observer is not threading.current_thread():
            observer.join(timeout=5)
        logger.info("Stopped watching %s", self._path)

    def _rewatch(self) -> bool:
        """Re-attach to the file currently at the live path. Returns False if absent."""
        try:
            inode = os.stat(self._path).st_ino
        except FileNotFoundError:
            if self._inode is not None:
                logger.info("Live file gone, waiting for it to reappear: %s", self._path)
            self._inode = None
            return False
        if inode != self._inode:
            logger.debug("Watching %s (inode %d)", self._path, inode)
            self._inode = inode
        return True

    def check_size(self):
        try:
            stat = os.stat(self._path)
        except OSError as e:
            logger.debug("Stat failed for %s: %s", self._path, e)
            return
        if stat.st_ino != self._inode:
            self._rewatch()
        if stat.st_size >= self._max_size:
            logger.info("Size threshold reached: %s is %d bytes", self._path, stat.st_size)
            self._on_threshold()

    def _is_live(self, path) -> bool:
        return os.path.abspath(path) == self._path

    def on_modified(self, event):
        if event.is_directory or not self._is_live(event.src_path):
            return
        self.check_size()

    def on_created(self, event):
        if event.is_directory or not self._is_live(event.src_path):
            return
        if self._rewatch():
            self.check_size()

    def on_moved(self, event):
        if event.is_directory:
            return
        if self._is_live(event.dest_path):
            # Another file was renamed onto the live path
            if self._rewatch():
                self.check_size()
        elif self._is_live(event.src_path):
            self._rewatch()

    def on_deleted(self, event):
        if event.is_directory or not self._is_live(event.src_path):
            return
        self._rewatch()
