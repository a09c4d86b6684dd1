"""Rotator: owns the rotation state and wires both triggers to the executor."""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime, timedelta

from logrotation import behaviors
from logrotation.clock import is_high_frequency, to_local, validate_frequency
from logrotation.config import parse_duration, parse_size
from logrotation.constants import (
    BEHAVIOR_COPY_COMPRESS_TRUNCATE,
    COMPRESSED_SUFFIX,
    DEFAULT_BEHAVIOR,
    DEFAULT_ENCODING,
    EVENT_ERROR,
    EVENT_LIST,
    EVENT_READY,
    EVENT_ROTATE,
)
from logrotation.errors import (
    AccessError,
    PersistenceError,
    RuntimeRotationError,
    ValidationError,
)
from logrotation.naming import default_name_formatter
from logrotation.retention import RetentionManager
from logrotation.scheduler import Scheduler
from logrotation.state import ArchiveRecord, RotationState, StateStore
from logrotation.watcher import SizeWatcher

logger = logging.getLogger(__name__)


def _check_access(path: str) -> bool:
    return os.access(path, os.R_OK | os.W_OK)


class Rotator:
    """Rotates one live file into archives on a schedule and/or past a size.

    Subscribers are registered with :meth:`on` for the ``ready``, ``rotate``
    and ``error`` events. Options are validated here, so a bad behavior,
    frequency, size or age fails at construction.
    """

    def __init__(
        self,
        file_path: str,
        dir_path: str,
        state_file_path: str,
        frequency: str | None = None,
        max_size: int | str | None = None,
        files_limit: int | None = None,
        max_age: timedelta | int | float | str | None = None,
        behavior: str = DEFAULT_BEHAVIOR,
        encoding: str = DEFAULT_ENCODING,
        name_formatter=None,
        time_func=None,
        observer_factory=None,
    ):
        if not file_path:
            raise ValidationError("file_path is required")
        if not dir_path:
            raise ValidationError("dir_path is required")
        if not state_file_path:
            raise ValidationError("state_file_path is required")
        if files_limit is not None and (isinstance(files_limit, bool) or not isinstance(files_limit, int)):
            raise ValidationError(f"files_limit_not_valid: {files_limit!r}")

        self._behavior = behaviors.validate_behavior(behavior)
        self._frequency = validate_frequency(frequency)
        self._max_size = parse_size(max_size)
        self._max_age = parse_duration(max_age)
        self._files_limit = files_limit if files_limit and files_limit > 0 else None

        self._file_path = os.path.abspath(file_path)
        self._dir_path = os.path.abspath(dir_path)
        base = os.path.basename(self._file_path)
        self._name, ext = os.path.splitext(base)
        self._extension = ext[1:] or None
        self._encoding = encoding
        self._name_formatter = name_formatter or default_name_formatter
        self._compress = self._behavior == BEHAVIOR_COPY_COMPRESS_TRUNCATE
        self._time_func = time_func or (lambda: datetime.now().astimezone())
        self._observer_factory = observer_factory

        self._store = StateStore(state_file_path)
        self._state = RotationState()
        self._retention = RetentionManager(self._files_limit, self._max_age, self._time_func)
        self._scheduler: Scheduler | None = None
        self._watcher: SizeWatcher | None = None

        self._listeners: dict[str, list] = {event: [] for event in EVENT_LIST}
        self._guard = threading.Lock()
        self._rotating = False
        self._running = False

    @property
    def file_path(self) -> str:
        return self._file_path

    @property
    def dir_path(self) -> str:
        return self._dir_path

    @property
    def state(self) -> RotationState:
        return self._state

    @property
    def frequency(self) -> str | None:
        return self._frequency

    @property
    def max_size(self) -> int | None:
        return self._max_size

    @property
    def behavior(self) -> str:
        return self._behavior

    @property
    def running(self) -> bool:
        return self._running

    @property
    def rotating(self) -> bool:
        return self._rotating

    def on(self, event: str, callback):
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")
        self._listeners[event].append(callback)
        return self

    def off(self, event: str, callback):
        if callback in self._listeners.get(event, []):
            self._listeners[event].remove(callback)
        return self

    def _emit(self, event: str, payload):
        for callback in list(self._listeners[event]):
            callback(payload)

    def _report(self, error: Exception):
        logger.warning("%s", error)
        self._emit(EVENT_ERROR, error)

    def start(self) -> "Rotator":
        self._state = self._store.load()

        if not _check_access(self._file_path):
            raise AccessError("file_is_not_accessible", self._file_path)
        if not _check_access(self._dir_path):
            try:
                os.makedirs(self._dir_path, exist_ok=True)
            except OSError as e:
                raise AccessError(f"dir_is_not_accessible ({e})", self._dir_path) from e
            if not _check_access(self._dir_path):
                raise AccessError("dir_is_not_accessible", self._dir_path)

        self.sync_archives()
        self._running = True

        if self._frequency:
            self._scheduler = Scheduler(
                self._frequency, self._state, self._store, self._on_boundary, self._time_func
            )
            self._scheduler.start()

        if self._max_size:
            self._watcher = SizeWatcher(self._file_path, self._max_size, self._on_size_exceeded,
                                        observer_factory=self._observer_factory)
            self._watcher.start()

        logger.info("Rotator started for %s (frequency=%s, max_size=%s, behavior=%s)",
                    self._file_path, self._frequency, self._max_size, self._behavior)
        self._emit(EVENT_READY, self)
        return self

    def stop(self) -> "Rotator":
        self._running = False
        if self._scheduler is not None:
            self._scheduler.stop()
            self._scheduler = None
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        logger.info("Rotator stopped for %s", self._file_path)
        return self

    def sync_archives(self) -> list[ArchiveRecord]:
        """Drop tracked archives whose files were removed behind our back."""
        missing = []
        for record in list(self._state.archives):
            try:
                os.stat(record.path)
            except FileNotFoundError:
                missing.append(record)
            except OSError as e:
                self._report(PersistenceError(f"failed to stat archive ({e})", record.path))
        if missing:
            for record in missing:
                self._state.archives.remove(record)
            logger.info("Stopped tracking %d missing archive(s)", len(missing))
            self._store.save(self._state)
        return missing

    def _on_boundary(self):
        self.rotate()

    def _on_size_exceeded(self):
        if not self._running:
            return
        self.rotate()

    def next_sequence_number(self, date: datetime) -> int | None:
        """Same-day ordinal for high-frequency or size-triggered rotation."""
        if not (is_high_frequency(self._frequency) or self._max_size is not None):
            return None
        last_at = self._state.last_rotation_at
        last_number = self._state.last_sequence_number
        if last_number is None or last_at is None:
            return 0
        if to_local(last_at).date() == to_local(date).date():
            return last_number + 1
        return 0

    def archive_name(self, date: datetime, sequence_number: int | None) -> str:
        name = self._name_formatter(self._name, self._extension, date, sequence_number)
        if self._compress and not name.endswith(COMPRESSED_SUFFIX):
            name += COMPRESSED_SUFFIX
        return name

    def _acquire(self) -> bool:
        with self._guard:
            if self._rotating:
                return False
            self._rotating = True
            return True

    def _release(self):
        with self._guard:
            self._rotating = False

    def rotate(self, date: datetime | None = None) -> ArchiveRecord | None:
        """Rotate the live file now. Returns None when the cycle was skipped."""
        if not self._acquire():
            logger.debug("Rotation already in progress, ignoring trigger")
            return None
        try:
            return self._rotate(to_local(date) if date is not None else self._time_func())
        finally:
            self._release()

    def _rotate(self, date: datetime) -> ArchiveRecord | None:
        if not _check_access(self._file_path):
            self._report(RuntimeRotationError("file_is_not_accessible", self._file_path))
            return None

        sequence_number = self.next_sequence_number(date)
        name = self.archive_name(date, sequence_number)
        target_path = os.path.join(self._dir_path, name)

        try:
            behaviors.remove_existing(target_path)
            behaviors.execute(self._behavior, self._file_path, target_path, self._encoding)
        except OSError as e:
            self._report(RuntimeRotationError(f"rotation_failed ({e})", self._file_path))
            return None

        record = ArchiveRecord(
            created_at=date, sequence_number=sequence_number, name=name, path=target_path
        )
        # An overwritten archive must not stay tracked under the same path
        self._state.archives[:] = [a for a in self._state.archives if a.path != target_path]
        self._state.archives.append(record)
        self._state.last_rotation_at = date
        self._state.last_sequence_number = sequence_number
        self._retention.remove_old_files(self._state)
        try:
            self._store.save(self._state)
        except OSError as e:
            self._report(PersistenceError(f"failed to save state ({e})", self._store.path))

        logger.info("Rotated %s -> %s", self._file_path, target_path)
        self._emit(EVENT_ROTATE, record)
        return record

    def remove_old_files(self) -> list[ArchiveRecord]:
        """Apply retention outside of a rotation and persist the result."""
        if not self._acquire():
            logger.debug("Rotation in progress, retention runs as part of it")
            return []
        try:
            removed = self._retention.remove_old_files(self._state)
            if removed:
                self._store.save(self._state)
        finally:
            self._release()
        return removed
