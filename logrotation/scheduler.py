"""Scheduler: catches up on missed boundaries and arms the next rotation."""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from logrotation.clock import boundary
from logrotation.state import RotationState, StateStore

logger = logging.getLogger(__name__)


class Scheduler:
    """Self re-arming one-shot timer driven by the frequency clock.

    Every tick recomputes the current boundary, rotates at most once to catch
    up, then arms a single timer for the next boundary. Re-arming from the
    boundary instead of using a fixed period keeps rotation time from
    accumulating as drift.
    """

    def __init__(self, frequency: str, state: RotationState, store: StateStore, on_due,
                 time_func=None):
        self._frequency = frequency
        self._state = state
        self._store = store
        self._on_due = on_due
        self._time_func = time_func or (lambda: datetime.now().astimezone())
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._running = False
        self._next_at: datetime | None = None

    @property
    def next_at(self) -> datetime | None:
        return self._next_at

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        self._running = True
        self.tick()

    def stop(self):
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._next_at = None

    def tick(self):
        if not self._running:
            return
        now = self._time_func()
        prev, nxt = boundary(self._frequency, now)

        try:
            if self._state.last_rotation_at is None:
                # First run: the partial period in progress counts as rotated
                self._state.last_rotation_at = prev
                self._store.save(self._state)
                logger.info("No previous rotation recorded, period starts at %s", prev.isoformat())
            elif self._state.last_rotation_at <= prev:
                logger.info("Boundary %s passed since last rotation at %s, rotating",
                            prev.isoformat(), self._state.last_rotation_at.isoformat())
                self._on_due()
        except Exception:
            logger.exception("Scheduled rotation at %s failed", prev.isoformat())
        finally:
            self._arm(nxt)

    def _arm(self, nxt: datetime):
        with self._lock:
            if not self._running:
                return
            delay = max((nxt - self._time_func()).total_seconds(), 0.0)
            timer = threading.Timer(delay, self.tick)
            timer.daemon = True
            self._timer = timer
            self._next_at = nxt
            timer.start()
        logger.debug("Next rotation check at %s (in %.3fs)", nxt.isoformat(), delay)
