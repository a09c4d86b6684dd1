"""Shared pytest fixtures for the log rotation test suite."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest


class FakeClock:
    """Callable time source that tests move forward by hand."""

    def __init__(self, now: datetime):
        self.now = now.astimezone()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeObserver:
    """Stands in for a watchdog Observer; records what was scheduled."""

    def __init__(self):
        self.scheduled: list[tuple] = []
        self.started = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((handler, path, recursive))

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass

    @property
    def handler(self):
        return self.scheduled[0][0]


@pytest.fixture()
def live_file(tmp_path):
    """An empty live log file: <tmp>/app.log."""
    path = tmp_path / "app.log"
    path.write_bytes(b"")
    return path


@pytest.fixture()
def archive_dir(tmp_path):
    return tmp_path / "archive"


@pytest.fixture()
def state_path(tmp_path):
    return tmp_path / "state" / "logstate.json"


@pytest.fixture()
def clock():
    return FakeClock(datetime(2024, 5, 15, 12, 30, 0))


@pytest.fixture()
def fake_observer():
    return FakeObserver()



@pytest.fixture()
def observer_factory():
    """Builds a fresh FakeObserver per watcher."""
    return FakeObserver
