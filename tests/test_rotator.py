"""Tests for the Rotator: construction, startup, rotation and signals."""

import gzip
import json
import os
from datetime import datetime, timedelta

import pytest
from watchdog.events import FileModifiedEvent

from logrotation.clock import boundary
from logrotation.errors import (
    AccessError,
    PersistenceError,
    RuntimeRotationError,
    ValidationError,
)
from logrotation.rotator import Rotator
from logrotation.state import ArchiveRecord, RotationState, StateStore


@pytest.fixture()
def make_rotator(live_file, archive_dir, state_path, clock, observer_factory):
    created = []

    def factory(**overrides):
        options = dict(
            file_path=str(live_file),
            dir_path=str(archive_dir),
            state_file_path=str(state_path),
            time_func=clock,
            observer_factory=observer_factory,
        )
        options.update(overrides)
        rotator = Rotator(**options)
        created.append(rotator)
        return rotator

    yield factory
    for rotator in created:
        rotator.stop()


@pytest.fixture()
def events():
    return {"ready": [], "rotate": [], "error": []}


def _subscribe(rotator, events):
    for name, bucket in events.items():
        rotator.on(name, bucket.append)
    return rotator


def _read_state(state_path) -> dict:
    return json.loads(state_path.read_text(encoding="utf-8"))


class TestConstruction:
    @pytest.mark.parametrize("overrides", [
        {"behavior": "move"},
        {"frequency": "yearly"},
        {"max_size": "lots"},
        {"max_age": "forever"},
        {"files_limit": "3"},
        {"state_file_path": ""},
        {"file_path": None},
    ])
    def test_invalid_options(self, make_rotator, overrides):
        with pytest.raises(ValidationError):
            make_rotator(**overrides)

    def test_normalizes_options(self, make_rotator):
        rotator = make_rotator(frequency=" Hourly ", max_size="1k")
        assert rotator.frequency == "hourly"
        assert rotator.max_size == 1024
        assert rotator.behavior == "copy_truncate"

    def test_unknown_event(self, make_rotator):
        with pytest.raises(ValueError):
            make_rotator().on("rotated", print)


class TestStart:
    def test_missing_live_file(self, make_rotator, live_file):
        os.remove(live_file)
        with pytest.raises(AccessError):
            make_rotator().start()

    def test_size_watch_starts_after_schedule_bootstrap(self, make_rotator, observer_factory,
                                                       state_path):
        seen = []

        class RecordingObserver(observer_factory):
            def start(self):
                seen.append(state_path.exists())
                super().start()

        rotator = make_rotator(max_size=10, frequency="daily", observer_factory=RecordingObserver)
        rotator.start()
        assert seen == [True]

    def test_creates_archive_dir_recursively(self, make_rotator, tmp_path):
        target = tmp_path / "a" / "b" / "archive"
        make_rotator(dir_path=str(target)).start()
        assert target.is_dir()

    def test_unusable_archive_dir(self, make_rotator, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a dir")
        with pytest.raises(AccessError):
            make_rotator(dir_path=str(blocker / "archive")).start()

    def test_ready_emitted(self, make_rotator, events):
        rotator = _subscribe(make_rotator(), events)
        assert rotator.start() is rotator
        assert events["ready"] == [rotator]
        assert rotator.running

    def test_bootstrap_does_not_rotate(self, make_rotator, events, state_path, clock):
        rotator = _subscribe(make_rotator(frequency="daily"), events)
        rotator.start()
        prev, _ = boundary("daily", clock())
        assert events["rotate"] == []
        assert rotator.state.last_rotation_at == prev
        assert _read_state(state_path)["lastRotationAt"] == prev.isoformat()

    def test_catch_up_rotates_exactly_once(self, make_rotator, events, state_path, clock, live_file):
        live_file.write_bytes(b"left over from yesterday\n")
        StateStore(str(state_path)).save(
            RotationState(last_rotation_at=clock() - timedelta(days=6))
        )
        rotator = _subscribe(make_rotator(frequency="daily"), events)
        rotator.start()
        assert len(events["rotate"]) == 1
        assert events["ready"] == [rotator]
        record = events["rotate"][0]
        assert open(record.path, "rb").read() == b"left over from yesterday\n"

    def test_sync_drops_missing_archives(self, make_rotator, state_path, archive_dir, clock):
        archive_dir.mkdir()
        kept = archive_dir / "app.kept.log"
        kept.write_text("kept")
        records = [
            ArchiveRecord(clock() - timedelta(hours=2), None, "app.gone.log",
                          str(archive_dir / "app.gone.log")),
            ArchiveRecord(clock() - timedelta(hours=1), None, kept.name, str(kept)),
        ]
        StateStore(str(state_path)).save(RotationState(archives=records))
        rotator = make_rotator()
        rotator.start()
        assert [r.name for r in rotator.state.archives] == [kept.name]
        assert [a["name"] for a in _read_state(state_path)["archives"]] == [kept.name]

    def test_sync_reports_stat_failures(self, make_rotator, state_path, clock, events, monkeypatch):
        record = ArchiveRecord(clock(), None, "x.log", "/unreadable/x.log")
        StateStore(str(state_path)).save(RotationState(archives=[record]))
        real_stat = os.stat

        def fake_stat(path, *args, **kwargs):
            if path == record.path:
                raise PermissionError("denied")
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(os, "stat", fake_stat)
        rotator = _subscribe(make_rotator(), events)
        rotator.start()
        assert len(events["error"]) == 1
        assert isinstance(events["error"][0], PersistenceError)
        assert rotator.state.archives == [record]


class TestRotate:
    def test_create_behavior(self, make_rotator, live_file, archive_dir, events, state_path, clock):
        live_file.write_bytes(b"hello\n")
        rotator = _subscribe(make_rotator(behavior="create"), events)
        rotator.start()
        record = rotator.rotate()
        assert record.name == "app.2024-05-15.log"
        assert record.path == str(archive_dir / "app.2024-05-15.log")
        assert record.sequence_number is None
        assert record.created_at == clock()
        assert (archive_dir / record.name).read_bytes() == b"hello\n"
        assert live_file.read_bytes() == b""
        assert events["rotate"] == [record]
        doc = _read_state(state_path)
        assert doc["lastRotationAt"] == clock().isoformat()
        assert doc["archives"][0]["name"] == record.name

    def test_compress_behavior_adds_gz(self, make_rotator, live_file, archive_dir):
        live_file.write_bytes(b"compress me\n" * 10)
        rotator = make_rotator(behavior="copy_compress_truncate")
        rotator.start()
        record = rotator.rotate()
        assert record.name.endswith(".log.gz")
        with gzip.open(record.path, "rb") as f:
            assert f.read() == b"compress me\n" * 10
        assert live_file.read_bytes() == b""

    def test_custom_formatter(self, make_rotator):
        calls = []

        def formatter(name, extension, date, sequence_number):
            calls.append((name, extension, date, sequence_number))
            return f"{name}-custom.{extension}"

        rotator = make_rotator(name_formatter=formatter, max_size=10)
        rotator.start()
        record = rotator.rotate()
        assert record.name == "app-custom.log"
        assert calls[0][:2] == ("app", "log")
        assert calls[0][3] == 0

    def test_existing_target_is_overwritten(self, make_rotator, live_file, archive_dir):
        archive_dir.mkdir()
        (archive_dir / "app.2024-05-15.log").write_bytes(b"stale archive")
        live_file.write_bytes(b"fresh\n")
        rotator = make_rotator()
        rotator.start()
        record = rotator.rotate()
        assert open(record.path, "rb").read() == b"fresh\n"

    def test_same_name_rotation_replaces_tracked_record(self, make_rotator, live_file, clock,
                                                        state_path):
        rotator = make_rotator(files_limit=1)
        rotator.start()
        live_file.write_bytes(b"first\n")
        first = rotator.rotate()
        clock.advance(hours=1)
        live_file.write_bytes(b"second\n")
        second = rotator.rotate()

        assert second.path == first.path
        assert rotator.state.archives == [second]
        assert os.path.exists(second.path)
        assert open(second.path, "rb").read() == b"second\n"
        assert [a["path"] for a in _read_state(state_path)["archives"]] == [second.path]

    def test_sequence_numbers(self, make_rotator, clock):
        rotator = make_rotator(max_size="1k")
        rotator.start()
        first = rotator.rotate()
        clock.advance(minutes=10)
        second = rotator.rotate()
        clock.advance(days=1)
        third = rotator.rotate()
        assert [r.sequence_number for r in (first, second, third)] == [0, 1, 0]
        assert first.name == "app.2024-05-15.0.log"
        assert second.name == "app.2024-05-15.1.log"
        assert third.name == "app.2024-05-16.0.log"

    def test_sequence_for_high_frequency(self, make_rotator, state_path, clock):
        rotator = make_rotator(frequency="10s")
        rotator.start()
        assert rotator.rotate().sequence_number == 0
        clock.advance(seconds=10)
        assert rotator.rotate().sequence_number == 1
        assert _read_state(state_path)["lastSequenceNumber"] == 1

    def test_sequence_resumes_after_restart(self, make_rotator, clock):
        first = make_rotator(max_size=500)
        first.start()
        first.rotate()
        first.stop()
        clock.advance(minutes=1)
        second = make_rotator(max_size=500)
        second.start()
        assert second.rotate().sequence_number == 1

    def test_explicit_date(self, make_rotator):
        rotator = make_rotator()
        rotator.start()
        record = rotator.rotate(datetime(2024, 5, 20, 8, 0))
        assert record.name == "app.2024-05-20.log"
        assert record.created_at.tzinfo is not None

    def test_inaccessible_live_file(self, make_rotator, live_file, events, state_path):
        rotator = _subscribe(make_rotator(), events)
        rotator.start()
        before = rotator.state.last_rotation_at
        os.remove(live_file)
        assert rotator.rotate() is None
        assert len(events["error"]) == 1
        assert isinstance(events["error"][0], RuntimeRotationError)
        assert events["rotate"] == []
        assert rotator.state.last_rotation_at == before
        assert rotator.state.archives == []

    def test_archive_dir_removed_after_start(self, make_rotator, archive_dir, events):
        rotator = _subscribe(make_rotator(), events)
        rotator.start()
        os.rmdir(archive_dir)
        assert rotator.rotate() is None
        assert isinstance(events["error"][0], RuntimeRotationError)

    def test_state_save_failure_is_reported(self, make_rotator, events, monkeypatch):
        rotator = _subscribe(make_rotator(), events)
        rotator.start()

        def failing_save(state):
            raise OSError("disk full")

        monkeypatch.setattr(rotator._store, "save", failing_save)
        record = rotator.rotate()
        assert record is not None
        assert os.path.exists(record.path)
        assert isinstance(events["error"][0], PersistenceError)
        assert events["rotate"] == [record]

    def test_concurrent_trigger_is_ignored(self, make_rotator):
        nested = []

        def formatter(name, extension, date, sequence_number):
            nested.append(rotator.rotate())
            return f"{name}.{extension}.archived"

        rotator = make_rotator(name_formatter=formatter)
        rotator.start()
        record = rotator.rotate()
        assert record is not None
        assert nested == [None]
        assert len(rotator.state.archives) == 1
        assert not rotator.rotating

    def test_state_saved_before_rotate_signal(self, make_rotator, state_path):
        seen = []
        rotator = make_rotator()
        rotator.on("rotate", lambda record: seen.append(
            [a["name"] for a in _read_state(state_path)["archives"]]))
        rotator.start()
        record = rotator.rotate()
        assert seen == [[record.name]]


class TestRetentionIntegration:
    def test_files_limit(self, make_rotator, live_file, clock):
        rotator = make_rotator(max_size=1000, files_limit=2)
        rotator.start()
        records = []
        for i in range(4):
            live_file.write_bytes(f"batch {i}\n".encode())
            records.append(rotator.rotate())
            clock.advance(minutes=1)
        assert rotator.state.archives == records[2:]
        assert not os.path.exists(records[0].path)
        assert not os.path.exists(records[1].path)
        assert os.path.exists(records[3].path)

    def test_max_age(self, make_rotator, clock):
        rotator = make_rotator(max_size=1000, max_age="1h")
        rotator.start()
        old = rotator.rotate()
        clock.advance(hours=2)
        fresh = rotator.rotate()
        assert rotator.state.archives == [fresh]
        assert not os.path.exists(old.path)

    def test_remove_old_files_outside_rotation(self, make_rotator, clock, state_path):
        rotator = make_rotator(max_size=1000, max_age=3600)
        rotator.start()
        record = rotator.rotate()
        clock.advance(hours=3)
        assert rotator.remove_old_files() == [record]
        assert _read_state(state_path)["archives"] == []


class TestSizeTrigger:
    def test_watcher_requests_rotation(self, make_rotator, fake_observer, live_file, events):
        rotator = _subscribe(make_rotator(max_size=100, observer_factory=lambda: fake_observer),
                             events)
        rotator.start()
        handler, path, _ = fake_observer.scheduled[0]
        assert path == str(live_file.parent)

        live_file.write_bytes(b"a" * 60)
        handler.dispatch(FileModifiedEvent(str(live_file)))
        assert events["rotate"] == []

        with open(live_file, "ab") as f:
            f.write(b"b" * 60)
        handler.dispatch(FileModifiedEvent(str(live_file)))
        assert len(events["rotate"]) == 1
        assert open(events["rotate"][0].path, "rb").read() == b"a" * 60 + b"b" * 60

    def test_stop_detaches_watcher_and_timer(self, make_rotator, fake_observer, live_file, events):
        rotator = _subscribe(make_rotator(max_size=10, frequency="hourly",
                                          observer_factory=lambda: fake_observer), events)
        rotator.start()
        handler = fake_observer.handler
        rotator.stop()
        assert fake_observer.stopped
        assert not rotator.running

        live_file.write_bytes(b"x" * 50)
        handler.dispatch(FileModifiedEvent(str(live_file)))
        assert events["rotate"] == []
