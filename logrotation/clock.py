"""Frequency clock: maps a frequency and an instant to its rotation period."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from logrotation.constants import (
    FIXED_INTERVALS,
    FREQUENCY_DAILY,
    FREQUENCY_HOURLY,
    FREQUENCY_LIST,
    FREQUENCY_MONTHLY,
    FREQUENCY_WEEKLY,
    HIGH_FREQUENCY_LIST,
)
from logrotation.errors import ValidationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def validate_frequency(frequency: str | None) -> str | None:
    """Normalize a frequency option. Returns None when the option is absent."""
    if frequency is None:
        return None
    if not isinstance(frequency, str):
        raise ValidationError(f"frequency_not_recognized: {frequency!r}")
    normalized = frequency.strip().lower()
    if not normalized:
        return None
    if normalized not in FREQUENCY_LIST:
        raise ValidationError(f"frequency_not_recognized: {frequency!r}")
    return normalized


def is_high_frequency(frequency: str | None) -> bool:
    return frequency in HIGH_FREQUENCY_LIST


def to_local(moment: datetime | None = None) -> datetime:
    """Return an aware datetime in the local timezone. Naive input is local time."""
    if moment is None:
        return datetime.now().astimezone()
    return moment.astimezone()


def _local_midnight(year: int, month: int, day: int) -> datetime:
    # A naive wall-clock time converted with the offset in effect at that time
    return datetime(year, month, day).astimezone()


def _epoch_millis(moment: datetime) -> int:
    delta = moment - EPOCH
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    return micros // 1000


def boundary(frequency: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return the rotation period ``(prev, next)`` enclosing ``now``.

    ``prev <= now < next`` always holds. Calendar frequencies are aligned to
    local wall-clock time; fixed intervals are aligned to multiples of the
    interval since the epoch, at millisecond precision. Both bounds are
    timezone-aware datetimes in the local timezone.
    """
    local = to_local(now)

    if frequency == FREQUENCY_MONTHLY:
        prev = _local_midnight(local.year, local.month, 1)
        if local.month == 12:
            nxt = _local_midnight(local.year + 1, 1, 1)
        else:
            nxt = _local_midnight(local.year, local.month + 1, 1)
        return prev, nxt

    if frequency == FREQUENCY_WEEKLY:
        monday = local.date() - timedelta(days=local.weekday())
        following = monday + timedelta(days=7)
        prev = _local_midnight(monday.year, monday.month, monday.day)
        nxt = _local_midnight(following.year, following.month, following.day)
        return prev, nxt

    if frequency == FREQUENCY_DAILY:
        tomorrow = local.date() + timedelta(days=1)
        prev = _local_midnight(local.year, local.month, local.day)
        nxt = _local_midnight(tomorrow.year, tomorrow.month, tomorrow.day)
        return prev, nxt

    if frequency == FREQUENCY_HOURLY:
        prev = local.replace(minute=0, second=0, microsecond=0)
        return prev, prev + timedelta(hours=1)

    interval = FIXED_INTERVALS.get(frequency)
    if interval is None:
        raise ValidationError(f"frequency_not_recognized: {frequency!r}")

    interval_ms = int(interval.total_seconds() * 1000)
    millis = _epoch_millis(local)
    prev = (EPOCH + timedelta(milliseconds=millis - millis % interval_ms)).astimezone()
    return prev, prev + interval
