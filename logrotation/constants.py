"""Closed enumerations shared across the package."""

from datetime import timedelta

BEHAVIOR_CREATE = "create"
BEHAVIOR_COPY_TRUNCATE = "copy_truncate"
BEHAVIOR_COPY_COMPRESS_TRUNCATE = "copy_compress_truncate"

BEHAVIOR_LIST = (
    BEHAVIOR_CREATE,
    BEHAVIOR_COPY_TRUNCATE,
    BEHAVIOR_COPY_COMPRESS_TRUNCATE,
)

FREQUENCY_MONTHLY = "monthly"
FREQUENCY_WEEKLY = "weekly"
FREQUENCY_DAILY = "daily"
FREQUENCY_HOURLY = "hourly"
FREQUENCY_10S = "10s"
FREQUENCY_3S = "3s"

# Fixed short intervals, aligned to the epoch
FIXED_INTERVALS = {
    FREQUENCY_10S: timedelta(seconds=10),
    FREQUENCY_3S: timedelta(seconds=3),
}

FREQUENCY_LIST = (
    FREQUENCY_MONTHLY,
    FREQUENCY_WEEKLY,
    FREQUENCY_DAILY,
    FREQUENCY_HOURLY,
    *FIXED_INTERVALS,
)

# Frequencies that may rotate more than once per calendar day
HIGH_FREQUENCY_LIST = (FREQUENCY_HOURLY, *FIXED_INTERVALS)

EVENT_READY = "ready"
EVENT_ROTATE = "rotate"
EVENT_ERROR = "error"

EVENT_LIST = (EVENT_READY, EVENT_ROTATE, EVENT_ERROR)

DEFAULT_BEHAVIOR = BEHAVIOR_COPY_TRUNCATE
DEFAULT_ENCODING = "utf-8"
DEFAULT_BASE_NAME = "logrotation"
COMPRESSED_SUFFIX = ".gz"
