"""Rotation engine for a single actively-written log file."""

from logrotation.constants import (
    BEHAVIOR_COPY_COMPRESS_TRUNCATE,
    BEHAVIOR_COPY_TRUNCATE,
    BEHAVIOR_CREATE,
    EVENT_ERROR,
    EVENT_READY,
    EVENT_ROTATE,
)
from logrotation.errors import (
    AccessError,
    PersistenceError,
    RotationError,
    RuntimeRotationError,
    ValidationError,
)
from logrotation.naming import default_name_formatter
from logrotation.rotator import Rotator
from logrotation.state import ArchiveRecord, RotationState, StateStore

__all__ = [
    "AccessError",
    "ArchiveRecord",
    "BEHAVIOR_COPY_COMPRESS_TRUNCATE",
    "BEHAVIOR_COPY_TRUNCATE",
    "BEHAVIOR_CREATE",
    "EVENT_ERROR",
    "EVENT_READY",
    "EVENT_ROTATE",
    "PersistenceError",
    "RotationError",
    "RotationState",
    "Rotator",
    "RuntimeRotationError",
    "StateStore",
    "ValidationError",
    "default_name_formatter",
]
