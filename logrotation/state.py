"""Rotation state: last rotation, last sequence number and tracked archives.

The document is rewritten in full after every mutation. The write is a plain
overwrite, not a rename-based atomic replace, so a crash in the middle of a
save can leave a truncated document behind; load() then falls back to the
empty state.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveRecord:
    created_at: datetime
    sequence_number: int | None
    name: str
    path: str


@dataclass
class RotationState:
    last_rotation_at: datetime | None = None
    last_sequence_number: int | None = None
    archives: list[ArchiveRecord] = field(default_factory=list)


def _parse_timestamp(value) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"expected ISO-8601 string, got {value!r}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def _optional_int(value) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected int or null, got {value!r}")
    return value


def record_to_dict(record: ArchiveRecord) -> dict:
    return {
        "createdAt": record.created_at.isoformat(),
        "sequenceNumber": record.sequence_number,
        "name": record.name,
        "path": record.path,
    }


def record_from_dict(data: dict) -> ArchiveRecord:
    if not isinstance(data["name"], str) or not isinstance(data["path"], str):
        raise ValueError("archive name and path must be strings")
    return ArchiveRecord(
        created_at=_parse_timestamp(data["createdAt"]),
        sequence_number=_optional_int(data.get("sequenceNumber")),
        name=data["name"],
        path=data["path"],
    )


def state_to_dict(state: RotationState) -> dict:
    last = state.last_rotation_at
    return {
        "lastRotationAt": last.isoformat() if last is not None else None,
        "lastSequenceNumber": state.last_sequence_number,
        "archives": [record_to_dict(r) for r in state.archives],
    }


def state_from_dict(data: dict) -> RotationState:
    """Build a RotationState from its JSON document. Raises on schema mismatch."""
    if not isinstance(data, dict):
        raise ValueError("state document must be an object")
    raw_last = data.get("lastRotationAt")
    raw_archives = data.get("archives", [])
    if not isinstance(raw_archives, list):
        raise ValueError("archives must be a list")
    archives = [record_from_dict(item) for item in raw_archives]
    # Stable sort keeps ties in their persisted order
    archives.sort(key=lambda r: r.created_at)
    return RotationState(
        last_rotation_at=_parse_timestamp(raw_last) if raw_last is not None else None,
        last_sequence_number=_optional_int(data.get("lastSequenceNumber")),
        archives=archives,
    )


class StateStore:
    def __init__(self, state_file: str):
        self._path = state_file

    @property
    def path(self) -> str:
        return self._path

    def load(self) -> RotationState:
        """Read the state document. Any failure yields the empty default state."""
        if not os.path.exists(self._path):
            return RotationState()
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                state = state_from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Failed to load state %s, starting fresh: %s", self._path, e)
            return RotationState()
        logger.info("Loaded rotation state from %s (%d archives)", self._path, len(state.archives))
        return state

    def save(self, state: RotationState):
        os.makedirs(os.path.dirname(os.path.abspath(self._path)), exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(state_to_dict(state), f, indent=2)
