"""Count- and age-bounded retention over the tracked archive list."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta

from logrotation.errors import PersistenceError
from logrotation.state import ArchiveRecord, RotationState

logger = logging.getLogger(__name__)


def delete_archive(record: ArchiveRecord):
    """Delete an archive file. A file that is already gone counts as deleted."""
    try:
        os.remove(record.path)
    except FileNotFoundError:
        logger.debug("Archive already gone: %s", record.path)
    except OSError as e:
        raise PersistenceError(f"failed to delete archive ({e})", record.path) from e


class RetentionManager:
    """Evicts archives once the count or age limit is exceeded.

    An archive leaves the tracked list only after its file was deleted; a
    failed deletion keeps the record so that the next rotation retries it.
    """

    def __init__(self, files_limit: int | None = None, max_age: timedelta | None = None,
                 time_func=None):
        self._files_limit = files_limit
        self._max_age = max_age
        self._time_func = time_func or (lambda: datetime.now().astimezone())

    def _try_delete(self, record: ArchiveRecord) -> bool:
        try:
            delete_archive(record)
        except PersistenceError as e:
            logger.warning("Retention will retry later: %s", e)
            return False
        return True

    def remove_surplus(self, state: RotationState) -> list[ArchiveRecord]:
        """Delete the oldest archives beyond files_limit. Returns the evicted records."""
        if not self._files_limit:
            return []
        surplus = len(state.archives) - self._files_limit
        if surplus <= 0:
            return []

        # Every candidate gets an attempt; one failure never stops the others
        candidates = state.archives[:surplus]
        outcomes = [(record, self._try_delete(record)) for record in candidates]
        removed = [record for record, ok in outcomes if ok]
        for record in removed:
            state.archives.remove(record)

        if removed:
            logger.info("Evicted %d surplus archive(s): %s",
                        len(removed), ", ".join(r.name for r in removed))
        return removed

    def remove_outdated(self, state: RotationState) -> list[ArchiveRecord]:
        """Delete archives older than max_age, scanning oldest first."""
        if not self._max_age:
            return []
        now = self._time_func()
        removed = []

        for record in list(state.archives):
            if now - record.created_at <= self._max_age:
                # Archives are ordered oldest first, nothing younger can be expired
                break
            if self._try_delete(record):
                state.archives.remove(record)
                removed.append(record)

        if removed:
            logger.info("Evicted %d outdated archive(s): %s",
                        len(removed), ", ".join(r.name for r in removed))
        return removed

    def remove_old_files(self, state: RotationState) -> list[ArchiveRecord]:
        return self.remove_surplus(state) + self.remove_outdated(state)
