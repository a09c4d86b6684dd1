"""Default archive name formatter."""

from __future__ import annotations

from datetime import datetime

from logrotation.constants import DEFAULT_BASE_NAME


def default_name_formatter(
    name: str | None,
    extension: str | None,
    date: datetime | None,
    sequence_number: int | None,
) -> str:
    """Build ``<base>.<YYYY-MM-DD>.<sequence>.<extension>``.

    Every segment but the base name is left out when it is None. The date is
    rendered in local time.

    >>> default_name_formatter("app", "log", datetime(2024, 3, 7, 10), 2)
    'app.2024-03-07.2.log'
    """
    parts = [name if name else DEFAULT_BASE_NAME]
    if date is not None:
        parts.append(date.astimezone().strftime("%Y-%m-%d"))
    if sequence_number is not None:
        parts.append(str(sequence_number))
    if extension:
        parts.append(extension)
    return ".".join(parts)
