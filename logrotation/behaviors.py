"""Rotation behaviors: move the live file's content into an archive file."""

import gzip
import logging
import os
import shutil

from logrotation.constants import (
    BEHAVIOR_COPY_COMPRESS_TRUNCATE,
    BEHAVIOR_COPY_TRUNCATE,
    BEHAVIOR_CREATE,
    BEHAVIOR_LIST,
)
from logrotation.errors import ValidationError

logger = logging.getLogger(__name__)


def validate_behavior(behavior: str) -> str:
    if behavior not in BEHAVIOR_LIST:
        raise ValidationError(f"behavior_not_recognized: {behavior!r}")
    return behavior


def remove_existing(target_path: str) -> bool:
    """Remove a file left at the archive path. Returns True if one was removed."""
    try:
        os.remove(target_path)
    except FileNotFoundError:
        return False
    logger.info("Overwriting existing archive %s", target_path)
    return True


def rotate_create(file_path: str, target_path: str, encoding: str):
    """Rename the live file to the archive, then recreate it empty.

    Writers holding an open handle keep writing into the archive; writers that
    reopen by path start on the new file.
    """
    os.rename(file_path, target_path)
    with open(file_path, "a", encoding=encoding):
        pass


def rotate_copy_truncate(file_path: str, target_path: str):
    """Copy the live file's bytes to the archive, then truncate it in place.

    Appends that land between the copy and the truncate are lost.
    """
    shutil.copyfile(file_path, target_path)
    os.truncate(file_path, 0)


def rotate_copy_compress_truncate(file_path: str, target_path: str):
    """Stream the live file through gzip into the archive, then truncate it."""
    with open(file_path, "rb") as f_in, gzip.open(target_path, "wb") as f_out:
        shutil.copyfileobj(f_in, f_out)
    os.truncate(file_path, 0)


def execute(behavior: str, file_path: str, target_path: str, encoding: str):
    """Run one behavior. Only 'create' opens the live file as text."""
    if behavior == BEHAVIOR_CREATE:
        rotate_create(file_path, target_path, encoding)
    elif behavior == BEHAVIOR_COPY_TRUNCATE:
        rotate_copy_truncate(file_path, target_path)
    elif behavior == BEHAVIOR_COPY_COMPRESS_TRUNCATE:
        rotate_copy_compress_truncate(file_path, target_path)
    else:
        raise ValidationError(f"behavior_not_recognized: {behavior!r}")
