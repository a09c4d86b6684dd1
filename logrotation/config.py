"""Configuration loading from CLI args, env vars, and optional YAML file."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import timedelta

import yaml

from logrotation.constants import DEFAULT_BEHAVIOR, DEFAULT_ENCODING
from logrotation.errors import ValidationError

logger = logging.getLogger(__name__)

SIZE_UNITS = {"b": 1, "k": 2 ** 10, "m": 2 ** 20, "g": 2 ** 30}
DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}

_SIZE_RE = re.compile(r"^\s*(\d+)\s?([a-z])?b?\s*$", re.IGNORECASE)
_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s?([a-z])?\s*$", re.IGNORECASE)


def parse_size(value) -> int | None:
    """Byte threshold from a number or a string like ``"10m"``. Non-positive means unset."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"max_size_not_valid: {value!r}")
    if isinstance(value, (int, float)):
        return int(value) if value > 0 else None
    if isinstance(value, str):
        match = _SIZE_RE.match(value)
        if match:
            size, unit = int(match.group(1)), match.group(2)
            if size <= 0:
                return None
            if unit is None:
                return size
            multiplier = SIZE_UNITS.get(unit.lower())
            if multiplier is not None:
                return size * multiplier
    raise ValidationError(f"max_size_not_valid: {value!r}")


def parse_duration(value) -> timedelta | None:
    """Max archive age from seconds, a timedelta, or a string like ``"7d"``."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"max_age_not_valid: {value!r}")
    if isinstance(value, timedelta):
        return value if value > timedelta(0) else None
    if isinstance(value, (int, float)):
        return timedelta(seconds=value) if value > 0 else None
    if isinstance(value, str):
        match = _DURATION_RE.match(value)
        if match:
            amount, unit = float(match.group(1)), match.group(2)
            multiplier = DURATION_UNITS.get(unit.lower()) if unit else 1
            if multiplier is not None:
                seconds = amount * multiplier
                return timedelta(seconds=seconds) if seconds > 0 else None
    raise ValidationError(f"max_age_not_valid: {value!r}")


@dataclass(frozen=True)
class Config:
    file_path: str = ""
    dir_path: str = ""
    state_file_path: str = ""
    frequency: str | None = None
    max_size: int | str | None = None
    files_limit: int | None = None
    max_age: str | float | None = None
    behavior: str = DEFAULT_BEHAVIOR
    encoding: str = DEFAULT_ENCODING
    log_level: str = "INFO"

    def rotator_kwargs(self) -> dict:
        """Keyword arguments for :class:`logrotation.rotator.Rotator`."""
        return {
            "file_path": self.file_path,
            "dir_path": self.dir_path,
            "state_file_path": self.state_file_path,
            "frequency": self.frequency,
            "max_size": self.max_size,
            "files_limit": self.files_limit,
            "max_age": self.max_age,
            "behavior": self.behavior,
            "encoding": self.encoding,
        }


# field name -> (YAML key, env var)
_SOURCES = {
    "file_path": ("file", "ROTATE_FILE"),
    "dir_path": ("dir", "ROTATE_DIR"),
    "state_file_path": ("state_file", "ROTATE_STATE_FILE"),
    "frequency": ("frequency", "ROTATE_FREQUENCY"),
    "max_size": ("max_size", "ROTATE_MAX_SIZE"),
    "files_limit": ("files_limit", "ROTATE_FILES_LIMIT"),
    "max_age": ("max_age", "ROTATE_MAX_AGE"),
    "behavior": ("behavior", "ROTATE_BEHAVIOR"),
    "encoding": ("encoding", "ROTATE_ENCODING"),
    "log_level": ("log_level", "LOG_LEVEL"),
}


def load_yaml_config(path: str | None) -> dict:
    """Load rotator options from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def _parse_int(name: str, value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name}_not_valid: {value!r}") from e


def load_config(cli_args=None, yaml_data: dict | None = None, environ=None) -> Config:
    """Build Config with precedence CLI args > env vars > YAML > defaults."""
    yaml_data = yaml_data or {}
    environ = os.environ if environ is None else environ

    values = {}
    for field_name, (yaml_key, env_var) in _SOURCES.items():
        value = getattr(cli_args, field_name, None) if cli_args is not None else None
        if value is None:
            value = environ.get(env_var)
        if value is None:
            value = yaml_data.get(yaml_key)
        if value is not None:
            values[field_name] = value

    if "files_limit" in values:
        values["files_limit"] = _parse_int("files_limit", values["files_limit"])

    return Config(**values)
