#!/usr/bin/env python3
"""Log Rotation Service entry point."""

import argparse
import logging
import signal
import sys
import time

from logrotation.config import load_config, load_yaml_config
from logrotation.constants import BEHAVIOR_LIST, EVENT_ERROR, EVENT_ROTATE, FREQUENCY_LIST
from logrotation.errors import RotationError
from logrotation.rotator import Rotator

logger = logging.getLogger(__name__)

_running = True


def _signal_handler(sig, frame):
    global _running
    logger.info("Shutdown signal received (signal %d), stopping...", sig)
    _running = False


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Log Rotation Service")
    parser.add_argument("--file", dest="file_path", default=None, help="Live log file to rotate")
    parser.add_argument("--dir", dest="dir_path", default=None, help="Directory receiving archives")
    parser.add_argument("--state-file", dest="state_file_path", default=None,
                        help="Path of the persisted rotation state document")
    parser.add_argument("--frequency", default=None,
                        help=f"Time-based rotation, one of: {', '.join(FREQUENCY_LIST)}")
    parser.add_argument("--max-size", default=None,
                        help="Rotate once the file reaches this size (e.g. 500, 10k, 5m, 1g)")
    parser.add_argument("--files-limit", type=int, default=None,
                        help="Maximum number of archives to keep")
    parser.add_argument("--max-age", default=None,
                        help="Maximum archive age (e.g. 3600, 12h, 7d)")
    parser.add_argument("--behavior", default=None, choices=BEHAVIOR_LIST,
                        help="How the live file becomes an archive (default: copy_truncate)")
    parser.add_argument("--encoding", default=None, help="Encoding of the live file (default: utf-8)")
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    return parser


def main(argv=None) -> int:
    parser = build_cli_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [ROTATOR] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args, load_yaml_config(args.config))
    except RotationError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    logging.getLogger().setLevel(getattr(logging, str(config.log_level).upper(), logging.INFO))

    missing = [flag for flag, value in (("--file", config.file_path),
                                        ("--dir", config.dir_path),
                                        ("--state-file", config.state_file_path)) if not value]
    if missing:
        parser.error(f"missing required option(s): {', '.join(missing)}")

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        rotator = Rotator(**config.rotator_kwargs())
        rotator.on(EVENT_ROTATE, lambda record: logger.info("Archive ready: %s", record.path))
        rotator.on(EVENT_ERROR, lambda err: logger.error("Rotation error: %s", err))
        rotator.start()
    except RotationError as e:
        logger.error("Failed to start: %s", e)
        return 1

    logger.info("Log Rotation Service running. Press Ctrl+C to stop.")

    try:
        while _running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass

    rotator.stop()
    logger.info("Log Rotation Service stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
