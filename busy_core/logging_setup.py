"""Logging configuration for Busy."""

import logging
import os
import sys
from typing import Optional, Union

from busy_core.constants import ENV_LOG

__all__ = ["setup_logging"]

DEFAULT_LEVEL = "WARNING"


def _resolve_level(level: Optional[Union[int, str]]) -> int:
    if level is None:
        level = os.environ.get(ENV_LOG, DEFAULT_LEVEL)
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    # Unknown names come back as "Level <name>"
    return resolved if isinstance(resolved, int) else logging.WARNING


def setup_logging(level: Optional[Union[int, str]] = None) -> None:
    """Configure console logging to stderr.

    Args:
        level: Level name or number, defaults to BUSY_LOG (WARNING if unset)

    Call this once, before the first log record is emitted.
    """
    root = logging.getLogger()
    root.setLevel(_resolve_level(level))

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
