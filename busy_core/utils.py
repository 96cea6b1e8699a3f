"""Shared utilities for Busy - clock, timestamps, file locking, atomic writes."""

import contextlib
import fcntl
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Generator, Optional, Union

from busy_core.constants import LOCK_TIMEOUT
from busy_core.exceptions import LockError, ValidationError

__all__ = [
    "now",
    "format_timestamp",
    "parse_timestamp",
    "parse_datetime",
    "file_lock",
    "atomic_write",
]

logger = logging.getLogger(__name__)


def now() -> datetime:
    """Get the current time with the local UTC offset attached."""
    return datetime.now().astimezone()


def format_timestamp(value: datetime) -> str:
    """Format a timezone-aware datetime as ISO 8601 with offset.

    Returns:
        e.g. "2024-01-15T10:30:00+02:00" (microseconds only when non-zero)

    Raises:
        ValidationError: If value is naive
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"Timestamp without timezone offset: {value!r}")
    return value.isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp that carries an offset.

    Raises:
        ValidationError: If value is not ISO 8601 or has no offset
    """
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        raise ValidationError(f"Timestamp without timezone offset: {value!r}")
    return parsed


def parse_datetime(value: str, reference: Optional[datetime] = None) -> datetime:
    """Parse human time input: "HH:MM" (today) or "YYYY-mm-dd HH:MM".

    Args:
        value: Text entered by the user
        reference: Moment whose date and offset fill in the missing parts
            (defaults to now())

    Returns:
        Timezone-aware datetime in the local offset

    Raises:
        ValidationError: If value matches neither format

    Examples:
        >>> parse_datetime("2020-01-01 00:00").strftime("%Y-%m-%d %H:%M")
        '2020-01-01 00:00'
    """
    if reference is None:
        reference = now()

    text = value.strip()
    if " " not in text:
        text = f"{reference.strftime('%Y-%m-%d')} {text}"

    try:
        naive = datetime.strptime(text, "%Y-%m-%d %H:%M")
    except ValueError:
        raise ValidationError(
            f"Can't parse time {value!r}, expected HH:MM or YYYY-mm-dd HH:MM"
        )

    if " " in value.strip():
        # Full date given: use the local offset in effect on that date
        return naive.astimezone()
    return naive.replace(tzinfo=reference.tzinfo)


@contextmanager
def file_lock(lock_path: Path, timeout: float = LOCK_TIMEOUT) -> Generator[object, None, None]:
    """Acquire an exclusive file lock.

    Args:
        lock_path: Path to lock file
        timeout: Maximum time to wait for lock (seconds)

    Yields:
        The lock file object

    Raises:
        LockError: If unable to acquire lock within timeout

    Usage:
        with file_lock(Path("~/.busy/.lock")):
            # load snapshot, mutate, save snapshot
            pass
    """
    lock_path = Path(lock_path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    lock_file = open(lock_path, "w")

    try:
        start_time = time.time()
        while True:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.time() - start_time >= timeout:
                    raise LockError(
                        f"Could not acquire lock on {lock_path} within {timeout}s"
                    )
                time.sleep(0.01)

        yield lock_file

    finally:
        with contextlib.suppress(OSError):
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        lock_file.close()


def atomic_write(path: Union[str, Path], data: str) -> None:
    """Replace the file at path with data, never leaving a partial file.

    Writes to a temporary file in the same directory, fsyncs it and renames it
    over the target. On failure the previous file is left untouched.

    Raises:
        OSError: If the directory is not writable
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise

    logger.debug("Wrote %d bytes to %s", len(data), path)
