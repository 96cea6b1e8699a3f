"""Local storage for Busy - file locations, loading and saving snapshots."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from busy_core.constants import (
    ENV_HOME,
    SNAPSHOT_FILENAME,
    ANCESTOR_FILENAME,
    LOCK_FILENAME,
)
from busy_core.exceptions import CorruptionError
from busy_core.snapshot import Snapshot, decode_snapshot, encode_snapshot
from busy_core.store import Store
from busy_core.utils import atomic_write

__all__ = [
    "get_busy_home",
    "get_snapshot_path",
    "get_ancestor_path",
    "get_lock_path",
    "read_snapshot",
    "write_snapshot",
    "open_store",
    "save_store",
]

logger = logging.getLogger(__name__)


def get_busy_home() -> Path:
    """Get the busy home directory (~/.busy).

    Can be overridden via BUSY_HOME environment variable.
    This is primarily used for test isolation to prevent tests
    from modifying real user data.
    """
    busy_home = os.environ.get(ENV_HOME)
    if busy_home:
        return Path(busy_home)
    return Path.home() / ".busy"


def get_snapshot_path() -> Path:
    """Get the local task database path (~/.busy/tasks.json)."""
    return get_busy_home() / SNAPSHOT_FILENAME


def get_ancestor_path() -> Path:
    """Get the path of the snapshot recorded at the last successful sync."""
    return get_busy_home() / ANCESTOR_FILENAME


def get_lock_path() -> Path:
    """Get the file lock path (~/.busy/.lock)."""
    return get_busy_home() / LOCK_FILENAME


def read_snapshot(path: Union[str, Path]) -> Optional[Snapshot]:
    """Read a snapshot file.

    Returns:
        The snapshot, or None if the file doesn't exist

    Raises:
        CorruptionError: If the file can't be read or decoded
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise CorruptionError(f"Can't read snapshot {path}: {e}") from e

    try:
        return decode_snapshot(text)
    except CorruptionError as e:
        raise CorruptionError(f"{path}: {e}") from e


def write_snapshot(path: Union[str, Path], snapshot: Snapshot) -> None:
    """Atomically replace the snapshot file at path."""
    atomic_write(path, encode_snapshot(snapshot))


def open_store(path: Optional[Union[str, Path]] = None) -> Store:
    """Load the local store, empty if no snapshot was saved yet.

    Raises:
        CorruptionError: If the snapshot file is corrupt
    """
    if path is None:
        path = get_snapshot_path()
    snapshot = read_snapshot(path)
    if snapshot is None:
        logger.debug("No snapshot at %s, starting empty", path)
        return Store()
    return Store(snapshot)


def save_store(store: Store, path: Optional[Union[str, Path]] = None) -> None:
    if path is None:
        path = get_snapshot_path()
    write_snapshot(path, store.snapshot())
