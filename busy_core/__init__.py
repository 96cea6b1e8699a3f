"""Busy - personal time tracker with local-first sync.

This package provides the core functionality for the busy time tracker.
Import from here for the public API.
"""

from busy_core.exceptions import (
    BusyError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    AmbiguousError,
    ValidationError,
    CorruptionError,
    MergeConflict,
    MergeConflictError,
    TransportError,
    PushFailedError,
    NotConfiguredError,
    LockError,
    IDCollisionError,
)
from busy_core.constants import (
    STATE_ACTIVE,
    STATE_PAUSED,
    STATE_STOPPED,
    VALID_STATES,
    KIND_TASK,
    KIND_PROJECT,
    KIND_TAG,
    MAX_ID_RETRIES,
    SHORT_ID_MIN_LENGTH,
    LOCK_TIMEOUT,
)
from busy_core.utils import (
    now,
    format_timestamp,
    parse_timestamp,
    parse_datetime,
    file_lock,
    atomic_write,
)
from busy_core.ids import generate_id, parse_id
from busy_core.models import Interval, Project, Tag, Task
from busy_core.index import Index
from busy_core.snapshot import (
    Snapshot,
    find_problems,
    entity_record,
    encode_snapshot,
    decode_snapshot,
)
from busy_core.store import Store
from busy_core.tasks import (
    start,
    stop,
    pause,
    resume,
    continue_task,
    add,
    remove_task,
    replace_task,
)
from busy_core.storage import (
    get_busy_home,
    get_snapshot_path,
    get_ancestor_path,
    get_lock_path,
    read_snapshot,
    write_snapshot,
    open_store,
    save_store,
)
from busy_core.transport import Transport, FileTransport, get_remote, get_transport
from busy_core.sync import MergeResult, merge_snapshots, SyncEngine
from busy_core.logging_setup import setup_logging
from busy_core.cli import app, main

__all__ = [
    # Exceptions
    "BusyError",
    "ConflictError",
    "InvalidStateError",
    "NotFoundError",
    "AmbiguousError",
    "ValidationError",
    "CorruptionError",
    "MergeConflict",
    "MergeConflictError",
    "TransportError",
    "PushFailedError",
    "NotConfiguredError",
    "LockError",
    "IDCollisionError",
    # Constants
    "STATE_ACTIVE",
    "STATE_PAUSED",
    "STATE_STOPPED",
    "VALID_STATES",
    "KIND_TASK",
    "KIND_PROJECT",
    "KIND_TAG",
    "MAX_ID_RETRIES",
    "SHORT_ID_MIN_LENGTH",
    "LOCK_TIMEOUT",
    # Utils
    "now",
    "format_timestamp",
    "parse_timestamp",
    "parse_datetime",
    "file_lock",
    "atomic_write",
    # IDs
    "generate_id",
    "parse_id",
    # Records
    "Interval",
    "Project",
    "Tag",
    "Task",
    # Index and store
    "Index",
    "Snapshot",
    "find_problems",
    "entity_record",
    "encode_snapshot",
    "decode_snapshot",
    "Store",
    # Task lifecycle
    "start",
    "stop",
    "pause",
    "resume",
    "continue_task",
    "add",
    "remove_task",
    "replace_task",
    # Storage
    "get_busy_home",
    "get_snapshot_path",
    "get_ancestor_path",
    "get_lock_path",
    "read_snapshot",
    "write_snapshot",
    "open_store",
    "save_store",
    # Sync
    "Transport",
    "FileTransport",
    "get_remote",
    "get_transport",
    "MergeResult",
    "merge_snapshots",
    "SyncEngine",
    # Logging
    "setup_logging",
    # CLI
    "app",
    "main",
]
