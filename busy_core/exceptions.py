"""Custom exceptions for Busy."""

from typing import List, Optional, Sequence

__all__ = [
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
]


class BusyError(Exception):
    """Base class for every error raised by the core."""

    pass


class ConflictError(BusyError):
    """Raised when a current task already exists."""

    pass


class InvalidStateError(BusyError):
    """Raised when a transition is not legal from the task's current state."""

    pass


class NotFoundError(BusyError):
    """Raised when an identifier, short id or name does not resolve."""

    pass


class AmbiguousError(BusyError):
    """Raised when a short id matches more than one entity."""

    def __init__(self, short_id: str, candidates: Sequence[str]):
        self.short_id = short_id
        self.candidates = sorted(candidates)
        super().__init__(
            f"Short id '{short_id}' is ambiguous, candidates: {', '.join(self.candidates)}"
        )


class ValidationError(BusyError):
    """Raised for malformed input, e.g. finish time before start time."""

    pass


class CorruptionError(BusyError):
    """Raised when a snapshot fails to parse or violates store invariants."""

    pass


class MergeConflict:
    """One entity the three-way merge could not reconcile."""

    def __init__(self, kind: str, entity_id: Optional[str], reason: str):
        self.kind = kind
        self.entity_id = entity_id
        self.reason = reason

    def __repr__(self) -> str:
        return f"MergeConflict({self.kind!r}, {self.entity_id!r}, {self.reason!r})"

    def __str__(self) -> str:
        if self.entity_id is None:
            return f"{self.kind}: {self.reason}"
        return f"{self.kind} {self.entity_id}: {self.reason}"


class MergeConflictError(BusyError):
    """Raised when local and remote changes cannot be merged automatically."""

    def __init__(self, conflicts: List[MergeConflict]):
        self.conflicts = list(conflicts)
        lines = "\n".join(f"  - {c}" for c in self.conflicts)
        super().__init__(f"Sync aborted, {len(self.conflicts)} conflict(s):\n{lines}")


class TransportError(BusyError):
    """Raised when the remote cannot be reached or rejects a request."""

    pass


class PushFailedError(TransportError):
    """Raised when the merge was saved locally but the push to remote failed."""

    pass


class NotConfiguredError(BusyError):
    """Raised when no usable remote is configured."""

    pass


class LockError(BusyError):
    """Raised when unable to acquire file lock."""

    pass


class IDCollisionError(BusyError):
    """Raised when unable to generate unique ID after max retries."""

    pass
