"""Sync module for Busy - three-way merge of local and remote snapshots.

The ancestor is the snapshot recorded after the last successful sync,
push_force or pull_force. For every entity (keyed by id) the merge compares
the local and remote versions against the ancestor:

    local == remote              -> take it (including deleted on both sides)
    only remote changed          -> take remote (add, edit or delete)
    only local changed           -> take local
    both changed differently     -> conflict

Versions are compared in their serialized form, so moving a timestamp to
another UTC offset counts as a change even though the instant is the same.

A conflicting merge changes nothing, neither in memory nor on disk.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Union

from busy_core.constants import KIND_TASK, KIND_PROJECT, KIND_TAG
from busy_core.exceptions import (
    ConflictError,
    CorruptionError,
    MergeConflict,
    MergeConflictError,
    NotConfiguredError,
    NotFoundError,
    PushFailedError,
    TransportError,
)
from busy_core.snapshot import (
    Snapshot,
    decode_snapshot,
    encode_snapshot,
    entity_record,
    find_problems,
)
from busy_core.storage import (
    get_ancestor_path,
    get_snapshot_path,
    read_snapshot,
    write_snapshot,
)
from busy_core.store import Store
from busy_core.transport import Transport

__all__ = [
    "MergeResult",
    "merge_snapshots",
    "SyncEngine",
]

logger = logging.getLogger(__name__)

_KINDS = (KIND_PROJECT, KIND_TAG, KIND_TASK)


@dataclass(frozen=True)
class MergeResult:
    """Outcome of a merge.

    Attributes:
        snapshot: The merged snapshot
        from_local: Entities whose local change was kept (adds, edits, deletes)
        from_remote: Entities whose remote change was adopted
        pushed: Whether the merged snapshot was sent to the remote
    """

    snapshot: Snapshot
    from_local: int = 0
    from_remote: int = 0
    pushed: bool = False


def _describe(ancestor: Any, local: Any, remote: Any) -> str:
    if ancestor is None:
        return "added on both sides with different values"
    if local is None:
        return "deleted locally but changed remotely"
    if remote is None:
        return "changed locally but deleted remotely"
    if hasattr(local, "name") and local.name != remote.name:
        return f"renamed to '{local.name}' locally and to '{remote.name}' remotely"
    return "changed on both sides"


def merge_snapshots(ancestor: Snapshot, local: Snapshot, remote: Snapshot) -> MergeResult:
    """Three-way merge of local and remote against their common ancestor.

    Args:
        ancestor: Snapshot of the last successful sync (empty if never synced)
        local: Current local snapshot
        remote: Current remote snapshot

    Returns:
        MergeResult with the merged snapshot and change counts

    Raises:
        MergeConflictError: If an entity changed differently on both sides, or
            the combined result breaks a store invariant (two current tasks,
            two projects or tags with one name, a task whose project was deleted)
    """
    conflicts: List[MergeConflict] = []
    merged = {}
    from_local = 0
    from_remote = 0

    for kind in _KINDS:
        base = ancestor.by_id(kind)
        ours = local.by_id(kind)
        theirs = remote.by_id(kind)
        result = []

        for entity_id in sorted(set(base) | set(ours) | set(theirs), key=str):
            a = base.get(entity_id)
            l = ours.get(entity_id)
            r = theirs.get(entity_id)
            a_rec = entity_record(kind, a)
            l_rec = entity_record(kind, l)
            r_rec = entity_record(kind, r)

            if l_rec == r_rec:
                value = l
            elif l_rec == a_rec:
                value = r
                from_remote += 1
            elif r_rec == a_rec:
                value = l
                from_local += 1
            else:
                conflicts.append(MergeConflict(kind, str(entity_id), _describe(a, l, r)))
                continue

            if value is not None:
                result.append(value)

        merged[kind] = tuple(result)

    if conflicts:
        logger.info("Merge found %d conflict(s)", len(conflicts))
        raise MergeConflictError(conflicts)

    snapshot = Snapshot(
        tasks=merged[KIND_TASK],
        projects=merged[KIND_PROJECT],
        tags=merged[KIND_TAG],
    )

    problems = find_problems(snapshot)
    if problems:
        raise MergeConflictError(
            [MergeConflict(kind, str(entity_id) if entity_id else None, reason)
             for kind, entity_id, reason in problems]
        )

    logger.debug("Merged: %d local change(s), %d remote change(s)", from_local, from_remote)
    return MergeResult(snapshot=snapshot, from_local=from_local, from_remote=from_remote)


class SyncEngine:
    """Keeps a local Store in step with a remote copy.

    Args:
        store: The local store (mutated only after a merge is saved to disk)
        transport: Remote access, None when no remote is configured
        snapshot_path: Local snapshot file (defaults to BUSY_HOME/tasks.json)
        ancestor_path: Ancestor snapshot file (defaults to BUSY_HOME/ancestor.json)
    """

    def __init__(
        self,
        store: Store,
        transport: Optional[Transport],
        snapshot_path: Optional[Union[str, Path]] = None,
        ancestor_path: Optional[Union[str, Path]] = None,
    ) -> None:
        self.store = store
        self.transport = transport
        self.snapshot_path = Path(snapshot_path) if snapshot_path else get_snapshot_path()
        self.ancestor_path = Path(ancestor_path) if ancestor_path else get_ancestor_path()

    def ancestor(self) -> Snapshot:
        """The snapshot recorded at the last successful sync (empty if none)."""
        snapshot = read_snapshot(self.ancestor_path)
        return snapshot if snapshot is not None else Snapshot()

    def sync(self) -> MergeResult:
        """Merge remote changes into the local store and push the result.

        Raises:
            NotConfiguredError: If there is no transport
            TransportError: If fetching failed (nothing changed)
            CorruptionError: If the remote or ancestor snapshot is corrupt (nothing changed)
            MergeConflictError: If the merge can't be resolved (nothing changed)
            PushFailedError: If the merge was saved locally but the push failed;
                sync can simply be retried
        """
        transport = self._require_transport()
        remote = self._fetch(transport)
        local = self.store.snapshot()
        result = merge_snapshots(self.ancestor(), local, remote)
        merged = result.snapshot
        merged_text = encode_snapshot(merged)

        if merged_text != encode_snapshot(local):
            write_snapshot(self.snapshot_path, merged)
            self.store.load(merged)
            logger.info("Saved merged snapshot to %s", self.snapshot_path)

        pushed = False
        if merged_text != encode_snapshot(remote):
            try:
                transport.push(merged_text)
            except TransportError as e:
                # The ancestor stays as it was, so the next sync merges again
                logger.warning("Push failed, local changes kept: %s", e)
                raise PushFailedError(
                    f"Local changes were merged and saved, but the remote was not updated: {e}"
                ) from e
            pushed = True

        write_snapshot(self.ancestor_path, merged)
        logger.info(
            "Sync finished: %d local, %d remote change(s), pushed=%s",
            result.from_local, result.from_remote, pushed,
        )
        return MergeResult(
            snapshot=merged,
            from_local=result.from_local,
            from_remote=result.from_remote,
            pushed=pushed,
        )

    def push_force(self) -> Snapshot:
        """Overwrite the remote with the local snapshot, no merge.

        Raises:
            NotConfiguredError: If there is no transport
            TransportError: If the push failed (nothing changed)
        """
        transport = self._require_transport()
        local = self.store.snapshot()
        transport.push(encode_snapshot(local))
        write_snapshot(self.ancestor_path, local)
        logger.info("Pushed local snapshot over remote")
        return local

    def pull_force(self, force: bool = False) -> Snapshot:
        """Overwrite the local store with the remote snapshot, no merge.

        Unsynced local changes are discarded.

        Args:
            force: Proceed even though a task is active or paused locally

        Raises:
            NotConfiguredError: If there is no transport
            ConflictError: If a local task is active or paused and force is False
            TransportError: If fetching failed (nothing changed)
            NotFoundError: If the remote holds no snapshot yet
            CorruptionError: If the remote snapshot is corrupt (nothing changed)
        """
        transport = self._require_transport()

        current = self.store.current_task()
        if current is not None and not force:
            raise ConflictError(
                f"Task '{current.title}' is {current.state} locally, "
                "pulling would drop it; stop it first or force the pull"
            )

        data = transport.fetch()
        if data is None:
            raise NotFoundError("Remote has no snapshot to pull")
        remote = self._decode_remote(data)

        write_snapshot(self.snapshot_path, remote)
        self.store.load(remote)
        write_snapshot(self.ancestor_path, remote)
        logger.info("Pulled remote snapshot over local store")
        return remote

    def _require_transport(self) -> Transport:
        if self.transport is None:
            raise NotConfiguredError("Sync is not configured, no remote is set")
        return self.transport

    def _fetch(self, transport: Transport) -> Snapshot:
        data = transport.fetch()
        if data is None:
            logger.info("Remote is empty")
            return Snapshot()
        return self._decode_remote(data)

    @staticmethod
    def _decode_remote(data: str) -> Snapshot:
        try:
            return decode_snapshot(data)
        except CorruptionError as e:
            raise CorruptionError(f"Remote snapshot: {e}") from e
