"""Snapshot format for Busy - deterministic JSON encoding of the whole store.

Format:
    {"version": 1, "projects": [...], "tags": [...], "tasks": [...]}

    Keys are sorted, projects and tags ordered by (name, id), tasks by
    (start instant, id), so saving unchanged state produces identical bytes.
"""

import json
import logging
import math
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from busy_core.constants import (
    KIND_TASK,
    KIND_PROJECT,
    KIND_TAG,
    SNAPSHOT_VERSION,
)
from busy_core.exceptions import BusyError, CorruptionError
from busy_core.ids import parse_id
from busy_core.models import Interval, Project, Tag, Task
from busy_core.utils import format_timestamp, parse_timestamp

__all__ = [
    "Snapshot",
    "find_problems",
    "entity_record",
    "encode_snapshot",
    "decode_snapshot",
]

logger = logging.getLogger(__name__)

# timedelta(seconds=...) overflows well before float range runs out
_MAX_PAUSED_SECONDS = timedelta.max.total_seconds()

Problem = Tuple[str, Optional[uuid.UUID], str]


def _named_key(entity) -> Tuple[str, str]:
    return (entity.name, str(entity.id))


def _task_key(task: Task) -> Tuple[Any, str]:
    return (task.interval.start, str(task.id))


@dataclass(frozen=True)
class Snapshot:
    """Immutable copy of every entity in a store at one point in time.

    Collections are normalized to sorted tuples, so two snapshots holding
    the same entities compare equal regardless of insertion order.
    """

    tasks: Tuple[Task, ...] = ()
    projects: Tuple[Project, ...] = ()
    tags: Tuple[Tag, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tasks", tuple(sorted(self.tasks, key=_task_key)))
        object.__setattr__(self, "projects", tuple(sorted(self.projects, key=_named_key)))
        object.__setattr__(self, "tags", tuple(sorted(self.tags, key=_named_key)))

    def entities(self, kind: str) -> Tuple[Any, ...]:
        if kind == KIND_TASK:
            return self.tasks
        if kind == KIND_PROJECT:
            return self.projects
        if kind == KIND_TAG:
            return self.tags
        raise ValueError(f"Invalid entity kind: {kind}")

    def by_id(self, kind: str) -> Dict[uuid.UUID, Any]:
        return {entity.id: entity for entity in self.entities(kind)}

    def current_tasks(self) -> List[Task]:
        return [task for task in self.tasks if task.is_current]

    def is_empty(self) -> bool:
        return not (self.tasks or self.projects or self.tags)


def find_problems(snapshot: Snapshot) -> List[Problem]:
    """Check the cross-entity invariants of a snapshot.

    Returns:
        List of (kind, entity id or None, reason); empty when the snapshot is valid

    Checks:
        - ids unique within each kind
        - project and tag names unique within their kind
        - every task references an existing project and existing tags
        - at most one task is active or paused
    """
    problems: List[Problem] = []

    for kind in (KIND_TASK, KIND_PROJECT, KIND_TAG):
        counts = Counter(entity.id for entity in snapshot.entities(kind))
        for entity_id, count in sorted(counts.items(), key=lambda item: str(item[0])):
            if count > 1:
                problems.append((kind, entity_id, f"id appears {count} times"))

    for kind in (KIND_PROJECT, KIND_TAG):
        owners: Dict[str, List[uuid.UUID]] = {}
        for entity in snapshot.entities(kind):
            owners.setdefault(entity.name, []).append(entity.id)
        for name, ids in sorted(owners.items()):
            if len(ids) > 1:
                for entity_id in ids:
                    problems.append((kind, entity_id, f"name '{name}' is used by {len(ids)} {kind}s"))

    project_ids = {project.id for project in snapshot.projects}
    tag_ids = {tag.id for tag in snapshot.tags}
    for task in snapshot.tasks:
        if task.project_id not in project_ids:
            problems.append((KIND_TASK, task.id, f"references missing project {task.project_id}"))
        for tag_id in sorted(task.tag_ids - tag_ids, key=str):
            problems.append((KIND_TASK, task.id, f"references missing tag {tag_id}"))

    current = snapshot.current_tasks()
    if len(current) > 1:
        for task in current:
            problems.append((KIND_TASK, task.id, f"is one of {len(current)} current tasks"))

    return problems


def _project_to_dict(project: Project) -> Dict[str, Any]:
    return {"id": str(project.id), "name": project.name}


def _tag_to_dict(tag: Tag) -> Dict[str, Any]:
    return {"id": str(tag.id), "name": tag.name}


def _task_to_dict(task: Task) -> Dict[str, Any]:
    stop = task.interval.stop
    return {
        "id": str(task.id),
        "project_id": str(task.project_id),
        "title": task.title,
        "tag_ids": sorted(str(tag_id) for tag_id in task.tag_ids),
        "start": format_timestamp(task.interval.start),
        "stop": format_timestamp(stop) if stop is not None else None,
        "state": task.state,
        "paused_seconds": task.paused_duration.total_seconds(),
        "paused_at": format_timestamp(task.paused_at) if task.paused_at is not None else None,
    }


def _optional_timestamp(value: Optional[str]):
    return parse_timestamp(value) if value is not None else None


def _task_from_dict(data: Dict[str, Any]) -> Task:
    paused_seconds = data["paused_seconds"]
    if isinstance(paused_seconds, bool) or not isinstance(paused_seconds, (int, float)):
        raise CorruptionError(f"paused_seconds must be a number, got {paused_seconds!r}")
    if not math.isfinite(paused_seconds) or not 0 <= paused_seconds <= _MAX_PAUSED_SECONDS:
        raise CorruptionError(f"paused_seconds out of range: {paused_seconds!r}")
    if not isinstance(data["tag_ids"], list):
        raise CorruptionError("tag_ids must be a list")

    return Task(
        id=parse_id(data["id"]),
        project_id=parse_id(data["project_id"]),
        title=data["title"],
        interval=Interval(
            start=parse_timestamp(data["start"]),
            stop=_optional_timestamp(data["stop"]),
        ),
        tag_ids=frozenset(parse_id(tag_id) for tag_id in data["tag_ids"]),
        state=data["state"],
        paused_duration=timedelta(seconds=paused_seconds),
        paused_at=_optional_timestamp(data["paused_at"]),
    )


_TO_DICT = {
    KIND_PROJECT: _project_to_dict,
    KIND_TAG: _tag_to_dict,
    KIND_TASK: _task_to_dict,
}


def entity_record(kind: str, entity) -> Optional[Dict[str, Any]]:
    """The serialized form of entity, None for a missing one.

    Unlike dataclass equality, comparing records sees a timestamp whose UTC
    offset changed while the instant stayed the same.
    """
    if entity is None:
        return None
    return _TO_DICT[kind](entity)


def encode_snapshot(snapshot: Snapshot) -> str:
    """Serialize a snapshot to its canonical text form."""
    data = {
        "version": SNAPSHOT_VERSION,
        "projects": [_project_to_dict(p) for p in snapshot.projects],
        "tags": [_tag_to_dict(t) for t in snapshot.tags],
        "tasks": [_task_to_dict(t) for t in snapshot.tasks],
    }
    return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def decode_snapshot(text: str) -> Snapshot:
    """Parse and fully validate snapshot text.

    Raises:
        CorruptionError: If text is not a well-formed snapshot or breaks a
            store invariant (see find_problems)
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise CorruptionError(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise CorruptionError("Snapshot must be a JSON object")

    version = data.get("version")
    if version != SNAPSHOT_VERSION:
        raise CorruptionError(f"Unsupported snapshot version: {version!r}")

    try:
        snapshot = Snapshot(
            projects=tuple(Project(id=parse_id(p["id"]), name=p["name"]) for p in data["projects"]),
            tags=tuple(Tag(id=parse_id(t["id"]), name=t["name"]) for t in data["tags"]),
            tasks=tuple(_task_from_dict(t) for t in data["tasks"]),
        )
    except CorruptionError:
        raise
    except (BusyError, KeyError, TypeError, AttributeError, ValueError, OverflowError) as e:
        raise CorruptionError(f"Malformed snapshot entry: {e}") from e

    problems = find_problems(snapshot)
    if problems:
        kind, entity_id, reason = problems[0]
        logger.debug("Snapshot rejected with %d problem(s)", len(problems))
        raise CorruptionError(f"Invalid snapshot: {kind} {entity_id}: {reason}")

    return snapshot
