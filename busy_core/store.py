"""In-memory store for Busy - tasks, projects and tags with their index."""

import logging
import uuid
from typing import Iterable, List, Optional, Tuple

from busy_core.constants import KIND_TASK, KIND_PROJECT, KIND_TAG, TAG_PREFIX
from busy_core.exceptions import (
    ConflictError,
    CorruptionError,
    NotFoundError,
    ValidationError,
)
from busy_core.ids import generate_id
from busy_core.index import Index
from busy_core.models import Project, Tag, Task
from busy_core.snapshot import Snapshot, find_problems

__all__ = ["Store", "clean_tag_name"]

logger = logging.getLogger(__name__)


def clean_tag_name(name: str) -> str:
    """Strip the CLI "+" marker from a tag name ("+work" -> "work")."""
    name = name.strip()
    if name.startswith(TAG_PREFIX):
        name = name[len(TAG_PREFIX):]
    return name


class Store:
    """Sole owner of every task, project and tag.

    Entities are immutable, updates replace the entity stored under its id.
    The index is kept in step with every structural change.

    The current task is not stored separately: current_task() searches the
    tasks for the one that is active or paused.
    """

    def __init__(self, snapshot: Optional[Snapshot] = None) -> None:
        self._tasks: List[Task] = []
        self._projects: List[Project] = []
        self._tags: List[Tag] = []
        self._index = Index()
        if snapshot is not None:
            self.load(snapshot)

    # ---- read API ----

    def tasks(self) -> List[Task]:
        return list(self._tasks)

    def projects(self) -> List[Project]:
        return list(self._projects)

    def tags(self) -> List[Tag]:
        return list(self._tags)

    def current_task(self) -> Optional[Task]:
        """The task that is active or paused, if any."""
        for task in self._tasks:
            if task.is_current:
                return task
        return None

    def task_by_id(self, task_id: uuid.UUID) -> Task:
        """Get task by full id.

        Raises:
            NotFoundError: If no task has this id
        """
        return self._tasks[self._require(KIND_TASK, task_id)]

    def project_by_id(self, project_id: uuid.UUID) -> Project:
        return self._projects[self._require(KIND_PROJECT, project_id)]

    def tag_by_id(self, tag_id: uuid.UUID) -> Tag:
        return self._tags[self._require(KIND_TAG, tag_id)]

    def project_by_name(self, name: str) -> Optional[Project]:
        project_id = self._index.lookup_by_name(name, KIND_PROJECT)
        return self.project_by_id(project_id) if project_id is not None else None

    def tag_by_name(self, name: str) -> Optional[Tag]:
        tag_id = self._index.lookup_by_name(clean_tag_name(name), KIND_TAG)
        return self.tag_by_id(tag_id) if tag_id is not None else None

    def find_tags_by_names(self, names: Iterable[str]) -> List[Tag]:
        """Tags matching names, in the given order. Unknown names are skipped."""
        found = []
        for name in names:
            tag = self.tag_by_name(name)
            if tag is not None and tag not in found:
                found.append(tag)
        return found

    def resolve(self, short_id: str, kind: str = KIND_TASK) -> uuid.UUID:
        """Resolve a short id to a full id. See Index.resolve."""
        return self._index.resolve(short_id, kind)

    def short_id(self, entity_id: uuid.UUID, kind: str = KIND_TASK) -> str:
        return self._index.short_id(entity_id, kind)

    # ---- creation ----

    def new_id(self, kind: str) -> uuid.UUID:
        existing = {entity.id for entity in self._collection(kind)}
        return generate_id(existing_ids=existing)

    def insert_task(self, task: Task) -> Task:
        """Insert a new task.

        Raises:
            ValidationError: If the id is taken or references don't resolve
            ConflictError: If task is current while another current task exists
        """
        if self._index.position(KIND_TASK, task.id) is not None:
            raise ValidationError(f"Task {task.id} already exists")
        self._check_references(task)
        if task.is_current:
            self._check_single_current(task)

        self._tasks.append(task)
        self._index.add(KIND_TASK, task, len(self._tasks) - 1)
        return task

    def insert_project(self, project: Project) -> Project:
        self._check_new_named(KIND_PROJECT, project)
        self._projects.append(project)
        self._index.add(KIND_PROJECT, project, len(self._projects) - 1)
        logger.info("Created project %s (%s)", project.name, project.id)
        return project

    def insert_tag(self, tag: Tag) -> Tag:
        self._check_new_named(KIND_TAG, tag)
        self._tags.append(tag)
        self._index.add(KIND_TAG, tag, len(self._tags) - 1)
        logger.info("Created tag %s (%s)", tag.name, tag.id)
        return tag

    def get_or_create_project(self, name: str) -> Project:
        """Reuse the project called name, creating it on first reference."""
        project, is_new = self.project_for_name(name)
        if is_new:
            self.insert_project(project)
        return project

    def project_for_name(self, name: str) -> Tuple[Project, bool]:
        """The project called name, or a new (not yet inserted) one.

        Returns:
            (project, is_new)

        Raises:
            ValidationError: If name is empty
        """
        project = self.project_by_name(name)
        if project is not None:
            return project, False
        return Project(id=self.new_id(KIND_PROJECT), name=name), True

    def tags_for_names(self, names: Iterable[str]) -> Tuple[List[Tag], List[Tag]]:
        """Resolve tag names without touching the store.

        Leading "+" markers are stripped and duplicates collapsed. Missing
        tags are built but not inserted.

        Returns:
            (tags in the order given, the subset that still has to be inserted)

        Raises:
            ValidationError: If a name is empty once the marker is stripped
        """
        tags: List[Tag] = []
        missing: List[Tag] = []
        for raw_name in names:
            name = clean_tag_name(raw_name)
            tag = self.tag_by_name(name)
            if tag is None:
                tag = next((t for t in missing if t.name == name), None)
            if tag is None:
                tag = Tag(id=self.new_id(KIND_TAG), name=name)
                missing.append(tag)
            if tag not in tags:
                tags.append(tag)
        return tags, missing

    def upsert_tags(self, names: Iterable[str]) -> List[Tag]:
        """Resolve tag names to tags, creating the missing ones.

        Every name is checked before any tag is created.
        """
        tags, missing = self.tags_for_names(names)
        for tag in missing:
            self.insert_tag(tag)
        return tags

    # ---- replacement ----

    def replace_task(self, task: Task) -> Task:
        """Replace the task stored under task.id.

        Raises:
            NotFoundError: If no task has this id
            ValidationError: If references don't resolve
            ConflictError: If task is current while another current task exists
        """
        position = self._require(KIND_TASK, task.id)
        self._check_references(task)
        if task.is_current:
            self._check_single_current(task)
        self._tasks[position] = task
        return task

    def replace_project(self, project: Project) -> Project:
        position = self._require(KIND_PROJECT, project.id)
        old = self._projects[position]
        self._check_name_free(KIND_PROJECT, project)
        self._projects[position] = project
        self._index.rename(KIND_PROJECT, project.id, old.name, project.name)
        return project

    def replace_tag(self, tag: Tag) -> Tag:
        """Replace (e.g. rename) a tag; every task referencing it sees the change."""
        position = self._require(KIND_TAG, tag.id)
        old = self._tags[position]
        self._check_name_free(KIND_TAG, tag)
        self._tags[position] = tag
        self._index.rename(KIND_TAG, tag.id, old.name, tag.name)
        return tag

    def replace_tasks(self, tasks: Iterable[Task]) -> None:
        """Swap the whole task collection, all-or-nothing.

        Raises:
            ValidationError: If the new collection breaks a store invariant
        """
        self._replace_all(tasks=tuple(tasks))

    def replace_tags(self, tags: Iterable[Tag]) -> None:
        """Swap the whole tag collection, all-or-nothing.

        Raises:
            ValidationError: If a name repeats or a task loses one of its tags
        """
        self._replace_all(tags=tuple(tags))

    # ---- removal ----

    def remove_task(self, task_id: uuid.UUID) -> Task:
        position = self._require(KIND_TASK, task_id)
        task = self._tasks.pop(position)
        self._index.rebuild(KIND_TASK, self._tasks)
        logger.info("Removed task %s", task_id)
        return task

    def remove_project(self, project_id: uuid.UUID) -> Project:
        """Remove a project no task references.

        Raises:
            NotFoundError: If no project has this id
            ValidationError: If a task still belongs to the project
        """
        position = self._require(KIND_PROJECT, project_id)
        if any(task.project_id == project_id for task in self._tasks):
            raise ValidationError(f"Project {project_id} still has tasks")
        project = self._projects.pop(position)
        self._index.rebuild(KIND_PROJECT, self._projects)
        return project

    def remove_tag(self, tag_id: uuid.UUID) -> Tag:
        position = self._require(KIND_TAG, tag_id)
        if any(tag_id in task.tag_ids for task in self._tasks):
            raise ValidationError(f"Tag {tag_id} is still used by tasks")
        tag = self._tags.pop(position)
        self._index.rebuild(KIND_TAG, self._tags)
        return tag

    # ---- snapshots ----

    def snapshot(self) -> Snapshot:
        """Immutable copy of the current state."""
        return Snapshot(
            tasks=tuple(self._tasks),
            projects=tuple(self._projects),
            tags=tuple(self._tags),
        )

    def load(self, snapshot: Snapshot) -> None:
        """Replace all in-memory state with snapshot, atomically.

        Raises:
            CorruptionError: If snapshot breaks a store invariant; the
                previous state is left untouched
        """
        problems = find_problems(snapshot)
        if problems:
            kind, entity_id, reason = problems[0]
            raise CorruptionError(f"Invalid snapshot: {kind} {entity_id}: {reason}")

        index = Index()
        index.rebuild(KIND_TASK, snapshot.tasks)
        index.rebuild(KIND_PROJECT, snapshot.projects)
        index.rebuild(KIND_TAG, snapshot.tags)

        self._tasks = list(snapshot.tasks)
        self._projects = list(snapshot.projects)
        self._tags = list(snapshot.tags)
        self._index = index
        logger.debug(
            "Loaded %d tasks, %d projects, %d tags",
            len(self._tasks), len(self._projects), len(self._tags),
        )

    # ---- helpers ----

    def _collection(self, kind: str) -> list:
        if kind == KIND_TASK:
            return self._tasks
        if kind == KIND_PROJECT:
            return self._projects
        if kind == KIND_TAG:
            return self._tags
        raise ValidationError(f"Invalid entity kind: {kind}")

    def _require(self, kind: str, entity_id: uuid.UUID) -> int:
        position = self._index.position(kind, entity_id)
        if position is None:
            raise NotFoundError(f"No {kind} with id {entity_id}")
        return position

    def _check_references(self, task: Task) -> None:
        if self._index.position(KIND_PROJECT, task.project_id) is None:
            raise ValidationError(f"Task references missing project {task.project_id}")
        for tag_id in task.tag_ids:
            if self._index.position(KIND_TAG, tag_id) is None:
                raise ValidationError(f"Task references missing tag {tag_id}")

    def _check_single_current(self, task: Task) -> None:
        current = self.current_task()
        if current is not None and current.id != task.id:
            raise ConflictError(
                f"Task {current.id} ('{current.title}') is already {current.state}"
            )

    def _check_new_named(self, kind: str, entity) -> None:
        if self._index.position(kind, entity.id) is not None:
            raise ValidationError(f"{kind.capitalize()} {entity.id} already exists")
        self._check_name_free(kind, entity)

    def _check_name_free(self, kind: str, entity) -> None:
        owner = self._index.lookup_by_name(entity.name, kind)
        if owner is not None and owner != entity.id:
            raise ValidationError(f"{kind.capitalize()} name '{entity.name}' is already taken")

    def _replace_all(self, **collections) -> None:
        current = self.snapshot()
        candidate = Snapshot(
            tasks=collections.get("tasks", current.tasks),
            projects=collections.get("projects", current.projects),
            tags=collections.get("tags", current.tags),
        )
        problems = find_problems(candidate)
        if problems:
            kind, entity_id, reason = problems[0]
            raise ValidationError(f"{kind} {entity_id}: {reason}")
        self.load(candidate)
