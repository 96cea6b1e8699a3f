"""Task lifecycle for Busy - start, stop, pause, resume, continue, add.

Every operation takes the Store explicitly. `now` may be passed to pin the
clock; it defaults to the current local time.
"""

import dataclasses
import logging
import uuid
from datetime import datetime
from typing import Iterable, Optional

from busy_core.constants import (
    KIND_TASK,
    STATE_ACTIVE,
    STATE_PAUSED,
    STATE_STOPPED,
)
from busy_core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from busy_core.models import Interval, Task
from busy_core.store import Store
from busy_core.utils import now as _now

__all__ = [
    "start",
    "stop",
    "pause",
    "resume",
    "continue_task",
    "add",
    "remove_task",
    "replace_task",
]

logger = logging.getLogger(__name__)


def _require_no_current(store: Store) -> None:
    current = store.current_task()
    if current is not None:
        raise ConflictError(
            f"Task '{current.title}' ({store.short_id(current.id)}) is already {current.state}, stop it first"
        )


def _require_current(store: Store) -> Task:
    current = store.current_task()
    if current is None:
        raise NotFoundError("There is no active task")
    return current


def _insert_new_task(
    store: Store,
    project_name: str,
    title: str,
    tags: Iterable[str],
    interval: Interval,
    state: str,
) -> Task:
    # Every value is built, and so validated, before the first insert
    project, new_project = store.project_for_name(project_name)
    tag_list, new_tags = store.tags_for_names(tags)
    task = Task(
        id=store.new_id(KIND_TASK),
        project_id=project.id,
        title=title,
        interval=interval,
        tag_ids=frozenset(tag.id for tag in tag_list),
        state=state,
    )

    if new_project:
        store.insert_project(project)
    for tag in new_tags:
        store.insert_tag(tag)
    store.insert_task(task)
    return task


def start(
    store: Store,
    project_name: str,
    title: str,
    tags: Iterable[str] = (),
    start_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Task:
    """Start a new task, creating its project and tags on first use.

    Args:
        store: Store to mutate
        project_name: Project name (created if missing)
        title: Task title
        tags: Tag names, "+" prefix allowed (created if missing)
        start_time: Override start (defaults to now)
        now: Current time

    Returns:
        The new active task

    Raises:
        ConflictError: If a task is already active or paused
        ValidationError: If start_time is in the future or overlaps a recorded task
    """
    if now is None:
        now = _now()
    _require_no_current(store)

    if start_time is None:
        start_time = now
    else:
        if start_time > now:
            raise ValidationError(f"Start time {start_time.isoformat()} is in the future")
        for task in store.tasks():
            stop_time = task.interval.stop
            if stop_time is not None and stop_time > start_time:
                raise ValidationError(
                    f"Start time {start_time.isoformat()} overlaps task "
                    f"'{task.title}' which stopped at {stop_time.isoformat()}"
                )

    task = _insert_new_task(store, project_name, title, tags, Interval(start=start_time), STATE_ACTIVE)
    logger.info("Started task %s '%s' in %s", task.id, title, project_name)
    return task


def stop(store: Store, now: Optional[datetime] = None) -> Task:
    """Stop the current task, active or paused.

    A pause still running is folded into paused_duration.

    Raises:
        NotFoundError: If there is no current task (nothing is changed)
    """
    if now is None:
        now = _now()
    current = _require_current(store)

    paused = current.paused_duration
    if current.state == STATE_PAUSED:
        paused += now - current.paused_at

    stopped = dataclasses.replace(
        current,
        interval=Interval(start=current.interval.start, stop=now),
        state=STATE_STOPPED,
        paused_duration=paused,
        paused_at=None,
    )
    store.replace_task(stopped)
    logger.info("Stopped task %s after %s", stopped.id, stopped.duration())
    return stopped


def pause(store: Store, now: Optional[datetime] = None) -> Task:
    """Pause the active task.

    Raises:
        InvalidStateError: If there is no active task (none, or already paused)
    """
    if now is None:
        now = _now()
    current = store.current_task()
    if current is None or current.state != STATE_ACTIVE:
        state = current.state if current is not None else "missing"
        raise InvalidStateError(f"Only an active task can be paused, current task is {state}")

    paused = dataclasses.replace(current, state=STATE_PAUSED, paused_at=now)
    store.replace_task(paused)
    logger.info("Paused task %s", paused.id)
    return paused


def resume(store: Store, now: Optional[datetime] = None) -> Task:
    """Resume the paused task, adding the pause length to paused_duration.

    Raises:
        InvalidStateError: If there is no paused task
    """
    if now is None:
        now = _now()
    current = store.current_task()
    if current is None or current.state != STATE_PAUSED:
        state = current.state if current is not None else "missing"
        raise InvalidStateError(f"Only a paused task can be resumed, current task is {state}")

    if now < current.paused_at:
        raise ValidationError("Can't resume before the pause began")

    resumed = dataclasses.replace(
        current,
        state=STATE_ACTIVE,
        paused_duration=current.paused_duration + (now - current.paused_at),
        paused_at=None,
    )
    store.replace_task(resumed)
    logger.info("Resumed task %s", resumed.id)
    return resumed


def continue_task(store: Store, task_id: uuid.UUID, now: Optional[datetime] = None) -> Task:
    """Start a new task with the project, title and tags of a stopped one.

    The old task is left as it is.

    Raises:
        ConflictError: If a task is already active or paused
        NotFoundError: If task_id doesn't resolve
    """
    if now is None:
        now = _now()
    _require_no_current(store)
    previous = store.task_by_id(task_id)

    project = store.project_by_id(previous.project_id)
    tag_names = [store.tag_by_id(tag_id).name for tag_id in sorted(previous.tag_ids, key=str)]
    logger.debug("Continuing task %s", previous.id)
    return start(store, project.name, previous.title, tag_names, now=now)


def add(
    store: Store,
    project_name: str,
    title: str,
    tags: Iterable[str],
    start_time: datetime,
    finish_time: datetime,
) -> Task:
    """Record an already finished task (backfilling history).

    Does not look at the current task.

    Raises:
        ValidationError: If finish_time is before start_time
    """
    interval = Interval(start=start_time, stop=finish_time)
    task = _insert_new_task(store, project_name, title, tags, interval, STATE_STOPPED)
    logger.info("Added task %s '%s' in %s", task.id, title, project_name)
    return task


def remove_task(store: Store, task_id: uuid.UUID) -> Task:
    """Delete a task. Returns the removed task.

    Raises:
        NotFoundError: If task_id doesn't resolve
    """
    return store.remove_task(task_id)


def replace_task(store: Store, task: Task) -> Task:
    """Administrative edit: replace a task keeping its id.

    Raises:
        NotFoundError: If no task has task.id
        ConflictError: If task is current while another current task exists
        ValidationError: If task references missing project or tags
    """
    replaced = store.replace_task(task)
    logger.info("Replaced task %s", task.id)
    return replaced
