"""Record model for Busy - tasks, projects, tags, intervals.

Entities are immutable values. Mutations go through the Store, which swaps
a whole entity for an updated copy (see dataclasses.replace).
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import FrozenSet, Optional

from busy_core.constants import (
    STATE_ACTIVE,
    STATE_PAUSED,
    STATE_STOPPED,
    VALID_STATES,
    CURRENT_STATES,
)
from busy_core.exceptions import ValidationError
from busy_core.utils import now

__all__ = [
    "Interval",
    "Project",
    "Tag",
    "Task",
]


def _check_aware(name: str, value: Optional[datetime]) -> None:
    if value is None:
        return
    if not isinstance(value, datetime):
        raise ValidationError(f"{name} must be a datetime, got {type(value).__name__}")
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"{name} must carry a timezone offset")


def _check_name(kind: str, name: str) -> None:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{kind} name must be a non-empty string")


@dataclass(frozen=True)
class Interval:
    """Start and optional stop of a task, both with UTC offsets."""

    start: datetime
    stop: Optional[datetime] = None

    def __post_init__(self) -> None:
        _check_aware("start", self.start)
        _check_aware("stop", self.stop)
        if self.stop is not None and self.stop < self.start:
            raise ValidationError(
                f"Finish time {self.stop.isoformat()} is before start time {self.start.isoformat()}"
            )

    def duration(self, at: Optional[datetime] = None) -> timedelta:
        """Elapsed time from start to stop (or to `at`/now while open)."""
        end = self.stop
        if end is None:
            end = at if at is not None else now()
        return end - self.start


@dataclass(frozen=True)
class Project:
    id: uuid.UUID
    name: str

    def __post_init__(self) -> None:
        _check_name("Project", self.name)


@dataclass(frozen=True)
class Tag:
    id: uuid.UUID
    name: str

    def __post_init__(self) -> None:
        _check_name("Tag", self.name)


@dataclass(frozen=True)
class Task:
    """A tracked piece of work.

    State rules:
        - active: no stop time, not paused
        - paused: no stop time, paused_at records when the pause began
        - stopped: stop time set, not paused

    paused_duration accumulates the length of every finished pause.
    """

    id: uuid.UUID
    project_id: uuid.UUID
    title: str
    interval: Interval
    tag_ids: FrozenSet[uuid.UUID] = field(default_factory=frozenset)
    state: str = STATE_ACTIVE
    paused_duration: timedelta = field(default_factory=timedelta)
    paused_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.tag_ids, frozenset):
            object.__setattr__(self, "tag_ids", frozenset(self.tag_ids))

        if not isinstance(self.title, str):
            raise ValidationError("Task title must be a string")

        if self.state not in VALID_STATES:
            raise ValidationError(
                f"Invalid state: {self.state}. Must be one of {sorted(VALID_STATES)}"
            )

        if self.paused_duration < timedelta(0):
            raise ValidationError("Paused duration can't be negative")

        _check_aware("paused_at", self.paused_at)
        stop = self.interval.stop

        if self.state == STATE_STOPPED:
            if stop is None:
                raise ValidationError("Stopped task must have a stop time")
            if self.paused_at is not None:
                raise ValidationError("Stopped task can't be paused")
            if self.paused_duration > stop - self.interval.start:
                raise ValidationError("Paused duration exceeds the task interval")
        else:
            if stop is not None:
                raise ValidationError(f"{self.state.capitalize()} task can't have a stop time")
            if self.state == STATE_PAUSED and self.paused_at is None:
                raise ValidationError("Paused task must record when the pause began")
            if self.state == STATE_ACTIVE and self.paused_at is not None:
                raise ValidationError("Active task can't have a pause start")
            if self.paused_at is not None and self.paused_at < self.interval.start:
                raise ValidationError("Pause can't begin before the task started")

    @property
    def is_current(self) -> bool:
        return self.state in CURRENT_STATES

    def duration(self, at: Optional[datetime] = None) -> timedelta:
        """Tracked time: elapsed interval minus all paused time.

        While paused the clock is frozen at the pause start.
        """
        if self.state == STATE_PAUSED:
            return self.paused_at - self.interval.start - self.paused_duration
        return self.interval.duration(at) - self.paused_duration
