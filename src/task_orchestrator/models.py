"""Domain models for the task orchestration core.

This module defines the enumerations and record types shared by the
dependency graph, position, and recurrence components.

Board columns follow the workflow:
    BACKLOG -> ACTIVE -> REVIEW -> DONE

The status set is unordered for dependency purposes; only DONE is
meaningful to the dependency graph (it unblocks dependents).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .exceptions import InvalidDependencyTypeError, InvalidStatusError


class TaskStatus(str, Enum):
    """Board column a task lives in.

    - BACKLOG: initial status, new tasks and spawned occurrences land here
    - ACTIVE: work has begun (gated by finish-to-start dependencies)
    - REVIEW: work awaiting review
    - DONE: terminal status, unblocks dependents and triggers recurrence
    """

    BACKLOG = "backlog"
    ACTIVE = "active"
    REVIEW = "review"
    DONE = "done"

    @classmethod
    def parse(cls, value: TaskStatus | str) -> TaskStatus:
        """Parse a status value, case-insensitively.

        Raises:
            InvalidStatusError: If the value is not a recognized status.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidStatusError(value) from None


INITIAL_STATUS = TaskStatus.BACKLOG
TERMINAL_STATUS = TaskStatus.DONE


class DependencyType(str, Enum):
    """Semantics of a dependency edge.

    Only FINISH_TO_START is enforced; the remaining types are stored so
    callers can record intent, but never block a task.
    """

    FINISH_TO_START = "finish_to_start"
    START_TO_START = "start_to_start"
    FINISH_TO_FINISH = "finish_to_finish"
    START_TO_FINISH = "start_to_finish"

    @classmethod
    def parse(cls, value: DependencyType | str) -> DependencyType:
        """Parse a dependency type value, case-insensitively.

        Raises:
            InvalidDependencyTypeError: If the value is not a recognized type.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidDependencyTypeError(value) from None


class RecurrencePattern(str, Enum):
    """Cadence unit of a recurring task."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def from_db(cls, value: str | None) -> RecurrencePattern | None:
        """Unknown or missing patterns read back as None (never spawn)."""
        if value is None:
            return None
        try:
            return cls(value.lower())
        except ValueError:
            return None


class Weekday(str, Enum):
    """Weekday tags used by weekly recurrence."""

    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"
    SUN = "SUN"

    @classmethod
    def from_date(cls, value: datetime) -> Weekday:
        return _WEEKDAYS[value.weekday()]


_WEEKDAYS = list(Weekday)


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# =========================================================================
# Timestamp helpers
# =========================================================================


def utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return utc(value).isoformat()


def from_db_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return utc(datetime.fromisoformat(value))


def _parse_days(raw: str | None) -> frozenset[Weekday]:
    """Parse the recurrence_days JSON column, ignoring unknown tags."""
    if not raw:
        return frozenset()
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return frozenset()
    if not isinstance(parsed, list):
        return frozenset()
    days: set[Weekday] = set()
    for item in parsed:
        try:
            days.add(Weekday(str(item).upper()))
        except ValueError:
            continue
    return frozenset(days)


def dump_days(days: frozenset[Weekday] | set[Weekday] | None) -> str | None:
    if not days:
        return None
    return json.dumps(sorted(d.value for d in days))


# =========================================================================
# Records
# =========================================================================


@dataclass
class Task:
    """A task record as seen by the orchestration core.

    Attributes:
        id: Opaque unique identifier.
        title: Human-readable title.
        scope: Partition key for positions (a user's or a workspace's board).
        status: Board column.
        position: Zero-based index within ``(scope, status)``.
        parent_task_id: Subtask parent; read-only to the core.
        is_recurring: Whether this task is the live occurrence of a recurrence.
        recurrence_days: Weekday filter for weekly recurrence (empty = any day).
        last_recurrence_at: When this task last spawned an occurrence.
        origin_recurring_id: First task of the recurrence chain.
        version: Optimistic concurrency counter, bumped on every write.
    """

    id: str
    title: str
    scope: str
    status: TaskStatus = TaskStatus.BACKLOG
    position: int = 0
    description: str | None = None
    priority: Priority = Priority.MEDIUM
    estimated_minutes: int | None = None
    assignee_id: str | None = None
    workspace_id: str | None = None
    parent_task_id: str | None = None
    due_date: datetime | None = None
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    recurrence_interval: int = 1
    recurrence_days: frozenset[Weekday] = field(default_factory=frozenset)
    recurrence_end_date: datetime | None = None
    last_recurrence_at: datetime | None = None
    origin_recurring_id: str | None = None
    version: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> Task:
        """Build a Task from a ``tasks`` table row (aiosqlite.Row or dict)."""
        data = dict(row)
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            scope=str(data["scope"]),
            status=TaskStatus(data["status"]),
            position=int(data["position"]),
            description=data.get("description"),
            priority=Priority(data.get("priority") or Priority.MEDIUM.value),
            estimated_minutes=data.get("estimated_minutes"),
            assignee_id=data.get("assignee_id"),
            workspace_id=data.get("workspace_id"),
            parent_task_id=data.get("parent_task_id"),
            due_date=from_db_timestamp(data.get("due_date")),
            is_recurring=bool(data.get("is_recurring")),
            recurrence_pattern=RecurrencePattern.from_db(data.get("recurrence_pattern")),
            recurrence_interval=int(data.get("recurrence_interval") or 1),
            recurrence_days=_parse_days(data.get("recurrence_days")),
            recurrence_end_date=from_db_timestamp(data.get("recurrence_end_date")),
            last_recurrence_at=from_db_timestamp(data.get("last_recurrence_at")),
            origin_recurring_id=data.get("origin_recurring_id"),
            version=int(data.get("version") or 0),
            created_at=from_db_timestamp(data.get("created_at")),
        )

    def summary(self) -> TaskSummary:
        return TaskSummary(id=self.id, title=self.title, status=self.status)


@dataclass(frozen=True)
class DependencyEdge:
    """Directed edge: ``dependent_id`` must wait for ``dependency_id``."""

    dependent_id: str
    dependency_id: str
    type: DependencyType = DependencyType.FINISH_TO_START

    @classmethod
    def from_row(cls, row: Any) -> DependencyEdge:
        return cls(
            dependent_id=str(row["dependent_id"]),
            dependency_id=str(row["dependency_id"]),
            type=DependencyType(row["type"]),
        )


@dataclass(frozen=True)
class TaskSummary:
    """Minimal task view used in blocking reports."""

    id: str
    title: str
    status: TaskStatus


@dataclass(frozen=True)
class BlockingReport:
    """Whether a task may start, and which dependencies hold it back."""

    can_start: bool
    blocking_tasks: list[TaskSummary] = field(default_factory=list)


@dataclass
class SweepResult:
    """Outcome of one recurrence sweep.

    Attributes:
        spawned_ids: Ids of the occurrences created in this sweep.
        failed_ids: Source task ids whose processing failed and was skipped.
    """

    spawned_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)

    @property
    def spawned_count(self) -> int:
        return len(self.spawned_ids)
