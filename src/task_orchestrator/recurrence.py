"""Recurrence engine.

Decides whether a completed recurring task should spawn its next
occurrence, computes the occurrence's due date, and runs the sweep that
creates occurrences.

A recurrence chain has no entity of its own: every occurrence points at the
first task of the chain through ``origin_recurring_id``. Only the newest
occurrence is "live" (``is_recurring = True``); spawning consumes the source
by clearing its flag, which is what keeps repeated sweeps from spawning twice.
"""

from __future__ import annotations

import calendar
import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .exceptions import TaskNotFoundError
from .models import (
    INITIAL_STATUS,
    RecurrencePattern,
    SweepResult,
    Task,
    Weekday,
    utc,
)

if TYPE_CHECKING:
    from .database import TaskStore
    from .inputs import RecurrenceSettings

logger = logging.getLogger(__name__)


# =========================================================================
# Calendar arithmetic
# =========================================================================


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month.

    Jan 31 + 1 month is Feb 28 (or 29 in a leap year).
    """
    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def months_between(start: datetime, end: datetime) -> int:
    """Whole calendar-month difference, ignoring the day of month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


# =========================================================================
# Decisions
# =========================================================================


def should_spawn(task: Task, now: datetime) -> bool:
    """Decide whether a completed recurring task is due for its next occurrence.

    Args:
        task: The completed task.
        now: Current time (naive values are taken as UTC).

    Returns:
        True when the next occurrence should be created.
    """
    if task.last_recurrence_at is None:
        return True

    now = utc(now)
    last = utc(task.last_recurrence_at)
    interval = max(task.recurrence_interval, 1)
    elapsed_days = (now - last).days

    pattern = task.recurrence_pattern
    if pattern is RecurrencePattern.DAILY:
        return elapsed_days >= interval
    if pattern is RecurrencePattern.WEEKLY:
        if elapsed_days // 7 < interval:
            return False
        if task.recurrence_days:
            return Weekday.from_date(now) in task.recurrence_days
        return True
    if pattern is RecurrencePattern.MONTHLY:
        return months_between(last, now) >= interval
    if pattern is RecurrencePattern.YEARLY:
        return now.year - last.year >= interval
    return False


def compute_next_due_date(task: Task) -> datetime | None:
    """Advance the task's due date by one recurrence interval.

    The base is the existing due date, never the current time, so the
    cadence does not drift when a sweep runs late.

    Returns:
        The next due date, or None if the task has no due date.
    """
    if task.due_date is None:
        return None

    due = task.due_date
    interval = max(task.recurrence_interval, 1)

    pattern = task.recurrence_pattern
    if pattern is RecurrencePattern.DAILY:
        return due + timedelta(days=interval)
    if pattern is RecurrencePattern.WEEKLY:
        return due + timedelta(weeks=interval)
    if pattern is RecurrencePattern.MONTHLY:
        return add_months(due, interval)
    if pattern is RecurrencePattern.YEARLY:
        return add_months(due, 12 * interval)
    return due


# =========================================================================
# Engine
# =========================================================================


class RecurrenceEngine:
    """Creates occurrences of recurring tasks through the task store.

    Usage:
        engine = RecurrenceEngine(store)
        result = await engine.process_due_recurrences(datetime.now(timezone.utc))
        print(result.spawned_count)
    """

    def __init__(self, store: TaskStore) -> None:
        self._store = store

    async def process_due_recurrences(self, now: datetime) -> SweepResult:
        """Run one sweep over all eligible recurring tasks.

        Each task is processed in its own transaction. A failure is logged,
        recorded in ``failed_ids`` and does not stop the sweep.

        Args:
            now: Sweep time, injected by the caller.

        Returns:
            SweepResult with the spawned occurrence ids.
        """
        now = utc(now)
        result = SweepResult()
        candidates = await self._store.list_recurring_candidates(now)
        logger.info("Recurrence sweep at %s: %d candidates", now.isoformat(), len(candidates))

        for task in candidates:
            if not should_spawn(task, now):
                logger.debug("Task %s not due yet", task.id)
                continue
            try:
                occurrence = await self._spawn(task, now)
            except Exception:
                logger.error("Failed to spawn occurrence of task %s", task.id, exc_info=True)
                result.failed_ids.append(task.id)
                continue
            if occurrence is not None:
                result.spawned_ids.append(occurrence.id)

        logger.info(
            "Recurrence sweep complete: %d spawned, %d failed",
            result.spawned_count,
            len(result.failed_ids),
        )
        return result

    async def _spawn(self, source: Task, now: datetime) -> Task | None:
        """Consume ``source`` and create its next occurrence atomically.

        Returns:
            The new occurrence, or None if another sweep consumed the source
            first or it changed since it was read. A changed source is
            retried by the next sweep.
        """
        async with self._store.transaction():
            if not await self._store.claim_recurrence(source.id, source.version, now):
                logger.debug(
                    "Task %s changed or was consumed since it was read, deferring",
                    source.id,
                )
                return None

            position = await self._store.count_in_column(source.scope, INITIAL_STATUS)
            occurrence = await self._store.create_task(
                source.title,
                source.scope,
                status=INITIAL_STATUS,
                position=position,
                description=source.description,
                priority=source.priority,
                estimated_minutes=source.estimated_minutes,
                assignee_id=source.assignee_id,
                workspace_id=source.workspace_id,
                due_date=compute_next_due_date(source),
                is_recurring=True,
                recurrence_pattern=source.recurrence_pattern,
                recurrence_interval=source.recurrence_interval,
                recurrence_days=source.recurrence_days,
                recurrence_end_date=source.recurrence_end_date,
                origin_recurring_id=source.origin_recurring_id or source.id,
            )

        logger.info("Spawned occurrence %s of task %s", occurrence.id, source.id)
        return occurrence

    async def configure(self, task_id: str, settings: RecurrenceSettings) -> Task:
        """Make a task recurring with the given rule.

        Raises:
            TaskNotFoundError: If the task does not exist.
        """
        async with self._store.transaction():
            updated = await self._store.update_task_fields(
                task_id,
                is_recurring=True,
                recurrence_pattern=settings.pattern,
                recurrence_interval=settings.interval,
                recurrence_days=frozenset(settings.days),
                recurrence_end_date=settings.end_date,
            )
            if not updated:
                raise TaskNotFoundError(task_id)
            task = await self._store.get_task(task_id)
        assert task is not None
        logger.info(
            "Task %s recurs %s every %d", task_id, settings.pattern.value, settings.interval
        )
        return task

    async def clear(self, task_id: str) -> Task:
        """Remove the recurrence rule from a task.

        Raises:
            TaskNotFoundError: If the task does not exist.
        """
        async with self._store.transaction():
            updated = await self._store.update_task_fields(
                task_id,
                is_recurring=False,
                recurrence_pattern=None,
                recurrence_interval=1,
                recurrence_days=None,
                recurrence_end_date=None,
            )
            if not updated:
                raise TaskNotFoundError(task_id)
            task = await self._store.get_task(task_id)
        assert task is not None
        logger.info("Task %s no longer recurs", task_id)
        return task

    async def chain(self, task_id: str) -> list[Task]:
        """List the recurrence chain ``task_id`` belongs to, oldest first.

        Raises:
            TaskNotFoundError: If the task does not exist.
        """
        task = await self._store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return await self._store.list_by_origin(task.origin_recurring_id or task.id)
