"""Task queries and mutations.

Provides the TaskMixin with all task-row database methods used by the
position manager, the recurrence engine, and the facade.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

import aiosqlite

from ..models import (
    Priority,
    RecurrencePattern,
    Task,
    TaskStatus,
    Weekday,
    dump_days,
    to_db_timestamp,
)

logger = logging.getLogger(__name__)

# Columns update_task_fields() may touch. id, scope and version are managed
# by the store itself.
_UPDATABLE_COLUMNS = frozenset(
    {
        "title",
        "description",
        "priority",
        "estimated_minutes",
        "assignee_id",
        "workspace_id",
        "status",
        "position",
        "due_date",
        "is_recurring",
        "recurrence_pattern",
        "recurrence_interval",
        "recurrence_days",
        "recurrence_end_date",
        "last_recurrence_at",
        "origin_recurring_id",
    }
)


def _to_db(column: str, value: Any) -> Any:
    """Convert a Python value to its column representation."""
    if value is None:
        return None
    if column == "recurrence_days":
        return dump_days(frozenset(value))
    if isinstance(value, datetime):
        return to_db_timestamp(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return 1 if value else 0
    return value


class TaskMixin:
    """Mixin providing task reads, creation, updates, and batch re-sequencing."""

    def transaction(self) -> AbstractAsyncContextManager[aiosqlite.Connection]: ...

    # =========================================================================
    # Task Queries
    # =========================================================================

    async def get_task(self, task_id: str) -> Task | None:
        """Get a task by id.

        Returns:
            The Task, or None if not found.
        """
        async with self.transaction() as conn:
            async with conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)) as cursor:
                row = await cursor.fetchone()
        return Task.from_row(row) if row else None

    async def list_by_scope_and_status(
        self, scope: str, status: TaskStatus
    ) -> list[Task]:
        """List the tasks of one board column, ordered by position.

        Args:
            scope: Partition key (user or workspace board).
            status: Column to list.

        Returns:
            Tasks in ascending position order.
        """
        async with self.transaction() as conn:
            async with conn.execute(
                """
                SELECT * FROM tasks
                WHERE scope = ? AND status = ?
                ORDER BY position, created_at, rowid
                """,
                (scope, status.value),
            ) as cursor:
                rows = await cursor.fetchall()
        return [Task.from_row(row) for row in rows]

    async def list_scope_tasks(
        self, scope: str, *, top_level_only: bool = False
    ) -> list[Task]:
        """List every task in a scope, ordered by status then position."""
        query = "SELECT * FROM tasks WHERE scope = ?"
        if top_level_only:
            query += " AND parent_task_id IS NULL"
        query += " ORDER BY status, position, rowid"
        async with self.transaction() as conn:
            async with conn.execute(query, (scope,)) as cursor:
                rows = await cursor.fetchall()
        return [Task.from_row(row) for row in rows]

    async def list_by_parent(self, parent_task_id: str) -> list[Task]:
        async with self.transaction() as conn:
            async with conn.execute(
                "SELECT * FROM tasks WHERE parent_task_id = ? ORDER BY created_at, rowid",
                (parent_task_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [Task.from_row(row) for row in rows]

    async def list_by_origin(self, origin_id: str) -> list[Task]:
        """List a recurrence chain: the origin task and every occurrence it spawned."""
        async with self.transaction() as conn:
            async with conn.execute(
                """
                SELECT * FROM tasks
                WHERE id = ? OR origin_recurring_id = ?
                ORDER BY created_at, rowid
                """,
                (origin_id, origin_id),
            ) as cursor:
                rows = await cursor.fetchall()
        return [Task.from_row(row) for row in rows]

    async def count_in_column(self, scope: str, status: TaskStatus) -> int:
        async with self.transaction() as conn:
            async with conn.execute(
                "SELECT COUNT(*) FROM tasks WHERE scope = ? AND status = ?",
                (scope, status.value),
            ) as cursor:
                row = await cursor.fetchone()
        return int(row[0]) if row else 0

    # =========================================================================
    # Task Creation / Deletion
    # =========================================================================

    async def create_task(
        self,
        title: str,
        scope: str,
        *,
        task_id: str | None = None,
        status: TaskStatus = TaskStatus.BACKLOG,
        position: int = 0,
        description: str | None = None,
        priority: Priority = Priority.MEDIUM,
        estimated_minutes: int | None = None,
        assignee_id: str | None = None,
        workspace_id: str | None = None,
        parent_task_id: str | None = None,
        due_date: datetime | None = None,
        is_recurring: bool = False,
        recurrence_pattern: RecurrencePattern | None = None,
        recurrence_interval: int = 1,
        recurrence_days: Iterable[Weekday] | None = None,
        recurrence_end_date: datetime | None = None,
        origin_recurring_id: str | None = None,
    ) -> Task:
        """Insert a task row.

        The caller chooses ``position``; use the position manager to keep the
        column contiguous.

        Args:
            title: Human-readable task title.
            scope: Partition key for positions.
            task_id: Explicit id. Defaults to a fresh uuid4 hex.

        Returns:
            The created Task as stored.
        """
        new_id = task_id or uuid.uuid4().hex
        async with self.transaction() as conn:
            await conn.execute(
                """
                INSERT INTO tasks (
                    id, title, description, priority, estimated_minutes,
                    assignee_id, workspace_id, scope, status, position,
                    parent_task_id, due_date, is_recurring, recurrence_pattern,
                    recurrence_interval, recurrence_days, recurrence_end_date,
                    origin_recurring_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    new_id,
                    title,
                    description,
                    priority.value,
                    estimated_minutes,
                    assignee_id,
                    workspace_id,
                    scope,
                    status.value,
                    position,
                    parent_task_id,
                    to_db_timestamp(due_date),
                    1 if is_recurring else 0,
                    recurrence_pattern.value if recurrence_pattern else None,
                    recurrence_interval,
                    dump_days(frozenset(recurrence_days or ())),
                    to_db_timestamp(recurrence_end_date),
                    origin_recurring_id,
                ),
            )
            task = await self.get_task(new_id)
        assert task is not None
        logger.info("Created task %s: %s", new_id, title)
        return task

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task row. Its dependency edges cascade.

        Returns:
            True if a row was deleted.
        """
        async with self.transaction() as conn:
            cursor = await conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted task %s", task_id)
        return deleted

    # =========================================================================
    # Task Mutations
    # =========================================================================

    async def update_task_fields(self, task_id: str, **fields: Any) -> bool:
        """Update a subset of task columns and bump the version.

        Args:
            task_id: The task identifier.
            **fields: Column name to new value.

        Returns:
            True if task was updated, False if task not found.

        Raises:
            ValueError: If a field is not an updatable column.
        """
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            msg = f"Cannot update columns: {sorted(unknown)}"
            raise ValueError(msg)
        if not fields:
            return await self.get_task(task_id) is not None

        assignments = ", ".join(f"{column} = ?" for column in fields)
        params = [_to_db(column, value) for column, value in fields.items()]
        async with self.transaction() as conn:
            cursor = await conn.execute(
                f"UPDATE tasks SET {assignments}, version = version + 1 WHERE id = ?",
                (*params, task_id),
            )
            return cursor.rowcount > 0

    async def apply_positions(
        self, updates: list[tuple[str, TaskStatus, int]]
    ) -> None:
        """Write a batch of ``(task_id, status, position)`` assignments.

        The whole batch is one unit: either every row is updated or none.
        """
        if not updates:
            return
        async with self.transaction() as conn:
            await conn.executemany(
                """
                UPDATE tasks
                SET status = ?, position = ?, version = version + 1
                WHERE id = ?
                """,
                [(status.value, position, task_id) for task_id, status, position in updates],
            )

    # =========================================================================
    # Recurrence Bookkeeping
    # =========================================================================

    async def list_recurring_candidates(self, now: datetime) -> list[Task]:
        """List completed recurring tasks whose end date has not passed.

        Args:
            now: Sweep time; tasks with ``recurrence_end_date < now`` are excluded.
        """
        async with self.transaction() as conn:
            async with conn.execute(
                """
                SELECT * FROM tasks
                WHERE is_recurring = 1
                  AND status = 'done'
                  AND (recurrence_end_date IS NULL OR recurrence_end_date >= ?)
                ORDER BY created_at, rowid
                """,
                (to_db_timestamp(now),),
            ) as cursor:
                rows = await cursor.fetchall()
        return [Task.from_row(row) for row in rows]

    async def claim_recurrence(self, task_id: str, version: int, now: datetime) -> bool:
        """Consume a recurring occurrence with a check-and-set.

        Clears ``is_recurring`` and records ``last_recurrence_at`` only if the
        row is still recurring and unchanged since it was read.

        Returns:
            True if this caller consumed the occurrence, False if another
            sweep (or a concurrent edit) got there first.
        """
        async with self.transaction() as conn:
            cursor = await conn.execute(
                """
                UPDATE tasks
                SET is_recurring = 0,
                    last_recurrence_at = ?,
                    version = version + 1
                WHERE id = ?
                  AND is_recurring = 1
                  AND version = ?
                """,
                (to_db_timestamp(now), task_id, version),
            )
            return cursor.rowcount > 0
