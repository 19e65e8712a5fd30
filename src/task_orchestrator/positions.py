"""Position manager for board columns.

Keeps the ``position`` values of every ``(scope, status)`` column a dense,
zero-based sequence, and re-sequences siblings when a task moves.

Moves are planned in memory as a list of ``(task_id, status, position)``
assignments and written through ``TaskStore.apply_positions`` in a single
transaction, so no reader ever sees a duplicate or a gap.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import InvalidPositionError, TaskNotFoundError
from .models import Task, TaskStatus

if TYPE_CHECKING:
    from .database import TaskStore

logger = logging.getLogger(__name__)

PositionUpdate = tuple[str, TaskStatus, int]


def plan_cross_column_move(
    task: Task,
    source_column: list[Task],
    target_column: list[Task],
    target_status: TaskStatus,
    target_position: int,
) -> list[PositionUpdate]:
    """Plan a move into a different column.

    1. Close the gap in the old column: ``position > old`` moves up by one.
    2. Open a slot in the target column: ``position >= target`` moves down by one.
    3. Place the task.

    ``target_position`` past the end of the target column is clamped to it.
    """
    target_position = min(target_position, len(target_column))
    updates: list[PositionUpdate] = []

    for sibling in source_column:
        if sibling.id != task.id and sibling.position > task.position:
            updates.append((sibling.id, sibling.status, sibling.position - 1))

    for sibling in target_column:
        if sibling.position >= target_position:
            updates.append((sibling.id, target_status, sibling.position + 1))

    updates.append((task.id, target_status, target_position))
    return updates


def plan_same_column_move(
    task: Task,
    column: list[Task],
    target_position: int,
) -> list[PositionUpdate]:
    """Plan a reorder within the task's own column.

    Forward (``target > old``): ``old < position <= target`` moves up by one.
    Backward (``target < old``): ``target <= position < old`` moves down by one.
    Equal: nothing to do.

    The boundaries are deliberately asymmetric; both directions exclude the
    old slot and include the target slot.
    """
    target_position = min(target_position, max(len(column) - 1, 0))
    old_position = task.position
    if target_position == old_position:
        return []

    updates: list[PositionUpdate] = []
    for sibling in column:
        if sibling.id == task.id:
            continue
        if target_position > old_position:
            if old_position < sibling.position <= target_position:
                updates.append((sibling.id, sibling.status, sibling.position - 1))
        elif target_position <= sibling.position < old_position:
            updates.append((sibling.id, sibling.status, sibling.position + 1))

    updates.append((task.id, task.status, target_position))
    return updates


def plan_compaction(column: list[Task]) -> list[PositionUpdate]:
    """Renumber a column to ``0..n-1`` keeping relative order.

    Args:
        column: Tasks already sorted by their current position.
    """
    return [
        (task.id, task.status, index)
        for index, task in enumerate(column)
        if task.position != index
    ]


class PositionManager:
    """Sequencing logic over the ``(status, position)`` fields of tasks."""

    def __init__(self, store: TaskStore) -> None:
        self._store = store

    async def _get_in_scope(self, task_id: str, scope: str) -> Task:
        task = await self._store.get_task(task_id)
        if task is None or task.scope != scope:
            raise TaskNotFoundError(task_id)
        return task

    async def next_position(self, scope: str, status: TaskStatus) -> int:
        """Position a new task takes when appended to a column."""
        return await self._store.count_in_column(scope, status)

    async def move_task(
        self,
        task_id: str,
        target_status: TaskStatus | str,
        target_position: int,
        scope: str,
    ) -> Task:
        """Relocate a task to ``target_position`` within ``(scope, target_status)``.

        Returns:
            The updated task, or the task unchanged if the move is a no-op.

        Raises:
            InvalidStatusError: If target_status is not a recognized status.
            InvalidPositionError: If target_position is negative.
            TaskNotFoundError: If the task does not exist in this scope.
        """
        status = TaskStatus.parse(target_status)
        if target_position < 0:
            raise InvalidPositionError(target_position)

        async with self._store.transaction():
            task = await self._get_in_scope(task_id, scope)

            if status is task.status:
                column = await self._store.list_by_scope_and_status(scope, status)
                updates = plan_same_column_move(task, column, target_position)
            else:
                source = await self._store.list_by_scope_and_status(scope, task.status)
                target = await self._store.list_by_scope_and_status(scope, status)
                updates = plan_cross_column_move(task, source, target, status, target_position)

            if not updates:
                logger.debug("Move of %s is a no-op", task_id)
                return task

            await self._store.apply_positions(updates)
            moved = await self._store.get_task(task_id)

        assert moved is not None
        logger.info(
            "Task %s moved %s[%d] -> %s[%d] (%d rows)",
            task_id,
            task.status.value,
            task.position,
            moved.status.value,
            moved.position,
            len(updates),
        )
        return moved

    async def append(self, task_id: str, status: TaskStatus | str, scope: str) -> Task:
        """Move a task to the end of a column."""
        target_status = TaskStatus.parse(status)
        async with self._store.transaction():
            task = await self._get_in_scope(task_id, scope)
            end = await self._store.count_in_column(scope, target_status)
            if task.status is target_status:
                end -= 1
            return await self.move_task(task_id, target_status, end, scope)

    async def compact(self, status: TaskStatus | str, scope: str) -> int:
        """Renumber a column to ``0..n-1`` in its existing relative order.

        Used after a task leaves the column outside of move_task (deletion).

        Returns:
            Number of tasks whose position changed.
        """
        column_status = TaskStatus.parse(status)
        async with self._store.transaction():
            column = await self._store.list_by_scope_and_status(scope, column_status)
            updates = plan_compaction(column)
            await self._store.apply_positions(updates)

        if updates:
            logger.info(
                "Compacted %s/%s: %d positions renumbered",
                scope,
                column_status.value,
                len(updates),
            )
        return len(updates)

    async def board(self, scope: str) -> dict[TaskStatus, list[Task]]:
        """Top-level tasks of a scope grouped by column, in position order."""
        grouped: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
        for task in await self._store.list_scope_tasks(scope, top_level_only=True):
            grouped[task.status].append(task)
        for column in grouped.values():
            column.sort(key=lambda t: t.position)
        return grouped
