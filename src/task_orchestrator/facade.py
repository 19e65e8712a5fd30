"""Orchestration facade.

The single entry point request handlers and the periodic scheduler call.
Each operation validates its preconditions, opens one store transaction,
delegates to the dependency graph, position, or recurrence component, and
publishes a change event once the transaction has committed.

The components never call each other; only this module sequences them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from . import events
from .dependency_graph import DependencyGraphManager
from .exceptions import BlockedError, InvalidPositionError, TaskNotFoundError
from .inputs import NewTask, RecurrenceSettings
from .models import (
    BlockingReport,
    DependencyEdge,
    DependencyType,
    SweepResult,
    Task,
    TaskStatus,
    utc,
)
from .positions import PositionManager
from .project_config import BoardConfig, RecurrenceConfig
from .recurrence import RecurrenceEngine

if TYPE_CHECKING:
    from .database import TaskStore
    from .project_config import ProjectConfig

logger = logging.getLogger(__name__)


class TaskOrchestrator:
    """Coordinates dependency, position and recurrence rules over one store.

    Usage:
        async with TaskStore(db_path) as store:
            orchestrator = TaskOrchestrator(store)
            task = await orchestrator.create_task("user:alice", NewTask(title="Write docs"))
            await orchestrator.move_task(task.id, "active", 0, "user:alice")
    """

    def __init__(self, store: TaskStore, config: ProjectConfig | None = None) -> None:
        self._store = store
        self._board = config.board if config else BoardConfig()
        self._recurrence_config = config.recurrence if config else RecurrenceConfig()
        self.graph = DependencyGraphManager(store)
        self.positions = PositionManager(store)
        self.recurrence = RecurrenceEngine(store)

    @property
    def gated_statuses(self) -> frozenset[TaskStatus]:
        return frozenset(self._board.gated_statuses)

    async def _require_task(self, task_id: str, scope: str | None = None) -> Task:
        task = await self._store.get_task(task_id)
        if task is None or (scope is not None and task.scope != scope):
            raise TaskNotFoundError(task_id)
        return task

    # =========================================================================
    # Dependencies
    # =========================================================================

    async def add_dependency(
        self,
        dependent_id: str,
        dependency_id: str,
        type: DependencyType | str = DependencyType.FINISH_TO_START,
    ) -> DependencyEdge:
        """Make ``dependent_id`` wait for ``dependency_id``.

        Raises:
            InvalidDependencyTypeError: If type is not a recognized dependency type.
            TaskNotFoundError: If either task does not exist.
            SelfReferenceError: If both ids are equal.
            DuplicateEdgeError: If the edge already exists.
            WouldCreateCycleError: If the edge would close a cycle.
        """
        edge_type = DependencyType.parse(type)
        async with self._store.transaction():
            await self._require_task(dependent_id)
            await self._require_task(dependency_id)
            edge = await self.graph.add_edge(dependent_id, dependency_id, edge_type)

        events.dispatch_event(
            events.build_event(
                events.DEPENDENCY_ADDED,
                dependent_id,
                dependency_id=dependency_id,
                type=edge_type.value,
            )
        )
        return edge

    async def remove_dependency(self, dependent_id: str, dependency_id: str) -> None:
        """Remove a dependency edge.

        Raises:
            EdgeNotFoundError: If the edge does not exist.
        """
        async with self._store.transaction():
            await self.graph.remove_edge(dependent_id, dependency_id)

        events.dispatch_event(
            events.build_event(
                events.DEPENDENCY_REMOVED, dependent_id, dependency_id=dependency_id
            )
        )

    async def get_blocking_tasks(self, task_id: str) -> BlockingReport:
        """Report whether a task may start and which dependencies block it.

        Raises:
            TaskNotFoundError: If the task does not exist.
        """
        async with self._store.transaction():
            await self._require_task(task_id)
            return await self.graph.can_start(task_id)

    async def list_dependencies(self, task_id: str) -> list[DependencyEdge]:
        async with self._store.transaction():
            await self._require_task(task_id)
            return await self.graph.list_dependencies(task_id)

    async def list_dependents(self, task_id: str) -> list[DependencyEdge]:
        async with self._store.transaction():
            await self._require_task(task_id)
            return await self.graph.list_dependents(task_id)

    # =========================================================================
    # Board
    # =========================================================================

    async def get_task(self, task_id: str) -> Task:
        """Raises TaskNotFoundError if the task does not exist."""
        return await self._require_task(task_id)

    async def create_task(self, scope: str, new_task: NewTask) -> Task:
        """Create a task at the end of its column.

        Raises:
            TaskNotFoundError: If ``parent_task_id`` names a missing task.
        """
        async with self._store.transaction():
            if new_task.parent_task_id is not None:
                await self._require_task(new_task.parent_task_id)
            position = await self.positions.next_position(scope, new_task.status)
            task = await self._store.create_task(
                new_task.title,
                scope,
                status=new_task.status,
                position=position,
                description=new_task.description,
                priority=new_task.priority,
                estimated_minutes=new_task.estimated_minutes,
                assignee_id=new_task.assignee_id,
                workspace_id=new_task.workspace_id,
                parent_task_id=new_task.parent_task_id,
                due_date=new_task.due_date,
            )

        events.dispatch_event(
            events.build_event(
                events.TASK_CREATED,
                task.id,
                scope=scope,
                status=task.status.value,
                position=task.position,
            )
        )
        return task

    async def delete_task(self, task_id: str, scope: str) -> None:
        """Delete a task and close the gap it leaves in its column.

        Dependency edges touching the task are removed with it.

        Raises:
            TaskNotFoundError: If the task does not exist in this scope.
        """
        async with self._store.transaction():
            task = await self._require_task(task_id, scope)
            await self._store.delete_task(task_id)
            await self.positions.compact(task.status, scope)

        events.dispatch_event(
            events.build_event(
                events.TASK_DELETED, task_id, scope=scope, status=task.status.value
            )
        )

    async def move_task(
        self,
        task_id: str,
        new_status: TaskStatus | str,
        new_position: int,
        scope: str,
    ) -> Task:
        """Move a task to a column and slot, enforcing the dependency gate.

        Entering a gated status from another status requires every
        finish-to-start dependency to be done. Reordering within a column is
        never gated.

        Raises:
            InvalidStatusError: If new_status is not a recognized status.
            InvalidPositionError: If new_position is negative.
            TaskNotFoundError: If the task does not exist in this scope.
            BlockedError: If the task may not enter the target status yet.
        """
        status = TaskStatus.parse(new_status)
        if new_position < 0:
            raise InvalidPositionError(new_position)

        async with self._store.transaction():
            task = await self._require_task(task_id, scope)
            if status is not task.status and status in self.gated_statuses:
                report = await self.graph.can_start(task_id)
                if not report.can_start:
                    logger.info(
                        "Move of %s into %s blocked by %d task(s)",
                        task_id,
                        status.value,
                        len(report.blocking_tasks),
                    )
                    raise BlockedError(task_id, report.blocking_tasks)
            moved = await self.positions.move_task(task_id, status, new_position, scope)

        if moved.version != task.version:
            events.dispatch_event(
                events.build_event(
                    events.TASK_MOVED,
                    task_id,
                    scope=scope,
                    old_status=task.status.value,
                    new_status=moved.status.value,
                    old_position=task.position,
                    new_position=moved.position,
                )
            )
        return moved

    async def compact_column(self, status: TaskStatus | str, scope: str) -> int:
        """Renumber a column to ``0..n-1``; returns the number of rows changed."""
        return await self.positions.compact(status, scope)

    async def get_board(self, scope: str) -> dict[TaskStatus, list[Task]]:
        return await self.positions.board(scope)

    # =========================================================================
    # Recurrence
    # =========================================================================

    async def run_recurrence_sweep(self, now: datetime) -> SweepResult:
        """Spawn the next occurrence of every due recurring task.

        Args:
            now: Sweep time supplied by the scheduler. Naive values are UTC.

        Returns:
            SweepResult. Empty when recurrence is disabled in the config.
        """
        if not self._recurrence_config.enabled:
            logger.info("Recurrence disabled, skipping sweep")
            return SweepResult()

        result = await self.recurrence.process_due_recurrences(utc(now))
        for occurrence_id in result.spawned_ids:
            events.dispatch_event(
                events.build_event(events.OCCURRENCE_SPAWNED, occurrence_id)
            )
        return result

    async def set_recurrence(self, task_id: str, settings: RecurrenceSettings) -> Task:
        return await self.recurrence.configure(task_id, settings)

    async def clear_recurrence(self, task_id: str) -> Task:
        return await self.recurrence.clear(task_id)

    async def get_recurrence_chain(self, task_id: str) -> list[Task]:
        return await self.recurrence.chain(task_id)
