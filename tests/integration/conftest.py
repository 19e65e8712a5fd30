"""Shared fixtures for orchestrator integration tests."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pytest

from task_orchestrator.database import TaskStore
from task_orchestrator.facade import TaskOrchestrator
from task_orchestrator.models import RecurrencePattern, Task, TaskStatus, Weekday

SCOPE = "user:alice"


@pytest.fixture
async def store():
    """In-memory task store with schema initialized."""
    async with TaskStore(":memory:") as database:
        yield database


@pytest.fixture
def orchestrator(store: TaskStore) -> TaskOrchestrator:
    return TaskOrchestrator(store)


class TaskFactory:
    """Factory for creating test tasks with sensible defaults.

    Tasks are appended to the end of their column so positions stay dense.
    """

    def __init__(self, store: TaskStore) -> None:
        self.store = store
        self.counter = 0

    async def create(
        self,
        title: str | None = None,
        scope: str = SCOPE,
        status: TaskStatus = TaskStatus.BACKLOG,
        **fields: Any,
    ) -> Task:
        """Create a task with defaults for unspecified fields."""
        self.counter += 1
        position = await self.store.count_in_column(scope, status)
        return await self.store.create_task(
            title or f"Task {self.counter}",
            scope,
            status=status,
            position=position,
            **fields,
        )

    async def column(
        self, count: int, scope: str = SCOPE, status: TaskStatus = TaskStatus.BACKLOG
    ) -> list[Task]:
        """Create ``count`` tasks in one column, in position order."""
        return [await self.create(scope=scope, status=status) for _ in range(count)]

    async def recurring(
        self,
        pattern: RecurrencePattern = RecurrencePattern.DAILY,
        *,
        interval: int = 1,
        days: set[Weekday] | None = None,
        due_date: datetime | None = None,
        end_date: datetime | None = None,
        last_recurrence_at: datetime | None = None,
        title: str | None = None,
        scope: str = SCOPE,
    ) -> Task:
        """Create a completed recurring task, ready for a sweep."""
        task = await self.create(
            title,
            scope=scope,
            status=TaskStatus.DONE,
            due_date=due_date,
            is_recurring=True,
            recurrence_pattern=pattern,
            recurrence_interval=interval,
            recurrence_days=days,
            recurrence_end_date=end_date,
        )
        if last_recurrence_at is not None:
            await self.store.update_task_fields(task.id, last_recurrence_at=last_recurrence_at)
            refreshed = await self.store.get_task(task.id)
            assert refreshed is not None
            task = refreshed
        return task

    async def positions(self, status: TaskStatus, scope: str = SCOPE) -> list[int]:
        """Positions of a column in read order."""
        return [t.position for t in await self.store.list_by_scope_and_status(scope, status)]

    async def ids(self, status: TaskStatus, scope: str = SCOPE) -> list[str]:
        return [t.id for t in await self.store.list_by_scope_and_status(scope, status)]


@pytest.fixture
def factory(store: TaskStore) -> TaskFactory:
    return TaskFactory(store)

