"""Composed TaskStore class.

Combines all mixin classes into the final TaskStore that provides the
complete persistence API consumed by the orchestration core.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .connection import ConnectionMixin
from .edges import EdgeMixin
from .tasks import TaskMixin


class TaskStore(ConnectionMixin, TaskMixin, EdgeMixin):
    """Async SQLite store for task records and dependency edges.

    Usage:
        async with TaskStore("tasks.db") as store:
            async with store.transaction():
                task = await store.get_task(task_id)
                await store.update_task_fields(task_id, title="Renamed")
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Use ":memory:" for testing.
                     Defaults to tasks.db in the current working directory.
        """
        super().__init__(db_path)

    async def __aenter__(self) -> TaskStore:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.close()
