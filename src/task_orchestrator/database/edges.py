"""Dependency edge queries and mutations.

Provides the EdgeMixin over the ``task_dependencies`` table.
"""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager

import aiosqlite

from ..models import DependencyEdge

logger = logging.getLogger(__name__)


class EdgeMixin:
    """Mixin providing dependency edge reads and writes."""

    def transaction(self) -> AbstractAsyncContextManager[aiosqlite.Connection]: ...

    async def list_outgoing_edges(self, task_id: str) -> list[DependencyEdge]:
        """List the edges of tasks that ``task_id`` depends on."""
        async with self.transaction() as conn:
            async with conn.execute(
                """
                SELECT dependent_id, dependency_id, type FROM task_dependencies
                WHERE dependent_id = ?
                ORDER BY created_at, rowid
                """,
                (task_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [DependencyEdge.from_row(row) for row in rows]

    async def list_incoming_edges(self, task_id: str) -> list[DependencyEdge]:
        """List the edges of tasks that depend on ``task_id``."""
        async with self.transaction() as conn:
            async with conn.execute(
                """
                SELECT dependent_id, dependency_id, type FROM task_dependencies
                WHERE dependency_id = ?
                ORDER BY created_at, rowid
                """,
                (task_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [DependencyEdge.from_row(row) for row in rows]

    async def get_edge(
        self, dependent_id: str, dependency_id: str
    ) -> DependencyEdge | None:
        async with self.transaction() as conn:
            async with conn.execute(
                """
                SELECT dependent_id, dependency_id, type FROM task_dependencies
                WHERE dependent_id = ? AND dependency_id = ?
                """,
                (dependent_id, dependency_id),
            ) as cursor:
                row = await cursor.fetchone()
        return DependencyEdge.from_row(row) if row else None

    async def insert_edge(self, edge: DependencyEdge) -> None:
        async with self.transaction() as conn:
            await conn.execute(
                """
                INSERT INTO task_dependencies (dependent_id, dependency_id, type)
                VALUES (?, ?, ?)
                """,
                (edge.dependent_id, edge.dependency_id, edge.type.value),
            )
        logger.debug("Inserted edge %s -> %s", edge.dependent_id, edge.dependency_id)

    async def delete_edge(self, dependent_id: str, dependency_id: str) -> bool:
        """Delete an edge.

        Returns:
            True if an edge was deleted.
        """
        async with self.transaction() as conn:
            cursor = await conn.execute(
                """
                DELETE FROM task_dependencies
                WHERE dependent_id = ? AND dependency_id = ?
                """,
                (dependent_id, dependency_id),
            )
            return cursor.rowcount > 0
