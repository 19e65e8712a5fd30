"""Dependency graph manager.

Maintains directed "must-finish-before" edges between tasks, keeps the edge
set acyclic and duplicate-free, and decides whether a task is unblocked.

Edges point *from* dependent *to* dependency: ``A -> B`` means A waits for B.
Adding ``A -> B`` is rejected when A is already reachable from B, since the
new edge would then let A reach itself.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import (
    DuplicateEdgeError,
    EdgeNotFoundError,
    SelfReferenceError,
    WouldCreateCycleError,
)
from .models import (
    TERMINAL_STATUS,
    BlockingReport,
    DependencyEdge,
    DependencyType,
    TaskSummary,
)

if TYPE_CHECKING:
    from .database import TaskStore

logger = logging.getLogger(__name__)

# Only this edge type gates progress. The others are recorded but inert
# until their semantics are agreed on.
BLOCKING_TYPES = frozenset({DependencyType.FINISH_TO_START})


class EdgeRejection(str, Enum):
    """Why an edge cannot be added."""

    SELF_REFERENCE = "self_reference"
    DUPLICATE_EDGE = "duplicate_edge"
    WOULD_CREATE_CYCLE = "would_create_cycle"


@dataclass(frozen=True)
class EdgeCheck:
    """Result of can_add_edge().

    Attributes:
        ok: True if the edge may be added.
        reason: Rejection reason when ok is False.
        path: For cycles, the existing chain from the dependency back to the
            dependent (inclusive at both ends).
    """

    ok: bool
    reason: EdgeRejection | None = None
    path: list[str] = field(default_factory=list)


class DependencyGraphManager:
    """Pure graph logic over edges read from the task store.

    The manager holds no state of its own. Callers that need the check and
    the insert to be atomic run both inside ``store.transaction()``.
    """

    def __init__(self, store: TaskStore) -> None:
        self._store = store

    async def find_path(self, start_id: str, target_id: str) -> list[str] | None:
        """Breadth-first search along outgoing edges from start to target.

        Each node is expanded at most once, so shared ancestors and
        diamond-shaped graphs terminate in O(V + E).

        Returns:
            The node chain ``[start_id, ..., target_id]``, or None if the
            target is unreachable.
        """
        parents: dict[str, str | None] = {start_id: None}
        queue: deque[str] = deque([start_id])

        while queue:
            current = queue.popleft()
            if current == target_id:
                path: list[str] = []
                node: str | None = current
                while node is not None:
                    path.append(node)
                    node = parents[node]
                path.reverse()
                return path

            for edge in await self._store.list_outgoing_edges(current):
                if edge.dependency_id not in parents:
                    parents[edge.dependency_id] = current
                    queue.append(edge.dependency_id)

        return None

    async def can_add_edge(self, dependent_id: str, dependency_id: str) -> EdgeCheck:
        """Check whether ``dependent_id -> dependency_id`` may be added."""
        if dependent_id == dependency_id:
            return EdgeCheck(ok=False, reason=EdgeRejection.SELF_REFERENCE)

        if await self._store.get_edge(dependent_id, dependency_id) is not None:
            return EdgeCheck(ok=False, reason=EdgeRejection.DUPLICATE_EDGE)

        path = await self.find_path(dependency_id, dependent_id)
        if path is not None:
            return EdgeCheck(ok=False, reason=EdgeRejection.WOULD_CREATE_CYCLE, path=path)

        return EdgeCheck(ok=True)

    async def add_edge(
        self,
        dependent_id: str,
        dependency_id: str,
        type: DependencyType = DependencyType.FINISH_TO_START,
    ) -> DependencyEdge:
        """Validate and persist an edge.

        Raises:
            SelfReferenceError: If both ids are equal.
            DuplicateEdgeError: If the edge already exists.
            WouldCreateCycleError: If the edge would close a cycle.
        """
        check = await self.can_add_edge(dependent_id, dependency_id)
        if check.reason is EdgeRejection.SELF_REFERENCE:
            raise SelfReferenceError(dependent_id)
        if check.reason is EdgeRejection.DUPLICATE_EDGE:
            raise DuplicateEdgeError(dependent_id, dependency_id)
        if check.reason is EdgeRejection.WOULD_CREATE_CYCLE:
            raise WouldCreateCycleError(dependent_id, dependency_id, check.path)

        edge = DependencyEdge(dependent_id=dependent_id, dependency_id=dependency_id, type=type)
        await self._store.insert_edge(edge)
        logger.info("Dependency added: %s -> %s (%s)", dependent_id, dependency_id, type.value)
        return edge

    async def remove_edge(self, dependent_id: str, dependency_id: str) -> None:
        """Remove an edge.

        Raises:
            EdgeNotFoundError: If the edge does not exist.
        """
        if not await self._store.delete_edge(dependent_id, dependency_id):
            raise EdgeNotFoundError(dependent_id, dependency_id)
        logger.info("Dependency removed: %s -> %s", dependent_id, dependency_id)

    async def can_start(self, task_id: str) -> BlockingReport:
        """Decide whether a task may begin work.

        A finish-to-start dependency blocks while its task is not done.
        Other edge types never block. A dependency row whose task has vanished
        is skipped (its edge cascades away with the task).
        """
        blocking: list[TaskSummary] = []
        for edge in await self._store.list_outgoing_edges(task_id):
            if edge.type not in BLOCKING_TYPES:
                continue
            dependency = await self._store.get_task(edge.dependency_id)
            if dependency is None:
                continue
            if dependency.status is not TERMINAL_STATUS:
                blocking.append(dependency.summary())

        return BlockingReport(can_start=not blocking, blocking_tasks=blocking)

    async def list_dependencies(self, task_id: str) -> list[DependencyEdge]:
        """Edges of the tasks ``task_id`` waits for."""
        return await self._store.list_outgoing_edges(task_id)

    async def list_dependents(self, task_id: str) -> list[DependencyEdge]:
        """Edges of the tasks waiting for ``task_id``."""
        return await self._store.list_incoming_edges(task_id)
