"""Exceptions for the task orchestration core.

Every condition the core reports to callers is a subclass of
OrchestrationError. Not-found conditions also derive from LookupError and
user-correctable input errors from ValueError, so host applications can map
them to 404/400 without importing this module.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import TaskSummary


class OrchestrationError(Exception):
    """Base exception for all orchestration errors."""

    code = "ORCHESTRATION_ERROR"


class TaskNotFoundError(OrchestrationError, LookupError):
    """Raised when a referenced task does not exist (or is outside the scope)."""

    code = "NOT_FOUND"

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class EdgeNotFoundError(OrchestrationError, LookupError):
    """Raised when removing a dependency edge that does not exist."""

    code = "NOT_FOUND"

    def __init__(self, dependent_id: str, dependency_id: str) -> None:
        self.dependent_id = dependent_id
        self.dependency_id = dependency_id
        super().__init__(f"Dependency not found: {dependent_id} -> {dependency_id}")


class DependencyError(OrchestrationError, ValueError):
    """Base class for rejected dependency edges."""


class SelfReferenceError(DependencyError):
    """Raised when a task is asked to depend on itself."""

    code = "SELF_REFERENCE"

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} cannot depend on itself")


class DuplicateEdgeError(DependencyError):
    """Raised when the (dependent, dependency) pair already exists."""

    code = "DUPLICATE_EDGE"

    def __init__(self, dependent_id: str, dependency_id: str) -> None:
        self.dependent_id = dependent_id
        self.dependency_id = dependency_id
        super().__init__(f"Dependency already exists: {dependent_id} -> {dependency_id}")


class WouldCreateCycleError(DependencyError):
    """Raised when adding an edge would close a dependency cycle.

    Attributes:
        path: The existing chain from the dependency back to the dependent,
            e.g. ``["B", "C", "A"]`` when adding ``A -> B``.
    """

    code = "WOULD_CREATE_CYCLE"

    def __init__(self, dependent_id: str, dependency_id: str, path: list[str]) -> None:
        self.dependent_id = dependent_id
        self.dependency_id = dependency_id
        self.path = path
        chain = " -> ".join([dependent_id, *path])
        super().__init__(
            f"Adding this dependency would create a circular dependency: {chain}"
        )


class InvalidStatusError(OrchestrationError, ValueError):
    """Raised for a status value outside the recognized set."""

    code = "INVALID_STATUS"

    def __init__(self, status: object) -> None:
        self.status = status
        super().__init__(f"Invalid status: {status!r}")


class InvalidDependencyTypeError(OrchestrationError, ValueError):
    """Raised for a dependency type outside the recognized set."""

    code = "INVALID_DEPENDENCY_TYPE"

    def __init__(self, dependency_type: object) -> None:
        self.dependency_type = dependency_type
        super().__init__(f"Invalid dependency type: {dependency_type!r}")


class InvalidPositionError(OrchestrationError, ValueError):
    """Raised for a negative target position."""

    code = "INVALID_POSITION"

    def __init__(self, position: int) -> None:
        self.position = position
        super().__init__(f"Position must be non-negative, got {position}")


class BlockedError(OrchestrationError):
    """Raised when a move is rejected by unmet finish-to-start dependencies."""

    code = "BLOCKED"

    def __init__(self, task_id: str, blocking_tasks: list[TaskSummary]) -> None:
        self.task_id = task_id
        self.blocking_tasks = blocking_tasks
        titles = ", ".join(t.title for t in blocking_tasks)
        super().__init__(f"Cannot start task. Blocked by: {titles}")


class StoreError(OrchestrationError, RuntimeError):
    """Raised when the task store fails (write conflict, connectivity).

    Store errors are transient: the failed operation has been rolled back
    and the caller may retry it.
    """

    code = "STORE_ERROR"
