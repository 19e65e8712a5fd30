"""Task Orchestration Core.

This package keeps the records of a collaborative task tracker consistent:
an acyclic dependency graph between tasks, dense per-column board positions,
and idempotent spawning of recurring task occurrences.
"""

from __future__ import annotations

from .database import TaskStore
from .dependency_graph import DependencyGraphManager, EdgeCheck, EdgeRejection
from .events import dispatch_event, register_callback, unregister_callback
from .exceptions import (
    BlockedError,
    DependencyError,
    DuplicateEdgeError,
    EdgeNotFoundError,
    InvalidDependencyTypeError,
    InvalidPositionError,
    InvalidStatusError,
    OrchestrationError,
    SelfReferenceError,
    StoreError,
    TaskNotFoundError,
    WouldCreateCycleError,
)
from .facade import TaskOrchestrator
from .inputs import NewTask, RecurrenceSettings
from .models import (
    BlockingReport,
    DependencyEdge,
    DependencyType,
    Priority,
    RecurrencePattern,
    SweepResult,
    Task,
    TaskStatus,
    TaskSummary,
    Weekday,
)
from .positions import PositionManager
from .project_config import ProjectConfig, load_project_config
from .recurrence import RecurrenceEngine, compute_next_due_date, should_spawn

__all__ = [
    # Facade
    "TaskOrchestrator",
    # Components
    "DependencyGraphManager",
    "EdgeCheck",
    "EdgeRejection",
    "PositionManager",
    "RecurrenceEngine",
    "compute_next_due_date",
    "should_spawn",
    # Store
    "TaskStore",
    # Models
    "BlockingReport",
    "DependencyEdge",
    "DependencyType",
    "NewTask",
    "Priority",
    "RecurrencePattern",
    "RecurrenceSettings",
    "SweepResult",
    "Task",
    "TaskStatus",
    "TaskSummary",
    "Weekday",
    # Events
    "dispatch_event",
    "register_callback",
    "unregister_callback",
    # Config
    "ProjectConfig",
    "load_project_config",
    # Errors
    "BlockedError",
    "DependencyError",
    "DuplicateEdgeError",
    "EdgeNotFoundError",
    "InvalidDependencyTypeError",
    "InvalidPositionError",
    "InvalidStatusError",
    "OrchestrationError",
    "SelfReferenceError",
    "StoreError",
    "TaskNotFoundError",
    "WouldCreateCycleError",
]
