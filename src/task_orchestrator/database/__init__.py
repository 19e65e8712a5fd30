"""Async SQLite task store.

This package provides the persistence layer the orchestration core reads
and writes through. All operations are async using aiosqlite.
"""

from __future__ import annotations

from .connection import DEFAULT_DB_PATH, SCHEMA_PATH
from .core import TaskStore

__all__ = [
    "DEFAULT_DB_PATH",
    "SCHEMA_PATH",
    "TaskStore",
]
