"""Input models with Pydantic validation for facade operations."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from .models import Priority, RecurrencePattern, TaskStatus, Weekday


class NewTask(BaseModel):
    """Fields accepted when creating a task."""

    model_config = {"extra": "forbid"}

    title: str = Field(max_length=200)
    description: str | None = None
    priority: Priority = Priority.MEDIUM
    estimated_minutes: int | None = Field(default=None, ge=0)
    assignee_id: str | None = None
    workspace_id: str | None = None
    parent_task_id: str | None = None
    due_date: datetime | None = None
    status: TaskStatus = TaskStatus.BACKLOG

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate title is not empty or whitespace."""
        if not v or not v.strip():
            raise ValueError("title must not be empty or whitespace")
        return v.strip()


class RecurrenceSettings(BaseModel):
    """Recurrence rule applied to a task.

    ``days`` only matters for weekly recurrence, e.g. ``["MON", "WED", "FRI"]``.
    """

    model_config = {"extra": "forbid"}

    pattern: RecurrencePattern
    interval: int = 1
    days: list[Weekday] = Field(default_factory=list)
    end_date: datetime | None = None

    @field_validator("pattern", mode="before")
    @classmethod
    def normalize_pattern(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        """Validate interval is positive."""
        if v < 1:
            raise ValueError("interval must be at least 1")
        return v

    @field_validator("days", mode="before")
    @classmethod
    def normalize_days(cls, v: object) -> object:
        if v is None:
            return []
        if isinstance(v, (list, tuple, set, frozenset)):
            return [d.strip().upper() if isinstance(d, str) else d for d in v]
        return v
