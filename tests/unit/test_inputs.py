"""Tests for the pydantic input models accepted by the facade."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from task_orchestrator.inputs import NewTask, RecurrenceSettings
from task_orchestrator.models import Priority, RecurrencePattern, TaskStatus, Weekday


class TestNewTask:
    """Tests for NewTask validation."""

    def test_defaults(self) -> None:
        new_task = NewTask(title="Write docs")

        assert new_task.status is TaskStatus.BACKLOG
        assert new_task.priority is Priority.MEDIUM
        assert new_task.parent_task_id is None

    def test_title_is_stripped(self) -> None:
        assert NewTask(title="  Write docs  ").title == "Write docs"

    @pytest.mark.parametrize("title", ["", "   "])
    def test_blank_title_rejected(self, title: str) -> None:
        with pytest.raises(ValidationError, match="title must not be empty"):
            NewTask(title=title)

    def test_title_length_limit(self) -> None:
        with pytest.raises(ValidationError):
            NewTask(title="x" * 201)

    def test_negative_estimate_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NewTask(title="Task", estimated_minutes=-5)

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NewTask(title="Task", position=3)  # type: ignore[call-arg]

    def test_status_from_string(self) -> None:
        assert NewTask(title="Task", status="review").status is TaskStatus.REVIEW  # type: ignore[arg-type]


class TestRecurrenceSettings:
    """Tests for RecurrenceSettings validation."""

    def test_pattern_is_case_insensitive(self) -> None:
        settings = RecurrenceSettings(pattern="Weekly")  # type: ignore[arg-type]

        assert settings.pattern is RecurrencePattern.WEEKLY
        assert settings.interval == 1
        assert settings.days == []

    def test_days_are_upper_cased(self) -> None:
        settings = RecurrenceSettings(pattern="weekly", days=["mon", " Wed"])  # type: ignore[arg-type, list-item]

        assert settings.days == [Weekday.MON, Weekday.WED]

    def test_none_days_become_empty(self) -> None:
        settings = RecurrenceSettings(pattern="daily", days=None)  # type: ignore[arg-type]

        assert settings.days == []

    def test_unknown_day_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RecurrenceSettings(pattern="weekly", days=["MONDAY"])  # type: ignore[arg-type, list-item]

    def test_unknown_pattern_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RecurrenceSettings(pattern="hourly")  # type: ignore[arg-type]

    @pytest.mark.parametrize("interval", [0, -1])
    def test_interval_must_be_positive(self, interval: int) -> None:
        with pytest.raises(ValidationError, match="interval must be at least 1"):
            RecurrenceSettings(pattern="daily", interval=interval)  # type: ignore[arg-type]
