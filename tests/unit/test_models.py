"""Tests for domain models and the exception hierarchy."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from task_orchestrator.exceptions import (
    BlockedError,
    DependencyError,
    EdgeNotFoundError,
    InvalidDependencyTypeError,
    InvalidPositionError,
    InvalidStatusError,
    OrchestrationError,
    StoreError,
    TaskNotFoundError,
    WouldCreateCycleError,
)
from task_orchestrator.models import (
    DependencyEdge,
    DependencyType,
    Priority,
    RecurrencePattern,
    SweepResult,
    Task,
    TaskStatus,
    TaskSummary,
    Weekday,
    dump_days,
    from_db_timestamp,
    to_db_timestamp,
    utc,
)


class TestTaskStatus:
    """Tests for TaskStatus.parse()."""

    def test_parse_accepts_enum(self) -> None:
        assert TaskStatus.parse(TaskStatus.ACTIVE) is TaskStatus.ACTIVE

    @pytest.mark.parametrize("raw", ["review", "REVIEW", " Review "])
    def test_parse_is_case_insensitive(self, raw: str) -> None:
        assert TaskStatus.parse(raw) is TaskStatus.REVIEW

    def test_parse_unknown_raises_invalid_status(self) -> None:
        with pytest.raises(InvalidStatusError) as exc_info:
            TaskStatus.parse("archived")

        assert exc_info.value.status == "archived"
        assert exc_info.value.code == "INVALID_STATUS"

    def test_invalid_status_is_value_error(self) -> None:
        """Host applications map ValueError to a 400 response."""
        with pytest.raises(ValueError):
            TaskStatus.parse("nope")


class TestDependencyType:
    """Tests for DependencyType.parse()."""

    def test_parse_accepts_value(self) -> None:
        assert DependencyType.parse(" FINISH_TO_FINISH ") is DependencyType.FINISH_TO_FINISH

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(InvalidDependencyTypeError) as exc_info:
            DependencyType.parse("blocks")

        assert exc_info.value.dependency_type == "blocks"
        assert isinstance(exc_info.value, OrchestrationError)
        assert isinstance(exc_info.value, ValueError)


class TestRecurrencePattern:
    def test_from_db_reads_known_pattern(self) -> None:
        assert RecurrencePattern.from_db("WEEKLY") is RecurrencePattern.WEEKLY

    def test_from_db_unknown_pattern_is_none(self) -> None:
        """A pattern written by another system never spawns."""
        assert RecurrencePattern.from_db("fortnightly") is None
        assert RecurrencePattern.from_db(None) is None


class TestWeekday:
    def test_from_date_maps_python_weekday(self) -> None:
        monday = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert Weekday.from_date(monday) is Weekday.MON
        assert Weekday.from_date(monday + timedelta(days=2)) is Weekday.WED
        assert Weekday.from_date(monday + timedelta(days=6)) is Weekday.SUN


class TestTimestamps:
    def test_naive_datetime_is_taken_as_utc(self) -> None:
        value = utc(datetime(2024, 5, 1, 12, 0))

        assert value.tzinfo is timezone.utc
        assert value.hour == 12

    def test_aware_datetime_is_converted_to_utc(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        value = utc(datetime(2024, 5, 1, 12, 0, tzinfo=plus_two))

        assert value.hour == 10

    def test_db_timestamp_round_trip(self) -> None:
        value = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

        assert from_db_timestamp(to_db_timestamp(value)) == value
        assert to_db_timestamp(None) is None
        assert from_db_timestamp("") is None

    def test_dump_days_is_sorted_and_empty_is_none(self) -> None:
        assert dump_days({Weekday.WED, Weekday.MON}) == '["MON", "WED"]'
        assert dump_days(frozenset()) is None


class TestTaskFromRow:
    """Tests for Task.from_row()."""

    def test_from_row_parses_columns(self) -> None:
        row = {
            "id": "t1",
            "title": "Standup",
            "scope": "workspace:w1",
            "status": "done",
            "position": 3,
            "priority": "high",
            "is_recurring": 1,
            "recurrence_pattern": "weekly",
            "recurrence_interval": 2,
            "recurrence_days": '["MON", "fri", "XYZ"]',
            "due_date": "2024-01-01T09:00:00+00:00",
            "version": 4,
        }

        task = Task.from_row(row)

        assert task.status is TaskStatus.DONE
        assert task.position == 3
        assert task.priority is Priority.HIGH
        assert task.is_recurring is True
        assert task.recurrence_pattern is RecurrencePattern.WEEKLY
        assert task.recurrence_interval == 2
        assert task.recurrence_days == frozenset({Weekday.MON, Weekday.FRI})
        assert task.due_date == datetime(2024, 1, 1, 9, tzinfo=timezone.utc)
        assert task.version == 4

    def test_from_row_defaults_missing_optionals(self) -> None:
        task = Task.from_row(
            {"id": "t2", "title": "Plain", "scope": "user:bob", "status": "backlog", "position": 0}
        )

        assert task.priority is Priority.MEDIUM
        assert task.recurrence_pattern is None
        assert task.recurrence_interval == 1
        assert task.recurrence_days == frozenset()
        assert task.due_date is None

    def test_summary(self) -> None:
        task = Task(id="t3", title="Write docs", scope="user:bob", status=TaskStatus.REVIEW)

        assert task.summary() == TaskSummary(id="t3", title="Write docs", status=TaskStatus.REVIEW)


class TestRecords:
    def test_edge_defaults_to_finish_to_start(self) -> None:
        edge = DependencyEdge(dependent_id="a", dependency_id="b")

        assert edge.type is DependencyType.FINISH_TO_START

    def test_sweep_result_counts_spawned_only(self) -> None:
        result = SweepResult(spawned_ids=["x", "y"], failed_ids=["z"])

        assert result.spawned_count == 2


class TestExceptions:
    """Tests for the exception hierarchy and messages."""

    def test_not_found_errors_are_lookup_errors(self) -> None:
        assert isinstance(TaskNotFoundError("t1"), LookupError)
        assert isinstance(EdgeNotFoundError("a", "b"), LookupError)
        assert TaskNotFoundError("t1").code == "NOT_FOUND"

    def test_cycle_error_message_shows_chain(self) -> None:
        error = WouldCreateCycleError("C", "A", ["A", "B", "C"])

        assert isinstance(error, DependencyError)
        assert error.path == ["A", "B", "C"]
        assert "C -> A -> B -> C" in str(error)

    def test_blocked_error_lists_titles(self) -> None:
        blockers = [
            TaskSummary(id="b", title="Design", status=TaskStatus.ACTIVE),
            TaskSummary(id="c", title="Review", status=TaskStatus.BACKLOG),
        ]

        error = BlockedError("a", blockers)

        assert str(error) == "Cannot start task. Blocked by: Design, Review"
        assert error.blocking_tasks == blockers
        assert error.code == "BLOCKED"

    def test_all_errors_share_base(self) -> None:
        for error in (
            InvalidPositionError(-1),
            StoreError("disk full"),
            BlockedError("a", []),
        ):
            assert isinstance(error, OrchestrationError)
