"""Tests for orchestrator CLI commands.

This module tests the command-line interface using click.testing.CliRunner
to verify commands, arguments, error handling, and auto-discovery. Commands
run against a throwaway on-disk database passed with --db.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner, Result

from task_orchestrator.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    """Create a CliRunner for testing."""
    return CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "tasks.db")


def _invoke(runner: CliRunner, db_path: str, *args: str) -> Result:
    return runner.invoke(cli, [*args, "--db", db_path])


def _add(runner: CliRunner, db_path: str, title: str, *options: str) -> str:
    """Create a task through the CLI and return its id."""
    result = _invoke(runner, db_path, "task", "add", title, "--scope", "user:alice", *options)
    assert result.exit_code == 0, result.output
    return result.stdout.split()[2]


class TestCLIStructure:
    """Test class for CLI command structure."""

    def test_help_displays_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "Task Orchestrator" in result.output
        for command in ("init", "task", "board", "move", "deps", "recurrence", "sweep", "compact"):
            assert command in result.output

    def test_invalid_command_fails_gracefully(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["invalid-command"])

        assert result.exit_code != 0
        assert "No such command" in result.output

    def test_missing_project_reports_error(self, runner: CliRunner) -> None:
        with patch(
            "task_orchestrator.cli.resolve_db_for_cli",
            side_effect=FileNotFoundError("No .taskboard/ directory found."),
        ):
            result = runner.invoke(cli, ["board", "--scope", "user:alice"])

        assert result.exit_code == 1
        assert "Error: No .taskboard/ directory found." in result.output


class TestInitCommand:
    """Tests for the init CLI command."""

    def test_init_creates_board(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["init", "--project", str(tmp_path), "--name", "demo"])

        assert result.exit_code == 0, result.output
        assert (tmp_path / ".taskboard" / "config.toml").is_file()
        assert (tmp_path / ".taskboard" / "tasks.db").is_file()
        assert "demo" in result.output

    def test_init_twice_without_force_fails(self, runner: CliRunner, tmp_path: Path) -> None:
        runner.invoke(cli, ["init", "--project", str(tmp_path)])

        result = runner.invoke(cli, ["init", "--project", str(tmp_path)])

        assert result.exit_code == 1
        assert "--force" in result.output


class TestTaskAndBoardCommands:
    def test_add_appends_to_column(self, runner: CliRunner, db_path: str) -> None:
        _add(runner, db_path, "First")
        second = _invoke(
            runner, db_path, "task", "add", "Second", "--scope", "user:alice"
        )

        assert second.exit_code == 0
        assert "backlog[1]" in second.output

    def test_board_lists_columns(self, runner: CliRunner, db_path: str) -> None:
        _add(runner, db_path, "Draft spec")
        _add(runner, db_path, "Ship it", "--status", "review")

        result = _invoke(runner, db_path, "board", "--scope", "user:alice")

        assert result.exit_code == 0
        assert "BACKLOG (1)" in result.output
        assert "REVIEW (1)" in result.output
        assert "Draft spec" in result.output

    def test_add_blank_title_fails(self, runner: CliRunner, db_path: str) -> None:
        result = _invoke(runner, db_path, "task", "add", "   ", "--scope", "user:alice")

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_rm_unknown_task_fails(self, runner: CliRunner, db_path: str) -> None:
        result = _invoke(runner, db_path, "task", "rm", "missing", "--scope", "user:alice")

        assert result.exit_code == 1
        assert "Task not found: missing" in result.output

    def test_show_task(self, runner: CliRunner, db_path: str) -> None:
        task_id = _add(runner, db_path, "Inspect me")

        result = _invoke(runner, db_path, "task", "show", task_id)

        assert result.exit_code == 0
        assert "Inspect me" in result.output
        assert "Can start: yes" in result.output


class TestMoveAndDepsCommands:
    def test_blocked_move_reports_blockers(self, runner: CliRunner, db_path: str) -> None:
        design = _add(runner, db_path, "Design")
        build = _add(runner, db_path, "Build")
        assert _invoke(runner, db_path, "deps", "add", build, design).exit_code == 0

        result = _invoke(runner, db_path, "move", build, "active", "0", "--scope", "user:alice")

        assert result.exit_code == 1
        assert "Blocked by: Design" in result.output

    def test_move_after_dependency_done(self, runner: CliRunner, db_path: str) -> None:
        design = _add(runner, db_path, "Design")
        build = _add(runner, db_path, "Build")
        _invoke(runner, db_path, "deps", "add", build, design)
        _invoke(runner, db_path, "move", design, "done", "0", "--scope", "user:alice")

        result = _invoke(runner, db_path, "move", build, "active", "0", "--scope", "user:alice")

        assert result.exit_code == 0, result.output
        assert "active[0]" in result.output

    def test_move_invalid_status_rejected(self, runner: CliRunner, db_path: str) -> None:
        task_id = _add(runner, db_path, "Task")

        result = _invoke(runner, db_path, "move", task_id, "archived", "0", "--scope", "user:alice")

        assert result.exit_code == 2

    def test_self_dependency_rejected(self, runner: CliRunner, db_path: str) -> None:
        task_id = _add(runner, db_path, "Task")

        result = _invoke(runner, db_path, "deps", "add", task_id, task_id)

        assert result.exit_code == 1
        assert "cannot depend on itself" in result.output

    def test_deps_check_and_ls(self, runner: CliRunner, db_path: str) -> None:
        design = _add(runner, db_path, "Design")
        build = _add(runner, db_path, "Build")
        _invoke(runner, db_path, "deps", "add", build, design)

        check = _invoke(runner, db_path, "deps", "check", build)
        listing = _invoke(runner, db_path, "deps", "ls", design)

        assert "is blocked by" in check.output
        assert "Design" in check.output
        assert build in listing.output

    def test_deps_rm_missing_edge(self, runner: CliRunner, db_path: str) -> None:
        a = _add(runner, db_path, "A")
        b = _add(runner, db_path, "B")

        result = _invoke(runner, db_path, "deps", "rm", a, b)

        assert result.exit_code == 1
        assert "Dependency not found" in result.output


class TestRecurrenceCommands:
    def test_set_then_sweep_spawns_occurrence(self, runner: CliRunner, db_path: str) -> None:
        task_id = _add(runner, db_path, "Standup", "--due", "2024-01-01T09:00:00+00:00")
        set_result = _invoke(runner, db_path, "recurrence", "set", task_id, "daily")
        assert set_result.exit_code == 0, set_result.output
        _invoke(runner, db_path, "move", task_id, "done", "0", "--scope", "user:alice")

        result = _invoke(runner, db_path, "sweep", "--now", "2024-01-01T10:00:00+00:00")

        assert result.exit_code == 0, result.output
        assert "Spawned 1 occurrence(s)" in result.output

        chain = _invoke(runner, db_path, "recurrence", "chain", task_id)
        assert "due 2024-01-02" in chain.output

    def test_invalid_interval_rejected(self, runner: CliRunner, db_path: str) -> None:
        task_id = _add(runner, db_path, "Standup")

        result = _invoke(
            runner, db_path, "recurrence", "set", task_id, "daily", "--interval", "0"
        )

        assert result.exit_code == 1
        assert "interval must be at least 1" in result.output

    def test_sweep_rejects_bad_timestamp(self, runner: CliRunner, db_path: str) -> None:
        result = _invoke(runner, db_path, "sweep", "--now", "yesterday")

        assert result.exit_code == 2
