"""CLI for the task orchestrator.

Provides a command-line interface over the orchestration facade: board
inspection, task moves, dependency management, and the recurrence sweep an
external scheduler (cron, systemd timer) runs periodically.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable

import click
from pydantic import ValidationError

from .database import TaskStore
from .exceptions import OrchestrationError
from .facade import TaskOrchestrator
from .inputs import NewTask, RecurrenceSettings
from .models import DependencyType, Priority, Task, TaskStatus
from .project_config import ProjectConfig, create_default_config, resolve_db_for_cli

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

_STATUS_CHOICE = click.Choice([s.value for s in TaskStatus], case_sensitive=False)

Body = Callable[[TaskOrchestrator], Awaitable[None]]


def _resolve_db(db: str | None) -> tuple[Path, ProjectConfig | None]:
    try:
        return resolve_db_for_cli(db)
    except (FileNotFoundError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


async def _run_async(db_path: Path, config: ProjectConfig | None, body: Body) -> None:
    """Open the store, run a command body against the orchestrator, close."""
    async with TaskStore(db_path) as store:
        await body(TaskOrchestrator(store, config))


def _run(db: str | None, body: Body) -> None:
    """Run a command body, reporting domain and input errors on stderr."""
    db_path, config = _resolve_db(db)
    try:
        asyncio.run(_run_async(db_path, config, body))
    except (OrchestrationError, ValidationError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _parse_datetime(value: str | None, option: str) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"not an ISO-8601 datetime: {value!r}", param_hint=option)


def _format_task(task: Task) -> str:
    return f"[{task.position}] {task.id}  {task.title} ({task.priority.value})"


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool) -> None:
    """Task Orchestrator - dependency, ordering and recurrence rules for task boards."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


# =========================================================================
# init
# =========================================================================


@cli.command("init")
@click.option(
    "--project",
    "-p",
    "project_path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Path to the project directory (default: current directory)",
)
@click.option("--name", "-n", default=None, help="Project name (defaults to directory name)")
@click.option("--force", is_flag=True, help="Overwrite existing .taskboard/ configuration")
def init_command(project_path: str, name: str | None, force: bool) -> None:
    """Initialize a project board.

    Creates a .taskboard/ directory with config.toml, .gitignore, and an
    empty task database.
    """
    path = Path(project_path)

    try:
        config = create_default_config(path, name=name, force=force)
    except FileExistsError:
        click.echo(
            f"Error: Project already initialized at {path / '.taskboard'}. "
            "Use --force to overwrite.",
            err=True,
        )
        sys.exit(1)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    db_path = config.resolve_db_path(path)
    asyncio.run(_init_db(db_path))

    click.echo(f"Initialized task board '{config.name}' at {path}")
    click.echo(f"  Config: {path / '.taskboard' / 'config.toml'}")
    click.echo(f"  Database: {db_path}")


async def _init_db(db_path: Path) -> None:
    """Initialize the project database."""
    store = TaskStore(db_path)
    await store.connect()
    await store.close()


# =========================================================================
# task
# =========================================================================


@cli.group()
def task() -> None:
    """Create, delete and inspect tasks."""
    pass


@task.command("add")
@click.argument("title")
@click.option("--scope", "-s", required=True, help="Board scope, e.g. user:alice")
@click.option("--description", "-d", default=None, help="Task description")
@click.option(
    "--priority",
    type=click.Choice([p.value for p in Priority], case_sensitive=False),
    default=Priority.MEDIUM.value,
    help="Priority (default: medium)",
)
@click.option("--estimate", type=int, default=None, help="Estimated minutes")
@click.option("--assignee", default=None, help="Assignee id")
@click.option("--workspace", default=None, help="Workspace id")
@click.option("--parent", default=None, help="Parent task id (creates a subtask)")
@click.option("--due", default=None, help="Due date (ISO-8601)")
@click.option("--status", type=_STATUS_CHOICE, default=TaskStatus.BACKLOG.value,
              help="Initial column (default: backlog)")
@click.option("--db", type=click.Path(), help="Database path")
def task_add(
    title: str,
    scope: str,
    description: str | None,
    priority: str,
    estimate: int | None,
    assignee: str | None,
    workspace: str | None,
    parent: str | None,
    due: str | None,
    status: str,
    db: str | None,
) -> None:
    """Add a task at the end of its column."""
    due_date = _parse_datetime(due, "--due")

    async def body(orchestrator: TaskOrchestrator) -> None:
        new_task = NewTask(
            title=title,
            description=description,
            priority=Priority(priority.lower()),
            estimated_minutes=estimate,
            assignee_id=assignee,
            workspace_id=workspace,
            parent_task_id=parent,
            due_date=due_date,
            status=TaskStatus.parse(status),
        )
        created = await orchestrator.create_task(scope, new_task)
        click.echo(f"Created task {created.id} in {created.status.value}[{created.position}]")

    _run(db, body)


@task.command("rm")
@click.argument("task_id")
@click.option("--scope", "-s", required=True, help="Board scope")
@click.option("--db", type=click.Path(), help="Database path")
def task_rm(task_id: str, scope: str, db: str | None) -> None:
    """Delete a task; its dependencies go with it."""

    async def body(orchestrator: TaskOrchestrator) -> None:
        await orchestrator.delete_task(task_id, scope)
        click.echo(f"Deleted task {task_id}")

    _run(db, body)


@task.command("show")
@click.argument("task_id")
@click.option("--db", type=click.Path(), help="Database path")
def task_show(task_id: str, db: str | None) -> None:
    """Show a task with its dependencies."""

    async def body(orchestrator: TaskOrchestrator) -> None:
        dependencies = await orchestrator.list_dependencies(task_id)
        dependents = await orchestrator.list_dependents(task_id)
        report = await orchestrator.get_blocking_tasks(task_id)
        shown = await orchestrator.get_task(task_id)

        click.echo(f"{shown.title} ({shown.id})")
        click.echo(f"  Scope: {shown.scope}")
        click.echo(f"  Status: {shown.status.value} [{shown.position}]")
        click.echo(f"  Priority: {shown.priority.value}")
        if shown.due_date:
            click.echo(f"  Due: {shown.due_date.isoformat()}")
        if shown.is_recurring and shown.recurrence_pattern:
            click.echo(
                f"  Recurs: {shown.recurrence_pattern.value} every {shown.recurrence_interval}"
            )
        click.echo(f"  Depends on: {', '.join(e.dependency_id for e in dependencies) or '-'}")
        click.echo(f"  Needed by: {', '.join(e.dependent_id for e in dependents) or '-'}")
        click.echo(f"  Can start: {'yes' if report.can_start else 'no'}")

    _run(db, body)


# =========================================================================
# board / move / compact
# =========================================================================


@cli.command()
@click.option("--scope", "-s", required=True, help="Board scope")
@click.option("--db", type=click.Path(), help="Database path")
def board(scope: str, db: str | None) -> None:
    """Show the board of a scope, column by column."""

    async def body(orchestrator: TaskOrchestrator) -> None:
        columns = await orchestrator.get_board(scope)
        for status, tasks in columns.items():
            click.echo(f"{status.value.upper()} ({len(tasks)})")
            for t in tasks:
                click.echo(f"  {_format_task(t)}")

    _run(db, body)


@cli.command()
@click.argument("task_id")
@click.argument("status", type=_STATUS_CHOICE)
@click.argument("position", type=int)
@click.option("--scope", "-s", required=True, help="Board scope")
@click.option("--db", type=click.Path(), help="Database path")
def move(task_id: str, status: str, position: int, scope: str, db: str | None) -> None:
    """Move a task to STATUS at POSITION."""

    async def body(orchestrator: TaskOrchestrator) -> None:
        moved = await orchestrator.move_task(task_id, status, position, scope)
        click.echo(f"Task {moved.id} is now {moved.status.value}[{moved.position}]")

    _run(db, body)


@cli.command()
@click.option("--scope", "-s", required=True, help="Board scope")
@click.option("--status", type=_STATUS_CHOICE, default=None,
              help="Column to compact (default: all)")
@click.option("--db", type=click.Path(), help="Database path")
def compact(scope: str, status: str | None, db: str | None) -> None:
    """Renumber board columns to close any gaps."""
    statuses = [TaskStatus.parse(status)] if status else list(TaskStatus)

    async def body(orchestrator: TaskOrchestrator) -> None:
        total = 0
        for column in statuses:
            total += await orchestrator.compact_column(column, scope)
        click.echo(f"Renumbered {total} task(s)")

    _run(db, body)


# =========================================================================
# deps
# =========================================================================


@cli.group()
def deps() -> None:
    """Dependency management commands."""
    pass


@deps.command("add")
@click.argument("dependent_id")
@click.argument("dependency_id")
@click.option(
    "--type",
    "edge_type",
    type=click.Choice([t.value for t in DependencyType]),
    default=DependencyType.FINISH_TO_START.value,
    help="Dependency type (default: finish_to_start)",
)
@click.option("--db", type=click.Path(), help="Database path")
def deps_add(dependent_id: str, dependency_id: str, edge_type: str, db: str | None) -> None:
    """Make DEPENDENT_ID wait for DEPENDENCY_ID."""

    async def body(orchestrator: TaskOrchestrator) -> None:
        await orchestrator.add_dependency(dependent_id, dependency_id, edge_type)
        click.echo(f"{dependent_id} now depends on {dependency_id} ({edge_type})")

    _run(db, body)


@deps.command("rm")
@click.argument("dependent_id")
@click.argument("dependency_id")
@click.option("--db", type=click.Path(), help="Database path")
def deps_rm(dependent_id: str, dependency_id: str, db: str | None) -> None:
    """Remove the dependency of DEPENDENT_ID on DEPENDENCY_ID."""

    async def body(orchestrator: TaskOrchestrator) -> None:
        await orchestrator.remove_dependency(dependent_id, dependency_id)
        click.echo(f"Removed dependency {dependent_id} -> {dependency_id}")

    _run(db, body)


@deps.command("ls")
@click.argument("task_id")
@click.option("--db", type=click.Path(), help="Database path")
def deps_ls(task_id: str, db: str | None) -> None:
    """List what TASK_ID depends on and what depends on it."""

    async def body(orchestrator: TaskOrchestrator) -> None:
        dependencies = await orchestrator.list_dependencies(task_id)
        dependents = await orchestrator.list_dependents(task_id)
        click.echo("Depends on:")
        for edge in dependencies:
            click.echo(f"  {edge.dependency_id} ({edge.type.value})")
        click.echo("Needed by:")
        for edge in dependents:
            click.echo(f"  {edge.dependent_id} ({edge.type.value})")

    _run(db, body)


@deps.command("check")
@click.argument("task_id")
@click.option("--db", type=click.Path(), help="Database path")
def deps_check(task_id: str, db: str | None) -> None:
    """Report whether TASK_ID can start."""

    async def body(orchestrator: TaskOrchestrator) -> None:
        report = await orchestrator.get_blocking_tasks(task_id)
        if report.can_start:
            click.echo(f"Task {task_id} can start")
            return
        click.echo(f"Task {task_id} is blocked by:")
        for blocker in report.blocking_tasks:
            click.echo(f"  {blocker.id}  {blocker.title} ({blocker.status.value})")

    _run(db, body)


# =========================================================================
# recurrence / sweep
# =========================================================================


@cli.group()
def recurrence() -> None:
    """Recurring task commands."""
    pass


@recurrence.command("set")
@click.argument("task_id")
@click.argument("pattern")
@click.option("--interval", type=int, default=1, help="Repeat every N units (default: 1)")
@click.option("--days", default=None, help="Weekdays for weekly recurrence, e.g. MON,WED")
@click.option("--end", default=None, help="Stop recurring after this date (ISO-8601)")
@click.option("--db", type=click.Path(), help="Database path")
def recurrence_set(
    task_id: str,
    pattern: str,
    interval: int,
    days: str | None,
    end: str | None,
    db: str | None,
) -> None:
    """Make TASK_ID recur with PATTERN (daily, weekly, monthly, yearly)."""
    end_date = _parse_datetime(end, "--end")
    day_list = [d for d in (days or "").split(",") if d.strip()]

    async def body(orchestrator: TaskOrchestrator) -> None:
        settings = RecurrenceSettings(
            pattern=pattern, interval=interval, days=day_list, end_date=end_date
        )
        updated = await orchestrator.set_recurrence(task_id, settings)
        assert updated.recurrence_pattern is not None
        click.echo(
            f"Task {task_id} recurs {updated.recurrence_pattern.value} "
            f"every {updated.recurrence_interval}"
        )

    _run(db, body)


@recurrence.command("clear")
@click.argument("task_id")
@click.option("--db", type=click.Path(), help="Database path")
def recurrence_clear(task_id: str, db: str | None) -> None:
    """Stop TASK_ID from recurring."""

    async def body(orchestrator: TaskOrchestrator) -> None:
        await orchestrator.clear_recurrence(task_id)
        click.echo(f"Task {task_id} no longer recurs")

    _run(db, body)


@recurrence.command("chain")
@click.argument("task_id")
@click.option("--db", type=click.Path(), help="Database path")
def recurrence_chain(task_id: str, db: str | None) -> None:
    """List every occurrence in TASK_ID's recurrence chain."""

    async def body(orchestrator: TaskOrchestrator) -> None:
        for t in await orchestrator.get_recurrence_chain(task_id):
            due = t.due_date.date().isoformat() if t.due_date else "-"
            click.echo(f"{t.id}  {t.status.value:<8} due {due}")

    _run(db, body)


@cli.command()
@click.option("--now", "now_value", default=None,
              help="Sweep time (ISO-8601, default: current UTC time)")
@click.option("--db", type=click.Path(), help="Database path")
def sweep(now_value: str | None, db: str | None) -> None:
    """Spawn the next occurrence of every due recurring task."""
    now = _parse_datetime(now_value, "--now") or datetime.now(timezone.utc)

    async def body(orchestrator: TaskOrchestrator) -> None:
        result = await orchestrator.run_recurrence_sweep(now)
        click.echo(f"Spawned {result.spawned_count} occurrence(s)")
        for occurrence_id in result.spawned_ids:
            click.echo(f"  {occurrence_id}")
        if result.failed_ids:
            click.echo(f"Failed: {', '.join(result.failed_ids)}", err=True)

    _run(db, body)


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
