"""Project configuration for the task orchestrator.

Manages the per-project .taskboard/ directory with config.toml, .gitignore,
and the project-scoped database. Provides discovery via find_project_root()
and CLI integration via resolve_db_for_cli().
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import InvalidStatusError
from .models import TaskStatus

logger = logging.getLogger(__name__)

_BOARD_DIR = ".taskboard"
_CONFIG_FILE = "config.toml"
_DB_FILE = "tasks.db"

# Moves into backlog, review and done never consult dependencies.
GATEABLE_STATUSES = frozenset({TaskStatus.ACTIVE})

_GITIGNORE_CONTENT = """\
tasks.db
*.db-journal
*.db-wal
*.db-shm
"""


@dataclass(frozen=True)
class BoardConfig:
    """Board behaviour.

    Attributes:
        gated_statuses: Columns a task may only enter once its finish-to-start
            dependencies are done. Only ``active`` is accepted.
    """

    gated_statuses: tuple[TaskStatus, ...] = (TaskStatus.ACTIVE,)

    def __post_init__(self) -> None:
        if not self.gated_statuses:
            msg = "board.gated_statuses must not be empty"
            raise ValueError(msg)
        ungatable = [s.value for s in self.gated_statuses if s not in GATEABLE_STATUSES]
        if ungatable:
            msg = f"board.gated_statuses may only contain 'active', got {ungatable}"
            raise ValueError(msg)


@dataclass(frozen=True)
class RecurrenceConfig:
    """Recurrence sweep settings."""

    enabled: bool = True


@dataclass(frozen=True)
class ProjectConfig:
    """Per-project orchestrator configuration.

    Loaded from .taskboard/config.toml via load_project_config().
    """

    name: str
    board: BoardConfig = field(default_factory=BoardConfig)
    recurrence: RecurrenceConfig = field(default_factory=RecurrenceConfig)

    def resolve_db_path(self, project_root: Path) -> Path:
        """Resolve absolute path to the project database."""
        return project_root.resolve() / _BOARD_DIR / _DB_FILE


def load_project_config(project_path: Path) -> ProjectConfig:
    """Load config from .taskboard/config.toml.

    Args:
        project_path: Path to the project root directory.

    Returns:
        Parsed ProjectConfig.

    Raises:
        FileNotFoundError: If .taskboard/config.toml is missing.
        ValueError: On invalid, empty, or corrupt TOML.
    """
    config_file = project_path / _BOARD_DIR / _CONFIG_FILE
    if not config_file.exists():
        msg = f"Project config not found: {config_file}"
        raise FileNotFoundError(msg)

    content = config_file.read_text(encoding="utf-8")
    if not content.strip():
        msg = f"Config file is empty: {config_file}"
        raise ValueError(msg)

    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {config_file}: {exc}"
        raise ValueError(msg) from exc

    return _parse_config(data)


def _parse_config(data: dict[str, object]) -> ProjectConfig:
    """Parse raw TOML data into a ProjectConfig.

    Unknown fields are silently ignored for forward compatibility.
    """
    project = data.get("project", {})
    if not isinstance(project, dict):
        msg = "[project] section must be a table"
        raise ValueError(msg)

    board_data = data.get("board", {})
    if not isinstance(board_data, dict):
        msg = "[board] section must be a table"
        raise ValueError(msg)

    recurrence_data = data.get("recurrence", {})
    if not isinstance(recurrence_data, dict):
        msg = "[recurrence] section must be a table"
        raise ValueError(msg)

    name = project.get("name")
    if not isinstance(name, str) or not name:
        msg = "project.name is required and must be a non-empty string"
        raise ValueError(msg)

    gated = board_data.get("gated_statuses", [TaskStatus.ACTIVE.value])
    if not isinstance(gated, list):
        msg = "board.gated_statuses must be a list of status names"
        raise ValueError(msg)
    try:
        gated_statuses = tuple(TaskStatus.parse(str(s)) for s in gated)
    except InvalidStatusError as exc:
        msg = f"board.gated_statuses: {exc}"
        raise ValueError(msg) from exc

    enabled = recurrence_data.get("enabled", True)
    if not isinstance(enabled, bool):
        msg = "recurrence.enabled must be true or false"
        raise ValueError(msg)

    config = ProjectConfig(
        name=name,
        board=BoardConfig(gated_statuses=gated_statuses),
        recurrence=RecurrenceConfig(enabled=enabled),
    )
    _validate_config(config)
    return config


def create_default_config(
    project_path: Path,
    *,
    name: str | None = None,
    force: bool = False,
) -> ProjectConfig:
    """Create .taskboard/ directory with config.toml and .gitignore.

    Args:
        project_path: Path to the project root directory.
        name: Project name. Defaults to directory basename.
        force: Overwrite existing .taskboard/ configuration.

    Returns:
        The created ProjectConfig.

    Raises:
        FileExistsError: If .taskboard/ exists and force=False.
    """
    board_dir = project_path / _BOARD_DIR
    if board_dir.exists() and not force:
        msg = f"Project already initialized: {board_dir}"
        raise FileExistsError(msg)

    resolved_name = name or project_path.resolve().name

    config = ProjectConfig(name=resolved_name)
    _validate_config(config)

    board_dir.mkdir(parents=True, exist_ok=True)

    config_file = board_dir / _CONFIG_FILE
    config_file.write_text(_generate_toml(config), encoding="utf-8")

    gitignore_file = board_dir / ".gitignore"
    gitignore_file.write_text(_GITIGNORE_CONTENT, encoding="utf-8")

    logger.info("Initialized project '%s' at %s", resolved_name, board_dir)
    return config


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from start to find nearest .taskboard/ directory.

    Args:
        start: Starting directory. Defaults to cwd.

    Returns:
        The directory containing .taskboard/, or None if not found.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        if (current / _BOARD_DIR).is_dir():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def resolve_db_for_cli(db_override: str | None = None) -> tuple[Path, ProjectConfig | None]:
    """Resolve database path for CLI commands with auto-discovery fallback.

    Args:
        db_override: Explicit --db path. If given, skips discovery.

    Returns:
        (db_path, config). config is None when db_override is used.

    Raises:
        FileNotFoundError: If no db_override and no .taskboard/ found.
        ValueError: If .taskboard/config.toml is corrupt or invalid.
    """
    if db_override is not None:
        return Path(db_override), None

    project_root = find_project_root()
    if project_root is None:
        msg = (
            "No .taskboard/ directory found. "
            "Run 'task-orchestrator init' first or use --db."
        )
        raise FileNotFoundError(msg)

    config = load_project_config(project_root)
    db_path = config.resolve_db_path(project_root)
    return db_path, config


def _generate_toml(config: ProjectConfig) -> str:
    """Generate TOML string from a ProjectConfig."""
    gated = ", ".join(f'"{s.value}"' for s in config.board.gated_statuses)
    lines = [
        "[project]",
        f'name = "{_escape_toml_string(config.name)}"',
        "",
        "[board]",
        f"gated_statuses = [{gated}]",
        "",
        "[recurrence]",
        f"enabled = {'true' if config.recurrence.enabled else 'false'}",
        "",
    ]
    return "\n".join(lines)


def _escape_toml_string(value: str) -> str:
    """Escape special characters for TOML string values."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _validate_config(config: ProjectConfig) -> None:
    """Validate config values.

    Raises:
        ValueError: On invalid configuration.
    """
    if not config.name or not config.name.strip():
        msg = "project.name must not be empty"
        raise ValueError(msg)
    if " " in config.name or "\t" in config.name:
        msg = f"project.name must not contain whitespace: '{config.name}'"
        raise ValueError(msg)
