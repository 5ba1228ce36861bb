"""Configuration loading for spinx projects.

The project configuration lives in ``spinx.yaml`` at the monorepo root::

    manager: pnpm
    concurrency: 4
    workspaces:
      - path: packages/utils
        alias: "@utils"
        command:
          build: pnpm run build
      - path: services/orders
        alias: "@orders"
        depends_on: ["@utils"]
    defaults:
      build: pnpm run build
      start: pnpm run start

Loading happens in two steps: the schema (types, required keys) is checked
by pydantic, then ``validate_workspaces`` checks the cross-workspace rules
(unique aliases and paths, existing directories, resolvable dependencies).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from spinx.errors import ConfigError

logger = logging.getLogger(__name__)

__all__ = [
    "CONFIG_FILENAMES",
    "SpinxConfig",
    "WatchConfig",
    "WorkspaceConfig",
    "available_commands",
    "defines_command",
    "find_config_file",
    "find_project_root",
    "load_config",
    "parse_config",
    "resolve_command",
    "validate_workspaces",
]

CONFIG_FILENAMES = ("spinx.yaml", "spinx.yml")


# =============================================================================
# Schema
# =============================================================================


class WorkspaceConfig(BaseModel):
    """A single workspace declaration.

    Attributes:
        path: Workspace directory (absolute once loaded through ``load_config``)
        alias: Stable identifier used in ``depends_on`` and on the command line
        depends_on: Aliases of workspaces this workspace depends on
        command: Per-workspace command overrides (command name -> shell command)
    """

    path: str = Field(..., min_length=1)
    alias: str | None = None
    depends_on: list[str] = Field(default_factory=list)
    command: dict[str, str] = Field(default_factory=dict)

    @field_validator("alias")
    @classmethod
    def validate_alias(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("alias cannot be empty")
        return v

    @property
    def identity(self) -> str:
        """Alias, or the path when no alias is declared."""
        return self.alias or self.path


class WatchConfig(BaseModel):
    """Watch-path hints for file watchers."""

    include: list[str] = Field(default_factory=list)
    ignore: list[str] = Field(default_factory=list)


class SpinxConfig(BaseModel):
    """Top-level spinx configuration."""

    manager: Literal["pnpm"]
    concurrency: int | None = Field(default=None, gt=0)
    workspaces: list[WorkspaceConfig] = Field(..., min_length=1)
    defaults: dict[str, str] = Field(default_factory=dict)
    watch: WatchConfig = Field(default_factory=WatchConfig)


# =============================================================================
# Loading
# =============================================================================


def find_config_file(root_dir: Path) -> Path | None:
    """Return the config file in ``root_dir``, or None when there is none."""
    for name in CONFIG_FILENAMES:
        candidate = root_dir / name
        if candidate.is_file():
            return candidate
    return None


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` (default: cwd) to the directory holding spinx.yaml."""
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if find_config_file(candidate) is not None:
            return candidate
    return None


def _format_validation_error(exc: ValidationError) -> str:
    lines = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "<root>"
        lines.append(f"  • {location}: {err['msg']}")
    return "\n".join(lines)


def parse_config(data: Any, root_dir: Path) -> SpinxConfig:
    """Validate raw config data and make workspace paths absolute.

    Args:
        data: Mapping loaded from YAML
        root_dir: Directory that relative workspace paths are resolved against

    Returns:
        Validated SpinxConfig with absolute workspace paths

    Raises:
        ConfigError: If the data does not match the schema
    """
    try:
        config = SpinxConfig.model_validate(data or {})
    except ValidationError as exc:
        raise ConfigError(
            f"Config validation failed:\n{_format_validation_error(exc)}"
        ) from exc

    root = root_dir.resolve()
    workspaces = [
        ws.model_copy(update={"path": str((root / ws.path).resolve())})
        for ws in config.workspaces
    ]
    return config.model_copy(update={"workspaces": workspaces})


def load_config(root_dir: Path) -> SpinxConfig:
    """Load and schema-validate spinx.yaml from ``root_dir``.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or does not
            match the schema.
    """
    config_file = find_config_file(root_dir)
    if config_file is None:
        raise ConfigError(f"Config file not found at {root_dir / CONFIG_FILENAMES[0]}")

    yaml = YAML()
    yaml.preserve_quotes = True

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.load(f)
    except YAMLError as exc:
        logger.error("Failed to load config: %s", exc)
        raise ConfigError(f"Invalid YAML in {config_file}: {exc}") from exc

    logger.debug("Loaded config from %s", config_file)
    return parse_config(data, root_dir)


def validate_workspaces(config: SpinxConfig) -> None:
    """Check cross-workspace rules that the schema cannot express.

    Every problem is collected so the user can fix them in one pass.

    Raises:
        ConfigError: Listing duplicate aliases, duplicate paths, missing
            directories and unknown dependency aliases.
    """
    errors: list[str] = []
    aliases: set[str] = set()
    paths: set[str] = set()
    declared = {ws.alias for ws in config.workspaces if ws.alias}

    for ws in config.workspaces:
        if ws.alias:
            if ws.alias in aliases:
                errors.append(f"Duplicate alias: {ws.alias}")
            aliases.add(ws.alias)

        if ws.path in paths:
            errors.append(f"Duplicate path: {ws.path}")
        paths.add(ws.path)

        if not Path(ws.path).is_dir():
            errors.append(f"Workspace path does not exist: {ws.path}")

        for dep in ws.depends_on:
            if dep not in declared:
                errors.append(
                    f"Workspace {ws.identity} depends on unknown alias: {dep}"
                )

    if errors:
        raise ConfigError("Invalid workspaces:\n" + "\n".join(f"  • {e}" for e in errors))


# =============================================================================
# Command lookup
# =============================================================================


def resolve_command(
    workspace: WorkspaceConfig,
    command_name: str,
    config: SpinxConfig,
) -> str | None:
    """Return the shell command for ``command_name`` in ``workspace``.

    Lookup order: workspace override, then shared default. None means the
    workspace has nothing to run for this command.
    """
    command = workspace.command.get(command_name)
    if command:
        return command
    return config.defaults.get(command_name) or None


def defines_command(config: SpinxConfig, command_name: str) -> bool:
    """True if any workspace or the shared defaults define ``command_name``."""
    return any(
        resolve_command(ws, command_name, config) for ws in config.workspaces
    )


def available_commands(config: SpinxConfig) -> list[str]:
    """Command names defined anywhere in the config, in first-seen order."""
    names: dict[str, None] = {}
    for ws in config.workspaces:
        names.update(dict.fromkeys(ws.command))
    names.update(dict.fromkeys(config.defaults))
    return list(names)
