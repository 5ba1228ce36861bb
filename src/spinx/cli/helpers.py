"""Shared helpers for spinx CLI commands."""

from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import typer
from rich.console import Console
from rich.markup import escape

from spinx.changes import get_changed_files, map_files_to_workspaces
from spinx.config import SpinxConfig, find_project_root, load_config, validate_workspaces
from spinx.errors import SpinxError
from spinx.graph import DependencyGraph
from spinx.reporting import Reporter
from spinx.resolution import PackageResolver
from spinx.scheduler import TaskRunner

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


@dataclass
class Project:
    """A loaded and validated spinx project."""

    root: Path
    config: SpinxConfig
    graph: DependencyGraph


def get_project_root_or_exit(start: Path | None = None) -> Path:
    """Return the directory holding spinx.yaml, or exit with a hint."""
    root = find_project_root(start)
    if root is None:
        console.print("[red]Error:[/red] spinx.yaml not found in this directory or any parent.")
        console.print("Run [cyan]spinx init[/cyan] to create one.")
        raise typer.Exit(1)
    return root


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Turn spinx errors into a red message and exit code 1."""
    try:
        yield
    except SpinxError as exc:
        logger.debug("Command failed", exc_info=True)
        console.print(f"\n[red]Error:[/red] {escape(str(exc))}\n")
        raise typer.Exit(1)


def load_project(root: Path) -> Project:
    """Load config, validate workspaces and build the dependency graph."""
    config = load_config(root)
    validate_workspaces(config)
    graph = DependencyGraph.from_config(config)
    return Project(root=root, config=config, graph=graph)


def validate_setup(root: Path) -> None:
    """Preflight for commands that spawn processes or call pnpm.

    Raises:
        SpinxError: If pnpm is not on PATH.
    """
    if shutil.which("pnpm") is None:
        raise SpinxError("pnpm is not installed. Please install it: npm install -g pnpm")

    if not (root / "pnpm-workspace.yaml").exists():
        console.print(
            "[yellow]Warning:[/yellow] pnpm-workspace.yaml not found. "
            "Make sure to create it for proper workspace management."
        )


def prepare_runner(project: Project, reporter: Reporter) -> TaskRunner:
    """Analyze packages, write the resolver artifacts and build a task runner."""
    resolver = PackageResolver(project.graph, project.root, reporter=reporter)
    resolver.analyze()
    resolver.write_artifacts()
    return TaskRunner(
        project.config,
        project.graph,
        env=resolver.activation_env(),
        reporter=reporter,
    )


def parse_filter(filter_arg: str | None) -> list[str] | None:
    """Split a comma-separated alias list; None when no filter was given."""
    if not filter_arg:
        return None
    return [part.strip() for part in filter_arg.split(",") if part.strip()]


def changed_workspaces(project: Project, since: str) -> list[str]:
    """Aliases owning files changed since the git ref ``since``."""
    files = get_changed_files(since, project.root)
    return map_files_to_workspaces(files, project.config.workspaces, project.root)


def format_duration(seconds: float) -> str:
    """Format a duration in human-readable form."""
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}m {secs}s"
