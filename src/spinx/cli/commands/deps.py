"""Dependency editing commands: add and remove."""

from __future__ import annotations

from typing import Optional

import typer

from spinx.cli.helpers import (
    console,
    exit_on_error,
    get_project_root_or_exit,
    load_project,
    validate_setup,
)
from spinx.deps import DependencyManager


def add(
    from_alias: str = typer.Argument(..., metavar="FROM", help="Workspace that gets the dependency"),
    to: str = typer.Argument(..., metavar="TO", help="Workspace alias or npm package name"),
    dev: bool = typer.Option(False, "--dev", "-D", help="Add as devDependency"),
    exact: bool = typer.Option(False, "--exact", "-E", help="Install exact version"),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Specific version to install"),
) -> None:
    """Add a dependency (workspace-to-workspace or workspace-to-npm)."""
    root = get_project_root_or_exit()
    with exit_on_error():
        validate_setup(root)
        project = load_project(root)
        manager = DependencyManager(root, project.config, project.graph)
        kind = manager.add(from_alias, to, dev=dev, exact=exact, version=version)

    if kind == "workspace":
        console.print(f"\n[green]✓[/green] Linked [cyan]{to}[/cyan] into [cyan]{from_alias}[/cyan]")
    else:
        label = f"{to}@{version}" if version else to
        console.print(f"\n[green]✓[/green] Added [cyan]{label}[/cyan] to [cyan]{from_alias}[/cyan]")
    console.print('[dim]Tip: Run "spinx build" to rebuild affected workspaces.[/dim]\n')


def remove(
    from_alias: str = typer.Argument(..., metavar="FROM", help="Workspace to remove the dependency from"),
    to: str = typer.Argument(..., metavar="TO", help="Workspace alias or npm package name"),
) -> None:
    """Remove a dependency."""
    root = get_project_root_or_exit()
    with exit_on_error():
        validate_setup(root)
        project = load_project(root)
        manager = DependencyManager(root, project.config, project.graph)
        manager.remove(from_alias, to)

    console.print(f"\n[green]✓[/green] Removed [cyan]{to}[/cyan] from [cyan]{from_alias}[/cyan]\n")
