"""Commands that run workspace commands across the graph: build, run, live."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from spinx.cli.helpers import (
    Project,
    changed_workspaces,
    console,
    exit_on_error,
    get_project_root_or_exit,
    load_project,
    parse_filter,
    prepare_runner,
    validate_setup,
)
from spinx.cli.ui import ConsoleReporter, print_run_failure
from spinx.config import available_commands, defines_command
from spinx.errors import RunFailedError
from spinx.scheduler import TaskRunner


def _select_workspaces(project: Project, since: str | None, filter_arg: str | None) -> list[str] | None:
    """Aliases to run, an empty list meaning nothing changed, None meaning all."""
    selected = parse_filter(filter_arg)
    if since:
        changed = changed_workspaces(project, since)
        if not changed:
            return []
        selected = sorted(project.graph.affected(changed))
    return selected


def _run_or_exit(runner: TaskRunner, command_name: str, selected: list[str] | None) -> None:
    try:
        asyncio.run(runner.run_all(command_name, selected))
    except RunFailedError as exc:
        print_run_failure(exc, console)
        raise typer.Exit(1)


def build(
    since: Optional[str] = typer.Option(None, "--since", help="Only build workspaces changed since this git ref (plus their dependents)"),
    filter_arg: Optional[str] = typer.Option(None, "--filter", help="Comma-separated list of workspace aliases to build"),
) -> None:
    """Build all workspaces in dependency order."""
    root = get_project_root_or_exit()
    with exit_on_error():
        validate_setup(root)
        project = load_project(root)

        selected = _select_workspaces(project, since, filter_arg)
        if selected == []:
            console.print("\n[green]✓[/green] No changes detected. Nothing to build.\n")
            return

        runner = prepare_runner(project, ConsoleReporter(console))
        _run_or_exit(runner, "build", selected)


def run(
    command_name: str = typer.Argument(..., help="Command name as declared under 'command' or 'defaults'"),
    since: Optional[str] = typer.Option(None, "--since", help="Only run for workspaces changed since this git ref (plus their dependents)"),
    filter_arg: Optional[str] = typer.Option(None, "--filter", help="Comma-separated list of workspace aliases"),
) -> None:
    """Run a custom command for all workspaces."""
    root = get_project_root_or_exit()
    with exit_on_error():
        validate_setup(root)
        project = load_project(root)

        if not defines_command(project.config, command_name):
            console.print(f"\n[red]Error:[/red] No workspace defines command \"{command_name}\"\n")
            names = available_commands(project.config)
            console.print("Available commands in your config:")
            console.print(f"  {', '.join(names) if names else '(none)'}\n")
            raise typer.Exit(1)

        selected = _select_workspaces(project, since, filter_arg)
        if selected == []:
            console.print(f"\n[green]✓[/green] No changes detected. Nothing to {command_name}.\n")
            return

        runner = prepare_runner(project, ConsoleReporter(console))
        _run_or_exit(runner, command_name, selected)


def live() -> None:
    """Build every workspace, then start them all in production mode."""
    root = get_project_root_or_exit()
    with exit_on_error():
        validate_setup(root)
        project = load_project(root)
        runner = prepare_runner(project, ConsoleReporter(console))

        console.print("[bold]Ensuring all workspaces are built...[/bold]")
        _run_or_exit(runner, "build", None)

        console.print("\n[bold]Starting production services...[/bold]")
        _run_or_exit(runner, "live", None)
