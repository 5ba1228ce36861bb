"""Start command implementation."""

from __future__ import annotations

import asyncio

import typer

from spinx.cli.helpers import (
    console,
    exit_on_error,
    get_project_root_or_exit,
    load_project,
    prepare_runner,
    validate_setup,
)
from spinx.cli.ui import ConsoleReporter, print_summary
from spinx.errors import WorkspaceNotFoundError


def start(
    workspace: str = typer.Argument(..., help="Alias of the workspace to start"),
    with_deps: bool = typer.Option(False, "--with-deps", help="Start direct dependencies first"),
) -> None:
    """Start a workspace in development mode."""
    root = get_project_root_or_exit()
    with exit_on_error():
        validate_setup(root)
        project = load_project(root)
        if not project.graph.has(workspace):
            raise WorkspaceNotFoundError(workspace)

        runner = prepare_runner(project, ConsoleReporter(console))
        results = asyncio.run(runner.run_single(workspace, "start", with_deps=with_deps))

    print_summary({result.workspace: result for result in results}, console)
    failed = [result for result in results if not result.success]
    if failed:
        for result in failed:
            console.print(f"  [red]✗[/red] {result.workspace}: {result.error or 'Unknown error'}")
        raise typer.Exit(1)
