"""Read-only inspection commands: graph, conflicts, explain.

None of these spawn processes, so they skip the pnpm preflight. Each one
accepts ``--json`` for machine-readable output.
"""

from __future__ import annotations

import json

import typer

from spinx.cli.helpers import (
    console,
    exit_on_error,
    get_project_root_or_exit,
    load_project,
)
from spinx.cli.ui import render_conflicts, render_explanation, render_graph
from spinx.errors import WorkspaceNotFoundError
from spinx.resolution import PackageResolver


def graph(
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
) -> None:
    """Display the dependency graph."""
    root = get_project_root_or_exit()
    with exit_on_error():
        project = load_project(root)

    if json_output:
        payload = {
            "workspaces": {
                alias: {
                    "path": project.graph.workspace_of(alias).path,
                    "dependencies": project.graph.dependencies_of(alias),
                    "dependents": project.graph.dependents_of(alias),
                }
                for alias in project.graph.all_aliases()
            },
            "order": project.graph.topological_order(),
            "batches": project.graph.parallel_batches(),
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    render_graph(project.graph, console)


def conflicts(
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
) -> None:
    """Show package version conflicts."""
    root = get_project_root_or_exit()
    with exit_on_error():
        project = load_project(root)
        resolver = PackageResolver(project.graph, root)
        resolver.analyze()

    found = resolver.get_conflicts()
    if json_output:
        typer.echo(json.dumps({"conflicts": [conflict.to_dict() for conflict in found]}, indent=2))
        return

    render_conflicts(found, console)


def explain(
    workspace: str = typer.Argument(..., help="Workspace alias"),
    package: str = typer.Argument(..., help="Package name"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
) -> None:
    """Explain how a package is resolved for a workspace."""
    root = get_project_root_or_exit()
    with exit_on_error():
        project = load_project(root)
        if not project.graph.has(workspace):
            raise WorkspaceNotFoundError(workspace)
        resolver = PackageResolver(project.graph, root)
        resolver.analyze()
        explanation = resolver.explain(workspace, package)

    if json_output:
        typer.echo(json.dumps(explanation.to_dict(), indent=2))
        return

    render_explanation(explanation, console)
