"""Rich rendering for spinx CLI output."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from spinx.cli.helpers import format_duration
from spinx.errors import RunFailedError
from spinx.graph import DependencyGraph
from spinx.reporting import NullReporter
from spinx.resolution.models import ConflictRecord, Explanation
from spinx.scheduler import TaskResult


class ConsoleReporter(NullReporter):
    """Reporter printing progress to a Rich console."""

    def __init__(self, console: Console):
        self.console = console

    def analysis_started(self, workspace_count: int) -> None:
        self.console.print(
            f"[bold]Analyzing package versions across {workspace_count} workspaces...[/bold]"
        )

    def manifest_missing(self, alias: str, path: Path) -> None:
        self.console.print(f"[yellow]Warning:[/yellow] No package.json found in {path} ({alias})")

    def conflicts_detected(self, conflicts: list[ConflictRecord]) -> None:
        if not conflicts:
            self.console.print("[green]✓[/green] No version conflicts detected")
            return
        self.console.print(f"[yellow]Version conflicts detected in {len(conflicts)} package(s)[/yellow]")
        for conflict in conflicts:
            versions = "; ".join(
                f"{version}: {', '.join(aliases)}" for version, aliases in conflict.versions.items()
            )
            self.console.print(f"  [cyan]{conflict.package_name}[/cyan] [dim]({versions})[/dim]")
        self.console.print("[dim]Conflicts are resolved per workspace at runtime.[/dim]")

    def artifacts_written(self, paths: list[Path]) -> None:
        self.console.print(f"[dim]Resolution map and hook written to {paths[0].parent}[/dim]\n")

    def run_started(self, command_name: str, batch_count: int) -> None:
        self.console.print(f"\n[bold]Running {command_name}[/bold] ({batch_count} levels)\n")

    def batch_started(self, index: int, total: int, aliases: list[str]) -> None:
        self.console.print(f"[bold cyan]Batch {index}/{total}[/bold cyan]: {', '.join(aliases)}")

    def task_started(self, alias: str, command: str) -> None:
        self.console.print(f"  [blue]►[/blue] {alias}: [dim]{escape(command)}[/dim]")

    def task_skipped(self, alias: str, command_name: str) -> None:
        self.console.print(f"  [yellow]⊘[/yellow] {alias}: no {command_name} command")

    def task_finished(self, result: TaskResult) -> None:
        if result.skipped:
            return
        if result.success:
            self.console.print(
                f"  [green]✓[/green] {result.workspace} ({format_duration(result.duration)})"
            )
        else:
            self.console.print(f"  [red]✗[/red] {result.workspace} failed")

    def batch_failed(self, index: int, failed: list[TaskResult]) -> None:
        self.console.print(f"\n[red]Batch {index} had failures. Stopping.[/red]")

    def run_finished(self, results: dict[str, TaskResult]) -> None:
        print_summary(results, self.console)


def print_summary(results: dict[str, TaskResult], console: Console) -> None:
    """Print the totals of a run."""
    successful = sum(1 for r in results.values() if r.success)
    failed = len(results) - successful
    total_time = sum(r.duration for r in results.values())

    lines = [
        f"[bold]Total:[/bold] {len(results)}",
        f"[green]✓ Successful:[/green] {successful}",
    ]
    if failed:
        lines.append(f"[red]✗ Failed:[/red] {failed}")
    lines.append(f"[bold]Total time:[/bold] {format_duration(total_time)}")

    console.print()
    console.print(Panel("\n".join(lines), title="Summary", border_style="red" if failed else "green"))


def print_run_failure(error: RunFailedError, console: Console) -> None:
    """List failed workspaces and which workspaces already succeeded."""
    console.print(f"\n[red]Error:[/red] Failed to run {error.command_name}")
    for result in error.failed:
        detail = result.error or "Unknown error"
        if len(detail) > 120:
            detail = detail[:120] + "..."
        console.print(f"  [red]✗[/red] {result.workspace}: {escape(detail)}")

    succeeded = sorted(alias for alias, r in error.results.items() if r.success)
    if succeeded:
        console.print(f"[dim]Already succeeded: {', '.join(succeeded)}[/dim]")
    console.print()


def render_graph(graph: DependencyGraph, console: Console) -> None:
    """Print parallel levels and per-workspace edges."""
    batches = graph.parallel_batches()
    console.print()
    console.print(
        Panel(
            f"[bold]Workspaces:[/bold] {len(graph)}\n[bold]Parallel levels:[/bold] {len(batches)}",
            title="Dependency Graph",
            border_style="blue",
        )
    )

    levels = Tree("[cyan]Levels[/cyan]", guide_style="grey50")
    for index, batch in enumerate(batches, start=1):
        levels.add(f"[white]Level {index}[/white] [bright_black]({', '.join(batch)})[/bright_black]")
    console.print(levels)

    table = Table(title="Workspace Details", show_header=True, header_style="bold cyan")
    table.add_column("Workspace", style="cyan")
    table.add_column("Dependencies")
    table.add_column("Dependents")
    for alias in graph.all_aliases():
        table.add_row(
            alias,
            ", ".join(graph.dependencies_of(alias)) or "-",
            ", ".join(graph.dependents_of(alias)) or "-",
        )
    console.print(table)


def render_conflicts(conflicts: list[ConflictRecord], console: Console) -> None:
    if not conflicts:
        console.print("\n[green]✓ No version conflicts detected![/green]\n")
        return

    console.print(f"\n[yellow]Found {len(conflicts)} package(s) with version conflicts:[/yellow]\n")
    for conflict in conflicts:
        tree = Tree(f"[bold cyan]{conflict.package_name}[/bold cyan]", guide_style="grey50")
        for version, aliases in conflict.versions.items():
            branch = tree.add(f"[white]{version}[/white]")
            for alias in aliases:
                branch.add(f"[bright_black]{alias}[/bright_black]")
        console.print(tree)
    console.print(
        "\n[dim]These conflicts are resolved automatically at runtime by the spinx resolver hook.[/dim]\n"
    )


def render_explanation(explanation: Explanation, console: Console) -> None:
    console.print(
        f"\n[bold]Resolution for {explanation.package_name} in {explanation.workspace}:[/bold]\n"
    )
    console.print(f"  Version: [cyan]{explanation.resolved.version}[/cyan]")
    console.print(f"  Path:    {explanation.resolved.resolved_path}")

    if explanation.conflict is None:
        console.print("\n  [green]✓ No conflicts (all workspaces use the same version)[/green]\n")
        return

    console.print("\n  [yellow]Conflict detected:[/yellow]")
    for version, aliases in explanation.conflict.versions.items():
        marker = "→" if version == explanation.resolved.version else " "
        console.print(f"  {marker} {version}: {', '.join(aliases)}")
    console.print()
