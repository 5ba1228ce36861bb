"""Init command: scaffold spinx.yaml and pnpm-workspace.yaml."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel

from spinx.cli.helpers import console
from spinx.config import CONFIG_FILENAMES, find_config_file

STARTER_CONFIG = """\
# spinx monorepo configuration
manager: pnpm
concurrency: 4

workspaces:
  - path: packages/utils
    alias: "@utils"
    command:
      build: pnpm run build

  - path: services/api
    alias: "@api"
    depends_on: ["@utils"]
    command:
      build: pnpm run build
      start: pnpm run dev
      live: pnpm run start

defaults:
  build: pnpm run build
  start: pnpm run start
"""

STARTER_PNPM_WORKSPACE = """\
packages:
  - "packages/*"
  - "services/*"
"""


def _write_if_missing(path: Path, content: str) -> bool:
    if path.exists():
        console.print(f"[yellow]⊘[/yellow] {path.name} already exists, leaving it untouched")
        return False
    path.write_text(content, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {path.name}")
    return True


def init(
    directory: Path = typer.Argument(Path("."), help="Monorepo root to initialize"),
) -> None:
    """Initialize a new spinx monorepo."""
    root = directory.resolve()
    if not root.is_dir():
        console.print(f"[red]Error:[/red] {root} is not a directory")
        raise typer.Exit(1)

    console.print(Panel("[bold]spinx monorepo initialization[/bold]", border_style="cyan", expand=False))

    existing = find_config_file(root)
    if existing is not None:
        console.print(f"[yellow]⊘[/yellow] {existing.name} already exists, leaving it untouched")
    else:
        _write_if_missing(root / CONFIG_FILENAMES[0], STARTER_CONFIG)
    _write_if_missing(root / "pnpm-workspace.yaml", STARTER_PNPM_WORKSPACE)

    console.print("\n[bold]Next steps:[/bold]")
    console.print("  1. Edit [cyan]spinx.yaml[/cyan] to list your workspaces")
    console.print("  2. Run [cyan]pnpm install[/cyan]")
    console.print("  3. Run [cyan]spinx graph[/cyan] to check the dependency graph")
    console.print("  4. Run [cyan]spinx build[/cyan]\n")
