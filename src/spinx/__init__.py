"""
spinx - monorepo orchestration with per-workspace dependency resolution.

Usage:
    spinx build [--since REF] [--filter a,b]
    spinx start @api --with-deps
    spinx conflicts
    spinx explain @api express
"""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version

import typer
from rich.logging import RichHandler

from spinx.cli.commands import register_commands
from spinx.cli.helpers import console, err_console

try:
    __version__ = version("spinx")
except PackageNotFoundError:
    __version__ = "0.0.0"


app = typer.Typer(
    name="spinx",
    help="Minimal, fast monorepo manager with cross-version dependency resolution",
    add_completion=False,
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"spinx {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=verbose)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
    show_version: bool = typer.Option(
        False,
        "--version",
        help="Show the spinx version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Minimal, fast monorepo manager with cross-version dependency resolution."""
    _configure_logging(verbose)


register_commands(app)


def main():
    app()


if __name__ == "__main__":
    main()
