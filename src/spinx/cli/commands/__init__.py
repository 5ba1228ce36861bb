"""CLI command modules for spinx."""

from __future__ import annotations

import typer

from . import build as build_module
from . import deps as deps_module
from . import init as init_module
from . import inspect as inspect_module
from . import start as start_module


def register_commands(app: typer.Typer) -> None:
    """Attach spinx subcommands to the root Typer app."""
    app.command()(build_module.build)
    app.command()(start_module.start)
    app.command()(build_module.live)
    app.command()(build_module.run)
    app.command()(deps_module.add)
    app.command()(deps_module.remove)
    app.command(name="rm", hidden=True)(deps_module.remove)
    app.command()(inspect_module.graph)
    app.command()(inspect_module.conflicts)
    app.command()(inspect_module.explain)
    app.command()(init_module.init)


__all__ = ["register_commands"]
