"""CLI layer for spinx: Typer commands and Rich output."""

from .helpers import console, err_console
from .ui import ConsoleReporter

__all__ = ["ConsoleReporter", "console", "err_console"]
