"""Tests for the Rich console reporter and renderers."""

from __future__ import annotations

import io

from rich.console import Console

from spinx.cli.ui import (
    ConsoleReporter,
    print_run_failure,
    render_conflicts,
    render_explanation,
    render_graph,
)
from spinx.errors import RunFailedError
from spinx.graph import DependencyGraph
from spinx.resolution.models import ConflictRecord, Explanation, ResolvedPackage
from spinx.scheduler import TaskResult
from tests.utils import ws


def make_console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=120, color_system=None), buffer


def test_task_markers():
    console, buffer = make_console()
    reporter = ConsoleReporter(console)

    reporter.batch_started(1, 2, ["@a", "@b"])
    reporter.task_started("@a", "pnpm run build")
    reporter.task_finished(TaskResult(workspace="@a", success=True, duration=1.5, command="pnpm run build"))
    reporter.task_skipped("@b", "build")
    reporter.task_finished(TaskResult(workspace="@b", success=True, duration=0.0))
    reporter.task_finished(TaskResult(workspace="@c", success=False, duration=0.2, command="x", error="boom"))

    output = buffer.getvalue()
    assert "Batch 1/2: @a, @b" in output
    assert "► @a: pnpm run build" in output
    assert "✓ @a (1.50s)" in output
    assert "⊘ @b: no build command" in output
    assert "✗ @c failed" in output


def test_summary_panel():
    console, buffer = make_console()
    reporter = ConsoleReporter(console)

    reporter.run_finished(
        {
            "@a": TaskResult(workspace="@a", success=True, duration=0.25, command="x"),
            "@b": TaskResult(workspace="@b", success=True, duration=0.25, command="y"),
        }
    )

    output = buffer.getvalue()
    assert "Total: 2" in output
    assert "Successful: 2" in output
    assert "Failed" not in output
    assert "500ms" in output


def test_run_failure_lists_failed_and_succeeded():
    console, buffer = make_console()
    ok = TaskResult(workspace="@utils", success=True, duration=0.1, command="x")
    bad = TaskResult(workspace="@orders", success=False, duration=0.1, command="y", error="Command failed with exit code 2: y")

    print_run_failure(RunFailedError("build", [bad], {"@utils": ok, "@orders": bad}), console)

    output = buffer.getvalue()
    assert "Failed to run build" in output
    assert "✗ @orders: Command failed with exit code 2: y" in output
    assert "Already succeeded: @utils" in output


def test_render_graph():
    console, buffer = make_console()
    graph = DependencyGraph([ws("@utils"), ws("@orders", "@utils")])

    render_graph(graph, console)

    output = buffer.getvalue()
    assert "Workspaces: 2" in output
    assert "Level 1 (@utils)" in output
    assert "Level 2 (@orders)" in output


def test_render_conflicts():
    console, buffer = make_console()

    render_conflicts([ConflictRecord("express", {"5.0.0": ["@orders"], "4.18.3": ["@payments"]})], console)

    output = buffer.getvalue()
    assert "Found 1 package(s) with version conflicts" in output
    assert "express" in output
    assert "4.18.3" in output
    assert "@payments" in output


def test_render_no_conflicts():
    console, buffer = make_console()

    render_conflicts([], console)

    assert "No version conflicts detected" in buffer.getvalue()


def test_render_explanation_marks_own_version():
    console, buffer = make_console()
    explanation = Explanation(
        workspace="@orders",
        package_name="express",
        resolved=ResolvedPackage("5.0.0", "/repo/services/orders/node_modules/express"),
        conflict=ConflictRecord("express", {"5.0.0": ["@orders"], "4.18.3": ["@payments"]}),
    )

    render_explanation(explanation, console)

    output = buffer.getvalue()
    assert "Resolution for express in @orders" in output
    assert "Version: 5.0.0" in output
    assert "→ 5.0.0: @orders" in output
    assert "4.18.3: @payments" in output
