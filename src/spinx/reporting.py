"""Progress reporting hooks.

Core modules never print. They emit events to a ``Reporter``; the CLI
plugs in a Rich console implementation and tests either use the default
``NullReporter`` or a ``RecordingReporter`` to assert on the event stream.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from pathlib import Path

    from spinx.resolution.models import ConflictRecord
    from spinx.scheduler import TaskResult

__all__ = ["NullReporter", "RecordingReporter", "Reporter"]


class Reporter(Protocol):
    """Observer for resolution and execution progress."""

    # Resolution
    def analysis_started(self, workspace_count: int) -> None: ...

    def manifest_missing(self, alias: str, path: Path) -> None: ...

    def conflicts_detected(self, conflicts: list[ConflictRecord]) -> None: ...

    def artifacts_written(self, paths: list[Path]) -> None: ...

    # Execution
    def run_started(self, command_name: str, batch_count: int) -> None: ...

    def batch_started(self, index: int, total: int, aliases: list[str]) -> None: ...

    def task_started(self, alias: str, command: str) -> None: ...

    def task_skipped(self, alias: str, command_name: str) -> None: ...

    def task_finished(self, result: TaskResult) -> None: ...

    def batch_failed(self, index: int, failed: list[TaskResult]) -> None: ...

    def run_finished(self, results: dict[str, TaskResult]) -> None: ...


class NullReporter:
    """Reporter that ignores every event. Subclass and override what you need."""

    def analysis_started(self, workspace_count: int) -> None:
        pass

    def manifest_missing(self, alias: str, path: Path) -> None:
        pass

    def conflicts_detected(self, conflicts: list[ConflictRecord]) -> None:
        pass

    def artifacts_written(self, paths: list[Path]) -> None:
        pass

    def run_started(self, command_name: str, batch_count: int) -> None:
        pass

    def batch_started(self, index: int, total: int, aliases: list[str]) -> None:
        pass

    def task_started(self, alias: str, command: str) -> None:
        pass

    def task_skipped(self, alias: str, command_name: str) -> None:
        pass

    def task_finished(self, result: TaskResult) -> None:
        pass

    def batch_failed(self, index: int, failed: list[TaskResult]) -> None:
        pass

    def run_finished(self, results: dict[str, TaskResult]) -> None:
        pass


class RecordingReporter(NullReporter):
    """Reporter that records ``(event, payload)`` tuples, in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def analysis_started(self, workspace_count: int) -> None:
        self.events.append(("analysis_started", workspace_count))

    def manifest_missing(self, alias: str, path: Path) -> None:
        self.events.append(("manifest_missing", alias))

    def conflicts_detected(self, conflicts: list[ConflictRecord]) -> None:
        self.events.append(("conflicts_detected", [c.package_name for c in conflicts]))

    def artifacts_written(self, paths: list[Path]) -> None:
        self.events.append(("artifacts_written", [p.name for p in paths]))

    def run_started(self, command_name: str, batch_count: int) -> None:
        self.events.append(("run_started", (command_name, batch_count)))

    def batch_started(self, index: int, total: int, aliases: list[str]) -> None:
        self.events.append(("batch_started", list(aliases)))

    def task_started(self, alias: str, command: str) -> None:
        self.events.append(("task_started", alias))

    def task_skipped(self, alias: str, command_name: str) -> None:
        self.events.append(("task_skipped", alias))

    def task_finished(self, result: TaskResult) -> None:
        self.events.append(("task_finished", result.workspace))

    def batch_failed(self, index: int, failed: list[TaskResult]) -> None:
        self.events.append(("batch_failed", [r.workspace for r in failed]))

    def run_finished(self, results: dict[str, TaskResult]) -> None:
        self.events.append(("run_finished", sorted(results)))
