"""Exception hierarchy for spinx.

Structural errors (configuration, graph shape) are fatal and abort the
command. Task failures are never raised; they are recorded on
``TaskResult`` and only surface as ``RunFailedError`` once a batch settles.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from spinx.scheduler import TaskResult

__all__ = [
    "SpinxError",
    "ConfigError",
    "GraphError",
    "CycleDetectedError",
    "UnknownDependencyError",
    "DuplicateIdentityError",
    "InconsistentGraphError",
    "WorkspaceNotFoundError",
    "ResolutionError",
    "ManifestError",
    "NotResolvedError",
    "RunFailedError",
    "ChangeDetectionError",
    "DependencyEditError",
]


class SpinxError(Exception):
    """Base exception for all spinx errors."""

    pass


class ConfigError(SpinxError):
    """Raised when spinx.yaml is missing, unreadable or invalid."""

    pass


# =============================================================================
# Graph errors
# =============================================================================


class GraphError(SpinxError):
    """Base exception for dependency graph construction errors."""

    pass


class CycleDetectedError(GraphError):
    """Raised when the workspace dependency graph contains a cycle.

    Attributes:
        cycle: Aliases in visitation order, closed on the repeated alias
            (e.g. ``["@a", "@b", "@a"]``).
    """

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__(f"Circular dependency detected: {' → '.join(self.cycle)}")


class UnknownDependencyError(GraphError):
    """Raised when a workspace depends on an alias no workspace declares."""

    def __init__(self, workspace: str, dependency: str):
        self.workspace = workspace
        self.dependency = dependency
        super().__init__(
            f"Workspace {workspace} depends on unknown alias: {dependency}"
        )


class DuplicateIdentityError(GraphError):
    """Raised when two workspaces resolve to the same alias or path."""

    def __init__(self, identity: str, kind: str = "alias"):
        self.identity = identity
        self.kind = kind
        super().__init__(f"Duplicate {kind}: {identity}")


class InconsistentGraphError(GraphError):
    """Internal invariant violation: ordering did not cover every node."""

    pass


class WorkspaceNotFoundError(SpinxError):
    """Raised when an alias does not name any workspace."""

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"Workspace not found: {alias}")


# =============================================================================
# Resolution errors
# =============================================================================


class ResolutionError(SpinxError):
    """Base exception for package resolution errors."""

    pass


class ManifestError(ResolutionError):
    """Raised when a workspace manifest exists but cannot be parsed."""

    pass


class NotResolvedError(ResolutionError):
    """Raised by ``explain`` when a workspace has no resolution for a package."""

    def __init__(self, workspace: str, package_name: str):
        self.workspace = workspace
        self.package_name = package_name
        super().__init__(f"Package {package_name} not found in {workspace}")


# =============================================================================
# Execution errors
# =============================================================================


class RunFailedError(SpinxError):
    """Raised once a batch settles with at least one failed task.

    Attributes:
        command_name: Command that was being run (e.g. ``"build"``).
        failed: Failed task results of the batch that stopped the run.
        results: Every result collected before the run stopped.
    """

    def __init__(
        self,
        command_name: str,
        failed: list[TaskResult],
        results: dict[str, TaskResult] | None = None,
    ):
        self.command_name = command_name
        self.failed = list(failed)
        self.results = dict(results or {})
        names = ", ".join(result.workspace for result in self.failed)
        super().__init__(f"Failed to run {command_name} (failed: {names})")


class ChangeDetectionError(SpinxError):
    """Raised when changed files cannot be determined from git."""

    pass


class DependencyEditError(SpinxError):
    """Raised when a dependency edge cannot be added or removed."""

    pass
