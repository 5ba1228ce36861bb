"""Workspace dependency graph.

This module handles:
    - Graph construction from workspace declarations (with reverse edges)
    - Cycle detection with the full cycle path for diagnostics
    - Topological ordering (Kahn's algorithm)
    - Parallel batches for level-by-level execution
    - Affected-set computation for incremental builds

The graph is built once per invocation and never mutated afterwards; the
resolver and the task runner only read from it.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from spinx.config import SpinxConfig, WorkspaceConfig
from spinx.errors import (
    CycleDetectedError,
    DuplicateIdentityError,
    InconsistentGraphError,
    UnknownDependencyError,
)

logger = logging.getLogger(__name__)

__all__ = ["DependencyGraph", "WorkspaceNode"]


@dataclass
class WorkspaceNode:
    """A workspace plus its edges.

    ``dependencies`` and ``dependents`` are kept in declaration order and
    never contain duplicates.
    """

    workspace: WorkspaceConfig
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)

    @property
    def alias(self) -> str:
        return self.workspace.identity


class DependencyGraph:
    """Directed acyclic graph of workspaces keyed by alias."""

    def __init__(self, workspaces: Iterable[WorkspaceConfig]):
        self._nodes: dict[str, WorkspaceNode] = {}
        self._build(list(workspaces))
        self.detect_cycles()

    @classmethod
    def build(cls, workspaces: Iterable[WorkspaceConfig]) -> DependencyGraph:
        """Build and validate a graph from workspace declarations."""
        return cls(workspaces)

    @classmethod
    def from_config(cls, config: SpinxConfig) -> DependencyGraph:
        return cls(config.workspaces)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def _build(self, workspaces: list[WorkspaceConfig]) -> None:
        paths: set[str] = set()
        for workspace in workspaces:
            alias = workspace.identity
            if alias in self._nodes:
                raise DuplicateIdentityError(alias, "alias")
            if workspace.path in paths:
                raise DuplicateIdentityError(workspace.path, "path")
            paths.add(workspace.path)
            self._nodes[alias] = WorkspaceNode(
                workspace=workspace,
                dependencies=list(dict.fromkeys(workspace.depends_on)),
            )

        # Reverse edges
        for alias, node in self._nodes.items():
            for dep in node.dependencies:
                dep_node = self._nodes.get(dep)
                if dep_node is None:
                    raise UnknownDependencyError(alias, dep)
                dep_node.dependents.append(alias)

        logger.debug("Built dependency graph with %d workspaces", len(self._nodes))

    def detect_cycles(self) -> None:
        """Depth-first search over every node, tracking the current path.

        Uses an explicit stack of ``(alias, remaining dependencies)`` so
        long dependency chains do not hit the interpreter recursion limit.

        Raises:
            CycleDetectedError: With the cycle path in visitation order,
                closed on the repeated alias.
        """
        visited: set[str] = set()
        on_stack: set[str] = set()
        path: list[str] = []

        for root in self._nodes:
            if root in visited:
                continue

            visited.add(root)
            on_stack.add(root)
            path.append(root)
            stack: list[tuple[str, Iterator[str]]] = [
                (root, iter(self._nodes[root].dependencies))
            ]

            while stack:
                alias, deps = stack[-1]
                dep = next(deps, None)
                if dep is None:
                    stack.pop()
                    on_stack.discard(alias)
                    path.pop()
                    continue

                if dep in on_stack:
                    start = path.index(dep)
                    raise CycleDetectedError([*path[start:], dep])
                if dep not in visited:
                    visited.add(dep)
                    on_stack.add(dep)
                    path.append(dep)
                    stack.append((dep, iter(self._nodes[dep].dependencies)))

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    def _in_degrees(self) -> dict[str, int]:
        return {alias: len(node.dependencies) for alias, node in self._nodes.items()}

    def topological_order(self) -> list[str]:
        """Return aliases in build order (dependencies first).

        Raises:
            InconsistentGraphError: If the order does not cover every node.
                Unreachable once cycle detection has passed.
        """
        in_degree = self._in_degrees()
        queue = deque(alias for alias, degree in in_degree.items() if degree == 0)
        result: list[str] = []

        while queue:
            alias = queue.popleft()
            result.append(alias)
            for dependent in self._nodes[alias].dependents:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(result) != len(self._nodes):
            raise InconsistentGraphError(
                "Graph contains cycles (should have been caught earlier)"
            )
        return result

    def parallel_batches(self) -> list[list[str]]:
        """Group workspaces into levels that can run concurrently.

        Every workspace appears in exactly one batch and all of its
        dependencies appear in strictly earlier batches.
        """
        in_degree = self._in_degrees()
        batches: list[list[str]] = []

        while in_degree:
            batch = [alias for alias, degree in in_degree.items() if degree == 0]
            if not batch:
                raise InconsistentGraphError("Unable to determine parallel batches")
            batches.append(batch)

            for alias in batch:
                del in_degree[alias]
                for dependent in self._nodes[alias].dependents:
                    if dependent in in_degree:
                        in_degree[dependent] -= 1

        return batches

    def affected(self, changed_aliases: Iterable[str]) -> set[str]:
        """Return the changed aliases plus everything transitively depending on them."""
        changed = list(changed_aliases)
        affected = set(changed)
        queue = deque(changed)

        while queue:
            node = self._nodes.get(queue.popleft())
            if node is None:
                continue
            for dependent in node.dependents:
                if dependent not in affected:
                    affected.add(dependent)
                    queue.append(dependent)

        return affected

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def dependencies_of(self, alias: str) -> list[str]:
        node = self._nodes.get(alias)
        return list(node.dependencies) if node else []

    def dependents_of(self, alias: str) -> list[str]:
        node = self._nodes.get(alias)
        return list(node.dependents) if node else []

    def workspace_of(self, alias: str) -> WorkspaceConfig | None:
        node = self._nodes.get(alias)
        return node.workspace if node else None

    def all_aliases(self) -> list[str]:
        return list(self._nodes)

    def has(self, alias: str) -> bool:
        return alias in self._nodes

    def __contains__(self, alias: object) -> bool:
        return alias in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)
