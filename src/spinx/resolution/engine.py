"""Cross-version resolution engine.

For every workspace, the engine reads the declared external dependencies,
finds the version actually installed for that workspace, records it in a
resolution map and reports packages that resolve to different versions in
different workspaces. The map and the Node preload hook are written to
``.spinx/`` once, before any task runs; spawned processes pick the hook up
through ``NODE_OPTIONS``.
"""

from __future__ import annotations

import json
import logging
import os
from importlib.resources import files
from pathlib import Path

from spinx.errors import NotResolvedError
from spinx.graph import DependencyGraph
from spinx.reporting import NullReporter, Reporter
from spinx.resolution.locator import ModuleLocator, NodeModulesLocator
from spinx.resolution.manifest import ManifestReader, PackageJsonReader, is_workspace_range
from spinx.resolution.models import (
    ConflictRecord,
    Explanation,
    ResolutionMap,
    detect_conflicts,
    resolution_map_to_dict,
)
from spinx.resolution.override import ModuleOverride, WorkspaceRoot

logger = logging.getLogger(__name__)

__all__ = [
    "HOOK_FILE",
    "RESOLUTIONS_FILE",
    "SPINX_DIR",
    "WORKSPACES_FILE",
    "PackageResolver",
]

SPINX_DIR = ".spinx"
RESOLUTIONS_FILE = "resolutions.json"
WORKSPACES_FILE = "workspaces.json"
HOOK_FILE = "resolver.cjs"


class PackageResolver:
    """Builds the resolution map and the runtime override artifacts."""

    def __init__(
        self,
        graph: DependencyGraph,
        root_dir: Path,
        manifest_reader: ManifestReader | None = None,
        locator: ModuleLocator | None = None,
        reporter: Reporter | None = None,
    ):
        self.graph = graph
        self.root_dir = root_dir
        self.manifest_reader = manifest_reader or PackageJsonReader()
        self.locator = locator or NodeModulesLocator()
        self.reporter = reporter or NullReporter()
        self.resolution_map: ResolutionMap = {}
        self.conflicts: list[ConflictRecord] = []

    @property
    def spinx_dir(self) -> Path:
        return self.root_dir / SPINX_DIR

    @property
    def hook_path(self) -> Path:
        return self.spinx_dir / HOOK_FILE

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    def analyze(self) -> ResolutionMap:
        """Resolve every external dependency of every workspace.

        Workspaces without a manifest are skipped (reported, not fatal).
        Dependencies using the ``workspace:`` protocol are internal links
        and are skipped. Dependencies that are declared but not installed
        are left out of the map.

        Returns:
            The fresh resolution map (also kept on ``self.resolution_map``).
        """
        aliases = self.graph.all_aliases()
        self.reporter.analysis_started(len(aliases))
        resolution_map: ResolutionMap = {}

        for alias in aliases:
            workspace = self.graph.workspace_of(alias)
            workspace_path = Path(workspace.path)
            declared = self.manifest_reader.read(workspace_path)

            if declared is None:
                logger.warning("No package.json found in %s", workspace_path)
                self.reporter.manifest_missing(alias, workspace_path)
                continue

            packages = resolution_map.setdefault(alias, {})
            for name, version_range in declared.items():
                if is_workspace_range(version_range):
                    continue

                resolved = self.locator.locate(workspace_path, name)
                if resolved is None:
                    logger.debug("%s: could not resolve %s (%s)", alias, name, version_range)
                    continue
                packages[name] = resolved

        self.resolution_map = resolution_map
        self.conflicts = detect_conflicts(resolution_map)
        logger.info(
            "Resolved %d workspaces, %d conflicting packages",
            len(resolution_map),
            len(self.conflicts),
        )
        self.reporter.conflicts_detected(self.conflicts)
        return resolution_map

    def get_conflicts(self) -> list[ConflictRecord]:
        return list(self.conflicts)

    def conflict_for(self, package_name: str) -> ConflictRecord | None:
        for conflict in self.conflicts:
            if conflict.package_name == package_name:
                return conflict
        return None

    def explain(self, workspace: str, package_name: str) -> Explanation:
        """Report the resolution of ``package_name`` for ``workspace``.

        Raises:
            NotResolvedError: If the workspace has no resolution for the package.
        """
        resolved = self.resolution_map.get(workspace, {}).get(package_name)
        if resolved is None:
            raise NotResolvedError(workspace, package_name)
        return Explanation(
            workspace=workspace,
            package_name=package_name,
            resolved=resolved,
            conflict=self.conflict_for(package_name),
        )

    # -------------------------------------------------------------------------
    # Artifacts and activation
    # -------------------------------------------------------------------------

    def workspace_roots(self) -> list[WorkspaceRoot]:
        return [
            WorkspaceRoot(alias=alias, path=self.graph.workspace_of(alias).path)
            for alias in self.graph.all_aliases()
        ]

    def module_override(self) -> ModuleOverride:
        return ModuleOverride(self.resolution_map, self.workspace_roots())

    def write_artifacts(self) -> list[Path]:
        """Write the resolution map, workspace roots and preload hook to ``.spinx/``.

        Returns:
            Paths of the written files.
        """
        self.spinx_dir.mkdir(parents=True, exist_ok=True)

        resolutions_path = self.spinx_dir / RESOLUTIONS_FILE
        resolutions_path.write_text(
            json.dumps(resolution_map_to_dict(self.resolution_map), indent=2) + "\n",
            encoding="utf-8",
        )

        workspaces_path = self.spinx_dir / WORKSPACES_FILE
        workspaces_path.write_text(
            json.dumps([root.to_dict() for root in self.workspace_roots()], indent=2) + "\n",
            encoding="utf-8",
        )

        hook_source = files("spinx.resolution").joinpath("hooks", HOOK_FILE).read_text(encoding="utf-8")
        self.hook_path.write_text(hook_source, encoding="utf-8")

        written = [resolutions_path, workspaces_path, self.hook_path]
        logger.debug("Wrote resolution artifacts to %s", self.spinx_dir)
        self.reporter.artifacts_written(written)
        return written

    def node_options(self) -> str:
        """Node flag that preloads the override hook."""
        hook = str(self.hook_path)
        if " " in hook:
            hook = f'"{hook}"'
        return f"--require {hook}"

    def activation_env(self, base_env: dict[str, str] | None = None) -> dict[str, str]:
        """Copy of ``base_env`` (default: os.environ) with the hook activated."""
        env = dict(os.environ if base_env is None else base_env)
        existing = env.get("NODE_OPTIONS")
        env["NODE_OPTIONS"] = f"{self.node_options()} {existing}" if existing else self.node_options()
        return env
