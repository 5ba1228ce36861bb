"""Adding and removing dependencies.

Two kinds of targets:
    - Another workspace: the edge is written to ``depends_on`` in spinx.yaml
      and a ``workspace:*`` entry to the workspace's package.json, then
      ``pnpm install`` relinks the workspace.
    - An npm package: delegated to ``pnpm --filter <alias> add|remove``.

spinx.yaml is edited as YAML data (ruamel round-trip, so comments and
formatting survive), and the edited declarations are re-validated as a
graph before anything is written: an edge that would close a cycle is
rejected with the cycle path and leaves every file untouched.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Callable

from ruamel.yaml import YAML

from spinx.config import SpinxConfig, find_config_file
from spinx.errors import DependencyEditError, WorkspaceNotFoundError
from spinx.graph import DependencyGraph
from spinx.resolution.manifest import MANIFEST_FILENAME, read_package_json

logger = logging.getLogger(__name__)

__all__ = ["DependencyManager", "run_pnpm"]

WORKSPACE_LINK = "workspace:*"


def run_pnpm(args: list[str], cwd: Path) -> None:
    """Run pnpm with inherited stdio.

    Raises:
        DependencyEditError: If pnpm is missing or exits non-zero.
    """
    logger.info("Running: pnpm %s", " ".join(args))
    try:
        completed = subprocess.run(["pnpm", *args], cwd=str(cwd), check=False)
    except FileNotFoundError as exc:
        raise DependencyEditError(
            "pnpm is not installed. Please install it: npm install -g pnpm"
        ) from exc
    if completed.returncode != 0:
        raise DependencyEditError(
            f"pnpm {' '.join(args)} failed with exit code {completed.returncode}"
        )


class DependencyManager:
    """Edits workspace and package dependencies of a spinx project."""

    def __init__(
        self,
        root_dir: Path,
        config: SpinxConfig,
        graph: DependencyGraph,
        run: Callable[[list[str], Path], None] = run_pnpm,
    ):
        self.root_dir = root_dir
        self.config = config
        self.graph = graph
        self.run = run

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def add(
        self,
        from_alias: str,
        to: str,
        dev: bool = False,
        exact: bool = False,
        version: str | None = None,
    ) -> str:
        """Add ``to`` as a dependency of ``from_alias``.

        Returns:
            "workspace" when ``to`` is a workspace alias, "package" otherwise.

        Raises:
            WorkspaceNotFoundError: If ``from_alias`` is not a workspace.
            CycleDetectedError: If the new edge would create a cycle.
            DependencyEditError: If a file cannot be updated or pnpm fails.
        """
        workspace = self._workspace(from_alias)

        if self.graph.has(to):
            self._check_acyclic(from_alias, to)
            self._update_manifest(Path(workspace.path), to, dev=dev, add=True)
            self._update_config_edges(from_alias, to, add=True)
            self.run(["install"], self.root_dir)
            logger.info("Linked %s -> %s", from_alias, to)
            return "workspace"

        spec = f"{to}@{version}" if version else to
        args = ["--filter", from_alias, "add", spec]
        if dev:
            args.append("--save-dev")
        if exact:
            args.append("--save-exact")
        self.run(args, self.root_dir)
        logger.info("Added %s to %s", spec, from_alias)
        return "package"

    def remove(self, from_alias: str, to: str) -> str:
        """Remove ``to`` from the dependencies of ``from_alias``.

        Returns:
            "workspace" when ``to`` is a workspace alias, "package" otherwise.
        """
        workspace = self._workspace(from_alias)

        if self.graph.has(to):
            self._update_manifest(Path(workspace.path), to, add=False)
            self._update_config_edges(from_alias, to, add=False)
            logger.info("Unlinked %s -> %s", from_alias, to)
            return "workspace"

        self.run(["remove", "--filter", from_alias, to], self.root_dir)
        logger.info("Removed %s from %s", to, from_alias)
        return "package"

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _workspace(self, alias: str):
        workspace = self.graph.workspace_of(alias)
        if workspace is None:
            raise WorkspaceNotFoundError(alias)
        return workspace

    def _check_acyclic(self, from_alias: str, to_alias: str) -> None:
        """Build the graph the edit would produce; raises on a cycle."""
        updated = []
        for ws in self.config.workspaces:
            if ws.identity == from_alias and to_alias not in ws.depends_on:
                ws = ws.model_copy(update={"depends_on": [*ws.depends_on, to_alias]})
            updated.append(ws)
        DependencyGraph(updated)

    def _find_entry(self, workspaces: Any, alias: str) -> Any:
        for entry in workspaces or []:
            if entry.get("alias") == alias:
                return entry
        # Workspaces without an alias are identified by their path
        for entry in workspaces or []:
            if entry.get("alias"):
                continue
            if str((self.root_dir / str(entry.get("path", ""))).resolve()) == alias:
                return entry
        return None

    def _update_config_edges(self, from_alias: str, to_alias: str, add: bool) -> None:
        config_file = find_config_file(self.root_dir)
        if config_file is None:
            raise DependencyEditError(f"No spinx.yaml found in {self.root_dir}")

        yaml = YAML()
        yaml.preserve_quotes = True
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.load(f) or {}

        entry = self._find_entry(data.get("workspaces"), from_alias)
        if entry is None:
            raise DependencyEditError(f"Workspace {from_alias} not declared in {config_file.name}")

        depends_on = entry.get("depends_on")
        if add:
            if depends_on is None:
                entry["depends_on"] = [to_alias]
            elif to_alias not in depends_on:
                depends_on.append(to_alias)
            else:
                return
        else:
            if not depends_on or to_alias not in depends_on:
                return
            depends_on.remove(to_alias)

        with open(config_file, "w", encoding="utf-8") as f:
            yaml.dump(data, f)
        logger.debug("Updated %s", config_file)

    def _update_manifest(
        self,
        workspace_path: Path,
        to_alias: str,
        dev: bool = False,
        add: bool = True,
    ) -> None:
        manifest = workspace_path / MANIFEST_FILENAME
        if not manifest.is_file():
            if not add:
                return
            raise DependencyEditError(f"No {MANIFEST_FILENAME} found in {workspace_path}")

        data = read_package_json(manifest)
        if add:
            section = "devDependencies" if dev else "dependencies"
            data.setdefault(section, {})[to_alias] = WORKSPACE_LINK
        else:
            for section in ("dependencies", "devDependencies"):
                entries = data.get(section)
                if isinstance(entries, dict):
                    entries.pop(to_alias, None)

        manifest.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        logger.debug("Updated %s", manifest)
