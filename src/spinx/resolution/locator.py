"""Locate installed npm packages the way Node's resolver would see them.

Node looks for ``node_modules/<name>`` in the requiring directory and then
in every ancestor directory. pnpm installs packages behind symlinks, so the
located directory is resolved to its real path; that is the directory Node
reports for the module and the one the runtime override redirects to.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from spinx.errors import ManifestError
from spinx.resolution.manifest import MANIFEST_FILENAME, read_package_json
from spinx.resolution.models import ResolvedPackage

logger = logging.getLogger(__name__)

__all__ = ["ModuleLocator", "NodeModulesLocator", "package_dir_candidates"]


class ModuleLocator(Protocol):
    """Finds the installed version/location of a package for a workspace."""

    def locate(self, workspace_path: Path, package_name: str) -> ResolvedPackage | None: ...


def package_dir_candidates(start: Path, package_name: str) -> list[Path]:
    """``node_modules/<package_name>`` directories from ``start`` up to the filesystem root."""
    relative = Path(*package_name.split("/"))
    return [
        directory / "node_modules" / relative
        for directory in (start, *start.parents)
        if directory.name != "node_modules"
    ]


class NodeModulesLocator:
    """Default locator walking ``node_modules`` directories upwards."""

    def locate(self, workspace_path: Path, package_name: str) -> ResolvedPackage | None:
        for candidate in package_dir_candidates(workspace_path, package_name):
            manifest = candidate / MANIFEST_FILENAME
            if not manifest.is_file():
                continue

            try:
                data = read_package_json(manifest)
            except ManifestError as exc:
                logger.debug("Skipping unreadable manifest %s: %s", manifest, exc)
                continue

            if data.get("name") != package_name:
                logger.debug(
                    "Manifest %s names %r, expected %r", manifest, data.get("name"), package_name
                )
                continue

            return ResolvedPackage(
                version=str(data.get("version") or "unknown"),
                resolved_path=str(candidate.resolve()),
            )

        return None
