"""Workspace manifest (package.json) reading."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from spinx.errors import ManifestError

logger = logging.getLogger(__name__)

__all__ = [
    "MANIFEST_FILENAME",
    "WORKSPACE_PROTOCOL",
    "ManifestReader",
    "PackageJsonReader",
    "is_workspace_range",
    "read_package_json",
]

MANIFEST_FILENAME = "package.json"
WORKSPACE_PROTOCOL = "workspace:"


def is_workspace_range(version_range: str) -> bool:
    """True for pnpm workspace-protocol ranges such as ``workspace:*``."""
    return version_range.startswith(WORKSPACE_PROTOCOL)


class ManifestReader(Protocol):
    """Returns a workspace's declared dependencies, or None without a manifest."""

    def read(self, workspace_path: Path) -> dict[str, str] | None: ...


def read_package_json(path: Path) -> dict:
    """Parse a package.json file.

    Raises:
        ManifestError: If the file is not valid JSON or not a JSON object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ManifestError(f"Could not read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"Could not read {path}: expected a JSON object")
    return data


class PackageJsonReader:
    """Reads ``dependencies`` and ``devDependencies`` from package.json.

    Development entries win over production entries with the same name.
    """

    def read(self, workspace_path: Path) -> dict[str, str] | None:
        manifest = workspace_path / MANIFEST_FILENAME
        if not manifest.is_file():
            return None

        data = read_package_json(manifest)
        declared: dict[str, str] = {}
        for section in ("dependencies", "devDependencies"):
            entries = data.get(section) or {}
            if not isinstance(entries, dict):
                raise ManifestError(f"{manifest}: '{section}' must be an object")
            declared.update({str(name): str(spec) for name, spec in entries.items()})
        return declared
