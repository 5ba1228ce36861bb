"""Resolution data types.

ResolutionMap layout (also the on-disk layout of ``.spinx/resolutions.json``)::

    {
      "@orders": {"express": {"version": "5.0.0", "resolvedPath": "/repo/..."}},
      "@cart":   {"express": {"version": "4.18.3", "resolvedPath": "/repo/..."}}
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "ConflictRecord",
    "Explanation",
    "ResolutionMap",
    "ResolvedPackage",
    "detect_conflicts",
    "resolution_map_from_dict",
    "resolution_map_to_dict",
]


@dataclass(frozen=True)
class ResolvedPackage:
    """Concrete installed version and directory of a package."""

    version: str
    resolved_path: str

    def to_dict(self) -> dict[str, str]:
        return {"version": self.version, "resolvedPath": self.resolved_path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResolvedPackage:
        return cls(version=str(data["version"]), resolved_path=str(data["resolvedPath"]))


ResolutionMap = dict[str, dict[str, ResolvedPackage]]


def resolution_map_to_dict(resolution_map: ResolutionMap) -> dict[str, dict[str, dict[str, str]]]:
    return {
        alias: {name: pkg.to_dict() for name, pkg in packages.items()}
        for alias, packages in resolution_map.items()
    }


def resolution_map_from_dict(data: dict[str, Any]) -> ResolutionMap:
    return {
        alias: {name: ResolvedPackage.from_dict(entry) for name, entry in packages.items()}
        for alias, packages in data.items()
    }


@dataclass
class ConflictRecord:
    """A package resolved to more than one version across workspaces.

    Attributes:
        package_name: npm package name
        versions: Resolved version -> aliases using it (workspace order)
    """

    package_name: str
    versions: dict[str, list[str]] = field(default_factory=dict)

    def workspaces_for(self, version: str) -> list[str]:
        return list(self.versions.get(version, []))

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.package_name,
            "versions": {version: list(aliases) for version, aliases in self.versions.items()},
        }


def detect_conflicts(resolution_map: ResolutionMap) -> list[ConflictRecord]:
    """Group resolved versions by package and keep packages with 2+ versions.

    Versions are compared as exact strings; ``1.2.3`` and ``1.2.4`` are a
    conflict even when a shared range would accept both.
    """
    by_package: dict[str, dict[str, list[str]]] = {}
    for alias, packages in resolution_map.items():
        for name, resolved in packages.items():
            by_version = by_package.setdefault(name, {})
            users = by_version.setdefault(resolved.version, [])
            if alias not in users:
                users.append(alias)

    return [
        ConflictRecord(package_name=name, versions=versions)
        for name, versions in by_package.items()
        if len(versions) > 1
    ]


@dataclass(frozen=True)
class Explanation:
    """Answer to "which version of <package> does <workspace> get?"."""

    workspace: str
    package_name: str
    resolved: ResolvedPackage
    conflict: ConflictRecord | None = None

    @property
    def has_conflict(self) -> bool:
        return self.conflict is not None

    @property
    def other_versions(self) -> dict[str, list[str]]:
        """Versions other workspaces use, excluding this workspace's version."""
        if self.conflict is None:
            return {}
        return {
            version: list(aliases)
            for version, aliases in self.conflict.versions.items()
            if version != self.resolved.version
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "workspace": self.workspace,
            "package": self.package_name,
            "version": self.resolved.version,
            "resolvedPath": self.resolved.resolved_path,
            "conflict": self.conflict.to_dict() if self.conflict else None,
        }
