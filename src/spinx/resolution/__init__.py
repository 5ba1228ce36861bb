"""Cross-version package resolution.

Core Components:
    - PackageResolver: per-workspace analysis, conflicts, explain, artifacts
    - ModuleOverride: pure redirect decision used by the runtime hook
    - Collaborators: PackageJsonReader (manifests), NodeModulesLocator (installs)
"""

from spinx.resolution.engine import PackageResolver
from spinx.resolution.locator import ModuleLocator, NodeModulesLocator
from spinx.resolution.manifest import ManifestReader, PackageJsonReader
from spinx.resolution.models import (
    ConflictRecord,
    Explanation,
    ResolutionMap,
    ResolvedPackage,
    detect_conflicts,
)
from spinx.resolution.override import ModuleOverride, WorkspaceRoot, resolve_request

__all__ = [
    "ConflictRecord",
    "Explanation",
    "ManifestReader",
    "ModuleLocator",
    "ModuleOverride",
    "NodeModulesLocator",
    "PackageJsonReader",
    "PackageResolver",
    "ResolutionMap",
    "ResolvedPackage",
    "WorkspaceRoot",
    "detect_conflicts",
    "resolve_request",
]
