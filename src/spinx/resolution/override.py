"""Runtime module-resolution override: the decision logic.

Given the file that issues an import and the bare specifier it imports,
decide whether the import is redirected to the version pinned for the
caller's workspace, or falls through to normal resolution::

    override = ModuleOverride(resolution_map, roots)
    override.resolve("/repo/services/orders/src/app.js", "express/lib/router")
    # -> "/repo/node_modules/.pnpm/express@5.0.0/node_modules/express/lib/router"

The Node preload hook (``hooks/resolver.cjs``) wraps the same rules around
``Module._resolveFilename``; nothing here touches a module loader.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from spinx.resolution.models import ResolutionMap, resolution_map_from_dict

__all__ = [
    "NODE_BUILTINS",
    "ModuleOverride",
    "WorkspaceRoot",
    "find_workspace",
    "is_bypassed",
    "package_name",
    "resolve_request",
]

# Snapshot of ``require("module").builtinModules`` from current Node releases.
# resolver.cjs reads the live list at runtime, so a module added in a newer
# Node is still bypassed there; refresh this set to keep ``ModuleOverride`` in step.
NODE_BUILTINS = frozenset({
    "assert", "async_hooks", "buffer", "child_process", "cluster", "console",
    "constants", "crypto", "dgram", "diagnostics_channel", "dns", "domain",
    "events", "fs", "http", "http2", "https", "inspector", "module", "net",
    "os", "path", "perf_hooks", "process", "punycode", "querystring",
    "readline", "repl", "stream", "string_decoder", "sys", "timers", "tls",
    "trace_events", "tty", "url", "util", "v8", "vm", "wasi",
    "worker_threads", "zlib",
})

_WINDOWS_ABSOLUTE = re.compile(r"^[A-Za-z]:[\\/]")


@dataclass(frozen=True)
class WorkspaceRoot:
    """Alias and absolute root directory of a workspace."""

    alias: str
    path: str

    def to_dict(self) -> dict[str, str]:
        return {"alias": self.alias, "path": self.path}


def is_bypassed(specifier: str) -> bool:
    """True for specifiers the override never touches.

    Relative and absolute paths, ``node:`` URLs and Node built-ins
    (including subpaths such as ``fs/promises``).
    """
    if not specifier or specifier.startswith((".", "/", "\\", "node:")):
        return True
    if _WINDOWS_ABSOLUTE.match(specifier):
        return True
    return specifier.split("/", 1)[0] in NODE_BUILTINS


def package_name(specifier: str) -> str:
    """Base package name of a bare specifier.

    >>> package_name("@scope/name/sub/path")
    '@scope/name'
    >>> package_name("lodash/fp")
    'lodash'
    """
    parts = specifier.split("/")
    if specifier.startswith("@"):
        return "/".join(parts[:2])
    return parts[0]


def _contains(root: str, path: str) -> bool:
    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)


def find_workspace(caller_path: str, roots: Iterable[WorkspaceRoot]) -> str | None:
    """Alias of the workspace whose root contains ``caller_path``.

    The longest matching root wins, so a workspace nested inside another
    still claims its own files. Matches are on path boundaries:
    ``/repo/app`` does not contain ``/repo/app2/x.js``.
    """
    caller = os.path.normpath(caller_path)
    best: WorkspaceRoot | None = None
    for root in roots:
        root_path = os.path.normpath(root.path)
        if _contains(root_path, caller) and (best is None or len(root_path) > len(best.path)):
            best = WorkspaceRoot(alias=root.alias, path=root_path)
    return best.alias if best else None


def resolve_request(
    caller_path: str,
    specifier: str,
    resolution_map: ResolutionMap,
    roots: Iterable[WorkspaceRoot],
) -> str | None:
    """Redirect target for ``specifier`` imported from ``caller_path``.

    Returns the pinned package directory with any subpath re-appended, or
    None when the import should fall through to standard resolution.
    """
    if is_bypassed(specifier):
        return None

    workspace = find_workspace(caller_path, roots)
    if workspace is None:
        return None

    name = package_name(specifier)
    resolved = resolution_map.get(workspace, {}).get(name)
    if resolved is None:
        return None

    return resolved.resolved_path + specifier[len(name):]


class ModuleOverride:
    """Resolution map plus workspace roots, bound together."""

    def __init__(self, resolution_map: ResolutionMap, roots: Iterable[WorkspaceRoot]):
        self.resolution_map = resolution_map
        self.roots = list(roots)

    @classmethod
    def load(cls, spinx_dir: Path) -> ModuleOverride:
        """Load from the ``resolutions.json`` and ``workspaces.json`` artifacts."""
        resolutions = json.loads((spinx_dir / "resolutions.json").read_text(encoding="utf-8"))
        workspaces = json.loads((spinx_dir / "workspaces.json").read_text(encoding="utf-8"))
        return cls(
            resolution_map_from_dict(resolutions),
            [WorkspaceRoot(alias=ws["alias"], path=ws["path"]) for ws in workspaces],
        )

    def workspace_for(self, caller_path: str) -> str | None:
        return find_workspace(caller_path, self.roots)

    def resolve(self, caller_path: str, specifier: str) -> str | None:
        return resolve_request(caller_path, specifier, self.resolution_map, self.roots)
