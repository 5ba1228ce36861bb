"""Change detection from git history.

Maps the files changed since a git reference to the workspaces that own
them, which then seed ``DependencyGraph.affected``.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Iterable

from spinx.config import WorkspaceConfig
from spinx.errors import ChangeDetectionError
from spinx.resolution.override import WorkspaceRoot, find_workspace

logger = logging.getLogger(__name__)

__all__ = ["get_changed_files", "map_files_to_workspaces"]


def get_changed_files(since: str, root_dir: Path, timeout: int = 30) -> list[str]:
    """Files changed between ``since`` and HEAD, relative to ``root_dir``.

    ``--relative`` keeps paths relative to ``root_dir`` (and drops files
    outside it) when the project sits in a subdirectory of the git repo.

    Raises:
        ChangeDetectionError: If git is missing, times out, or rejects the ref.
    """
    args = ["git", "diff", "--relative", "--name-only", f"{since}...HEAD"]
    try:
        completed = subprocess.run(
            args,
            cwd=str(root_dir),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise ChangeDetectionError("git executable not found on PATH") from exc
    except subprocess.TimeoutExpired as exc:
        raise ChangeDetectionError(f"git command timed out: {' '.join(args)}") from exc

    if completed.returncode != 0:
        detail = (completed.stderr or completed.stdout).strip().splitlines()
        message = detail[0] if detail else f"exit code {completed.returncode}"
        raise ChangeDetectionError(f"Failed to get git diff: {message}")

    files = [line.strip() for line in completed.stdout.splitlines() if line.strip()]
    logger.debug("%d files changed since %s", len(files), since)
    return files


def map_files_to_workspaces(
    changed_files: Iterable[str],
    workspaces: Iterable[WorkspaceConfig],
    root_dir: Path,
) -> list[str]:
    """Aliases of the workspaces containing ``changed_files``, first-seen order.

    Files outside every workspace (root config, CI files) are ignored.
    """
    roots = [WorkspaceRoot(alias=ws.identity, path=ws.path) for ws in workspaces]
    root = str(root_dir.resolve())
    changed: dict[str, None] = {}

    for file in changed_files:
        alias = find_workspace(os.path.join(root, file), roots)
        if alias is not None:
            changed[alias] = None

    return list(changed)
