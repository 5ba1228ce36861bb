from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any

from spinx.config import WorkspaceConfig


def run(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, cwd=str(cwd), check=True, capture_output=True, text=True)


def write_manifest(
    directory: Path,
    name: str,
    dependencies: dict[str, str] | None = None,
    dev_dependencies: dict[str, str] | None = None,
    version: str | None = None,
) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    data: dict[str, Any] = {"name": name}
    if version is not None:
        data["version"] = version
    if dependencies is not None:
        data["dependencies"] = dependencies
    if dev_dependencies is not None:
        data["devDependencies"] = dev_dependencies
    manifest = directory / "package.json"
    manifest.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return manifest


def install_package(directory: Path, name: str, version: str) -> Path:
    """Fake an installed package under ``directory/node_modules``."""
    package_dir = directory / "node_modules" / Path(*name.split("/"))
    write_manifest(package_dir, name, version=version)
    return package_dir


def ws(alias: str, *depends_on: str, path: str | None = None, **commands: str) -> WorkspaceConfig:
    """Shorthand for a workspace declaration in graph tests."""
    return WorkspaceConfig(
        path=path or f"/repo/{alias.lstrip('@')}",
        alias=alias,
        depends_on=list(depends_on),
        command=commands,
    )
