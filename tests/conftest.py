from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterator

import pytest
from ruamel.yaml import YAML

from tests.utils import install_package, run, write_manifest


@pytest.fixture()
def temp_repo(tmp_path: Path) -> Iterator[Path]:
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    run(["git", "init"], cwd=repo_dir)
    run(["git", "config", "user.name", "Spinx Tests"], cwd=repo_dir)
    run(["git", "config", "user.email", "spinx@example.com"], cwd=repo_dir)
    yield repo_dir


@pytest.fixture()
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Create a monorepo on disk: spinx.yaml, workspace dirs and manifests.

    Each workspace dict takes the spinx.yaml keys plus an optional
    ``package`` mapping written as the workspace's package.json.
    """

    def _make(
        workspaces: list[dict[str, Any]],
        defaults: dict[str, str] | None = None,
        root: Path | None = None,
        **extra: Any,
    ) -> Path:
        project_root = (root or tmp_path / "monorepo").resolve()
        project_root.mkdir(parents=True, exist_ok=True)

        declared = []
        for entry in workspaces:
            entry = dict(entry)
            package = entry.pop("package", None)
            (project_root / entry["path"]).mkdir(parents=True, exist_ok=True)
            if package is not None:
                write_manifest(project_root / entry["path"], **package)
            declared.append(entry)

        data: dict[str, Any] = {"manager": "pnpm", "workspaces": declared, **extra}
        if defaults:
            data["defaults"] = defaults

        yaml = YAML()
        with open(project_root / "spinx.yaml", "w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return project_root

    return _make


@pytest.fixture()
def express_project(make_project: Callable[..., Path]) -> Path:
    """Two services pinning different express majors."""
    root = make_project(
        [
            {
                "path": "services/orders",
                "alias": "@orders",
                "package": {"name": "orders", "dependencies": {"express": "^5.0.0"}},
            },
            {
                "path": "services/payments",
                "alias": "@payments",
                "package": {"name": "payments", "dependencies": {"express": "^4.18.0"}},
            },
        ]
    )
    install_package(root / "services/orders", "express", "5.0.0")
    install_package(root / "services/payments", "express", "4.18.3")
    return root
