"""Tests for manifest reading and node_modules lookup."""

from __future__ import annotations

from pathlib import Path

import pytest

from spinx.errors import ManifestError
from spinx.resolution.locator import NodeModulesLocator, package_dir_candidates
from spinx.resolution.manifest import PackageJsonReader, is_workspace_range
from tests.utils import install_package, write_manifest


class TestPackageJsonReader:
    def test_no_manifest(self, tmp_path: Path):
        assert PackageJsonReader().read(tmp_path) is None

    def test_merges_sections(self, tmp_path: Path):
        write_manifest(
            tmp_path,
            "app",
            dependencies={"express": "^5", "zod": "^3"},
            dev_dependencies={"zod": "3.23.8", "vitest": "^1"},
        )

        declared = PackageJsonReader().read(tmp_path)

        assert declared == {"express": "^5", "zod": "3.23.8", "vitest": "^1"}

    def test_invalid_section(self, tmp_path: Path):
        (tmp_path / "package.json").write_text('{"dependencies": ["express"]}', encoding="utf-8")

        with pytest.raises(ManifestError, match="must be an object"):
            PackageJsonReader().read(tmp_path)

    def test_not_an_object(self, tmp_path: Path):
        (tmp_path / "package.json").write_text("[]", encoding="utf-8")

        with pytest.raises(ManifestError):
            PackageJsonReader().read(tmp_path)

    def test_workspace_range(self):
        assert is_workspace_range("workspace:*")
        assert is_workspace_range("workspace:^1.0.0")
        assert not is_workspace_range("^1.0.0")


class TestNodeModulesLocator:
    def test_nearest_install_wins(self, tmp_path: Path):
        workspace = tmp_path / "packages" / "a"
        install_package(tmp_path, "express", "4.18.3")
        install_package(workspace, "express", "5.0.0")

        resolved = NodeModulesLocator().locate(workspace, "express")

        assert resolved is not None
        assert resolved.version == "5.0.0"
        assert resolved.resolved_path == str((workspace / "node_modules" / "express").resolve())

    def test_falls_back_to_parent(self, tmp_path: Path):
        workspace = tmp_path / "packages" / "a"
        workspace.mkdir(parents=True)
        install_package(tmp_path, "express", "4.18.3")

        resolved = NodeModulesLocator().locate(workspace, "express")

        assert resolved is not None
        assert resolved.version == "4.18.3"

    def test_not_installed(self, tmp_path: Path):
        assert NodeModulesLocator().locate(tmp_path, "definitely-not-installed-pkg") is None

    def test_unreadable_manifest_skipped(self, tmp_path: Path):
        workspace = tmp_path / "a"
        broken = workspace / "node_modules" / "express"
        broken.mkdir(parents=True)
        (broken / "package.json").write_text("{", encoding="utf-8")
        install_package(tmp_path, "express", "4.18.3")

        resolved = NodeModulesLocator().locate(workspace, "express")

        assert resolved is not None
        assert resolved.version == "4.18.3"

    def test_candidates_skip_node_modules_dirs(self, tmp_path: Path):
        start = tmp_path / "node_modules" / "dep"
        candidates = package_dir_candidates(start, "@scope/kit")

        assert candidates[0] == start / "node_modules" / "@scope" / "kit"
        assert tmp_path / "node_modules" / "node_modules" / "@scope" / "kit" not in candidates
        assert tmp_path / "node_modules" / "@scope" / "kit" in candidates
