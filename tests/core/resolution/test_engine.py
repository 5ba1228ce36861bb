"""Tests for the cross-version resolution engine."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from spinx.config import load_config
from spinx.errors import ManifestError, NotResolvedError
from spinx.graph import DependencyGraph
from spinx.reporting import RecordingReporter
from spinx.resolution import PackageResolver, ResolvedPackage
from spinx.resolution.override import ModuleOverride
from tests.utils import install_package, write_manifest


def make_resolver(root: Path, reporter=None) -> PackageResolver:
    graph = DependencyGraph.from_config(load_config(root))
    return PackageResolver(graph, root, reporter=reporter)


class TestAnalyze:
    """Test building the resolution map."""

    def test_each_workspace_gets_its_own_version(self, express_project: Path):
        resolver = make_resolver(express_project)
        resolution_map = resolver.analyze()

        orders = resolution_map["@orders"]["express"]
        payments = resolution_map["@payments"]["express"]
        assert orders.version == "5.0.0"
        assert payments.version == "4.18.3"
        assert orders.resolved_path == str(
            (express_project / "services/orders/node_modules/express").resolve()
        )
        assert orders.resolved_path != payments.resolved_path

    def test_conflict_detected(self, express_project: Path):
        resolver = make_resolver(express_project)
        resolver.analyze()

        conflicts = resolver.get_conflicts()
        assert len(conflicts) == 1
        assert conflicts[0].package_name == "express"
        assert conflicts[0].versions == {"5.0.0": ["@orders"], "4.18.3": ["@payments"]}

    def test_same_version_is_not_a_conflict(self, make_project):
        root = make_project(
            [
                {"path": "a", "alias": "@a", "package": {"name": "a", "dependencies": {"lodash": "^4"}}},
                {"path": "b", "alias": "@b", "package": {"name": "b", "dependencies": {"lodash": "^4"}}},
            ]
        )
        install_package(root, "lodash", "4.17.21")

        resolver = make_resolver(root)
        resolution_map = resolver.analyze()

        assert resolution_map["@a"]["lodash"] == resolution_map["@b"]["lodash"]
        assert resolver.get_conflicts() == []

    def test_hoisted_package_found_in_parent(self, make_project):
        root = make_project(
            [{"path": "packages/a", "alias": "@a", "package": {"name": "a", "dependencies": {"@scope/kit": "1.x"}}}]
        )
        install_package(root, "@scope/kit", "1.2.0")

        resolved = make_resolver(root).analyze()["@a"]["@scope/kit"]

        assert resolved.version == "1.2.0"
        assert resolved.resolved_path == str((root / "node_modules/@scope/kit").resolve())

    def test_workspace_protocol_skipped(self, make_project):
        root = make_project(
            [
                {"path": "utils", "alias": "@utils", "package": {"name": "@utils"}},
                {
                    "path": "api",
                    "alias": "@api",
                    "depends_on": ["@utils"],
                    "package": {"name": "api", "dependencies": {"@utils": "workspace:*"}},
                },
            ]
        )

        resolution_map = make_resolver(root).analyze()

        assert resolution_map["@api"] == {}

    def test_missing_manifest_is_reported_and_skipped(self, make_project):
        root = make_project([{"path": "bare", "alias": "@bare"}])
        reporter = RecordingReporter()

        resolution_map = make_resolver(root, reporter).analyze()

        assert "@bare" not in resolution_map
        assert ("manifest_missing", "@bare") in reporter.events

    def test_uninstalled_dependency_left_out(self, make_project):
        root = make_project(
            [{"path": "a", "alias": "@a", "package": {"name": "a", "dependencies": {"ghost": "1.0.0"}}}]
        )

        assert make_resolver(root).analyze() == {"@a": {}}

    def test_dev_dependency_overrides_production_entry(self, make_project):
        root = make_project(
            [
                {
                    "path": "a",
                    "alias": "@a",
                    "package": {
                        "name": "a",
                        "dependencies": {"typescript": "^4"},
                        "dev_dependencies": {"typescript": "workspace:*"},
                    },
                }
            ]
        )
        install_package(root / "a", "typescript", "4.9.5")

        assert make_resolver(root).analyze() == {"@a": {}}

    def test_mismatched_installed_name_ignored(self, make_project):
        root = make_project(
            [{"path": "a", "alias": "@a", "package": {"name": "a", "dependencies": {"left-pad": "1"}}}]
        )
        write_manifest(root / "a" / "node_modules" / "left-pad", "not-left-pad", version="1.0.0")

        assert make_resolver(root).analyze() == {"@a": {}}

    def test_missing_version_is_unknown(self, make_project):
        root = make_project(
            [{"path": "a", "alias": "@a", "package": {"name": "a", "dependencies": {"noversion": "*"}}}]
        )
        write_manifest(root / "a" / "node_modules" / "noversion", "noversion")

        assert make_resolver(root).analyze()["@a"]["noversion"].version == "unknown"

    def test_malformed_manifest_is_fatal(self, make_project):
        root = make_project([{"path": "a", "alias": "@a"}])
        (root / "a" / "package.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(ManifestError):
            make_resolver(root).analyze()

    def test_reanalysis_starts_fresh(self, express_project: Path):
        resolver = make_resolver(express_project)
        resolver.analyze()
        (express_project / "services/payments/package.json").write_text(
            json.dumps({"name": "payments"}), encoding="utf-8"
        )

        resolver.analyze()

        assert resolver.resolution_map["@payments"] == {}
        assert resolver.get_conflicts() == []

    def test_reporter_sequence(self, express_project: Path):
        reporter = RecordingReporter()
        make_resolver(express_project, reporter).analyze()

        assert reporter.events == [
            ("analysis_started", 2),
            ("conflicts_detected", ["express"]),
        ]


class TestExplain:
    """Test explaining a workspace's resolution of a package."""

    def test_explain_with_conflict(self, express_project: Path):
        resolver = make_resolver(express_project)
        resolver.analyze()

        explanation = resolver.explain("@orders", "express")

        assert explanation.resolved.version == "5.0.0"
        assert explanation.has_conflict
        assert explanation.other_versions == {"4.18.3": ["@payments"]}
        assert explanation.to_dict()["conflict"]["package"] == "express"

    def test_explain_unknown_pair(self, express_project: Path):
        resolver = make_resolver(express_project)
        resolver.analyze()

        with pytest.raises(NotResolvedError) as exc_info:
            resolver.explain("@orders", "react")

        assert str(exc_info.value) == "Package react not found in @orders"

    def test_explain_without_conflict(self, make_project):
        root = make_project(
            [{"path": "a", "alias": "@a", "package": {"name": "a", "dependencies": {"zod": "3"}}}]
        )
        install_package(root / "a", "zod", "3.23.8")
        resolver = make_resolver(root)
        resolver.analyze()

        explanation = resolver.explain("@a", "zod")

        assert explanation.conflict is None
        assert explanation.other_versions == {}


class TestArtifacts:
    """Test the .spinx/ artifacts and activation environment."""

    def test_write_artifacts(self, express_project: Path):
        reporter = RecordingReporter()
        resolver = make_resolver(express_project, reporter)
        resolver.analyze()

        written = resolver.write_artifacts()

        assert [p.name for p in written] == ["resolutions.json", "workspaces.json", "resolver.cjs"]
        resolutions = json.loads((express_project / ".spinx/resolutions.json").read_text())
        assert resolutions["@orders"]["express"]["version"] == "5.0.0"
        assert "resolvedPath" in resolutions["@payments"]["express"]
        hook = (express_project / ".spinx/resolver.cjs").read_text()
        assert "_resolveFilename" in hook
        assert reporter.names()[-1] == "artifacts_written"

    def test_artifacts_round_trip_into_override(self, express_project: Path):
        resolver = make_resolver(express_project)
        resolver.analyze()
        resolver.write_artifacts()

        override = ModuleOverride.load(express_project / ".spinx")
        caller = str(express_project / "services/payments/src/index.js")

        assert override.workspace_for(caller) == "@payments"
        assert override.resolve(caller, "express") == resolver.resolution_map["@payments"]["express"].resolved_path

    def test_node_options(self, express_project: Path):
        resolver = make_resolver(express_project)

        assert resolver.node_options() == f"--require {express_project / '.spinx' / 'resolver.cjs'}"

    def test_node_options_quotes_paths_with_spaces(self, tmp_path: Path):
        graph = DependencyGraph([])
        resolver = PackageResolver(graph, tmp_path / "my repo")

        assert resolver.node_options() == f'--require "{tmp_path / "my repo" / ".spinx" / "resolver.cjs"}"'

    def test_activation_env_prepends_to_existing_node_options(self, express_project: Path):
        resolver = make_resolver(express_project)

        env = resolver.activation_env({"NODE_OPTIONS": "--max-old-space-size=4096", "PATH": "/bin"})

        assert env["NODE_OPTIONS"] == f"{resolver.node_options()} --max-old-space-size=4096"
        assert env["PATH"] == "/bin"

    def test_activation_env_does_not_mutate_base(self, express_project: Path):
        resolver = make_resolver(express_project)
        base = {"PATH": "/bin"}

        env = resolver.activation_env(base)

        assert "NODE_OPTIONS" not in base
        assert env["NODE_OPTIONS"] == resolver.node_options()


def test_resolved_package_serialization():
    pkg = ResolvedPackage(version="1.0.0", resolved_path="/x/node_modules/a")

    assert pkg.to_dict() == {"version": "1.0.0", "resolvedPath": "/x/node_modules/a"}
    assert ResolvedPackage.from_dict(pkg.to_dict()) == pkg
